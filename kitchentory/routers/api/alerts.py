"""Expiration alert API endpoints."""

import typing as t

from fastapi import APIRouter, Depends, Query, Request, status

from kitchentory.core.config import SETTINGS
from kitchentory.schemas.alert import (
    Alert,
    AlertStats,
    CleanupResult,
    HistoryEntry,
    InventorySnapshot,
    SnoozeRequest,
)
from kitchentory.schemas.preferences import (
    AlertPreferences,
    AlertPreferencesUpdate,
)
from kitchentory.services import ExpirationAlertEngine

ROUTER = APIRouter(prefix="/alerts", tags=["Alerts"])


def get_alert_engine(request: Request) -> ExpirationAlertEngine:
    """Dependency returning the engine held by the application.

    Args:
        request (Request): The incoming request.

    Returns:
        ExpirationAlertEngine: The shared alert engine.
    """
    return request.app.state.alert_engine


EngineDep = t.Annotated[ExpirationAlertEngine, Depends(get_alert_engine)]


@ROUTER.get("", response_model=t.List[Alert])
async def list_active_alerts(engine: EngineDep) -> t.List[Alert]:
    """List active alerts, most urgent first.

    Args:
        engine (ExpirationAlertEngine): The alert engine.

    Returns:
        t.List[Alert]: Alerts that are neither dismissed nor snoozed.
    """
    return engine.get_active_alerts()


@ROUTER.post("/check", response_model=t.List[Alert])
async def check_expirations(
    snapshots: t.List[InventorySnapshot],
    engine: EngineDep,
) -> t.List[Alert]:
    """Reconcile alerts with the given inventory snapshots.

    Args:
        snapshots (t.List[InventorySnapshot]): Current inventory.
        engine (ExpirationAlertEngine): The alert engine.

    Returns:
        t.List[Alert]: Newly created alerts.
    """
    return await engine.check_expirations(snapshots)


@ROUTER.get("/history", response_model=t.List[HistoryEntry])
async def get_alert_history(
    engine: EngineDep,
    limit: int | None = Query(
        None, ge=1, description="Maximum number of entries"
    ),
) -> t.List[HistoryEntry]:
    """Get the alert history, newest first.

    Args:
        engine (ExpirationAlertEngine): The alert engine.
        limit (int | None): Maximum number of entries.

    Returns:
        t.List[HistoryEntry]: The history entries.
    """
    return engine.get_alert_history(limit)


@ROUTER.get("/stats", response_model=AlertStats)
async def get_alert_stats(engine: EngineDep) -> AlertStats:
    """Get alert statistics.

    Args:
        engine (ExpirationAlertEngine): The alert engine.

    Returns:
        AlertStats: Aggregate alert counts.
    """
    return engine.get_alert_stats()


@ROUTER.get("/preferences", response_model=AlertPreferences)
async def get_preferences(engine: EngineDep) -> AlertPreferences:
    """Get the alert preferences."""
    return engine.get_preferences()


@ROUTER.put("/preferences", response_model=AlertPreferences)
async def update_preferences(
    update: AlertPreferencesUpdate,
    engine: EngineDep,
) -> AlertPreferences:
    """Update the alert preferences.

    Args:
        update (AlertPreferencesUpdate): Fields to change.
        engine (ExpirationAlertEngine): The alert engine.

    Returns:
        AlertPreferences: The updated preferences.
    """
    return await engine.update_preferences(update)


@ROUTER.post("/cleanup", response_model=CleanupResult)
async def cleanup_alerts(
    engine: EngineDep,
    days_to_keep: int = Query(
        SETTINGS.alert_retention_days,
        ge=0,
        description="Keep dismissed alerts and history this many days",
    ),
) -> CleanupResult:
    """Remove old dismissed alerts and history entries.

    Args:
        engine (ExpirationAlertEngine): The alert engine.
        days_to_keep (int): Retention window in days.

    Returns:
        CleanupResult: Number of records removed.
    """
    return await engine.cleanup(days_to_keep)


@ROUTER.post("/{alert_id}/acknowledge", status_code=status.HTTP_204_NO_CONTENT)
async def acknowledge_alert(alert_id: str, engine: EngineDep) -> None:
    """Acknowledge an alert. Unknown ids are ignored."""
    await engine.acknowledge_alert(alert_id)


@ROUTER.post("/{alert_id}/snooze", status_code=status.HTTP_204_NO_CONTENT)
async def snooze_alert(
    alert_id: str,
    engine: EngineDep,
    snooze: SnoozeRequest | None = None,
) -> None:
    """Snooze an alert. Unknown ids are ignored.

    Args:
        alert_id (str): The alert to snooze.
        engine (ExpirationAlertEngine): The alert engine.
        snooze (SnoozeRequest | None): Optional snooze duration.
    """
    await engine.snooze_alert(
        alert_id, snooze.hours if snooze is not None else None
    )


@ROUTER.post("/{alert_id}/dismiss", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_alert(alert_id: str, engine: EngineDep) -> None:
    """Dismiss an alert. Unknown ids are ignored."""
    await engine.dismiss_alert(alert_id)
