"""Background jobs for expiration checks and alert retention."""

import inspect
import logging
import typing as t

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from kitchentory.core.config import SETTINGS
from kitchentory.schemas.alert import Alert
from kitchentory.services.alert_engine import (
    ExpirationAlertEngine,
    SnapshotInput,
)

LOGGER = logging.getLogger(__name__)

InventoryProvider = t.Callable[
    [],
    t.Iterable[SnapshotInput] | t.Awaitable[t.Iterable[SnapshotInput]],
]


async def check_expiring_items_task(
    engine: ExpirationAlertEngine,
    inventory_provider: InventoryProvider,
) -> None:
    """Background task to reconcile alerts with the current inventory.

    Args:
        engine (ExpirationAlertEngine): The alert engine.
        inventory_provider (InventoryProvider):
            Returns the current inventory snapshots, sync or async.
    """
    LOGGER.info("Running expiration check...")

    try:
        snapshots = inventory_provider()
        if inspect.isawaitable(snapshots):
            snapshots = await snapshots

        new_alerts: t.List[Alert] = await engine.check_expirations(snapshots)
        LOGGER.info(
            "Expiration check complete, %d new alerts", len(new_alerts)
        )
        if engine.degraded:
            LOGGER.warning("Alert store degraded, state held in memory")

    except Exception:  # pylint: disable=broad-except
        LOGGER.exception("Error in expiration check task")


async def cleanup_alerts_task(
    engine: ExpirationAlertEngine,
    days_to_keep: int = SETTINGS.alert_retention_days,
) -> None:
    """Background task to drop old dismissed alerts and history.

    Args:
        engine (ExpirationAlertEngine): The alert engine.
        days_to_keep (int): Retention window in days.
    """
    try:
        await engine.cleanup(days_to_keep)
    except Exception:  # pylint: disable=broad-except
        LOGGER.exception("Error in alert cleanup task")


def schedule_alert_jobs(
    scheduler: AsyncIOScheduler,
    engine: ExpirationAlertEngine,
    inventory_provider: InventoryProvider | None = None,
) -> None:
    """Register the periodic alert jobs on a scheduler.

    Args:
        scheduler (AsyncIOScheduler): The scheduler to add jobs to.
        engine (ExpirationAlertEngine): The alert engine.
        inventory_provider (InventoryProvider | None):
            Source of inventory snapshots. The expiration check is only
            scheduled when one is given.
    """
    scheduler.add_job(
        cleanup_alerts_task,
        trigger=IntervalTrigger(hours=SETTINGS.cleanup_interval_hours),
        id="alert_cleanup",
        name="Remove old dismissed alerts and history",
        replace_existing=True,
        kwargs={
            "engine": engine,
            "days_to_keep": SETTINGS.alert_retention_days,
        },
    )

    if inventory_provider is None:
        LOGGER.info("No inventory provider, expiration checks run on demand")
        return

    scheduler.add_job(
        check_expiring_items_task,
        trigger=IntervalTrigger(
            hours=SETTINGS.check_expiration_interval_hours
        ),
        id="expiration_check",
        name="Check for expiring items",
        replace_existing=True,
        kwargs={"engine": engine, "inventory_provider": inventory_provider},
    )
    LOGGER.info(
        "Expiration checker scheduled to run every %d hours",
        SETTINGS.check_expiration_interval_hours,
    )
