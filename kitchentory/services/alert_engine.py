"""Expiration alert engine - reconciliation and alert lifecycle."""

import asyncio
import logging
import typing as t
import uuid
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from kitchentory.core.config import SETTINGS
from kitchentory.core.globals import PRIORITY_RANK
from kitchentory.core.models import AlertSeverity, HistoryAction
from kitchentory.schemas.alert import (
    Alert,
    AlertStats,
    CleanupResult,
    HistoryEntry,
    InventorySnapshot,
)
from kitchentory.schemas.preferences import (
    AlertPreferences,
    AlertPreferencesUpdate,
)
from kitchentory.services.alert_store import AlertStore
from kitchentory.services.classifier import classify
from kitchentory.services.notifications import NotificationDispatcher
from kitchentory.services.preference_store import PreferenceStore
from kitchentory.utils.dates import calculate_days_until_expiration

LOGGER: logging.Logger = logging.getLogger(__name__)

PERSISTENCE_ERRORS: tuple[type[Exception], ...] = (SQLAlchemyError, OSError)

Clock = t.Callable[[], datetime]
SnapshotInput = InventorySnapshot | t.Mapping[str, t.Any]


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class ExpirationAlertEngine:  # pylint: disable=too-many-instance-attributes
    """Owns the alert and history state and every operation on it.

    One engine is built at startup and shared by the host. State is loaded
    once with ``load()``; afterwards memory is authoritative and every
    change is written through to the stores. Writes that fail are queued
    and retried at the start of the next reconciliation pass, and the
    engine reports itself as ``degraded`` until they succeed.

    All mutating operations are serialized by a single lock.
    """

    store: AlertStore
    preference_store: PreferenceStore
    dispatcher: NotificationDispatcher
    timezone: tzinfo
    clock: Clock

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments,line-too-long  # noqa: E501
        self,
        store: AlertStore,
        preference_store: PreferenceStore,
        dispatcher: NotificationDispatcher,
        local_timezone: tzinfo | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize ExpirationAlertEngine.

        Args:
            store (AlertStore):
                Persistent store for alerts and history.
            preference_store (PreferenceStore):
                Persistent store for preferences.
            dispatcher (NotificationDispatcher):
                Sends notifications for new alerts.
            local_timezone (tzinfo | None):
                Timezone for calendar days and quiet hours. Defaults to
                the configured timezone.
            clock (Clock):
                Returns the current timezone-aware time.
        """
        self.store = store
        self.preference_store = preference_store
        self.dispatcher = dispatcher
        self.timezone = local_timezone or ZoneInfo(SETTINGS.timezone)
        self.clock = clock

        self._lock: asyncio.Lock = asyncio.Lock()
        self._alerts: t.Dict[str, Alert] = {}
        self._active_index: t.Dict[t.Tuple[str, AlertSeverity], str] = {}
        self._history: t.List[HistoryEntry] = []
        self._preferences: AlertPreferences = AlertPreferences()
        self._loaded: bool = False

        self._pending_alerts: t.Set[str] = set()
        self._pending_history: t.Dict[str, HistoryEntry] = {}
        self._pending_alert_deletes: t.Set[str] = set()
        self._pending_history_deletes: t.Set[str] = set()
        self._preferences_dirty: bool = False
        self._preference_updates: t.List[AlertPreferencesUpdate] = []

    def now(self) -> datetime:
        """Return the current local time."""
        return self.clock().astimezone(self.timezone)

    @property
    def degraded(self) -> bool:
        """Whether state failed to load or writes are waiting for retry."""
        return not self._loaded or self._has_pending_writes()

    def _has_pending_writes(self) -> bool:
        return any(
            [
                self._pending_alerts,
                self._pending_history,
                self._pending_alert_deletes,
                self._pending_history_deletes,
                self._preferences_dirty,
            ]
        )

    # Loading and persistence

    async def load(self) -> None:
        """Load preferences, alerts and history from the stores.

        On failure the engine keeps running on in-memory state and reports
        itself as degraded. The load is retried before the next
        reconciliation pass and preference update, and nothing is written
        to the stores until it succeeds.
        """
        async with self._lock:
            await self._ensure_loaded()

    async def _ensure_loaded(self) -> bool:
        """Read the stored state once, merging anything built meanwhile.

        Returns:
            bool: True when the stored state has been read.
        """
        if self._loaded:
            return True

        try:
            preferences: AlertPreferences = (
                await self.preference_store.load()
            )
            alerts: t.List[Alert] = await self.store.load_alerts()
            history: t.List[HistoryEntry] = await self.store.load_history()
        except PERSISTENCE_ERRORS:
            LOGGER.exception(
                "Failed to load alert state, running in memory only"
            )
            return False

        self._adopt_stored_state(preferences, alerts, history)
        self._loaded = True
        LOGGER.info(
            "Loaded %d alerts and %d history entries",
            len(self._alerts),
            len(self._history),
        )
        return True

    def _adopt_stored_state(
        self,
        preferences: AlertPreferences,
        alerts: t.List[Alert],
        history: t.List[HistoryEntry],
    ) -> None:
        """Merge stored records with those created while unloaded.

        Stored alerts win: an unsaved alert whose item and severity already
        have an active stored alert is dropped, and its history is moved
        over to the stored one. Preference updates made while unloaded are
        replayed on top of the stored preferences.
        """
        merged: t.Dict[str, Alert] = {alert.id: alert for alert in alerts}
        index: t.Dict[t.Tuple[str, AlertSeverity], str] = {
            (alert.item_id, alert.severity): alert.id
            for alert in alerts
            if alert.dismissed_at is None
        }
        replaced: t.Dict[str, str] = {}

        for alert in self._alerts.values():
            key: t.Tuple[str, AlertSeverity] = (alert.item_id, alert.severity)
            if alert.dismissed_at is None and key in index:
                replaced[alert.id] = index[key]
                self._pending_alerts.discard(alert.id)
                continue
            merged[alert.id] = alert
            if alert.dismissed_at is None:
                index[key] = alert.id

        unsaved: t.List[HistoryEntry] = []
        for entry in self._history:
            if entry.alert_id in replaced:
                entry = entry.model_copy(
                    update={"alert_id": replaced[entry.alert_id]}
                )
                if entry.id in self._pending_history:
                    self._pending_history[entry.id] = entry
            unsaved.append(entry)

        if replaced:
            LOGGER.warning(
                "Dropped %d alerts already present in the store",
                len(replaced),
            )

        for update in self._preference_updates:
            preferences = preferences.merged_with(update)
        if self._preference_updates:
            self._preferences_dirty = True
        self._preference_updates.clear()

        self._preferences = preferences
        self._alerts = merged
        self._active_index = index
        self._history = sorted(
            history + unsaved, key=lambda entry: entry.timestamp
        )

    async def _persist_alert(self, alert: Alert) -> None:
        if not self._loaded:
            self._pending_alerts.add(alert.id)
            return
        try:
            await self.store.save_alert(alert)
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Failed to persist alert %s", alert.id)
            self._pending_alerts.add(alert.id)

    async def _persist_history(self, entry: HistoryEntry) -> None:
        if not self._loaded:
            self._pending_history[entry.id] = entry
            return
        try:
            await self.store.save_history(entry)
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Failed to persist history entry %s", entry.id)
            self._pending_history[entry.id] = entry

    async def _persist_preferences(self) -> None:
        if not self._loaded:
            self._preferences_dirty = True
            return
        try:
            await self.preference_store.save(self._preferences)
            self._preferences_dirty = False
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Failed to persist alert preferences")
            self._preferences_dirty = True

    async def _delete_records(
        self, alert_ids: t.List[str], entry_ids: t.List[str]
    ) -> None:
        if not self._loaded:
            self._pending_alert_deletes.update(alert_ids)
            self._pending_history_deletes.update(entry_ids)
            return
        try:
            await self.store.delete_alerts(alert_ids)
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Failed to delete old alerts")
            self._pending_alert_deletes.update(alert_ids)
        try:
            await self.store.delete_history(entry_ids)
        except PERSISTENCE_ERRORS:
            LOGGER.exception("Failed to delete old history entries")
            self._pending_history_deletes.update(entry_ids)

    async def _flush_pending(self) -> None:
        """Retry writes that failed earlier, stopping at the first error."""
        if not await self._ensure_loaded():
            return
        if not self._has_pending_writes():
            return

        try:
            for alert_id in list(self._pending_alerts):
                alert: Alert | None = self._alerts.get(alert_id)
                if alert is not None:
                    await self.store.save_alert(alert)
                self._pending_alerts.discard(alert_id)

            for entry_id, entry in list(self._pending_history.items()):
                await self.store.save_history(entry)
                del self._pending_history[entry_id]

            if self._pending_alert_deletes:
                await self.store.delete_alerts(self._pending_alert_deletes)
                self._pending_alert_deletes.clear()

            if self._pending_history_deletes:
                await self.store.delete_history(self._pending_history_deletes)
                self._pending_history_deletes.clear()

            if self._preferences_dirty:
                await self.preference_store.save(self._preferences)
                self._preferences_dirty = False
        except PERSISTENCE_ERRORS:
            LOGGER.warning(
                "Alert store still unavailable, keeping writes queued"
            )
            return

        LOGGER.info("Pending alert writes flushed")

    async def _record(
        self,
        alert_id: str,
        action: HistoryAction,
        details: str | None = None,
    ) -> HistoryEntry:
        entry: HistoryEntry = HistoryEntry(
            id=f"history-{uuid.uuid4().hex}",
            alert_id=alert_id,
            action=action,
            timestamp=self.now(),
            details=details,
        )
        self._history.append(entry)
        await self._persist_history(entry)
        return entry

    # Reconciliation

    @staticmethod
    def _coerce_snapshot(raw: SnapshotInput) -> InventorySnapshot | None:
        if isinstance(raw, InventorySnapshot):
            return raw
        try:
            return InventorySnapshot.model_validate(raw)
        except ValidationError as exc:
            LOGGER.warning(
                "Skipping invalid inventory snapshot: %s",
                exc.errors(include_url=False),
            )
            return None

    async def check_expirations(
        self, snapshots: t.Iterable[SnapshotInput]
    ) -> t.List[Alert]:
        """Reconcile alerts with the current inventory and notify.

        For every dated item that needs an alert, the active alert with the
        same item and severity is refreshed in place, left alone while it
        is snoozed, or created when there is none. New alerts are handed to
        the dispatcher in the same step.

        Args:
            snapshots (t.Iterable[SnapshotInput]):
                Current inventory items. Invalid entries are skipped.

        Returns:
            t.List[Alert]: Alerts created by this pass.
        """
        async with self._lock:
            await self._flush_pending()

            if not self._preferences.enabled:
                LOGGER.debug("Alerts disabled, skipping expiration check")
                return []

            now: datetime = self.now()
            new_alerts: t.List[Alert] = []

            for raw in snapshots:
                snapshot: InventorySnapshot | None = self._coerce_snapshot(raw)
                if snapshot is None or snapshot.expiration_date is None:
                    continue

                days: int = calculate_days_until_expiration(
                    snapshot.expiration_date, now
                )
                severity: AlertSeverity | None = classify(
                    days, self._preferences
                )
                if severity is None:
                    continue

                existing_id: str | None = self._active_index.get(
                    (snapshot.item_id, severity)
                )
                if existing_id is not None:
                    existing: Alert = self._alerts[existing_id]
                    if existing.is_snoozed(now):
                        continue
                    if existing.days_until_expiration != days:
                        existing.days_until_expiration = days
                        await self._persist_alert(existing)
                    continue

                alert: Alert = Alert(
                    id=f"alert-{uuid.uuid4().hex}",
                    item_id=snapshot.item_id,
                    item_name=snapshot.name,
                    category=snapshot.category,
                    expiration_date=snapshot.expiration_date,
                    days_until_expiration=days,
                    severity=severity,
                    created_at=now,
                )
                self._alerts[alert.id] = alert
                self._active_index[(alert.item_id, severity)] = alert.id
                await self._persist_alert(alert)
                new_alerts.append(alert)

            if new_alerts:
                LOGGER.info(
                    "Created %d new expiration alerts", len(new_alerts)
                )
                await self._notify(new_alerts, now)

            return [alert.model_copy() for alert in new_alerts]

    async def _notify(self, alerts: t.List[Alert], now: datetime) -> None:
        pushed: t.List[Alert] = await self.dispatcher.dispatch(
            alerts, self._preferences, self._history, now
        )
        emailed: t.List[Alert] = await self.dispatcher.dispatch_email(
            alerts, self._preferences, now
        )

        changed: t.Dict[str, Alert] = {alert.id: alert for alert in emailed}
        changed.update({alert.id: alert for alert in pushed})
        for alert in changed.values():
            await self._persist_alert(alert)

        for alert in pushed:
            await self._record(
                alert.id, HistoryAction.SENT, "Push notification sent"
            )

        if pushed:
            LOGGER.info("Sent %d expiration notifications", len(pushed))

    # Lifecycle

    def _get_open_alert(self, alert_id: str) -> Alert | None:
        alert: Alert | None = self._alerts.get(alert_id)
        if alert is None:
            LOGGER.debug("Alert %s not found", alert_id)
            return None
        if alert.dismissed_at is not None:
            LOGGER.debug("Alert %s is dismissed", alert_id)
            return None
        return alert

    async def acknowledge_alert(self, alert_id: str) -> None:
        """Mark an alert as acknowledged and clear any snooze.

        The alert stays active. Unknown or dismissed ids are ignored.

        Args:
            alert_id (str): The alert to acknowledge.
        """
        async with self._lock:
            alert: Alert | None = self._get_open_alert(alert_id)
            if alert is None:
                return

            alert.acknowledged = True
            alert.snoozed_until = None
            await self._persist_alert(alert)
            await self._record(alert_id, HistoryAction.ACKNOWLEDGED)

    async def snooze_alert(
        self, alert_id: str, hours: float | None = None
    ) -> None:
        """Hide an alert until a number of hours from now.

        Args:
            alert_id (str): The alert to snooze.
            hours (float | None):
                Snooze duration, fractions allowed. Defaults to the
                ``snooze_default_hours`` preference.
        """
        async with self._lock:
            alert: Alert | None = self._get_open_alert(alert_id)
            if alert is None:
                return

            snooze_hours: float = (
                hours if hours is not None
                else self._preferences.snooze_default_hours
            )
            alert.snoozed_until = self.now() + timedelta(hours=snooze_hours)
            await self._persist_alert(alert)
            await self._record(
                alert_id,
                HistoryAction.SNOOZED,
                f"Snoozed for {snooze_hours:g} hours",
            )

    async def dismiss_alert(self, alert_id: str) -> None:
        """Dismiss an alert for good.

        Args:
            alert_id (str): The alert to dismiss.
        """
        async with self._lock:
            alert: Alert | None = self._get_open_alert(alert_id)
            if alert is None:
                return

            alert.dismissed_at = self.now()
            key: t.Tuple[str, AlertSeverity] = (alert.item_id, alert.severity)
            if self._active_index.get(key) == alert.id:
                del self._active_index[key]
            await self._persist_alert(alert)
            await self._record(alert_id, HistoryAction.DISMISSED)

    # Queries

    def get_active_alerts(self) -> t.List[Alert]:
        """Return alerts that are neither dismissed nor snoozed.

        Returns:
            t.List[Alert]:
                Highest priority first, then fewest days remaining first.
        """
        now: datetime = self.now()
        active: t.List[Alert] = [
            alert for alert in self._alerts.values() if alert.is_active(now)
        ]
        active.sort(
            key=lambda alert: (
                -PRIORITY_RANK[alert.priority],
                alert.days_until_expiration,
            )
        )
        return [alert.model_copy() for alert in active]

    def get_alert_history(
        self, limit: int | None = None
    ) -> t.List[HistoryEntry]:
        """Return history entries, newest first.

        Args:
            limit (int | None):
                Maximum number of entries to return, all when None.

        Returns:
            t.List[HistoryEntry]: The history entries.
        """
        entries: t.List[HistoryEntry] = sorted(
            self._history, key=lambda entry: entry.timestamp, reverse=True
        )
        return entries[:limit] if limit is not None else entries

    def get_alert_stats(self) -> AlertStats:
        """Return aggregate counts over the alert set.

        Returns:
            AlertStats: Counts of active, acknowledged, snoozed and
                dismissed alerts, plus active alerts per severity.
        """
        active: t.List[Alert] = self.get_active_alerts()
        every: t.Iterable[Alert] = self._alerts.values()

        def active_with(severity: AlertSeverity) -> int:
            return sum(1 for alert in active if alert.severity == severity)

        return AlertStats(
            total_alerts=len(active),
            acknowledged_alerts=sum(1 for a in every if a.acknowledged),
            snoozed_alerts=sum(1 for a in active if a.snoozed_until),
            dismissed_alerts=sum(
                1 for a in self._alerts.values() if a.dismissed_at
            ),
            expired_items_count=active_with(AlertSeverity.EXPIRED),
            critical_items_count=active_with(AlertSeverity.CRITICAL),
            warning_items_count=active_with(AlertSeverity.WARNING),
            reminder_items_count=active_with(AlertSeverity.REMINDER),
        )

    # Preferences

    def get_preferences(self) -> AlertPreferences:
        """Return a copy of the current preferences."""
        return self._preferences.model_copy(deep=True)

    async def update_preferences(
        self, update: AlertPreferencesUpdate | t.Mapping[str, t.Any]
    ) -> AlertPreferences:
        """Merge a partial update into the preferences and persist them.

        Args:
            update (AlertPreferencesUpdate | t.Mapping[str, t.Any]):
                Fields to change; nested quiet hours are merged too.

        Returns:
            AlertPreferences: The updated preferences.
        """
        if not isinstance(update, AlertPreferencesUpdate):
            update = AlertPreferencesUpdate.model_validate(update)

        async with self._lock:
            if not await self._ensure_loaded():
                self._preference_updates.append(update)
            self._preferences = self._preferences.merged_with(update)
            await self._persist_preferences()
            return self.get_preferences()

    # Retention

    async def cleanup(
        self, days_to_keep: int = SETTINGS.alert_retention_days
    ) -> CleanupResult:
        """Drop old dismissed alerts and old history entries.

        Args:
            days_to_keep (int):
                Dismissed alerts and history entries older than this many
                days are removed.

        Returns:
            CleanupResult: Number of alerts and entries removed.
        """
        async with self._lock:
            cutoff: datetime = self.now() - timedelta(days=days_to_keep)

            stale_alerts: t.List[str] = [
                alert.id
                for alert in self._alerts.values()
                if alert.dismissed_at is not None
                and alert.dismissed_at <= cutoff
            ]
            stale_history: t.List[str] = [
                entry.id
                for entry in self._history
                if entry.timestamp <= cutoff
            ]

            for alert_id in stale_alerts:
                del self._alerts[alert_id]
                self._pending_alerts.discard(alert_id)
            stale_history_ids: t.Set[str] = set(stale_history)
            self._history = [
                entry
                for entry in self._history
                if entry.id not in stale_history_ids
            ]
            for entry_id in stale_history:
                self._pending_history.pop(entry_id, None)

            await self._delete_records(stale_alerts, stale_history)

            LOGGER.info(
                "Cleanup removed %d alerts and %d history entries",
                len(stale_alerts),
                len(stale_history),
            )
            return CleanupResult(
                removed_alerts=len(stale_alerts),
                removed_history=len(stale_history),
            )
