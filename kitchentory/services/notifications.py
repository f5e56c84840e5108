"""Platform notification dispatch for newly created alerts."""

import asyncio
import enum
import logging
import typing as t
from datetime import datetime

from kitchentory.core.config import SETTINGS
from kitchentory.core.globals import NOTIFICATION_CLICK_URL
from kitchentory.core.models import AlertPriority, AlertSeverity, HistoryAction
from kitchentory.schemas.alert import Alert, HistoryEntry
from kitchentory.schemas.preferences import AlertPreferences
from kitchentory.utils.dates import is_within_quiet_hours

LOGGER: logging.Logger = logging.getLogger(__name__)

EmailSender = t.Callable[[t.Sequence[Alert]], t.Awaitable[bool]]


class NotificationPermission(str, enum.Enum):
    """Permission state of the platform notification capability."""

    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class NotificationPlatform(t.Protocol):
    """Capability used to show notifications to the user.

    The host is responsible for wiring notification clicks to its
    inventory view; the click-through URL is passed in ``data``.
    """

    def is_available(self) -> bool:
        """Whether notifications can be shown at all."""

    def permission(self) -> NotificationPermission:
        """Current permission state."""

    async def request_permission(self) -> NotificationPermission:
        """Ask the user for permission and return the outcome."""

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        require_interaction: bool,
        data: t.Dict[str, str],
    ) -> t.Any:
        """Show a notification, replacing any with the same tag."""


class UnavailableNotificationPlatform:
    """Platform for hosts without notification support."""

    def is_available(self) -> bool:
        """Notifications are never available."""
        return False

    def permission(self) -> NotificationPermission:
        """Permission is always denied."""
        return NotificationPermission.DENIED

    async def request_permission(self) -> NotificationPermission:
        """Permission is always denied."""
        return NotificationPermission.DENIED

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        require_interaction: bool,
        data: t.Dict[str, str],
    ) -> t.Any:
        """Refuse to show anything."""
        raise RuntimeError("Notifications are not available on this host")


def get_notification_title(alert: Alert) -> str:
    """Return the notification title for an alert's severity."""
    match alert.severity:
        case AlertSeverity.EXPIRED:
            return "Item Expired"
        case AlertSeverity.CRITICAL:
            return "Critical Alert"
        case AlertSeverity.WARNING:
            return "Expiring Soon"
        case AlertSeverity.REMINDER:
            return "Expiration Reminder"
        case _:
            return "Kitchentory Alert"


def describe_days(days_until_expiration: int) -> str:
    """Describe a day offset in words.

    Args:
        days_until_expiration (int): Calendar days until expiration.

    Returns:
        str: "today", "tomorrow", "N days ago" or "in N days".
    """
    match days_until_expiration:
        case 0:
            return "today"
        case 1:
            return "tomorrow"
        case d if d < 0:
            return f"{abs(d)} days ago"
        case d:
            return f"in {d} days"


def get_notification_body(alert: Alert) -> str:
    """Return the notification body for an alert."""
    verb: str = (
        "expired" if alert.severity == AlertSeverity.EXPIRED else "expires"
    )
    return (
        f"{alert.item_name} {verb} "
        f"{describe_days(alert.days_until_expiration)}"
    )


def count_sent_today(history: t.Iterable[HistoryEntry], now: datetime) -> int:
    """Count notifications sent on the local calendar day of ``now``.

    Args:
        history (t.Iterable[HistoryEntry]): Alert history.
        now (datetime): The current local time.

    Returns:
        int: Number of ``sent`` entries timestamped today.
    """
    today = now.date()
    return sum(
        1
        for entry in history
        if entry.action == HistoryAction.SENT
        and entry.timestamp.astimezone(now.tzinfo).date() == today
    )


class NotificationDispatcher:
    """Decides whether a batch of new alerts is notified, and sends it.

    The gates (push toggle, quiet hours, daily cap, permission) are
    evaluated once per batch. A batch that passes is sent in full even if
    it takes the day past ``max_alerts_per_day``.
    """

    platform: NotificationPlatform
    timeout_seconds: float
    email_sender: EmailSender | None

    def __init__(
        self,
        platform: NotificationPlatform,
        timeout_seconds: float = SETTINGS.notification_timeout_seconds,
        email_sender: EmailSender | None = None,
    ) -> None:
        """Initialize NotificationDispatcher.

        Args:
            platform (NotificationPlatform):
                The platform notification capability.
            timeout_seconds (float):
                Upper bound for each platform call.
            email_sender (EmailSender | None):
                Sends an email digest of a batch, None when email is not
                configured.
        """
        self.platform = platform
        self.timeout_seconds = timeout_seconds
        self.email_sender = email_sender

    async def _resolve_permission(self) -> NotificationPermission:
        permission: NotificationPermission = self.platform.permission()
        if permission == NotificationPermission.UNDETERMINED:
            try:
                permission = await asyncio.wait_for(
                    self.platform.request_permission(),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                LOGGER.warning("Notification permission request timed out")
                return NotificationPermission.UNDETERMINED
        return permission

    async def dispatch(
        self,
        alerts: t.Sequence[Alert],
        preferences: AlertPreferences,
        history: t.Sequence[HistoryEntry],
        now: datetime,
    ) -> t.List[Alert]:
        """Send push notifications for a batch of new alerts.

        Args:
            alerts (t.Sequence[Alert]): Newly created alerts.
            preferences (AlertPreferences): Current preferences.
            history (t.Sequence[HistoryEntry]): History used for the cap.
            now (datetime): The current local time.

        Returns:
            t.List[Alert]:
                Alerts that were shown, already marked as sent. The caller
                persists them and records the history.
        """
        if not alerts:
            return []

        if (
            not preferences.push_notifications
            or not self.platform.is_available()
        ):
            LOGGER.debug("Push notifications disabled or unavailable")
            return []

        if preferences.quiet_hours.enabled and is_within_quiet_hours(
            now,
            preferences.quiet_hours.start_time,
            preferences.quiet_hours.end_time,
        ):
            LOGGER.info(
                "Quiet hours, holding back %d notifications", len(alerts)
            )
            return []

        sent_today: int = count_sent_today(history, now)
        if sent_today >= preferences.max_alerts_per_day:
            LOGGER.info(
                "Daily notification limit reached (%d/%d), skipping batch",
                sent_today,
                preferences.max_alerts_per_day,
            )
            return []

        if await self._resolve_permission() != NotificationPermission.GRANTED:
            LOGGER.debug("Notification permission not granted")
            return []

        sent: t.List[Alert] = []
        for alert in alerts:
            try:
                await asyncio.wait_for(
                    self.platform.show(
                        get_notification_title(alert),
                        get_notification_body(alert),
                        tag=f"expiration-{alert.id}",
                        require_interaction=(
                            alert.priority == AlertPriority.HIGH
                        ),
                        data={
                            "alert_id": alert.id,
                            "item_id": alert.item_id,
                            "url": NOTIFICATION_CLICK_URL,
                        },
                    ),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                LOGGER.warning("Notification for alert %s timed out", alert.id)
                continue
            except Exception:  # pylint: disable=broad-except
                LOGGER.exception(
                    "Failed to show notification for %s", alert.id
                )
                continue

            alert.notification_sent = True
            sent.append(alert)

        return sent

    async def dispatch_email(
        self,
        alerts: t.Sequence[Alert],
        preferences: AlertPreferences,
        now: datetime,
    ) -> t.List[Alert]:
        """Send one email digest for a batch of new alerts.

        Args:
            alerts (t.Sequence[Alert]): Newly created alerts.
            preferences (AlertPreferences): Current preferences.
            now (datetime): The current local time.

        Returns:
            t.List[Alert]: Alerts included in a sent digest, marked as such.
        """
        if not alerts or not preferences.email_notifications:
            return []

        if self.email_sender is None:
            LOGGER.debug("Email not configured, skipping digest")
            return []

        if preferences.quiet_hours.enabled and is_within_quiet_hours(
            now,
            preferences.quiet_hours.start_time,
            preferences.quiet_hours.end_time,
        ):
            return []

        if not await self.email_sender(alerts):
            return []

        for alert in alerts:
            alert.email_sent = True
        return list(alerts)
