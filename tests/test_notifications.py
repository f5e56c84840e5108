"""Tests for the notification dispatcher."""

import uuid
from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import FakeNotificationPlatform
from kitchentory.core.models import AlertSeverity, HistoryAction
from kitchentory.schemas.alert import Alert, HistoryEntry
from kitchentory.schemas.preferences import AlertPreferences, QuietHours
from kitchentory.services.notifications import (
    NotificationDispatcher,
    NotificationPermission,
    count_sent_today,
    describe_days,
    get_notification_body,
    get_notification_title,
)

NOON = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_alert(
    days: int,
    severity: AlertSeverity = AlertSeverity.WARNING,
    name: str = "Milk",
) -> Alert:
    """Build an unsent alert."""
    return Alert(
        id=f"alert-{uuid.uuid4().hex}",
        item_id=name.lower(),
        item_name=name,
        category="dairy",
        expiration_date=date(2024, 6, 15) + timedelta(days=days),
        days_until_expiration=days,
        severity=severity,
        created_at=NOON,
    )


def sent_entry(timestamp: datetime) -> HistoryEntry:
    """Build a ``sent`` history entry."""
    return HistoryEntry(
        id=f"history-{uuid.uuid4().hex}",
        alert_id="alert-old",
        action=HistoryAction.SENT,
        timestamp=timestamp,
    )


class TestNotificationText:
    """Tests for titles and bodies."""

    def test_expired_alert(self):
        """Expired items read 'Item Expired' and 'N days ago'."""
        alert = make_alert(-5, AlertSeverity.EXPIRED, "Yogurt")

        assert get_notification_title(alert) == "Item Expired"
        assert get_notification_body(alert) == "Yogurt expired 5 days ago"

    @pytest.mark.parametrize(
        ("days", "text"),
        [(0, "today"), (1, "tomorrow"), (4, "in 4 days"), (-2, "2 days ago")],
    )
    def test_describe_days(self, days, text):
        """Offsets are described in words."""
        assert describe_days(days) == text

    @pytest.mark.parametrize(
        ("severity", "title"),
        [
            (AlertSeverity.CRITICAL, "Critical Alert"),
            (AlertSeverity.WARNING, "Expiring Soon"),
            (AlertSeverity.REMINDER, "Expiration Reminder"),
        ],
    )
    def test_titles(self, severity, title):
        """Each severity has its own title."""
        assert get_notification_title(make_alert(1, severity)) == title

    def test_upcoming_body(self):
        """Items not yet expired 'expire'."""
        alert = make_alert(1, AlertSeverity.CRITICAL, "Bread")

        assert get_notification_body(alert) == "Bread expires tomorrow"


class TestDispatchGates:
    """Tests for the batch-level gates."""

    @pytest.mark.asyncio
    async def test_sends_every_alert_when_gates_pass(self):
        """Each alert is shown once with a stable tag."""
        platform = FakeNotificationPlatform()
        dispatcher = NotificationDispatcher(platform)
        alerts = [make_alert(-1, AlertSeverity.EXPIRED), make_alert(5)]

        sent = await dispatcher.dispatch(alerts, AlertPreferences(), [], NOON)

        assert sent == alerts
        assert all(alert.notification_sent for alert in alerts)
        assert [n["tag"] for n in platform.shown] == [
            f"expiration-{alert.id}" for alert in alerts
        ]
        assert platform.shown[0]["require_interaction"] is True
        assert platform.shown[1]["require_interaction"] is False
        assert platform.shown[0]["data"]["url"] == "/inventory"

    @pytest.mark.asyncio
    async def test_push_disabled(self):
        """Nothing is sent when push notifications are off."""
        platform = FakeNotificationPlatform()
        dispatcher = NotificationDispatcher(platform)
        alert = make_alert(2)

        sent = await dispatcher.dispatch(
            [alert], AlertPreferences(push_notifications=False), [], NOON
        )

        assert sent == []
        assert platform.shown == []
        assert alert.notification_sent is False

    @pytest.mark.asyncio
    async def test_platform_unavailable(self):
        """Nothing is sent without a notification capability."""
        platform = FakeNotificationPlatform(available=False)

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)], AlertPreferences(), [], NOON
        )

        assert sent == []
        assert platform.shown == []

    @pytest.mark.asyncio
    async def test_quiet_hours_hold_whole_batch(self):
        """Inside quiet hours the whole batch is held back."""
        platform = FakeNotificationPlatform()
        preferences = AlertPreferences(quiet_hours=QuietHours(enabled=True))
        late = NOON.replace(hour=23)

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2), make_alert(3)], preferences, [], late
        )

        assert sent == []
        assert platform.shown == []

    @pytest.mark.asyncio
    async def test_disabled_quiet_hours_are_ignored(self):
        """The window only applies when enabled."""
        platform = FakeNotificationPlatform()
        late = NOON.replace(hour=23)

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)], AlertPreferences(), [], late
        )

        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_exhausted_daily_cap_blocks_batch(self):
        """With the cap already reached none of the batch is sent."""
        platform = FakeNotificationPlatform()
        history = [sent_entry(NOON.replace(hour=8)) for _ in range(2)]

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2), make_alert(3), make_alert(4)],
            AlertPreferences(max_alerts_per_day=2),
            history,
            NOON,
        )

        assert sent == []
        assert platform.shown == []

    @pytest.mark.asyncio
    async def test_daily_cap_is_checked_once_per_batch(self):
        """An open cap lets the whole batch through, not a partial send."""
        platform = FakeNotificationPlatform()
        alerts = [make_alert(2), make_alert(3), make_alert(4)]

        sent = await NotificationDispatcher(platform).dispatch(
            alerts, AlertPreferences(max_alerts_per_day=2), [], NOON
        )

        assert len(sent) == 3
        assert len(platform.shown) == 3

    @pytest.mark.asyncio
    async def test_sends_from_previous_days_do_not_count(self):
        """The cap counts the current calendar day only."""
        platform = FakeNotificationPlatform()
        yesterday = [sent_entry(NOON - timedelta(days=1)) for _ in range(5)]

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)],
            AlertPreferences(max_alerts_per_day=2),
            yesterday,
            NOON,
        )

        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_undetermined_permission_is_requested(self):
        """Permission is requested once and then used."""
        platform = FakeNotificationPlatform(
            permission=NotificationPermission.UNDETERMINED
        )

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)], AlertPreferences(), [], NOON
        )

        assert platform.permission_requests == 1
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_refused_permission_aborts(self):
        """A refused request leaves the batch unsent."""
        platform = FakeNotificationPlatform(
            permission=NotificationPermission.UNDETERMINED,
            grant_on_request=False,
        )

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)], AlertPreferences(), [], NOON
        )

        assert sent == []
        assert platform.shown == []

    @pytest.mark.asyncio
    async def test_denied_permission_is_not_requested_again(self):
        """Denied is a steady state."""
        platform = FakeNotificationPlatform(
            permission=NotificationPermission.DENIED
        )

        sent = await NotificationDispatcher(platform).dispatch(
            [make_alert(2)], AlertPreferences(), [], NOON
        )

        assert sent == []
        assert platform.permission_requests == 0

    @pytest.mark.asyncio
    async def test_hung_platform_call_times_out(self):
        """A slow platform call leaves that alert unsent."""
        platform = FakeNotificationPlatform(delay=1.0)
        alert = make_alert(2)

        sent = await NotificationDispatcher(
            platform, timeout_seconds=0.01
        ).dispatch([alert], AlertPreferences(), [], NOON)

        assert sent == []
        assert alert.notification_sent is False


class TestCountSentToday:
    """Tests for count_sent_today()."""

    def test_counts_only_sent_entries_today(self):
        """Other actions and other days are ignored."""
        history = [
            sent_entry(NOON.replace(hour=1)),
            sent_entry(NOON - timedelta(days=1)),
            HistoryEntry(
                id="history-ack",
                alert_id="alert-old",
                action=HistoryAction.ACKNOWLEDGED,
                timestamp=NOON,
            ),
        ]

        assert count_sent_today(history, NOON) == 1


class TestEmailDigest:
    """Tests for dispatch_email()."""

    @pytest.mark.asyncio
    async def test_digest_sent_when_enabled(self):
        """The batch is mailed once and marked as emailed."""
        sender = AsyncMock(return_value=True)
        dispatcher = NotificationDispatcher(
            FakeNotificationPlatform(), email_sender=sender
        )
        alerts = [make_alert(2), make_alert(3)]

        emailed = await dispatcher.dispatch_email(
            alerts, AlertPreferences(email_notifications=True), NOON
        )

        sender.assert_awaited_once_with(alerts)
        assert emailed == alerts
        assert all(alert.email_sent for alert in alerts)

    @pytest.mark.asyncio
    async def test_digest_skipped_when_preference_off(self):
        """Email is opt-in."""
        sender = AsyncMock(return_value=True)
        dispatcher = NotificationDispatcher(
            FakeNotificationPlatform(), email_sender=sender
        )

        emailed = await dispatcher.dispatch_email(
            [make_alert(2)], AlertPreferences(), NOON
        )

        assert emailed == []
        sender.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_digest_leaves_alerts_unmarked(self):
        """A failed send does not mark anything."""
        sender = AsyncMock(return_value=False)
        dispatcher = NotificationDispatcher(
            FakeNotificationPlatform(), email_sender=sender
        )
        alert = make_alert(2)

        emailed = await dispatcher.dispatch_email(
            [alert], AlertPreferences(email_notifications=True), NOON
        )

        assert emailed == []
        assert alert.email_sent is False
