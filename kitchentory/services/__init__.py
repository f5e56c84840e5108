"""Services package."""

from kitchentory.services.alert_engine import ExpirationAlertEngine
from kitchentory.services.alert_store import AlertStore
from kitchentory.services.classifier import classify, priority_for
from kitchentory.services.email_notifications import build_email_sender
from kitchentory.services.expiration_checker import (
    InventoryProvider,
    check_expiring_items_task,
    cleanup_alerts_task,
    schedule_alert_jobs,
)
from kitchentory.services.notifications import (
    NotificationDispatcher,
    NotificationPermission,
    NotificationPlatform,
    UnavailableNotificationPlatform,
)
from kitchentory.services.preference_store import PreferenceStore

__all__ = [
    "AlertStore",
    "ExpirationAlertEngine",
    "InventoryProvider",
    "NotificationDispatcher",
    "NotificationPermission",
    "NotificationPlatform",
    "PreferenceStore",
    "UnavailableNotificationPlatform",
    "build_email_sender",
    "check_expiring_items_task",
    "classify",
    "cleanup_alerts_task",
    "priority_for",
    "schedule_alert_jobs",
]
