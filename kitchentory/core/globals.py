"""Global variables."""

from kitchentory.core.models import AlertPriority, AlertSeverity

OPENAPI_TAGS = [
    {
        "name": "Alerts",
        "description": (
            "Expiration alerts, their lifecycle," " history and preferences"
        ),
    },
    {
        "name": "Health",
        "description": "Application health check endpoints",
    },
]

PREFERENCES_KEY: str = "alert-preferences"

NOTIFICATION_CLICK_URL: str = "/inventory"

SEVERITY_PRIORITY: dict[AlertSeverity, AlertPriority] = {
    AlertSeverity.EXPIRED: AlertPriority.HIGH,
    AlertSeverity.CRITICAL: AlertPriority.HIGH,
    AlertSeverity.WARNING: AlertPriority.MEDIUM,
    AlertSeverity.REMINDER: AlertPriority.LOW,
}

PRIORITY_RANK: dict[AlertPriority, int] = {
    AlertPriority.HIGH: 3,
    AlertPriority.MEDIUM: 2,
    AlertPriority.LOW: 1,
}
