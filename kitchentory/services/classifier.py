"""Severity classification of items by days until expiration."""

from kitchentory.core.globals import SEVERITY_PRIORITY
from kitchentory.core.models import AlertPriority, AlertSeverity
from kitchentory.schemas.preferences import AlertPreferences


def classify(
    days_until_expiration: int, preferences: AlertPreferences
) -> AlertSeverity | None:
    """Map days until expiration to an alert severity.

    Thresholds are read from the preferences and assumed to be ascending
    (critical <= warning <= reminder). Out-of-order thresholds are not
    corrected; the first matching tier wins.

    Args:
        days_until_expiration (int):
            Calendar days until expiration, negative once expired.
        preferences (AlertPreferences):
            Preferences holding the day thresholds.

    Returns:
        AlertSeverity | None:
            The severity, or None when the item needs no alert yet.
    """
    match days_until_expiration:
        case d if d < 0:
            return AlertSeverity.EXPIRED
        case d if d <= preferences.critical_days:
            return AlertSeverity.CRITICAL
        case d if d <= preferences.warning_days:
            return AlertSeverity.WARNING
        case d if d <= preferences.reminder_days:
            return AlertSeverity.REMINDER
        case _:
            return None


def priority_for(severity: AlertSeverity) -> AlertPriority:
    """Return the fixed priority of a severity."""
    return SEVERITY_PRIORITY[severity]
