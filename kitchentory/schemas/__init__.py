"""Schemas package."""

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
    QuietHours,
    QuietHoursUpdate,
)

__all__ = [
    "Alert",
    "AlertPreferences",
    "AlertPreferencesUpdate",
    "AlertStats",
    "CleanupResult",
    "HistoryEntry",
    "InventorySnapshot",
    "QuietHours",
    "QuietHoursUpdate",
    "SnoozeRequest",
]
