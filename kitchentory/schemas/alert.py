"""Pydantic schemas for expiration alerts."""

import typing as t
from datetime import date, datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from kitchentory.core.globals import SEVERITY_PRIORITY
from kitchentory.core.models import AlertPriority, AlertSeverity, HistoryAction
from kitchentory.utils.dates import ensure_utc


class InventorySnapshot(BaseModel):
    """Schema for an inventory item as supplied by the inventory owner."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    item_id: str = Field(..., min_length=1)
    name: str
    category: str = "other"
    expiration_date: date | None = None

    @field_validator("expiration_date", mode="before")
    @classmethod
    def truncate_to_date(cls, v: t.Any) -> t.Any:
        """Drop the time component of an expiration timestamp.

        Args:
            v (Any): The raw expiration value.

        Returns:
            Any: A date, or the value untouched for pydantic to validate.
        """
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return datetime.fromisoformat(v).date()
        return v


class Alert(BaseModel):
    """Schema for an expiration alert."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    item_id: str
    item_name: str
    category: str
    expiration_date: date
    days_until_expiration: int
    severity: AlertSeverity
    created_at: datetime
    acknowledged: bool = False
    notification_sent: bool = False
    email_sent: bool = False
    snoozed_until: datetime | None = None
    dismissed_at: datetime | None = None

    @field_validator("created_at", "snoozed_until", "dismissed_at")
    @classmethod
    def attach_timezone(cls, v: datetime | None) -> datetime | None:
        """Make timestamps read back from SQLite timezone-aware."""
        return ensure_utc(v) if v is not None else None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def priority(self) -> AlertPriority:
        """Priority derived from the severity."""
        return SEVERITY_PRIORITY[self.severity]

    def is_snoozed(self, now: datetime) -> bool:
        """Check whether the alert is snoozed past the given time.

        Args:
            now (datetime): The current time.

        Returns:
            bool: True while the snooze has not lapsed.
        """
        return self.snoozed_until is not None and self.snoozed_until > now

    def is_active(self, now: datetime) -> bool:
        """Check whether the alert is neither dismissed nor snoozed.

        Args:
            now (datetime): The current time.

        Returns:
            bool: True if the alert should be shown.
        """
        return self.dismissed_at is None and not self.is_snoozed(now)


class HistoryEntry(BaseModel):
    """Schema for an alert history entry."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    alert_id: str
    action: HistoryAction
    timestamp: datetime
    details: str | None = None

    @field_validator("timestamp")
    @classmethod
    def attach_timezone(cls, v: datetime) -> datetime:
        """Make timestamps read back from SQLite timezone-aware."""
        return ensure_utc(v)


class AlertStats(BaseModel):
    """Schema for alert statistics."""

    total_alerts: int
    acknowledged_alerts: int
    snoozed_alerts: int
    dismissed_alerts: int
    expired_items_count: int
    critical_items_count: int
    warning_items_count: int
    reminder_items_count: int


class SnoozeRequest(BaseModel):
    """Schema for snoozing an alert."""

    hours: float | None = Field(
        None, gt=0, description="Snooze duration, defaults to preferences"
    )


class CleanupResult(BaseModel):
    """Schema for the outcome of a retention sweep."""

    removed_alerts: int
    removed_history: int
