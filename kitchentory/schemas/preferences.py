"""Schemas for user-tunable alert preferences."""

import typing as t

from pydantic import BaseModel, Field


class QuietHours(BaseModel):
    """Daily window during which no notifications are sent."""

    enabled: bool = False
    start_time: str = "22:00"
    end_time: str = "08:00"


class AlertPreferences(BaseModel):
    """Alert preferences schema.

    Thresholds are expected to satisfy
    critical_days < warning_days < reminder_days; this is not enforced.
    """

    enabled: bool = True
    push_notifications: bool = True
    email_notifications: bool = False
    reminder_days: int = 7
    warning_days: int = 3
    critical_days: int = 1
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    max_alerts_per_day: int = 10
    snooze_default_hours: float = 24

    def merged_with(
        self, update: "AlertPreferencesUpdate"
    ) -> "AlertPreferences":
        """Return a copy with the fields set on an update applied.

        Args:
            update (AlertPreferencesUpdate): The partial update.

        Returns:
            AlertPreferences: The merged preferences.
        """
        merged: t.Dict[str, t.Any] = self.model_dump()
        changes: t.Dict[str, t.Any] = update.model_dump(exclude_unset=True)
        quiet_hours: t.Dict[str, t.Any] | None = changes.pop(
            "quiet_hours", None
        )
        merged.update(
            {key: value for key, value in changes.items() if value is not None}
        )
        if quiet_hours:
            merged["quiet_hours"].update(
                {k: v for k, v in quiet_hours.items() if v is not None}
            )
        return AlertPreferences.model_validate(merged)


class QuietHoursUpdate(BaseModel):
    """Partial update of quiet hours."""

    enabled: bool | None = None
    start_time: str | None = None
    end_time: str | None = None


class AlertPreferencesUpdate(BaseModel):
    """Partial update of alert preferences."""

    enabled: bool | None = None
    push_notifications: bool | None = None
    email_notifications: bool | None = None
    reminder_days: int | None = None
    warning_days: int | None = None
    critical_days: int | None = None
    quiet_hours: QuietHoursUpdate | None = None
    max_alerts_per_day: int | None = None
    snooze_default_hours: float | None = None
