"""Date utilities."""

from datetime import date, datetime, timezone


def calculate_days_until_expiration(
    expiration_date: date, now: datetime
) -> int:
    """Calculate the number of calendar days until the expiration date.

    Days are counted midnight to midnight, so an expiration tomorrow is
    one day away regardless of the current time of day.

    Args:
        expiration_date (date):
            The expiration date to calculate against.
        now (datetime):
            The current local time.

    Returns:
        int: The number of days until the expiration date, negative when
            the date has passed.
    """
    return (expiration_date - now.date()).days


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from the database.

    Args:
        value (datetime): The datetime to normalize.

    Returns:
        datetime: A timezone-aware datetime.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_quiet_hours(
    now: datetime, start_time: str, end_time: str
) -> bool:
    """Check whether a local time falls inside a quiet-hours window.

    Times are "HH:MM" strings compared lexically. Both bounds are
    inclusive and a window whose start is after its end wraps midnight.

    Args:
        now (datetime): The current local time.
        start_time (str): Window start, "HH:MM".
        end_time (str): Window end, "HH:MM".

    Returns:
        bool: True if notifications should be held back.
    """
    current: str = now.strftime("%H:%M")

    # Overnight window, e.g. 22:00 to 08:00
    if start_time > end_time:
        return current >= start_time or current <= end_time

    return start_time <= current <= end_time


def to_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to UTC before it is stored.

    Args:
        value (datetime | None): The datetime to convert.

    Returns:
        datetime | None: The UTC datetime, or None.
    """
    if value is None:
        return None
    return ensure_utc(value).astimezone(timezone.utc)
