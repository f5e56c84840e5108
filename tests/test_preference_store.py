"""Tests for the preference store."""

import pytest

from kitchentory.core.globals import PREFERENCES_KEY
from kitchentory.core.models import SystemSettings
from kitchentory.schemas.preferences import AlertPreferences, QuietHours
from kitchentory.services import PreferenceStore


async def store_raw(session_maker, value: str) -> None:
    """Write a raw preferences blob."""
    async with session_maker() as session:
        session.add(SystemSettings(key=PREFERENCES_KEY, value=value))
        await session.commit()


@pytest.mark.asyncio
async def test_defaults_when_nothing_stored(session_maker):
    """An empty store yields the default preferences."""
    preferences = await PreferenceStore(session_maker).load()

    assert preferences == AlertPreferences()
    assert preferences.enabled is True
    assert preferences.push_notifications is True
    assert preferences.email_notifications is False
    assert (
        preferences.reminder_days,
        preferences.warning_days,
        preferences.critical_days,
    ) == (7, 3, 1)
    assert preferences.quiet_hours == QuietHours(
        enabled=False, start_time="22:00", end_time="08:00"
    )
    assert preferences.max_alerts_per_day == 10
    assert preferences.snooze_default_hours == 24


@pytest.mark.asyncio
async def test_save_and_load(session_maker):
    """Saved preferences are read back, and saving again overwrites."""
    store = PreferenceStore(session_maker)
    first = AlertPreferences(warning_days=5)
    second = AlertPreferences(
        max_alerts_per_day=3,
        quiet_hours=QuietHours(
            enabled=True, start_time="21:30", end_time="07:00"
        ),
    )

    await store.save(first)
    assert await store.load() == first

    await store.save(second)
    assert await store.load() == second


@pytest.mark.asyncio
async def test_corrupt_blob_falls_back_to_defaults(session_maker):
    """Unparseable stored data is ignored."""
    await store_raw(session_maker, "{not json")

    assert await PreferenceStore(session_maker).load() == AlertPreferences()


@pytest.mark.asyncio
async def test_partial_blob_fills_in_defaults(session_maker):
    """Fields missing from the stored data take their defaults."""
    await store_raw(session_maker, '{"warning_days": 5}')

    preferences = await PreferenceStore(session_maker).load()

    assert preferences.warning_days == 5
    assert preferences.reminder_days == 7
    assert preferences.quiet_hours.start_time == "22:00"


@pytest.mark.asyncio
async def test_keys_are_independent(session_maker):
    """Stores with different keys do not see each other's data."""
    await PreferenceStore(session_maker, key="other").save(
        AlertPreferences(enabled=False)
    )

    assert (await PreferenceStore(session_maker).load()).enabled is True
