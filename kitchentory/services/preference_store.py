"""Durable storage for alert preferences."""

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kitchentory.core.globals import PREFERENCES_KEY
from kitchentory.core.models import SystemSettings
from kitchentory.schemas.preferences import AlertPreferences

LOGGER: logging.Logger = logging.getLogger(__name__)


class PreferenceStore:
    """Keeps the serialized preferences under a single settings key."""

    session_maker: async_sessionmaker[AsyncSession]
    key: str

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        key: str = PREFERENCES_KEY,
    ) -> None:
        """Initialize PreferenceStore.

        Args:
            session_maker (async_sessionmaker[AsyncSession]):
                Factory for database sessions.
            key (str): Settings key holding the preferences blob.
        """
        self.session_maker = session_maker
        self.key = key

    async def load(self) -> AlertPreferences:
        """Load the stored preferences.

        Returns:
            AlertPreferences:
                The stored preferences, with defaults for absent fields.
                Defaults entirely when nothing is stored or the blob is
                unreadable.
        """
        async with self.session_maker() as session:
            setting: SystemSettings | None = (
                await session.execute(
                    select(SystemSettings).where(
                        SystemSettings.key == self.key
                    )
                )
            ).scalar_one_or_none()

        if setting is None:
            return AlertPreferences()

        try:
            return AlertPreferences.model_validate_json(setting.value)
        except ValidationError:
            LOGGER.warning(
                "Stored preferences under '%s' are invalid, using defaults",
                self.key,
            )
            return AlertPreferences()

    async def save(self, preferences: AlertPreferences) -> None:
        """Persist the preferences, replacing any stored value.

        Args:
            preferences (AlertPreferences): The preferences to store.
        """
        async with self.session_maker() as session:
            setting: SystemSettings | None = (
                await session.execute(
                    select(SystemSettings).where(
                        SystemSettings.key == self.key
                    )
                )
            ).scalar_one_or_none()

            if setting is None:
                session.add(
                    SystemSettings(
                        key=self.key,
                        value=preferences.model_dump_json(),
                    )
                )
            else:
                setting.value = preferences.model_dump_json()

            await session.commit()
