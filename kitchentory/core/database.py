"""Database configuration and session management."""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from kitchentory.core.config import SETTINGS

LOGGER: logging.Logger = logging.getLogger(__name__)


class Base(DeclarativeBase):  # pylint: disable=too-few-public-methods
    """Base class for all database models."""


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for the given database URL.

    Args:
        database_url (str): SQLAlchemy database URL.

    Returns:
        AsyncEngine: The created engine.
    """
    return create_async_engine(
        database_url,
        echo=SETTINGS.debug,
        future=True,
    )


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine.

    Args:
        engine (AsyncEngine): The engine to bind.

    Returns:
        async_sessionmaker[AsyncSession]: The session factory.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Default engine used by the application
ENGINE: AsyncEngine = create_engine(SETTINGS.database_url)


async def init_db(engine: AsyncEngine = ENGINE) -> None:
    """Initialize database tables.

    Args:
        engine (AsyncEngine): The engine to create tables on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine = ENGINE) -> None:
    """Close database connection.

    Args:
        engine (AsyncEngine): The engine to dispose.
    """
    await engine.dispose()
