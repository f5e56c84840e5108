"""Shared fixtures for the alert engine tests."""

import asyncio
import typing as t
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kitchentory.core.database import (
    close_db,
    create_engine,
    create_session_maker,
    init_db,
)
from kitchentory.schemas.alert import InventorySnapshot
from kitchentory.services import (
    AlertStore,
    ExpirationAlertEngine,
    NotificationDispatcher,
    NotificationPermission,
    PreferenceStore,
)


class FakeClock:
    """Controllable clock returning timezone-aware datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeNotificationPlatform:
    """In-memory notification platform recording what it shows."""

    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.GRANTED,
        available: bool = True,
        grant_on_request: bool = True,
        delay: float = 0.0,
    ) -> None:
        self._permission = permission
        self.available = available
        self.grant_on_request = grant_on_request
        self.delay = delay
        self.permission_requests = 0
        self.shown: t.List[t.Dict[str, t.Any]] = []

    def is_available(self) -> bool:
        return self.available

    def permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        self.permission_requests += 1
        self._permission = (
            NotificationPermission.GRANTED
            if self.grant_on_request
            else NotificationPermission.DENIED
        )
        return self._permission

    async def show(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        require_interaction: bool,
        data: t.Dict[str, str],
    ) -> int:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.shown.append(
            {
                "title": title,
                "body": body,
                "tag": tag,
                "require_interaction": require_interaction,
                "data": data,
            }
        )
        return len(self.shown)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at noon UTC."""
    return FakeClock(datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def platform() -> FakeNotificationPlatform:
    """Notification platform with permission granted."""
    return FakeNotificationPlatform()


@pytest.fixture
def database_url(tmp_path) -> str:
    """SQLite database file unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}"


@pytest_asyncio.fixture
async def session_maker(
    database_url: str,
) -> t.AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over an initialized database."""
    engine = create_engine(database_url)
    await init_db(engine)
    yield create_session_maker(engine)
    await close_db(engine)


@pytest.fixture
def make_engine(
    session_maker: async_sessionmaker[AsyncSession],
    platform: FakeNotificationPlatform,
    clock: FakeClock,
) -> t.Callable[..., ExpirationAlertEngine]:
    """Factory building engines that share the same database."""

    def _make(
        store: AlertStore | None = None, **dispatcher_kwargs: t.Any
    ) -> ExpirationAlertEngine:
        return ExpirationAlertEngine(
            store=store or AlertStore(session_maker),
            preference_store=PreferenceStore(session_maker),
            dispatcher=NotificationDispatcher(
                platform, timeout_seconds=1, **dispatcher_kwargs
            ),
            local_timezone=timezone.utc,
            clock=clock,
        )

    return _make


@pytest_asyncio.fixture
async def engine(
    make_engine: t.Callable[..., ExpirationAlertEngine],
) -> ExpirationAlertEngine:
    """Loaded engine over an empty database."""
    alert_engine = make_engine()
    await alert_engine.load()
    return alert_engine


@pytest.fixture
def make_snapshot(
    clock: FakeClock,
) -> t.Callable[..., InventorySnapshot]:
    """Factory for snapshots expiring a number of days from the clock."""

    def _make(
        item_id: str, days: int, name: str | None = None
    ) -> InventorySnapshot:
        expiration: date = clock.now.date() + timedelta(days=days)
        return InventorySnapshot(
            item_id=item_id,
            name=name or f"Item {item_id}",
            category="dairy",
            expiration_date=expiration,
        )

    return _make
