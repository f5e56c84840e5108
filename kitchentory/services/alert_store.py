"""Persistent storage for alerts and their history."""

import logging
import typing as t

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kitchentory.core.models import AlertHistoryRecord, AlertRecord
from kitchentory.schemas.alert import Alert, HistoryEntry
from kitchentory.utils.dates import to_utc

LOGGER: logging.Logger = logging.getLogger(__name__)


class AlertStore:
    """Durable store for Alert and HistoryEntry records.

    Every method opens its own session and commits before returning, so a
    successful call means the change is on disk. Database errors propagate
    to the caller.
    """

    session_maker: async_sessionmaker[AsyncSession]

    def __init__(
        self, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Initialize AlertStore.

        Args:
            session_maker (async_sessionmaker[AsyncSession]):
                Factory for database sessions.
        """
        self.session_maker = session_maker

    async def load_alerts(self) -> t.List[Alert]:
        """Load every stored alert.

        Returns:
            t.List[Alert]: All alerts, dismissed ones included.
        """
        async with self.session_maker() as session:
            records: t.Sequence[AlertRecord] = (
                (
                    await session.execute(
                        select(AlertRecord).order_by(
                            AlertRecord.created_at.asc()
                        )
                    )
                )
                .scalars()
                .all()
            )
            return [Alert.model_validate(record) for record in records]

    async def load_history(self) -> t.List[HistoryEntry]:
        """Load every stored history entry.

        Returns:
            t.List[HistoryEntry]: All history entries, oldest first.
        """
        async with self.session_maker() as session:
            records: t.Sequence[AlertHistoryRecord] = (
                (
                    await session.execute(
                        select(AlertHistoryRecord).order_by(
                            AlertHistoryRecord.timestamp.asc()
                        )
                    )
                )
                .scalars()
                .all()
            )
            return [HistoryEntry.model_validate(record) for record in records]

    async def save_alert(self, alert: Alert) -> None:
        """Insert or update an alert.

        Args:
            alert (Alert): The alert to persist.
        """
        async with self.session_maker() as session:
            values: t.Dict[str, t.Any] = alert.model_dump(exclude={"priority"})
            for key in ("created_at", "snoozed_until", "dismissed_at"):
                values[key] = to_utc(values[key])
            await session.merge(AlertRecord(**values))
            await session.commit()

    async def save_history(self, entry: HistoryEntry) -> None:
        """Append a history entry.

        Args:
            entry (HistoryEntry): The entry to persist.
        """
        async with self.session_maker() as session:
            values: t.Dict[str, t.Any] = entry.model_dump()
            values["timestamp"] = to_utc(values["timestamp"])
            await session.merge(AlertHistoryRecord(**values))
            await session.commit()

    async def delete_alerts(self, alert_ids: t.Collection[str]) -> int:
        """Delete alerts by id.

        Args:
            alert_ids (t.Collection[str]): Ids of the alerts to delete.

        Returns:
            int: Number of deleted rows.
        """
        if not alert_ids:
            return 0

        async with self.session_maker() as session:
            result = await session.execute(
                delete(AlertRecord).where(AlertRecord.id.in_(alert_ids))
            )
            await session.commit()
            LOGGER.debug("Deleted %d alerts", result.rowcount or 0)
            return result.rowcount or 0

    async def delete_history(self, entry_ids: t.Collection[str]) -> int:
        """Delete history entries by id.

        Args:
            entry_ids (t.Collection[str]): Ids of the entries to delete.

        Returns:
            int: Number of deleted rows.
        """
        if not entry_ids:
            return 0

        async with self.session_maker() as session:
            result = await session.execute(
                delete(AlertHistoryRecord).where(
                    AlertHistoryRecord.id.in_(entry_ids)
                )
            )
            await session.commit()
            LOGGER.debug("Deleted %d history entries", result.rowcount or 0)
            return result.rowcount or 0
