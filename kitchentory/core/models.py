"""SQLAlchemy database models."""

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from kitchentory.core.database import Base


class AlertSeverity(str, enum.Enum):
    """Severity tier of an expiration alert."""

    REMINDER = "reminder"
    WARNING = "warning"
    CRITICAL = "critical"
    EXPIRED = "expired"


class AlertPriority(str, enum.Enum):
    """Priority derived from an alert severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HistoryAction(str, enum.Enum):
    """Action recorded in the alert history."""

    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


class AlertRecord(Base):  # pylint: disable=too-few-public-methods
    """Persisted expiration alert."""

    __tablename__ = "alerts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(100), nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="other"
    )
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    days_until_expiration: Mapped[int] = mapped_column(
        Integer, nullable=False
    )
    severity: Mapped[AlertSeverity] = mapped_column(
        Enum(AlertSeverity), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),  # pylint: disable=not-callable
    )
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    snoozed_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    dismissed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_alerts_item_id", "item_id"),
        Index("ix_alerts_severity", "severity"),
        Index("ix_alerts_created_at", "created_at"),
    )


class AlertHistoryRecord(Base):  # pylint: disable=too-few-public-methods
    """Append-only log of actions taken on alerts."""

    __tablename__ = "alert_history"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    alert_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[HistoryAction] = mapped_column(
        Enum(HistoryAction), nullable=False
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_alert_history_alert_id", "alert_id"),
        Index("ix_alert_history_timestamp", "timestamp"),
    )


class SystemSettings(Base):  # pylint: disable=too-few-public-methods
    """Key/value settings, used for serialized alert preferences."""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),  # pylint: disable=not-callable
        onupdate=func.now(),  # pylint: disable=not-callable
    )
