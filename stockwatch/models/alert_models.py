"""
Stock and lot-expiration alert records.

An alert captures the facts that triggered it (message, trigger and threshold
values) because the ledgers may move on before anyone looks at it. Alerts are
never deleted; resolving one is the only mutation and it is terminal.
"""
from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from stockwatch.db.base_class import Base
from stockwatch.models.inventory_models import Component, ComponentLot


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class AlertType(str, enum.Enum):
    """Fixed alert taxonomy. New values need a migration for the CHECK constraint."""
    STOCK_MINIMUM = "STOCK_MINIMUM"
    STOCK_CRITICAL = "STOCK_CRITICAL"
    EXPIRATION_UPCOMING = "EXPIRATION_UPCOMING"
    EXPIRATION_CRITICAL = "EXPIRATION_CRITICAL"

    @property
    def severity(self) -> AlertSeverity:
        return SEVERITY_BY_TYPE[self]

    @property
    def is_stock(self) -> bool:
        return self in (AlertType.STOCK_MINIMUM, AlertType.STOCK_CRITICAL)

    @property
    def counter_key(self) -> str:
        """Key used in generation summaries, e.g. ``stock_minimum``."""
        return self.value.lower()


class AlertSeverity(str, enum.Enum):
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertStatus(str, enum.Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


SEVERITY_BY_TYPE: dict[AlertType, AlertSeverity] = {
    AlertType.STOCK_MINIMUM: AlertSeverity.WARNING,
    AlertType.STOCK_CRITICAL: AlertSeverity.CRITICAL,
    AlertType.EXPIRATION_UPCOMING: AlertSeverity.WARNING,
    AlertType.EXPIRATION_CRITICAL: AlertSeverity.CRITICAL,
}

_OPEN_ONLY = text("status = 'OPEN'")


class StockAlert(Base):
    """
    One alert about a component (stock family) or a lot (expiration family).

    The two partial unique indexes hold at most one OPEN alert per subject
    and type; concurrent sweeps that lose the insert race get an
    IntegrityError which the store treats as "already open".
    """
    __tablename__ = "stock_alert"
    __table_args__ = (
        CheckConstraint(
            "(component_id IS NOT NULL AND lot_id IS NULL) OR (component_id IS NULL AND lot_id IS NOT NULL)",
            name="ck_stock_alert_single_subject",
        ),
        Index(
            "uq_stock_alert_open_component",
            "component_id",
            "alert_type",
            unique=True,
            postgresql_where=_OPEN_ONLY,
            sqlite_where=_OPEN_ONLY,
        ),
        Index(
            "uq_stock_alert_open_lot",
            "lot_id",
            "alert_type",
            unique=True,
            postgresql_where=_OPEN_ONLY,
            sqlite_where=_OPEN_ONLY,
        ),
        Index("ix_stock_alert_status_severity_generated", "status", "severity", "generated_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    alert_type: Mapped[AlertType] = mapped_column(
        Enum(AlertType, native_enum=False, length=30, name="stock_alert_type", create_constraint=True),
        nullable=False,
        index=True,
    )
    severity: Mapped[AlertSeverity] = mapped_column(
        Enum(AlertSeverity, native_enum=False, length=20, name="stock_alert_severity", create_constraint=True),
        nullable=False,
    )
    component_id: Mapped[int | None] = mapped_column(ForeignKey("component.id"), nullable=True, index=True)
    lot_id: Mapped[int | None] = mapped_column(ForeignKey("component_lot.id"), nullable=True, index=True)
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    trigger_value: Mapped[int | None] = mapped_column(Integer, nullable=True)  # quantity or days remaining
    threshold_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[AlertStatus] = mapped_column(
        Enum(AlertStatus, native_enum=False, length=20, name="stock_alert_status", create_constraint=True),
        default=AlertStatus.OPEN,
        server_default=AlertStatus.OPEN.value,
        nullable=False,
    )
    generated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    resolved_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    component: Mapped[Component | None] = relationship(Component, lazy="joined")
    lot: Mapped[ComponentLot | None] = relationship(ComponentLot, lazy="joined")

    def __repr__(self) -> str:
        return f"<StockAlert(id={self.id}, type={self.alert_type.value}, status={self.status.value})>"

    @property
    def is_open(self) -> bool:
        return self.status == AlertStatus.OPEN
