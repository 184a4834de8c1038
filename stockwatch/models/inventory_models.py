"""
Inventory ledger models read by the alerting engine.

Components and their lots are written by inventory-movement logic elsewhere
in the platform (receptions, order consumption, adjustments). The alerting
engine only reads them, so these mappings carry just the columns it needs
plus the identifiers shown to operators.
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
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from stockwatch.db.base_class import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class LotState(str, enum.Enum):
    """Lifecycle of a received batch."""
    AVAILABLE = "AVAILABLE"
    DEPLETED = "DEPLETED"         # quantity_remaining reached zero


class Component(Base):
    """
    Catalogued inventory item (a filter, a seal, a gasket...).

    ``quantity_on_hand`` and ``minimum_quantity`` are authoritative values
    maintained by the stock ledger.
    """
    __tablename__ = "component"

    id: Mapped[int] = mapped_column(primary_key=True)
    internal_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity_on_hand: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    minimum_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    lots: Mapped[list[ComponentLot]] = relationship("ComponentLot", back_populates="component")

    def __repr__(self) -> str:
        return f"<Component(id={self.id}, name='{self.name}')>"


class ComponentLot(Base):
    """
    A received batch of a component with its own remaining quantity.

    Lots without an expiration date never raise expiration alerts.
    """
    __tablename__ = "component_lot"
    __table_args__ = (
        CheckConstraint("quantity_remaining >= 0", name="ck_component_lot_quantity_non_negative"),
        Index("ix_component_lot_expiration_scan", "state", "expiration_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    component_id: Mapped[int] = mapped_column(ForeignKey("component.id"), nullable=False, index=True)
    lot_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity_remaining: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    expiration_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    state: Mapped[LotState] = mapped_column(
        Enum(LotState, native_enum=False, length=20),
        default=LotState.AVAILABLE,
        server_default=LotState.AVAILABLE.value,
    )
    received_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    component: Mapped[Component] = relationship("Component", back_populates="lots")

    def __repr__(self) -> str:
        return f"<ComponentLot(id={self.id}, lot_code='{self.lot_code}')>"
