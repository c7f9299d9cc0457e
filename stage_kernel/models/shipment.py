"""
Module: stage_kernel.models.shipment
Responsibility: ORM persistence for shipments and their items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    APPEND_ONLY_RECORDS -- ShipmentItem rows are never updated or deleted
        (ORM listener in db/immutability.py).  A Shipment header only ever
        changes its status PLANNED -> SHIPPED and, with it, exit_date.

Audit relevance:
    Every shipment is the paper trail for a stored -> shipped move; the
    counters on the referenced products were moved in the same transaction
    that created the rows.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stage_kernel.db.base import Base, TrackedBase, UUIDString
from stage_kernel.domain.dtos import ShipmentStatus

if TYPE_CHECKING:
    from stage_kernel.models.product import Product


class Shipment(TrackedBase):
    """Shipment header: carrier details and logistics status."""

    __tablename__ = "shipments"

    __table_args__ = (
        Index("idx_shipment_status", "status"),
        Index("idx_shipment_created", "created_at"),
    )

    company: Mapped[str] = mapped_column(String(255), nullable=False)
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vehicle_plate: Mapped[str | None] = mapped_column(String(32), nullable=True)

    estimated_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    exit_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=ShipmentStatus.PLANNED.value,
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list[ShipmentItem]] = relationship(
        back_populates="shipment",
        order_by="ShipmentItem.created_at",
    )

    def __repr__(self) -> str:
        return f"<Shipment {self.id} {self.company}: {self.status}>"


class ShipmentItem(Base):
    """One product line on a shipment. Immutable once created."""

    __tablename__ = "shipment_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_shipment_item_quantity_positive"),
        Index("idx_shipment_item_product", "product_id"),
        Index("idx_shipment_item_shipment", "shipment_id"),
    )

    shipment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("shipments.id"),
        nullable=False,
    )
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    shipment: Mapped[Shipment] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(back_populates="shipment_items")
