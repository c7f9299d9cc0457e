"""
Module: stage_kernel.models.inventory
Responsibility: ORM persistence for where stored units physically sit
    (InventoryLocation) and the append-only intake trail (ProductionLog).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (product_id, shelf) is unique; intake upserts by incrementing.
    - Aggregate shelf quantity for a product never exceeds its stored counter
      (rows only grow together with stored, in the same transaction).
    APPEND_ONLY_RECORDS -- ProductionLog rows are never updated or deleted.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stage_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from stage_kernel.models.product import Product


class InventoryLocation(TrackedBase):
    """Units of one product on one shelf."""

    __tablename__ = "inventory_locations"

    __table_args__ = (
        UniqueConstraint("product_id", "shelf", name="uq_inventory_product_shelf"),
        CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    shelf: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[Product] = relationship(back_populates="inventory")

    def __repr__(self) -> str:
        return f"<InventoryLocation {self.shelf}: {self.quantity}>"


class ProductionLog(Base):
    """One completed move between stages (warehouse intake today)."""

    __tablename__ = "production_logs"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_production_log_quantity_positive"),
        Index("idx_production_log_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    from_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    to_stage: Mapped[str] = mapped_column(String(20), nullable=False)
    shelf: Mapped[str | None] = mapped_column(String(50), nullable=True)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    product: Mapped[Product] = relationship(back_populates="production_logs")
