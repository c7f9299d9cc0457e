"""
Module: stage_kernel.models.product
Responsibility: ORM persistence for a manufactured order line and its six
    stage counters.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain enums only.

Invariants enforced:
    QUANTITY_CONSERVATION -- ck_product_conservation: the six counters never
        sum above quantity.  This is the database backstop; StageLedger is the
        primary check and runs before every write.
    NON_NEGATIVE_COUNTERS -- one CHECK per counter.
    LOCKED_READ_MODIFY_WRITE -- ``version`` is SQLAlchemy's version_id_col, so
        an UPDATE issued from a stale read fails with StaleDataError even where
        the backend ignores FOR UPDATE.

Failure modes:
    - IntegrityError if a flush would break a CHECK constraint.
    - StaleDataError if the row changed since it was loaded.

Audit relevance:
    status and sub_status are derived and written back on every stage
    mutation so list queries can filter on them; they are never the source
    of truth.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stage_kernel.db.base import TrackedBase, counter_column
from stage_kernel.domain.status import ProductionStatus

if TYPE_CHECKING:
    from stage_kernel.models.inventory import InventoryLocation, ProductionLog
    from stage_kernel.models.shipment import ShipmentItem


class Product(TrackedBase):
    """
    A product / order line tracked through the production stages.

    Guarantees:
        - quantity is fixed at creation and never decreased by the engine.
        - Counters start at 0 and status at PENDING.
        - stored changes only through warehouse intake, shipped only through
          shipment dispatch.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_product_quantity_positive"),
        CheckConstraint("foam >= 0", name="ck_product_foam_non_negative"),
        CheckConstraint("upholstery >= 0", name="ck_product_upholstery_non_negative"),
        CheckConstraint("assembly >= 0", name="ck_product_assembly_non_negative"),
        CheckConstraint("packaged >= 0", name="ck_product_packaged_non_negative"),
        CheckConstraint("stored >= 0", name="ck_product_stored_non_negative"),
        CheckConstraint("shipped >= 0", name="ck_product_shipped_non_negative"),
        CheckConstraint(
            "foam + upholstery + assembly + packaged + stored + shipped <= quantity",
            name="ck_product_conservation",
        ),
        Index("idx_product_status", "status"),
        Index("idx_product_stored", "stored"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Identity supplied by the legacy order importer
    system_code: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    order_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Stage counters, pipeline order
    foam: Mapped[int] = counter_column()
    upholstery: Mapped[int] = counter_column()
    assembly: Mapped[int] = counter_column()
    packaged: Mapped[int] = counter_column()
    stored: Mapped[int] = counter_column()
    shipped: Mapped[int] = counter_column()

    status: Mapped[str] = mapped_column(
        String(20),
        default=ProductionStatus.PENDING.value,
        nullable=False,
    )
    sub_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    engineer_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    inventory: Mapped[list[InventoryLocation]] = relationship(
        back_populates="product",
        order_by="InventoryLocation.shelf",
    )
    production_logs: Mapped[list[ProductionLog]] = relationship(
        back_populates="product",
        order_by="ProductionLog.occurred_at",
    )
    shipment_items: Mapped[list[ShipmentItem]] = relationship(
        back_populates="product",
    )

    def __repr__(self) -> str:
        return (
            f"<Product {self.system_code or self.id}: "
            f"{self.foam}/{self.upholstery}/{self.assembly}/"
            f"{self.packaged}/{self.stored}/{self.shipped} of {self.quantity}>"
        )
