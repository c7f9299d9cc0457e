"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that leave the kernel: product snapshots,
    shipments with their items, shelf inventory rows, production log rows,
    and the actor context supplied by the identity collaborator.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods exist as boundary converters but are only
    invoked from the service and selector layers (never from domain logic).

Invariants enforced:
    - Services and selectors return these DTOs, never ORM entities, so a
      caller can never mutate a row outside the locked transaction that
      owns it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from stage_kernel.domain.stages import StageSet
from stage_kernel.domain.status import ProductionStatus

if TYPE_CHECKING:
    from stage_kernel.models.inventory import (
        InventoryLocation as InventoryLocationModel,
    )
    from stage_kernel.models.inventory import ProductionLog as ProductionLogModel
    from stage_kernel.models.product import Product as ProductModel
    from stage_kernel.models.shipment import Shipment as ShipmentModel
    from stage_kernel.models.shipment import ShipmentItem as ShipmentItemModel


class ShipmentStatus(str, Enum):
    """
    Logistics status of a shipment.

    Contract:
        Lifecycle: PLANNED -> SHIPPED.  Product counters move when the
        shipment is created, never on this transition.
    """

    PLANNED = "PLANNED"
    SHIPPED = "SHIPPED"


SHIPMENT_TRANSITIONS: dict[ShipmentStatus, frozenset[ShipmentStatus]] = {
    ShipmentStatus.PLANNED: frozenset({ShipmentStatus.SHIPPED}),
    ShipmentStatus.SHIPPED: frozenset(),
}


@dataclass(frozen=True)
class ActorContext:
    """Resolved identity of the caller: who, and under which role."""

    actor_id: UUID
    role: str


@dataclass(frozen=True)
class ProductInfo:
    """Snapshot of one product line and its stage counters."""

    id: UUID
    name: str
    quantity: int
    stages: StageSet
    status: ProductionStatus
    sub_status: str | None
    engineer_note: str | None
    system_code: str | None = None
    barcode: str | None = None
    order_ref: str | None = None
    company: str | None = None
    version: int = 1

    @property
    def unallocated(self) -> int:
        return self.quantity - self.stages.total

    @property
    def available(self) -> int:
        """Units that can ship right now."""
        return self.stages.stored

    @classmethod
    def from_model(cls, product: ProductModel) -> ProductInfo:
        return cls(
            id=product.id,
            name=product.name,
            quantity=product.quantity,
            stages=StageSet.from_model(product),
            status=ProductionStatus(product.status),
            sub_status=product.sub_status,
            engineer_note=product.engineer_note,
            system_code=product.system_code,
            barcode=product.barcode,
            order_ref=product.order_ref,
            company=product.company,
            version=product.version,
        )


@dataclass(frozen=True)
class ShipmentItemInfo:
    product_id: UUID
    quantity: int
    shipment_id: UUID | None = None

    @classmethod
    def from_model(cls, item: ShipmentItemModel) -> ShipmentItemInfo:
        return cls(
            product_id=item.product_id,
            quantity=item.quantity,
            shipment_id=item.shipment_id,
        )


@dataclass(frozen=True)
class ShipmentInfo:
    """Shipment header plus its immutable items."""

    id: UUID
    company: str
    status: ShipmentStatus
    items: tuple[ShipmentItemInfo, ...]
    driver_name: str | None = None
    vehicle_plate: str | None = None
    estimated_date: date | None = None
    exit_date: datetime | None = None
    created_at: datetime | None = None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @classmethod
    def from_model(cls, shipment: ShipmentModel) -> ShipmentInfo:
        return cls(
            id=shipment.id,
            company=shipment.company,
            status=ShipmentStatus(shipment.status),
            items=tuple(ShipmentItemInfo.from_model(i) for i in shipment.items),
            driver_name=shipment.driver_name,
            vehicle_plate=shipment.vehicle_plate,
            estimated_date=shipment.estimated_date,
            exit_date=shipment.exit_date,
            created_at=shipment.created_at,
        )


@dataclass(frozen=True)
class InventoryLocationInfo:
    product_id: UUID
    shelf: str
    quantity: int

    @classmethod
    def from_model(cls, row: InventoryLocationModel) -> InventoryLocationInfo:
        return cls(product_id=row.product_id, shelf=row.shelf, quantity=row.quantity)


@dataclass(frozen=True)
class ProductionLogInfo:
    product_id: UUID
    quantity: int
    from_stage: str
    to_stage: str
    shelf: str | None
    actor_id: UUID
    occurred_at: datetime

    @classmethod
    def from_model(cls, row: ProductionLogModel) -> ProductionLogInfo:
        return cls(
            product_id=row.product_id,
            quantity=row.quantity,
            from_stage=row.from_stage,
            to_stage=row.to_stage,
            shelf=row.shelf,
            actor_id=row.actor_id,
            occurred_at=row.occurred_at,
        )
