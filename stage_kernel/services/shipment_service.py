"""
ShipmentService -- shipment records and their status lifecycle.

Responsibility:
    Creates ``Shipment`` headers and their immutable ``ShipmentItem`` rows,
    and moves a shipment's logistics status PLANNED -> SHIPPED.  Product
    counters are NOT touched here; the allocation orchestrator moves them
    through ``LedgerService`` in the same transaction.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Status transitions follow ``SHIPMENT_TRANSITIONS``; re-applying the
      current status is a no-op.
    - ``exit_date`` is set exactly when a shipment becomes SHIPPED.
    APPEND_ONLY_RECORDS -- items are only ever added.

Failure modes:
    - ShipmentNotFoundError: unknown shipment id.
    - InvalidShipmentTransitionError: e.g. SHIPPED -> PLANNED.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stage_kernel.domain.clock import Clock, SystemClock
from stage_kernel.domain.dtos import SHIPMENT_TRANSITIONS, ShipmentStatus
from stage_kernel.exceptions import (
    InvalidShipmentTransitionError,
    ShipmentNotFoundError,
)
from stage_kernel.logging_config import get_logger
from stage_kernel.models.shipment import Shipment, ShipmentItem
from stage_kernel.services.base import BaseService

logger = get_logger("services.shipment")


class ShipmentService(BaseService[Shipment]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def create_shipment(
        self,
        company: str,
        actor_id: UUID,
        status: ShipmentStatus = ShipmentStatus.PLANNED,
        driver_name: str | None = None,
        vehicle_plate: str | None = None,
        estimated_date: date | None = None,
        note: str | None = None,
    ) -> Shipment:
        """Create a shipment header; SHIPPED headers get ``exit_date`` now."""
        shipment = Shipment(
            company=company,
            driver_name=driver_name,
            vehicle_plate=vehicle_plate,
            estimated_date=estimated_date,
            exit_date=self._clock.now() if status is ShipmentStatus.SHIPPED else None,
            status=status.value,
            note=note,
            created_by_id=actor_id,
        )
        return self._persist(shipment)

    def add_item(self, shipment: Shipment, product_id: UUID, units: int) -> ShipmentItem:
        item = ShipmentItem(product_id=product_id, quantity=units)
        shipment.items.append(item)
        self.session.flush()
        return item

    def lock_shipment(self, shipment_id: UUID) -> Shipment:
        shipment = self.session.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if shipment is None:
            raise ShipmentNotFoundError(str(shipment_id))
        return shipment

    def transition(
        self,
        shipment: Shipment,
        target: ShipmentStatus,
        actor_id: UUID,
    ) -> bool:
        """
        Move ``shipment`` to ``target``.

        Returns:
            True if the status changed, False for a same-status no-op.

        Raises:
            InvalidShipmentTransitionError: if the lifecycle forbids it.
        """
        current = ShipmentStatus(shipment.status)
        if current is target:
            return False

        if target not in SHIPMENT_TRANSITIONS[current]:
            raise InvalidShipmentTransitionError(
                shipment_id=str(shipment.id),
                from_status=current.value,
                to_status=target.value,
            )

        shipment.status = target.value
        if target is ShipmentStatus.SHIPPED:
            shipment.exit_date = self._clock.now()
        shipment.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "shipment_status_changed",
            extra={
                "shipment_id": str(shipment.id),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return True
