"""
InventoryService -- shelf locations and the intake trail.

Responsibility:
    Records where stored units physically sit (``InventoryLocation``,
    additive upsert keyed by (product, shelf)) and appends the immutable
    ``ProductionLog`` row for each completed warehouse intake.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the warehouse
    transfer orchestrator inside the transaction that moved the counters.

Invariants enforced:
    - Shelf rows only grow, and only together with ``stored``; their
      aggregate never exceeds the stored counter.
    - The upsert runs while the caller holds the product row lock, so two
      intakes onto the same shelf serialize on the product and cannot both
      insert.
    APPEND_ONLY_RECORDS -- production log rows are only ever added.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stage_kernel.domain.clock import Clock, SystemClock
from stage_kernel.domain.stages import StageKey
from stage_kernel.logging_config import get_logger
from stage_kernel.models.inventory import InventoryLocation, ProductionLog
from stage_kernel.services.base import BaseService

logger = get_logger("services.inventory")


def normalize_shelf(shelf: str | None) -> str | None:
    """Trim and upper-case a shelf code; blank means no shelf."""
    if shelf is None:
        return None
    code = shelf.strip().upper()
    return code or None


class InventoryService(BaseService[InventoryLocation]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def add_to_shelf(
        self,
        product_id: UUID,
        shelf: str,
        units: int,
        actor_id: UUID,
    ) -> InventoryLocation:
        """Increment the (product, shelf) row, creating it if absent."""
        row = self.session.execute(
            select(InventoryLocation)
            .where(
                InventoryLocation.product_id == product_id,
                InventoryLocation.shelf == shelf,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if row is None:
            row = InventoryLocation(
                product_id=product_id,
                shelf=shelf,
                quantity=units,
                created_by_id=actor_id,
            )
            self.session.add(row)
        else:
            row.quantity += units
            row.updated_by_id = actor_id

        self.session.flush()
        logger.debug(
            "inventory_shelf_updated",
            extra={"product_id": str(product_id), "shelf": shelf, "units": units},
        )
        return row

    def record_intake(
        self,
        product_id: UUID,
        units: int,
        actor_id: UUID,
        shelf: str | None = None,
    ) -> ProductionLog:
        """
        Record one packaged -> stored intake.

        Upserts the shelf row when ``shelf`` is non-blank after
        normalization, then appends the production log entry.
        """
        code = normalize_shelf(shelf)
        if code is not None:
            self.add_to_shelf(product_id, code, units, actor_id)

        return self._persist(
            ProductionLog(
                product_id=product_id,
                quantity=units,
                from_stage=StageKey.PACKAGED.value,
                to_stage=StageKey.STORED.value,
                shelf=code,
                actor_id=actor_id,
                occurred_at=self._clock.now(),
            )
        )
