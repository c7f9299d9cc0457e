"""
LedgerService -- locked reads and writes of product stage counters.

Responsibility:
    The only kernel component that writes the six stage counters.  Reads
    product rows under ``SELECT ... FOR UPDATE``, validates proposed
    counters against ``StageLedger``, writes them, and writes back the
    derived status in the same flush.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the three
    orchestrators in ``stage_services``.

Invariants enforced:
    LOCKED_READ_MODIFY_WRITE -- ``lock_product`` / ``lock_products`` take
        the row lock and refresh the identity map (populate_existing), so
        the counters fed to a cascade or transfer are the lock-held values,
        never a stale copy from an earlier read in the same session.
        Batches are locked in sorted id order so two batches touching the
        same products cannot deadlock.
    QUANTITY_CONSERVATION -- ``write_stages`` refuses any StageSet the
        ledger rejects.
    DERIVED_STATUS -- every counter write recomputes status/sub_status.

Failure modes:
    - ProductNotFoundError: unknown product id.
    - ConservationViolationError: proposed counters exceed quantity.
    - InsufficientStageQuantityError: a move asks for more units than the
      source stage holds.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stage_kernel.domain.ledger import StageLedger
from stage_kernel.domain.stages import StageKey, StageSet
from stage_kernel.domain.status import ProductionStatus, StatusDerivation, derive_status
from stage_kernel.exceptions import (
    InsufficientStageQuantityError,
    InvalidQuantityError,
    ProductNotFoundError,
)
from stage_kernel.logging_config import get_logger
from stage_kernel.models.product import Product
from stage_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class LedgerService(BaseService[Product]):
    """
    Guarantees:
        - Never commits; the caller's transaction holds the row lock until
          it commits or rolls back.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    # ------------------------------------------------------------------
    # Locked reads
    # ------------------------------------------------------------------

    def lock_product(self, product_id: UUID) -> Product:
        """Load one product under a row lock."""
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def lock_products(self, product_ids: Iterable[UUID]) -> dict[UUID, Product]:
        """Load several products under row locks, in sorted id order."""
        wanted = sorted(set(product_ids), key=str)
        locked: dict[UUID, Product] = {}
        for product_id in wanted:
            locked[product_id] = self.lock_product(product_id)
        return locked

    @staticmethod
    def ledger_for(product: Product) -> StageLedger:
        return StageLedger(quantity=product.quantity, product_id=str(product.id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_stages(
        self,
        product: Product,
        stages: StageSet,
        actor_id: UUID,
        status: StatusDerivation | None = None,
    ) -> StatusDerivation:
        """
        Persist new counters and the status derived from them.

        Preconditions:
            - ``product`` was obtained from ``lock_product`` in this
              transaction.
        Postconditions:
            - counters equal ``stages``; status/sub_status equal ``status``
              when given, otherwise ``derive_status(stages, quantity)``.

        Raises:
            ConservationViolationError: if the ledger rejects ``stages``.
        """
        self.ledger_for(product).ensure_valid(stages)

        derived = status or derive_status(stages, product.quantity)
        previous = ProductionStatus(product.status)

        for stage, value in stages.items():
            setattr(product, stage.value, value)

        product.status = derived.status.value
        product.sub_status = derived.sub_status
        product.updated_by_id = actor_id
        self.session.flush()

        if previous is not derived.status:
            logger.info(
                "product_status_changed",
                extra={
                    "product_id": str(product.id),
                    "from_status": previous.value,
                    "to_status": derived.status.value,
                    "sub_status": derived.sub_status,
                },
            )
        return derived

    def move(
        self,
        product: Product,
        source: StageKey,
        target: StageKey,
        units: int,
        actor_id: UUID,
        status: StatusDerivation | None = None,
    ) -> StageSet:
        """
        Move ``units`` from ``source`` to ``target``; the total is unchanged.

        Raises:
            InvalidQuantityError: if ``units`` is not a positive int.
            InsufficientStageQuantityError: if ``source`` holds fewer units.
        """
        if isinstance(units, bool) or not isinstance(units, int) or units <= 0:
            raise InvalidQuantityError(units)

        current = StageSet.from_model(product)
        if not self.ledger_for(product).can_move(current, source, units):
            raise InsufficientStageQuantityError(
                product_id=str(product.id),
                stage=source.value,
                requested=units,
                available=current.get(source),
            )

        moved = current.replace(source, current.get(source) - units)
        moved = moved.replace(target, moved.get(target) + units)
        self.write_stages(product, moved, actor_id, status=status)

        logger.info(
            "stage_units_moved",
            extra={
                "product_id": str(product.id),
                "from_stage": source.value,
                "to_stage": target.value,
                "units": units,
            },
        )
        return moved
