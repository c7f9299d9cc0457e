"""
WarehouseTransferService -- packaged -> stored intake.

Responsibility:
    Moves units from ``packaged`` to ``stored`` in one transaction, records
    the shelf they were put on, appends the production log entry, and marks
    the line COMPLETED.

Architecture position:
    Services layer -- transaction-owning orchestrator.

Invariants enforced:
    LOCKED_READ_MODIFY_WRITE -- availability is checked against the
        lock-held ``packaged`` value.
    QUANTITY_CONSERVATION -- a move never changes the total.
    - Intake forces status COMPLETED; sub_status is "Depoda" once every
      unit is stored, "Kısmi Depoda" otherwise.

Failure modes:
    Returned, never raised: VALIDATION_FAILED (quantity not a positive
    int), NOT_FOUND, UNAUTHORIZED, INSUFFICIENT_QUANTITY.  Every failure
    leaves packaged, stored and the shelf rows unchanged.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from stage_config import CompiledStageConfig
from stage_kernel.domain.clock import Clock
from stage_kernel.domain.dtos import ActorContext, ProductInfo
from stage_kernel.domain.stages import StageKey
from stage_kernel.domain.status import (
    SUB_STATUS_PARTIAL_STORED,
    SUB_STATUS_STORED,
    ProductionStatus,
    StatusDerivation,
)
from stage_kernel.models.audit_log import AuditAction
from stage_kernel.services.auditor_service import AuditSink
from stage_kernel.services.inventory_service import InventoryService, normalize_shelf
from stage_kernel.services.ledger_service import LedgerService
from stage_services._inputs import coerce_positive_int, coerce_uuid
from stage_services._operation_types import OperationResult, OperationStatus
from stage_services._orchestrator import OrchestratorBase
from stage_services.rbac_authority import require_stage_permission


def intake_status(stored_after: int, quantity: int) -> StatusDerivation:
    """Status written by a warehouse intake."""
    label = SUB_STATUS_STORED if stored_after >= quantity else SUB_STATUS_PARTIAL_STORED
    return StatusDerivation(ProductionStatus.COMPLETED, label)


class WarehouseTransferService(OrchestratorBase):
    """Orchestrates packaged -> stored intake for one product."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        config: CompiledStageConfig | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock, audit_sink, config, auto_commit)
        self._ledger = LedgerService(session)
        self._inventory = InventoryService(session, self._clock)

    def transfer_to_warehouse(
        self,
        product_id: Any,
        quantity: Any,
        actor: ActorContext,
        shelf: str | None = None,
    ) -> OperationResult:
        """Move ``quantity`` units of one product from packaged to stored."""
        return self._execute(
            "warehouse_transfer",
            actor,
            lambda: self._do_transfer(product_id, quantity, actor, shelf),
            rejected_action=AuditAction.TRANSFER_TO_WAREHOUSE_REJECTED,
            entity_type="Product",
            entity_id=product_id,
            product_id=product_id,
            extra={"quantity": quantity, "shelf": shelf},
        )

    def _do_transfer(
        self,
        product_id: Any,
        quantity: Any,
        actor: ActorContext,
        shelf: str | None,
    ) -> OperationResult:
        pid = coerce_uuid(product_id, "product_id")
        units = coerce_positive_int(quantity)
        require_stage_permission(self._config, actor.role, [StageKey.STORED])

        product = self._ledger.lock_product(pid)
        self._ledger.move(
            product,
            StageKey.PACKAGED,
            StageKey.STORED,
            units,
            actor.actor_id,
            status=intake_status(product.stored + units, product.quantity),
        )
        self._inventory.record_intake(pid, units, actor.actor_id, shelf)

        code = normalize_shelf(shelf)
        self._record(
            AuditAction.TRANSFER_TO_WAREHOUSE,
            "Product",
            pid,
            f"{units} units moved to warehouse" + (f" (shelf {code})" if code else ""),
            actor,
            payload={"quantity": units, "shelf": code},
        )
        return OperationResult(
            status=OperationStatus.APPLIED,
            product_id=pid,
            product=ProductInfo.from_model(product),
        )
