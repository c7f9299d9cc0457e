"""
StageEditService -- edits of the four in-process stage counters.

Responsibility:
    Applies ``{stage: value}`` edits to foam / upholstery / assembly /
    packaged, redistributing overflow from earlier stages, and writes the
    recomputed status in the same transaction.  Also updates the engineer
    note when one is supplied.

Architecture position:
    Services layer -- transaction-owning orchestrator.

    edit_stages():
        1. Coerce input (ids, stage names, int values)
        2. Reject stored / shipped with ForbiddenFieldError
        3. Capability check for every edited stage
        4. Lock the product row (fresh counters)
        5. apply_edits() in pipeline order
        6. Ledger check, write counters + status
        7. Engineer note
        8. Audit, commit

Invariants enforced:
    LOCKED_READ_MODIFY_WRITE -- the cascade input is the lock-held row, never
        a client-supplied full set, so a concurrent writer's committed
        progress cannot be reverted by a stale view.
    DOWNSTREAM_IRREVERSIBILITY -- stored and shipped are never edited here.

Failure modes:
    Returned, never raised: VALIDATION_FAILED, NOT_FOUND, FORBIDDEN_FIELD,
    UNAUTHORIZED, CONSERVATION_VIOLATION.  A capped edit still succeeds
    with APPLIED_CAPPED and reports ``requested`` vs ``applied``.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping

from sqlalchemy.orm import Session

from stage_config import CompiledStageConfig
from stage_kernel.domain.cascade import CascadeOutcome, apply_edits
from stage_kernel.domain.clock import Clock
from stage_kernel.domain.dtos import ActorContext, ProductInfo
from stage_kernel.domain.stages import EDITABLE_STAGES, StageKey, StageSet
from stage_kernel.domain.status import derive_status
from stage_kernel.exceptions import (
    ForbiddenFieldError,
    ProductNotFoundError,
    StageEngineError,
    ValidationError,
)
from stage_kernel.logging_config import get_logger
from stage_kernel.models.audit_log import AuditAction
from stage_kernel.models.product import Product
from stage_kernel.services.auditor_service import AuditSink
from stage_kernel.services.ledger_service import LedgerService
from stage_kernel.services.product_service import ProductService
from stage_services._inputs import coerce_edits, coerce_uuid
from stage_services._operation_types import OperationResult, OperationStatus
from stage_services._orchestrator import OrchestratorBase
from stage_services.rbac_authority import (
    require_any_stage_permission,
    require_stage_permission,
)

logger = get_logger("services.stage_edit")


class StageEditService(OrchestratorBase):
    """Orchestrates stage-counter edits on one product."""

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
        self._products = ProductService(session)

    def edit_stages(
        self,
        product_id: Any,
        edits: Mapping[Any, Any],
        actor: ActorContext,
        note: str | None = None,
    ) -> OperationResult:
        """
        Apply stage edits to one product.

        Args:
            product_id: Product to edit.
            edits: ``{stage: value}`` for any of foam, upholstery, assembly,
                packaged.  Values are clamped to [0, quantity].
            actor: Resolved caller identity and role.
            note: When given, replaces ``engineer_note``.

        Returns:
            OperationResult; ``product`` holds the post-edit snapshot.
        """
        return self._execute(
            "stage_edit",
            actor,
            lambda: self._do_edit(product_id, edits, actor, note),
            rejected_action=AuditAction.UPDATE_STAGES_REJECTED,
            entity_type="Product",
            entity_id=product_id,
            product_id=product_id,
            extra={"stages": sorted(str(k) for k in edits) if isinstance(edits, Mapping) else None},
        )

    def _do_edit(
        self,
        product_id: Any,
        edits: Mapping[Any, Any],
        actor: ActorContext,
        note: str | None,
    ) -> OperationResult:
        pid = coerce_uuid(product_id, "product_id")
        parsed = coerce_edits(edits)

        forbidden = [s.value for s in parsed if not s.is_editable]
        if forbidden:
            raise ForbiddenFieldError(forbidden)
        if not parsed and note is None:
            raise ValidationError("Nothing to update", field="edits")

        if parsed:
            require_stage_permission(self._config, actor.role, parsed)
        else:
            # Note-only call: the caller must still be a stage editor
            require_any_stage_permission(self._config, actor.role, EDITABLE_STAGES)

        product = self._ledger.lock_product(pid)
        outcome = apply_edits(StageSet.from_model(product), parsed, product.quantity)
        self._ledger.ledger_for(product).ensure_valid(outcome.stages)

        if outcome.changed:
            self._ledger.write_stages(product, outcome.stages, actor.actor_id)

        note_changed = note is not None and self._products.set_engineer_note(
            product, note, actor.actor_id
        )

        if outcome.changed or note_changed:
            self._record(
                AuditAction.UPDATE_STAGES,
                "Product",
                pid,
                _describe(outcome, note_changed),
                actor,
                payload={
                    "before": outcome.before.as_dict(),
                    "after": outcome.stages.as_dict(),
                    "requested": outcome.requested,
                    "applied": outcome.applied,
                    "reclaimed": outcome.reclaimed,
                },
            )
        else:
            logger.info("stage_edit_noop", extra={"product_id": str(pid)})

        if outcome.is_capped:
            logger.warning(
                "stage_edit_capped",
                extra={
                    "requested": outcome.requested,
                    "applied": outcome.applied,
                },
            )

        return _result(outcome, ProductInfo.from_model(product))

    def preview(self, product_id: Any, edits: Mapping[Any, Any]) -> OperationResult:
        """
        Compute what ``edit_stages`` would apply, without writing.

        Reads the current row (unlocked) so a UI can show the optimistic
        value; ``edit_stages`` recomputes against the locked row anyway.
        """
        try:
            pid = coerce_uuid(product_id, "product_id")
            parsed = coerce_edits(edits)
            forbidden = [s.value for s in parsed if not s.is_editable]
            if forbidden:
                raise ForbiddenFieldError(forbidden)

            product = self._session.get(Product, pid, populate_existing=True)
            if product is None:
                raise ProductNotFoundError(str(pid))

            outcome = apply_edits(StageSet.from_model(product), parsed, product.quantity)
        except StageEngineError as exc:
            return OperationResult.failure(exc)

        derived = derive_status(outcome.stages, product.quantity)
        snapshot = dataclasses.replace(
            ProductInfo.from_model(product),
            stages=outcome.stages,
            status=derived.status,
            sub_status=derived.sub_status,
        )
        return _result(outcome, snapshot)


def _result(outcome: CascadeOutcome, product: ProductInfo) -> OperationResult:
    return OperationResult(
        status=(
            OperationStatus.APPLIED_CAPPED if outcome.is_capped else OperationStatus.APPLIED
        ),
        product_id=product.id,
        product=product,
        requested=dict(outcome.requested),
        applied=dict(outcome.applied),
        capped_stages=outcome.capped_stages,
    )


def _describe(outcome: CascadeOutcome, note_changed: bool) -> str:
    changes = [
        f"{StageKey(name).label}: {old} -> {new}"
        for name, (old, new) in outcome.before.diff(outcome.stages).items()
    ]
    if note_changed:
        changes.append("engineer note updated")
    return "Stages updated: " + ", ".join(changes)
