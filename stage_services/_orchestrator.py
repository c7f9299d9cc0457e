"""
Shared transaction and logging envelope for the stage_services orchestrators.

Every public operation runs through ``OrchestratorBase._execute``:

    1. Bind correlation id, actor, role and operation into LogContext.
    2. Log ``<operation>_started``.
    3. Run the operation body against the session.
    4. Commit on success (if auto_commit).
    5. On a StageEngineError: roll back, record the rejected attempt with
       the audit sink, and return a typed failure result.
    6. On anything else: roll back, log ``<operation>_failed`` with
       exc_info, and re-raise.
    7. Log ``<operation>_completed`` with status and duration_ms.

Audit calls are fire-and-forget: a sink that raises is logged and ignored,
it never changes the operation's outcome.
"""

from __future__ import annotations

import time
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stage_config import CompiledStageConfig, get_active_config
from stage_kernel.domain.clock import Clock, SystemClock
from stage_kernel.domain.dtos import ActorContext
from stage_kernel.exceptions import StageEngineError
from stage_kernel.logging_config import LogContext, get_logger
from stage_kernel.models.audit_log import AuditAction
from stage_kernel.services.auditor_service import (
    AuditorService,
    AuditSink,
    accepts_payload,
)
from stage_services._inputs import try_uuid
from stage_services._operation_types import OperationResult

logger = get_logger("services.orchestrator")


class OrchestratorBase:
    """
    Owns the transaction boundary for one family of operations.

    By default each operation commits on success and rolls back on
    failure.  Set ``auto_commit=False`` to leave transaction control to the
    caller (tests, or composing several operations in one transaction).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        config: CompiledStageConfig | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._audit = audit_sink or AuditorService(session, self._clock)
        self._audit_takes_payload = accepts_payload(self._audit)
        self._config = config or get_active_config()
        self._auto_commit = auto_commit

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    def _execute(
        self,
        operation: str,
        actor: ActorContext,
        body: Callable[[], OperationResult],
        rejected_action: AuditAction,
        entity_type: str,
        entity_id: Any = None,
        product_id: Any = None,
        shipment_id: Any = None,
        extra: dict[str, Any] | None = None,
    ) -> OperationResult:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor.actor_id,
            role=actor.role,
            operation=operation,
            product_id=product_id,
            shipment_id=shipment_id,
        ):
            logger.info(f"{operation}_started", extra=extra or {})
            t0 = time.monotonic()
            try:
                result = body()
                if self._auto_commit:
                    self._session.commit()
            except StageEngineError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    f"{operation}_rejected",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                self._record(
                    rejected_action,
                    entity_type,
                    entity_id if entity_id is not None else "-",
                    f"Rejected: {exc}",
                    actor,
                    payload={"error_code": exc.code},
                )
                self._commit_rejection_trail()
                result = OperationResult.failure(
                    exc,
                    product_id=try_uuid(product_id),
                    shipment_id=try_uuid(shipment_id),
                )
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                f"{operation}_completed",
                extra={"status": result.status.value, "duration_ms": duration_ms},
            )
            return result

    def _commit_rejection_trail(self) -> None:
        if not self._auto_commit:
            return
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            logger.warning("audit_commit_failed", exc_info=True)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def _record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID | str,
        detail: str,
        actor: ActorContext,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Hand one entry to the audit sink; sink failures are logged only."""
        kwargs: dict[str, Any] = {
            "action": action.value,
            "entity_type": entity_type,
            "entity_id": str(entity_id)[:64],
            "detail": detail,
            "actor_id": actor.actor_id,
        }
        if self._audit_takes_payload:
            kwargs["payload"] = payload
        try:
            self._audit.record(**kwargs)
        except Exception:
            logger.warning(
                "audit_sink_failed",
                extra={"action": action.value, "entity_type": entity_type},
                exc_info=True,
            )
