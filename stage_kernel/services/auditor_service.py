"""
AuditorService -- default audit sink.

Responsibility:
    Receives write-through audit calls from the orchestrators
    (``record(action, entity_type, entity_id, detail, actor_id)``) and
    stores them as append-only ``AuditLogEntry`` rows.

Architecture position:
    Kernel > Services -- imperative shell.  Any object satisfying the
    ``AuditSink`` protocol can replace it; the orchestrators only depend
    on the protocol.

Invariants enforced:
    - Fire-and-forget: each entry is written inside its own SAVEPOINT.  If
      the write fails, only the savepoint is rolled back; the primary
      operation's changes in the enclosing transaction survive.
    - Flush-only: never commits the outer transaction.

Failure modes:
    - Database errors while writing an entry are logged at WARNING and
      reported through the boolean return value, never raised.
"""

import inspect
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stage_kernel.domain.clock import Clock, SystemClock
from stage_kernel.logging_config import get_logger
from stage_kernel.models.audit_log import AuditAction, AuditLogEntry
from stage_kernel.services.base import BaseService

logger = get_logger("services.auditor")


@runtime_checkable
class AuditSink(Protocol):
    """
    Contract of the external audit-log collaborator.

    A sink may also accept an optional ``payload`` keyword with structured
    before/after data; see ``accepts_payload``.
    """

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        detail: str,
        actor_id: UUID,
    ) -> Any:
        ...


def accepts_payload(sink: AuditSink) -> bool:
    """True if ``sink.record`` takes a ``payload`` keyword (or **kwargs)."""
    try:
        params = inspect.signature(sink.record).parameters
    except (TypeError, ValueError):
        return False
    return "payload" in params or any(
        p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()
    )


class AuditorService(BaseService[AuditLogEntry]):
    """
    Database-backed ``AuditSink``.

    Guarantees:
        - ``record()`` never raises for storage failures and never rolls back
          work done earlier in the caller's transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        detail: str,
        actor_id: UUID,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """
        Append one audit entry.

        Returns:
            True if the entry was flushed, False if the write failed.
        """
        action_value = action.value if isinstance(action, AuditAction) else str(action)
        try:
            with self.session.begin_nested():
                self.session.add(
                    AuditLogEntry(
                        action=action_value,
                        entity_type=entity_type,
                        entity_id=str(entity_id),
                        detail=detail,
                        actor_id=actor_id,
                        occurred_at=self._clock.now(),
                        payload=payload,
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "audit_write_failed",
                extra={"action": action_value, "entity_type": entity_type},
                exc_info=True,
            )
            return False

        logger.debug(
            "audit_entry_recorded",
            extra={
                "action": action_value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
            },
        )
        return True

    def entries_for(self, entity_type: str, entity_id: str) -> list[AuditLogEntry]:
        """Audit entries for one entity, oldest first."""
        return list(
            self.session.execute(
                select(AuditLogEntry)
                .where(
                    AuditLogEntry.entity_type == entity_type,
                    AuditLogEntry.entity_id == str(entity_id),
                )
                .order_by(AuditLogEntry.occurred_at)
            ).scalars()
        )
