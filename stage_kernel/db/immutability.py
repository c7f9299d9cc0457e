"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Three record types are the paper trail of irreversible physical moves:

Entity          | When Immutable          | Why
----------------|-------------------------|----------------------------------------
ProductionLog   | ALWAYS (from creation)  | Records a packaged -> stored intake
ShipmentItem    | ALWAYS (from creation)  | Records a stored -> shipped dispatch
AuditLogEntry   | ALWAYS (from creation)  | Audit trail is sacred

Changing any of them after the fact would let the trail disagree with the
counters it explains.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events before
the SQL reaches the database.  The listeners below raise
``ImmutabilityViolationError`` and the flush (and with it the transaction)
is aborted.

    from stage_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

Registration is idempotent.
"""

from stage_kernel.exceptions import ImmutabilityViolationError
from stage_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, operation: str, target, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_production_log_update(mapper, connection, target):
    _block("ProductionLog", "UPDATE", target, "Production log entries are append-only")


def _check_production_log_delete(mapper, connection, target):
    _block("ProductionLog", "DELETE", target, "Production log entries cannot be deleted")


def _check_shipment_item_update(mapper, connection, target):
    _block("ShipmentItem", "UPDATE", target, "Shipment items are immutable once created")


def _check_shipment_item_delete(mapper, connection, target):
    _block("ShipmentItem", "DELETE", target, "Shipment items cannot be deleted")


def _check_audit_entry_update(mapper, connection, target):
    _block("AuditLogEntry", "UPDATE", target, "Audit entries are immutable")


def _check_audit_entry_delete(mapper, connection, target):
    _block("AuditLogEntry", "DELETE", target, "Audit entries cannot be deleted")


def _listeners():
    from stage_kernel.models.audit_log import AuditLogEntry
    from stage_kernel.models.inventory import ProductionLog
    from stage_kernel.models.shipment import ShipmentItem

    return (
        (ProductionLog, "before_update", _check_production_log_update),
        (ProductionLog, "before_delete", _check_production_log_delete),
        (ShipmentItem, "before_update", _check_shipment_item_update),
        (ShipmentItem, "before_delete", _check_shipment_item_delete),
        (AuditLogEntry, "before_update", _check_audit_entry_update),
        (AuditLogEntry, "before_delete", _check_audit_entry_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability enforcement event listeners."""
    from sqlalchemy import event

    for model, name, fn in _listeners():
        if not event.contains(model, name, fn):
            event.listen(model, name, fn)

    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove all immutability listeners. FOR TESTING ONLY."""
    from sqlalchemy import event

    for model, name, fn in _listeners():
        if event.contains(model, name, fn):
            event.remove(model, name, fn)
