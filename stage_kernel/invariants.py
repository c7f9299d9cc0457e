"""
Kernel Invariants Contract.

These invariants are structural law. No configuration, capability table or
role may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across StageLedger, the cascade, LedgerService,
the immutability listeners and the Product check constraints.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    QUANTITY_CONSERVATION = "quantity_conservation"
    """foam + upholstery + assembly + packaged + stored + shipped <= quantity.
    Enforced by StageLedger before every write and by a CHECK constraint
    on the products table."""

    NON_NEGATIVE_COUNTERS = "non_negative_counters"
    """Every stage counter is >= 0. Enforced by StageSet construction,
    StageLedger and CHECK constraints."""

    DOWNSTREAM_IRREVERSIBILITY = "downstream_irreversibility"
    """stored changes only through warehouse intake and shipped only
    through shipment dispatch. The cascade never reclaims from either."""

    LOCKED_READ_MODIFY_WRITE = "locked_read_modify_write"
    """Counters used as input to any mutation are read under a row lock
    (SELECT ... FOR UPDATE) in the same transaction as the write."""

    APPEND_ONLY_RECORDS = "append_only_records"
    """ProductionLog, ShipmentItem and AuditLogEntry rows are never
    updated or deleted. Enforced by ORM listeners
    (stage_kernel.db.immutability)."""

    DERIVED_STATUS = "derived_status"
    """Product.status and sub_status are rewritten from the counters on
    every stage mutation; they are never edited independently."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "stage_services",
    "stage_config",
)
