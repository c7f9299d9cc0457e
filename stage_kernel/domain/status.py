"""
Status derivation -- coarse production status from stage counters.

Responsibility:
    Maps a ``StageSet`` and the ordered quantity to a coarse
    ``ProductionStatus`` plus an optional human-readable sub-status label.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Rules (first match wins):
     1. shipped >= quantity                  -> SHIPPED        "Sevk Edildi"
     2. shipped > 0 (partial)                -> rules 3..9 (IN_PRODUCTION if none match), "Kısmi Sevk"
     3. stored + shipped >= quantity         -> COMPLETED      ("Depoda" if stored >= quantity)
     4. packaged + stored + shipped >= qty   -> COMPLETED      ("Paketlendi" if packaged >= quantity)
     5. assembly > 0                         -> IN_PRODUCTION  "Montajda"
     6. upholstery > 0                       -> IN_PRODUCTION  "Döşemede"
     7. foam > 0                             -> IN_PRODUCTION  "Süngerde"
     8. packaged > 0                         -> IN_PRODUCTION  "Paketlemede"
     9. stored > 0                           -> IN_PRODUCTION  "Kısmi Depoda"
    10. otherwise                            -> PENDING

    Partial shipment never reports SHIPPED at the persisted level: the
    coarse status comes from the production rules, only the label marks
    the partial dispatch.

Invariants enforced:
    DERIVED_STATUS -- status is a pure function of (counters, quantity).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from stage_kernel.domain.stages import StageKey, StageSet


class ProductionStatus(str, Enum):
    """Coarse lifecycle status of a product line."""

    PENDING = "PENDING"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"
    SHIPPED = "SHIPPED"


SUB_STATUS_SHIPPED = "Sevk Edildi"
SUB_STATUS_PARTIAL_SHIPPED = "Kısmi Sevk"
SUB_STATUS_STORED = "Depoda"
SUB_STATUS_PARTIAL_STORED = "Kısmi Depoda"
SUB_STATUS_PACKAGED = "Paketlendi"
SUB_STATUS_PACKAGING = "Paketlemede"

# Rules 5..7: the most advanced in-work stage names the line.
_IN_WORK_LABELS: tuple[tuple[StageKey, str], ...] = (
    (StageKey.ASSEMBLY, "Montajda"),
    (StageKey.UPHOLSTERY, "Döşemede"),
    (StageKey.FOAM, "Süngerde"),
)


@dataclass(frozen=True)
class StatusDerivation:
    """Derived (status, sub_status) pair."""

    status: ProductionStatus
    sub_status: str | None = None


def derive_status(counters: StageSet, quantity: int) -> StatusDerivation:
    """Derive the coarse status and sub-status label for a product."""
    shipped = counters.shipped

    if quantity > 0 and shipped >= quantity:
        return StatusDerivation(ProductionStatus.SHIPPED, SUB_STATUS_SHIPPED)

    production = _derive_production(counters, quantity)
    if shipped > 0:
        # Units already left the plant, so the line is never PENDING
        status = production.status
        if status is ProductionStatus.PENDING:
            status = ProductionStatus.IN_PRODUCTION
        return StatusDerivation(status, SUB_STATUS_PARTIAL_SHIPPED)
    return production


def _derive_production(counters: StageSet, quantity: int) -> StatusDerivation:
    stored, shipped, packaged = counters.stored, counters.shipped, counters.packaged

    if quantity > 0 and stored + shipped >= quantity:
        return StatusDerivation(
            ProductionStatus.COMPLETED,
            SUB_STATUS_STORED if stored >= quantity else None,
        )

    if quantity > 0 and packaged + stored + shipped >= quantity:
        return StatusDerivation(
            ProductionStatus.COMPLETED,
            SUB_STATUS_PACKAGED if packaged >= quantity else None,
        )

    for stage, label in _IN_WORK_LABELS:
        if counters.get(stage) > 0:
            return StatusDerivation(ProductionStatus.IN_PRODUCTION, label)

    if packaged > 0:
        return StatusDerivation(ProductionStatus.IN_PRODUCTION, SUB_STATUS_PACKAGING)

    if stored > 0:
        return StatusDerivation(ProductionStatus.IN_PRODUCTION, SUB_STATUS_PARTIAL_STORED)

    return StatusDerivation(ProductionStatus.PENDING, None)
