"""
StageLedger -- the conservation invariant over a product's stage counters.

Responsibility:
    Holds the fixed ordered ``quantity`` of one product line and answers
    whether a ``StageSet`` is admissible for it.  Every mutating operation
    asks the ledger before it writes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    QUANTITY_CONSERVATION -- sum of all six counters <= quantity.
    NON_NEGATIVE_COUNTERS -- every counter >= 0.
"""

from __future__ import annotations

from dataclasses import dataclass

from stage_kernel.domain.stages import StageKey, StageSet
from stage_kernel.exceptions import ConservationViolationError


@dataclass(frozen=True)
class StageLedger:
    """
    Validator bound to one product's ordered quantity.

    Guarantees:
        - ``validate()`` has no side effects.
        - ``ensure_valid()`` raises ``ConservationViolationError`` with the
          offending total when ``validate()`` would return False.
    """

    quantity: int
    product_id: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"quantity must be an int, got {self.quantity!r}")
        if self.quantity < 0:
            raise ValueError(f"quantity cannot be negative: {self.quantity}")

    def validate(self, counters: StageSet) -> bool:
        """True iff every counter >= 0 and the sum <= quantity."""
        if any(value < 0 for _, value in counters.items()):
            return False
        return counters.total <= self.quantity

    def ensure_valid(self, counters: StageSet) -> StageSet:
        if not self.validate(counters):
            raise ConservationViolationError(
                product_id=self.product_id,
                total=counters.total,
                quantity=self.quantity,
            )
        return counters

    def headroom(self, counters: StageSet) -> int:
        """Units of the ordered quantity not yet placed in any stage."""
        return self.quantity - counters.total

    def can_move(self, counters: StageSet, source: StageKey, units: int) -> bool:
        """True iff ``source`` holds at least ``units`` (moves keep the total)."""
        return 0 < units <= counters.get(source)
