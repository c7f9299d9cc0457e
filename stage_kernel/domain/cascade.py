"""
Cascade -- redistribute overflow from a single-stage edit.

Responsibility:
    Given the current counters of a product and a proposed new value for
    one editable stage, compute a full ``StageSet`` that satisfies the
    conservation invariant by reclaiming overflow from earlier stages.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Used by the
    stage-edit orchestrator against freshly locked counters, and by its
    ``preview`` for optimistic UI display.

Algorithm (``redistribute``):
    1. Clamp the proposed value to [0, quantity].
    2. Replace the edited stage; if the total fits, done.
    3. Otherwise walk the stages BEFORE the edited one, nearest first,
       reducing each by min(excess, its value) until excess is 0.
    4. Whatever excess remains is taken off the edited stage itself
       (best-effort capping: the request is only partly honoured).

Invariants enforced:
    DOWNSTREAM_IRREVERSIBILITY -- stored and shipped are never reduction
        candidates, and cannot be the edited stage.
    QUANTITY_CONSERVATION -- the output satisfies the ledger whenever the
        input did.

Failure modes:
    - ForbiddenFieldError if the edited stage is stored or shipped.
    - The edited stage is floored at 0; if the INPUT already violated the
      invariant the output may still violate it, and the caller's ledger
      check turns that into ConservationViolationError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from stage_kernel.domain.stages import StageKey, StageSet
from stage_kernel.exceptions import ForbiddenFieldError


@dataclass(frozen=True)
class CascadeOutcome:
    """
    Result of applying one or more stage edits.

    ``requested`` holds the caller's raw values, ``applied`` the values the
    edited stages ended up with.  A stage is listed in ``capped_stages``
    when those two differ, whether through clamping, self-capping, or a
    later edit in the same call reclaiming from it.
    """

    before: StageSet
    stages: StageSet
    requested: dict[str, int] = field(default_factory=dict)
    applied: dict[str, int] = field(default_factory=dict)
    reclaimed: dict[str, int] = field(default_factory=dict)

    @property
    def capped_stages(self) -> tuple[str, ...]:
        return tuple(
            name for name, value in self.requested.items()
            if self.applied.get(name) != value
        )

    @property
    def is_capped(self) -> bool:
        return bool(self.capped_stages)

    @property
    def changed(self) -> bool:
        return self.before != self.stages


def redistribute(
    current: StageSet,
    edited_stage: StageKey,
    proposed_value: int,
    quantity: int,
) -> StageSet:
    """Return a consistent StageSet with ``edited_stage`` set as close to
    ``proposed_value`` as the invariant allows."""
    stages, _ = _redistribute(current, edited_stage, proposed_value, quantity)
    return stages


def _redistribute(
    current: StageSet,
    edited_stage: StageKey,
    proposed_value: int,
    quantity: int,
) -> tuple[StageSet, dict[str, int]]:
    if not edited_stage.is_editable:
        raise ForbiddenFieldError([edited_stage.value])

    value = max(0, min(proposed_value, quantity))
    values = current.replace(edited_stage, value).as_dict()
    reclaimed: dict[str, int] = {}

    excess = sum(values.values()) - quantity
    if excess <= 0:
        return StageSet(**values), reclaimed

    for stage in edited_stage.earlier():
        if excess <= 0:
            break
        if not stage.is_editable:
            continue
        reduction = min(excess, values[stage.value])
        if reduction:
            values[stage.value] -= reduction
            reclaimed[stage.value] = reduction
            excess -= reduction

    if excess > 0:
        values[edited_stage.value] = max(0, values[edited_stage.value] - excess)

    return StageSet(**values), reclaimed


def apply_edits(
    current: StageSet,
    edits: Mapping[StageKey, int],
    quantity: int,
) -> CascadeOutcome:
    """
    Apply several stage edits in pipeline order, each against the result
    of the previous one.

    Preconditions:
        - every key of ``edits`` is an editable stage.
    Postconditions:
        - ``outcome.stages`` satisfies the ledger whenever ``current`` did.
        - ``outcome.before is current``.
    """
    stages = current
    reclaimed: dict[str, int] = {}
    forbidden = [s.value for s in edits if not s.is_editable]
    if forbidden:
        raise ForbiddenFieldError(forbidden)

    for stage in StageKey.ordered():
        if stage not in edits:
            continue
        stages, step = _redistribute(stages, stage, edits[stage], quantity)
        for name, units in step.items():
            reclaimed[name] = reclaimed.get(name, 0) + units

    return CascadeOutcome(
        before=current,
        stages=stages,
        requested={s.value: v for s, v in _in_order(edits)},
        applied={s.value: stages.get(s) for s, _ in _in_order(edits)},
        reclaimed=reclaimed,
    )


def _in_order(edits: Mapping[StageKey, int]) -> list[tuple[StageKey, int]]:
    return sorted(edits.items(), key=lambda kv: kv[0].index)
