"""
Stages -- the ordered production pipeline and its counter set.

Responsibility:
    Defines ``StageKey``, the explicit, ordered enumeration of the six
    stages a manufactured unit passes through, and ``StageSet``, the
    immutable value object holding one non-negative counter per stage.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Pipeline order is declared once, here.  Cascade, status derivation
      and display all iterate ``StageKey.ordered()`` so they cannot drift
      apart.
    - Every counter in a ``StageSet`` is an ``int`` >= 0 (checked at
      construction).

Failure modes:
    - ValueError on negative or non-integer counters.
    - KeyError from ``StageKey.parse`` on unknown stage names.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Iterator, Mapping


class StageKey(str, Enum):
    """
    One of the six stages, declared in pipeline order.

    Contract:
        Declaration order IS pipeline order:
        foam < upholstery < assembly < packaged < stored < shipped.
    """

    FOAM = "foam"
    UPHOLSTERY = "upholstery"
    ASSEMBLY = "assembly"
    PACKAGED = "packaged"
    STORED = "stored"
    SHIPPED = "shipped"

    @classmethod
    def ordered(cls) -> tuple[StageKey, ...]:
        return tuple(cls)

    @classmethod
    def parse(cls, value: str | StageKey) -> StageKey:
        """Resolve a stage from its value (case-insensitive) or member."""
        if isinstance(value, StageKey):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise KeyError(f"Unknown stage: {value!r}") from None

    @property
    def index(self) -> int:
        return _STAGE_INDEX[self]

    @property
    def is_editable(self) -> bool:
        """True for stages that may be set through the stage-edit path."""
        return self in EDITABLE_STAGES

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]

    def earlier(self) -> tuple[StageKey, ...]:
        """Stages before this one, nearest first."""
        return tuple(reversed(StageKey.ordered()[: self.index]))


_STAGE_INDEX: dict[StageKey, int] = {s: i for i, s in enumerate(StageKey)}

EDITABLE_STAGES: tuple[StageKey, ...] = (
    StageKey.FOAM,
    StageKey.UPHOLSTERY,
    StageKey.ASSEMBLY,
    StageKey.PACKAGED,
)

# Irreversible downstream commitments; moved only by intake and dispatch.
DOWNSTREAM_STAGES: tuple[StageKey, ...] = (
    StageKey.STORED,
    StageKey.SHIPPED,
)

STAGE_LABELS: dict[StageKey, str] = {
    StageKey.FOAM: "Süngerde",
    StageKey.UPHOLSTERY: "Döşemede",
    StageKey.ASSEMBLY: "Montajda",
    StageKey.PACKAGED: "Paketlendi",
    StageKey.STORED: "Depoda",
    StageKey.SHIPPED: "Sevk",
}


def _check_counter(name: str, value: Any) -> None:
    # bool is an int subclass; a stray True must not count as one unit
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Stage counter {name} must be an int, got {value!r}")
    if value < 0:
        raise ValueError(f"Stage counter {name} cannot be negative: {value}")


@dataclass(frozen=True)
class StageSet:
    """
    Immutable snapshot of the six stage counters of one product.

    Contract:
        Field order matches ``StageKey`` order.  A StageSet knows nothing
        about the ordered quantity; checking the conservation invariant
        is ``StageLedger``'s job.
    """

    foam: int = 0
    upholstery: int = 0
    assembly: int = 0
    packaged: int = 0
    stored: int = 0
    shipped: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            _check_counter(f.name, getattr(self, f.name))

    @classmethod
    def zero(cls) -> StageSet:
        return cls()

    @classmethod
    def from_mapping(cls, values: Mapping[str | StageKey, int]) -> StageSet:
        """Build from a mapping keyed by stage name or StageKey; missing keys are 0."""
        kwargs = {StageKey.parse(k).value: v for k, v in values.items()}
        return cls(**kwargs)

    @classmethod
    def from_model(cls, product: Any) -> StageSet:
        """Boundary converter from any object carrying the six counter attributes."""
        return cls(**{s.value: getattr(product, s.value) or 0 for s in StageKey})

    def get(self, stage: StageKey) -> int:
        return getattr(self, stage.value)

    def replace(self, stage: StageKey, value: int) -> StageSet:
        data = self.as_dict()
        data[stage.value] = value
        return StageSet(**data)

    @property
    def total(self) -> int:
        return sum(self.get(s) for s in StageKey)

    def items(self) -> Iterator[tuple[StageKey, int]]:
        for stage in StageKey:
            yield stage, self.get(stage)

    def as_dict(self) -> dict[str, int]:
        return {s.value: self.get(s) for s in StageKey}

    def diff(self, other: StageSet) -> dict[str, tuple[int, int]]:
        """Stages whose value differs, as {stage: (self_value, other_value)}."""
        return {
            s.value: (self.get(s), other.get(s))
            for s in StageKey
            if self.get(s) != other.get(s)
        }
