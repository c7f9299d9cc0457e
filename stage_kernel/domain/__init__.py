"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from stage_kernel.domain.cascade import CascadeOutcome, apply_edits, redistribute
from stage_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stage_kernel.domain.dtos import (
    SHIPMENT_TRANSITIONS,
    ActorContext,
    InventoryLocationInfo,
    ProductInfo,
    ProductionLogInfo,
    ShipmentInfo,
    ShipmentItemInfo,
    ShipmentStatus,
)
from stage_kernel.domain.ledger import StageLedger
from stage_kernel.domain.stages import (
    DOWNSTREAM_STAGES,
    EDITABLE_STAGES,
    STAGE_LABELS,
    StageKey,
    StageSet,
)
from stage_kernel.domain.status import ProductionStatus, StatusDerivation, derive_status

__all__ = [
    "ActorContext",
    "CascadeOutcome",
    "Clock",
    "DOWNSTREAM_STAGES",
    "DeterministicClock",
    "EDITABLE_STAGES",
    "InventoryLocationInfo",
    "ProductInfo",
    "ProductionLogInfo",
    "ProductionStatus",
    "SHIPMENT_TRANSITIONS",
    "STAGE_LABELS",
    "ShipmentInfo",
    "ShipmentItemInfo",
    "ShipmentStatus",
    "StageKey",
    "StageLedger",
    "StageSet",
    "StatusDerivation",
    "SystemClock",
    "apply_edits",
    "derive_status",
    "redistribute",
]
