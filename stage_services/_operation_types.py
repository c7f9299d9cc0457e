"""
Operation result types shared by the stage_services orchestrators.

Every public operation returns an ``OperationResult``; domain exceptions
are translated here and never cross the service boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from stage_kernel.domain.dtos import ProductInfo, ShipmentInfo
from stage_kernel.exceptions import (
    AuthorizationError,
    ConservationViolationError,
    ForbiddenFieldError,
    InsufficientStageQuantityError,
    InvalidShipmentTransitionError,
    ProductNotFoundError,
    ShipmentNotFoundError,
    StageEngineError,
    ValidationError,
)


class OperationStatus(str, Enum):
    """Outcome of a stage engine operation."""

    APPLIED = "applied"
    APPLIED_CAPPED = "applied_capped"  # Succeeded, but a stage got less than requested
    VALIDATION_FAILED = "validation_failed"
    FORBIDDEN_FIELD = "forbidden_field"
    CONSERVATION_VIOLATION = "conservation_violation"
    INSUFFICIENT_QUANTITY = "insufficient_quantity"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


_SUCCESS = frozenset({OperationStatus.APPLIED, OperationStatus.APPLIED_CAPPED})


@dataclass(frozen=True)
class OperationResult:
    """
    Result of one stage engine operation.

    ``requested`` / ``applied`` / ``capped_stages`` are filled by stage
    edits so the caller can show the value the system actually applied.
    """

    status: OperationStatus
    product_id: UUID | None = None
    shipment_id: UUID | None = None
    product: ProductInfo | None = None
    shipment: ShipmentInfo | None = None
    requested: dict[str, int] = field(default_factory=dict)
    applied: dict[str, int] = field(default_factory=dict)
    capped_stages: tuple[str, ...] = ()
    error_code: str | None = None
    message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in _SUCCESS

    @classmethod
    def failure(
        cls,
        error: StageEngineError,
        product_id: UUID | None = None,
        shipment_id: UUID | None = None,
    ) -> OperationResult:
        return cls(
            status=status_for(error),
            product_id=product_id,
            shipment_id=shipment_id,
            error_code=error.code,
            message=str(error),
        )


def status_for(error: StageEngineError) -> OperationStatus:
    """Map a kernel exception onto the result status reported to callers."""
    if isinstance(error, (ProductNotFoundError, ShipmentNotFoundError)):
        return OperationStatus.NOT_FOUND
    if isinstance(error, ValidationError):
        return OperationStatus.VALIDATION_FAILED
    if isinstance(error, ForbiddenFieldError):
        return OperationStatus.FORBIDDEN_FIELD
    if isinstance(error, ConservationViolationError):
        return OperationStatus.CONSERVATION_VIOLATION
    if isinstance(error, InsufficientStageQuantityError):
        return OperationStatus.INSUFFICIENT_QUANTITY
    if isinstance(error, AuthorizationError):
        return OperationStatus.UNAUTHORIZED
    if isinstance(error, InvalidShipmentTransitionError):
        return OperationStatus.INVALID_TRANSITION
    return OperationStatus.VALIDATION_FAILED
