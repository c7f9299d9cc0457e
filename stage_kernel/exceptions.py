"""
Typed Exception Hierarchy for the Stage Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stage mutations fail for a small number of well-known reasons: the input
was malformed, the caller touched a field it may not edit, the source
stage does not hold enough units, or the actor's role is not allowed.
Callers (and the orchestrators in ``stage_services``) must be able to tell
these apart without parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.move(product_id, StageKey.PACKAGED, StageKey.STORED, 10)
    except InsufficientStageQuantityError as e:
        api_response(code=e.code, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StageEngineError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- ProductNotFoundError
    |   +-- ShipmentNotFoundError
    |
    +-- ForbiddenFieldError
    |
    +-- ConservationViolationError
    |
    +-- InsufficientStageQuantityError
    |
    +-- AuthorizationError
    |
    +-- ShipmentError
    |   +-- InvalidShipmentTransitionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-------------------------------------
Validation      | VALIDATION_ERROR              | Malformed input
                | INVALID_QUANTITY              | Quantity not a positive integer
                | PRODUCT_NOT_FOUND             | Product ID doesn't exist
                | SHIPMENT_NOT_FOUND            | Shipment ID doesn't exist
----------------|-------------------------------|-------------------------------------
Stage edit      | FORBIDDEN_FIELD               | stored/shipped sent to stage edit
                | CONSERVATION_VIOLATION        | Sum of stages exceeds quantity
----------------|-------------------------------|-------------------------------------
Transfer        | INSUFFICIENT_STAGE_QUANTITY   | Source stage holds too few units
----------------|-------------------------------|-------------------------------------
Authorization   | AUTHORIZATION_ERROR           | Role may not touch this stage
----------------|-------------------------------|-------------------------------------
Shipment        | INVALID_SHIPMENT_TRANSITION   | Status change not PLANNED -> SHIPPED
----------------|-------------------------------|-------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Modifying an append-only record

===============================================================================
"""


class StageEngineError(Exception):
    """
    Base exception for all stage kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STAGE_ENGINE_ERROR"


# Validation exceptions


class ValidationError(StageEngineError):
    """Malformed input, rejected before any persisted state is read."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    """Quantity is negative, zero where positive is required, or not an int."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, field: str = "quantity"):
        self.quantity = quantity
        super().__init__(
            f"Invalid {field}: {quantity!r} (expected a positive integer)",
            field=field,
        )


class ProductNotFoundError(ValidationError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}", field="product_id")


class ShipmentNotFoundError(ValidationError):
    """Shipment with given ID was not found."""

    code: str = "SHIPMENT_NOT_FOUND"

    def __init__(self, shipment_id: str):
        self.shipment_id = shipment_id
        super().__init__(f"Shipment not found: {shipment_id}", field="shipment_id")


# Stage edit exceptions


class ForbiddenFieldError(StageEngineError):
    """
    Attempt to set a downstream stage through the stage-edit path.

    ``stored`` changes only through warehouse intake and ``shipped`` only
    through shipment dispatch.
    """

    code: str = "FORBIDDEN_FIELD"

    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__(
            f"Fields cannot be edited directly: {', '.join(self.fields)}"
        )


class ConservationViolationError(StageEngineError):
    """Sum of stage counters would exceed the ordered quantity."""

    code: str = "CONSERVATION_VIOLATION"

    def __init__(self, product_id: str, total: int, quantity: int):
        self.product_id = product_id
        self.total = total
        self.quantity = quantity
        super().__init__(
            f"Stage total {total} exceeds ordered quantity {quantity} "
            f"for product {product_id}"
        )


class InsufficientStageQuantityError(StageEngineError):
    """Transfer or shipment asks for more units than the source stage holds."""

    code: str = "INSUFFICIENT_STAGE_QUANTITY"

    def __init__(self, product_id: str, stage: str, requested: int, available: int):
        self.product_id = product_id
        self.stage = stage
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient {stage} quantity for product {product_id}: "
            f"requested {requested}, available {available}"
        )


class AuthorizationError(StageEngineError):
    """Actor role is not permitted for the requested stage or operation."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, role: str, stage: str, reason: str | None = None):
        self.role = role
        self.stage = stage
        self.reason = reason
        super().__init__(
            reason or f"Role {role!r} is not permitted to change stage {stage!r}"
        )


# Shipment exceptions


class ShipmentError(StageEngineError):
    """Base exception for shipment record errors."""

    code: str = "SHIPMENT_ERROR"


class InvalidShipmentTransitionError(ShipmentError):
    """Shipment status may only move PLANNED -> SHIPPED."""

    code: str = "INVALID_SHIPMENT_TRANSITION"

    def __init__(self, shipment_id: str, from_status: str, to_status: str):
        self.shipment_id = shipment_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Shipment {shipment_id} cannot transition {from_status} -> {to_status}"
        )


# Immutability exceptions


class ImmutabilityError(StageEngineError):
    """Base exception for immutability errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    ProductionLog, ShipmentItem and AuditLogEntry are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
