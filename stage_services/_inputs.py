"""
Input coercion for the stage_services boundary.

Callers arrive from thin RPC wrappers with loosely typed values (ids as
strings, stage names in any case).  Everything here raises
``ValidationError`` subclasses before any persisted state is read.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping
from uuid import UUID

from stage_kernel.domain.dtos import ShipmentItemInfo
from stage_kernel.domain.stages import StageKey
from stage_kernel.exceptions import InvalidQuantityError, ValidationError


def coerce_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None


def coerce_positive_int(value: Any, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidQuantityError(value, field=field)
    return value


def coerce_edits(edits: Mapping[Any, Any]) -> dict[StageKey, int]:
    """
    Parse ``{stage: value}`` into StageKey keys and int values.

    Values are not range-checked: the cascade clamps them to
    [0, quantity] and reports the clamp as a capped stage.
    """
    if not isinstance(edits, Mapping):
        raise ValidationError("Stage edits must be a mapping", field="edits")

    parsed: dict[StageKey, int] = {}
    for key, value in edits.items():
        try:
            stage = StageKey.parse(key)
        except KeyError:
            raise ValidationError(f"Unknown stage: {key!r}", field="edits") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                f"Stage {stage.value} must be an integer, got {value!r}",
                field=stage.value,
            )
        parsed[stage] = value
    return parsed


def coerce_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field}: {value!r}", field=field)


def coerce_items(items: Iterable[Any] | None) -> dict[UUID, int]:
    """
    Parse shipment items and sum duplicates per product.

    Accepts ``ShipmentItemInfo`` objects or mappings with ``product_id``
    and ``quantity`` keys.
    """
    totals: dict[UUID, int] = {}
    for raw in items or ():
        if isinstance(raw, ShipmentItemInfo):
            product_id, quantity = raw.product_id, raw.quantity
        elif isinstance(raw, Mapping):
            if "product_id" not in raw or "quantity" not in raw:
                raise ValidationError(
                    "Shipment item needs product_id and quantity", field="items"
                )
            product_id, quantity = raw["product_id"], raw["quantity"]
        else:
            raise ValidationError(f"Invalid shipment item: {raw!r}", field="items")

        pid = coerce_uuid(product_id, "product_id")
        totals[pid] = totals.get(pid, 0) + coerce_positive_int(quantity)

    if not totals:
        raise ValidationError("A shipment needs at least one item", field="items")
    return totals


def clean_text(value: str | None) -> str | None:
    """Strip surrounding whitespace; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def try_uuid(value: Any) -> UUID | None:
    """``coerce_uuid`` for logging and result fields: None instead of raising."""
    if value is None:
        return None
    try:
        return coerce_uuid(value, "id")
    except ValidationError:
        return None
