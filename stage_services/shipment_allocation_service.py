"""
ShipmentAllocationService -- stored -> shipped dispatch.

Responsibility:
    Creates shipments and moves the shipped units from ``stored`` to
    ``shipped`` on every referenced product, in the same transaction.
    Two entry points create shipments:

    create_shipment():  multi-product batch, status PLANNED.
    ship_product():     single-product quick ship, status SHIPPED with an
                        exit date.

    update_shipment_status() flips PLANNED -> SHIPPED afterwards; it is a
    logistics flag only and moves no counters.

Architecture position:
    Services layer -- transaction-owning orchestrator.

Invariants enforced:
    - Batch all-or-nothing: every product is locked (sorted id order) and
      every item checked against its lock-held ``stored`` before the first
      counter moves.  Duplicate product ids in one batch are summed first.
    - Product status is recomputed after every move.
    APPEND_ONLY_RECORDS -- shipment items are never changed after creation.

Failure modes:
    Returned, never raised: VALIDATION_FAILED, NOT_FOUND, UNAUTHORIZED,
    INSUFFICIENT_QUANTITY, INVALID_TRANSITION.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable

from sqlalchemy.orm import Session

from stage_config import CompiledStageConfig
from stage_kernel.domain.clock import Clock
from stage_kernel.domain.dtos import (
    ActorContext,
    ProductInfo,
    ShipmentInfo,
    ShipmentStatus,
)
from stage_kernel.domain.stages import StageKey
from stage_kernel.exceptions import InsufficientStageQuantityError, ValidationError
from stage_kernel.logging_config import get_logger
from stage_kernel.models.audit_log import AuditAction
from stage_kernel.services.auditor_service import AuditSink
from stage_kernel.services.ledger_service import LedgerService
from stage_kernel.services.shipment_service import ShipmentService
from stage_services._inputs import (
    clean_text,
    coerce_date,
    coerce_items,
    coerce_positive_int,
    coerce_uuid,
)
from stage_services._operation_types import OperationResult, OperationStatus
from stage_services._orchestrator import OrchestratorBase
from stage_services.rbac_authority import require_stage_permission

logger = get_logger("services.shipment_allocation")

UNSPECIFIED_COMPANY = "Belirtilmedi"


class ShipmentAllocationService(OrchestratorBase):
    """Orchestrates shipment creation and dispatch from stored."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        config: CompiledStageConfig | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock, audit_sink, config, auto_commit)
        self._ledger = LedgerService(session)
        self._shipments = ShipmentService(session, self._clock)

    # ------------------------------------------------------------------
    # Batch shipment
    # ------------------------------------------------------------------

    def create_shipment(
        self,
        company: str,
        estimated_date: date | str,
        items: Iterable[Any],
        actor: ActorContext,
        driver_name: str | None = None,
        vehicle_plate: str | None = None,
        note: str | None = None,
    ) -> OperationResult:
        """
        Create a PLANNED shipment and dispatch every item from stored.

        Args:
            items: ``ShipmentItemInfo`` objects or ``{"product_id",
                "quantity"}`` mappings.
        """
        return self._execute(
            "create_shipment",
            actor,
            lambda: self._do_create_shipment(
                company, estimated_date, items, actor, driver_name, vehicle_plate, note
            ),
            rejected_action=AuditAction.CREATE_SHIPMENT_REJECTED,
            entity_type="Shipment",
            extra={"company": company},
        )

    def _do_create_shipment(
        self,
        company: str,
        estimated_date: date | str,
        items: Iterable[Any],
        actor: ActorContext,
        driver_name: str | None,
        vehicle_plate: str | None,
        note: str | None,
    ) -> OperationResult:
        company_name = clean_text(company)
        if company_name is None:
            raise ValidationError("Company is required", field="company")
        planned_for = coerce_date(estimated_date, "estimated_date")
        wanted = coerce_items(items)

        require_stage_permission(self._config, actor.role, [StageKey.SHIPPED])

        products = self._ledger.lock_products(wanted)
        for pid, product in products.items():
            if product.stored < wanted[pid]:
                raise InsufficientStageQuantityError(
                    product_id=str(pid),
                    stage=StageKey.STORED.value,
                    requested=wanted[pid],
                    available=product.stored,
                )

        shipment = self._shipments.create_shipment(
            company=company_name,
            actor_id=actor.actor_id,
            status=ShipmentStatus.PLANNED,
            driver_name=clean_text(driver_name),
            vehicle_plate=clean_text(vehicle_plate),
            estimated_date=planned_for,
            note=clean_text(note),
        )
        for pid, product in products.items():
            self._ledger.move(
                product, StageKey.STORED, StageKey.SHIPPED, wanted[pid], actor.actor_id
            )
            self._shipments.add_item(shipment, pid, wanted[pid])

        info = ShipmentInfo.from_model(shipment)
        self._record(
            AuditAction.CREATE_SHIPMENT,
            "Shipment",
            shipment.id,
            f"Shipment for {company_name}: {len(wanted)} products, "
            f"{info.total_quantity} units",
            actor,
            payload={"items": {str(pid): units for pid, units in wanted.items()}},
        )
        return OperationResult(
            status=OperationStatus.APPLIED,
            shipment_id=shipment.id,
            shipment=info,
        )

    # ------------------------------------------------------------------
    # Quick ship
    # ------------------------------------------------------------------

    def ship_product(
        self,
        product_id: Any,
        quantity: Any,
        company: str | None,
        actor: ActorContext,
        driver_name: str | None = None,
        vehicle_plate: str | None = None,
        note: str | None = None,
    ) -> OperationResult:
        """
        Ship units of one product immediately.

        A blank ``company`` falls back to the product's company, then to
        "Belirtilmedi".
        """
        return self._execute(
            "ship_product",
            actor,
            lambda: self._do_ship_product(
                product_id, quantity, company, actor, driver_name, vehicle_plate, note
            ),
            rejected_action=AuditAction.SHIP_PRODUCT_REJECTED,
            entity_type="Product",
            entity_id=product_id,
            product_id=product_id,
            extra={"quantity": quantity},
        )

    def _do_ship_product(
        self,
        product_id: Any,
        quantity: Any,
        company: str | None,
        actor: ActorContext,
        driver_name: str | None,
        vehicle_plate: str | None,
        note: str | None,
    ) -> OperationResult:
        pid = coerce_uuid(product_id, "product_id")
        units = coerce_positive_int(quantity)
        require_stage_permission(self._config, actor.role, [StageKey.SHIPPED])

        product = self._ledger.lock_product(pid)
        company_name = (
            clean_text(company) or clean_text(product.company) or UNSPECIFIED_COMPANY
        )

        # Availability first, so a failure creates no shipment row
        self._ledger.move(product, StageKey.STORED, StageKey.SHIPPED, units, actor.actor_id)

        shipment = self._shipments.create_shipment(
            company=company_name,
            actor_id=actor.actor_id,
            status=ShipmentStatus.SHIPPED,
            driver_name=clean_text(driver_name),
            vehicle_plate=clean_text(vehicle_plate),
            note=clean_text(note),
        )
        self._shipments.add_item(shipment, pid, units)

        self._record(
            AuditAction.SHIP_PRODUCT,
            "Product",
            pid,
            f"{units} units shipped to {company_name}",
            actor,
            payload={"shipment_id": str(shipment.id), "quantity": units},
        )
        return OperationResult(
            status=OperationStatus.APPLIED,
            product_id=pid,
            shipment_id=shipment.id,
            product=ProductInfo.from_model(product),
            shipment=ShipmentInfo.from_model(shipment),
        )

    # ------------------------------------------------------------------
    # Status flag
    # ------------------------------------------------------------------

    def update_shipment_status(
        self,
        shipment_id: Any,
        status: ShipmentStatus | str,
        actor: ActorContext,
    ) -> OperationResult:
        """Move a shipment's logistics status; product counters do not move."""
        return self._execute(
            "update_shipment_status",
            actor,
            lambda: self._do_update_status(shipment_id, status, actor),
            rejected_action=AuditAction.UPDATE_SHIPMENT_STATUS_REJECTED,
            entity_type="Shipment",
            entity_id=shipment_id,
            shipment_id=shipment_id,
            extra={"to_status": str(status)},
        )

    def _do_update_status(
        self,
        shipment_id: Any,
        status: ShipmentStatus | str,
        actor: ActorContext,
    ) -> OperationResult:
        sid = coerce_uuid(shipment_id, "shipment_id")
        try:
            target = ShipmentStatus(str(getattr(status, "value", status)).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Unknown shipment status: {status!r}", field="status"
            ) from None

        require_stage_permission(self._config, actor.role, [StageKey.SHIPPED])

        shipment = self._shipments.lock_shipment(sid)
        previous = shipment.status
        if self._shipments.transition(shipment, target, actor.actor_id):
            self._record(
                AuditAction.UPDATE_SHIPMENT_STATUS,
                "Shipment",
                sid,
                f"Shipment status {previous} -> {target.value}",
                actor,
            )
        else:
            logger.info("shipment_status_noop", extra={"to_status": target.value})

        return OperationResult(
            status=OperationStatus.APPLIED,
            shipment_id=sid,
            shipment=ShipmentInfo.from_model(shipment),
        )
