"""
Tests for ShipmentAllocationService (stored -> shipped dispatch).

These tests verify:
- Batch shipments move every item or none
- Duplicate product ids in one batch are summed before the check
- Quick ship creates a SHIPPED shipment and falls back on the company name
- Shipment status only moves PLANNED -> SHIPPED and never moves counters
"""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from stage_kernel.domain.dtos import ShipmentItemInfo, ShipmentStatus
from stage_kernel.domain.stages import StageSet
from stage_kernel.domain.status import ProductionStatus
from stage_kernel.models.audit_log import AuditAction, AuditLogEntry
from stage_kernel.selectors import ShipmentSelector
from stage_services import OperationStatus
from stage_services.shipment_allocation_service import UNSPECIFIED_COMPANY

ETA = "2026-11-02"


def _items(*pairs):
    return [{"product_id": pid, "quantity": qty} for pid, qty in pairs]


class TestCreateShipment:

    def test_batch_moves_every_item(
        self, session, shipment_service, product_factory, fetch_product, marketer
    ):
        p1 = product_factory(quantity=10, stored=6)
        p2 = product_factory(quantity=5, stored=5)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.",
            ETA,
            _items((p1, 4), (str(p2), 5)),
            marketer,
            driver_name="Ali",
            vehicle_plate="34 ABC 123",
        )

        assert result.status == OperationStatus.APPLIED
        shipment = result.shipment
        assert shipment.status is ShipmentStatus.PLANNED
        assert shipment.exit_date is None
        assert shipment.estimated_date == date(2026, 11, 2)
        assert shipment.total_quantity == 9
        assert {i.product_id: i.quantity for i in shipment.items} == {p1: 4, p2: 5}

        row1, row2 = fetch_product(p1), fetch_product(p2)
        assert (row1.stored, row1.shipped) == (2, 4)
        assert row1.status == ProductionStatus.IN_PRODUCTION.value
        assert row1.sub_status == "Kısmi Sevk"
        assert (row2.stored, row2.shipped) == (0, 5)
        assert row2.status == ProductionStatus.SHIPPED.value

    def test_accepts_item_dtos(self, shipment_service, product_factory, marketer):
        pid = product_factory(quantity=4, stored=4)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.", date(2026, 11, 2), [ShipmentItemInfo(pid, 4)], marketer
        )

        assert result.status == OperationStatus.APPLIED

    def test_all_or_nothing(
        self, session, shipment_service, product_factory, fetch_product, marketer
    ):
        p1 = product_factory(quantity=10, stored=6)
        p2 = product_factory(quantity=10, stored=1)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.", ETA, _items((p1, 4), (p2, 3)), marketer
        )

        assert result.status == OperationStatus.INSUFFICIENT_QUANTITY
        assert StageSet.from_model(fetch_product(p1)) == StageSet(stored=6)
        assert StageSet.from_model(fetch_product(p2)) == StageSet(stored=1)
        assert ShipmentSelector(session).list_shipments() == []

    def test_duplicate_items_summed(self, shipment_service, product_factory, marketer):
        pid = product_factory(quantity=10, stored=6)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.", ETA, _items((pid, 2), (pid, 3)), marketer
        )

        assert result.status == OperationStatus.APPLIED
        assert [(i.product_id, i.quantity) for i in result.shipment.items] == [(pid, 5)]

    def test_duplicate_items_checked_on_sum(
        self, shipment_service, product_factory, fetch_product, marketer
    ):
        pid = product_factory(quantity=10, stored=6)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.", ETA, _items((pid, 4), (pid, 3)), marketer
        )

        assert result.status == OperationStatus.INSUFFICIENT_QUANTITY
        assert fetch_product(pid).stored == 6

    @pytest.mark.parametrize(
        "company, eta, quantity",
        [
            ("   ", ETA, 1),
            ("Mobilya A.Ş.", "next week", 1),
            ("Mobilya A.Ş.", None, 1),
            ("Mobilya A.Ş.", ETA, 0),
        ],
    )
    def test_invalid_input(self, shipment_service, product_factory, marketer, company, eta, quantity):
        pid = product_factory(quantity=10, stored=6)

        result = shipment_service.create_shipment(company, eta, _items((pid, quantity)), marketer)

        assert result.status == OperationStatus.VALIDATION_FAILED

    def test_empty_items(self, shipment_service, marketer, db_engine):
        result = shipment_service.create_shipment("Mobilya A.Ş.", ETA, [], marketer)
        assert result.status == OperationStatus.VALIDATION_FAILED

    def test_unknown_product(self, shipment_service, product_factory, fetch_product, marketer):
        pid = product_factory(quantity=10, stored=6)

        result = shipment_service.create_shipment(
            "Mobilya A.Ş.", ETA, _items((pid, 1), (uuid4(), 1)), marketer
        )

        assert result.status == OperationStatus.NOT_FOUND
        assert fetch_product(pid).stored == 6

    def test_role_without_shipped_capability(self, shipment_service, product_factory, engineer):
        pid = product_factory(quantity=10, stored=6)

        result = shipment_service.create_shipment("Mobilya A.Ş.", ETA, _items((pid, 1)), engineer)

        assert result.status == OperationStatus.UNAUTHORIZED


class TestShipProduct:

    def test_quick_ship(self, shipment_service, product_factory, fetch_product, warehouse_clerk):
        pid = product_factory(quantity=10, stored=5)

        result = shipment_service.ship_product(pid, 3, "Ev Dekor", warehouse_clerk)

        assert result.status == OperationStatus.APPLIED
        assert result.shipment.status is ShipmentStatus.SHIPPED
        assert result.shipment.exit_date is not None
        assert result.shipment.company == "Ev Dekor"
        assert result.product.stages == StageSet(stored=2, shipped=3)
        assert result.shipment_id == result.shipment.id

        row = fetch_product(pid)
        assert (row.stored, row.shipped) == (2, 3)

    def test_company_falls_back_to_product(self, shipment_service, product_factory, warehouse_clerk):
        pid = product_factory(quantity=10, company="Mobilya A.Ş.", stored=5)

        result = shipment_service.ship_product(pid, 1, "  ", warehouse_clerk)

        assert result.shipment.company == "Mobilya A.Ş."

    def test_company_unspecified(self, shipment_service, product_factory, warehouse_clerk):
        pid = product_factory(quantity=10, stored=5)

        result = shipment_service.ship_product(pid, 1, None, warehouse_clerk)

        assert result.shipment.company == UNSPECIFIED_COMPANY

    def test_full_quantity_shipped(self, shipment_service, product_factory, warehouse_clerk):
        pid = product_factory(quantity=4, stored=4)

        result = shipment_service.ship_product(pid, 4, "Ev Dekor", warehouse_clerk)

        assert result.product.status is ProductionStatus.SHIPPED
        assert result.product.sub_status == "Sevk Edildi"

    def test_insufficient_stored_creates_no_shipment(
        self, session, shipment_service, product_factory, fetch_product, warehouse_clerk
    ):
        pid = product_factory(quantity=10, packaged=5, stored=2)

        result = shipment_service.ship_product(pid, 3, "Ev Dekor", warehouse_clerk)

        assert result.status == OperationStatus.INSUFFICIENT_QUANTITY
        assert fetch_product(pid).stored == 2
        assert ShipmentSelector(session).list_shipments() == []


class TestUpdateShipmentStatus:

    @pytest.fixture
    def planned(self, shipment_service, product_factory, marketer):
        pid = product_factory(quantity=10, stored=6)
        result = shipment_service.create_shipment("Mobilya A.Ş.", ETA, _items((pid, 4)), marketer)
        return pid, result.shipment_id

    def test_planned_to_shipped(self, shipment_service, fetch_product, planned, marketer):
        pid, sid = planned
        before = StageSet.from_model(fetch_product(pid))

        result = shipment_service.update_shipment_status(sid, "shipped", marketer)

        assert result.status == OperationStatus.APPLIED
        assert result.shipment.status is ShipmentStatus.SHIPPED
        assert result.shipment.exit_date is not None
        assert StageSet.from_model(fetch_product(pid)) == before

    def test_repeat_is_noop(self, session, shipment_service, planned, marketer):
        _, sid = planned

        shipment_service.update_shipment_status(sid, ShipmentStatus.SHIPPED, marketer)
        again = shipment_service.update_shipment_status(sid, ShipmentStatus.SHIPPED, marketer)

        assert again.status == OperationStatus.APPLIED
        entries = session.execute(
            select(AuditLogEntry).where(
                AuditLogEntry.action == AuditAction.UPDATE_SHIPMENT_STATUS.value
            )
        ).scalars().all()
        assert len(entries) == 1

    def test_shipped_cannot_return_to_planned(self, shipment_service, planned, marketer):
        _, sid = planned
        shipment_service.update_shipment_status(sid, "SHIPPED", marketer)

        result = shipment_service.update_shipment_status(sid, "PLANNED", marketer)

        assert result.status == OperationStatus.INVALID_TRANSITION
        assert result.shipment_id == sid

    def test_unknown_status(self, shipment_service, planned, marketer):
        _, sid = planned
        result = shipment_service.update_shipment_status(sid, "LOST", marketer)
        assert result.status == OperationStatus.VALIDATION_FAILED

    def test_unknown_shipment(self, shipment_service, marketer, db_engine):
        result = shipment_service.update_shipment_status(uuid4(), "SHIPPED", marketer)
        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "SHIPMENT_NOT_FOUND"

    def test_exit_date_taken_at_dispatch(
        self, shipment_service, deterministic_clock, planned, marketer
    ):
        _, sid = planned
        deterministic_clock.advance(timedelta(days=2))

        result = shipment_service.update_shipment_status(sid, "SHIPPED", marketer)

        assert result.shipment.exit_date == deterministic_clock.now()
        assert deterministic_clock.today() == date(2024, 1, 3)
