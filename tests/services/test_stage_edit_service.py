"""
Tests for StageEditService.

These tests verify:
- Edits cascade against the lock-held counters and persist with status
- Capped edits succeed with APPLIED_CAPPED and report requested vs applied
- stored / shipped are rejected without touching any counter
- Repeating an edit is a no-op (no write, no audit entry)
- Capability checks deny roles not listed for the edited stage
- preview() computes the outcome without persisting
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from stage_kernel.domain.stages import StageSet
from stage_kernel.domain.status import ProductionStatus
from stage_kernel.models.audit_log import AuditAction, AuditLogEntry
from stage_services import OperationStatus


def _audit_actions(session, action: AuditAction) -> list[AuditLogEntry]:
    return list(
        session.execute(
            select(AuditLogEntry).where(AuditLogEntry.action == action.value)
        ).scalars()
    )


class TestEditStages:

    def test_single_stage_edit(self, stage_edit_service, product_factory, fetch_product, worker):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"foam": 4}, worker)

        assert result.status == OperationStatus.APPLIED
        assert result.is_success
        assert result.product.stages == StageSet(foam=4)
        assert result.product.status is ProductionStatus.IN_PRODUCTION
        assert result.product.sub_status == "Süngerde"

        row = fetch_product(pid)
        assert row.foam == 4
        assert row.status == ProductionStatus.IN_PRODUCTION.value

    def test_cascade_reclaims_earlier_stages(
        self, stage_edit_service, product_factory, fetch_product, worker
    ):
        """foam=3, upholstery=2, quantity=5: assembly -> 5 empties both."""
        pid = product_factory(quantity=5, foam=3, upholstery=2)

        result = stage_edit_service.edit_stages(pid, {"assembly": 5}, worker)

        assert result.status == OperationStatus.APPLIED
        row = fetch_product(pid)
        assert (row.foam, row.upholstery, row.assembly) == (0, 0, 5)
        assert row.sub_status == "Montajda"

    def test_capped_when_downstream_holds_units(
        self, stage_edit_service, product_factory, fetch_product, admin
    ):
        pid = product_factory(quantity=10, stored=4, shipped=3)

        result = stage_edit_service.edit_stages(pid, {"assembly": 6}, admin)

        assert result.status == OperationStatus.APPLIED_CAPPED
        assert result.is_success
        assert result.requested == {"assembly": 6}
        assert result.applied == {"assembly": 3}
        assert result.capped_stages == ("assembly",)

        row = fetch_product(pid)
        assert (row.assembly, row.stored, row.shipped) == (3, 4, 3)

    def test_value_above_quantity_is_clamped(
        self, stage_edit_service, product_factory, fetch_product, worker
    ):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"foam": 50}, worker)

        assert result.status == OperationStatus.APPLIED_CAPPED
        assert fetch_product(pid).foam == 10

    def test_negative_value_is_clamped_to_zero(
        self, stage_edit_service, product_factory, fetch_product, worker
    ):
        pid = product_factory(quantity=10, foam=3)

        result = stage_edit_service.edit_stages(pid, {"foam": -2}, worker)

        assert result.status == OperationStatus.APPLIED_CAPPED
        row = fetch_product(pid)
        assert row.foam == 0
        assert row.status == ProductionStatus.PENDING.value

    def test_several_stages_in_one_call(self, stage_edit_service, product_factory, worker):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"assembly": 6, "foam": 6}, worker)

        assert result.status == OperationStatus.APPLIED_CAPPED
        assert result.product.stages == StageSet(foam=4, assembly=6)
        assert result.capped_stages == ("foam",)

    def test_fully_packaged_completes_line(self, stage_edit_service, product_factory, worker):
        pid = product_factory(quantity=10, assembly=10)

        result = stage_edit_service.edit_stages(pid, {"packaged": 10}, worker)

        assert result.product.stages == StageSet(packaged=10)
        assert result.product.status is ProductionStatus.COMPLETED
        assert result.product.sub_status == "Paketlendi"

    def test_update_is_audited(self, session, stage_edit_service, product_factory, worker):
        pid = product_factory(quantity=10)

        stage_edit_service.edit_stages(pid, {"upholstery": 2}, worker)

        entries = _audit_actions(session, AuditAction.UPDATE_STAGES)
        assert len(entries) == 1
        assert entries[0].entity_id == str(pid)
        assert entries[0].actor_id == worker.actor_id
        assert entries[0].payload["after"]["upholstery"] == 2
        assert "Döşemede: 0 -> 2" in entries[0].detail


class TestIdempotence:

    def test_repeated_edit_is_noop(
        self, session, stage_edit_service, product_factory, fetch_product, worker
    ):
        pid = product_factory(quantity=10)

        first = stage_edit_service.edit_stages(pid, {"foam": 3}, worker)
        version_after_first = fetch_product(pid).version
        second = stage_edit_service.edit_stages(pid, {"foam": 3}, worker)

        assert first.status == OperationStatus.APPLIED
        assert second.status == OperationStatus.APPLIED
        assert second.product.stages == first.product.stages
        assert fetch_product(pid).version == version_after_first
        assert len(_audit_actions(session, AuditAction.UPDATE_STAGES)) == 1


class TestForbiddenFields:

    @pytest.mark.parametrize("edits", [{"stored": 5}, {"shipped": 1}, {"foam": 1, "stored": 5}])
    def test_downstream_stage_rejected(
        self, stage_edit_service, product_factory, fetch_product, worker, edits
    ):
        pid = product_factory(quantity=10, packaged=2)

        result = stage_edit_service.edit_stages(pid, edits, worker)

        assert result.status == OperationStatus.FORBIDDEN_FIELD
        assert result.error_code == "FORBIDDEN_FIELD"
        assert not result.is_success
        row = fetch_product(pid)
        assert StageSet.from_model(row) == StageSet(packaged=2)

    def test_rejection_is_audited(self, session, stage_edit_service, product_factory, worker):
        pid = product_factory(quantity=10)

        stage_edit_service.edit_stages(pid, {"stored": 5}, worker)

        rejected = _audit_actions(session, AuditAction.UPDATE_STAGES_REJECTED)
        assert len(rejected) == 1
        assert rejected[0].payload == {"error_code": "FORBIDDEN_FIELD"}


class TestValidation:

    @pytest.mark.parametrize(
        "edits",
        [{"painting": 3}, {"foam": "3"}, {"foam": 2.5}, {"foam": True}, {}, ["foam"]],
    )
    def test_malformed_edits(self, stage_edit_service, product_factory, worker, edits):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, edits, worker)

        assert result.status == OperationStatus.VALIDATION_FAILED

    def test_malformed_product_id(self, stage_edit_service, worker):
        result = stage_edit_service.edit_stages("not-a-uuid", {"foam": 1}, worker)
        assert result.status == OperationStatus.VALIDATION_FAILED
        assert result.product_id is None

    def test_unknown_product(self, stage_edit_service, worker, db_engine):
        missing = uuid4()

        result = stage_edit_service.edit_stages(missing, {"foam": 1}, worker)

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "PRODUCT_NOT_FOUND"
        assert result.product_id == missing


class TestAuthorization:

    def test_warehouse_role_cannot_edit_production_stage(
        self, stage_edit_service, product_factory, fetch_product, warehouse_clerk
    ):
        pid = product_factory(quantity=10, foam=1)

        result = stage_edit_service.edit_stages(pid, {"foam": 5}, warehouse_clerk)

        assert result.status == OperationStatus.UNAUTHORIZED
        assert "WAREHOUSE" in result.message
        assert fetch_product(pid).foam == 1

    def test_unknown_role_denied(self, stage_edit_service, product_factory, make_actor):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"foam": 1}, make_actor("GUEST"))

        assert result.status == OperationStatus.UNAUTHORIZED

    def test_role_alias_resolves(self, stage_edit_service, product_factory, make_actor):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"foam": 1}, make_actor("marketer"))

        assert result.status == OperationStatus.APPLIED


class TestEngineerNote:

    def test_note_only_update(self, stage_edit_service, product_factory, fetch_product, engineer):
        pid = product_factory(quantity=10, foam=2)

        result = stage_edit_service.edit_stages(pid, {}, engineer, note="Check stitching")

        assert result.status == OperationStatus.APPLIED
        assert result.product.engineer_note == "Check stitching"
        row = fetch_product(pid)
        assert row.engineer_note == "Check stitching"
        assert row.foam == 2

    def test_note_with_stage_edit(self, stage_edit_service, product_factory, engineer):
        pid = product_factory(quantity=10)

        result = stage_edit_service.edit_stages(pid, {"upholstery": 1}, engineer, note="Blue fabric")

        assert result.product.stages.upholstery == 1
        assert result.product.engineer_note == "Blue fabric"

    @pytest.mark.parametrize("role", ["WAREHOUSE", "GUEST"])
    def test_note_only_update_requires_stage_editor(
        self, session, stage_edit_service, product_factory, fetch_product, make_actor, role
    ):
        pid = product_factory(quantity=10, foam=2)

        result = stage_edit_service.edit_stages(pid, {}, make_actor(role), note="hijacked")

        assert result.status == OperationStatus.UNAUTHORIZED
        assert result.error_code == "AUTHORIZATION_ERROR"
        session.expire_all()
        assert fetch_product(pid).engineer_note is None


class TestPreview:

    def test_preview_does_not_persist(self, stage_edit_service, product_factory, fetch_product):
        pid = product_factory(quantity=5, foam=3, upholstery=2)

        result = stage_edit_service.preview(pid, {"assembly": 5})

        assert result.status == OperationStatus.APPLIED
        assert result.product.stages == StageSet(assembly=5)
        assert result.product.sub_status == "Montajda"
        row = fetch_product(pid)
        assert (row.foam, row.upholstery, row.assembly) == (3, 2, 0)

    def test_preview_reports_capping(self, stage_edit_service, product_factory):
        pid = product_factory(quantity=5, stored=4)

        result = stage_edit_service.preview(pid, {"packaged": 5})

        assert result.status == OperationStatus.APPLIED_CAPPED
        assert result.applied == {"packaged": 1}

    def test_preview_rejects_downstream_stage(self, stage_edit_service, product_factory):
        pid = product_factory(quantity=5)

        result = stage_edit_service.preview(pid, {"shipped": 1})

        assert result.status == OperationStatus.FORBIDDEN_FIELD

    def test_preview_unknown_product(self, stage_edit_service, db_engine):
        assert stage_edit_service.preview(uuid4(), {"foam": 1}).status == OperationStatus.NOT_FOUND
