"""Tests for init_from_config, the production startup entrypoint."""

import pytest
import yaml
from sqlalchemy import event

from stage_kernel.db.engine import get_session, reset_engine
from stage_kernel.db.immutability import (
    _check_audit_entry_update,
    unregister_immutability_listeners,
)
from stage_kernel.models.audit_log import AuditLogEntry
from stage_kernel.selectors import ProductSelector
from stage_services import init_from_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "stage.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "config_id": "bootstrap-test",
                "database": {"url": f"sqlite:///{tmp_path / 'boot.db'}"},
                "capabilities": {"foam": ["ADMIN"]},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def bootstrapped_engine():
    yield
    reset_engine()


class TestInitFromConfig:

    def test_engine_and_schema_ready(self, config_file, bootstrapped_engine):
        config = init_from_config(config_path=config_file, create_schema=True)

        assert config.config_id == "bootstrap-test"
        session = get_session()
        try:
            assert ProductSelector(session).list_products() == []
        finally:
            session.close()

    def test_listeners_registered(self, config_file, bootstrapped_engine):
        unregister_immutability_listeners()

        init_from_config(config_path=config_file)

        assert event.contains(AuditLogEntry, "before_update", _check_audit_entry_update)

    def test_initialized_log_line(self, config_file, bootstrapped_engine, captured_logs):
        init_from_config(config_path=config_file)

        lines = [r for r in captured_logs() if r["message"] == "stage_engine_initialized"]
        assert [line["config_set_id"] for line in lines] == ["bootstrap-test"]
