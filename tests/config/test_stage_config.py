"""
Tests for stage_config: loading, validation, checksum and trace logging.
"""

import pytest
import yaml

from stage_config import Role, get_active_config
from stage_config.loader import compute_checksum, load_yaml_file, parse_configuration
from stage_kernel.domain.stages import StageKey

VALID = {
    "config_id": "test-set",
    "version": 3,
    "database": {"url": "sqlite://", "echo": False},
    "logging": {"level": "debug"},
    "roles": {"aliases": {"marketer": "marketing"}},
    "capabilities": {
        "foam": ["ADMIN", "WORKER"],
        "stored": ["WAREHOUSE"],
        "shipped": ["WAREHOUSE", "marketing"],
    },
}


def _write(tmp_path, data, name="stage.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def _with(**overrides):
    data = {k: (dict(v) if isinstance(v, dict) else v) for k, v in VALID.items()}
    data.update(overrides)
    return data


class TestDefaultConfiguration:

    def test_default_set_loads(self, stage_config):
        assert stage_config.config_id == "stage-allocation-default"
        assert stage_config.version == 1
        assert stage_config.database.url == "sqlite:///stage_engine.db"
        assert stage_config.logging.level == "INFO"
        assert stage_config.role_aliases == {"MARKETER": Role.MARKETING}

    def test_every_stage_has_an_entry(self, stage_config):
        assert set(stage_config.capabilities) == set(StageKey)

    def test_checksum_is_deterministic(self, stage_config):
        again = get_active_config()
        assert again.checksum == stage_config.checksum
        assert len(again.checksum) == 64

    def test_resolve_role(self, stage_config):
        assert stage_config.resolve_role("admin") is Role.ADMIN
        assert stage_config.resolve_role("Marketer") is Role.MARKETING
        assert stage_config.resolve_role(Role.WORKER) is Role.WORKER
        assert stage_config.resolve_role("GUEST") is None
        assert stage_config.resolve_role(None) is None


class TestCustomConfiguration:

    def test_custom_file(self, tmp_path):
        config = get_active_config(_write(tmp_path, VALID))

        assert config.config_id == "test-set"
        assert config.version == 3
        assert config.logging.level == "DEBUG"
        assert config.roles_for(StageKey.SHIPPED) == frozenset({Role.WAREHOUSE, Role.MARKETING})

    def test_omitted_stage_denies_everyone(self, tmp_path):
        config = get_active_config(_write(tmp_path, VALID))
        assert config.roles_for(StageKey.ASSEMBLY) == frozenset()

    def test_checksum_changes_with_content(self, tmp_path):
        first = get_active_config(_write(tmp_path, VALID, "a.yaml"))
        second = get_active_config(
            _write(tmp_path, _with(capabilities={"foam": ["ADMIN"]}), "b.yaml")
        )
        assert first.checksum != second.checksum

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    @pytest.mark.parametrize(
        "overrides, fragment",
        [
            ({"capabilities": {"foam": ["JANITOR"]}}, "Unknown role 'JANITOR'"),
            ({"capabilities": {"painting": ["ADMIN"]}}, "Unknown stage"),
            ({"roles": {"aliases": {"ADMIN": "WORKER"}}}, "shadows a real role"),
            ({"roles": {"aliases": {"BOSS": "OWNER"}}}, "unknown role 'OWNER'"),
            ({"logging": {"level": "LOUD"}}, "Unknown logging level"),
        ],
    )
    def test_invalid_configuration(self, tmp_path, overrides, fragment):
        path = _write(tmp_path, _with(**overrides))

        with pytest.raises(ValueError) as exc_info:
            get_active_config(path)

        assert fragment in str(exc_info.value)

    @pytest.mark.parametrize("missing", ["config_id", "capabilities"])
    def test_missing_required_key(self, tmp_path, missing):
        data = _with()
        del data[missing]

        with pytest.raises(KeyError):
            get_active_config(_write(tmp_path, data))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_empty_file_loads_as_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_yaml_file(path) == {}

    def test_parse_keeps_raw_aliases_uppercased(self):
        config_set = parse_configuration(_with())
        assert config_set.role_aliases == (("MARKETER", "MARKETING"),)


class TestConfigTrace:

    def test_trace_emitted(self, captured_logs):
        config = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "STAGE_CONFIG_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["logger"] == "stage_kernel.config"
        assert trace["config_set_id"] == config.config_id
        assert trace["checksum"] == config.checksum
        assert trace["alias_count"] == 1
