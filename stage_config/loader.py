"""
Configuration Loader (``stage_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, parses it into the frozen dataclasses
of ``stage_config.schema``, validates role and stage names, and compiles
the result into a ``CompiledStageConfig``.  Runtime callers go through
``stage_config.get_active_config()``, never through this module.

Invariants enforced
-------------------
* No silent defaults for required keys: ``config_id`` and
  ``capabilities`` must be present.
* Unknown stage or role names are rejected, so a typo cannot quietly
  grant or deny a capability.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown role or stage names  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stage_config.schema import (
    CapabilityDef,
    CompiledStageConfig,
    DatabaseSettings,
    LoggingSettings,
    Role,
    StageConfigurationSet,
)
from stage_kernel.domain.stages import StageKey

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_database(data: dict[str, Any] | None) -> DatabaseSettings:
    data = data or {}
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_logging(data: dict[str, Any] | None) -> LoggingSettings:
    data = data or {}
    return LoggingSettings(level=str(data.get("level", LoggingSettings().level)).upper())


def parse_capabilities(data: dict[str, Any]) -> tuple[CapabilityDef, ...]:
    return tuple(
        CapabilityDef(stage=str(stage), roles=tuple(str(r).upper() for r in roles or ()))
        for stage, roles in data.items()
    )


def parse_configuration(data: dict[str, Any]) -> StageConfigurationSet:
    """
    Parse a ``StageConfigurationSet`` from the raw YAML dict.

    Raises:
        KeyError: if ``config_id`` or ``capabilities`` is missing.
    """
    aliases = (data.get("roles") or {}).get("aliases") or {}
    return StageConfigurationSet(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        database=parse_database(data.get("database")),
        logging=parse_logging(data.get("logging")),
        role_aliases=tuple(
            (str(alias).upper(), str(target).upper())
            for alias, target in sorted(aliases.items())
        ),
        capabilities=parse_capabilities(data["capabilities"]),
        checksum=compute_checksum(data),
    )


def validate_configuration(config_set: StageConfigurationSet) -> list[str]:
    """Return a list of problems; empty means valid."""
    errors: list[str] = []
    known_roles = {r.value for r in Role}
    known_stages = {s.value for s in StageKey}

    if config_set.logging.level not in _LOG_LEVELS:
        errors.append(f"Unknown logging level: {config_set.logging.level!r}")

    for alias, target in config_set.role_aliases:
        if alias in known_roles:
            errors.append(f"Alias {alias!r} shadows a real role")
        if target not in known_roles:
            errors.append(f"Alias {alias!r} points at unknown role {target!r}")

    seen: set[str] = set()
    for cap in config_set.capabilities:
        if cap.stage not in known_stages:
            errors.append(f"Unknown stage in capabilities: {cap.stage!r}")
        if cap.stage in seen:
            errors.append(f"Duplicate capability entry for stage {cap.stage!r}")
        seen.add(cap.stage)
        for role in cap.roles:
            if role not in known_roles:
                errors.append(f"Unknown role {role!r} for stage {cap.stage!r}")

    return errors


def compile_configuration(config_set: StageConfigurationSet) -> CompiledStageConfig:
    """
    Validate and freeze a configuration set.

    Raises:
        ValueError: listing every validation problem found.
    """
    errors = validate_configuration(config_set)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    declared = {cap.stage: cap.roles for cap in config_set.capabilities}
    capabilities = {
        stage: frozenset(Role(r) for r in declared.get(stage.value, ()))
        for stage in StageKey.ordered()
    }

    return CompiledStageConfig(
        config_id=config_set.config_id,
        version=config_set.version,
        checksum=config_set.checksum,
        database=config_set.database,
        logging=config_set.logging,
        role_aliases={alias: Role(target) for alias, target in config_set.role_aliases},
        capabilities=capabilities,
    )
