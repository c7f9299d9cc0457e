"""
stage_config -- single public entrypoint for stage engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a ``CompiledStageConfig``: the
    capability table ``(role, stage) -> allowed``, role aliases, and the
    database and logging settings.

Architecture position:
    Configuration -- sits above ``stage_kernel`` and below
    ``stage_services``.  The kernel MUST NEVER import from ``stage_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown role, stage or log level.
    - ``KeyError`` -- a required top-level key is missing.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STAGE_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying every authorization decision to the exact capability
    table that made it.
"""

from __future__ import annotations

from pathlib import Path

from stage_config.loader import (
    compile_configuration,
    load_yaml_file,
    parse_configuration,
)
from stage_config.schema import CompiledStageConfig, Role
from stage_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> CompiledStageConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to stage_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH

    config = compile_configuration(parse_configuration(load_yaml_file(path)))

    _logger.info(
        "STAGE_CONFIG_TRACE",
        extra={
            "trace_type": "STAGE_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "alias_count": len(config.role_aliases),
            "capability_count": sum(len(r) for r in config.capabilities.values()),
        },
    )
    return config


__all__ = [
    "CompiledStageConfig",
    "Role",
    "get_active_config",
]
