"""
Process startup for the stage allocation engine.

Single entrypoint for production wiring: applies the logging level and
database settings from the compiled configuration, and registers the
append-only listeners that the kernel leaves to its caller.
"""

from __future__ import annotations

from pathlib import Path

from stage_config import CompiledStageConfig, get_active_config
from stage_kernel.db.engine import create_tables, init_engine_from_url
from stage_kernel.db.immutability import register_immutability_listeners
from stage_kernel.logging_config import configure_logging, get_logger

logger = get_logger("services.bootstrap")


def init_from_config(
    config: CompiledStageConfig | None = None,
    config_path: Path | str | None = None,
    create_schema: bool = False,
) -> CompiledStageConfig:
    """Initialize logging, engine and listeners from configuration.

    Args:
        config: Already compiled configuration. Loaded from ``config_path``
            (or the default set) when omitted.
        config_path: YAML file to load when ``config`` is not given.
        create_schema: Create missing tables. Local runs and tests only;
            production schemas are managed outside the engine.

    Returns:
        The configuration the process now runs under.
    """
    if config is None:
        config = get_active_config(config_path)

    configure_logging(level=config.logging.level)
    init_engine_from_url(config.database.url, echo=config.database.echo)
    if create_schema:
        create_tables()
    register_immutability_listeners()

    logger.info(
        "stage_engine_initialized",
        extra={
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
        },
    )
    return config
