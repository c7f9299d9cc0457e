"""
Stage engine configuration schema.

Defines the human-authored source artifact (``StageConfigurationSet``,
parsed from YAML by the loader) and the runtime artifact
(``CompiledStageConfig``, returned by ``get_active_config()``).

Key distinction:
  StageConfigurationSet = source artifact (human-authored, versioned)
  CompiledStageConfig   = runtime artifact (validated, frozen, alias-resolved)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from stage_kernel.domain.stages import StageKey


class Role(str, Enum):
    """Roles the identity collaborator may resolve an actor to."""

    ADMIN = "ADMIN"
    PLANNER = "PLANNER"
    MARKETING = "MARKETING"
    WORKER = "WORKER"
    ENGINEER = "ENGINEER"
    WAREHOUSE = "WAREHOUSE"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///stage_engine.db"
    echo: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class CapabilityDef:
    """Roles allowed to change one stage."""

    stage: str
    roles: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Source artifact
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageConfigurationSet:
    """Parsed YAML, before validation and alias resolution."""

    config_id: str
    version: int
    database: DatabaseSettings
    logging: LoggingSettings
    role_aliases: tuple[tuple[str, str], ...] = ()  # (alias, canonical role)
    capabilities: tuple[CapabilityDef, ...] = ()
    checksum: str = ""


# ---------------------------------------------------------------------------
# Runtime artifact
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompiledStageConfig:
    """
    Validated configuration consumed at runtime.

    Guarantees:
        - Every stage in ``StageKey`` has an entry in ``capabilities``
          (possibly empty, which denies everyone).
        - Alias targets are real roles.
    """

    config_id: str
    version: int
    checksum: str
    database: DatabaseSettings
    logging: LoggingSettings
    role_aliases: dict[str, Role] = field(default_factory=dict)
    capabilities: dict[StageKey, frozenset[Role]] = field(default_factory=dict)

    def resolve_role(self, role: str | Role | None) -> Role | None:
        """Canonical role for ``role`` (aliases applied), None when unknown."""
        if role is None:
            return None
        if isinstance(role, Role):
            return role
        name = str(role).strip().upper()
        if name in self.role_aliases:
            return self.role_aliases[name]
        try:
            return Role(name)
        except ValueError:
            return None

    def roles_for(self, stage: StageKey) -> frozenset[Role]:
        return self.capabilities.get(stage, frozenset())
