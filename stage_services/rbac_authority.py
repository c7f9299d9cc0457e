"""
stage_services.rbac_authority -- Capability check at the operation boundary.

Responsibility:
    Answer one question for every mutating operation: may an actor acting
    under ``role`` change ``stage``?  The answer comes from the single
    ``(role, stage) -> allowed`` table in ``CompiledStageConfig``, so stage
    edits, warehouse intake and shipment dispatch all check the same data.

Architecture position:
    Services layer.  Consumes ``CompiledStageConfig`` from ``stage_config``.
    Called by the three orchestrators before any row is locked.

Invariants:
    - Fail-closed: an unknown or blank role is denied.
    - Kernel remains actor-agnostic; identity resolution belongs to the
      caller, which supplies ``ActorContext``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from stage_kernel.domain.stages import StageKey
from stage_kernel.exceptions import AuthorizationError

if TYPE_CHECKING:
    from stage_config.schema import CompiledStageConfig


def check_stage_permission(
    config: CompiledStageConfig,
    role: str | None,
    stage: StageKey | str,
) -> tuple[bool, str]:
    """Check whether ``role`` may change ``stage``.

    Returns:
        (allowed, reason). reason is empty when allowed, or a short message
        when denied.
    """
    stage_key = StageKey.parse(stage)

    resolved = config.resolve_role(role)
    if resolved is None:
        return (False, f"RBAC: unknown role {role!r}")

    if resolved not in config.roles_for(stage_key):
        return (
            False,
            f"RBAC: role '{resolved.value}' may not change stage '{stage_key.value}'",
        )

    return (True, "")


def require_stage_permission(
    config: CompiledStageConfig,
    role: str | None,
    stages: Iterable[StageKey | str],
) -> None:
    """Raise ``AuthorizationError`` for the first stage ``role`` may not change."""
    for stage in stages:
        allowed, reason = check_stage_permission(config, role, stage)
        if not allowed:
            raise AuthorizationError(
                role=str(role),
                stage=StageKey.parse(stage).value,
                reason=reason,
            )


def require_any_stage_permission(
    config: CompiledStageConfig,
    role: str | None,
    stages: Iterable[StageKey | str],
) -> None:
    """Raise ``AuthorizationError`` unless ``role`` may change at least one of ``stages``."""
    candidates = [StageKey.parse(s) for s in stages]
    reason = f"RBAC: unknown role {role!r}"
    for stage in candidates:
        allowed, reason = check_stage_permission(config, role, stage)
        if allowed:
            return
    raise AuthorizationError(
        role=str(role),
        stage=",".join(s.value for s in candidates),
        reason=reason,
    )
