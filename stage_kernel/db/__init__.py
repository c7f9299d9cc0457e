"""Database layer - engine, base classes, and append-only enforcement."""

from stage_kernel.db.base import Base, TrackedBase, UUIDString, counter_column
from stage_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "counter_column",
]
