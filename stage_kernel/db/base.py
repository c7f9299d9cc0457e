"""
Module: stage_kernel.db.base
Responsibility: Declarative bases and column conventions shared by the
    product, inventory, shipment and audit tables.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    MUST NOT import from models/, services/, selectors/, domain/ or outer
    layers.

Invariants enforced:
    - Every row is keyed by a uuid4 stored as String(36), so SQLite test
      databases and PostgreSQL share one schema.
    - Stage counters are whole units: ``counter_column()`` is a NOT NULL
      Integer defaulting to 0 on both sides of the wire.
    - TrackedBase rows always carry the actor that created them.
"""

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID bound as its 36-character string, loaded back as ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> str | None:
        return None if value is None else str(value)

    def process_result_value(self, value: Any, dialect) -> UUID | None:
        return None if value is None else UUID(value)


def counter_column() -> Mapped[int]:
    """A stage counter: non-null whole units, 0 until something moves."""
    return mapped_column(Integer, default=0, server_default="0", nullable=False)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for rows that record who touched them and when.

    Guarantees:
        - created_at / updated_at come from the database clock.
        - created_by_id is NOT NULL; updated_by_id is set by the service
          that last changed the row.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
