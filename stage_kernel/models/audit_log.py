"""
Module: stage_kernel.models.audit_log
Responsibility: ORM persistence for the default audit sink.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    APPEND_ONLY_RECORDS -- no UPDATE or DELETE (ORM listener).

Audit relevance:
    Mirrors the external collaborator's contract
    ``record(action, entity_type, entity_id, detail, actor_id)``; deployments
    with their own audit store plug in a different sink instead.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stage_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CREATE_PRODUCT = "CREATE_PRODUCT"

    UPDATE_STAGES = "UPDATE_STAGES"
    UPDATE_STAGES_REJECTED = "UPDATE_STAGES_REJECTED"

    TRANSFER_TO_WAREHOUSE = "TRANSFER_TO_WAREHOUSE"
    TRANSFER_TO_WAREHOUSE_REJECTED = "TRANSFER_TO_WAREHOUSE_REJECTED"

    CREATE_SHIPMENT = "CREATE_SHIPMENT"
    CREATE_SHIPMENT_REJECTED = "CREATE_SHIPMENT_REJECTED"
    SHIP_PRODUCT = "SHIP_PRODUCT"
    SHIP_PRODUCT_REJECTED = "SHIP_PRODUCT_REJECTED"
    UPDATE_SHIPMENT_STATUS = "UPDATE_SHIPMENT_STATUS"
    UPDATE_SHIPMENT_STATUS_REJECTED = "UPDATE_SHIPMENT_STATUS_REJECTED"


class AuditLogEntry(Base):
    """One audit record. Append-only."""

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_occurred", "occurred_at"),
    )

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.entity_type}:{self.entity_id}>"
