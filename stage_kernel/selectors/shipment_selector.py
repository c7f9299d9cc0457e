"""
Module: stage_kernel.selectors.shipment_selector
Responsibility: Read-only shipment queries.  Items are eager-loaded with
    ``selectinload`` so listing shipments costs two queries, not N+1.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from stage_kernel.domain.dtos import ShipmentInfo, ShipmentItemInfo, ShipmentStatus
from stage_kernel.models.shipment import Shipment, ShipmentItem
from stage_kernel.selectors.base import BaseSelector


class ShipmentSelector(BaseSelector[Shipment]):

    def get(self, shipment_id: UUID) -> ShipmentInfo | None:
        shipment = self.session.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .options(selectinload(Shipment.items))
        ).scalar_one_or_none()
        if shipment is None:
            return None
        return ShipmentInfo.from_model(shipment)

    def list_shipments(self, status: ShipmentStatus | None = None) -> list[ShipmentInfo]:
        """Shipments with their items, newest first."""
        query = (
            select(Shipment)
            .options(selectinload(Shipment.items))
            .order_by(Shipment.created_at.desc(), Shipment.id)
        )
        if status is not None:
            query = query.where(Shipment.status == ShipmentStatus(status).value)
        return self._fetch_all(query, ShipmentInfo.from_model)

    def shipped_items(self, product_id: UUID | None = None) -> list[ShipmentItemInfo]:
        """Every shipment item, optionally for one product."""
        query = select(ShipmentItem).order_by(ShipmentItem.created_at, ShipmentItem.id)
        if product_id is not None:
            query = query.where(ShipmentItem.product_id == product_id)
        return self._fetch_all(query, ShipmentItemInfo.from_model)
