"""
Module: stage_kernel.selectors.product_selector
Responsibility: Read-only product queries for the production, warehouse and
    shipping screens.

Failure modes:
    - ``get`` returns None for an unknown id; list queries return [] when
      nothing matches.  Absence of data never raises.
"""

from uuid import UUID

from sqlalchemy import select

from stage_kernel.domain.dtos import (
    InventoryLocationInfo,
    ProductInfo,
    ProductionLogInfo,
)
from stage_kernel.domain.status import ProductionStatus
from stage_kernel.models.inventory import InventoryLocation, ProductionLog
from stage_kernel.models.product import Product
from stage_kernel.selectors.base import BaseSelector


class ProductSelector(BaseSelector[Product]):
    """Queries over products, their shelves and their intake trail."""

    def get(self, product_id: UUID) -> ProductInfo | None:
        product = self.session.get(Product, product_id)
        if product is None:
            return None
        return ProductInfo.from_model(product)

    def list_products(self, status: ProductionStatus | None = None) -> list[ProductInfo]:
        """All products, optionally filtered by coarse status, by name."""
        query = select(Product).order_by(Product.name, Product.id)
        if status is not None:
            query = query.where(Product.status == ProductionStatus(status).value)
        return self._fetch_all(query, ProductInfo.from_model)

    def ready_to_ship(self) -> list[ProductInfo]:
        """Products with units in the warehouse; ``stages.stored`` is what can ship."""
        query = select(Product).where(Product.stored > 0).order_by(Product.name, Product.id)
        return self._fetch_all(query, ProductInfo.from_model)

    def inventory(self, product_id: UUID) -> list[InventoryLocationInfo]:
        """Shelf rows for one product, by shelf code."""
        query = (
            select(InventoryLocation)
            .where(InventoryLocation.product_id == product_id)
            .order_by(InventoryLocation.shelf)
        )
        return self._fetch_all(query, InventoryLocationInfo.from_model)

    def production_log(self, product_id: UUID) -> list[ProductionLogInfo]:
        """Intake trail for one product, oldest first."""
        query = (
            select(ProductionLog)
            .where(ProductionLog.product_id == product_id)
            .order_by(ProductionLog.occurred_at)
        )
        return self._fetch_all(query, ProductionLogInfo.from_model)
