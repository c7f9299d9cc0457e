"""Read-only query selectors returning frozen DTOs."""

from stage_kernel.selectors.base import BaseSelector
from stage_kernel.selectors.product_selector import ProductSelector
from stage_kernel.selectors.shipment_selector import ShipmentSelector

__all__ = [
    "BaseSelector",
    "ProductSelector",
    "ShipmentSelector",
]
