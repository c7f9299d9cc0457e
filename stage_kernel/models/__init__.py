"""ORM models for the stage kernel."""

from stage_kernel.models.audit_log import AuditAction, AuditLogEntry
from stage_kernel.models.inventory import InventoryLocation, ProductionLog
from stage_kernel.models.product import Product
from stage_kernel.models.shipment import Shipment, ShipmentItem

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "InventoryLocation",
    "Product",
    "ProductionLog",
    "Shipment",
    "ShipmentItem",
]
