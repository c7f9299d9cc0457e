"""Kernel services - flush-only writers. Transaction control stays with the caller."""

from stage_kernel.services.auditor_service import AuditorService, AuditSink
from stage_kernel.services.inventory_service import InventoryService, normalize_shelf
from stage_kernel.services.ledger_service import LedgerService
from stage_kernel.services.product_service import ProductService
from stage_kernel.services.shipment_service import ShipmentService

__all__ = [
    "AuditSink",
    "AuditorService",
    "InventoryService",
    "LedgerService",
    "ProductService",
    "ShipmentService",
    "normalize_shelf",
]
