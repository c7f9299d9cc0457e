"""
stage_services -- transaction-owning operations of the stage allocation engine.

Every public operation returns an ``OperationResult``; no domain exception
crosses this boundary.
"""

from stage_services._operation_types import OperationResult, OperationStatus
from stage_services.bootstrap import init_from_config
from stage_services.rbac_authority import (
    check_stage_permission,
    require_any_stage_permission,
    require_stage_permission,
)
from stage_services.shipment_allocation_service import ShipmentAllocationService
from stage_services.stage_edit_service import StageEditService
from stage_services.warehouse_transfer_service import WarehouseTransferService

__all__ = [
    "OperationResult",
    "OperationStatus",
    "ShipmentAllocationService",
    "StageEditService",
    "WarehouseTransferService",
    "check_stage_permission",
    "init_from_config",
    "require_any_stage_permission",
    "require_stage_permission",
]
