"""
BaseService -- common shape of the kernel's write services.

Every write service receives the caller's Session and only ever flushes.
The orchestrators in ``stage_services`` own commit and rollback, so a lock
taken by ``LedgerService.lock_product`` is held until the whole operation
has been written.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stage_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session

    def _persist(self, row: ModelType) -> ModelType:
        """Add a new row and flush so its id and defaults are populated."""
        self.session.add(row)
        self.session.flush()
        return row
