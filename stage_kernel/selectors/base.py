"""
Module: stage_kernel.selectors.base
Responsibility: Shared plumbing for the read-only product and shipment
    queries behind the listing screens.
Architecture position: Kernel > Selectors.  May import db/, models/ and the
    frozen DTOs in domain/dtos.py.  MUST NOT import services/ or outer layers.

Invariants enforced:
    - Selectors never add, delete, flush or commit.
    - ORM rows never leave a selector; callers get DTOs.
    - No row locks.  Reads that feed a mutation go through
      ``LedgerService.lock_product`` instead.
"""

from abc import ABC
from typing import Callable, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import Session

from stage_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
DTO = TypeVar("DTO")


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session

    def _fetch_all(self, query: Select, to_dto: Callable[[object], DTO]) -> list[DTO]:
        return [to_dto(row) for row in self.session.execute(query).scalars()]
