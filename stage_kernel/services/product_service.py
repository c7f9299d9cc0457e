"""
ProductService -- product creation and free-text notes.

Responsibility:
    The seam where the legacy order importer hands a new order line to the
    engine: a product is created with its fixed ordered ``quantity``, all
    six counters at 0 and status PENDING.  Also owns ``engineer_note``,
    which is independent of the counters.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - quantity is a positive int, fixed at creation.
    - A new product satisfies the ledger trivially (all counters 0).

Failure modes:
    - InvalidQuantityError: quantity not a positive int.
    - ValidationError: blank name.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from stage_kernel.domain.dtos import ProductInfo
from stage_kernel.domain.status import ProductionStatus
from stage_kernel.exceptions import InvalidQuantityError, ValidationError
from stage_kernel.logging_config import get_logger
from stage_kernel.models.audit_log import AuditAction
from stage_kernel.models.product import Product
from stage_kernel.services.auditor_service import AuditSink
from stage_kernel.services.base import BaseService

logger = get_logger("services.product")


class ProductService(BaseService[Product]):
    """Creates products and edits their notes. Flush-only."""

    def __init__(
        self,
        session: Session,
        auditor: AuditSink | None = None,
    ):
        super().__init__(session)
        self._auditor = auditor

    def create_product(
        self,
        name: str,
        quantity: int,
        actor_id: UUID,
        system_code: str | None = None,
        barcode: str | None = None,
        order_ref: str | None = None,
        company: str | None = None,
    ) -> ProductInfo:
        """
        Create a product with all counters at 0 and status PENDING.

        Raises:
            ValidationError: if ``name`` is blank.
            InvalidQuantityError: if ``quantity`` is not a positive int.
        """
        if not name or not name.strip():
            raise ValidationError("Product name is required", field="name")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(quantity)

        product = Product(
            name=name.strip(),
            quantity=quantity,
            system_code=system_code,
            barcode=barcode,
            order_ref=order_ref,
            company=company,
            foam=0,
            upholstery=0,
            assembly=0,
            packaged=0,
            stored=0,
            shipped=0,
            status=ProductionStatus.PENDING.value,
            sub_status=None,
            created_by_id=actor_id,
        )
        self._persist(product)

        if self._auditor is not None:
            self._auditor.record(
                action=AuditAction.CREATE_PRODUCT.value,
                entity_type="Product",
                entity_id=str(product.id),
                detail=f"Created {product.name} x{quantity}",
                actor_id=actor_id,
            )

        logger.info(
            "product_created",
            extra={
                "product_id": str(product.id),
                "quantity": quantity,
                "system_code": system_code,
            },
        )
        return ProductInfo.from_model(product)

    def set_engineer_note(self, product: Product, note: str, actor_id: UUID) -> bool:
        """Overwrite the engineer note on an already-locked product.

        Returns False when the note already has that value.
        """
        if product.engineer_note == note:
            return False
        product.engineer_note = note
        product.updated_by_id = actor_id
        self.session.flush()
        return True
