"""
Purchase Return Service

WHY: Goods sent back to a supplier leave stock. The return is drafted first
(numbered, no stock effect) and validated later, which is when the stock
actually moves.

DESIGN PRINCIPLES:
- Numbers come from the RETA series counter (numbering_service.next_number);
  each reservation commits before the insert and a taken number moves on
- Validation guards every line before writing anything
- One OUT movement per stock-tracked line, source RETURN
- All-or-nothing: a shortfall on any line aborts the whole validation
- The DRAFT -> VALIDATED flip is claimed with a conditional UPDATE, so a
  return is validated once
- Validated returns are immutable

LIFECYCLE:
1. Create return (DRAFT)
2. Validate (DRAFT -> VALIDATED): stock leaves the warehouse
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, PurchaseReturn, PurchaseReturnLine
from ..models.inventory import MOVEMENT_OUT, SOURCE_RETURN
from docstock.time_utils import utcnow
from . import tenant_service
from .allocator_service import AllocationExhausted, is_number_violation
from .availability_service import ensure_lines_available
from .concurrency import lock_for_update
from .numbering_service import SERIES_PURCHASE_RETURN, next_number
from .stock_service import StockError, record_movement, to_quantity


class ReturnError(Exception):
    """Raised for purchase return operation errors."""
    pass


RETURN_STATUS_DRAFT = "DRAFT"
RETURN_STATUS_VALIDATED = "VALIDATED"


def _normalize_lines(tenant_id: int, lines) -> list[dict]:
    if not lines:
        raise ReturnError("At least one line is required")

    normalized = []
    for index, line in enumerate(lines, start=1):
        product_id = line.get("product_id")
        if not product_id:
            raise ReturnError(f"Line {index}: product_id is required")
        try:
            quantity = to_quantity(line.get("quantity"))
        except StockError as e:
            raise ReturnError(f"Line {index}: {e}")
        if quantity <= 0:
            raise ReturnError(f"Line {index}: quantity must be positive")
        try:
            product = tenant_service.require_product_in_tenant(product_id, tenant_id)
        except tenant_service.TenantError as e:
            raise ReturnError(f"Line {index}: {e}")
        normalized.append({
            "product_id": product.id,
            "quantity": quantity,
            "label": line.get("label") or product.name,
        })
    return normalized


def create_purchase_return(
    *,
    tenant_id: int,
    lines,
    warehouse_id: int | None = None,
    supplier_name: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
    today: date | None = None,
) -> PurchaseReturn:
    """
    Create a DRAFT purchase return with a RETA number.

    Args:
        lines: iterable of {"product_id", "quantity", "label"?}

    Raises:
        ReturnError: invalid lines or warehouse
        AllocationExhausted: every reserved number was already taken
        RetryableStorageError / ConfigurationMissing: numbering failed
    """
    normalized = _normalize_lines(tenant_id, lines)
    if warehouse_id is not None:
        try:
            tenant_service.require_warehouse_in_tenant(warehouse_id, tenant_id)
        except tenant_service.TenantError as e:
            raise ReturnError(str(e))

    max_attempts = current_app.config.get("ALLOCATOR_MAX_ATTEMPTS", 50)
    number = None
    for attempt in range(1, max_attempts + 1):
        # The reservation is committed on its own so a failed insert never
        # hands the same counter value out again
        number = next_number(tenant_id, SERIES_PURCHASE_RETURN, today=today)
        db.session.commit()

        return_doc = PurchaseReturn(
            tenant_id=tenant_id,
            number=number,
            status=RETURN_STATUS_DRAFT,
            warehouse_id=warehouse_id,
            supplier_name=supplier_name,
            notes=notes,
            created_by=created_by,
        )
        try:
            db.session.add(return_doc)
            db.session.flush()
            for line in normalized:
                db.session.add(PurchaseReturnLine(
                    return_id=return_doc.id,
                    product_id=line["product_id"],
                    label=line["label"],
                    quantity=line["quantity"],
                ))
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if not is_number_violation(exc, PurchaseReturn):
                raise
            current_app.logger.warning(
                "Purchase return number %s already taken for tenant %s (attempt %s/%s)",
                number, tenant_id, attempt, max_attempts,
            )
            continue
        return return_doc

    raise AllocationExhausted(
        "Could not allocate a purchase return number. Please retry.",
        attempts=max_attempts,
        last_candidate=number,
    )


def get_purchase_return(return_id: int, tenant_id: int) -> PurchaseReturn:
    return_doc = db.session.get(PurchaseReturn, return_id)
    if return_doc is None or return_doc.tenant_id != tenant_id:
        raise ReturnError(f"Return {return_id} not found")
    return return_doc


def validate_purchase_return(return_id: int, tenant_id: int, validated_by: str | None = None) -> PurchaseReturn:
    """
    Take the returned goods out of stock.

    Raises:
        ReturnError: unknown return or not DRAFT
        InsufficientStock: some product lacks stock; nothing is written
        MovementWriteFailure: the ledger append failed; nothing is committed
    """
    return_doc = get_purchase_return(return_id, tenant_id)
    if return_doc.status != RETURN_STATUS_DRAFT:
        raise ReturnError(
            f"Can only validate DRAFT returns. Return {return_doc.number} has status: {return_doc.status}"
        )

    try:
        # Claim the transition first; a concurrent validation finds no DRAFT row
        claimed = (
            db.session.query(PurchaseReturn)
            .filter(
                PurchaseReturn.id == return_doc.id,
                PurchaseReturn.tenant_id == tenant_id,
                PurchaseReturn.status == RETURN_STATUS_DRAFT,
            )
            .update(
                {
                    PurchaseReturn.status: RETURN_STATUS_VALIDATED,
                    PurchaseReturn.validated_by: validated_by,
                    PurchaseReturn.validated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if claimed == 0:
            raise ReturnError(f"Return {return_doc.number} is no longer a DRAFT")

        product_ids = sorted({line.product_id for line in return_doc.lines})
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
            ).all()
        }
        tracked = [line for line in return_doc.lines if products[line.product_id].is_stock_tracked]

        ensure_lines_available(
            tenant_id,
            [
                {"product_id": line.product_id, "quantity": line.quantity, "label": line.label}
                for line in tracked
            ],
            warehouse_id=return_doc.warehouse_id,
        )

        for line in tracked:
            record_movement(
                tenant_id=tenant_id,
                product_id=line.product_id,
                movement_type=MOVEMENT_OUT,
                quantity=line.quantity,
                source_kind=SOURCE_RETURN,
                warehouse_id=return_doc.warehouse_id,
                source_id=return_doc.number,
                notes=f"Purchase return {return_doc.number}",
                created_by=validated_by,
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Purchase return %s validated: %s stock line(s) removed", return_doc.number, len(tracked)
    )
    return return_doc
