"""
Supplier payment recording

WHY: Supplier payments are the busiest numbered series and the one most
often fed with hand-typed or imported numbers, so they are numbered through
the collision-resolving allocator instead of the plain series counter.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_

from ..extensions import db
from ..models import SupplierPayment
from docstock.time_utils import parse_iso_datetime, utcnow
from .allocator_service import allocate_unique
from .numbering_service import SERIES_SUPPLIER_PAYMENT


PAYMENT_METHODS = ("CASH", "CHECK", "BANK_TRANSFER", "CARD", "BILL_OF_EXCHANGE")


class PaymentError(ValueError):
    """Raised for invalid payment input."""
    pass


def _parse_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise PaymentError("amount is required")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PaymentError("amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise PaymentError("amount must be greater than zero")
    return amount.quantize(Decimal("0.001"))


def record_supplier_payment(
    *,
    tenant_id: int,
    supplier_name: str,
    amount,
    method: str = "CASH",
    reference: str | None = None,
    paid_at=None,
    notes: str | None = None,
    created_by: str | None = None,
    today: date | None = None,
) -> SupplierPayment:
    """
    Record a supplier payment under a freshly allocated PAFO number.

    Raises:
        PaymentError: invalid input
        AllocationExhausted: no free number within the attempt bound
    """
    supplier_name = (supplier_name or "").strip()
    if not supplier_name:
        raise PaymentError("supplier_name is required")
    amount_value = _parse_amount(amount)

    method = (method or "CASH").upper()
    if method not in PAYMENT_METHODS:
        raise PaymentError(f"method must be one of {', '.join(PAYMENT_METHODS)}")

    if isinstance(paid_at, str):
        try:
            paid_dt = parse_iso_datetime(paid_at)
        except ValueError:
            raise PaymentError("paid_at must be an ISO-8601 datetime")
    else:
        paid_dt = paid_at
    paid_dt = paid_dt or utcnow()

    def build(number: str) -> SupplierPayment:
        return SupplierPayment(
            tenant_id=tenant_id,
            number=number,
            supplier_name=supplier_name,
            amount=amount_value,
            method=method,
            reference=reference,
            paid_at=paid_dt,
            notes=notes,
            created_by=created_by,
        )

    return allocate_unique(
        tenant_id=tenant_id,
        model=SupplierPayment,
        series_code=SERIES_SUPPLIER_PAYMENT,
        build=build,
        today=today,
    )


def list_supplier_payments(
    tenant_id: int,
    *,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[SupplierPayment], int]:
    q = db.session.query(SupplierPayment).filter(SupplierPayment.tenant_id == tenant_id)
    if search:
        pattern = f"%{search}%"
        q = q.filter(
            or_(
                SupplierPayment.number.ilike(pattern),
                SupplierPayment.supplier_name.ilike(pattern),
                SupplierPayment.reference.ilike(pattern),
            )
        )

    total = q.count()

    if offset < 0:
        offset = 0
    if limit < 1:
        limit = 1
    if limit > 500:
        limit = 500

    rows = (
        q.order_by(SupplierPayment.paid_at.desc(), SupplierPayment.number.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total
