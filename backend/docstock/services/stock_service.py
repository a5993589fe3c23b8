# Overview: Append-only stock movement ledger and ledger-derived balances.

"""
Stock ledger invariants (authoritative)

- Stock is ledger-derived from StockMovement rows; no mutable on-hand field
  exists anywhere.
- balance = SUM(IN) - SUM(OUT) + SUM(ADJUST) over matching movements.
- IN and OUT quantities are positive; ADJUST is a signed correction.
- Movements are never updated or deleted. A wrong movement is corrected by
  appending an offsetting one.
- Movements recorded without a warehouse belong to the tenant's default
  warehouse when balances are read per warehouse.
- record_movement() flushes but does not commit: the calling workflow commits
  all lines of one operation together.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUST,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TYPES,
    SOURCE_KINDS,
)
from docstock.time_utils import parse_iso_datetime, utcnow
from . import tenant_service


QUANTITY_STEP = Decimal("0.001")


class StockError(ValueError):
    """400-level stock input problem."""
    pass


class MovementWriteFailure(Exception):
    """Raised when a ledger append fails at the storage layer. Never retried."""
    pass


def to_quantity(value, *, field: str = "quantity") -> Decimal:
    """Normalize user input to a 3-decimal Decimal quantity."""
    if value is None or isinstance(value, bool):
        raise StockError(f"{field} is required")
    try:
        qty = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise StockError(f"{field} must be a number")
    if not qty.is_finite():
        raise StockError(f"{field} must be a finite number")
    return qty.quantize(QUANTITY_STEP)


def _parse_occurred_at(value) -> datetime:
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise StockError("invalid occurred_at")
        return dt
    raise StockError("invalid occurred_at")


def record_movement(
    *,
    tenant_id: int,
    product_id: int,
    movement_type: str,
    quantity,
    source_kind: str,
    warehouse_id: int | None = None,
    occurred_at=None,
    source_id: str | int | None = None,
    notes: str | None = None,
    created_by: str | None = None,
) -> StockMovement:
    """
    Append one movement to the ledger.

    Raises:
        StockError: invalid type, source, quantity or non-tracked product
        TenantError: product or warehouse outside the tenant
        MovementWriteFailure: the insert itself failed
    """
    if movement_type not in MOVEMENT_TYPES:
        raise StockError(f"type must be one of {', '.join(MOVEMENT_TYPES)}")
    if source_kind not in SOURCE_KINDS:
        raise StockError(f"source_kind must be one of {', '.join(SOURCE_KINDS)}")

    qty = to_quantity(quantity)
    if movement_type == MOVEMENT_ADJUST:
        if qty == 0:
            raise StockError("adjustment quantity must not be zero")
    elif qty <= 0:
        raise StockError("quantity must be positive")

    product = tenant_service.require_product_in_tenant(product_id, tenant_id)
    if not product.is_stock_tracked:
        raise StockError(f"product {product.name!r} is not stock-tracked")
    if warehouse_id is not None:
        tenant_service.require_warehouse_in_tenant(warehouse_id, tenant_id)

    movement = StockMovement(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        type=movement_type,
        quantity=qty,
        occurred_at=_parse_occurred_at(occurred_at),
        source_kind=source_kind,
        source_id=str(source_id) if source_id is not None else None,
        notes=notes,
        created_by=created_by,
    )
    db.session.add(movement)
    try:
        db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Stock movement write failed (tenant %s, product %s, %s %s): %s",
            tenant_id, product_id, movement_type, qty, exc,
        )
        raise MovementWriteFailure(
            f"Could not record {movement_type} movement for product {product_id}"
        ) from exc
    return movement


def _warehouse_filter(tenant_id: int, warehouse_id: int | None):
    """
    Warehouse scope for balance reads.

    The default warehouse also owns movements that carry no warehouse.
    """
    if warehouse_id is None:
        return None
    default = tenant_service.get_default_warehouse(tenant_id)
    if default is not None and default.id == warehouse_id:
        return or_(
            StockMovement.warehouse_id == warehouse_id,
            StockMovement.warehouse_id.is_(None),
        )
    return StockMovement.warehouse_id == warehouse_id


def _sum_of(movement_type: str):
    return func.coalesce(
        func.sum(case((StockMovement.type == movement_type, StockMovement.quantity), else_=0)),
        0,
    )


def _as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.000")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTITY_STEP)


def balance_of(tenant_id: int, product_id: int, warehouse_id: int | None = None) -> Decimal:
    """
    On-hand quantity for a product, optionally within one warehouse.

    Pure read; returns 0 when nothing matches.
    """
    q = db.session.query(
        _sum_of(MOVEMENT_IN).label("inflow"),
        _sum_of(MOVEMENT_OUT).label("outflow"),
        _sum_of(MOVEMENT_ADJUST).label("adjusted"),
    ).filter(
        StockMovement.tenant_id == tenant_id,
        StockMovement.product_id == product_id,
    )
    scope = _warehouse_filter(tenant_id, warehouse_id)
    if scope is not None:
        q = q.filter(scope)

    row = q.one()
    balance = _as_decimal(row.inflow) - _as_decimal(row.outflow) + _as_decimal(row.adjusted)
    if balance < 0:
        current_app.logger.warning(
            "Negative stock balance %s for product %s (tenant %s, warehouse %s)",
            balance, product_id, tenant_id, warehouse_id,
        )
    return balance


def balances_of(tenant_id: int, product_ids: list[int], warehouse_id: int | None = None) -> dict[int, Decimal]:
    """Balances for several products in one grouped query; zero-filled."""
    balances = {pid: Decimal("0.000") for pid in product_ids}
    if not product_ids:
        return balances

    q = db.session.query(
        StockMovement.product_id,
        _sum_of(MOVEMENT_IN).label("inflow"),
        _sum_of(MOVEMENT_OUT).label("outflow"),
        _sum_of(MOVEMENT_ADJUST).label("adjusted"),
    ).filter(
        StockMovement.tenant_id == tenant_id,
        StockMovement.product_id.in_(product_ids),
    )
    scope = _warehouse_filter(tenant_id, warehouse_id)
    if scope is not None:
        q = q.filter(scope)

    for row in q.group_by(StockMovement.product_id).all():
        balances[row.product_id] = (
            _as_decimal(row.inflow) - _as_decimal(row.outflow) + _as_decimal(row.adjusted)
        )
    return balances


def list_movements(
    tenant_id: int,
    product_id: int,
    *,
    warehouse_id: int | None = None,
    limit: int = 50,
) -> list[StockMovement]:
    """Movement history for a product, newest first."""
    q = db.session.query(StockMovement).filter(
        StockMovement.tenant_id == tenant_id,
        StockMovement.product_id == product_id,
    )
    scope = _warehouse_filter(tenant_id, warehouse_id)
    if scope is not None:
        q = q.filter(scope)

    limit = max(1, min(int(limit), 500))
    return (
        q.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
