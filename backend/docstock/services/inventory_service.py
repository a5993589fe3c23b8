# Overview: Stock-affecting workflows (receipts, adjustments, transfers) over the ledger.

from __future__ import annotations

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUST,
    MOVEMENT_IN,
    MOVEMENT_OUT,
    SOURCE_ADJUSTMENT,
    SOURCE_RECEIPT,
    SOURCE_TRANSFER,
)
from . import tenant_service
from .availability_service import ensure_available
from .concurrency import lock_for_update
from .stock_service import StockError, record_movement, to_quantity


def _lock_product(tenant_id: int, product_id: int) -> Product:
    """
    Lock the product row for the rest of the transaction.

    Serializes check-then-write for one product on databases that honor
    SELECT ... FOR UPDATE; a no-op on SQLite.
    """
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None or product.tenant_id != tenant_id:
        raise tenant_service.TenantError(f"Product {product_id} not found")
    return product


def receive_stock(
    *,
    tenant_id: int,
    product_id: int,
    quantity,
    warehouse_id: int | None = None,
    occurred_at=None,
    source_id: str | None = None,
    notes: str | None = None,
    created_by: str | None = None,
) -> StockMovement:
    """Record goods received (IN) and commit."""
    try:
        movement = record_movement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=MOVEMENT_IN,
            quantity=quantity,
            source_kind=SOURCE_RECEIPT,
            warehouse_id=warehouse_id,
            occurred_at=occurred_at,
            source_id=source_id,
            notes=notes,
            created_by=created_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return movement


def adjust_stock(
    *,
    tenant_id: int,
    product_id: int,
    quantity_delta,
    warehouse_id: int | None = None,
    occurred_at=None,
    notes: str | None = None,
    created_by: str | None = None,
) -> StockMovement:
    """
    Record an inventory correction (signed ADJUST) and commit.

    Adjustments reconcile the ledger with a physical count, so they are not
    subject to the availability guard.
    """
    try:
        movement = record_movement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=MOVEMENT_ADJUST,
            quantity=quantity_delta,
            source_kind=SOURCE_ADJUSTMENT,
            warehouse_id=warehouse_id,
            occurred_at=occurred_at,
            notes=notes,
            created_by=created_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return movement


def transfer_stock(
    *,
    tenant_id: int,
    product_id: int,
    quantity,
    from_warehouse_id: int,
    to_warehouse_id: int,
    occurred_at=None,
    notes: str | None = None,
    created_by: str | None = None,
) -> tuple[StockMovement, StockMovement]:
    """
    Move stock between two warehouses of the tenant.

    Guards the source warehouse, then writes OUT (source) and IN (destination)
    in one transaction. Either both movements land or neither does.
    """
    if from_warehouse_id == to_warehouse_id:
        raise StockError("source and destination warehouses must differ")

    qty = to_quantity(quantity)
    if qty <= 0:
        raise StockError("quantity must be positive")

    try:
        tenant_service.require_warehouse_in_tenant(from_warehouse_id, tenant_id)
        tenant_service.require_warehouse_in_tenant(to_warehouse_id, tenant_id)
        product = _lock_product(tenant_id, product_id)

        ensure_available(tenant_id, product_id, qty, from_warehouse_id, label=product.name)

        source_id = f"{from_warehouse_id}->{to_warehouse_id}"
        out_mv = record_movement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=MOVEMENT_OUT,
            quantity=qty,
            source_kind=SOURCE_TRANSFER,
            warehouse_id=from_warehouse_id,
            occurred_at=occurred_at,
            source_id=source_id,
            notes=notes,
            created_by=created_by,
        )
        in_mv = record_movement(
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=MOVEMENT_IN,
            quantity=qty,
            source_kind=SOURCE_TRANSFER,
            warehouse_id=to_warehouse_id,
            occurred_at=occurred_at,
            source_id=source_id,
            notes=notes,
            created_by=created_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return out_mv, in_mv
