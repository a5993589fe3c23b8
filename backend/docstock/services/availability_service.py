# Overview: Pre-flight stock sufficiency checks for stock-depleting operations.

"""
Stock availability guard

Call before writing OUT movements, inside the same unit of work that will
write them. The check is best-effort: without a cross-request lock another
operation can still deplete stock between the check and the ledger write.
The resulting negative balance is accepted and logged when read
(stock_service.balance_of) instead of being re-validated after the write.

Tenant negative_stock_policy:
- FORBID: raise InsufficientStock (default)
- WARN: log the shortfall and let the operation proceed
- ALLOW: skip the check
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..models.tenancy import NEGATIVE_STOCK_ALLOW, NEGATIVE_STOCK_WARN
from . import tenant_service
from .stock_service import StockError, balance_of, to_quantity


class InsufficientStock(StockError):
    """Requested quantity exceeds the available balance."""

    def __init__(self, *, available: Decimal, requested: Decimal, product_label: str, product_id: int | None = None):
        self.available = available
        self.requested = requested
        self.product_label = product_label
        self.product_id = product_id
        super().__init__(
            f'Insufficient stock for product "{product_label}". '
            f"Available: {available}, requested: {requested}"
        )

    def as_dict(self) -> dict:
        return {
            "error": str(self),
            "code": "INSUFFICIENT_STOCK",
            "product_id": self.product_id,
            "product_label": self.product_label,
            "available": str(self.available),
            "requested": str(self.requested),
        }


def ensure_available(
    tenant_id: int,
    product_id: int,
    requested_qty,
    warehouse_id: int | None = None,
    *,
    label: str | None = None,
) -> None:
    """
    Reject the operation if taking requested_qty would drive the balance negative.

    Non-stock-tracked products (service items) always pass.
    """
    requested = to_quantity(requested_qty, field="requested quantity")
    if requested <= 0:
        raise StockError("requested quantity must be positive")

    product = tenant_service.require_product_in_tenant(product_id, tenant_id)
    if not product.is_stock_tracked:
        return

    policy = tenant_service.get_negative_stock_policy(tenant_id)
    if policy == NEGATIVE_STOCK_ALLOW:
        return

    available = balance_of(tenant_id, product_id, warehouse_id)
    if requested <= available:
        return

    product_label = label or product.name
    current_app.logger.warning(
        "Insufficient stock for %r (product %s, tenant %s, warehouse %s): available %s, requested %s",
        product_label, product_id, tenant_id, warehouse_id, available, requested,
    )
    if policy == NEGATIVE_STOCK_WARN:
        return

    raise InsufficientStock(
        available=available,
        requested=requested,
        product_label=product_label,
        product_id=product_id,
    )


def ensure_lines_available(tenant_id: int, lines, warehouse_id: int | None = None) -> None:
    """
    Guard a multi-line operation as a whole.

    lines: iterable of dicts with product_id, quantity and optional label.
    Quantities of the same product are summed before checking, so two lines
    of 6 against a balance of 10 fail together.
    """
    totals: dict[int, Decimal] = {}
    labels: dict[int, str | None] = {}
    for line in lines:
        pid = line["product_id"]
        totals[pid] = totals.get(pid, Decimal("0")) + to_quantity(line["quantity"])
        labels.setdefault(pid, line.get("label"))

    for pid, qty in totals.items():
        ensure_available(tenant_id, pid, qty, warehouse_id, label=labels[pid])
