"""
Tenant configuration and scoping helpers.

WHY: Numbering and stock services only ever read tenant configuration
(templates, starting values, default warehouse, negative-stock policy).
Centralizing the reads keeps every query tenant-scoped and gives routes one
place to validate client-supplied ids.

INVARIANTS:
1. Nothing in this module writes tenant configuration.
2. Ids from client input are validated against the request tenant; an id
   that belongs to another tenant is reported as "not found".
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import NumberingTemplate, Product, Tenant, Warehouse
from ..models.tenancy import NEGATIVE_STOCK_FORBID, NEGATIVE_STOCK_POLICIES


class TenantError(Exception):
    """Raised when tenant context is missing or an id is outside the tenant."""
    pass


def require_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None or not tenant.is_active:
        raise TenantError(f"Tenant {tenant_id} not found")
    return tenant


def get_numbering_template(tenant_id: int, series_code: str) -> NumberingTemplate | None:
    return (
        db.session.query(NumberingTemplate)
        .filter_by(tenant_id=tenant_id, series_code=series_code)
        .first()
    )


def get_starting_value(tenant_id: int, series_code: str) -> int:
    template = get_numbering_template(tenant_id, series_code)
    if template is None or template.starting_value is None:
        return 0
    return max(0, int(template.starting_value))


def get_default_warehouse(tenant_id: int) -> Warehouse | None:
    return (
        db.session.query(Warehouse)
        .filter_by(tenant_id=tenant_id, is_default=True)
        .order_by(Warehouse.id)
        .first()
    )


def require_warehouse_in_tenant(warehouse_id: int, tenant_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None or warehouse.tenant_id != tenant_id:
        raise TenantError(f"Warehouse {warehouse_id} not found")
    return warehouse


def require_product_in_tenant(product_id: int, tenant_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or product.tenant_id != tenant_id:
        raise TenantError(f"Product {product_id} not found")
    return product


def get_negative_stock_policy(tenant_id: int) -> str:
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None:
        return NEGATIVE_STOCK_FORBID
    policy = (tenant.negative_stock_policy or NEGATIVE_STOCK_FORBID).upper()
    if policy not in NEGATIVE_STOCK_POLICIES:
        current_app.logger.warning(
            "Tenant %s has unknown negative stock policy %r; using %s",
            tenant_id, tenant.negative_stock_policy, NEGATIVE_STOCK_FORBID,
        )
        return NEGATIVE_STOCK_FORBID
    return policy
