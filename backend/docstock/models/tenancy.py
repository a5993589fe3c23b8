from __future__ import annotations

from ..extensions import db
from docstock.time_utils import to_utc_z


NEGATIVE_STOCK_FORBID = "FORBID"
NEGATIVE_STOCK_WARN = "WARN"
NEGATIVE_STOCK_ALLOW = "ALLOW"
NEGATIVE_STOCK_POLICIES = (NEGATIVE_STOCK_FORBID, NEGATIVE_STOCK_WARN, NEGATIVE_STOCK_ALLOW)


class Tenant(db.Model):
    """
    Multi-tenant root: every numbering counter, template, product and stock
    movement belongs to exactly one tenant.

    negative_stock_policy controls the availability guard:
    - FORBID: stock-out beyond the balance is rejected (default)
    - WARN: the shortfall is logged and the operation proceeds
    - ALLOW: no check at all
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    negative_stock_policy = db.Column(db.String(16), nullable=False, default=NEGATIVE_STOCK_FORBID)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "negative_stock_policy": self.negative_stock_policy,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Warehouse(db.Model):
    """
    Stock location within a tenant.

    The warehouse flagged is_default also owns every movement recorded without
    a warehouse (data written before multi-warehouse support).
    """
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_warehouses_tenant_name"),
        db.Index("ix_warehouses_tenant_default", "tenant_id", "is_default"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    tenant = db.relationship("Tenant", backref=db.backref("warehouses", lazy=True))

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "code": self.code,
            "is_default": self.is_default,
        }
