from __future__ import annotations

from ..extensions import db
from docstock.time_utils import to_utc_z


MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_ADJUST = "ADJUST"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_ADJUST)

SOURCE_RECEIPT = "RECEIPT"
SOURCE_DELIVERY = "DELIVERY"
SOURCE_INVOICE = "INVOICE"
SOURCE_INVENTORY = "INVENTORY"
SOURCE_ADJUSTMENT = "ADJUSTMENT"
SOURCE_TRANSFER = "TRANSFER"
SOURCE_RETURN = "RETURN"
SOURCE_OTHER = "OTHER"
SOURCE_KINDS = (
    SOURCE_RECEIPT,
    SOURCE_DELIVERY,
    SOURCE_INVOICE,
    SOURCE_INVENTORY,
    SOURCE_ADJUSTMENT,
    SOURCE_TRANSFER,
    SOURCE_RETURN,
    SOURCE_OTHER,
)


class Product(db.Model):
    """
    Product master data, tenant-scoped.

    is_stock_tracked=False marks service items: they never produce stock
    movements and the availability guard ignores them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_stock_tracked = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "is_stock_tracked": self.is_stock_tracked,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    IN and OUT carry a positive quantity; ADJUST carries a signed delta.
    Rows are never updated or deleted: corrections are new movements.
    """
    __tablename__ = "stock_movements"

    id = db.Column(db.Integer, primary_key=True)

    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    source_kind = db.Column(db.String(16), nullable=False)
    source_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_stockmv_tenant_product_wh_type", "tenant_id", "product_id", "warehouse_id", "type"),
        db.Index("ix_stockmv_tenant_source", "tenant_id", "source_kind", "source_id"),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "type": self.type,
            "quantity": str(self.quantity),
            "occurred_at": to_utc_z(self.occurred_at),
            "source_kind": self.source_kind,
            "source_id": self.source_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
