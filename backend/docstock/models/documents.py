from __future__ import annotations

from ..extensions import db
from docstock.time_utils import to_utc_z


class SupplierPayment(db.Model):
    """
    Payment to a supplier.

    number is allocated by the collision-resolving allocator; the
    (tenant_id, number) constraint is the final arbiter when two writers race.
    """
    __tablename__ = "supplier_payments"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "number", name="uq_supplier_payments_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    number = db.Column(db.String(64), nullable=False, index=True)

    supplier_name = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(14, 3), nullable=False)
    method = db.Column(db.String(32), nullable=False, default="CASH")
    reference = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "number": self.number,
            "supplier_name": self.supplier_name,
            "amount": str(self.amount),
            "method": self.method,
            "reference": self.reference,
            "notes": self.notes,
            "paid_at": to_utc_z(self.paid_at),
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseReturn(db.Model):
    """
    Goods sent back to a supplier.

    DRAFT returns have no stock effect. Validation writes one OUT movement per
    line in the same transaction that flips the status.
    """
    __tablename__ = "purchase_returns"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "number", name="uq_purchase_returns_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    number = db.Column(db.String(64), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    supplier_name = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    validated_by = db.Column(db.String(255), nullable=True)
    validated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "PurchaseReturnLine",
        backref="purchase_return",
        lazy=True,
        order_by="PurchaseReturnLine.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "number": self.number,
            "status": self.status,
            "warehouse_id": self.warehouse_id,
            "supplier_name": self.supplier_name,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "validated_by": self.validated_by,
            "validated_at": to_utc_z(self.validated_at) if self.validated_at else None,
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseReturnLine(db.Model):
    __tablename__ = "purchase_return_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("purchase_returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    label = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "label": self.label,
            "quantity": str(self.quantity),
        }
