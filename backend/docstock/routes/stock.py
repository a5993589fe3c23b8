# Overview: Flask API routes for stock movements and ledger-derived balances.

"""
Stock ledger routes.

- Receive, adjust and transfer append movements; nothing is ever edited
- Balances are computed from the ledger on every read
- warehouse_id is optional everywhere; the default warehouse also owns
  movements recorded without one
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service, stock_service, tenant_service
from ..services.availability_service import InsufficientStock
from ..services.stock_service import MovementWriteFailure, StockError
from ..services.tenant_service import TenantError
from ..decorators import require_tenant


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _error_response(e: Exception, action: str):
    if isinstance(e, InsufficientStock):
        return jsonify(e.as_dict()), 400
    if isinstance(e, StockError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, TenantError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, MovementWriteFailure):
        current_app.logger.exception("Ledger write failed during %s", action)
        return jsonify({"error": str(e)}), 500
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def _summary(product_id: int, warehouse_id: int | None) -> dict:
    balance = stock_service.balance_of(g.tenant_id, product_id, warehouse_id)
    return {"product_id": product_id, "warehouse_id": warehouse_id, "balance": str(balance)}


@stock_bp.post("/receive")
@require_tenant
def receive_stock_route():
    """Receive goods into stock (IN movement)."""
    payload = request.get_json(silent=True) or {}
    product_id = payload.get("product_id")
    if not product_id:
        return jsonify({"error": "product_id is required"}), 400

    try:
        movement = inventory_service.receive_stock(
            tenant_id=g.tenant_id,
            product_id=product_id,
            quantity=payload.get("quantity"),
            warehouse_id=payload.get("warehouse_id"),
            occurred_at=payload.get("occurred_at"),
            source_id=payload.get("source_id"),
            notes=payload.get("notes"),
            created_by=g.user,
        )
    except Exception as e:
        return _error_response(e, "receive stock")

    return jsonify({"movement": movement.to_dict(), "summary": _summary(product_id, movement.warehouse_id)}), 201


@stock_bp.post("/adjust")
@require_tenant
def adjust_stock_route():
    """Record an inventory correction (signed ADJUST movement)."""
    payload = request.get_json(silent=True) or {}
    product_id = payload.get("product_id")
    if not product_id:
        return jsonify({"error": "product_id is required"}), 400

    try:
        movement = inventory_service.adjust_stock(
            tenant_id=g.tenant_id,
            product_id=product_id,
            quantity_delta=payload.get("quantity_delta"),
            warehouse_id=payload.get("warehouse_id"),
            occurred_at=payload.get("occurred_at"),
            notes=payload.get("notes"),
            created_by=g.user,
        )
    except Exception as e:
        return _error_response(e, "adjust stock")

    return jsonify({"movement": movement.to_dict(), "summary": _summary(product_id, movement.warehouse_id)}), 201


@stock_bp.post("/transfer")
@require_tenant
def transfer_stock_route():
    """Move stock between two warehouses (OUT + IN, both or neither)."""
    payload = request.get_json(silent=True) or {}
    required = ("product_id", "from_warehouse_id", "to_warehouse_id")
    missing = [k for k in required if not payload.get(k)]
    if missing:
        return jsonify({"error": f"{', '.join(missing)} required"}), 400

    try:
        out_mv, in_mv = inventory_service.transfer_stock(
            tenant_id=g.tenant_id,
            product_id=payload["product_id"],
            quantity=payload.get("quantity"),
            from_warehouse_id=payload["from_warehouse_id"],
            to_warehouse_id=payload["to_warehouse_id"],
            occurred_at=payload.get("occurred_at"),
            notes=payload.get("notes"),
            created_by=g.user,
        )
    except Exception as e:
        return _error_response(e, "transfer stock")

    return jsonify({"movements": [out_mv.to_dict(), in_mv.to_dict()]}), 201


@stock_bp.get("/<int:product_id>/balance")
@require_tenant
def balance_route(product_id: int):
    warehouse_id = request.args.get("warehouse_id", type=int)
    try:
        tenant_service.require_product_in_tenant(product_id, g.tenant_id)
        if warehouse_id is not None:
            tenant_service.require_warehouse_in_tenant(warehouse_id, g.tenant_id)
    except TenantError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(_summary(product_id, warehouse_id)), 200


@stock_bp.get("/<int:product_id>/movements")
@require_tenant
def movements_route(product_id: int):
    warehouse_id = request.args.get("warehouse_id", type=int)
    limit = request.args.get("limit", default=50, type=int)
    try:
        tenant_service.require_product_in_tenant(product_id, g.tenant_id)
    except TenantError as e:
        return jsonify({"error": str(e)}), 404

    movements = stock_service.list_movements(
        g.tenant_id, product_id, warehouse_id=warehouse_id, limit=limit
    )
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@stock_bp.get("/balances")
@require_tenant
def balances_route():
    """Balances for several products: ?product_ids=1,2,3[&warehouse_id=2]"""
    raw = request.args.get("product_ids", "")
    try:
        product_ids = [int(p) for p in raw.split(",") if p.strip()]
    except ValueError:
        return jsonify({"error": "product_ids must be a comma-separated list of integers"}), 400
    warehouse_id = request.args.get("warehouse_id", type=int)

    balances = stock_service.balances_of(g.tenant_id, product_ids, warehouse_id)
    return jsonify({"balances": {str(pid): str(qty) for pid, qty in balances.items()}}), 200
