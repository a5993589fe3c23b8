# Overview: Flask API routes for purchase returns; parses input and returns JSON responses.

"""
Purchase Return API Routes

DESIGN:
- Create returns as DRAFT (numbered, no stock effect)
- Validate to take the goods out of stock, all lines or none
- Insufficient stock is a 400 carrying the product, available and requested quantities
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import return_service
from ..services.return_service import ReturnError
from ..services.allocator_service import AllocationExhausted
from ..services.availability_service import InsufficientStock
from ..services.numbering_service import ConfigurationMissing, RetryableStorageError
from ..services.stock_service import MovementWriteFailure, StockError
from ..decorators import require_tenant


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("/")
@require_tenant
def create_return_route():
    """
    Create a DRAFT purchase return.

    Request body:
    {
        "warehouse_id": 2,  (optional)
        "supplier_name": "ACME Supplies",  (optional)
        "notes": "Damaged on arrival",  (optional)
        "lines": [{"product_id": 7, "quantity": 3, "label": "Widget"}]
    }

    Returns:
        201: Return created with its RETA number
        400: Invalid input
        409: No free number could be claimed (retryable)
    """
    data = request.get_json(silent=True) or {}

    try:
        return_doc = return_service.create_purchase_return(
            tenant_id=g.tenant_id,
            lines=data.get("lines") or [],
            warehouse_id=data.get("warehouse_id"),
            supplier_name=data.get("supplier_name"),
            notes=data.get("notes"),
            created_by=g.user,
        )
    except ReturnError as e:
        return jsonify({"error": str(e)}), 400
    except AllocationExhausted as e:
        return jsonify({"error": str(e), "retryable": True}), 409
    except RetryableStorageError as e:
        return jsonify({"error": str(e), "retryable": True}), 503
    except ConfigurationMissing as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to create purchase return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"return": return_doc.to_dict()}), 201


@returns_bp.get("/<int:return_id>")
@require_tenant
def get_return_route(return_id: int):
    try:
        return_doc = return_service.get_purchase_return(return_id, g.tenant_id)
    except ReturnError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"return": return_doc.to_dict()}), 200


@returns_bp.post("/<int:return_id>/validate")
@require_tenant
def validate_return_route(return_id: int):
    """
    Validate a DRAFT return: one OUT movement per stock-tracked line.

    Returns:
        200: Return validated
        400: Not DRAFT, or insufficient stock (nothing written)
    """
    try:
        return_doc = return_service.validate_purchase_return(return_id, g.tenant_id, validated_by=g.user)
    except InsufficientStock as e:
        return jsonify(e.as_dict()), 400
    except (ReturnError, StockError) as e:
        return jsonify({"error": str(e)}), 400
    except MovementWriteFailure as e:
        current_app.logger.exception("Ledger write failed validating return %s", return_id)
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to validate purchase return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"return": return_doc.to_dict()}), 200
