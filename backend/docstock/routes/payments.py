# Overview: Flask API routes for supplier payments; parses input and returns JSON responses.

"""
Supplier Payment API Routes

DESIGN:
- Payment numbers are allocated server-side (PAFO series); clients never send one
- Allocation exhaustion is a retryable conflict (409), never a silent duplicate
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import payment_service
from ..services.payment_service import PaymentError
from ..services.allocator_service import AllocationExhausted
from ..services.numbering_service import ConfigurationMissing, RetryableStorageError
from ..decorators import require_tenant


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/")
@require_tenant
def create_payment_route():
    """
    Record a supplier payment.

    Request body:
    {
        "supplier_name": "ACME Supplies",
        "amount": "150.500",
        "method": "BANK_TRANSFER",   (optional, default: CASH)
        "reference": "VIR-8841",     (optional)
        "paid_at": "2025-03-01T10:00:00Z",  (optional)
        "notes": "..."               (optional)
    }

    Returns:
        201: Payment created with its allocated number
        400: Invalid input
        409: No free number could be allocated; retry
    """
    data = request.get_json(silent=True) or {}

    try:
        payment = payment_service.record_supplier_payment(
            tenant_id=g.tenant_id,
            supplier_name=data.get("supplier_name"),
            amount=data.get("amount"),
            method=data.get("method") or "CASH",
            reference=data.get("reference"),
            paid_at=data.get("paid_at"),
            notes=data.get("notes"),
            created_by=g.user,
        )
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except AllocationExhausted as e:
        return jsonify({"error": str(e), "retryable": True}), 409
    except RetryableStorageError as e:
        return jsonify({"error": str(e), "retryable": True}), 503
    except ConfigurationMissing as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"payment": payment.to_dict()}), 201


@payments_bp.get("/")
@require_tenant
def list_payments_route():
    limit = request.args.get("limit", default=20, type=int)
    offset = request.args.get("offset", default=0, type=int)
    search = request.args.get("search") or None

    rows, total = payment_service.list_supplier_payments(
        g.tenant_id, search=search, limit=limit, offset=offset
    )
    return jsonify({
        "items": [p.to_dict() for p in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }), 200
