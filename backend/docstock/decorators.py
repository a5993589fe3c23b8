# Overview: Request decorators establishing tenant context for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import tenant_service
from .services.tenant_service import TenantError


def require_tenant(f):
    """
    Establish tenant context from the gateway-resolved request headers.

    Authentication and tenant resolution happen upstream; this only reads
    their result. Sets:
    - g.tenant_id: the tenant every query must be scoped to
    - g.user: the acting user's identifier, recorded as created_by

    Returns 401 without a tenant header and 404 for unknown tenants.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_tenant = request.headers.get("X-Tenant-Id", "").strip()
        if not raw_tenant:
            return jsonify({"error": "Tenant context required"}), 401
        try:
            tenant_id = int(raw_tenant)
        except ValueError:
            return jsonify({"error": "Invalid tenant id"}), 401

        try:
            tenant_service.require_tenant(tenant_id)
        except TenantError as e:
            return jsonify({"error": str(e)}), 404

        g.tenant_id = tenant_id
        g.user = request.headers.get("X-User") or None

        return f(*args, **kwargs)

    return decorated_function
