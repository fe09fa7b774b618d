# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services.session_service import SessionContext
from .services.tenant_service import TenantAccessError, get_active_tenant


DEFAULT_STAFF = "Admin"


def require_tenant(f):
    """
    Establish the tenant/staff/shift session context for a request.

    Identity is authenticated upstream; the gateway forwards it as headers:
    - X-Tenant-Id: tenant id (REQUIRED)
    - X-Staff-User: staff username stamped on documents (default "Admin")
    - X-Shift: selected production shift (optional)

    Sets g.session_context to a SessionContext. Returns 401 if the tenant
    header is missing, malformed, unknown or inactive.
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
            get_active_tenant(tenant_id)
        except TenantAccessError as e:
            current_app.logger.warning("Rejected request for tenant %s: %s", raw_tenant, e)
            return jsonify({"error": str(e)}), 401

        staff = request.headers.get("X-Staff-User", "").strip() or DEFAULT_STAFF
        shift = request.headers.get("X-Shift", "").strip() or None

        g.session_context = SessionContext(tenant_id=tenant_id, staff=staff, shift=shift)
        return f(*args, **kwargs)

    return decorated_function
