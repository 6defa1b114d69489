# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


def require_identity(f):
    """
    Establish tenant and user context from request headers.

    Sets the following Flask g attributes:
    - g.tenant_id: from X-Tenant-Id - REQUIRED
    - g.user_id: from X-User-Id - REQUIRED

    Identity is trusted as given; the engine does no authentication of its
    own. Returns 401 when either header is missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = (request.headers.get("X-Tenant-Id") or "").strip()
        user_id = (request.headers.get("X-User-Id") or "").strip()

        if not tenant_id or not user_id:
            return jsonify({"error": "X-Tenant-Id and X-User-Id headers required"}), 401

        g.tenant_id = tenant_id
        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
