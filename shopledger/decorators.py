# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .context import ContextError, context_from_headers
from .permissions import has_permission


def _has_caller() -> bool:
    return hasattr(g, "caller")


def require_context(f):
    """
    Resolve the caller forwarded by the auth gateway.

    Sets g.caller to a CallerContext. Returns 401 if the identity headers
    are missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.caller = context_from_headers(request.headers)
        except ContextError as e:
            return jsonify({"error": str(e), "kind": "UNAUTHENTICATED"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission for the resolved caller.

    Shop scoping is still checked by the service; this only gates the role.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_context was called first
            if not _has_caller():
                return jsonify({"error": "Authentication required", "kind": "UNAUTHENTICATED"}), 401

            if not has_permission(g.caller, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "kind": "PERMISSION",
                    "details": {"required_permission": permission_code},
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
