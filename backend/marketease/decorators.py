# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


class PermissionDeniedError(Exception):
    """Raised when an authenticated user lacks the required role."""
    pass


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing, the token is invalid
    or expired, or the account has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def check_role(user, role: str) -> None:
    if user is None or not user.is_active or user.role != role:
        raise PermissionDeniedError(f"Role {role} required")


def require_role(role: str):
    """Require the authenticated user to hold `role`. Stack under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                check_role(g.current_user, role)
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
