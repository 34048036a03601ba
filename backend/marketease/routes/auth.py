# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/marketease/routes/auth.py
"""
Authentication API routes

- Self signup (ADMIN role for configured admin emails)
- Login returns a bearer session token
- Logout revokes the token
"""

from flask import Blueprint, request, g, current_app

from ..services import auth_service
from ..services import session_service
from ..services.audit_service import AuditDetails, record_event
from ..services.auth_service import AuthError
from ..validation import ValidationError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.signup(
            data.get("name"),
            data.get("email"),
            data.get("password"),
            data.get("confirm_password"),
            ip_address=request.remote_addr,
        )
    except ValidationError as e:
        return {"error": str(e), "details": e.field_errors}, 400

    return {"user": user.to_dict()}, 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return {"error": "email and password required"}, 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    try:
        user = auth_service.authenticate(email, password, ip_address=ip_address)
    except AuthError as e:
        return {"error": str(e)}, 401

    try:
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
    except ValueError as e:
        return {"error": str(e)}, 401
    except Exception:
        current_app.logger.exception("Failed to create session")
        return {"error": "Login failed"}, 500

    return {
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.expires_at.isoformat() + "Z",
    }, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    record_event(
        "USER_LOGOUT",
        user_id=g.current_user.id,
        details=AuditDetails("auth", {"email": g.current_user.email}),
        ip_address=request.remote_addr,
    )
    return {"ok": True}, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return {"user": g.current_user.to_dict()}, 200
