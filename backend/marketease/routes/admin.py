# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import audit_service
from ..decorators import require_auth, require_role
from ..models import ROLE_ADMIN

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/audit-logs")
@require_auth
@require_role(ROLE_ADMIN)
def audit_logs():
    """
    Newest audit entries first.

    Query params:
    - limit: int (default 50, max 500)
    - offset: int (default 0)
    """
    limit = request.args.get("limit", default=50, type=int)
    offset = request.args.get("offset", default=0, type=int)

    if limit < 1 or offset < 0:
        return {"error": "limit must be positive and offset non-negative"}, 400

    limit = min(limit, audit_service.MAX_AUDIT_PAGE)
    return {
        "audit_logs": audit_service.list_audit_logs(limit=limit, offset=offset),
        "limit": limit,
        "offset": offset,
    }, 200
