# Overview: Flask API route for the dashboard metrics view.

from flask import Blueprint, current_app

from ..services import reporting_service
from ..services.concurrency import StorageError
from ..decorators import require_auth

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard():
    """Cash, stock value, daily and weekly profit, and the low stock list."""
    try:
        return reporting_service.cached_dashboard_metrics(), 200
    except StorageError as e:
        current_app.logger.exception("Failed to compute dashboard metrics")
        return {"error": str(e)}, 500
