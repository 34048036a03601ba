# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/marketease/routes/sales.py
from flask import Blueprint, request, g, current_app

from ..services import sales_service, sale_ledger_service
from ..services.products_service import InsufficientStockError
from ..services.concurrency import StorageError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """List every sale, newest first."""
    try:
        return {"sales": sale_ledger_service.list_sales()}, 200
    except StorageError as e:
        current_app.logger.exception("Failed to list sales")
        return {"error": str(e)}, 500


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    try:
        return sale_ledger_service.get_sale(sale_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@sales_bp.post("")
@require_auth
def record_sale_route():
    """
    Record a multi-line sale for the session user.

    Body: {"items": [{"product_id": "...", "quantity": 2}, ...]}

    All lines are applied or none are:
    - 400 invalid request shape
    - 404 unknown product
    - 409 not enough stock on any line
    """
    payload = request.get_json(silent=True)

    try:
        sale = sales_service.record_sale(
            payload, cashier_id=g.current_user.id, ip_address=request.remote_addr
        )
    except ValidationError as e:
        return {"error": str(e), "details": e.field_errors}, 400
    except InsufficientStockError as e:
        return {"error": str(e), "details": e.details}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StorageError as e:
        current_app.logger.exception("Failed to record sale")
        return {"error": str(e)}, 500

    return sale, 201
