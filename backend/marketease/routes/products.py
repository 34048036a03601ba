# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/marketease/routes/products.py
"""
Product catalogue routes.

SECURITY: All routes require authentication. Writes are attributed to the
session user in the audit trail.
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service
from ..services.concurrency import StorageError
from ..validation import ValidationError, NotFoundError, ConflictError, ReferentialIntegrityError
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """List every product ordered by name."""
    try:
        return {"products": products_service.list_products()}, 200
    except StorageError as e:
        current_app.logger.exception("Failed to list products")
        return {"error": str(e)}, 500


@products_bp.get("/<product_id>")
@require_auth
def get_product(product_id: str):
    try:
        return products_service.get_product(product_id), 200
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StorageError as e:
        current_app.logger.exception("Failed to load product %s", product_id)
        return {"error": str(e)}, 500


@products_bp.post("")
@require_auth
def create_product_route():
    """
    Create a new product.

    Body: {"name", "price_cents", "cost_cents", "quantity"}; "id" is optional.
    """
    payload = request.get_json(silent=True) or {}

    try:
        created = products_service.create_product(
            payload, actor_id=g.current_user.id, ip_address=request.remote_addr
        )
    except ValidationError as e:
        return {"error": str(e), "details": e.field_errors}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StorageError as e:
        current_app.logger.exception("Failed to create product")
        return {"error": str(e)}, 500

    return created, 201


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    """Replace name, price, cost and quantity of an existing product."""
    payload = request.get_json(silent=True) or {}

    try:
        updated = products_service.update_product(
            product_id, payload, actor_id=g.current_user.id, ip_address=request.remote_addr
        )
    except ValidationError as e:
        return {"error": str(e), "details": e.field_errors}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StorageError as e:
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": str(e)}, 500

    return updated, 200


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    """
    Delete a product.

    Refused with 409 while any sale line still references it.
    """
    try:
        products_service.delete_product(
            product_id, actor_id=g.current_user.id, ip_address=request.remote_addr
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ReferentialIntegrityError as e:
        return {"error": str(e), "details": {"reference_count": e.reference_count}}, 409
    except StorageError as e:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": str(e)}, 500

    return {"ok": True}, 200
