# backend/marketease/services/products_service.py
"""
Product Store

Durable storage and direct mutation of Product records.

- list/get are plain reads.
- create/update validate the full field set first (no storage access on
  invalid input) and commit on success.
- delete refuses while any SaleItem still references the product.
- decrement_quantity is used only by the sale engine, inside its own
  transaction; it never commits.
"""
from __future__ import annotations

from dataclasses import asdict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..signals import invalidate_views
from ..validation import (
    ConflictError,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
    validate_product_payload,
)
from .audit_service import AuditDetails, record_event
from .concurrency import StorageError, lock_for_update
from .sale_ledger_service import count_items_for_product


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__("Product", product_id, message=f"Product with ID {product_id} not found.")
        self.product_id = product_id


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds on-hand stock."""

    def __init__(self, product_id: str, product_name: str, available: int, requested: int):
        super().__init__(
            f"Not enough stock for {product_name}. Available: {available}, Requested: {requested}."
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested

    @property
    def details(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "available": self.available,
            "requested": self.requested,
        }


def _commit(failure_action: str, data: dict, *, actor_id: str | None, ip_address: str | None) -> None:
    """
    Commit the pending product write.

    On a database error the session is rolled back and `failure_action` is
    audited before StorageError is raised.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("%s: %s", failure_action, exc)
        record_event(
            failure_action,
            user_id=actor_id,
            details=AuditDetails("product.storage_error", {"error": "Database error", **data}),
            ip_address=ip_address,
        )
        raise StorageError() from exc


def _changed() -> None:
    invalidate_views(current_app._get_current_object(), "products", "dashboard")


def list_products() -> list[dict]:
    """All products ordered by name ascending."""
    try:
        products = (
            db.session.query(Product)
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    return [p.to_dict() for p in products]


def _get_or_raise(product_id: str) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFoundError(product_id)
    return p


def get_product(product_id: str) -> dict:
    return _get_or_raise(product_id).to_dict()


def get_product_for_update(product_id: str) -> Product | None:
    """
    Row-locked read for use inside a transaction.

    The identity map returns the same instance for repeated ids, so later
    reads see earlier uncommitted decrements in the same unit of work.
    """
    return lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()


def create_product(payload: dict, *, actor_id: str | None = None, ip_address: str | None = None) -> dict:
    try:
        fields = validate_product_payload(payload)
    except ValidationError as exc:
        record_event(
            "PRODUCT_CREATE_FAILED",
            user_id=actor_id,
            details=AuditDetails("product.invalid", {"errors": exc.field_errors}),
            ip_address=ip_address,
        )
        raise

    p = Product(
        name=fields.name,
        price_cents=fields.price_cents,
        cost_cents=fields.cost_cents,
        quantity=fields.quantity,
    )
    db.session.add(p)
    _commit("PRODUCT_CREATE_EXCEPTION", {"values": asdict(fields)}, actor_id=actor_id, ip_address=ip_address)
    _changed()

    record_event(
        "PRODUCT_CREATED",
        user_id=actor_id,
        details=AuditDetails("product", {
            "product_id": p.id,
            "name": p.name,
            "price_cents": p.price_cents,
            "quantity": p.quantity,
        }),
        ip_address=ip_address,
    )
    return p.to_dict()


def update_product(
    product_id: str,
    payload: dict,
    *,
    actor_id: str | None = None,
    ip_address: str | None = None,
) -> dict:
    """Full replace of name, price, cost and quantity."""
    try:
        fields = validate_product_payload(payload)
    except ValidationError as exc:
        record_event(
            "PRODUCT_UPDATE_FAILED",
            user_id=actor_id,
            details=AuditDetails("product.invalid", {"product_id": product_id, "errors": exc.field_errors}),
            ip_address=ip_address,
        )
        raise

    p = _get_or_raise(product_id)
    p.name = fields.name
    p.price_cents = fields.price_cents
    p.cost_cents = fields.cost_cents
    p.quantity = fields.quantity
    _commit(
        "PRODUCT_UPDATE_EXCEPTION",
        {"product_id": product_id, "values": asdict(fields)},
        actor_id=actor_id,
        ip_address=ip_address,
    )
    _changed()

    record_event(
        "PRODUCT_UPDATED",
        user_id=actor_id,
        details=AuditDetails("product", {
            "product_id": p.id,
            "name": p.name,
            "price_cents": p.price_cents,
            "cost_cents": p.cost_cents,
            "quantity": p.quantity,
        }),
        ip_address=ip_address,
    )
    return p.to_dict()


def delete_product(product_id: str, *, actor_id: str | None = None, ip_address: str | None = None) -> None:
    """
    Hard delete, refused while sale history references the product.

    Raises:
        ProductNotFoundError: unknown id
        ReferentialIntegrityError: one or more SaleItems reference it
    """
    p = _get_or_raise(product_id)

    references = count_items_for_product(product_id)
    if references > 0:
        record_event(
            "PRODUCT_DELETE_FAILED",
            user_id=actor_id,
            details=AuditDetails("product.delete_blocked", {
                "product_id": product_id,
                "sale_item_count": references,
            }),
            ip_address=ip_address,
        )
        raise ReferentialIntegrityError(
            "Product",
            product_id,
            references,
            "Cannot delete product: It has associated sales records. "
            "Consider archiving the product instead.",
        )

    name = p.name
    db.session.delete(p)
    _commit("PRODUCT_DELETE_EXCEPTION", {"product_id": product_id}, actor_id=actor_id, ip_address=ip_address)
    _changed()

    record_event(
        "PRODUCT_DELETED",
        user_id=actor_id,
        details=AuditDetails("product", {"product_id": product_id, "name": name}),
        ip_address=ip_address,
    )


def decrement_quantity(product: Product, amount: int) -> Product:
    """Decrement on-hand stock inside the caller's transaction."""
    if amount <= 0:
        raise ValueError("amount must be positive")
    if product.quantity < amount:
        raise InsufficientStockError(product.id, product.name, product.quantity, amount)
    product.quantity = product.quantity - amount
    return product
