"""
Sale Transaction Engine

The only path by which a sale is recorded.

One indivisible unit of work spanning the product store and the sale
ledger. Either every line succeeds (stock decremented, header and items
written) or nothing happened. Prices and costs always come from the product
row read inside the transaction, never from the caller.

CONCURRENCY: On SQLite the transaction starts with BEGIN IMMEDIATE so
concurrent read-check-decrement sequences serialize; elsewhere product rows
are read with SELECT ... FOR UPDATE. Product.version_id adds an optimistic
check on top; conflicts are retried by run_in_transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Sale
from ..signals import invalidate_views
from ..time_utils import utcnow
from ..validation import FieldErrors, ValidationError, CoercionError, coerce_int
from .audit_service import AuditDetails, record_event
from .concurrency import StorageError, begin_immediate, run_in_transaction
from .products_service import (
    InsufficientStockError,
    ProductNotFoundError,
    decrement_quantity,
    get_product_for_update,
)
from .sale_ledger_service import SaleLineSnapshot, SaleTotals, commit_sale


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: str
    quantity: int


def validate_sale_request(payload: Any) -> list[SaleLineRequest]:
    """
    Shape check for a sale request. Runs before any storage access.

    Accepts {"items": [{"product_id": str, "quantity": int > 0}, ...]} or the
    bare list. Order is preserved.
    """
    items = payload.get("items") if isinstance(payload, dict) else payload

    if not isinstance(items, list):
        raise ValidationError("Invalid sale data!", {"items": ["items must be a list"]})
    if not items:
        raise ValidationError(
            "Invalid sale data!",
            {"items": ["At least one item must be added to the sale."]},
        )

    errors = FieldErrors()
    lines: list[SaleLineRequest] = []

    for i, item in enumerate(items):
        prefix = f"items.{i}"
        if not isinstance(item, dict):
            errors.add(prefix, "Each item must be an object")
            continue

        product_id = item.get("product_id")
        if not isinstance(product_id, str) or not product_id.strip():
            errors.add(f"{prefix}.product_id", "Product ID is required.")
            product_id = None

        quantity = None
        raw_qty = item.get("quantity")
        if raw_qty is None:
            errors.add(f"{prefix}.quantity", "quantity is required")
        else:
            try:
                quantity = coerce_int(raw_qty, "quantity")
            except CoercionError as exc:
                errors.add(f"{prefix}.quantity", str(exc))
            else:
                if quantity <= 0:
                    errors.add(f"{prefix}.quantity", "Quantity must be a positive integer.")
                    quantity = None

        if product_id is not None and quantity is not None:
            lines.append(SaleLineRequest(product_id=product_id.strip(), quantity=quantity))

    errors.raise_if_any("Invalid sale data!")
    return lines


def _record_sale_locked(lines: list[SaleLineRequest], cashier_id: str | None) -> Sale:
    snapshots: list[SaleLineSnapshot] = []

    for line in lines:
        product = get_product_for_update(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)

        decrement_quantity(product, line.quantity)

        snapshots.append(SaleLineSnapshot(
            product_id=product.id,
            product_name=product.name,
            quantity=line.quantity,
            price_at_sale_cents=product.price_cents,
            cost_at_sale_cents=product.cost_cents,
        ))

    totals = SaleTotals.of(snapshots)
    return commit_sale(snapshots, totals, sale_date=utcnow(), cashier_id=cashier_id)


def record_sale(payload: Any, *, cashier_id: str | None = None, ip_address: str | None = None) -> dict:
    """
    Record a multi-line sale atomically.

    Returns the committed sale dict.

    Raises (exactly one, never a partial result):
        ValidationError: malformed request (no storage touched)
        ProductNotFoundError: a referenced product is absent
        InsufficientStockError: cumulative demand for a product exceeds stock
        StorageError: the transaction could not commit
    """
    lines = validate_sale_request(payload)

    def _op():
        begin_immediate()
        sale = _record_sale_locked(lines, cashier_id)
        db.session.commit()
        return sale

    try:
        sale = run_in_transaction(_op, attempts=current_app.config.get("SALE_RETRY_ATTEMPTS", 3))
    except (ProductNotFoundError, InsufficientStockError, StorageError) as exc:
        failure = {"reason": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, InsufficientStockError):
            failure.update(exc.details)
        elif isinstance(exc, ProductNotFoundError):
            failure["product_id"] = exc.product_id
        record_event(
            "SALE_FAILED",
            user_id=cashier_id,
            details=AuditDetails("sale.failed", failure),
            ip_address=ip_address,
        )
        raise

    result = sale.to_dict()

    invalidate_views(current_app._get_current_object(), "products", "sales", "dashboard")

    record_event(
        "SALE_RECORDED",
        user_id=cashier_id,
        details=AuditDetails("sale", {
            "sale_id": result["id"],
            "total_amount_cents": result["total_amount_cents"],
            "total_profit_cents": result["total_profit_cents"],
            "items": [
                {
                    "product_id": item["product_id"],
                    "product_name": item["product_name"],
                    "quantity": item["quantity"],
                    "price_at_sale_cents": item["price_at_sale_cents"],
                    "cost_at_sale_cents": item["cost_at_sale_cents"],
                }
                for item in result["items"]
            ],
        }),
        ip_address=ip_address,
    )
    return result
