from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

PRODUCT_NAME_MIN_LENGTH = 2
PRODUCT_NAME_MAX_LENGTH = 255


class ValidationError(ValueError):
    """400-level input problem. field_errors maps field name -> list of messages."""

    def __init__(self, message: str, field_errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class NotFoundError(LookupError):
    """404-level: a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any, message: str | None = None):
        super().__init__(message or f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(ValueError):
    """409-level business rule conflict."""


class ReferentialIntegrityError(ConflictError):
    """Delete refused because other records still reference the entity."""

    def __init__(self, entity: str, entity_id: Any, reference_count: int, message: str):
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id
        self.reference_count = reference_count


class FieldErrors:
    """Collects per-field problems so callers see every issue at once."""

    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self, message: str = "Invalid fields!") -> None:
        if self.errors:
            raise ValidationError(message, field_errors=self.errors)


class CoercionError(ValueError):
    """A raw value could not be coerced; message is user-facing."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation. Raises CoercionError with a user message.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise CoercionError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise CoercionError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise CoercionError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise CoercionError(f"{field} must be an integer")
    if isinstance(value, float):
        raise CoercionError(f"{field} must be an integer, not a decimal")
    raise CoercionError(f"{field} must be an integer")


@dataclass(frozen=True)
class ProductFields:
    name: str
    price_cents: int
    cost_cents: int
    quantity: int


PRODUCT_FIELDS = ("name", "price_cents", "cost_cents", "quantity")


def validate_product_payload(payload: Any) -> ProductFields:
    """
    Validates a full product payload (create and full-replace update share it).

    Rules:
    - name: string, at least 2 characters after trimming, at most 255
    - price_cents: integer > 0, <= MAX_PRICE_CENTS
    - cost_cents: integer >= 0, <= MAX_PRICE_CENTS
    - quantity: integer >= 0
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = FieldErrors()

    for key in payload.keys():
        if key not in PRODUCT_FIELDS and key != "id":
            errors.add(key, f"Field not allowed: {key}")

    name = payload.get("name")
    if name is None:
        errors.add("name", "name is required")
    elif not isinstance(name, str):
        errors.add("name", "name must be a string")
    else:
        name = name.strip()
        if len(name) < PRODUCT_NAME_MIN_LENGTH:
            errors.add("name", "Product name must be at least 2 characters.")
        elif len(name) > PRODUCT_NAME_MAX_LENGTH:
            errors.add("name", f"name exceeds max length {PRODUCT_NAME_MAX_LENGTH}")

    ints: dict[str, int | None] = {}
    for field in ("price_cents", "cost_cents", "quantity"):
        raw = payload.get(field)
        if raw is None:
            errors.add(field, f"{field} is required")
            ints[field] = None
            continue
        try:
            ints[field] = coerce_int(raw, field)
        except CoercionError as exc:
            errors.add(field, str(exc))
            ints[field] = None

    price = ints["price_cents"]
    if price is not None:
        if price <= 0:
            errors.add("price_cents", "Price must be a positive number.")
        elif price > MAX_PRICE_CENTS:
            errors.add("price_cents", f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    cost = ints["cost_cents"]
    if cost is not None:
        if cost < 0:
            errors.add("cost_cents", "Cost must be a non-negative number.")
        elif cost > MAX_PRICE_CENTS:
            errors.add("cost_cents", f"cost_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    quantity = ints["quantity"]
    if quantity is not None and quantity < 0:
        errors.add("quantity", "Quantity must be a non-negative integer.")

    errors.raise_if_any()

    return ProductFields(name=name, price_cents=price, cost_cents=cost, quantity=quantity)
