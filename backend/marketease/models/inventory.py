from __future__ import annotations

import uuid

from ..extensions import db
from marketease.time_utils import to_utc_z


def new_id() -> str:
    return str(uuid.uuid4())


class Product(db.Model):
    """
    Product catalogue entry with its on-hand quantity.

    Money is stored in integer cents (USD). Quantity is mutated by the edit
    operation (full replace) and by the sale engine (decrement only).

    DELETE GUARD: a product referenced by any SaleItem cannot be deleted.
    SaleItem.product_id is a lookup reference, not ownership, so deletes are
    refused instead of cascading.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents > 0", name="ck_products_price_positive"),
        db.CheckConstraint("cost_cents >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_quantity", "quantity"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    @property
    def stock_value_cents(self) -> int:
        return self.cost_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "quantity": self.quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
