from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from marketease.time_utils import to_utc_z
from .inventory import new_id


class ImmutableRecordError(RuntimeError):
    """Raised when code tries to update or delete an append-only row."""


class Sale(db.Model):
    """
    Committed sale header.

    IMMUTABLE: created exactly once by the sale engine, never updated or
    deleted. total_amount_cents and total_profit_cents always equal the sums
    over the sale's items.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    total_profit_cents = db.Column(db.Integer, nullable=False)

    # Business time, assigned by the engine at commit
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    cashier_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.line_number",
        lazy="selectin",
    )
    cashier = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "total_profit_cents": self.total_profit_cents,
            "sale_date": to_utc_z(self.sale_date),
            "cashier_id": self.cashier_id,
            "cashier": self.cashier.to_summary() if self.cashier else None,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """
    Line item owned by exactly one Sale.

    product_name, price_at_sale_cents and cost_at_sale_cents are snapshots
    frozen at commit; historical sales report the economics of the moment
    they happened, never live product data.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_items_sale_line"),
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    # Weak reference: lookup only, deletes of the product are blocked
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)
    cost_at_sale_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    @property
    def line_amount_cents(self) -> int:
        return self.price_at_sale_cents * self.quantity

    @property
    def line_profit_cents(self) -> int:
        return (self.price_at_sale_cents - self.cost_at_sale_cents) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "cost_at_sale_cents": self.cost_at_sale_cents,
            "line_amount_cents": self.line_amount_cents,
            "line_profit_cents": self.line_profit_cents,
        }


def _refuse_update(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} {target.id} is immutable")


def _refuse_delete(mapper, connection, target):
    raise ImmutableRecordError(f"{type(target).__name__} {target.id} cannot be deleted")


for _model in (Sale, SaleItem):
    event.listen(_model, "before_update", _refuse_update)
    event.listen(_model, "before_delete", _refuse_delete)
