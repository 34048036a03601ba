# Overview: Service-layer operations for the sale ledger; append-only storage of committed sales.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem
from ..validation import NotFoundError
from .concurrency import StorageError
"""
Sale Ledger Invariants (authoritative)

- A Sale is written once, with all of its items, inside the sale engine's
  transaction. commit_sale never commits on its own.
- No update/delete path exists; ORM listeners refuse both.
- totals on the header equal the sums over the items, exactly (integer cents).
- Reads render the frozen snapshot fields, never live Product data.
"""


@dataclass(frozen=True)
class SaleLineSnapshot:
    """Economics of one line as they were at commit time."""
    product_id: str
    product_name: str
    quantity: int
    price_at_sale_cents: int
    cost_at_sale_cents: int

    @property
    def line_amount_cents(self) -> int:
        return self.price_at_sale_cents * self.quantity

    @property
    def line_profit_cents(self) -> int:
        return (self.price_at_sale_cents - self.cost_at_sale_cents) * self.quantity


@dataclass(frozen=True)
class SaleTotals:
    total_amount_cents: int
    total_profit_cents: int

    @classmethod
    def of(cls, lines: Sequence[SaleLineSnapshot]) -> "SaleTotals":
        return cls(
            total_amount_cents=sum(line.line_amount_cents for line in lines),
            total_profit_cents=sum(line.line_profit_cents for line in lines),
        )


def commit_sale(
    lines: Sequence[SaleLineSnapshot],
    totals: SaleTotals,
    sale_date: datetime,
    cashier_id: str | None = None,
) -> Sale:
    """
    Stage one Sale header plus its items in the current transaction.

    Flushes so ids are assigned; the caller owns the commit.
    """
    if not lines:
        raise ValueError("Cannot commit a sale with no lines")
    if totals != SaleTotals.of(lines):
        raise ValueError("Sale totals do not match the sum of its lines")

    sale = Sale(
        total_amount_cents=totals.total_amount_cents,
        total_profit_cents=totals.total_profit_cents,
        sale_date=sale_date,
        cashier_id=cashier_id,
    )
    for number, line in enumerate(lines, start=1):
        sale.items.append(SaleItem(
            line_number=number,
            product_id=line.product_id,
            product_name=line.product_name,
            quantity=line.quantity,
            price_at_sale_cents=line.price_at_sale_cents,
            cost_at_sale_cents=line.cost_at_sale_cents,
        ))

    db.session.add(sale)
    db.session.flush()
    return sale


def list_sales() -> list[dict]:
    """All sales, newest first, each with its items in line order."""
    try:
        sales = (
            db.session.query(Sale)
            .order_by(Sale.sale_date.desc(), Sale.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    return [sale.to_dict() for sale in sales]


def get_sale(sale_id: str) -> dict:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id, message="Sale not found")
    return sale.to_dict()


def count_items_for_product(product_id: str) -> int:
    return db.session.query(SaleItem).filter(SaleItem.product_id == product_id).count()
