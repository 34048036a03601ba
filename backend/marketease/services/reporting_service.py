# Overview: Service-layer operations for dashboard metrics; read-only aggregates over products and sales.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from marketease.extensions import db, view_cache
from marketease.models import Product, Sale
from marketease.services.concurrency import StorageError
from marketease.time_utils import start_of_local_day, start_of_local_week, to_utc_z


def _scalar(query) -> int:
    try:
        return int(query.scalar() or 0)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc


def total_cash() -> int:
    """Sum of all sale totals, in cents."""
    return _scalar(db.session.query(func.coalesce(func.sum(Sale.total_amount_cents), 0)))


def current_stock_value() -> int:
    """Sum over products of cost x quantity, in cents."""
    return _scalar(
        db.session.query(func.coalesce(func.sum(Product.cost_cents * Product.quantity), 0))
    )


def profit_since(start: datetime) -> int:
    return _scalar(
        db.session.query(func.coalesce(func.sum(Sale.total_profit_cents), 0))
        .filter(Sale.sale_date >= start)
    )


def daily_profit(now: datetime | None = None) -> int:
    """Profit of sales since local midnight today."""
    return profit_since(start_of_local_day(now))


def weekly_profit(now: datetime | None = None) -> int:
    """Profit of sales since local midnight of the most recent Sunday."""
    return profit_since(start_of_local_week(now))


def low_stock_items(threshold: int | None = None) -> list[dict]:
    """Products with quantity below the threshold, lowest stock first."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 50)
    try:
        products = (
            db.session.query(Product)
            .filter(Product.quantity < threshold)
            .order_by(Product.quantity.asc(), Product.name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    return [p.to_dict() for p in products]


def dashboard_metrics(now: datetime | None = None) -> dict:
    return {
        "total_cash_cents": total_cash(),
        "current_stock_value_cents": current_stock_value(),
        "daily_profit_cents": daily_profit(now),
        "weekly_profit_cents": weekly_profit(now),
        "low_stock_items": low_stock_items(),
        "day_starts_at": to_utc_z(start_of_local_day(now)),
        "week_starts_at": to_utc_z(start_of_local_week(now)),
    }


def cached_dashboard_metrics() -> dict:
    """
    Dashboard view served from the view cache.

    The entry is dropped by views_invalidated after product and sale writes.
    Day/week boundaries are fixed at compute time, so entries also expire
    when the local day rolls over.
    """
    day = start_of_local_day()
    return view_cache.get_or_compute(f"dashboard:{day.isoformat()}", dashboard_metrics)
