"""
Dashboard metrics tests.

Time windows are computed in server-local time, so assertions are made
relative to start_of_local_day/start_of_local_week rather than fixed dates.
"""

from datetime import datetime, timedelta, timezone

import pytest

from marketease.extensions import view_cache
from marketease.services import products_service, reporting_service, sale_ledger_service, sales_service
from marketease.services.sale_ledger_service import SaleLineSnapshot, SaleTotals, commit_sale
from marketease.time_utils import start_of_local_day, start_of_local_week, utcnow


def _sell_at(db_session, product, quantity, when):
    lines = [SaleLineSnapshot(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        price_at_sale_cents=product.price_cents,
        cost_at_sale_cents=product.cost_cents,
    )]
    sale = commit_sale(lines, SaleTotals.of(lines), sale_date=when)
    db_session.commit()
    return sale


class TestWindows:

    def test_week_starts_on_local_sunday_midnight(self):
        now = datetime(2026, 10, 14, 12, 0)
        week_start = start_of_local_week(now)
        local = week_start.replace(tzinfo=timezone.utc).astimezone()

        assert local.weekday() == 6
        assert (local.hour, local.minute, local.second) == (0, 0, 0)
        assert week_start <= start_of_local_day(now) <= now
        assert now - week_start < timedelta(days=7, hours=2)

    def test_day_starts_at_local_midnight(self):
        now = datetime(2026, 10, 14, 12, 0)
        local = start_of_local_day(now).replace(tzinfo=timezone.utc).astimezone()
        assert (local.hour, local.minute) == (0, 0)


class TestTotals:

    def test_empty_store(self, db_session):
        metrics = reporting_service.dashboard_metrics()
        assert metrics["total_cash_cents"] == 0
        assert metrics["current_stock_value_cents"] == 0
        assert metrics["daily_profit_cents"] == 0
        assert metrics["weekly_profit_cents"] == 0
        assert metrics["low_stock_items"] == []

    def test_total_cash_sums_all_sales(self, make_product):
        eggs = make_product(price_cents=499, cost_cents=250, quantity=60)
        sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 2}]})
        sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 1}]})

        assert reporting_service.total_cash() == 3 * 499

    def test_stock_value_is_cost_times_quantity(self, make_product):
        make_product(name="Eggs", cost_cents=250, quantity=60)
        make_product(name="Apples", cost_cents=180, quantity=150)

        assert reporting_service.current_stock_value() == 250 * 60 + 180 * 150

    def test_stock_value_drops_after_sale(self, make_product):
        eggs = make_product(cost_cents=250, quantity=60)
        sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 1}]})
        assert reporting_service.current_stock_value() == 250 * 59


class TestProfitWindows:

    def test_daily_and_weekly_boundaries(self, make_product, db_session):
        eggs = make_product(price_cents=499, cost_cents=250, quantity=60)
        now = utcnow()
        day_start = start_of_local_day(now)
        week_start = start_of_local_week(now)

        _sell_at(db_session, eggs, 1, day_start + timedelta(minutes=1))   # today
        _sell_at(db_session, eggs, 2, day_start - timedelta(minutes=1))   # before today
        _sell_at(db_session, eggs, 4, week_start - timedelta(minutes=1))  # before this week

        assert reporting_service.daily_profit(now) == 249
        expected_weekly = 249 if day_start == week_start else 249 * 3
        assert reporting_service.weekly_profit(now) == expected_weekly

    def test_sale_exactly_at_boundary_counts(self, make_product, db_session):
        eggs = make_product(price_cents=499, cost_cents=250)
        now = utcnow()
        _sell_at(db_session, eggs, 1, start_of_local_day(now))
        assert reporting_service.daily_profit(now) == 249


class TestLowStock:

    def test_threshold_and_ordering(self, make_product):
        make_product(name="Milk", quantity=40)
        make_product(name="Bread", quantity=5)
        make_product(name="Apples", quantity=150)
        make_product(name="Coffee", quantity=5)
        make_product(name="Flour", quantity=50)

        names = [p["name"] for p in reporting_service.low_stock_items()]
        assert names == ["Bread", "Coffee", "Milk"]

    def test_explicit_threshold(self, make_product):
        make_product(name="Apples", quantity=150)
        make_product(name="Milk", quantity=40)
        assert [p["name"] for p in reporting_service.low_stock_items(threshold=200)] == ["Milk", "Apples"]


class TestDashboardCache:

    def test_cached_until_sale(self, make_product):
        eggs = make_product(price_cents=499, cost_cents=250, quantity=60)

        first = reporting_service.cached_dashboard_metrics()
        assert "dashboard" in view_cache
        assert first["total_cash_cents"] == 0

        sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 1}]})

        second = reporting_service.cached_dashboard_metrics()
        assert second["total_cash_cents"] == 499
        assert second["daily_profit_cents"] == 249

    def test_sale_during_compute_is_not_cached_stale(self, make_product, monkeypatch):
        eggs = make_product(price_cents=499, cost_cents=250, quantity=60)
        compute = reporting_service.dashboard_metrics

        def racing_compute(now=None):
            metrics = compute(now)
            sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 1}]})
            return metrics

        monkeypatch.setattr(reporting_service, "dashboard_metrics", racing_compute)
        stale = reporting_service.cached_dashboard_metrics()
        assert stale["total_cash_cents"] == 0
        monkeypatch.undo()

        fresh = reporting_service.cached_dashboard_metrics()
        assert fresh == reporting_service.dashboard_metrics()
        assert fresh["total_cash_cents"] == 499
        assert fresh["current_stock_value_cents"] == 250 * 59

    def test_invalidation_during_compute_skips_store(self, db_session):
        def compute():
            view_cache.invalidate("dashboard")
            return {"stale": True}

        assert view_cache.get_or_compute("dashboard:today", compute) == {"stale": True}
        assert "dashboard" not in view_cache

    @pytest.mark.parametrize("field", ["day_starts_at", "week_starts_at"])
    def test_window_starts_are_serialized(self, db_session, field):
        assert reporting_service.dashboard_metrics()[field].endswith("Z")


class TestIdempotentReads:

    def test_repeated_reads_match(self, make_product):
        eggs = make_product(price_cents=499, cost_cents=250, quantity=60)
        make_product(name="Milk", quantity=10)
        sales_service.record_sale({"items": [{"product_id": eggs.id, "quantity": 3}]})

        now = utcnow()
        assert reporting_service.dashboard_metrics(now) == reporting_service.dashboard_metrics(now)
        assert products_service.list_products() == products_service.list_products()
        assert sale_ledger_service.list_sales() == sale_ledger_service.list_sales()
