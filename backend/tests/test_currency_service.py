"""
Display currency rate tests (no network; httpx.MockTransport).
"""

import logging

import httpx
import pytest

from marketease.services import currency_service


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def _ok(payload):
    def handler(request):
        handler.calls.append(str(request.url))
        return httpx.Response(200, json=payload)
    handler.calls = []
    return handler


RATES = {
    "USDBRL": {"code": "USD", "codein": "BRL", "bid": "5.4321"},
    "USDEUR": {"code": "USD", "codein": "EUR", "bid": "0.9150"},
}


class TestExchangeRates:

    def test_usd_is_always_one(self, db_session):
        handler = _ok({})
        assert currency_service.get_exchange_rates(["USD"], client=_client(handler)) == {"USD": 1.0}
        assert handler.calls == []

    def test_fetches_requested_pairs(self, db_session):
        handler = _ok(RATES)
        rates = currency_service.get_exchange_rates(["brl", "EUR"], client=_client(handler))

        assert rates == {"USD": 1.0, "BRL": 5.4321, "EUR": 0.915}
        assert handler.calls == ["https://rates.test/json/last/USD-BRL,USD-EUR"]

    def test_pair_syntax_accepted(self, db_session):
        rates = currency_service.get_exchange_rates(["USD-BRL"], client=_client(_ok(RATES)))
        assert rates["BRL"] == 5.4321

    def test_rates_are_cached(self, db_session):
        handler = _ok(RATES)
        currency_service.get_exchange_rates(["BRL"], client=_client(handler))
        currency_service.get_exchange_rates(["BRL"], client=_client(handler))
        assert len(handler.calls) == 1

    def test_cache_expires(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "EXCHANGE_RATE_CACHE_SECONDS", 0)
        handler = _ok(RATES)
        currency_service.get_exchange_rates(["BRL"], client=_client(handler))
        currency_service.get_exchange_rates(["BRL"], client=_client(handler))
        assert len(handler.calls) == 2

    def test_missing_code_falls_back(self, db_session, caplog):
        with caplog.at_level(logging.WARNING):
            rates = currency_service.get_exchange_rates(["BRL", "JPY"], client=_client(_ok(RATES)))

        assert rates["BRL"] == 5.4321
        assert rates["JPY"] == 1.0
        assert "JPY" in caplog.text

    @pytest.mark.parametrize(
        "handler",
        [
            lambda request: httpx.Response(500),
            lambda request: httpx.Response(200, content=b"<html>"),
        ],
    )
    def test_upstream_failure_falls_back(self, db_session, caplog, handler):
        with caplog.at_level(logging.WARNING):
            rates = currency_service.get_exchange_rates(["BRL", "EUR"], client=_client(handler))

        assert rates == {"USD": 1.0, "BRL": 1.0, "EUR": 1.0}
        assert "Exchange rate lookup failed" in caplog.text

    def test_network_error_falls_back(self, db_session):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        rates = currency_service.get_exchange_rates(["BRL"], client=_client(handler))
        assert rates["BRL"] == 1.0

    def test_fallback_is_not_cached(self, db_session):
        currency_service.get_exchange_rates(["BRL"], client=_client(lambda r: httpx.Response(503)))
        rates = currency_service.get_exchange_rates(["BRL"], client=_client(_ok(RATES)))
        assert rates["BRL"] == 5.4321
