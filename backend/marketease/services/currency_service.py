# Overview: Exchange rates for display-only currency conversion.

"""
Currency display rates

Rates are relative to USD (USD is always 1.0). Stored amounts never change
currency; this module only feeds the display layer.

Any failure (network, HTTP status, malformed body, missing pair) falls back
to 1.0 for the affected codes and is logged as a warning.
"""

from __future__ import annotations

import threading
import time

import httpx
from flask import current_app

BASE_CURRENCY = "USD"

_cache: dict[str, tuple[float, float]] = {}  # code -> (rate, fetched_at monotonic)
_cache_lock = threading.Lock()


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()


def _normalize(codes) -> list[str]:
    seen: list[str] = []
    for code in codes:
        if not isinstance(code, str):
            continue
        c = code.strip().upper()
        # Accept "USD-BRL" pairs as well as bare codes
        if "-" in c:
            c = c.split("-", 1)[1]
        if c and c not in seen:
            seen.append(c)
    return seen


def _fetch(codes: list[str], client: httpx.Client) -> dict[str, float]:
    base_url = current_app.config["EXCHANGE_RATE_API_URL"]
    pairs = ",".join(f"{BASE_CURRENCY}-{code}" for code in codes)
    response = client.get(f"{base_url}{pairs}")
    response.raise_for_status()
    data = response.json()

    rates: dict[str, float] = {}
    if not isinstance(data, dict):
        return rates
    for info in data.values():
        if not isinstance(info, dict):
            continue
        if info.get("code") != BASE_CURRENCY or not info.get("bid"):
            continue
        try:
            rates[str(info.get("codein")).upper()] = float(info["bid"])
        except (TypeError, ValueError):
            continue
    return rates


def get_exchange_rates(codes, *, client: httpx.Client | None = None) -> dict[str, float]:
    """
    Map each requested code to its USD-relative rate.

    Fresh cached values are reused for EXCHANGE_RATE_CACHE_SECONDS.
    """
    wanted = [c for c in _normalize(codes) if c != BASE_CURRENCY]
    rates: dict[str, float] = {BASE_CURRENCY: 1.0}
    if not wanted:
        return rates

    ttl = current_app.config.get("EXCHANGE_RATE_CACHE_SECONDS", 3600)
    now = time.monotonic()

    missing: list[str] = []
    with _cache_lock:
        for code in wanted:
            cached = _cache.get(code)
            if cached and now - cached[1] < ttl:
                rates[code] = cached[0]
            else:
                missing.append(code)

    if not missing:
        return rates

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=current_app.config.get("EXCHANGE_RATE_TIMEOUT_SECONDS", 5.0))

    fetched: dict[str, float] = {}
    try:
        fetched = _fetch(missing, client)
    except (httpx.HTTPError, ValueError):
        current_app.logger.warning(
            "Exchange rate lookup failed for %s; falling back to 1.0", ",".join(missing),
            exc_info=True,
        )
    finally:
        if owns_client:
            client.close()

    with _cache_lock:
        for code in missing:
            if code in fetched:
                rates[code] = fetched[code]
                _cache[code] = (fetched[code], now)
            else:
                if fetched:
                    current_app.logger.warning("Rate for %s not found in API response, defaulting to 1.0", code)
                rates[code] = 1.0

    return rates
