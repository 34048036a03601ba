# Overview: Flask API route for display-only exchange rates.

from flask import Blueprint, request

from ..services import currency_service
from ..decorators import require_auth

currency_bp = Blueprint("currency", __name__, url_prefix="/api/currency")


@currency_bp.get("/rates")
@require_auth
def rates():
    """
    Query params:
    - codes: comma separated currency codes, e.g. "BRL,EUR"
    """
    codes = [c for c in request.args.get("codes", "").split(",") if c.strip()]
    return {
        "base": currency_service.BASE_CURRENCY,
        "rates": currency_service.get_exchange_rates(codes),
    }, 200
