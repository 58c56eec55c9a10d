"""Display formatting for amounts and percentages."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dealer_config.schema import CurrencyFormat
from dealer_kernel.domain.values import to_amount

_DEFAULT_CURRENCY = CurrencyFormat()


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def format_currency(value: Any, currency: CurrencyFormat = _DEFAULT_CURRENCY) -> str:
    """``1234.5`` -> ``"£1,234.50"``; negatives render as ``"-£1,234.50"``."""
    amount = to_amount(value).quantize(_quantum(currency.decimal_places), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency.symbol}{abs(amount):,.{currency.decimal_places}f}"


def format_percentage(value: Any, places: int = 2) -> str:
    """``12.345`` -> ``"12.35%"``."""
    amount = to_amount(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)
    return f"{amount:.{places}f}%"
