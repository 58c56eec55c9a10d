"""
Currency and date parsing at the form boundary.

Form payloads carry display strings ("£1,234.56", "(50.00)", "15/03/2024").
They are parsed here, once, so the calculation engines only ever receive
clean Decimal and date values.

Strict parsers raise typed ingestion errors; the lenient currency parser
logs a warning and returns zero, matching the engines' "absence is zero"
contract for callers that prefer to degrade.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dealer_engines.stock_dates import parse_calendar_date
from dealer_kernel.domain.values import ZERO
from dealer_kernel.exceptions import CurrencyParseError, DateParseError
from dealer_kernel.logging_config import get_logger

logger = get_logger("ingestion.currency")

_CURRENCY_SYMBOLS = "£$€"
_NUMBER = re.compile(r"^\d+(\.\d+)?$|^\.\d+$")
_UK_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_currency(value: Any, field: str | None = None) -> Decimal:
    """
    Parse a currency amount into a Decimal.

    Accepts numbers and strings such as ``"£1,234.56"``, ``"1234"``,
    ``"-£50"``, ``"£-50"`` and accounting negatives ``"(50.00)"``.
    ``None`` and blank strings are zero.

    Raises:
        CurrencyParseError: if the value is not a recognisable amount.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise CurrencyParseError(value, field)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise CurrencyParseError(value, field)
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        result = Decimal(str(value))
        if not result.is_finite():
            raise CurrencyParseError(value, field)
        return result
    if not isinstance(value, str):
        raise CurrencyParseError(value, field)

    text = value.strip()
    if not text:
        return ZERO

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1].strip()
    if text.startswith("-"):
        negative = not negative
        text = text[1:].strip()
    if text[:1] in _CURRENCY_SYMBOLS:
        text = text[1:].strip()
    if text.startswith("-"):
        negative = not negative
        text = text[1:].strip()

    text = text.replace(",", "").replace(" ", "")
    if not _NUMBER.match(text):
        raise CurrencyParseError(value, field)

    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise CurrencyParseError(value, field) from exc
    return -amount if negative else amount


def parse_currency_lenient(value: Any, field: str | None = None) -> Decimal:
    """Like ``parse_currency`` but returns zero (and logs) instead of raising."""
    try:
        return parse_currency(value, field)
    except CurrencyParseError as exc:
        logger.warning("currency_parse_failed", extra={
            "field": field,
            "value": exc.value,
        })
        return ZERO


def parse_form_date(value: Any, field: str | None = None, *, strict: bool = False) -> date | None:
    """
    Parse a form date: ISO (``2024-03-15``, ``2024-03-15T10:00:00Z``) or
    UK ``dd/mm/yyyy``. Blank values are None.

    Unrecognised values are None, or raise ``DateParseError`` when
    ``strict`` is set.
    """
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return parse_calendar_date(value)

    text = str(value).strip()
    if not text:
        return None

    match = _UK_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            if strict:
                raise DateParseError(value, field) from None
            return None

    parsed = parse_calendar_date(text)
    if parsed is None and strict:
        raise DateParseError(value, field)
    return parsed
