"""
Stock Dates Engine - Sale month/quarter and days-in-stock.

Pure functions with no I/O. Dates arrive as ``date``/``datetime`` objects or
ISO-8601 strings; anything else is treated as missing rather than raising.

Usage:
    from dealer_engines.stock_dates import calculate_date_fields, calculate_days_in_stock

    fields = calculate_date_fields("2024-03-15")
    print(fields.month_of_sale, fields.quarter_of_sale)  # March 1

    calculate_days_in_stock("2024-03-15", "2024-01-01")  # 74

Quirk (preserved): days in stock is the ABSOLUTE difference, so a purchase
date after the sale date still yields a positive count.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dealer_kernel.logging_config import get_logger

logger = get_logger("engines.stock_dates")

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateFields:
    """Month name and quarter derived from a sale date."""

    month_of_sale: str = ""
    quarter_of_sale: int = 0


def _parse_moment(value: Any) -> datetime | None:
    """Parse to a naive UTC datetime; None when missing or unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_calendar_date(value: Any) -> date | None:
    """Parse a calendar date, returning None for missing/unparseable input."""
    moment = _parse_moment(value)
    return moment.date() if moment is not None else None


def quarter_of(month: int) -> int:
    """Quarter 1-4 for a 1-based month: ceil(month / 3)."""
    return (month + 2) // 3


def calculate_date_fields(date_of_sale: Any) -> DateFields:
    """Month name and quarter of a sale date; ("", 0) when missing."""
    sale = parse_calendar_date(date_of_sale)
    if sale is None:
        return DateFields()
    return DateFields(
        month_of_sale=MONTH_NAMES[sale.month - 1],
        quarter_of_sale=quarter_of(sale.month),
    )


def calculate_days_in_stock(date_of_sale: Any, date_of_purchase: Any) -> int:
    """
    Whole days between purchase and sale, rounded up.

    Returns 0 if either date is missing. Uses the absolute difference.
    """
    sale = _parse_moment(date_of_sale)
    purchase = _parse_moment(date_of_purchase)
    if sale is None or purchase is None:
        return 0

    if purchase > sale:
        logger.debug("days_in_stock_purchase_after_sale", extra={
            "date_of_sale": sale.isoformat(),
            "date_of_purchase": purchase.isoformat(),
        })

    elapsed = abs(sale - purchase)
    whole_days, remainder = divmod(elapsed, _DAY)
    return whole_days + (1 if remainder else 0)


def format_month_year(value: Any) -> str:
    """Format a date as "Month Year" (e.g. "January 2024")."""
    parsed = parse_calendar_date(value)
    if parsed is None:
        return "Invalid Date"
    return f"{MONTH_NAMES[parsed.month - 1]} {parsed.year}"


def format_quarter(value: Any) -> str:
    """Format a date as "Q<n> <year>" (e.g. "Q1 2024")."""
    parsed = parse_calendar_date(value)
    if parsed is None:
        return "Invalid Quarter"
    return f"Q{quarter_of(parsed.month)} {parsed.year}"
