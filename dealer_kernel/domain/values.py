"""
Values -- lenient numeric coercion for flat sale records.

Responsibility:
    Turns whatever a caller placed in a record field into a ``Decimal``
    without ever raising.  This is the "absence is a valid zero" contract
    the calculation engines rely on: ``None``, empty strings, non-numeric
    values, NaN, infinities and magnitudes of ``MAX_AMOUNT`` or more all
    become ``Decimal("0")``, so engine arithmetic never overflows.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Non-goals:
    - Does NOT parse currency strings ("£1,234.56").  That belongs to the
      ingestion boundary (``dealer_ingestion.currency``); a currency string
      reaching this module is treated as non-numeric and coerced to zero.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

ZERO = Decimal("0")

MAX_AMOUNT = Decimal("1E+15")

_YES_VALUES = frozenset({"yes", "y", "true", "1"})


def to_amount(value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal below ``MAX_AMOUNT``, defaulting to zero."""
    result = _to_decimal(value)
    return result if result.copy_abs() < MAX_AMOUNT else ZERO


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.1 becomes Decimal("0.1")
        value = str(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            # unary plus applies the context, so out-of-range exponents fail here
            result = +Decimal(text)
        except (ArithmeticError, ValueError):
            return ZERO
        return result if result.is_finite() else ZERO
    return ZERO


def to_optional_amount(value: Any) -> Decimal | None:
    """Like ``to_amount`` but keeps ``None`` as "not supplied"."""
    if value is None:
        return None
    return to_amount(value)


def clamp_zero(value: Decimal) -> Decimal:
    """Floor a value at zero: ``max(0, value)``."""
    return value if value > ZERO else ZERO


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero instead of raising on a zero denominator."""
    if denominator == ZERO:
        return ZERO
    return numerator / denominator


def is_yes(value: Any) -> bool:
    """Interpret form-style flags ("Yes", True, "true") as a boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _YES_VALUES
