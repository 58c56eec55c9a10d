"""
Pure domain layer.

Value coercion and the clock abstraction used by engines and services.
No I/O, no configuration, no logging side effects.
"""

from dealer_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from dealer_kernel.domain.values import (
    ZERO,
    clamp_zero,
    is_yes,
    safe_divide,
    to_amount,
    to_optional_amount,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ZERO",
    "clamp_zero",
    "is_yes",
    "safe_divide",
    "to_amount",
    "to_optional_amount",
]
