"""
Typed Exception Hierarchy for the Dealer Kernel.

===============================================================================
WHERE EXCEPTIONS ARE RAISED
===============================================================================

The calculation engines never raise on data: missing or malformed inputs
degrade to zero/empty values.  Exceptions only exist at the layers around
them:

  - Ingestion (strict parsing of raw form payloads and currency strings)
  - Services (refusing to compute margins for incomplete vehicle data)
  - Configuration (invalid YAML sets)

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and structured attributes, so callers catch by type and report by field:

    try:
        margins = service.calculate_for_vehicle(data)
    except MarginDataIncompleteError as e:
        return {"error": e.code, "stock_id": e.stock_id, "errors": e.errors}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DealerKernelError (base)
    |
    +-- IngestionError
    |   +-- CurrencyParseError
    |   +-- DateParseError
    |
    +-- MarginError
    |   +-- MarginDataIncompleteError
    |
    +-- ConfigError
        +-- ConfigNotFoundError
        +-- ConfigValidationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Ingestion       | INVALID_CURRENCY_AMOUNT     | Currency string cannot be parsed
                | INVALID_DATE                | Date string in an unknown format
----------------|-----------------------------|-----------------------------------------
Margins         | VEHICLE_DATA_INCOMPLETE     | Purchase/sale price or dates missing
----------------|-----------------------------|-----------------------------------------
Config          | CONFIG_NOT_FOUND            | No configuration set for the dealer
                | INVALID_CONFIG              | YAML set fails validation
"""

from __future__ import annotations

from typing import Any, Sequence


class DealerKernelError(Exception):
    """
    Base exception for all dealer kernel errors.

    All subclasses have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DEALER_KERNEL_ERROR"


# Ingestion exceptions


class IngestionError(DealerKernelError):
    """Base exception for boundary parsing errors."""

    code: str = "INGESTION_ERROR"


class CurrencyParseError(IngestionError):
    """A currency string could not be turned into an amount."""

    code: str = "INVALID_CURRENCY_AMOUNT"

    def __init__(self, value: Any, field: str | None = None):
        self.value = str(value)
        self.field = field
        where = f" for field {field}" if field else ""
        super().__init__(f"Cannot parse currency amount{where}: {value!r}")


class DateParseError(IngestionError):
    """A date string is in no recognised format."""

    code: str = "INVALID_DATE"

    def __init__(self, value: Any, field: str | None = None):
        self.value = str(value)
        self.field = field
        where = f" for field {field}" if field else ""
        super().__init__(f"Cannot parse date{where}: {value!r}")


# Margin exceptions


class MarginError(DealerKernelError):
    """Base exception for margin calculation errors."""

    code: str = "MARGIN_ERROR"


class MarginDataIncompleteError(MarginError):
    """Vehicle data is incomplete; margins cannot be calculated."""

    code: str = "VEHICLE_DATA_INCOMPLETE"

    def __init__(self, stock_id: str, errors: Sequence[str]):
        self.stock_id = stock_id
        self.errors = list(errors)
        super().__init__(
            f"Vehicle data incomplete for {stock_id or '<unknown>'}: "
            + "; ".join(self.errors)
        )


# Configuration exceptions


class ConfigError(DealerKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class ConfigNotFoundError(ConfigError):
    """No configuration set matches the requested dealer."""

    code: str = "CONFIG_NOT_FOUND"

    def __init__(self, dealer_id: str, config_dir: str):
        self.dealer_id = dealer_id
        self.config_dir = config_dir
        super().__init__(
            f"No configuration set for dealer {dealer_id!r} in {config_dir}"
        )


class ConfigValidationError(ConfigError):
    """A configuration set failed validation."""

    code: str = "INVALID_CONFIG"

    def __init__(self, source: str, errors: Sequence[str]):
        self.source = source
        self.errors = list(errors)
        super().__init__(
            f"Invalid configuration {source}: " + "; ".join(self.errors)
        )
