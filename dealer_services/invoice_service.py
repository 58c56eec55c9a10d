"""
dealer_services.invoice_service -- Invoice calculation over raw form payloads.

Responsibility:
    Accept a raw invoice-form payload, parse it at the boundary, run the
    invoice engine and hand back either the typed result or the form
    payload with every derived field written back under its camelCase
    form name.

Architecture position:
    Services -- orchestration over ingestion + engines.  Holds no state
    beyond its parsing mode.

Failure modes:
    - ``CurrencyParseError`` / ``DateParseError`` when constructed with
      ``strict=True`` and the payload carries malformed values.  In the
      default lenient mode malformed values are logged and treated as zero.

Usage:
    service = InvoiceService()
    result = service.calculate({"salePrice": "£10,000", "invoiceTo": "Customer"})
    updated_form = service.apply_calculations(form_payload)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dealer_engines.invoice import CalculationResult, calculate_all_fields
from dealer_ingestion.form_mapping import sale_record_from_form
from dealer_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.invoice")


class InvoiceService:
    """Runs the invoice engine for raw form payloads."""

    def __init__(self, *, strict: bool = False):
        self._strict = strict

    def calculate(self, payload: Mapping[str, Any]) -> CalculationResult:
        """Parse ``payload`` and calculate every derived invoice field."""
        with LogContext.bind(stock_id=_stock_id(payload)):
            record = sale_record_from_form(payload, strict=self._strict)
            return calculate_all_fields(record)

    def apply_calculations(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return a copy of ``payload`` with the derived fields merged in.

        Derived values overwrite any stale values the form carried.
        """
        result = self.calculate(payload)
        derived = result.to_form_fields()
        updated = {**payload, **derived}
        logger.info("invoice_form_updated", extra={
            "derived_field_count": len(derived),
            "remaining_balance": str(result.remaining_balance),
        })
        return updated


def _stock_id(payload: Mapping[str, Any]) -> str | None:
    value = payload.get("stockId") or payload.get("stockReference")
    return str(value) if value else None
