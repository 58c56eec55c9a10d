"""
Pytest fixtures for the dealer calculation test suite.

Provides:
- Structured logging configured once per session
- LogContext isolation between tests
- ``captured_logs`` for asserting on emitted JSON log records
- A deterministic clock and sample records shared across test modules
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from dealer_engines.invoice import SaleRecord
from dealer_engines.margins import VehicleMarginData
from dealer_kernel.domain.clock import DeterministicClock
from dealer_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture dealer_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_all_fields(record)
            logs = captured_logs()
            assert any(r["message"] == "invoice_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dealer_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock pinned to 2024-06-01 12:00 UTC."""
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def customer_sale() -> SaleRecord:
    """A customer invoice with a sale discount, a deposit and a card payment."""
    return SaleRecord(
        invoice_to="Customer",
        date_of_sale="2024-03-15",
        date_of_purchase="2024-01-01",
        sale_price=Decimal("10000"),
        discount_on_sale_price=Decimal("500"),
        warranty_price=Decimal("300"),
        delivery_cost=Decimal("100"),
        dealer_deposit=Decimal("1000"),
        amount_paid_deposit_customer=Decimal("1000"),
        amount_paid_card=Decimal("2000"),
    )


@pytest.fixture
def sample_vehicle() -> VehicleMarginData:
    """Private purchase bought for 10,000 and sold for 15,000 after 60 days."""
    return VehicleMarginData(
        stock_id="TEST001",
        registration="AB12 CDE",
        purchase_price=Decimal("10000"),
        sale_price=Decimal("15000"),
        total_costs=Decimal("1200"),
        vatable_costs=Decimal("600"),
        non_vatable_costs=Decimal("600"),
        purchase_date=date(2024, 1, 15),
        sale_date=date(2024, 3, 15),
        is_commercial_purchase=False,
    )
