"""Tests for the structured logging system (dealer_kernel/logging_config.py)."""

import json
import logging
import threading
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from dealer_engines.margins import ProfitCategory
from dealer_kernel.exceptions import CurrencyParseError, MarginDataIncompleteError
from dealer_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "dealer_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("calculated", extra={"days_in_stock": 74, "invoice_to": "Customer"})

        record = _parse_log(stream)
        assert record["days_in_stock"] == 74
        assert record["invoice_to"] == "Customer"

    def test_decimal_and_date_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("amounts", extra={
            "remaining_balance": Decimal("8500.00"),
            "date_of_sale": date(2024, 3, 15),
        })

        record = _parse_log(stream)
        assert record["remaining_balance"] == "8500.00"
        assert record["date_of_sale"] == "2024-03-15"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(correlation_id="abc-123", stock_id="STK-456")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["stock_id"] == "STK-456"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_dealer_exception_code_extracted(self):
        """Dealer kernel exceptions carry a .code attribute and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise MarginDataIncompleteError("STK-1", ["Valid sale price is required"])
        except MarginDataIncompleteError:
            logger.error("margin_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "VEHICLE_DATA_INCOMPLETE"
        assert record["exc_type"] == "MarginDataIncompleteError"
        assert record["exc_stock_id"] == "STK-1"
        assert record["exc_errors"] == ["Valid sale price is required"]

    def test_currency_error_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise CurrencyParseError("twelve pounds", field="salePrice")
        except CurrencyParseError:
            logger.error("parse_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_CURRENCY_AMOUNT"
        assert record["exc_field"] == "salePrice"
        assert record["exc_value"] == "twelve pounds"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "stock_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        uid = uuid4()
        logger.info("with_uuid", extra={"request_id": uid})

        record = _parse_log(stream)
        assert record["request_id"] == str(uid)

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug record is dropped
        assert len(logs) == 2
        for record in logs:
            assert "ts" in record
            assert "level" in record
            assert "logger" in record
            assert "message" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", dealer_id="y")
        ctx = LogContext.get_all()
        assert ctx == {"correlation_id": "x", "dealer_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(stock_id="outer")
        with LogContext.bind(stock_id="inner"):
            assert LogContext.get_all()["stock_id"] == "inner"
        assert LogContext.get_all()["stock_id"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "stock_id" not in LogContext.get_all()
        with LogContext.bind(stock_id="temp"):
            assert LogContext.get_all()["stock_id"] == "temp"
        assert "stock_id" not in LogContext.get_all()

    def test_bind_ignores_none_values(self):
        with LogContext.bind(stock_id=None):
            assert LogContext.get_all() == {}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            dealer_id="d",
            stock_id="s",
            actor_id="a",
            trace_id="t",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["dealer_id"] == "d"
        assert ctx["trace_id"] == "t"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("dealer_kernel")
        assert h1 in root.handlers
        assert h2 not in root.handlers

    def test_get_logger_returns_child(self):
        logger = get_logger("engines.invoice")
        assert logger.name == "dealer_kernel.engines.invoice"

    def test_logger_hierarchy(self):
        """Child loggers inherit the dealer_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "dealer_kernel.deep.nested.module"


class TestLogContextScoping:
    """Nested, failing and cross-thread use of LogContext."""

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="invoice_id"):
            LogContext.set(invoice_id="INV-1")

    def test_nested_bind_layers_fields(self):
        with LogContext.bind(dealer_id="north"):
            with LogContext.bind(stock_id="STK-1"):
                assert LogContext.get_all() == {"dealer_id": "north", "stock_id": "STK-1"}
            assert LogContext.get_all() == {"dealer_id": "north"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(stock_id="STK-9"):
                raise RuntimeError("calculation failed")
        assert LogContext.get_all() == {}

    def test_context_is_per_thread(self):
        seen: list[dict] = []
        LogContext.set(stock_id="main")

        def worker():
            seen.append(LogContext.get_all())

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

        assert seen == [{}]
        assert LogContext.get_all() == {"stock_id": "main"}


# ---------------------------------------------------------------------------
# ConsoleFormatter tests
# ---------------------------------------------------------------------------


class TestConsoleFormatter:
    """Tests for the key=value text output."""

    def test_single_line_with_fields(self):
        stream = StringIO()
        configure_logging(stream=stream, json_output=False)
        logger = get_logger("services.margins")

        with LogContext.bind(stock_id="STK-7"):
            logger.info("margins_overview_completed", extra={
                "total_net_profit": Decimal("1300.50"),
                "profit_category": ProfitCategory.HIGH,
            })

        line = stream.getvalue().strip()
        assert "\n" not in line
        assert " INFO    dealer_kernel.services.margins margins_overview_completed " in line
        assert "stock_id=STK-7" in line
        assert "total_net_profit=1300.50" in line
        assert "profit_category=HIGH" in line

    def test_exception_appends_traceback(self):
        stream = StringIO()
        configure_logging(stream=stream, json_output=False)
        logger = get_logger("test")

        try:
            raise MarginDataIncompleteError("STK-2", ["Purchase date is required"])
        except MarginDataIncompleteError:
            logger.error("margin_error", exc_info=True)

        first, *rest = stream.getvalue().strip().split("\n")
        assert "exc_code=VEHICLE_DATA_INCOMPLETE" in first
        assert "exc_stock_id=STK-2" in first
        assert any("Traceback" in line for line in rest)


class TestConfigureLoggingLevels:

    def test_level_name_accepted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="debug")

        get_logger("test").debug("visible")

        assert _parse_log(stream)["message"] == "visible"

    def test_reset_allows_reconfigure(self):
        h1, first = _make_handler()
        configure_logging(handler=h1)
        reset_logging()
        h2, second = _make_handler()
        configure_logging(handler=h2)

        get_logger("test").info("after_reset")

        assert first.getvalue() == ""
        assert _parse_log(second)["message"] == "after_reset"
