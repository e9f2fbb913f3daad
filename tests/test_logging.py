"""Tests for the structured logging system (mandi_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from mandi_kernel.domain.quantities import StockQuantity
from mandi_kernel.exceptions import (
    InsufficientFundsError,
    InsufficientStockError,
    OverpaymentError,
)
from mandi_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


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
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "mandi_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("stock_movement_recorded", extra={"movement_seq": 3, "direction": "OUT"})

        record = _parse_log(stream)
        assert record["movement_seq"] == 3
        assert record["direction"] == "OUT"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(tenant_id="t-1", operation="apply_payment")
        get_logger("test").info("payment_applied")

        record = _parse_log(stream)
        assert record["tenant_id"] == "t-1"
        assert record["operation"] == "apply_payment"

    def test_context_wins_over_same_named_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(tenant_id="bound")
        get_logger("test").info("tenant_created", extra={"tenant_id": "extra"})

        assert _parse_log(stream)["tenant_id"] == "bound"

    def test_decimal_uuid_and_bool_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values", extra={"amount": Decimal("400.50"), "entry_id": uid, "flagged": True}
        )

        record = _parse_log(stream)
        assert record["amount"] == "400.50"
        assert record["entry_id"] == str(uid)
        assert record["flagged"] is True

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_fields_extracted(self):
        """Kernel exceptions carry a .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise OverpaymentError("SI000001", Decimal("500"), Decimal("200"))
        except OverpaymentError:
            get_logger("test").warning("payment_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "OVERPAYMENT"
        assert record["exc_type"] == "OverpaymentError"
        assert record["exc_amount"] == "500"
        assert record["exc_outstanding"] == "200"

    def test_insufficient_stock_code(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientStockError(
                item_id="i-1", dimension="weight", requested=Decimal("50"), available=Decimal("30")
            )
        except InsufficientStockError:
            get_logger("test").info("sale_rejected", exc_info=True)

        assert _parse_log(stream)["exc_code"] == "INSUFFICIENT_STOCK"

    @pytest.mark.parametrize(
        "value, logged",
        [
            (Decimal("700.000000000"), "700.00"),
            (Decimal("12.500000000"), "12.50"),
            (Decimal("0.125000000"), "0.125"),
            (Decimal("-30.000"), "-30.00"),
            (Decimal("400.5"), "400.5"),
        ],
    )
    def test_column_padding_trimmed(self, value, logged):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("balance_read", extra={"balance": value})

        assert _parse_log(stream)["balance"] == logged

    def test_value_objects_logged_as_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "stock_counted", extra={"counted": StockQuantity.of(weight="12.5", crates=3)}
        )

        counted = _parse_log(stream)["counted"]
        assert set(counted) == {"weight", "crates", "boxes"}
        assert Decimal(counted["weight"]) == Decimal("12.5")
        assert Decimal(counted["crates"]) == 3

    def test_stock_shortfall_reported(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientStockError(
                item_id="i-1", dimension="weight", requested=Decimal("50"), available=Decimal("30.000")
            )
        except InsufficientStockError:
            get_logger("test").info("sale_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_dimension"] == "weight"
        assert record["exc_shortfall"] == "20.00"

    def test_funds_shortfall_reported(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientFundsError("cash", Decimal("1000"), Decimal("250"))
        except InsufficientFundsError:
            get_logger("test").info("transfer_rejected", exc_info=True)

        assert _parse_log(stream)["exc_shortfall"] == "750"

    def test_overpayment_excess_reported(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise OverpaymentError("SI000001", Decimal("500"), Decimal("200"))
        except OverpaymentError:
            get_logger("test").info("payment_rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_excess"] == "300"
        assert "exc_shortfall" not in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "tenant_id" not in record

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(operation="outer")
        with LogContext.bind(operation="inner"):
            assert LogContext.get_all()["operation"] == "inner"
        assert LogContext.get_all()["operation"] == "outer"

    def test_bind_restores_none(self):
        assert "invoice_id" not in LogContext.get_all()
        with LogContext.bind(invoice_id="temp"):
            assert LogContext.get_all()["invoice_id"] == "temp"
        assert "invoice_id" not in LogContext.get_all()

    def test_bind_stringifies_and_skips_none(self):
        tenant_id = uuid4()
        with LogContext.bind(tenant_id=tenant_id, actor_id=None):
            ctx = LogContext.get_all()
        assert ctx == {"tenant_id": str(tenant_id)}

    def test_all_fields(self):
        LogContext.set(
            tenant_id="t",
            actor_id="a",
            correlation_id="c",
            operation="o",
            invoice_id="i",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["invoice_id"] == "i"


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
        # pytest may attach its own capture handlers; count only ours.
        handlers = logging.getLogger("mandi_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers
        assert [h for h in handlers if isinstance(h.formatter, StructuredFormatter)] == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("services.stock_ledger").name == "mandi_kernel.services.stock_ledger"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("modules.invoicing.service").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "mandi_kernel.modules.invoicing.service"
