"""
Structured logging (inventory_kernel/logging_config.py).

Every ledger, receiving and snapshot event is one JSON line carrying the
bound context and, on failure, the kernel error's code and fields.
"""

import json
import logging
from io import StringIO

import pytest

from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import LedgerSnapshot, PendingStock, StockDirection
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidSnapshotError,
    ItemNotFoundError,
)
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """Route inventory_kernel logs into a fresh stream for one test."""
    reset_logging()
    LogContext.clear()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    configure_logging(level=logging.DEBUG, handler=handler)
    yield stream
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _records(stream: StringIO, message: str | None = None) -> list[dict]:
    lines = [json.loads(line) for line in stream.getvalue().splitlines() if line]
    if message is None:
        return lines
    return [r for r in lines if r["message"] == message]


def _structured_handlers() -> list[logging.Handler]:
    root = logging.getLogger("inventory_kernel")
    return [h for h in root.handlers if isinstance(h.formatter, StructuredFormatter)]


class TestLedgerEvents:
    def test_movement_line(self, log_stream, ledger):
        txn = ledger.stock_out("SKU001", 5, "OUT123456")

        (record,) = _records(log_stream, "stock_movement_applied")
        assert record["logger"] == "inventory_kernel.domain.ledger"
        assert record["level"] == "INFO"
        assert record["transaction_id"] == txn.id
        assert record["direction"] == "out"
        assert (record["quantity_after"], record["available_after"]) == (40, 35)
        assert "ts" in record

    def test_rejected_withdrawal(self, log_stream, ledger):
        with pytest.raises(InsufficientStockError):
            ledger.stock_out("SKU002", 11)

        (record,) = _records(log_stream, "stock_out_rejected")
        assert record["level"] == "WARNING"
        assert (record["requested"], record["available"]) == (11, 10)
        assert _records(log_stream, "stock_movement_applied") == []

    def test_reservation_lines(self, log_stream, ledger):
        ledger.reserve("SKU001", 3)
        ledger.release("SKU001", 1)
        assert [r["quantity"] for r in _records(log_stream, "stock_reserved")] == [3]
        assert [r["quantity"] for r in _records(log_stream, "stock_released")] == [1]

    def test_snapshot_rejection_lists_problems(self, log_stream, ledger):
        bad = LedgerSnapshot(items=tuple(ledger.items()) * 2)
        with pytest.raises(InvalidSnapshotError):
            ledger.import_state(bad)

        (record,) = _records(log_stream, "snapshot_rejected")
        assert record["problem_count"] == 2
        assert record["problems"][0].startswith("duplicate item sku 'SKU001'")

    def test_enum_extras_serialized(self, log_stream):
        get_logger("test").info("direction_seen", extra={"direction": StockDirection.IN})
        assert _records(log_stream, "direction_seen")[0]["direction"] == "in"


class TestReceivingContext:
    def test_pending_receipt_carries_bound_context(self, log_stream, ledger):
        pending = PendingStock(id="PO-7", sku="SKU002", quantity=4)
        with LogContext.bind(correlation_id=pending.id, actor_id="dock-4"):
            ledger.receive_pending(pending)

        (record,) = _records(log_stream, "pending_stock_received")
        assert record["correlation_id"] == "PO-7"
        assert record["actor_id"] == "dock-4"
        assert record["item_created"] is False
        assert "correlation_id" not in LogContext.get_all()

    def test_failed_receipt_exception_fields(self, log_stream, rejecting_receiving):
        with pytest.raises(ItemNotFoundError):
            rejecting_receiving.receive("PO-1")

        (record,) = _records(log_stream, "receipt_failed")
        assert record["exc_type"] == "ItemNotFoundError"
        assert record["exc_code"] == "ITEM_NOT_FOUND"
        assert record["exc_sku"] == "SKU003"
        assert record["sku"] == "SKU003"
        assert "traceback" in record

    def test_plain_exception_has_no_code(self, log_stream):
        try:
            raise ValueError("scanner offline")
        except ValueError:
            get_logger("test").error("scan_failed", exc_info=True)

        record = _records(log_stream, "scan_failed")[0]
        assert record["exc_message"] == "scanner offline"
        assert "exc_code" not in record


class TestLogContext:
    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(warehouse="north")

    def test_bind_restores_outer_value(self):
        LogContext.set(sku="SKU001")
        with LogContext.bind(sku="SKU002", transaction_id="t-1"):
            assert LogContext.get_all() == {"sku": "SKU002", "transaction_id": "t-1"}
        assert LogContext.get_all() == {"sku": "SKU001"}

    def test_none_values_ignored(self):
        LogContext.set(sku="SKU001", trace_id=None)
        assert LogContext.get_all() == {"sku": "SKU001"}


class TestConfigureLogging:
    def test_second_call_is_a_no_op(self, log_stream):
        first = _structured_handlers()
        extra = logging.StreamHandler(StringIO())
        configure_logging(handler=extra)

        assert extra not in logging.getLogger("inventory_kernel").handlers
        assert _structured_handlers() == first
        assert len(first) == 1

    def test_level_filters_debug(self):
        reset_logging()
        stream = StringIO()
        try:
            configure_logging(level=logging.INFO, handler=logging.StreamHandler(stream))
            InventoryLedger().add_item("SKU009")
            get_logger("test").debug("hidden")
            assert _records(stream, "hidden") == []
            assert len(_records(stream, "item_added")) == 1
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_loggers_share_namespace(self):
        assert get_logger("services.procurement").name == "inventory_kernel.services.procurement"
