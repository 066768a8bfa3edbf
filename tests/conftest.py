"""
Pytest fixtures for the inventory ledger test suite.

Provides:
- Structured logging for the whole session and a ``captured_logs`` fixture
- A deterministic clock
- Ledgers seeded with sample inventory data
- An in-memory SQLite session with immutability listeners installed
"""

import json
import logging
from datetime import date, datetime, timezone
from io import StringIO

import pytest

from inventory_config import InventoryConfig, ReceivingSettings, UnknownSkuPolicy
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import PendingStock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_services.catalog import InMemoryCatalog
from inventory_services.procurement import PendingStockQueue, ReceivingService

START_TIME = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


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
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.stock_in("SKU001", 1)
            assert any(r["message"] == "stock_movement_applied" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    """Deterministic clock that advances one second per reading."""
    return DeterministicClock(START_TIME, auto_tick=1)


@pytest.fixture
def empty_ledger(clock):
    return InventoryLedger(clock=clock)


@pytest.fixture
def ledger(clock):
    """Ledger holding SKU001 {45, 5} and SKU002 {12, 2}, no history."""
    ledger = InventoryLedger(clock=clock)
    ledger.add_item("SKU001", "Wireless Bluetooth Headphones", quantity=45, reserved_quantity=5)
    ledger.add_item("SKU002", "Smart Watch Series X", quantity=12, reserved_quantity=2)
    return ledger


@pytest.fixture
def pending_sku003():
    return PendingStock(
        id="PO-1",
        sku="SKU003",
        quantity=25,
        expected_date=date(2024, 2, 1),
        supplier="Tech Supplier Co.",
        tracking_number="TRK123456789",
    )


@pytest.fixture
def catalog():
    return InMemoryCatalog(
        {
            "SKU001": "Wireless Bluetooth Headphones",
            "SKU002": "Smart Watch Series X",
            "SKU003": "USB-C Charging Dock",
        }
    )


@pytest.fixture
def queue(pending_sku003):
    return PendingStockQueue([pending_sku003])


@pytest.fixture
def receiving(ledger, queue, catalog):
    return ReceivingService(ledger, queue, catalog, ReceivingSettings())


@pytest.fixture
def rejecting_receiving(ledger, queue, catalog):
    return ReceivingService(
        ledger,
        queue,
        catalog,
        ReceivingSettings(unknown_sku_policy=UnknownSkuPolicy.REJECT),
    )


@pytest.fixture
def config():
    return InventoryConfig()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine):
    session = get_session()
    yield session
    session.rollback()
    session.close()
