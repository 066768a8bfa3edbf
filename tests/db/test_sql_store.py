"""
Tests for the SQL persistence gateway.

Verifies:
- save/load round trip through SQLite
- save appends history and refuses to rewrite it
- replace rewrites everything (restore from backup)
- ORM listeners block UPDATE/DELETE of stored transactions
- CHECK constraints mirror the quantity invariant
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.engine import session_scope
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.db.models import StockItemModel, StockTransactionModel
from inventory_kernel.db.store import SqlLedgerStore
from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import LedgerSnapshot, StockItem, StockTransaction
from inventory_kernel.exceptions import ImmutabilityViolationError, InvalidSnapshotError

NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(session):
    return SqlLedgerStore(session)


@pytest.fixture
def saved_ledger(ledger, store, session):
    ledger.stock_in("SKU001", 10, "TRK1")
    ledger.stock_out("SKU002", 3, "OUT1")
    store.save(ledger.export_state())
    session.commit()
    return ledger


class TestRoundTrip:
    def test_empty_database_loads_empty_snapshot(self, store):
        snapshot = store.load()
        assert snapshot.items == ()
        assert snapshot.transactions == ()
        assert snapshot.version == "1.0"

    def test_save_then_load(self, saved_ledger, store):
        loaded = store.load()
        assert loaded == saved_ledger.export_state()
        assert all(t.created_at.tzinfo is not None for t in loaded.transactions)

    def test_loaded_snapshot_imports(self, saved_ledger, store):
        fresh = InventoryLedger()
        fresh.import_state(store.load())
        assert fresh.items() == saved_ledger.items()

    def test_no_available_column(self):
        assert "available_quantity" not in StockItemModel.__table__.columns

    def test_version_persisted(self, store, session):
        store.save(LedgerSnapshot(version="9.1"))
        session.commit()
        assert store.load().version == "9.1"


class TestSave:
    def test_updates_items_and_appends_history(self, saved_ledger, store, session):
        saved_ledger.reserve("SKU001", 2)
        saved_ledger.stock_in("SKU002", 4)
        inserted = store.save(saved_ledger.export_state())
        session.commit()

        assert inserted == 1
        assert store.load() == saved_ledger.export_state()

    def test_removes_items_missing_from_snapshot(self, store, session):
        a = StockItem("A", "", 1, 0, NOW)
        b = StockItem("B", "", 1, 0, NOW)
        store.save(LedgerSnapshot(items=(a, b)))
        store.save(LedgerSnapshot(items=(StockItem("A", "", 1, 0, NOW),)))
        session.commit()
        assert [i.sku for i in store.load().items] == ["A"]

    def test_refuses_dropping_history(self, saved_ledger, store):
        snapshot = saved_ledger.export_state()
        truncated = LedgerSnapshot(items=snapshot.items, transactions=snapshot.transactions[1:])
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            store.save(truncated)
        assert exc_info.value.entity_id == snapshot.transactions[0].id

    def test_refuses_altering_history(self, saved_ledger, store):
        snapshot = saved_ledger.export_state()
        newest = snapshot.transactions[0]
        altered = StockTransaction(
            id=newest.id,
            sequence=newest.sequence,
            sku=newest.sku,
            direction=newest.direction,
            quantity=newest.quantity + 1,
            tracking_number=newest.tracking_number,
            notes=newest.notes,
            created_at=newest.created_at,
        )
        tampered = LedgerSnapshot(
            items=snapshot.items, transactions=(altered,) + snapshot.transactions[1:]
        )
        with pytest.raises(ImmutabilityViolationError):
            store.save(tampered)

    def test_invalid_snapshot_rejected(self, store):
        bad = LedgerSnapshot(
            items=(),
            transactions=(
                StockTransaction("t", 1, "GHOST", "in", 1, "", "", NOW),
            ),
        )
        with pytest.raises(InvalidSnapshotError):
            store.save(bad)


class TestReplace:
    def test_replace_rewrites_history(self, saved_ledger, store, session):
        other = InventoryLedger()
        other.add_item("SKU100", "Replacement", quantity=3)
        other.stock_in("SKU100", 2)
        backup = other.export_state()

        store.replace(backup)
        session.commit()

        assert store.load() == backup
        assert session.scalars(select(StockTransactionModel.sku)).all() == ["SKU100"]


class TestImmutabilityListeners:
    def test_update_blocked(self, saved_ledger, session):
        row = session.scalars(select(StockTransactionModel)).first()
        row.quantity = 999
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "StockTransaction"

    def test_delete_blocked(self, saved_ledger, session):
        row = session.scalars(select(StockTransactionModel)).first()
        session.delete(row)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_unregistered_allows_update(self, saved_ledger, session):
        unregister_immutability_listeners()
        try:
            row = session.scalars(select(StockTransactionModel)).first()
            row.notes = "corrected"
            session.flush()
        finally:
            register_immutability_listeners()

    def test_register_is_idempotent(self):
        register_immutability_listeners()
        register_immutability_listeners()


class TestConstraints:
    def test_reserved_above_quantity_rejected(self, session):
        session.add(
            StockItemModel(
                sku="BAD", product_title="", quantity=1, reserved_quantity=2, last_updated=NOW
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()

    def test_transaction_for_unknown_sku_rejected(self, session):
        session.add(
            StockTransactionModel(
                id="t-1", sequence=1, sku="GHOST", direction="in", quantity=1,
                tracking_number="", notes="", created_at=NOW,
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()


def test_session_scope_rolls_back_on_error(engine):
    with pytest.raises(ImmutabilityViolationError):
        with session_scope() as session:
            store = SqlLedgerStore(session)
            store.save(LedgerSnapshot(items=(StockItem("A", "", 1, 0, NOW),)))
            raise ImmutabilityViolationError("StockTransaction", "x", "forced")

    with session_scope() as session:
        assert SqlLedgerStore(session).load().items == ()
