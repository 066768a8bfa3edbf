"""
SqlLedgerStore -- relational persistence gateway for ledger snapshots.

Responsibility:
    Writes a LedgerSnapshot into the stock_items / stock_transactions /
    ledger_meta tables and reads it back.

Architecture position:
    Kernel > DB. Works on snapshots only; it never touches a live
    InventoryLedger, so persistence happens outside the ledger lock.

Transaction boundaries:
    The store accepts a Session from the caller and only flushes. The
    caller owns commit/rollback, normally through
    ``inventory_kernel.db.engine.session_scope``.

Invariants enforced:
    APPEND_ONLY_HISTORY -- ``save`` refuses a snapshot that drops or alters
                           a stored transaction. ``replace`` is the explicit
                           restore path that rewrites history.
    SNAPSHOT_INTEGRITY  -- both write paths validate the snapshot first.

Failure modes:
    - InvalidSnapshotError if the snapshot fails validation.
    - ImmutabilityViolationError if ``save`` would rewrite history.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from inventory_kernel.db.models import LedgerMetaModel, StockItemModel, StockTransactionModel
from inventory_kernel.domain.snapshot import DEFAULT_SNAPSHOT_VERSION, validate_snapshot
from inventory_kernel.domain.values import (
    LedgerSnapshot,
    StockDirection,
    StockItem,
    StockTransaction,
)
from inventory_kernel.exceptions import ImmutabilityViolationError, InvalidSnapshotError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.store")

_META_ROW_ID = 1


class SqlLedgerStore:
    """Load and save ledger snapshots through a caller-owned Session."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self) -> LedgerSnapshot:
        """Read the stored ledger. An empty database yields an empty snapshot."""
        item_rows = self.session.scalars(
            select(StockItemModel).order_by(StockItemModel.sku)
        ).all()
        txn_rows = self.session.scalars(
            select(StockTransactionModel).order_by(StockTransactionModel.sequence.desc())
        ).all()
        meta = self.session.get(LedgerMetaModel, _META_ROW_ID)

        return LedgerSnapshot(
            items=tuple(_item_from_row(row) for row in item_rows),
            transactions=tuple(_transaction_from_row(row) for row in txn_rows),
            version=meta.version if meta is not None else DEFAULT_SNAPSHOT_VERSION,
            taken_at=meta.saved_at if meta is not None else None,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, snapshot: LedgerSnapshot) -> int:
        """
        Bring the stored ledger in line with ``snapshot``.

        Items are upserted (and items absent from the snapshot removed);
        transactions not yet stored are inserted. Stored transactions must
        all appear unchanged in the snapshot.

        Returns:
            Number of transactions inserted.
        """
        self._validate(snapshot)

        stored = {
            row.id: row
            for row in self.session.scalars(select(StockTransactionModel)).all()
        }
        incoming = {txn.id: txn for txn in snapshot.transactions}
        for txn_id, row in stored.items():
            txn = incoming.get(txn_id)
            if txn is None:
                raise ImmutabilityViolationError(
                    entity_type="StockTransaction",
                    entity_id=txn_id,
                    reason="stored transaction is missing from the snapshot",
                )
            if _transaction_from_row(row) != txn:
                raise ImmutabilityViolationError(
                    entity_type="StockTransaction",
                    entity_id=txn_id,
                    reason="snapshot alters a stored transaction",
                )

        wanted = {item.sku: item for item in snapshot.items}
        for row in self.session.scalars(select(StockItemModel)).all():
            item = wanted.pop(row.sku, None)
            if item is None:
                self.session.delete(row)
                continue
            row.product_title = item.product_title
            row.quantity = item.quantity
            row.reserved_quantity = item.reserved_quantity
            row.last_updated = item.last_updated
        for item in wanted.values():
            self.session.add(_row_from_item(item))
        # Items must exist before transactions reference them.
        self.session.flush()

        new_txns = [txn for txn in snapshot.transactions if txn.id not in stored]
        # Oldest first so insert order follows sequence order.
        for txn in reversed(new_txns):
            self.session.add(_row_from_transaction(txn))
        self._write_meta(snapshot)
        self.session.flush()

        logger.info(
            "snapshot_saved",
            extra={
                "item_count": len(snapshot.items),
                "transactions_inserted": len(new_txns),
                "version": snapshot.version,
            },
        )
        return len(new_txns)

    def replace(self, snapshot: LedgerSnapshot) -> None:
        """
        Overwrite everything stored with ``snapshot`` (restore from backup).

        Uses bulk DELETE statements, which bypass the ORM immutability
        listeners.
        """
        self._validate(snapshot)

        self.session.execute(delete(StockTransactionModel))
        self.session.execute(delete(StockItemModel))
        self.session.execute(delete(LedgerMetaModel))
        self.session.expunge_all()

        self.session.add_all(_row_from_item(item) for item in snapshot.items)
        self.session.flush()
        self.session.add_all(
            _row_from_transaction(txn) for txn in reversed(snapshot.transactions)
        )
        self._write_meta(snapshot)
        self.session.flush()

        logger.warning(
            "snapshot_replaced",
            extra={
                "item_count": len(snapshot.items),
                "transaction_count": len(snapshot.transactions),
                "version": snapshot.version,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate(self, snapshot: LedgerSnapshot) -> None:
        problems = validate_snapshot(snapshot)
        if problems:
            raise InvalidSnapshotError(problems)

    def _write_meta(self, snapshot: LedgerSnapshot) -> None:
        saved_at = snapshot.taken_at
        if saved_at is None:
            candidates = [item.last_updated for item in snapshot.items]
            candidates += [txn.created_at for txn in snapshot.transactions]
            saved_at = max(candidates, default=None)
        meta = self.session.get(LedgerMetaModel, _META_ROW_ID)
        if meta is None:
            if saved_at is None:
                saved_at = datetime.now(timezone.utc)
            self.session.add(
                LedgerMetaModel(id=_META_ROW_ID, version=snapshot.version, saved_at=saved_at)
            )
        else:
            meta.version = snapshot.version
            if saved_at is not None:
                meta.saved_at = saved_at


def _row_from_item(item: StockItem) -> StockItemModel:
    return StockItemModel(
        sku=item.sku,
        product_title=item.product_title,
        quantity=item.quantity,
        reserved_quantity=item.reserved_quantity,
        last_updated=item.last_updated,
    )


def _item_from_row(row: StockItemModel) -> StockItem:
    return StockItem(
        sku=row.sku,
        product_title=row.product_title,
        quantity=row.quantity,
        reserved_quantity=row.reserved_quantity,
        last_updated=row.last_updated,
    )


def _row_from_transaction(txn: StockTransaction) -> StockTransactionModel:
    return StockTransactionModel(
        id=txn.id,
        sequence=txn.sequence,
        sku=txn.sku,
        direction=txn.direction.value,
        quantity=txn.quantity,
        tracking_number=txn.tracking_number,
        notes=txn.notes,
        created_at=txn.created_at,
    )


def _transaction_from_row(row: StockTransactionModel) -> StockTransaction:
    return StockTransaction(
        id=row.id,
        sequence=row.sequence,
        sku=row.sku,
        direction=StockDirection(row.direction),
        quantity=row.quantity,
        tracking_number=row.tracking_number,
        notes=row.notes,
        created_at=row.created_at,
    )
