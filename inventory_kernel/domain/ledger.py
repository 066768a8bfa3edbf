"""
InventoryLedger -- the single owner of stock positions and their history.

Responsibility:
    Holds the SKU -> StockItem map and the newest-first transaction log,
    applies stock-in, stock-out and reservation changes, and exchanges
    whole-state snapshots with the persistence/export gateway.

Architecture position:
    Kernel > Domain. Depends only on values, snapshot, clock, exceptions
    and logging. No I/O: persistence works on the snapshot returned by
    ``export_state`` after the mutation has committed.

Invariants enforced:
    QUANTITY_BOUNDS       -- every stored StockItem is validated on creation
    ATOMIC_MUTATION       -- item replacement and transaction append happen
                             under one lock, after all checks have passed
    APPEND_ONLY_HISTORY   -- no operation edits or removes a transaction
    SNAPSHOT_INTEGRITY    -- import_state validates before replacing
    SEQUENCE_MONOTONICITY -- sequences come from a single counter

Concurrency:
    One re-entrant lock per ledger serializes every mutation. Queries copy
    what they need under the same lock and work on the copy, so they never
    observe a half-applied operation.

Failure modes:
    ItemNotFoundError, ItemAlreadyExistsError, InvalidQuantityError,
    InsufficientStockError, InvalidReservationError, InvalidSnapshotError.
    In every case the ledger state is unchanged.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from uuid import uuid4

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.snapshot import DEFAULT_SNAPSHOT_VERSION, validate_snapshot
from inventory_kernel.domain.values import (
    LedgerSnapshot,
    PendingStock,
    StockDirection,
    StockItem,
    StockTransaction,
    require_positive_quantity,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidReservationError,
    InvalidSnapshotError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.ledger")

RECEIPT_NOTE = "received from procurement"


class InventoryLedger:
    """
    In-memory inventory ledger.

    Contract:
        All quantity changes go through this class. Returned StockItem and
        StockTransaction objects are immutable, so callers cannot reach
        back into ledger state.

    Guarantees:
        - After every completed call, every item satisfies
          0 <= reserved_quantity <= quantity.
        - A failed call leaves items, history and the sequence counter
          exactly as they were.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        snapshot: LedgerSnapshot | None = None,
        snapshot_version: str = DEFAULT_SNAPSHOT_VERSION,
    ):
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._items: dict[str, StockItem] = {}
        # Newest first.
        self._transactions: list[StockTransaction] = []
        self._next_sequence = 1
        self._version = snapshot_version
        if snapshot is not None:
            self.import_state(snapshot)

    # ------------------------------------------------------------------
    # Item set
    # ------------------------------------------------------------------

    def add_item(
        self,
        sku: str,
        product_title: str = "",
        quantity: int = 0,
        reserved_quantity: int = 0,
    ) -> StockItem:
        """
        Register a new SKU.

        Creation records no transaction; opening stock is part of the
        item's initial state.

        Raises:
            ItemAlreadyExistsError: if ``sku`` is already tracked.
            InvalidQuantityError: if the quantities break the invariant.
        """
        with self._lock:
            if sku in self._items:
                raise ItemAlreadyExistsError(sku)
            item = StockItem(
                sku=sku,
                product_title=product_title,
                quantity=quantity,
                reserved_quantity=reserved_quantity,
                last_updated=self._clock.now(),
            )
            self._items[sku] = item

        logger.info(
            "item_added",
            extra={"sku": sku, "quantity": quantity, "reserved_quantity": reserved_quantity},
        )
        return item

    def get_item(self, sku: str) -> StockItem:
        with self._lock:
            try:
                return self._items[sku]
            except KeyError:
                raise ItemNotFoundError(sku) from None

    def items(self) -> list[StockItem]:
        """All items ordered by SKU."""
        with self._lock:
            return sorted(self._items.values(), key=lambda item: item.sku)

    def __contains__(self, sku: object) -> bool:
        with self._lock:
            return sku in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def locked(self) -> threading.RLock:
        """
        The ledger lock, for callers combining a read with a mutation.

        The lock is reentrant, so ledger methods can be called while it is
        held::

            with ledger.locked():
                created = sku not in ledger
                ledger.receive_pending(pending, create_missing=True)
        """
        return self._lock

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def stock_in(
        self,
        sku: str,
        quantity: int,
        tracking_number: str = "",
        notes: str = "",
    ) -> StockTransaction:
        """
        Add ``quantity`` units to ``sku`` and record an IN transaction.

        Raises:
            ItemNotFoundError: unknown SKU.
            InvalidQuantityError: quantity is not a positive integer.
        """
        require_positive_quantity(quantity, sku=sku)
        with self._lock:
            item = self._require(sku)
            txn = self._apply(
                item.evolve(quantity=item.quantity + quantity, last_updated=self._clock.now()),
                StockDirection.IN,
                quantity,
                tracking_number,
                notes,
            )
        return txn

    def stock_out(
        self,
        sku: str,
        quantity: int,
        tracking_number: str = "",
        notes: str = "",
    ) -> StockTransaction:
        """
        Remove ``quantity`` available units from ``sku`` and record an OUT
        transaction. Reserved units cannot be withdrawn.

        Raises:
            ItemNotFoundError: unknown SKU.
            InvalidQuantityError: quantity is not a positive integer.
            InsufficientStockError: quantity exceeds available_quantity.
        """
        require_positive_quantity(quantity, sku=sku)
        with self._lock:
            item = self._require(sku)
            if quantity > item.available_quantity:
                logger.warning(
                    "stock_out_rejected",
                    extra={
                        "sku": sku,
                        "requested": quantity,
                        "available": item.available_quantity,
                    },
                )
                raise InsufficientStockError(sku, quantity, item.available_quantity)
            txn = self._apply(
                item.evolve(quantity=item.quantity - quantity, last_updated=self._clock.now()),
                StockDirection.OUT,
                quantity,
                tracking_number,
                notes,
            )
        return txn

    def receive_pending(
        self,
        pending: PendingStock,
        *,
        create_missing: bool = False,
        product_title: str = "",
        notes: str = RECEIPT_NOTE,
    ) -> StockTransaction:
        """
        Book a procurement receipt as a stock-in.

        With ``create_missing`` an unknown SKU is created at zero stock and
        the receipt applied to it; both happen under the lock, so a failed
        receipt leaves no empty item behind. Removing ``pending`` from the
        procurement queue is the caller's step, taken only after this
        returns.

        Raises:
            ItemNotFoundError: unknown SKU and ``create_missing`` is false.
            InvalidQuantityError: pending quantity is not a positive integer.
        """
        quantity = require_positive_quantity(pending.quantity, sku=pending.sku)
        with self._lock:
            existing = self._items.get(pending.sku)
            if existing is None and not create_missing:
                raise ItemNotFoundError(pending.sku)

            now = self._clock.now()
            if existing is None:
                updated = StockItem(
                    sku=pending.sku,
                    product_title=product_title,
                    quantity=quantity,
                    reserved_quantity=0,
                    last_updated=now,
                )
            else:
                updated = existing.evolve(quantity=existing.quantity + quantity, last_updated=now)

            txn = self._apply(
                updated,
                StockDirection.IN,
                quantity,
                pending.tracking_number,
                notes,
            )

        logger.info(
            "pending_stock_received",
            extra={
                "pending_id": pending.id,
                "sku": pending.sku,
                "quantity": quantity,
                "item_created": existing is None,
            },
        )
        return txn

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def reserve(self, sku: str, quantity: int) -> StockItem:
        """
        Commit ``quantity`` available units to an outstanding order.

        Raises:
            ItemNotFoundError, InvalidQuantityError,
            InsufficientStockError: quantity exceeds available_quantity.
        """
        require_positive_quantity(quantity, sku=sku)
        with self._lock:
            item = self._require(sku)
            if quantity > item.available_quantity:
                raise InsufficientStockError(sku, quantity, item.available_quantity)
            updated = item.evolve(
                reserved_quantity=item.reserved_quantity + quantity,
                last_updated=self._clock.now(),
            )
            self._items[sku] = updated

        logger.info("stock_reserved", extra={"sku": sku, "quantity": quantity})
        return updated

    def release(self, sku: str, quantity: int) -> StockItem:
        """
        Return ``quantity`` reserved units to available stock.

        Raises:
            ItemNotFoundError, InvalidQuantityError,
            InvalidReservationError: quantity exceeds reserved_quantity.
        """
        require_positive_quantity(quantity, sku=sku)
        with self._lock:
            item = self._require(sku)
            if quantity > item.reserved_quantity:
                raise InvalidReservationError(sku, quantity, item.reserved_quantity)
            updated = item.evolve(
                reserved_quantity=item.reserved_quantity - quantity,
                last_updated=self._clock.now(),
            )
            self._items[sku] = updated

        logger.info("stock_released", extra={"sku": sku, "quantity": quantity})
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_low_stock(self, threshold: int) -> list[StockItem]:
        """Items whose available quantity is below ``threshold``, by SKU."""
        return [item for item in self.items() if item.available_quantity < threshold]

    def search(self, term: str) -> list[StockItem]:
        """Case-insensitive substring match on SKU or product title."""
        needle = term.lower()
        return [
            item
            for item in self.items()
            if needle in item.sku.lower() or needle in item.product_title.lower()
        ]

    def history(
        self,
        sku: str | None = None,
        limit: int | None = None,
    ) -> Iterator[StockTransaction]:
        """
        Lazily yield transactions, newest first.

        The log is copied when this is called; mutations made while the
        iterator is being consumed are not visible to it.

        Raises:
            ValueError: if ``limit`` is negative.
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        with self._lock:
            log = tuple(self._transactions)
        return _iter_history(log, sku, limit)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def export_state(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                items=tuple(sorted(self._items.values(), key=lambda item: item.sku)),
                transactions=tuple(self._transactions),
                version=self._version,
                taken_at=self._clock.now(),
            )

    def import_state(self, snapshot: LedgerSnapshot) -> None:
        """
        Replace the whole ledger state with ``snapshot``.

        Raises:
            InvalidSnapshotError: the snapshot failed validation; current
                state is kept.
        """
        problems = validate_snapshot(snapshot)
        if problems:
            logger.warning(
                "snapshot_rejected",
                extra={"problem_count": len(problems), "problems": problems[:10]},
            )
            raise InvalidSnapshotError(problems)

        items = {item.sku: item for item in snapshot.items}
        transactions = list(snapshot.transactions)
        next_sequence = max((txn.sequence for txn in transactions), default=0) + 1

        with self._lock:
            self._items = items
            self._transactions = transactions
            self._next_sequence = next_sequence
            self._version = snapshot.version

        logger.info(
            "snapshot_imported",
            extra={
                "item_count": len(items),
                "transaction_count": len(transactions),
                "version": snapshot.version,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, sku: str) -> StockItem:
        item = self._items.get(sku)
        if item is None:
            raise ItemNotFoundError(sku)
        return item

    def _apply(
        self,
        updated: StockItem,
        direction: StockDirection,
        quantity: int,
        tracking_number: str,
        notes: str,
    ) -> StockTransaction:
        # Caller holds the lock and has already validated the movement.
        txn = StockTransaction(
            id=str(uuid4()),
            sequence=self._next_sequence,
            sku=updated.sku,
            direction=direction,
            quantity=quantity,
            tracking_number=tracking_number or "",
            notes=notes or "",
            created_at=updated.last_updated,
        )
        # Nothing below can raise.
        self._items[updated.sku] = updated
        self._transactions.insert(0, txn)
        self._next_sequence += 1

        logger.info(
            "stock_movement_applied",
            extra={
                "sku": updated.sku,
                "transaction_id": txn.id,
                "sequence": txn.sequence,
                "direction": direction.value,
                "quantity": quantity,
                "quantity_after": updated.quantity,
                "available_after": updated.available_quantity,
            },
        )
        return txn


def _iter_history(
    log: tuple[StockTransaction, ...],
    sku: str | None,
    limit: int | None,
) -> Iterator[StockTransaction]:
    if limit == 0:
        return
    emitted = 0
    for txn in log:
        if sku is not None and txn.sku != sku:
            continue
        yield txn
        emitted += 1
        if limit is not None and emitted >= limit:
            return
