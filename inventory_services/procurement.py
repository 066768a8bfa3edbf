"""
Procurement receiving.

Responsibility:
    ``PendingStockQueue`` holds stock announced by procurement.
    ``ReceivingService`` turns one queued record into a ledger stock-in and
    retires the record, in that order.

Ordering rule:
    A record is claimed before the ledger is touched. A claimed record is
    invisible to ``get``/``list``/``claim``, so concurrent receivers cannot
    book it twice. It is retired only after the ledger accepted the
    receipt; if the ledger raises, the claim is returned, the record is
    queued again and the error propagates.

Unknown SKUs:
    ``ReceivingSettings.unknown_sku_policy`` decides. ``create`` (default)
    adds the item titled from the catalog (falling back to the SKU);
    ``reject`` fails with ItemNotFoundError.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date

from inventory_config.schema import ReceivingSettings, UnknownSkuPolicy
from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import PendingStock, StockTransaction
from inventory_kernel.exceptions import (
    InventoryKernelError,
    PendingStockAlreadyExistsError,
    PendingStockNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_services.catalog import Catalog

logger = get_logger("services.procurement")


class PendingStockQueue:
    """Pending stock records keyed by id."""

    def __init__(self, records: list[PendingStock] | None = None):
        self._lock = threading.Lock()
        self._records: dict[str, PendingStock] = {}
        # Records being received; not visible as queued.
        self._claimed: dict[str, PendingStock] = {}
        for record in records or ():
            self.add(record)

    def add(self, record: PendingStock) -> None:
        with self._lock:
            if record.id in self._records or record.id in self._claimed:
                raise PendingStockAlreadyExistsError(record.id)
            self._records[record.id] = record

    def get(self, pending_id: str) -> PendingStock:
        with self._lock:
            try:
                return self._records[pending_id]
            except KeyError:
                raise PendingStockNotFoundError(pending_id) from None

    def remove(self, pending_id: str) -> PendingStock:
        with self._lock:
            try:
                return self._records.pop(pending_id)
            except KeyError:
                raise PendingStockNotFoundError(pending_id) from None

    def claim(self, pending_id: str) -> PendingStock:
        """Take a queued record out of circulation until it is settled."""
        with self._lock:
            try:
                record = self._records.pop(pending_id)
            except KeyError:
                raise PendingStockNotFoundError(pending_id) from None
            self._claimed[pending_id] = record
            return record

    def complete(self, pending_id: str) -> PendingStock:
        """Retire a claimed record for good."""
        with self._lock:
            try:
                return self._claimed.pop(pending_id)
            except KeyError:
                raise PendingStockNotFoundError(pending_id) from None

    def unclaim(self, pending_id: str) -> PendingStock:
        """Put a claimed record back in the queue."""
        with self._lock:
            try:
                record = self._claimed.pop(pending_id)
            except KeyError:
                raise PendingStockNotFoundError(pending_id) from None
            self._records[pending_id] = record
            return record

    def list(self) -> list[PendingStock]:
        """Queued records ordered by expected date (undated last), then id."""
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: (r.expected_date or date.max, r.id))

    def __contains__(self, pending_id: object) -> bool:
        with self._lock:
            return pending_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


@dataclass(frozen=True)
class ReceiptResult:
    """Acknowledgment returned to procurement for one received record."""

    pending: PendingStock
    transaction: StockTransaction
    item_created: bool


@dataclass(frozen=True)
class ReceiptBatch:
    """Outcome of ``receive_all``: what was booked and what stayed queued."""

    received: tuple[ReceiptResult, ...] = ()
    failed: dict[str, InventoryKernelError] = field(default_factory=dict)


class ReceivingService:
    """Books pending procurement records into the ledger."""

    def __init__(
        self,
        ledger: InventoryLedger,
        queue: PendingStockQueue,
        catalog: Catalog | None = None,
        settings: ReceivingSettings | None = None,
    ):
        self._ledger = ledger
        self._queue = queue
        self._catalog = catalog
        self._settings = settings or ReceivingSettings()

    def receive(self, pending_id: str) -> ReceiptResult:
        """
        Receive one pending record.

        Raises:
            PendingStockNotFoundError: no queued record with ``pending_id``
                (including one another receiver is booking right now).
            ItemNotFoundError: untracked SKU under the ``reject`` policy.
            InvalidQuantityError: from the ledger.
        """
        pending = self._queue.claim(pending_id)
        create = self._settings.unknown_sku_policy is UnknownSkuPolicy.CREATE

        with LogContext.bind(correlation_id=pending.id, sku=pending.sku):
            try:
                title = self._title_for(pending.sku)
                with self._ledger.locked():
                    item_created = create and pending.sku not in self._ledger
                    txn = self._ledger.receive_pending(
                        pending,
                        create_missing=create,
                        product_title=title,
                        notes=self._settings.receipt_note,
                    )
            except Exception:
                self._queue.unclaim(pending.id)
                logger.warning(
                    "receipt_failed",
                    extra={"pending_id": pending.id, "policy": self._settings.unknown_sku_policy},
                    exc_info=True,
                )
                raise

            self._queue.complete(pending.id)
            logger.info(
                "receipt_completed",
                extra={
                    "pending_id": pending.id,
                    "transaction_id": txn.id,
                    "quantity": pending.quantity,
                    "supplier": pending.supplier,
                    "item_created": item_created,
                },
            )
        return ReceiptResult(pending=pending, transaction=txn, item_created=item_created)

    def receive_all(self) -> ReceiptBatch:
        """
        Receive every queued record in expected-date order.

        A failing record is reported in ``failed`` and left queued; the
        remaining records are still processed.
        """
        received: list[ReceiptResult] = []
        failed: dict[str, InventoryKernelError] = {}
        for pending in self._queue.list():
            try:
                received.append(self.receive(pending.id))
            except InventoryKernelError as exc:
                failed[pending.id] = exc
        return ReceiptBatch(received=tuple(received), failed=failed)

    def _title_for(self, sku: str) -> str:
        title = self._catalog.title_for(sku) if self._catalog is not None else None
        return title or sku
