"""
Snapshot -- validation and dict codec for ledger snapshots.

Responsibility:
    ``validate_snapshot`` checks a LedgerSnapshot for referential and
    invariant problems before the ledger adopts it.
    ``snapshot_to_dict`` / ``snapshot_from_dict`` convert between a
    LedgerSnapshot and the plain, JSON-ready structure exchanged with the
    persistence/export gateway.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Wire structure:
    {
      "version": "1.0",
      "items": [
        {"sku", "productTitle", "quantity", "reservedQuantity",
         "availableQuantity", "lastUpdated"}, ...
      ],
      "transactions": [            # newest first
        {"id", "sequence", "sku", "type", "quantity", "trackingNumber",
         "notes", "createdAt"}, ...
      ]
    }

    ``availableQuantity`` is written for readers and ignored when parsing.
    Documents using ``inventory`` instead of ``items`` (the browser page's
    export file) are accepted. When no transaction carries ``sequence``
    they are ordered newest first by ``createdAt`` and numbered in that
    order.

Failure modes:
    - InvalidSnapshotError listing every malformed record or violated rule.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping

from inventory_kernel.domain.values import (
    LedgerSnapshot,
    StockDirection,
    StockItem,
    StockTransaction,
)
from inventory_kernel.exceptions import InvalidQuantityError, InvalidSnapshotError

DEFAULT_SNAPSHOT_VERSION = "1.0"


def validate_snapshot(snapshot: LedgerSnapshot) -> list[str]:
    """
    Return every problem that would make ``snapshot`` unsafe to import.

    An empty list means the snapshot is importable.
    """
    problems: list[str] = []

    sku_counts = Counter(item.sku for item in snapshot.items)
    for sku, count in sorted(sku_counts.items()):
        if count > 1:
            problems.append(f"duplicate item sku {sku!r} ({count} occurrences)")

    for item in snapshot.items:
        # Items are validated on construction; re-check in case of tampering.
        if not 0 <= item.reserved_quantity <= item.quantity:
            problems.append(
                f"item {item.sku!r} violates 0 <= reserved ({item.reserved_quantity}) "
                f"<= quantity ({item.quantity})"
            )

    id_counts = Counter(txn.id for txn in snapshot.transactions)
    for txn_id, count in sorted(id_counts.items()):
        if count > 1:
            problems.append(f"duplicate transaction id {txn_id!r}")

    seq_counts = Counter(txn.sequence for txn in snapshot.transactions)
    for seq, count in sorted(seq_counts.items()):
        if count > 1:
            problems.append(f"duplicate transaction sequence {seq}")

    known = set(sku_counts)
    for txn in snapshot.transactions:
        if txn.sku not in known:
            problems.append(
                f"transaction {txn.id!r} references unknown sku {txn.sku!r}"
            )

    sequences = [txn.sequence for txn in snapshot.transactions]
    if any(a <= b for a, b in zip(sequences, sequences[1:])) and not any(
        count > 1 for count in seq_counts.values()
    ):
        problems.append("transactions are not ordered newest first")

    return problems


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _format_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def item_to_dict(item: StockItem) -> dict[str, Any]:
    return {
        "sku": item.sku,
        "productTitle": item.product_title,
        "quantity": item.quantity,
        "reservedQuantity": item.reserved_quantity,
        "availableQuantity": item.available_quantity,
        "lastUpdated": _format_ts(item.last_updated),
    }


def transaction_to_dict(txn: StockTransaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "sequence": txn.sequence,
        "sku": txn.sku,
        "type": txn.direction.value,
        "quantity": txn.quantity,
        "trackingNumber": txn.tracking_number,
        "notes": txn.notes,
        "createdAt": _format_ts(txn.created_at),
    }


def snapshot_to_dict(snapshot: LedgerSnapshot) -> dict[str, Any]:
    """Encode a snapshot as a JSON-ready dict."""
    return {
        "version": snapshot.version,
        "items": [item_to_dict(item) for item in snapshot.items],
        "transactions": [transaction_to_dict(txn) for txn in snapshot.transactions],
    }


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: if ``value`` is not a datetime or ISO string.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"Cannot parse timestamp from {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def item_from_dict(data: Mapping[str, Any]) -> StockItem:
    return StockItem(
        sku=data["sku"],
        product_title=data.get("productTitle", "") or "",
        quantity=data["quantity"],
        reserved_quantity=data.get("reservedQuantity", 0),
        last_updated=parse_timestamp(data["lastUpdated"]),
    )


def transaction_from_dict(data: Mapping[str, Any], sequence: int) -> StockTransaction:
    return StockTransaction(
        id=str(data["id"]),
        sequence=data.get("sequence", sequence),
        sku=data["sku"],
        direction=StockDirection(data["type"]),
        quantity=data["quantity"],
        tracking_number=data.get("trackingNumber", "") or "",
        notes=data.get("notes", "") or "",
        created_at=parse_timestamp(data["createdAt"]),
    )


def snapshot_from_dict(
    data: Mapping[str, Any],
    *,
    default_version: str = DEFAULT_SNAPSHOT_VERSION,
) -> LedgerSnapshot:
    """
    Decode a snapshot dict.

    Only structure is checked here; referential rules are left to
    ``validate_snapshot`` so that the ledger reports them together.

    Raises:
        InvalidSnapshotError: if the document or any record is malformed.
    """
    if not isinstance(data, Mapping):
        raise InvalidSnapshotError([f"snapshot must be a mapping, got {type(data).__name__}"])

    raw_items = data.get("items", data.get("inventory"))
    raw_txns = data.get("transactions", [])
    problems: list[str] = []
    if not isinstance(raw_items, list):
        problems.append("missing or non-list 'items'")
        raw_items = []
    if not isinstance(raw_txns, list):
        problems.append("non-list 'transactions'")
        raw_txns = []

    items: list[StockItem] = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(item_from_dict(raw))
        except (AttributeError, KeyError, TypeError, ValueError, InvalidQuantityError) as exc:
            problems.append(f"items[{index}]: {_describe(exc)}")

    transactions: list[StockTransaction] = []
    count = len(raw_txns)
    legacy = not any(isinstance(raw, Mapping) and "sequence" in raw for raw in raw_txns)
    for index, raw in enumerate(raw_txns):
        try:
            transactions.append(transaction_from_dict(raw, sequence=count - index))
        except (AttributeError, KeyError, TypeError, ValueError, InvalidQuantityError) as exc:
            problems.append(f"transactions[{index}]: {_describe(exc)}")

    if problems:
        raise InvalidSnapshotError(problems)
    if legacy:
        transactions = _number_by_creation(transactions)

    return LedgerSnapshot(
        items=tuple(sorted(items, key=lambda item: item.sku)),
        transactions=tuple(transactions),
        version=str(data.get("version") or default_version),
    )


def _describe(exc: Exception) -> str:
    if isinstance(exc, KeyError):
        return f"missing field {exc.args[0]!r}"
    return str(exc)


def _number_by_creation(transactions: list[StockTransaction]) -> list[StockTransaction]:
    # Newest first by createdAt; ties keep document order.
    ordered = sorted(transactions, key=lambda txn: txn.created_at, reverse=True)
    count = len(ordered)
    return [replace(txn, sequence=count - index) for index, txn in enumerate(ordered)]
