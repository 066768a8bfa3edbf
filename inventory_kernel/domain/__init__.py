"""
Pure domain layer.

Value objects, the ledger and the snapshot codec, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- File or network I/O

Time comes from an injected Clock.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.ledger import RECEIPT_NOTE, InventoryLedger
from inventory_kernel.domain.snapshot import (
    DEFAULT_SNAPSHOT_VERSION,
    snapshot_from_dict,
    snapshot_to_dict,
    validate_snapshot,
)
from inventory_kernel.domain.values import (
    LedgerSnapshot,
    PendingStock,
    StockDirection,
    StockItem,
    StockStatus,
    StockTransaction,
    require_positive_quantity,
)

__all__ = [
    # Value objects
    "StockDirection",
    "StockStatus",
    "StockItem",
    "StockTransaction",
    "PendingStock",
    "LedgerSnapshot",
    "require_positive_quantity",
    # Ledger
    "InventoryLedger",
    "RECEIPT_NOTE",
    # Snapshot codec
    "DEFAULT_SNAPSHOT_VERSION",
    "snapshot_to_dict",
    "snapshot_from_dict",
    "validate_snapshot",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
