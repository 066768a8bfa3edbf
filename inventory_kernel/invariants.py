"""
Ledger Invariants Contract.

These invariants are structural law for the inventory ledger. No
configuration setting may switch them off.

This module only declares them. Enforcement lives in
``inventory_kernel.domain.values`` (construction checks),
``inventory_kernel.domain.ledger`` (operation checks),
``inventory_kernel.domain.snapshot`` (import validation) and
``inventory_kernel.db`` (CHECK constraints and immutability listeners).
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    QUANTITY_BOUNDS = "quantity_bounds"
    """0 <= reserved_quantity <= quantity for every item. Checked when a
    StockItem is constructed and by DB check constraints."""

    DERIVED_AVAILABILITY = "derived_availability"
    """available_quantity == quantity - reserved_quantity. It is a computed
    property and has no stored column."""

    APPEND_ONLY_HISTORY = "append_only_history"
    """Stock transactions are never edited or removed. Enforced by the
    ledger API (no such operation) and by ORM listeners in
    inventory_kernel.db.immutability."""

    ATOMIC_MUTATION = "atomic_mutation"
    """An item update and its transaction append happen together or not
    at all. Enforced by InventoryLedger under its lock."""

    SNAPSHOT_INTEGRITY = "snapshot_integrity"
    """An imported snapshot references only SKUs it carries and every item
    in it satisfies QUANTITY_BOUNDS. Enforced by validate_snapshot."""

    SEQUENCE_MONOTONICITY = "sequence_monotonicity"
    """Transaction sequence numbers strictly increase in creation order."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_services",
    "inventory_config",
)
