"""
ORM-Level Immutability Enforcement for stock transactions.

The in-memory ledger offers no way to edit or remove a transaction. This
module gives the persisted copy the same property: SQLAlchemy fires
mapper events before UPDATE/DELETE statements are emitted for ORM
objects, and the listeners registered here abort the flush.

    session.flush()
         |
         v
    [before_update] --> _check_transaction_update() --> ImmutabilityViolationError
    [before_delete] --> _check_transaction_delete() --> ImmutabilityViolationError

Bulk Core statements (``session.execute(delete(...))``) do not fire mapper
events. ``SqlLedgerStore.replace`` relies on that to restore a backup, and
it is the only code path that does so.

Usage:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.db.models import StockTransactionModel
from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(target: StockTransactionModel, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": "append_only_history",
            "entity_type": "StockTransaction",
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockTransaction",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_transaction_update(mapper, connection, target):
    """Stock transactions are never modified after insert."""
    _blocked(target, "UPDATE", "Stock transactions are immutable and cannot be modified")


def _check_transaction_delete(mapper, connection, target):
    """Stock transactions are never deleted."""
    _blocked(target, "DELETE", "Stock transactions cannot be deleted")


def register_immutability_listeners() -> None:
    """Install the listeners. Safe to call more than once."""
    if not event.contains(StockTransactionModel, "before_update", _check_transaction_update):
        event.listen(StockTransactionModel, "before_update", _check_transaction_update)
    if not event.contains(StockTransactionModel, "before_delete", _check_transaction_delete):
        event.listen(StockTransactionModel, "before_delete", _check_transaction_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only use this in tests that need to violate immutability on
    purpose.
    """
    if event.contains(StockTransactionModel, "before_update", _check_transaction_update):
        event.remove(StockTransactionModel, "before_update", _check_transaction_update)
    if event.contains(StockTransactionModel, "before_delete", _check_transaction_delete):
        event.remove(StockTransactionModel, "before_delete", _check_transaction_delete)
