"""
Inventory Kernel

An append-only stock ledger with:
- Quantity / reservation / availability invariant on every item
- Atomic stock-in, stock-out and reservation updates
- Immutable, newest-first transaction history
- Validated full-state snapshot export and import
"""

__version__ = "0.1.0"
