"""
Module: inventory_kernel.db.models
Responsibility: ORM tables for a persisted ledger snapshot: stock items,
    stock transactions and a one-row metadata table for the version tag.
Architecture position: Kernel > DB.  May import from db/base.py only.

Invariants enforced:
    QUANTITY_BOUNDS      -- CHECK constraints on stock_items mirror
                            0 <= reserved_quantity <= quantity.
    DERIVED_AVAILABILITY -- no available_quantity column exists.
    APPEND_ONLY_HISTORY  -- stock_transactions rows are protected by the
                            listeners in db/immutability.py.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class StockItemModel(Base):
    """One row per SKU."""

    __tablename__ = "stock_items"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_stock_items_reserved_non_negative"),
        CheckConstraint(
            "reserved_quantity <= quantity", name="ck_stock_items_reserved_within_quantity"
        ),
    )

    sku: Mapped[str] = mapped_column(String(100), primary_key=True)
    product_title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(nullable=False)
    reserved_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StockItemModel {self.sku} qty={self.quantity} "
            f"reserved={self.reserved_quantity}>"
        )


class StockTransactionModel(Base):
    """One row per recorded movement. Insert-only."""

    __tablename__ = "stock_transactions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transactions_quantity_positive"),
        CheckConstraint(
            "direction IN ('in', 'out')", name="ck_stock_transactions_direction"
        ),
        # Query: history of one SKU, newest first
        Index("idx_stock_txn_sku_sequence", "sku", "sequence"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    sequence: Mapped[int] = mapped_column(nullable=False, unique=True)
    sku: Mapped[str] = mapped_column(
        String(100), ForeignKey("stock_items.sku"), nullable=False
    )
    direction: Mapped[str] = mapped_column(String(3), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<StockTransactionModel #{self.sequence} {self.direction} {self.quantity} {self.sku}>"


class LedgerMetaModel(Base):
    """Single-row table carrying the snapshot version tag."""

    __tablename__ = "ledger_meta"

    id: Mapped[int] = mapped_column(primary_key=True)
    version: Mapped[str] = mapped_column(String(20), nullable=False)
    saved_at: Mapped[datetime] = mapped_column(nullable=False)
