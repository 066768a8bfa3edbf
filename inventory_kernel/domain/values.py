"""
Values -- Immutable, self-validating ledger value objects.

Responsibility:
    Defines StockItem, StockTransaction, PendingStock and LedgerSnapshot,
    plus the closed enumerations for movement direction and stock status.
    Every instance is validated at construction, so an object that exists
    is an object that satisfies the quantity invariant.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the ledger, the snapshot codec and the db store.

Invariants enforced:
    QUANTITY_BOUNDS      -- 0 <= reserved_quantity <= quantity
    DERIVED_AVAILABILITY -- available_quantity is a property, never a field

Failure modes:
    - InvalidQuantityError on negative, non-integer or out-of-bounds
      quantities.
    - ValueError on a direction outside {in, out} or a blank SKU.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum

from inventory_kernel.exceptions import InvalidQuantityError


class StockDirection(str, Enum):
    """Direction of a stock movement."""

    IN = "in"
    OUT = "out"


class StockStatus(str, Enum):
    """Availability band of an item relative to a low-stock threshold."""

    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


def _is_int(value: object) -> bool:
    # bool is an int subclass; True is not a quantity.
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive_quantity(quantity: object, sku: str | None = None) -> int:
    """
    Validate a movement amount.

    Postconditions:
        Returns ``quantity`` unchanged when it is an int > 0.

    Raises:
        InvalidQuantityError: for bools, non-integers and values <= 0.
    """
    if not _is_int(quantity):
        raise InvalidQuantityError(quantity, "must be an integer", sku=sku)
    if quantity <= 0:
        raise InvalidQuantityError(quantity, "must be positive", sku=sku)
    return quantity


def _require_sku(sku: object) -> str:
    if not isinstance(sku, str) or not sku.strip():
        raise ValueError(f"SKU must be a non-empty string, got {sku!r}")
    return sku


@dataclass(frozen=True, slots=True)
class StockItem:
    """
    Stock position of one SKU.

    Contract:
        ``quantity`` counts units on hand, ``reserved_quantity`` the units
        committed to outstanding orders. ``available_quantity`` is derived.

    Guarantees:
        - Immutable; mutations produce a new instance via ``evolve``.
        - 0 <= reserved_quantity <= quantity for every live instance.
    """

    sku: str
    product_title: str
    quantity: int
    reserved_quantity: int
    last_updated: datetime

    def __post_init__(self) -> None:
        _require_sku(self.sku)
        # INVARIANT: QUANTITY_BOUNDS
        if not _is_int(self.quantity) or self.quantity < 0:
            raise InvalidQuantityError(
                self.quantity, "quantity must be a non-negative integer", sku=self.sku
            )
        if not _is_int(self.reserved_quantity) or self.reserved_quantity < 0:
            raise InvalidQuantityError(
                self.reserved_quantity,
                "reserved quantity must be a non-negative integer",
                sku=self.sku,
            )
        if self.reserved_quantity > self.quantity:
            raise InvalidQuantityError(
                self.reserved_quantity,
                f"reserved quantity exceeds quantity {self.quantity}",
                sku=self.sku,
            )

    @property
    def available_quantity(self) -> int:
        # INVARIANT: DERIVED_AVAILABILITY
        return self.quantity - self.reserved_quantity

    def status(self, low_stock_threshold: int) -> StockStatus:
        """Classify the item against a low-stock threshold."""
        if self.available_quantity == 0:
            return StockStatus.OUT_OF_STOCK
        if self.available_quantity < low_stock_threshold:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    def evolve(self, **changes) -> StockItem:
        """Return a validated copy with ``changes`` applied."""
        if "sku" in changes and changes["sku"] != self.sku:
            raise ValueError("StockItem.sku is immutable")
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class StockTransaction:
    """
    One recorded stock movement.

    Guarantees:
        - ``direction`` is always a StockDirection; the strings "in" and
          "out" are accepted and normalized, anything else is rejected.
        - ``quantity`` is a positive integer.
        - ``sequence`` orders transactions by creation within a ledger.
    """

    id: str
    sequence: int
    sku: str
    direction: StockDirection
    quantity: int
    tracking_number: str
    notes: str
    created_at: datetime

    def __post_init__(self) -> None:
        _require_sku(self.sku)
        if not isinstance(self.direction, StockDirection):
            # ValueError for anything outside the closed set
            object.__setattr__(self, "direction", StockDirection(self.direction))
        require_positive_quantity(self.quantity, sku=self.sku)
        if not _is_int(self.sequence) or self.sequence < 1:
            raise ValueError(f"Transaction sequence must be a positive integer, got {self.sequence!r}")

    @property
    def signed_quantity(self) -> int:
        """Quantity with the sign of its effect on ``StockItem.quantity``."""
        return self.quantity if self.direction is StockDirection.IN else -self.quantity


@dataclass(frozen=True, slots=True)
class PendingStock:
    """
    Stock announced by procurement but not yet received.

    Owned by the procurement collaborator; the ledger only consumes it
    through ``InventoryLedger.receive_pending``.
    """

    id: str
    sku: str
    quantity: int
    expected_date: date | None = None
    supplier: str = ""
    tracking_number: str = ""

    def __post_init__(self) -> None:
        _require_sku(self.sku)
        require_positive_quantity(self.quantity, sku=self.sku)


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """
    Immutable full-state copy of a ledger.

    ``items`` are ordered by SKU, ``transactions`` newest first. ``version``
    is carried opaquely for the persistence/export gateway.
    """

    items: tuple[StockItem, ...] = ()
    transactions: tuple[StockTransaction, ...] = ()
    version: str = "1.0"
    taken_at: datetime | None = field(default=None, compare=False)

    def item(self, sku: str) -> StockItem | None:
        for candidate in self.items:
            if candidate.sku == sku:
                return candidate
        return None
