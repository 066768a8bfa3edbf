"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger surface errors to an operator ("not enough stock",
"unknown SKU").  Matching on message text is brittle, so every error:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (sku, requested, available, ...)

Example:
    try:
        ledger.stock_out("SKU001", 60)
    except InsufficientStockError as e:
        notify(f"Only {e.available} units of {e.sku} available")
        api_response(code=e.code, sku=e.sku, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ItemError
    |   +-- ItemNotFoundError          (alias: NotFoundError)
    |   +-- ItemAlreadyExistsError
    |
    +-- QuantityError
    |   +-- InvalidQuantityError
    |   +-- InsufficientStockError
    |   +-- InvalidReservationError
    |
    +-- SnapshotError
    |   +-- InvalidSnapshotError
    |
    +-- ProcurementError
    |   +-- PendingStockNotFoundError
    |   +-- PendingStockAlreadyExistsError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|------------------------------------
Item         | ITEM_NOT_FOUND                | SKU is not in the ledger
             | ITEM_ALREADY_EXISTS           | add_item with a SKU already present
-------------|-------------------------------|------------------------------------
Quantity     | INVALID_QUANTITY              | Non-positive / non-integer amount,
             |                               | or an item breaking the invariant
             | INSUFFICIENT_STOCK            | Withdrawal or reservation exceeds
             |                               | available quantity
             | INVALID_RESERVATION           | Release exceeds reserved quantity
-------------|-------------------------------|------------------------------------
Snapshot     | INVALID_SNAPSHOT              | Import failed validation
-------------|-------------------------------|------------------------------------
Procurement  | PENDING_STOCK_NOT_FOUND       | Unknown pending record id
             | PENDING_STOCK_ALREADY_EXISTS  | Duplicate pending record id
-------------|-------------------------------|------------------------------------
Immutability | IMMUTABILITY_VIOLATION        | Update/delete of a stored transaction

Every error is local to one call: the ledger's state is unchanged when any
of these is raised.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Item-related exceptions


class ItemError(InventoryKernelError):
    """Base exception for stock item lookup and creation errors."""

    code: str = "ITEM_ERROR"


class ItemNotFoundError(ItemError):
    """No stock item exists for the given SKU."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Stock item not found: {sku}")


NotFoundError = ItemNotFoundError


class ItemAlreadyExistsError(ItemError):
    """A stock item with the given SKU already exists."""

    code: str = "ITEM_ALREADY_EXISTS"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Stock item already exists: {sku}")


# Quantity-related exceptions


class QuantityError(InventoryKernelError):
    """Base exception for quantity and reservation errors."""

    code: str = "QUANTITY_ERROR"


class InvalidQuantityError(QuantityError):
    """
    A quantity argument or stored quantity is not acceptable.

    Raised for movement amounts that are not positive integers, and for
    items whose quantity / reserved pair breaks the invariant
    0 <= reserved <= quantity.
    """

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str, sku: str | None = None):
        self.quantity = quantity
        self.reason = reason
        self.sku = sku
        target = f" for {sku}" if sku else ""
        super().__init__(f"Invalid quantity {quantity!r}{target}: {reason}")


class InsufficientStockError(QuantityError):
    """Requested units exceed the item's available (unreserved) quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, sku: str, requested: int, available: int):
        self.sku = sku
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {sku}: requested {requested}, "
            f"available {available}"
        )


class InvalidReservationError(QuantityError):
    """Release requested for more units than are currently reserved."""

    code: str = "INVALID_RESERVATION"

    def __init__(self, sku: str, requested: int, reserved: int):
        self.sku = sku
        self.requested = requested
        self.reserved = reserved
        super().__init__(
            f"Cannot release {requested} units of {sku}: only {reserved} reserved"
        )


# Snapshot-related exceptions


class SnapshotError(InventoryKernelError):
    """Base exception for snapshot export/import errors."""

    code: str = "SNAPSHOT_ERROR"


class InvalidSnapshotError(SnapshotError):
    """
    Snapshot failed structural, referential or invariant validation.

    The ledger state is left untouched.  `problems` lists every
    violation found, not just the first.
    """

    code: str = "INVALID_SNAPSHOT"

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f"; ... ({len(self.problems) - 5} more)"
        super().__init__(
            f"Invalid snapshot: {len(self.problems)} problem(s): {summary}"
        )


# Procurement-related exceptions


class ProcurementError(InventoryKernelError):
    """Base exception for pending-stock handling errors."""

    code: str = "PROCUREMENT_ERROR"


class PendingStockNotFoundError(ProcurementError):
    """No pending stock record exists with the given id."""

    code: str = "PENDING_STOCK_NOT_FOUND"

    def __init__(self, pending_id: str):
        self.pending_id = pending_id
        super().__init__(f"Pending stock record not found: {pending_id}")


class PendingStockAlreadyExistsError(ProcurementError):
    """A pending stock record with the given id is already queued."""

    code: str = "PENDING_STOCK_ALREADY_EXISTS"

    def __init__(self, pending_id: str):
        self.pending_id = pending_id
        super().__init__(f"Pending stock record already exists: {pending_id}")


# Immutability-related exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for append-only history violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a recorded stock transaction."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
