"""
Inventory services: collaborators around the kernel ledger.

- catalog      -- SKU to product title lookup
- procurement  -- pending stock queue and receiving
- export       -- JSON file export/import
- runtime      -- wiring from configuration, SQL persist/restore
"""

from inventory_services.catalog import Catalog, InMemoryCatalog
from inventory_services.export import JsonFileGateway
from inventory_services.procurement import (
    PendingStockQueue,
    ReceiptBatch,
    ReceiptResult,
    ReceivingService,
)

__all__ = [
    "Catalog",
    "InMemoryCatalog",
    "JsonFileGateway",
    "PendingStockQueue",
    "ReceiptBatch",
    "ReceiptResult",
    "ReceivingService",
]
