"""
Runtime wiring.

``build_inventory`` assembles a ledger, pending queue, catalog and
receiving service from an ``InventoryConfig``. ``persist`` and
``restore`` move ledger state through the SQL store, always working on a
snapshot so the ledger lock is never held during I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_config import InventoryConfig, get_active_config, log_level
from inventory_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.db.store import SqlLedgerStore
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import StockItem
from inventory_kernel.logging_config import configure_logging, get_logger
from inventory_services.catalog import Catalog, InMemoryCatalog
from inventory_services.procurement import PendingStockQueue, ReceivingService

logger = get_logger("services.runtime")


@dataclass
class InventoryRuntime:
    config: InventoryConfig
    ledger: InventoryLedger
    queue: PendingStockQueue
    catalog: Catalog
    receiving: ReceivingService

    def low_stock(self) -> list[StockItem]:
        """Items below the configured low-stock threshold."""
        return self.ledger.list_low_stock(self.config.ledger.low_stock_threshold)


def build_inventory(
    config: InventoryConfig | None = None,
    *,
    clock: Clock | None = None,
    catalog: Catalog | None = None,
) -> InventoryRuntime:
    """Create an empty, fully wired inventory runtime."""
    config = config or get_active_config()
    configure_logging(level=log_level(config))

    ledger = InventoryLedger(clock=clock, snapshot_version=config.ledger.snapshot_version)
    queue = PendingStockQueue()
    catalog = catalog if catalog is not None else InMemoryCatalog()
    receiving = ReceivingService(ledger, queue, catalog, config.receiving)

    logger.info(
        "inventory_runtime_built",
        extra={
            "low_stock_threshold": config.ledger.low_stock_threshold,
            "unknown_sku_policy": config.receiving.unknown_sku_policy,
        },
    )
    return InventoryRuntime(config, ledger, queue, catalog, receiving)


def connect_database(config: InventoryConfig) -> None:
    """Initialize the engine, create tables and install immutability listeners."""
    init_engine_from_url(config.database.url, echo=config.database.echo)
    create_tables()
    register_immutability_listeners()


def persist(runtime: InventoryRuntime) -> int:
    """Save the ledger's current state; returns transactions inserted."""
    snapshot = runtime.ledger.export_state()
    with session_scope() as session:
        return SqlLedgerStore(session).save(snapshot)


def restore(runtime: InventoryRuntime) -> None:
    """Replace the ledger's state with what the database holds."""
    with session_scope() as session:
        snapshot = SqlLedgerStore(session).load()
    runtime.ledger.import_state(snapshot)
