"""
Concurrent receipts of the same pending record.

Whatever the interleaving, a pending record is booked into the ledger
exactly once; every other receiver gets PendingStockNotFoundError and the
ledger is credited a single time.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.ledger import InventoryLedger
from inventory_kernel.domain.values import PendingStock
from inventory_kernel.exceptions import PendingStockNotFoundError
from inventory_services.catalog import InMemoryCatalog
from inventory_services.procurement import PendingStockQueue, ReceivingService

pytestmark = pytest.mark.slow_locks

THREADS = 8


class SlowCatalog(InMemoryCatalog):
    """Widens the window between claiming a record and booking it."""

    def title_for(self, sku):
        time.sleep(0.02)
        return super().title_for(sku)


def _receive_concurrently(services, pending_id: str) -> list[str]:
    barrier = Barrier(len(services))

    def worker(service):
        barrier.wait()
        try:
            service.receive(pending_id)
        except PendingStockNotFoundError:
            return "not_found"
        return "ok"

    with ThreadPoolExecutor(max_workers=len(services)) as pool:
        return list(pool.map(worker, services))


@pytest.fixture
def shared_queue():
    return PendingStockQueue([PendingStock(id="PO-1", sku="SKU001", quantity=25)])


@pytest.fixture
def fresh_ledger():
    return InventoryLedger(clock=DeterministicClock())


class TestConcurrentReceive:
    def test_one_service_many_threads(self, fresh_ledger, shared_queue):
        service = ReceivingService(
            fresh_ledger, shared_queue, SlowCatalog({"SKU001": "Wireless Bluetooth Headphones"})
        )
        outcomes = _receive_concurrently([service] * THREADS, "PO-1")

        assert sorted(outcomes) == ["not_found"] * (THREADS - 1) + ["ok"]
        assert fresh_ledger.get_item("SKU001").quantity == 25
        assert len(list(fresh_ledger.history())) == 1
        assert len(shared_queue) == 0

    def test_separate_services_sharing_a_queue(self, fresh_ledger, shared_queue):
        services = [
            ReceivingService(fresh_ledger, shared_queue, SlowCatalog())
            for _ in range(THREADS)
        ]
        outcomes = _receive_concurrently(services, "PO-1")

        assert outcomes.count("ok") == 1
        assert fresh_ledger.get_item("SKU001").quantity == 25
        assert len(list(fresh_ledger.history("SKU001"))) == 1
