"""
JSON file export/import of the inventory state.

The document is the snapshot dict from
``inventory_kernel.domain.snapshot.snapshot_to_dict`` plus a
``pendingStock`` list, the same shape the browser inventory page
downloaded as ``inventory.json``:

    {
      "version": "1.0",
      "exportedAt": "...",
      "items": [...],
      "transactions": [...],
      "pendingStock": [
        {"id", "sku", "quantity", "expectedDate", "supplier", "trackingNumber"}
      ]
    }

Writes go to a temporary file in the target directory which then replaces
the target, so a crash never leaves a half-written export behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

from inventory_kernel.domain.snapshot import (
    DEFAULT_SNAPSHOT_VERSION,
    snapshot_from_dict,
    snapshot_to_dict,
)
from inventory_kernel.domain.values import LedgerSnapshot, PendingStock
from inventory_kernel.exceptions import InvalidQuantityError, InvalidSnapshotError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.export")


def pending_to_dict(record: PendingStock) -> dict[str, Any]:
    return {
        "id": record.id,
        "sku": record.sku,
        "quantity": record.quantity,
        "expectedDate": record.expected_date.isoformat() if record.expected_date else None,
        "supplier": record.supplier,
        "trackingNumber": record.tracking_number,
    }


def pending_from_dict(data: dict[str, Any]) -> PendingStock:
    expected = data.get("expectedDate")
    return PendingStock(
        id=str(data["id"]),
        sku=data["sku"],
        quantity=data["quantity"],
        # Accept full timestamps as well as plain dates.
        expected_date=date.fromisoformat(expected[:10]) if expected else None,
        supplier=data.get("supplier", "") or "",
        tracking_number=data.get("trackingNumber", "") or "",
    )


class JsonFileGateway:
    """Reads and writes the inventory export file at ``path``."""

    def __init__(self, path: str | Path, default_version: str = DEFAULT_SNAPSHOT_VERSION):
        self.path = Path(path)
        self._default_version = default_version

    def write(
        self,
        snapshot: LedgerSnapshot,
        pending: Iterable[PendingStock] = (),
    ) -> Path:
        document = snapshot_to_dict(snapshot)
        if snapshot.taken_at is not None:
            document["exportedAt"] = snapshot.taken_at.isoformat()
        document["pendingStock"] = [pending_to_dict(record) for record in pending]

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            "inventory_exported",
            extra={
                "path": str(self.path),
                "item_count": len(snapshot.items),
                "transaction_count": len(snapshot.transactions),
                "pending_count": len(document["pendingStock"]),
            },
        )
        return self.path

    def read(self) -> tuple[LedgerSnapshot, list[PendingStock]]:
        """
        Parse the export file.

        Raises:
            FileNotFoundError: the file does not exist.
            InvalidSnapshotError: the file is not valid JSON or a record
                is malformed.
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidSnapshotError([f"{self.path}: invalid JSON: {exc}"]) from exc

        snapshot = snapshot_from_dict(document, default_version=self._default_version)

        raw_pending = document.get("pendingStock") or []
        if not isinstance(raw_pending, list):
            raise InvalidSnapshotError(["non-list 'pendingStock'"])
        pending: list[PendingStock] = []
        problems: list[str] = []
        for index, raw in enumerate(raw_pending):
            try:
                pending.append(pending_from_dict(raw))
            except (AttributeError, KeyError, TypeError, ValueError, InvalidQuantityError) as exc:
                problems.append(f"pendingStock[{index}]: {exc}")
        if problems:
            raise InvalidSnapshotError(problems)

        logger.info(
            "inventory_import_read",
            extra={
                "path": str(self.path),
                "item_count": len(snapshot.items),
                "transaction_count": len(snapshot.transactions),
                "pending_count": len(pending),
            },
        )
        return snapshot, pending
