"""
InventoryConfig schema.

Frozen dataclasses parsed from YAML by ``inventory_config.loader``. Every
field has a default, so an empty YAML file yields a working configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class UnknownSkuPolicy(str, Enum):
    """What receiving does when a pending record names an untracked SKU."""

    CREATE = "create"  # add the item at zero stock, then receive
    REJECT = "reject"  # fail with ItemNotFoundError, keep the record queued


@dataclass(frozen=True)
class LedgerSettings:
    low_stock_threshold: int = 10
    snapshot_version: str = "1.0"


@dataclass(frozen=True)
class ReceivingSettings:
    unknown_sku_policy: UnknownSkuPolicy = UnknownSkuPolicy.CREATE
    receipt_note: str = "received from procurement"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///inventory.db"
    echo: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class InventoryConfig:
    """Effective configuration of an inventory deployment."""

    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    receiving: ReceivingSettings = field(default_factory=ReceivingSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
