"""
Inventory configuration.

``get_active_config()`` is the single runtime entry point. It reads the
YAML file named by the ``INVENTORY_CONFIG`` environment variable, or the
packaged ``defaults.yaml`` when the variable is unset.
"""

from __future__ import annotations

import os
from pathlib import Path

from inventory_config.loader import compute_checksum, load_config, log_level, parse_config
from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LedgerSettings,
    LoggingSettings,
    ReceivingSettings,
    UnknownSkuPolicy,
)

CONFIG_ENV_VAR = "INVENTORY_CONFIG"
DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")


def get_active_config() -> InventoryConfig:
    """
    Resolve and load the active configuration.

    Raises:
        FileNotFoundError: if ``INVENTORY_CONFIG`` names a missing file.
    """
    path = os.environ.get(CONFIG_ENV_VAR)
    return load_config(Path(path) if path else DEFAULTS_PATH)


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULTS_PATH",
    "InventoryConfig",
    "LedgerSettings",
    "ReceivingSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "UnknownSkuPolicy",
    "get_active_config",
    "load_config",
    "parse_config",
    "compute_checksum",
    "log_level",
]
