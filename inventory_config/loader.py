"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into a frozen ``InventoryConfig``.
Sections and keys missing from the file keep their schema defaults.

Invariants enforced
-------------------
* Unknown sections or keys raise ``KeyError`` instead of being ignored,
  so a typo in a key name is reported.
* ``low_stock_threshold`` is a non-negative integer.
* ``unknown_sku_policy`` is one of ``create`` / ``reject``.
* ``logging.level`` is a standard ``logging`` level name.
* ``compute_checksum`` gives a deterministic SHA-256 of the effective
  configuration for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key  -> ``KeyError``.
* Invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LedgerSettings,
    LoggingSettings,
    ReceivingSettings,
    UnknownSkuPolicy,
)

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Top level of {path} must be a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], name: str, settings_cls: type) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    allowed = {f.name for f in dataclasses.fields(settings_cls)}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise KeyError(f"Unknown key(s) in section '{name}': {', '.join(unknown)}")
    return raw


def parse_ledger(data: dict[str, Any]) -> LedgerSettings:
    raw = _section(data, "ledger", LedgerSettings)
    settings = LedgerSettings(**raw)
    threshold = settings.low_stock_threshold
    if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 0:
        raise ValueError(f"ledger.low_stock_threshold must be a non-negative integer, got {threshold!r}")
    return dataclasses.replace(settings, snapshot_version=str(settings.snapshot_version))


def parse_receiving(data: dict[str, Any]) -> ReceivingSettings:
    raw = dict(_section(data, "receiving", ReceivingSettings))
    if "unknown_sku_policy" in raw:
        value = raw["unknown_sku_policy"]
        try:
            raw["unknown_sku_policy"] = UnknownSkuPolicy(str(value).lower())
        except ValueError:
            allowed = ", ".join(p.value for p in UnknownSkuPolicy)
            raise ValueError(
                f"receiving.unknown_sku_policy must be one of {allowed}, got {value!r}"
            ) from None
    return ReceivingSettings(**raw)


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(**_section(data, "database", DatabaseSettings))


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    raw = _section(data, "logging", LoggingSettings)
    level = str(raw.get("level", LoggingSettings.level)).upper()
    if level not in _VALID_LEVELS:
        raise ValueError(f"logging.level must be one of {', '.join(_VALID_LEVELS)}, got {level!r}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """Parse an already-loaded YAML mapping."""
    known = {f.name for f in dataclasses.fields(InventoryConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise KeyError(f"Unknown configuration section(s): {', '.join(unknown)}")
    return InventoryConfig(
        ledger=parse_ledger(data),
        receiving=parse_receiving(data),
        database=parse_database(data),
        logging=parse_logging(data),
    )


def load_config(path: str | Path) -> InventoryConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(Path(path)))


def log_level(config: InventoryConfig) -> int:
    """The configured level as a ``logging`` constant."""
    return logging.getLevelName(config.logging.level)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot serialize {value!r}")


def compute_checksum(config: InventoryConfig) -> str:
    """Deterministic SHA-256 of the effective configuration."""
    canonical = json.dumps(
        dataclasses.asdict(config), sort_keys=True, default=_jsonable, separators=(",", ":")
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
