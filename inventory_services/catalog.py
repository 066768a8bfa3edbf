"""
Catalog -- read-only SKU to product title lookup.

The ledger never asks the catalog anything itself; the receiving service
uses it to title items it creates for SKUs arriving through procurement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping


class Catalog(ABC):
    """Resolves product titles by SKU."""

    @abstractmethod
    def title_for(self, sku: str) -> str | None:
        """The product title for ``sku``, or None when the SKU is unknown."""
        ...


class InMemoryCatalog(Catalog):
    """Catalog backed by a dict."""

    def __init__(self, titles: Mapping[str, str] | None = None):
        self._titles: dict[str, str] = dict(titles or {})

    def title_for(self, sku: str) -> str | None:
        return self._titles.get(sku)

    def register(self, sku: str, title: str) -> None:
        self._titles[sku] = title

    def __contains__(self, sku: object) -> bool:
        return sku in self._titles

    def __len__(self) -> int:
        return len(self._titles)
