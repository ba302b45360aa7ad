"""Inventory collaborator. Live, store-scoped product data owned by the store.

The cart only ever reads from inventory. Stock levels are eventually
consistent; whatever the gateway returns is the latest observation.
"""

from dataclasses import dataclass
from typing import Protocol

from storefront.cart.cart import ProductInfo, StoreProduct


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog product together with one store's snapshot of it."""

    product: ProductInfo
    store_product: StoreProduct


class InventoryGateway(Protocol):
    async def get_stock(self, store_id: str, product_ids: list[str]) -> dict[str, int]:
        """Current stock per product id. Unknown products are omitted."""
        ...

    async def get_store_product(self, store_id: str, product_id: str) -> CatalogEntry | None:
        """Price, stock, availability and promotion of one product at one store."""
        ...


class InMemoryInventory:
    """Inventory gateway backed by a dict, for tests, demos and local runs."""

    def __init__(self, entries=None):
        self._entries: dict[tuple[str, str], CatalogEntry] = {}
        for entry in entries or []:
            self.put(entry)

    def put(self, entry: CatalogEntry) -> None:
        key = (str(entry.store_product.store_id), str(entry.product.product_id))
        self._entries[key] = entry

    def discard(self, store_id, product_id) -> None:
        self._entries.pop((str(store_id), str(product_id)), None)

    async def get_stock(self, store_id, product_ids):
        stock = {}
        for product_id in product_ids:
            entry = self._entries.get((str(store_id), str(product_id)))
            if entry is not None:
                stock[str(product_id)] = entry.store_product.stock_quantity
        return stock

    async def get_store_product(self, store_id, product_id):
        return self._entries.get((str(store_id), str(product_id)))
