from __future__ import annotations

from collections import OrderedDict
from typing import Generic, TypeVar

from findmine_mcp.schemas.resources import Look, Product

E = TypeVar("E")


class _BoundedMap(Generic[E]):
    def __init__(self, max_entries: int | None = None) -> None:
        self._max_entries = max_entries if max_entries is None else max(1, max_entries)
        self._data: OrderedDict[str, E] = OrderedDict()

    def put(self, key: str, value: E) -> None:
        self._data[key] = value
        self._data.move_to_end(key)
        if self._max_entries is not None:
            while len(self._data) > self._max_entries:
                self._data.popitem(last=False)

    def get(self, key: str) -> E | None:
        return self._data.get(key)

    def values(self) -> list[E]:
        return list(self._data.values())

    def __len__(self) -> int:
        return len(self._data)


class ResourceStore:
    """Process-wide id -> entity map for products and looks.

    Last write wins. Unbounded by default; with a bound, the least recently
    written entries are dropped first. Only the integration service writes.
    """

    def __init__(self, max_products: int | None = None, max_looks: int | None = None) -> None:
        self._products: _BoundedMap[Product] = _BoundedMap(max_products)
        self._looks: _BoundedMap[Look] = _BoundedMap(max_looks)

    def put_product(self, product: Product) -> None:
        self._products.put(product.id, product)

    def put_look(self, look: Look) -> None:
        self._looks.put(look.id, look)

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def get_look(self, look_id: str) -> Look | None:
        return self._looks.get(look_id)

    def all_products(self) -> list[Product]:
        return self._products.values()

    def all_looks(self) -> list[Look]:
        return self._looks.values()

    @property
    def product_count(self) -> int:
        return len(self._products)

    @property
    def look_count(self) -> int:
        return len(self._looks)
