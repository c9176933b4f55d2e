"""In-memory catalog store with a category index."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field

from mcplookup.catalog.base import QueryOptions

logger = logging.getLogger(__name__)


def record_category(value: dict) -> str:
    """Category of a raw record in either nested or flat format."""
    caps = value.get("capabilities")
    category = caps.get("category") if isinstance(caps, dict) else None
    if category is None:
        category = value.get("category", "")
    return str(category).strip().lower() if category else ""


@dataclass
class InMemoryCatalog:
    """Dict-backed ``CatalogStorePort`` implementation.

    Every collection keeps a ``category -> keys`` index so categorical
    queries never scan the whole collection. Values are deep-copied on the
    way in and out; callers cannot mutate stored records.
    """

    _records: dict[str, dict[str, dict]] = field(default_factory=dict, init=False, repr=False)
    _category_index: dict[str, dict[str, set[str]]] = field(
        default_factory=dict, init=False, repr=False
    )

    async def get(self, collection: str, key: str) -> dict | None:
        value = self._records.get(collection, {}).get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, collection: str, key: str, value: dict) -> None:
        self.put(collection, key, value)

    def put(self, collection: str, key: str, value: dict) -> None:
        """Synchronous ``set`` used when bulk-loading catalog files."""
        records = self._records.setdefault(collection, {})
        index = self._category_index.setdefault(collection, {})

        previous = records.get(key)
        if previous is not None:
            index.get(record_category(previous), set()).discard(key)

        records[key] = copy.deepcopy(value)
        index.setdefault(record_category(value), set()).add(key)

    async def query(self, collection: str, options: QueryOptions | None = None) -> list[dict]:
        options = options or QueryOptions()
        records = self._records.get(collection, {})
        filters = dict(options.filters)

        category = filters.pop("category", None)
        if category is not None:
            keys = self._category_index.get(collection, {}).get(str(category).lower(), set())
        else:
            keys = set(records)

        matched: list[dict] = []
        # Sorted keys keep bulk reads deterministic
        for key in sorted(keys):
            value = records[key]
            if all(value.get(name) == expected for name, expected in filters.items()):
                matched.append(copy.deepcopy(value))
                if options.limit is not None and len(matched) >= options.limit:
                    break

        logger.debug("Catalog query on %s matched %d records", collection, len(matched))
        return matched

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())
