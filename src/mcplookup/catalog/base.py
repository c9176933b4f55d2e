"""Port: catalog store holding raw server records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

SERVERS_COLLECTION = "mcp_servers"


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """Equality filters on record fields plus an optional result cap.

    Supported filter fields: ``category`` (indexed) and any top-level
    record field compared by equality.
    """

    filters: dict[str, str] = field(default_factory=dict)
    limit: int | None = None


class CatalogStorePort(Protocol):
    """Port for reading (and, for the registration path, writing) records.

    Records travel as plain JSON-compatible dicts; parsing into
    ``ServerRecord`` happens in the discovery core.
    """

    async def get(self, collection: str, key: str) -> dict | None:
        """Fetch a single record by primary key, or None if absent."""
        ...

    async def set(self, collection: str, key: str, value: dict) -> None:
        """Store a record under its primary key."""
        ...

    async def query(self, collection: str, options: QueryOptions | None = None) -> list[dict]:
        """Return records matching all filters (every record when unfiltered)."""
        ...
