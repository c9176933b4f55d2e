"""Catalog adapter for the Upstash Redis REST API.

Key layout written by the registration workflow:

- ``server:{domain}``   JSON-encoded server record
- ``category:{name}``   set of domains in a category
- ``servers:all``       set of every registered domain

API docs: https://upstash.com/docs/redis/features/restapi
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx

from mcplookup.catalog.base import SERVERS_COLLECTION, QueryOptions
from mcplookup.catalog.memory import record_category
from mcplookup.errors import CatalogUnavailableError

logger = logging.getLogger(__name__)

_ALL_SERVERS_KEY = "servers:all"
_MGET_BATCH = 100


@dataclass
class UpstashCatalog:
    """Async ``CatalogStorePort`` over Upstash's REST interface."""

    http: httpx.AsyncClient
    url: str
    token: str

    async def get(self, collection: str, key: str) -> dict | None:
        self._check_collection(collection)
        raw = await self._command("GET", f"server:{key}")
        return self._decode(raw, key)

    async def set(self, collection: str, key: str, value: dict) -> None:
        self._check_collection(collection)
        commands: list[list[str]] = [
            ["SET", f"server:{key}", json.dumps(value)],
            ["SADD", _ALL_SERVERS_KEY, key],
        ]
        category = record_category(value)
        if category:
            commands.append(["SADD", f"category:{category}", key])
        await self._pipeline(commands)

    async def query(self, collection: str, options: QueryOptions | None = None) -> list[dict]:
        self._check_collection(collection)
        options = options or QueryOptions()
        filters = dict(options.filters)

        if "domain" in filters:
            domains = [filters.pop("domain")]
        elif "category" in filters:
            members = await self._command("SMEMBERS", f"category:{filters.pop('category')}")
            domains = sorted(members or [])
        else:
            members = await self._command("SMEMBERS", _ALL_SERVERS_KEY)
            domains = sorted(members or [])

        records: list[dict] = []
        for start in range(0, len(domains), _MGET_BATCH):
            batch = domains[start : start + _MGET_BATCH]
            values = await self._command("MGET", *(f"server:{d}" for d in batch))
            for domain, raw in zip(batch, values or [], strict=False):
                record = self._decode(raw, domain)
                if record is None:
                    continue
                if all(record.get(name) == expected for name, expected in filters.items()):
                    records.append(record)
                if options.limit is not None and len(records) >= options.limit:
                    return records
        return records

    # ── Transport helpers ────────────────────────────────────────

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    async def _command(self, *args: str) -> object:
        try:
            response = await self.http.post(self.url, json=list(args), headers=self._headers)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogUnavailableError(f"Upstash command {args[0]} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise CatalogUnavailableError(f"Upstash command {args[0]} returned {payload!r}")
        if "error" in payload:
            raise CatalogUnavailableError(
                f"Upstash command {args[0]} failed: {payload['error']}"
            )
        return payload.get("result")

    async def _pipeline(self, commands: list[list[str]]) -> None:
        try:
            response = await self.http.post(
                f"{self.url.rstrip('/')}/pipeline", json=commands, headers=self._headers
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogUnavailableError(f"Upstash pipeline failed: {exc}") from exc

        errors = [item["error"] for item in payload if isinstance(item, dict) and "error" in item]
        if errors:
            raise CatalogUnavailableError(f"Upstash pipeline failed: {errors[0]}")

    @staticmethod
    def _decode(raw: object, key: str) -> dict | None:
        if raw is None:
            return None
        if isinstance(raw, dict):
            return raw
        try:
            value = json.loads(raw) if isinstance(raw, str) else None
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable catalog entry for '%s'", key)
            return None
        if not isinstance(value, dict):
            logger.warning("Skipping non-object catalog entry for '%s'", key)
            return None
        return value

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection != SERVERS_COLLECTION:
            raise CatalogUnavailableError(
                f"Upstash catalog only serves the '{SERVERS_COLLECTION}' collection, "
                f"not '{collection}'."
            )
