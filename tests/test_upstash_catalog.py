"""Tests for the Upstash REST catalog adapter (catalog/upstash.py)."""

from __future__ import annotations

import json

import httpx
import pytest

from mcplookup.catalog.base import SERVERS_COLLECTION, QueryOptions
from mcplookup.catalog.upstash import UpstashCatalog
from mcplookup.errors import CatalogUnavailableError

_URL = "https://example-redis.upstash.io"

# --- Helpers ---------------------------------------------------------------


class _FakeUpstash:
    """Minimal Redis-over-REST emulation backed by dicts."""

    def __init__(self) -> None:
        self.strings: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, record: dict, category: str) -> None:
        domain = record["domain"]
        self.strings[f"server:{domain}"] = json.dumps(record)
        self.sets.setdefault(f"category:{category}", set()).add(domain)
        self.sets.setdefault("servers:all", set()).add(domain)

    def run(self, command: list[str]) -> dict:
        name, *args = command
        if name == "GET":
            return {"result": self.strings.get(args[0])}
        if name == "MGET":
            return {"result": [self.strings.get(k) for k in args]}
        if name == "SMEMBERS":
            return {"result": sorted(self.sets.get(args[0], set()))}
        if name == "SET":
            self.strings[args[0]] = args[1]
            return {"result": "OK"}
        if name == "SADD":
            self.sets.setdefault(args[0], set()).update(args[1:])
            return {"result": 1}
        return {"error": f"ERR unknown command '{name}'"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        if request.url.path.endswith("/pipeline"):
            return httpx.Response(200, json=[self.run(cmd) for cmd in body])
        return httpx.Response(200, json=self.run(body))


def _make_catalog(fake: _FakeUpstash) -> tuple[UpstashCatalog, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return UpstashCatalog(client, url=_URL, token="secret-token"), client


# --- Reads -----------------------------------------------------------------


class TestGet:
    async def test_get_decodes_json_record(self):
        fake = _FakeUpstash()
        fake.add({"domain": "gmail.com", "name": "Gmail"}, "communication")
        catalog, client = _make_catalog(fake)
        async with client:
            record = await catalog.get(SERVERS_COLLECTION, "gmail.com")

        assert record == {"domain": "gmail.com", "name": "Gmail"}
        sent = fake.requests[0]
        assert json.loads(sent.content) == ["GET", "server:gmail.com"]
        assert sent.headers["Authorization"] == "Bearer secret-token"

    async def test_get_missing_returns_none(self):
        catalog, client = _make_catalog(_FakeUpstash())
        async with client:
            assert await catalog.get(SERVERS_COLLECTION, "nope.com") is None

    async def test_undecodable_entry_returns_none(self):
        fake = _FakeUpstash()
        fake.strings["server:bad.com"] = "{not json"
        catalog, client = _make_catalog(fake)
        async with client:
            assert await catalog.get(SERVERS_COLLECTION, "bad.com") is None

    async def test_other_collections_rejected(self):
        catalog, client = _make_catalog(_FakeUpstash())
        async with client:
            with pytest.raises(CatalogUnavailableError):
                await catalog.get("users", "someone")


class TestQuery:
    async def test_category_query_reads_set_then_mget(self):
        fake = _FakeUpstash()
        fake.add({"domain": "outlook.com"}, "communication")
        fake.add({"domain": "gmail.com"}, "communication")
        fake.add({"domain": "github.com"}, "development")
        catalog, client = _make_catalog(fake)
        async with client:
            rows = await catalog.query(
                SERVERS_COLLECTION, QueryOptions(filters={"category": "communication"})
            )

        assert [r["domain"] for r in rows] == ["gmail.com", "outlook.com"]
        commands = [json.loads(r.content)[0] for r in fake.requests]
        assert commands == ["SMEMBERS", "MGET"]

    async def test_unfiltered_query_uses_all_servers_set(self):
        fake = _FakeUpstash()
        fake.add({"domain": "a.com"}, "storage")
        fake.add({"domain": "b.com"}, "finance")
        catalog, client = _make_catalog(fake)
        async with client:
            rows = await catalog.query(SERVERS_COLLECTION)

        assert [r["domain"] for r in rows] == ["a.com", "b.com"]
        assert json.loads(fake.requests[0].content) == ["SMEMBERS", "servers:all"]

    async def test_limit_stops_early(self):
        fake = _FakeUpstash()
        for name in ("a", "b", "c"):
            fake.add({"domain": f"{name}.com"}, "storage")
        catalog, client = _make_catalog(fake)
        async with client:
            rows = await catalog.query(SERVERS_COLLECTION, QueryOptions(limit=2))
        assert len(rows) == 2

    async def test_dangling_set_members_are_skipped(self):
        fake = _FakeUpstash()
        fake.add({"domain": "a.com"}, "storage")
        fake.sets["servers:all"].add("ghost.com")
        catalog, client = _make_catalog(fake)
        async with client:
            rows = await catalog.query(SERVERS_COLLECTION)
        assert [r["domain"] for r in rows] == ["a.com"]


class TestFailures:
    async def test_http_error_wrapped(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        catalog = UpstashCatalog(client, url=_URL, token="t")
        async with client:
            with pytest.raises(CatalogUnavailableError, match="GET"):
                await catalog.get(SERVERS_COLLECTION, "gmail.com")

    async def test_error_payload_wrapped(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"error": "WRONGPASS invalid token"})
            )
        )
        catalog = UpstashCatalog(client, url=_URL, token="t")
        async with client:
            with pytest.raises(CatalogUnavailableError, match="WRONGPASS"):
                await catalog.query(SERVERS_COLLECTION)

    async def test_connection_error_wrapped(self):
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_refuse))
        catalog = UpstashCatalog(client, url=_URL, token="t")
        async with client:
            with pytest.raises(CatalogUnavailableError):
                await catalog.get(SERVERS_COLLECTION, "gmail.com")


class TestSet:
    async def test_set_writes_record_and_indexes_in_one_pipeline(self):
        fake = _FakeUpstash()
        catalog, client = _make_catalog(fake)
        record = {
            "domain": "gmail.com",
            "capabilities": {"category": "communication", "subcategories": ["email"]},
        }
        async with client:
            await catalog.set(SERVERS_COLLECTION, "gmail.com", record)
            fetched = await catalog.get(SERVERS_COLLECTION, "gmail.com")

        assert fake.requests[0].url.path == "/pipeline"
        assert fake.sets["category:communication"] == {"gmail.com"}
        assert "capability:email" not in fake.sets
        assert fake.sets["servers:all"] == {"gmail.com"}
        assert fetched == record
