"""MCP server that lets agents discover registered MCP servers."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from mcplookup.catalog.base import CatalogStorePort
from mcplookup.catalog.loader import DEFAULT_CATALOG, load_catalog
from mcplookup.catalog.upstash import UpstashCatalog
from mcplookup.discovery.engine import DiscoveryEngine
from mcplookup.settings import DiscoverySettings
from mcplookup.tools.details import get_server_details
from mcplookup.tools.discover import discover_mcp_servers

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations."""

    http_client: httpx.AsyncClient
    catalog: CatalogStorePort
    engine: DiscoveryEngine
    settings: DiscoverySettings


def build_catalog(settings: DiscoverySettings, http_client: httpx.AsyncClient) -> CatalogStorePort:
    """Pick the catalog backend: Upstash, then a catalog file, then the built-in sample."""
    if settings.uses_upstash:
        logger.info("Using Upstash catalog at %s", settings.upstash_url)
        return UpstashCatalog(http_client, url=settings.upstash_url, token=settings.upstash_token)
    source = settings.catalog_path or DEFAULT_CATALOG
    logger.info("Using catalog '%s'", source)
    return load_catalog(source)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage shared adapter lifecycle -- the composition root."""
    settings = DiscoverySettings.from_env()
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout, connect=min(settings.http_timeout, 10.0)),
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        transport=httpx.AsyncHTTPTransport(retries=3),
    ) as http_client:
        catalog = build_catalog(settings, http_client)
        yield AppContext(
            http_client=http_client,
            catalog=catalog,
            engine=DiscoveryEngine(catalog, settings),
            settings=settings,
        )


mcp = FastMCP(
    "mcplookup",
    instructions=(
        "mcplookup finds MCP servers registered in the MCPLookup catalog.\n\n"
        "## When to use mcplookup\n\n"
        "Use these tools whenever the user needs a capability you do not have "
        "(email, calendars, payments, repositories...) or asks which MCP server to use.\n\n"
        "### Tools\n"
        "- **discover_mcp_servers** -- Describe the need in `query` "
        "('send emails with oauth', 'alternatives to slack'), or pass an exact "
        "`domain`. Narrow with `capabilities`, `categories`, `performance`, "
        "`availability_filter` and `server_type_filter`. Each result carries a score "
        "breakdown with reasons; `alternatives` lists near misses and the rules "
        "that rejected them.\n"
        "- **get_server_details** -- Full record for one domain (packages, health, "
        "verification badges).\n\n"
        "### Key principles\n"
        "- Only live servers are returned by default. Set "
        "`availability_filter.include_package_only` to see installable packages.\n"
        "- Passing `performance` switches on verified_only and healthy_only unless "
        "you set them to false.\n"
        "- When results are empty, read `suggestions` before retrying."
    ),
    lifespan=app_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(discover_mcp_servers)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_server_details)
