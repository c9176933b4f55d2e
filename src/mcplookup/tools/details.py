"""get_server_details tool -- fetch one registered server by domain."""

from __future__ import annotations

from mcp.server.fastmcp import Context

from mcplookup.discovery.assembler import enhanced_features
from mcplookup.discovery.normalizer import is_valid_domain
from mcplookup.errors import McpLookupError
from mcplookup.tools._helpers import get_engine


async def get_server_details(domain: str, ctx: Context) -> dict[str, object]:
    """Return the full catalog record for one MCP server.

    Use after discover_mcp_servers when you need every field of a single
    server (packages, health, verification badges).

    Args:
        domain: The server's registered domain (e.g. "gmail.com").

    Returns:
        {"success": True, "server": {...record, enhanced_features}} or
        {"success": False, "error": "..."} when the domain is unknown or invalid.
    """
    normalized = domain.strip().lower()
    if not is_valid_domain(normalized):
        return {"success": False, "error": f"'{domain}' is not a valid domain name."}

    try:
        engine = get_engine(ctx)
        record = await engine.get_server(normalized)
        if record is None:
            return {
                "success": False,
                "error": f"No MCP server is registered for '{normalized}'. "
                "Use discover_mcp_servers to search by need instead.",
            }
        server = record.to_dict()
        server["enhanced_features"] = enhanced_features(record)
        return {"success": True, "server": server}
    except McpLookupError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in get_server_details: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
