"""discover_mcp_servers tool -- ranked discovery over the server catalog."""

from __future__ import annotations

from mcp.server.fastmcp import Context

from mcplookup.tools._helpers import get_engine


async def discover_mcp_servers(
    ctx: Context,
    query: str | None = None,
    intent: str | None = None,
    domain: str | None = None,
    domains: list[str] | None = None,
    exclude_domains: list[str] | None = None,
    capabilities: dict | None = None,
    similar_to: dict | None = None,
    categories: list[str] | None = None,
    keywords: list[str] | None = None,
    use_cases: list[str] | None = None,
    performance: dict | None = None,
    availability_filter: dict | None = None,
    server_type_filter: dict | None = None,
    technical: dict | None = None,
    limit: int = 10,
    offset: int = 0,
    include_alternatives: bool = True,
    include_similar: bool = False,
    sort_by: str = "relevance",
) -> dict[str, object]:
    """Find MCP servers by natural language, domain, capability or similarity.

    Use natural language for open-ended needs ("send emails with oauth",
    "alternatives to slack"). Use domain/domains for exact lookups.
    Results are live servers only unless availability_filter says otherwise.

    Args:
        query: Free-text description of what you need.
        intent: Alternative to query for a one-line intent ("check my calendar").
        domain: Exact server domain (e.g. "gmail.com"). Takes precedence over
            categories and free text when selecting candidates.
        domains: Several exact domains.
        exclude_domains: Domains that must never be returned.
        capabilities: {"operator": "AND"|"OR"|"NOT", "required": [...],
            "preferred": [...], "exclude": [...], "minimum_match": 0..1}.
        similar_to: {"domain": "...", "threshold": 0.7, "exclude_reference": true}.
        categories: Any of communication, productivity, data, development,
            content, integration, analytics, security, finance, ecommerce,
            social, storage, other.
        keywords: Extra search terms.
        use_cases: Use-case phrases to match against server use cases.
        performance: {"min_uptime", "max_response_time", "min_trust_score",
            "verified_only" (default true), "healthy_only" (default true)}.
        availability_filter: {"include_live", "include_package_only",
            "include_deprecated", "include_offline", "live_servers_only"}.
        server_type_filter: {"include_github", "include_official",
            "official_only", "github_only", "minimum_official_status",
            "require_domain_verification", "require_github_verification"}.
        technical: {"auth_types": [...], "transport": "...", "cors_support": bool}.
        limit: Page size (1-100, default 10).
        offset: Number of ranked results to skip.
        include_alternatives: Also return up to 3 servers rejected by a filter,
            with the rules they failed.
        include_similar: Also return servers similar to the top result.
        sort_by: relevance, similarity, performance, popularity, trust_score
            or response_time.

    Returns:
        Discovery response with results (each with score breakdown and
        enhanced_features), total_results, pagination, filters_applied,
        timing and enhancement_info. On failure, an object with error,
        message, timestamp and, for invalid input, the offending field.
    """
    request: dict[str, object] = {
        "query": query,
        "intent": intent,
        "domain": domain,
        "domains": domains,
        "exclude_domains": exclude_domains,
        "capabilities": capabilities,
        "similar_to": similar_to,
        "categories": categories,
        "keywords": keywords,
        "use_cases": use_cases,
        "performance": performance,
        "availability_filter": availability_filter,
        "server_type_filter": server_type_filter,
        "technical": technical,
        "limit": limit,
        "offset": offset,
        "include_alternatives": include_alternatives,
        "include_similar": include_similar,
        "sort_by": sort_by,
    }
    try:
        engine = get_engine(ctx)
        response = await engine.discover(
            {name: value for name, value in request.items() if value is not None}
        )
        if "error" in response:
            await ctx.info(f"discover_mcp_servers: {response['message']}")
        return response
    except Exception as exc:
        await ctx.error(f"Unexpected error in discover_mcp_servers: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
