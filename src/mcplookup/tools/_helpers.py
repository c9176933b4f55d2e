"""Reach the discovery engine from inside a tool call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

if TYPE_CHECKING:
    from mcplookup.discovery.engine import DiscoveryEngine


def get_engine(ctx: Context) -> DiscoveryEngine:
    """The DiscoveryEngine built by the server lifespan.

    Raises:
        TypeError: The tool is running outside ``app_lifespan``.
    """
    from mcplookup.server import AppContext

    app = ctx.request_context.lifespan_context
    if isinstance(app, AppContext):
        return app.engine
    raise TypeError(f"No discovery engine in lifespan context ({type(app).__name__})")
