"""mcplookup: discovery and ranking of registered MCP servers.

Run ``mcplookup`` to serve the discovery tools. ``MCPLOOKUP_TRANSPORT``
selects ``stdio`` (default), ``sse`` or ``streamable-http``.
"""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

DISTRIBUTION = "mcplookup"
_LOCAL_VERSION_FALLBACK = "0.0.0+local"

logger = logging.getLogger(__name__)


def _resolve_version() -> str:
    try:
        return _distribution_version(DISTRIBUTION)
    except PackageNotFoundError:
        # Source checkout without an installed distribution
        return _LOCAL_VERSION_FALLBACK


__version__ = _resolve_version()


def main() -> None:
    """Console entry point: serve the discovery tools over the configured transport."""
    from mcplookup.server import mcp
    from mcplookup.settings import DiscoverySettings

    transport = DiscoverySettings.from_env().transport
    logger.info("Starting mcplookup %s over %s", __version__, transport)
    mcp.run(transport=transport)
