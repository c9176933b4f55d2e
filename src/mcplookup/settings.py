"""Runtime settings read from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_DEFAULT_MAX_SCAN_RECORDS = 5000
_DEFAULT_MAX_ALTERNATIVES = 3
_DEFAULT_MAX_SIMILAR = 5
_DEFAULT_HTTP_TIMEOUT = 10.0
_DEFAULT_TRANSPORT = "stdio"

TRANSPORTS = ("stdio", "sse", "streamable-http")


@dataclass(frozen=True, slots=True)
class DiscoverySettings:
    """Knobs for catalog selection and the discovery pipeline.

    ``catalog_path`` empty means the built-in sample catalog is used.
    When both Upstash values are set the Upstash catalog takes precedence
    over any file catalog.
    """

    catalog_path: str = ""
    upstash_url: str = ""
    upstash_token: str = ""
    max_scan_records: int = _DEFAULT_MAX_SCAN_RECORDS
    max_alternatives: int = _DEFAULT_MAX_ALTERNATIVES
    max_similar: int = _DEFAULT_MAX_SIMILAR
    http_timeout: float = _DEFAULT_HTTP_TIMEOUT
    transport: str = _DEFAULT_TRANSPORT

    @property
    def uses_upstash(self) -> bool:
        return bool(self.upstash_url and self.upstash_token)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DiscoverySettings:
        env = os.environ if environ is None else environ
        return cls(
            catalog_path=env.get("MCPLOOKUP_CATALOG_PATH", ""),
            upstash_url=env.get("MCPLOOKUP_UPSTASH_URL", env.get("UPSTASH_REDIS_REST_URL", "")),
            upstash_token=env.get(
                "MCPLOOKUP_UPSTASH_TOKEN", env.get("UPSTASH_REDIS_REST_TOKEN", "")
            ),
            max_scan_records=_positive_int(
                env, "MCPLOOKUP_MAX_SCAN_RECORDS", _DEFAULT_MAX_SCAN_RECORDS
            ),
            max_alternatives=_positive_int(
                env, "MCPLOOKUP_MAX_ALTERNATIVES", _DEFAULT_MAX_ALTERNATIVES
            ),
            max_similar=_positive_int(env, "MCPLOOKUP_MAX_SIMILAR", _DEFAULT_MAX_SIMILAR),
            http_timeout=_positive_float(env, "MCPLOOKUP_HTTP_TIMEOUT", _DEFAULT_HTTP_TIMEOUT),
            transport=_transport(env),
        )


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %d", name, raw, default)
        return default
    return value


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value


def _transport(env: Mapping[str, str]) -> str:
    raw = env.get("MCPLOOKUP_TRANSPORT", "").strip().lower()
    if not raw:
        return _DEFAULT_TRANSPORT
    if raw not in TRANSPORTS:
        logger.warning(
            "Ignoring MCPLOOKUP_TRANSPORT=%r: expected one of %s, using %s",
            raw,
            ", ".join(TRANSPORTS),
            _DEFAULT_TRANSPORT,
        )
        return _DEFAULT_TRANSPORT
    return raw
