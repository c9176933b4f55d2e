"""Parse raw catalog entries into ServerRecord models.

Tolerant of missing fields -- uses defaults rather than crashing. Accepts
both the current nested format (``capabilities: {category, subcategories}``,
``server_type: {type, official_status}``) and the flat legacy format where
those fields sit at the top level.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import TypeVar

from mcplookup.errors import RecordError
from mcplookup.models import (
    QUALITY_SCORE_MAX,
    TRUST_SCORE_MAX,
    AuthType,
    Availability,
    AvailabilityStatus,
    Category,
    HealthMetrics,
    HealthStatus,
    OfficialStatus,
    PackageInfo,
    Quality,
    QualityCategory,
    ServerRecord,
    ServerType,
    ServerTypeInfo,
    Transport,
    VerificationStatus,
)

_E = TypeVar("_E", bound=StrEnum)


def parse_enum(enum_cls: type[_E], value: object, default: _E) -> _E:
    """Map a loosely-typed value onto an enum member, falling back to ``default``.

    Matching is case-insensitive and treats ``-`` and ``_`` alike, so
    ``"streamable-http"`` resolves to ``Transport.STREAMABLE_HTTP``.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    normalized = value.strip().lower().replace("-", "_")
    try:
        return enum_cls(normalized)
    except ValueError:
        pass
    try:
        # Upper-case members such as CapabilityOperator.AND
        return enum_cls(normalized.upper())
    except ValueError:
        return default


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def parse_record(raw: object, key: str = "") -> ServerRecord:
    """Parse one raw catalog entry.

    Raises:
        RecordError: The entry is not a mapping, has no usable domain, or
            holds a field whose shape cannot be read.
    """
    if not isinstance(raw, dict):
        raise RecordError(key or "?", f"expected a mapping, got {type(raw).__name__}")

    domain = raw.get("domain") or key
    if not isinstance(domain, str) or not domain.strip():
        raise RecordError(key or "?", "missing domain")
    domain = domain.strip().lower()

    try:
        return _build_record(raw, domain)
    except (TypeError, ValueError, AttributeError) as exc:
        raise RecordError(domain, f"malformed field: {exc}") from exc


def _build_record(raw: dict, domain: str) -> ServerRecord:
    caps = _mapping(raw.get("capabilities"))
    server_type = _mapping(raw.get("server_type"))
    availability = _mapping(raw.get("availability"))
    auth = raw.get("auth")
    github = _mapping(raw.get("github"))

    quality = _parse_quality(raw.get("quality"))

    return ServerRecord(
        domain=domain,
        name=_text(raw.get("name")),
        description=_text(raw.get("description")),
        endpoint=_text(raw.get("endpoint")),
        category=parse_enum(Category, caps.get("category", raw.get("category")), Category.OTHER),
        subcategories=_identifiers(caps.get("subcategories", raw.get("subcategories"))),
        intent_keywords=_identifiers(caps.get("intent_keywords", raw.get("intent_keywords"))),
        use_cases=_strings(caps.get("use_cases", raw.get("use_cases"))),
        tools=_identifiers(raw.get("tools"), name_key="name"),
        resources=_identifiers(raw.get("resources"), name_key="name"),
        prompts=_identifiers(raw.get("prompts"), name_key="name"),
        trust_score=clamp(_number(raw.get("trust_score"), 0.0), 0.0, TRUST_SCORE_MAX),
        verification_status=parse_enum(
            VerificationStatus, raw.get("verification_status"), VerificationStatus.UNKNOWN
        ),
        quality=quality,
        availability=Availability(
            status=parse_enum(
                AvailabilityStatus,
                availability.get("status", AvailabilityStatus.LIVE.value),
                AvailabilityStatus.UNKNOWN,
            ),
            endpoint_verified=bool(
                availability.get("endpoint_verified", raw.get("endpoint_verified", False))
            ),
        ),
        server_type=ServerTypeInfo(
            type=parse_enum(
                ServerType,
                server_type.get("type", raw.get("server_type")),
                ServerType.UNKNOWN,
            ),
            official_status=parse_enum(
                OfficialStatus,
                server_type.get("official_status", raw.get("official_status")),
                OfficialStatus.UNOFFICIAL,
            ),
            domain_verified=bool(
                server_type.get("domain_verified", raw.get("domain_verified", False))
            ),
            github_verified=bool(
                server_type.get("github_verified", raw.get("github_verified", False))
            ),
            verification_badges=_strings(server_type.get("verification_badges")),
        ),
        transport=parse_enum(Transport, raw.get("transport"), Transport.UNKNOWN),
        auth_type=_parse_auth_type(auth),
        cors_enabled=bool(raw.get("cors_enabled", False)),
        health=_parse_health(raw.get("health")),
        stars=_count(github.get("stars", raw.get("stars"))),
        forks=_count(github.get("forks", raw.get("forks"))),
        packages=_parse_packages(raw.get("packages")),
        ai_analysis_confidence=_parse_analysis_confidence(raw.get("mcp_analysis")),
        parser_version=_text(raw.get("parser_version")),
        created_at=_text(raw.get("created_at")),
        updated_at=_text(raw.get("updated_at")),
    )


# ── Field helpers ────────────────────────────────────────────


def _mapping(value: object) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return float(value)


def _optional_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _count(value: object) -> int:
    return max(0, int(_number(value, 0.0)))


def _strings(value: object) -> list[str]:
    if not isinstance(value, list | tuple):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _identifiers(value: object, name_key: str | None = None) -> list[str]:
    """Lowercased, deduplicated identifiers from strings or ``{name: ...}`` dicts."""
    if not isinstance(value, list | tuple):
        return []
    names: list[str] = []
    for item in value:
        if isinstance(item, dict) and name_key:
            item = item.get(name_key) or item.get("uri")
        if isinstance(item, str) and item.strip():
            names.append(item.strip().lower())
    return list(dict.fromkeys(names))


def _parse_quality(value: object) -> Quality:
    raw = _mapping(value)
    if isinstance(value, int | float) and not isinstance(value, bool):
        raw = {"score": value}
    score = clamp(_number(raw.get("score"), 0.0), 0.0, QUALITY_SCORE_MAX)
    category = parse_enum(QualityCategory, raw.get("category"), _quality_category(score))
    return Quality(score=score, category=category)


def _quality_category(score: float) -> QualityCategory:
    if score >= 100:
        return QualityCategory.HIGH
    if score >= 50:
        return QualityCategory.MEDIUM
    return QualityCategory.LOW


def _parse_auth_type(value: object) -> AuthType:
    if isinstance(value, dict):
        value = value.get("type")
    if value is None:
        return AuthType.UNKNOWN
    return parse_enum(AuthType, value, AuthType.UNKNOWN)


def _parse_health(value: object) -> HealthMetrics | None:
    if not isinstance(value, dict):
        return None
    uptime = _optional_number(value.get("uptime_percentage"))
    response_time = _optional_number(value.get("avg_response_time_ms"))
    return HealthMetrics(
        status=parse_enum(HealthStatus, value.get("status"), HealthStatus.UNKNOWN),
        uptime_percentage=clamp(uptime, 0.0, 100.0) if uptime is not None else None,
        avg_response_time_ms=max(0.0, response_time) if response_time is not None else None,
    )


def _parse_packages(value: object) -> list[PackageInfo]:
    if not isinstance(value, list):
        return []
    packages: list[PackageInfo] = []
    for pkg in value:
        if not isinstance(pkg, dict):
            continue
        env_vars = []
        raw_env = pkg.get("environment_variables")
        if not isinstance(raw_env, list | tuple):
            raw_env = []
        for ev in raw_env:
            name = ev.get("name") if isinstance(ev, dict) else ev
            if isinstance(name, str) and name:
                env_vars.append(name)
        packages.append(
            PackageInfo(
                registry_name=_text(pkg.get("registry_name", pkg.get("registry"))),
                name=_text(pkg.get("name", pkg.get("identifier"))),
                version=_text(str(pkg.get("version", ""))),
                environment_variables=env_vars,
            )
        )
    return packages


def _parse_analysis_confidence(value: object) -> float | None:
    if not isinstance(value, dict):
        return None
    return clamp(_number(value.get("confidence"), 0.0), 0.0, 1.0)
