"""Turn a loosely-typed discovery request into a NormalizedQuery.

Structural problems (wrong types, out-of-range numbers, malformed
domains) raise InvalidQueryError naming the field. Unknown but
well-typed enum values are dropped or defaulted with a warning.
"""

from __future__ import annotations

import logging
import math
import re
import string
from collections.abc import Mapping
from enum import StrEnum
from typing import TypeVar

from mcplookup.catalog.parsing import parse_enum
from mcplookup.discovery.intent import IntentAnalysis, analyze_intent
from mcplookup.errors import InvalidQueryError
from mcplookup.models import (
    AuthType,
    AvailabilityFilter,
    CapabilityOperator,
    CapabilityRequirement,
    Category,
    NormalizedQuery,
    OfficialStatus,
    PerformanceFilter,
    ServerTypeFilter,
    SimilarityReference,
    SortKey,
    TechnicalFilter,
    Transport,
)

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=StrEnum)

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_LIMIT = 10

_MIN_TERM_LENGTH = 3
_INFERRED_SIMILARITY_THRESHOLD = 0.5

_DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,62}$"
)

_STOPWORDS: frozenset[str] = frozenset(
    {
        "a",
        "an",
        "and",
        "any",
        "are",
        "but",
        "can",
        "for",
        "from",
        "has",
        "have",
        "i",
        "in",
        "into",
        "is",
        "it",
        "its",
        "me",
        "my",
        "nor",
        "of",
        "on",
        "or",
        "so",
        "than",
        "that",
        "the",
        "their",
        "them",
        "then",
        "this",
        "to",
        "via",
        "want",
        "was",
        "what",
        "which",
        "who",
        "will",
        "with",
        "yet",
        "you",
        "your",
    }
)

# Words every record would match, or that only carry similarity phrasing
_LOW_SIGNAL_TERMS: frozenset[str] = frozenset(
    {
        "mcp",
        "server",
        "servers",
        "tool",
        "tools",
        "need",
        "like",
        "similar",
        "alternative",
        "alternatives",
        "instead",
    }
)


def normalize_query(request: object) -> NormalizedQuery:
    """Validate and default every field of a discovery request.

    Raises:
        InvalidQueryError: The request is structurally malformed.
    """
    if request is None:
        request = {}
    if not isinstance(request, Mapping):
        raise InvalidQueryError("request", f"expected a mapping, got {type(request).__name__}")

    free_text = _free_text(request)
    analysis = analyze_intent(free_text) if free_text else IntentAnalysis()

    similarity = _parse_similar_to(request.get("similar_to"))
    if similarity is None and analysis.similar_to and _DOMAIN_RE.match(analysis.similar_to):
        similarity = SimilarityReference(
            domain=analysis.similar_to, threshold=_INFERRED_SIMILARITY_THRESHOLD
        )
        logger.debug("Inferred similarity reference '%s' from query text", analysis.similar_to)

    return NormalizedQuery(
        text_terms=tokenize(free_text),
        domain_filter=_parse_domains(request),
        excluded_domains=_domain_list(request.get("exclude_domains"), "exclude_domains"),
        capability_requirement=_parse_capabilities(request.get("capabilities")),
        intent_capabilities=analysis.capabilities,
        similarity_reference=similarity,
        category_filter=_parse_categories(request.get("categories")),
        technical_filter=_parse_technical(request.get("technical"), analysis),
        performance_filter=_parse_performance(request.get("performance"), analysis),
        availability_filter=_parse_availability(request.get("availability_filter")),
        server_type_filter=_parse_server_type(request.get("server_type_filter")),
        limit=_parse_int(request.get("limit"), "limit", DEFAULT_LIMIT, MIN_LIMIT, MAX_LIMIT),
        offset=_parse_int(request.get("offset"), "offset", 0, 0, None),
        sort_by=_parse_known(SortKey, request.get("sort_by"), "sort_by", SortKey.RELEVANCE),
        include_alternatives=_bool(
            request.get("include_alternatives"), "include_alternatives", True
        ),
        include_similar=_bool(request.get("include_similar"), "include_similar", False),
    )


def tokenize(text: str) -> list[str]:
    """Lowercase terms with punctuation, stop words and short tokens removed."""
    terms: list[str] = []
    for raw in text.lower().split():
        token = raw.strip(string.punctuation)
        if len(token) < _MIN_TERM_LENGTH:
            continue
        if token in _STOPWORDS or token in _LOW_SIGNAL_TERMS:
            continue
        terms.append(token)
    return list(dict.fromkeys(terms))


def is_valid_domain(value: str) -> bool:
    return bool(_DOMAIN_RE.match(value))


# ── Free text ────────────────────────────────────────────────


def _free_text(request: Mapping) -> str:
    parts: list[str] = []
    for name in ("query", "intent"):
        value = request.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise InvalidQueryError(name, "must be a string")
        parts.append(value)

    parts.extend(_string_items(request.get("use_cases"), "use_cases"))

    keywords = request.get("keywords")
    if keywords is not None:
        if not isinstance(keywords, list):
            raise InvalidQueryError("keywords", "must be a list")
        for index, item in enumerate(keywords):
            if isinstance(item, Mapping):
                item = item.get("value")
            if not isinstance(item, str):
                raise InvalidQueryError(f"keywords[{index}]", "must be a string or {value}")
            parts.append(item)

    return " ".join(p.strip() for p in parts if p.strip())


# ── Domains ──────────────────────────────────────────────────


def _parse_domains(request: Mapping) -> list[str]:
    domains: list[str] = []
    single = request.get("domain")
    if single is not None:
        if not isinstance(single, str):
            raise InvalidQueryError("domain", "must be a string")
        domains.append(_domain(single, "domain"))
    domains.extend(_domain_list(request.get("domains"), "domains"))
    return list(dict.fromkeys(domains))


def _domain_list(value: object, name: str) -> list[str]:
    items = _string_items(value, name)
    return list(dict.fromkeys(_domain(item, name) for item in items))


def _domain(value: str, name: str) -> str:
    domain = value.strip().lower()
    if not _DOMAIN_RE.match(domain):
        raise InvalidQueryError(name, f"'{value}' is not a valid domain name")
    return domain


# ── Capabilities and similarity ──────────────────────────────


def _parse_capabilities(value: object) -> CapabilityRequirement:
    caps = _optional_mapping(value, "capabilities")
    if caps is None:
        return CapabilityRequirement()

    return CapabilityRequirement(
        required=_identifiers(caps.get("required"), "capabilities.required"),
        preferred=_identifiers(caps.get("preferred"), "capabilities.preferred"),
        excluded=_identifiers(caps.get("exclude"), "capabilities.exclude"),
        operator=_parse_known(
            CapabilityOperator,
            caps.get("operator"),
            "capabilities.operator",
            CapabilityOperator.AND,
        ),
        minimum_match=_fraction(caps.get("minimum_match"), "capabilities.minimum_match", 0.5),
    )


def _parse_similar_to(value: object) -> SimilarityReference | None:
    if value is None:
        return None
    if isinstance(value, str):
        return SimilarityReference(domain=_domain(value, "similar_to"))
    if not isinstance(value, Mapping):
        raise InvalidQueryError("similar_to", "must be a mapping with a 'domain'")

    domain = value.get("domain")
    if not isinstance(domain, str):
        raise InvalidQueryError("similar_to.domain", "is required and must be a string")
    return SimilarityReference(
        domain=_domain(domain, "similar_to.domain"),
        threshold=_fraction(value.get("threshold"), "similar_to.threshold", 0.7),
        exclude_reference=_bool(
            value.get("exclude_reference"), "similar_to.exclude_reference", True
        ),
    )


def _parse_categories(value: object) -> list[Category]:
    categories: list[Category] = []
    for item in _string_items(value, "categories"):
        category = parse_enum(Category, item, None)
        if category is None:
            logger.warning("Dropping unknown category %r from discovery request", item)
            continue
        categories.append(category)
    return list(dict.fromkeys(categories))


# ── Filters ──────────────────────────────────────────────────


def _parse_technical(value: object, analysis: IntentAnalysis) -> TechnicalFilter:
    tech = _optional_mapping(value, "technical") or {}

    auth_types: list[AuthType] = []
    for item in _string_items(tech.get("auth_types"), "technical.auth_types"):
        auth = parse_enum(AuthType, item, None)
        if auth is None:
            logger.warning("Dropping unknown auth type %r from discovery request", item)
            continue
        auth_types.append(auth)
    if not auth_types:
        auth_types = list(analysis.auth_types)

    transport: Transport | None = None
    raw_transport = tech.get("transport")
    if raw_transport is not None:
        if not isinstance(raw_transport, str):
            raise InvalidQueryError("technical.transport", "must be a string")
        transport = parse_enum(Transport, raw_transport, None)
        if transport is None:
            logger.warning("Dropping unknown transport %r from discovery request", raw_transport)

    cors = tech.get("cors_support")
    if cors is not None and not isinstance(cors, bool):
        raise InvalidQueryError("technical.cors_support", "must be a boolean")

    return TechnicalFilter(
        auth_types=list(dict.fromkeys(auth_types)), transport=transport, cors_support=cors
    )


def _parse_performance(value: object, analysis: IntentAnalysis) -> PerformanceFilter:
    perf = _optional_mapping(value, "performance")
    if perf is None:
        # Hints from free text still narrow results, but never imply verified/healthy
        return PerformanceFilter(
            min_uptime=analysis.min_uptime,
            max_response_time=analysis.max_response_time,
            min_trust_score=analysis.min_trust_score,
        )

    min_uptime = _bounded(perf.get("min_uptime"), "performance.min_uptime", 0.0, 100.0)
    max_response_time = _bounded(
        perf.get("max_response_time"), "performance.max_response_time", 0.0, None
    )
    min_trust_score = _bounded(
        perf.get("min_trust_score"), "performance.min_trust_score", 0.0, 100.0
    )
    return PerformanceFilter(
        min_uptime=min_uptime if min_uptime is not None else analysis.min_uptime,
        max_response_time=(
            max_response_time if max_response_time is not None else analysis.max_response_time
        ),
        min_trust_score=(
            min_trust_score if min_trust_score is not None else analysis.min_trust_score
        ),
        verified_only=_bool(perf.get("verified_only"), "performance.verified_only", True),
        healthy_only=_bool(perf.get("healthy_only"), "performance.healthy_only", True),
    )


def _parse_availability(value: object) -> AvailabilityFilter:
    avail = _optional_mapping(value, "availability_filter")
    if avail is None:
        return AvailabilityFilter()
    prefix = "availability_filter"
    return AvailabilityFilter(
        include_live=_bool(avail.get("include_live"), f"{prefix}.include_live", True),
        include_package_only=_bool(
            avail.get("include_package_only"), f"{prefix}.include_package_only", False
        ),
        include_deprecated=_bool(
            avail.get("include_deprecated"), f"{prefix}.include_deprecated", False
        ),
        include_offline=_bool(avail.get("include_offline"), f"{prefix}.include_offline", False),
        live_servers_only=_bool(
            avail.get("live_servers_only"), f"{prefix}.live_servers_only", False
        ),
    )


def _parse_server_type(value: object) -> ServerTypeFilter:
    st = _optional_mapping(value, "server_type_filter")
    if st is None:
        return ServerTypeFilter()
    prefix = "server_type_filter"

    official_only = _bool(st.get("official_only"), f"{prefix}.official_only", False)
    github_only = _bool(st.get("github_only"), f"{prefix}.github_only", False)
    if official_only and github_only:
        raise InvalidQueryError(prefix, "official_only and github_only are mutually exclusive")

    return ServerTypeFilter(
        include_github=_bool(st.get("include_github"), f"{prefix}.include_github", True),
        include_official=_bool(st.get("include_official"), f"{prefix}.include_official", True),
        official_only=official_only,
        github_only=github_only,
        minimum_official_status=_parse_known(
            OfficialStatus,
            st.get("minimum_official_status"),
            f"{prefix}.minimum_official_status",
            OfficialStatus.UNOFFICIAL,
        ),
        require_domain_verification=_bool(
            st.get("require_domain_verification"), f"{prefix}.require_domain_verification", False
        ),
        require_github_verification=_bool(
            st.get("require_github_verification"), f"{prefix}.require_github_verification", False
        ),
    )


# ── Primitive validators ─────────────────────────────────────


def _optional_mapping(value: object, name: str) -> Mapping | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise InvalidQueryError(name, "must be a mapping")
    return value


def _string_items(value: object, name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, list | tuple):
        raise InvalidQueryError(name, "must be a list of strings")
    items: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise InvalidQueryError(f"{name}[{index}]", "must be a string")
        if item.strip():
            items.append(item.strip())
    return items


def _identifiers(value: object, name: str) -> list[str]:
    return list(dict.fromkeys(item.lower() for item in _string_items(value, name)))


def _bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidQueryError(name, "must be a boolean")
    return value


def _parse_int(value: object, name: str, default: int, low: int, high: int | None) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError(name, "must be an integer")
    if value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidQueryError(name, f"must be {bounds}, got {value}")
    return value


def _bounded(value: object, name: str, low: float, high: float | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float) or math.isnan(value):
        raise InvalidQueryError(name, "must be a number")
    if value < low or (high is not None and value > high):
        bounds = f"between {low:g} and {high:g}" if high is not None else f"at least {low:g}"
        raise InvalidQueryError(name, f"must be {bounds}, got {value}")
    return float(value)


def _fraction(value: object, name: str, default: float) -> float:
    bounded = _bounded(value, name, 0.0, 1.0)
    return default if bounded is None else bounded


def _parse_known(enum_cls: type[_E], value: object, name: str, default: _E) -> _E:
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidQueryError(name, "must be a string")
    parsed = parse_enum(enum_cls, value, None)
    if parsed is None:
        logger.warning("Unknown %s %r in discovery request, using %s", name, value, default)
        return default
    return parsed
