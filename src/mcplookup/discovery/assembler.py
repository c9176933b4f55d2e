"""Package ranked results into the discovery response contract."""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict
from datetime import UTC, datetime

from mcplookup.discovery.intent import related_intents
from mcplookup.models import (
    NormalizedQuery,
    OfficialStatus,
    RankedPage,
    Rejection,
    ScoredCandidate,
    ServerRecord,
    ServerType,
)

MAX_SUGGESTIONS = 3

_RULE_HINTS: dict[str, str] = {
    "verified_only": "Set performance.verified_only to false to include unverified servers.",
    "healthy_only": "Set performance.healthy_only to false to include unhealthy servers.",
    "min_trust_score": "Lower performance.min_trust_score.",
    "min_uptime": "Lower performance.min_uptime; some servers report no uptime data.",
    "max_response_time": "Raise performance.max_response_time; some servers report no latency.",
    "availability": "Enable availability_filter.include_package_only to see installable packages.",
    "live_servers_only": "Turn off availability_filter.live_servers_only to see packages.",
    "official_only": "Turn off server_type_filter.official_only to include community servers.",
    "github_only": "Turn off server_type_filter.github_only to include official servers.",
    "server_type": "Enable both include_github and include_official in server_type_filter.",
    "minimum_official_status": "Lower server_type_filter.minimum_official_status.",
    "require_domain_verification": "Drop server_type_filter.require_domain_verification.",
    "require_github_verification": "Drop server_type_filter.require_github_verification.",
    "transport": "Remove the technical.transport constraint.",
    "auth_types": "Accept more technical.auth_types.",
    "cors_support": "Drop technical.cors_support.",
}


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def build_response(
    query: NormalizedQuery,
    page: RankedPage,
    *,
    filters_applied: list[str],
    candidate_count: int,
    timing_ms: dict[str, float],
    suggestions: list[str],
    timestamp: str | None = None,
) -> dict[str, object]:
    """Assemble the successful response for one discovery call."""
    timestamp = timestamp or utc_timestamp()
    records = [c.record for c in page.results]

    response: dict[str, object] = {
        "query": {**query.to_dict(), "timestamp": timestamp},
        "results": [result_entry(c) for c in page.results],
        "total_results": page.total,
        "discovery_time_ms": timing_ms.get("total", 0.0),
        "pagination": {
            "offset": query.offset,
            "limit": query.limit,
            "returned": len(page.results),
            "has_more": query.offset + len(page.results) < page.total,
        },
        "filters_applied": filters_applied,
        "candidate_count": candidate_count,
        "timing_ms": timing_ms,
        "enhancement_info": enhancement_info(records),
    }
    if query.include_alternatives:
        response["alternatives"] = [alternative_entry(r) for r in page.alternatives]
    if query.include_similar:
        response["similar_servers"] = [result_entry(c) for c in page.similar]
    if suggestions:
        response["suggestions"] = suggestions
    return response


def error_response(
    error: str,
    message: str,
    field: str | None = None,
    timestamp: str | None = None,
) -> dict[str, object]:
    body: dict[str, object] = {
        "error": error,
        "message": message,
        "timestamp": timestamp or utc_timestamp(),
    }
    if field is not None:
        body["field"] = field
    return body


def result_entry(candidate: ScoredCandidate) -> dict[str, object]:
    entry = candidate.record.to_dict()
    entry["score"] = asdict(candidate.score)
    entry["enhanced_features"] = enhanced_features(candidate.record)
    return entry


def alternative_entry(rejection: Rejection) -> dict[str, object]:
    record = rejection.candidate.record
    return {
        "domain": record.domain,
        "name": record.name,
        "score": rejection.candidate.score.total,
        "violations": list(rejection.violations),
    }


def enhanced_features(record: ServerRecord) -> dict[str, object]:
    info = record.server_type
    return {
        "has_ai_analysis": record.ai_analysis_confidence is not None,
        "has_rich_installation": bool(record.packages),
        "has_environment_vars": any(p.environment_variables for p in record.packages),
        "parser_enhanced": bool(record.parser_version),
        "trust_score": record.trust_score,
        "analysis_confidence": record.ai_analysis_confidence,
        "server_type": info.type.value,
        "official_status": info.official_status.value,
        "verification_badges": list(info.verification_badges),
        "domain_verified": info.domain_verified,
        "github_verified": info.github_verified,
    }


def enhancement_info(records: list[ServerRecord]) -> dict[str, object]:
    """Aggregate enrichment statistics over the returned page."""
    avg_trust = sum(r.trust_score for r in records) / len(records) if records else 0.0
    official, github = ServerType.OFFICIAL, ServerType.GITHUB
    return {
        "ai_analyzed_servers": sum(1 for r in records if r.ai_analysis_confidence is not None),
        "parser_enhanced_servers": sum(1 for r in records if r.parser_version),
        "avg_trust_score": round(avg_trust, 1),
        "server_type_breakdown": {
            "official_servers": sum(1 for r in records if r.server_type.type is official),
            "github_servers": sum(1 for r in records if r.server_type.type is github),
            "domain_verified": sum(1 for r in records if r.server_type.domain_verified),
            "github_verified": sum(1 for r in records if r.server_type.github_verified),
            "enterprise_grade": sum(
                1 for r in records if r.server_type.official_status == OfficialStatus.ENTERPRISE
            ),
        },
    }


def build_suggestions(
    query: NormalizedQuery,
    rejections: list[Rejection],
    reference_missing: bool = False,
) -> list[str]:
    """Hints for an empty result: the most frequent blocking rules, then related intents."""
    suggestions: list[str] = []
    if reference_missing and query.similarity_reference is not None:
        suggestions.append(
            f"'{query.similarity_reference.domain}' is not registered; "
            "describe what you need in the query instead."
        )

    counts = Counter(rule for r in rejections for rule in r.violations)
    # Most frequent first; rule name breaks ties
    for rule, _ in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        hint = _RULE_HINTS.get(rule)
        if hint and hint not in suggestions:
            suggestions.append(hint)

    if query.text_terms:
        suggestions.extend(f"Try: {s}" for s in related_intents(" ".join(query.text_terms)))

    return suggestions[:MAX_SUGGESTIONS]
