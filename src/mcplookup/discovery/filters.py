"""Hard policy rules applied after scoring.

Rules never touch scores. Each check returns the names of the rules a
record violates so rejected candidates can be explained to the caller.
Missing health data fails any active bound.
"""

from __future__ import annotations

from mcplookup.models import (
    LIVE_STATUSES,
    OFFICIAL_STATUS_RANK,
    AvailabilityFilter,
    AvailabilityStatus,
    HealthStatus,
    NormalizedQuery,
    PerformanceFilter,
    Rejection,
    ScoredCandidate,
    ServerRecord,
    ServerType,
    ServerTypeFilter,
    TechnicalFilter,
    VerificationStatus,
)


def policy_violations(query: NormalizedQuery, record: ServerRecord) -> list[str]:
    """Names of every active rule ``record`` fails; empty means it passes."""
    return [
        *_performance_violations(query.performance_filter, record),
        *_availability_violations(query.availability_filter, record),
        *_server_type_violations(query.server_type_filter, record),
        *_technical_violations(query.technical_filter, record),
    ]


def apply_policy(
    query: NormalizedQuery, candidates: list[ScoredCandidate]
) -> tuple[list[ScoredCandidate], list[Rejection]]:
    """Split scored candidates into survivors and explained rejections."""
    kept: list[ScoredCandidate] = []
    rejected: list[Rejection] = []
    for candidate in candidates:
        violations = policy_violations(query, candidate.record)
        if violations:
            rejected.append(Rejection(candidate=candidate, violations=violations))
        else:
            kept.append(candidate)
    return kept, rejected


def allowed_statuses(availability: AvailabilityFilter) -> frozenset[AvailabilityStatus]:
    """Availability statuses the flag set admits (ignores live_servers_only)."""
    allowed: set[AvailabilityStatus] = set()
    if availability.include_live:
        allowed |= LIVE_STATUSES
    if availability.include_package_only:
        allowed.add(AvailabilityStatus.PACKAGE_ONLY)
    if availability.include_deprecated:
        allowed.add(AvailabilityStatus.DEPRECATED)
    if availability.include_offline:
        allowed.add(AvailabilityStatus.OFFLINE)
    # Every flag off falls back to live only
    return frozenset(allowed or LIVE_STATUSES)


def active_rules(query: NormalizedQuery) -> list[str]:
    """Describe the policy rules a query switches on, for response metadata."""
    rules: list[str] = []
    perf = query.performance_filter
    if perf.verified_only:
        rules.append("verified_only")
    if perf.healthy_only:
        rules.append("healthy_only")
    if perf.min_trust_score is not None:
        rules.append(f"min_trust_score:{perf.min_trust_score:g}")
    if perf.min_uptime is not None:
        rules.append(f"min_uptime:{perf.min_uptime:g}")
    if perf.max_response_time is not None:
        rules.append(f"max_response_time:{perf.max_response_time:g}")

    avail = query.availability_filter
    if avail.live_servers_only:
        rules.append("live_servers_only")
    else:
        statuses = sorted(s.value for s in allowed_statuses(avail))
        rules.append("availability:" + ",".join(statuses))

    st = query.server_type_filter
    if st.official_only:
        rules.append("official_only")
    elif st.github_only:
        rules.append("github_only")
    else:
        if not st.include_github:
            rules.append("exclude_github")
        if not st.include_official:
            rules.append("exclude_official")
    if OFFICIAL_STATUS_RANK[st.minimum_official_status] > 0:
        rules.append(f"minimum_official_status:{st.minimum_official_status.value}")
    if st.require_domain_verification:
        rules.append("require_domain_verification")
    if st.require_github_verification:
        rules.append("require_github_verification")

    tech = query.technical_filter
    if tech.transport is not None:
        rules.append(f"transport:{tech.transport.value}")
    if tech.auth_types:
        rules.append("auth_types:" + ",".join(a.value for a in tech.auth_types))
    if tech.cors_support:
        rules.append("cors_support")
    return rules


def _performance_violations(perf: PerformanceFilter, record: ServerRecord) -> list[str]:
    violations: list[str] = []
    health = record.health

    if perf.verified_only and record.verification_status != VerificationStatus.VERIFIED:
        violations.append("verified_only")
    if perf.healthy_only and (health is None or health.status != HealthStatus.HEALTHY):
        violations.append("healthy_only")
    if perf.min_trust_score is not None and record.trust_score < perf.min_trust_score:
        violations.append("min_trust_score")
    if perf.min_uptime is not None:
        uptime = health.uptime_percentage if health is not None else None
        if uptime is None or uptime < perf.min_uptime:
            violations.append("min_uptime")
    if perf.max_response_time is not None:
        response_time = health.avg_response_time_ms if health is not None else None
        if response_time is None or response_time > perf.max_response_time:
            violations.append("max_response_time")
    return violations


def _availability_violations(avail: AvailabilityFilter, record: ServerRecord) -> list[str]:
    status = record.availability.status
    if avail.live_servers_only:
        return ["live_servers_only"] if status == AvailabilityStatus.PACKAGE_ONLY else []
    return [] if status in allowed_statuses(avail) else ["availability"]


def _server_type_violations(st: ServerTypeFilter, record: ServerRecord) -> list[str]:
    violations: list[str] = []
    info = record.server_type

    if st.official_only:
        if info.type != ServerType.OFFICIAL:
            violations.append("official_only")
    elif st.github_only:
        if info.type != ServerType.GITHUB:
            violations.append("github_only")
    elif (info.type == ServerType.GITHUB and not st.include_github) or (
        info.type == ServerType.OFFICIAL and not st.include_official
    ):
        violations.append("server_type")

    rank = OFFICIAL_STATUS_RANK
    if rank[info.official_status] < rank[st.minimum_official_status]:
        violations.append("minimum_official_status")
    if st.require_domain_verification and not info.domain_verified:
        violations.append("require_domain_verification")
    if st.require_github_verification and not info.github_verified:
        violations.append("require_github_verification")
    return violations


def _technical_violations(tech: TechnicalFilter, record: ServerRecord) -> list[str]:
    violations: list[str] = []
    if tech.transport is not None and record.transport != tech.transport:
        violations.append("transport")
    if tech.auth_types and record.auth_type not in tech.auth_types:
        violations.append("auth_types")
    if tech.cors_support and not record.cors_enabled:
        violations.append("cors_support")
    return violations
