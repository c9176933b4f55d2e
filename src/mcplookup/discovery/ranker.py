"""Total ordering, pagination and suggestion lists."""

from __future__ import annotations

from collections.abc import Callable

from mcplookup.discovery.filters import policy_violations
from mcplookup.discovery.similarity import record_similarity
from mcplookup.models import (
    AuthType,
    Category,
    NormalizedQuery,
    RankedPage,
    Rejection,
    ScoreBreakdown,
    ScoredCandidate,
    ServerRecord,
    SortKey,
    Transport,
)

SIMILAR_FLOOR = 0.3

# Response time at which the speed half of the performance signal bottoms out
_RESPONSE_TIME_CEILING_MS = 5000.0

_SortTuple = tuple[object, ...]


def performance_signal(record: ServerRecord) -> float:
    """Blend of uptime (70%) and response speed (30%); missing data counts as zero."""
    health = record.health
    if health is None:
        return 0.0
    uptime = (health.uptime_percentage or 0.0) / 100.0
    speed = 0.0
    if health.avg_response_time_ms is not None:
        capped = min(health.avg_response_time_ms, _RESPONSE_TIME_CEILING_MS)
        speed = 1.0 - capped / _RESPONSE_TIME_CEILING_MS
    return round(0.7 * uptime + 0.3 * speed, 4)


def has_unrecognized_fields(record: ServerRecord) -> bool:
    """True when category, transport or auth type fell back to other/unknown."""
    return (
        record.category is Category.OTHER
        or record.transport is Transport.UNKNOWN
        or record.auth_type is AuthType.UNKNOWN
    )


def sort_key_for(sort_by: SortKey) -> Callable[[ScoredCandidate], _SortTuple]:
    """Key for ``sorted``: recognized records first, then the primary key,
    then trust descending, then domain ascending.
    """

    def tail(c: ScoredCandidate) -> _SortTuple:
        return (-c.record.trust_score, c.record.domain)

    if sort_by is SortKey.RESPONSE_TIME:

        def by_response_time(c: ScoredCandidate) -> _SortTuple:
            rt = c.record.health.avg_response_time_ms if c.record.health else None
            return (
                has_unrecognized_fields(c.record),
                rt is None,
                rt if rt is not None else 0.0,
                *tail(c),
            )

        return by_response_time

    primary: dict[SortKey, Callable[[ScoredCandidate], float]] = {
        SortKey.RELEVANCE: lambda c: c.score.total,
        SortKey.SIMILARITY: lambda c: c.score.similarity or 0.0,
        SortKey.PERFORMANCE: lambda c: performance_signal(c.record),
        SortKey.POPULARITY: lambda c: float(c.record.stars + c.record.forks),
        SortKey.TRUST_SCORE: lambda c: c.record.trust_score,
    }
    value = primary[sort_by]
    return lambda c: (has_unrecognized_fields(c.record), -value(c), *tail(c))


def rank_candidates(
    query: NormalizedQuery,
    survivors: list[ScoredCandidate],
    rejections: list[Rejection],
    max_alternatives: int,
) -> RankedPage:
    """Order survivors, cut the requested page and pick alternatives."""
    ordered = sorted(survivors, key=sort_key_for(query.sort_by))
    limit = max(1, min(100, query.limit))
    page = ordered[query.offset : query.offset + limit]

    alternatives: list[Rejection] = []
    if query.include_alternatives and rejections:
        relevance = sort_key_for(SortKey.RELEVANCE)
        alternatives = sorted(rejections, key=lambda r: relevance(r.candidate))[:max_alternatives]

    return RankedPage(results=page, total=len(ordered), alternatives=alternatives)


def find_similar(
    query: NormalizedQuery,
    anchor: ServerRecord,
    pool: list[ServerRecord],
    exclude: set[str],
    limit: int,
) -> list[ScoredCandidate]:
    """Records from ``pool`` closest to ``anchor`` that pass the query's policy rules."""
    similar: list[ScoredCandidate] = []
    for record in pool:
        if record.domain == anchor.domain or record.domain in exclude:
            continue
        if policy_violations(query, record):
            continue
        value = record_similarity(anchor, record)
        if value < SIMILAR_FLOOR:
            continue
        similar.append(
            ScoredCandidate(
                record=record,
                score=ScoreBreakdown(
                    total=value,
                    normalized={"similarity": value},
                    similarity=value,
                    reasons=[f"similarity {value:.2f} to {anchor.domain}"],
                ),
            )
        )
    return sorted(similar, key=sort_key_for(SortKey.SIMILARITY))[:limit]
