"""Deterministic relevance scoring for discovery candidates.

Every score is a weighted sum of normalized (0..1) signals. Keyword and
capability matches dominate; trust, quality and popularity are small
tie-breakers whose combined weight stays below either dominant signal.
"""

from __future__ import annotations

import math

from mcplookup.discovery.similarity import record_similarity
from mcplookup.models import (
    QUALITY_SCORE_MAX,
    TRUST_SCORE_MAX,
    CapabilityOperator,
    NormalizedQuery,
    ScoreBreakdown,
    ScoredCandidate,
    ServerRecord,
)

SCORE_WEIGHTS: dict[str, float] = {
    "keyword": 40.0,
    "capability": 40.0,
    "similarity": 30.0,
    "intent": 10.0,
    "trust": 4.0,
    "quality": 3.0,
    "popularity": 3.0,
}

# stars + forks at which the popularity signal saturates
_POPULARITY_SATURATION = 100_000


def score_candidates(
    query: NormalizedQuery,
    records: list[ServerRecord],
    reference: ServerRecord | None = None,
) -> list[ScoredCandidate]:
    """Score every record, dropping hard capability/similarity exclusions."""
    scored: list[ScoredCandidate] = []
    for record in records:
        breakdown = score_record(query, record, reference)
        if breakdown is not None:
            scored.append(ScoredCandidate(record=record, score=breakdown))
    return scored


def score_record(
    query: NormalizedQuery,
    record: ServerRecord,
    reference: ServerRecord | None = None,
) -> ScoreBreakdown | None:
    """Score one record, or None when a hard exclusion rule applies."""
    normalized: dict[str, float] = {}
    reasons: list[str] = []

    if query.text_terms:
        text = record.searchable_text()
        hits = [term for term in query.text_terms if term in text]
        normalized["keyword"] = len(hits) / len(query.text_terms)
        if hits:
            reasons.append(f"matched {len(hits)}/{len(query.text_terms)} keywords")

    if capability_excluded(query, record):
        return None
    capability_ratio = capability_match(query, record)
    if capability_ratio is not None:
        normalized["capability"] = capability_ratio
        reasons.append(f"capability match {capability_ratio:.0%}")

    similarity: float | None = None
    ref = query.similarity_reference
    if ref is not None and reference is not None:
        if ref.exclude_reference and record.domain == reference.domain:
            return None
        similarity = record_similarity(reference, record)
        if similarity < ref.threshold:
            return None
        normalized["similarity"] = similarity
        reasons.append(f"similarity {similarity:.2f} to {reference.domain}")

    if query.intent_capabilities:
        names = record.capability_names()
        hits = [cap for cap in query.intent_capabilities if cap in names]
        normalized["intent"] = len(hits) / len(query.intent_capabilities)
        if hits:
            reasons.append("intent: " + ", ".join(hits[:3]))

    normalized["trust"] = record.trust_score / TRUST_SCORE_MAX
    normalized["quality"] = record.quality.score / QUALITY_SCORE_MAX
    normalized["popularity"] = popularity_signal(record)

    contributions = {
        name: round(SCORE_WEIGHTS[name] * value, 4) for name, value in normalized.items()
    }
    return ScoreBreakdown(
        total=round(sum(contributions.values()), 4),
        contributions=contributions,
        normalized={name: round(value, 4) for name, value in normalized.items()},
        similarity=similarity,
        capability_match=round(capability_ratio, 4) if capability_ratio is not None else None,
        reasons=reasons,
    )


def capability_match(query: NormalizedQuery, record: ServerRecord) -> float | None:
    """Fraction of required + preferred capabilities the record has.

    None when there is nothing to match, or under NOT where the listed
    capabilities are only used for exclusion.
    """
    requirement = query.capability_requirement
    wanted = requirement.wanted
    if not wanted or requirement.operator is CapabilityOperator.NOT:
        return None
    names = record.capability_names()
    return sum(1 for cap in wanted if cap in names) / len(wanted)


def capability_excluded(query: NormalizedQuery, record: ServerRecord) -> bool:
    """True when the capability requirement rules the record out entirely."""
    requirement = query.capability_requirement
    if requirement.is_empty:
        return False

    names = record.capability_names()
    if any(cap in names for cap in requirement.excluded):
        return True

    wanted = requirement.wanted
    if requirement.operator is CapabilityOperator.NOT:
        return any(cap in names for cap in wanted)
    if requirement.operator is CapabilityOperator.AND:
        return any(cap not in names for cap in requirement.required)

    if not wanted:
        return False
    matched = sum(1 for cap in wanted if cap in names)
    return matched == 0 or matched / len(wanted) < requirement.minimum_match


def popularity_signal(record: ServerRecord) -> float:
    """Log-scaled stars + forks in 0..1."""
    count = record.stars + record.forks
    if count <= 0:
        return 0.0
    return min(1.0, math.log10(1 + count) / math.log10(1 + _POPULARITY_SATURATION))
