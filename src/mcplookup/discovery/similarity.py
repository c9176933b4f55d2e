"""Symmetric similarity between two server records."""

from __future__ import annotations

from mcplookup.models import ServerRecord

SIMILARITY_WEIGHTS: dict[str, float] = {
    "category": 0.2,
    "capabilities": 0.5,
    "tags": 0.3,
}


def jaccard(left: frozenset[str], right: frozenset[str]) -> float:
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def record_similarity(left: ServerRecord, right: ServerRecord) -> float:
    """Weighted similarity in 0..1 over category, capabilities and tags.

    A set dimension that is empty on both records carries no information
    and is left out of the weighting instead of counting as a mismatch.
    """
    parts: list[tuple[float, float]] = [
        (SIMILARITY_WEIGHTS["category"], 1.0 if left.category == right.category else 0.0)
    ]

    left_caps, right_caps = left.capability_set(), right.capability_set()
    if left_caps or right_caps:
        parts.append((SIMILARITY_WEIGHTS["capabilities"], jaccard(left_caps, right_caps)))

    left_tags, right_tags = left.tag_set(), right.tag_set()
    if left_tags or right_tags:
        parts.append((SIMILARITY_WEIGHTS["tags"], jaccard(left_tags, right_tags)))

    total_weight = sum(weight for weight, _ in parts)
    value = sum(weight * score for weight, score in parts) / total_weight
    return round(value, 4)
