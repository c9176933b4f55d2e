"""Candidate selection: the smallest record set the query's indexed fields allow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mcplookup.catalog.base import SERVERS_COLLECTION, CatalogStorePort, QueryOptions
from mcplookup.catalog.parsing import parse_record
from mcplookup.errors import RecordError
from mcplookup.models import (
    CapabilityOperator,
    CapabilityRequirement,
    NormalizedQuery,
    ServerRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Selection:
    """Parsed candidates plus what the selector did to find them."""

    candidates: list[ServerRecord] = field(default_factory=list)
    reference: ServerRecord | None = None
    reference_missing: bool = False
    filters_applied: list[str] = field(default_factory=list)
    fetched: int = 0
    skipped: int = 0


async def select_candidates(
    catalog: CatalogStorePort,
    query: NormalizedQuery,
    max_scan_records: int,
) -> Selection:
    """Read candidates from the catalog and apply the coarse pre-filters.

    A similarity reference that is not in the catalog yields an empty
    selection with ``reference_missing`` set, not an error.
    """
    applied: list[str] = []

    reference: ServerRecord | None = None
    if query.similarity_reference is not None:
        ref_domain = query.similarity_reference.domain
        applied.append(f"similar_to:{ref_domain}")
        reference = await _fetch_one(catalog, ref_domain)
        if reference is None:
            logger.info("Similarity reference '%s' not found in catalog", ref_domain)
            return Selection(reference_missing=True, filters_applied=applied)

    raw_entries = await _fetch_raw(catalog, query, max_scan_records, applied)

    records: dict[str, ServerRecord] = {}
    skipped = 0
    for key, raw in raw_entries:
        try:
            record = parse_record(raw, key)
        except RecordError as exc:
            logger.warning("Skipping catalog record: %s", exc)
            skipped += 1
            continue
        records.setdefault(record.domain, record)

    candidates = list(records.values())

    if query.category_filter and query.domain_filter:
        categories = set(query.category_filter)
        candidates = [r for r in candidates if r.category in categories]

    if query.excluded_domains:
        applied.append("exclude_domains")
        excluded = set(query.excluded_domains)
        candidates = [r for r in candidates if r.domain not in excluded]

    requirement = query.capability_requirement
    if not requirement.is_empty:
        applied.append(f"capabilities:{requirement.operator.value}")
        candidates = [r for r in candidates if passes_capability_prefilter(r, requirement)]

    logger.debug(
        "Selected %d candidates from %d catalog entries (%d skipped)",
        len(candidates),
        len(raw_entries),
        skipped,
    )
    return Selection(
        candidates=candidates,
        reference=reference,
        filters_applied=applied,
        fetched=len(raw_entries),
        skipped=skipped,
    )


def passes_capability_prefilter(record: ServerRecord, requirement: CapabilityRequirement) -> bool:
    """Cheap set checks that can never drop a record the scorer would keep."""
    names = record.capability_names()
    if any(cap in names for cap in requirement.excluded):
        return False

    if requirement.operator is CapabilityOperator.AND:
        return all(cap in names for cap in requirement.required)
    if requirement.operator is CapabilityOperator.OR:
        wanted = requirement.wanted
        return not wanted or any(cap in names for cap in wanted)
    return not any(cap in names for cap in requirement.wanted)


async def _fetch_one(catalog: CatalogStorePort, domain: str) -> ServerRecord | None:
    raw = await catalog.get(SERVERS_COLLECTION, domain)
    if raw is None:
        return None
    try:
        return parse_record(raw, domain)
    except RecordError as exc:
        logger.warning("Skipping catalog record: %s", exc)
        return None


async def _fetch_raw(
    catalog: CatalogStorePort,
    query: NormalizedQuery,
    max_scan_records: int,
    applied: list[str],
) -> list[tuple[str, object]]:
    if query.domain_filter:
        applied.append("domain:" + ",".join(query.domain_filter))
        entries: list[tuple[str, object]] = []
        for domain in query.domain_filter:
            raw = await catalog.get(SERVERS_COLLECTION, domain)
            if raw is not None:
                entries.append((domain, raw))
        return entries

    if query.category_filter:
        applied.append("categories:" + ",".join(c.value for c in query.category_filter))
        entries = []
        for category in query.category_filter:
            rows = await catalog.query(
                SERVERS_COLLECTION, QueryOptions(filters={"category": category.value})
            )
            entries.extend((_entry_key(row), row) for row in rows)
        return entries

    applied.append("full_scan")
    rows = await catalog.query(SERVERS_COLLECTION, QueryOptions(limit=max_scan_records))
    if len(rows) >= max_scan_records:
        logger.warning("Full catalog scan capped at %d records", max_scan_records)
    return [(_entry_key(row), row) for row in rows]


def _entry_key(row: object) -> str:
    domain = row.get("domain") if isinstance(row, dict) else None
    return domain if isinstance(domain, str) else ""
