"""Discovery pipeline: normalize, select, score, filter, rank, assemble."""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field

from mcplookup.catalog.base import SERVERS_COLLECTION, CatalogStorePort, QueryOptions
from mcplookup.catalog.parsing import parse_record
from mcplookup.discovery.assembler import build_response, build_suggestions, error_response
from mcplookup.discovery.filters import active_rules, apply_policy
from mcplookup.discovery.normalizer import normalize_query
from mcplookup.discovery.ranker import find_similar, rank_candidates
from mcplookup.discovery.scorer import score_candidates
from mcplookup.discovery.selector import select_candidates
from mcplookup.errors import (
    CatalogUnavailableError,
    InvalidQueryError,
    McpLookupError,
    RecordError,
)
from mcplookup.models import NormalizedQuery, RankedPage, ServerRecord
from mcplookup.settings import DiscoverySettings

logger = logging.getLogger(__name__)


class _StageTimer:
    """Collects wall-clock milliseconds per pipeline stage."""

    def __init__(self) -> None:
        self._started = time.perf_counter()
        self._mark = self._started
        self.timings: dict[str, float] = {}

    def lap(self, stage: str) -> None:
        now = time.perf_counter()
        self.timings[stage] = round((now - self._mark) * 1000, 3)
        self._mark = now

    def finish(self) -> dict[str, float]:
        self.timings["total"] = round((time.perf_counter() - self._started) * 1000, 3)
        return self.timings


@dataclass
class DiscoveryEngine:
    """Runs discovery requests against one catalog.

    Stateless between calls: every ``discover`` reads the catalog afresh
    and builds its own query, scores and response.
    """

    catalog: CatalogStorePort
    settings: DiscoverySettings = field(default_factory=DiscoverySettings)

    async def discover(self, request: object) -> dict[str, object]:
        """Run one discovery request; never raises.

        Returns the response dict, or an ``{error, message, timestamp}``
        object when the request is invalid or the catalog cannot be read.
        """
        try:
            return await self.run(request)
        except InvalidQueryError as exc:
            return error_response("InvalidQuery", str(exc), field=exc.field)
        except CatalogUnavailableError as exc:
            logger.warning("Catalog unavailable during discovery: %s", exc)
            return error_response("CatalogUnavailable", str(exc))
        except McpLookupError as exc:
            return error_response("DiscoveryFailed", str(exc))
        except Exception as exc:
            logger.exception("Unexpected error during discovery")
            return error_response("DiscoveryFailed", f"Internal error: {type(exc).__name__}")

    async def run(self, request: object) -> dict[str, object]:
        """Like ``discover`` but lets McpLookupError subclasses propagate."""
        timer = _StageTimer()
        query = normalize_query(request)
        timer.lap("normalize")

        selection = await select_candidates(self.catalog, query, self.settings.max_scan_records)
        timer.lap("select")

        scored = score_candidates(query, selection.candidates, selection.reference)
        timer.lap("score")

        survivors, rejections = apply_policy(query, scored)
        timer.lap("filter")

        page = rank_candidates(query, survivors, rejections, self.settings.max_alternatives)
        if query.include_similar and page.results:
            page = await self._attach_similar(query, page)
        timer.lap("rank")

        suggestions: list[str] = []
        if not page.results:
            suggestions = build_suggestions(query, rejections, selection.reference_missing)

        filters_applied = [*selection.filters_applied, *active_rules(query)]
        logger.debug(
            "Discovery returned %d of %d results (%d candidates, %d rejected)",
            len(page.results),
            page.total,
            len(selection.candidates),
            len(rejections),
        )
        return build_response(
            query,
            page,
            filters_applied=filters_applied,
            candidate_count=len(selection.candidates),
            timing_ms=timer.finish(),
            suggestions=suggestions,
        )

    async def get_server(self, domain: str) -> ServerRecord | None:
        """Direct lookup by domain; None when absent.

        Raises:
            RecordError: The stored entry cannot be parsed.
            CatalogUnavailableError: The catalog cannot be read.
        """
        raw = await self.catalog.get(SERVERS_COLLECTION, domain.strip().lower())
        if raw is None:
            return None
        return parse_record(raw, domain)

    async def _attach_similar(self, query: NormalizedQuery, page: RankedPage) -> RankedPage:
        anchor = page.results[0].record
        rows = await self.catalog.query(
            SERVERS_COLLECTION, QueryOptions(filters={"category": anchor.category.value})
        )
        pool: list[ServerRecord] = []
        for row in rows:
            try:
                pool.append(parse_record(row))
            except RecordError as exc:
                logger.warning("Skipping catalog record: %s", exc)

        exclude = {c.record.domain for c in page.results} | set(query.excluded_domains)
        similar = find_similar(query, anchor, pool, exclude, self.settings.max_similar)
        return dataclasses.replace(page, similar=similar)
