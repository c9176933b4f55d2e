"""Tests for candidate selection (discovery/selector.py)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from mcplookup.catalog.memory import InMemoryCatalog
from mcplookup.discovery.normalizer import normalize_query
from mcplookup.discovery.selector import passes_capability_prefilter, select_candidates
from mcplookup.models import CapabilityOperator, CapabilityRequirement, ServerRecord


def _domains(selection) -> list[str]:
    return sorted(r.domain for r in selection.candidates)


def _make_store(*, get=None, query=None) -> AsyncMock:
    store = AsyncMock()
    store.get.side_effect = get or (lambda collection, key: None)
    store.query.return_value = query or []
    return store


class TestIndexedPaths:
    async def test_domain_filter_uses_point_lookups(self, catalog: InMemoryCatalog):
        store = _make_store(get=catalog.get)
        selection = await select_candidates(
            store, normalize_query({"domains": ["gmail.com", "nowhere.io"]}), 100
        )
        assert _domains(selection) == ["gmail.com"]
        assert "domain:gmail.com,nowhere.io" in selection.filters_applied
        store.query.assert_not_called()

    async def test_category_filter_reads_category_index(self, catalog: InMemoryCatalog):
        selection = await select_candidates(
            catalog, normalize_query({"categories": ["development", "storage"]}), 100
        )
        assert _domains(selection) == ["files.example.org", "github.com"]
        assert "categories:development,storage" in selection.filters_applied

    async def test_domain_filter_narrowed_by_category(self, catalog: InMemoryCatalog):
        query = normalize_query(
            {"domains": ["gmail.com", "github.com"], "categories": ["development"]}
        )
        selection = await select_candidates(catalog, query, 100)
        assert _domains(selection) == ["github.com"]

    async def test_full_scan_respects_cap(self, catalog: InMemoryCatalog):
        selection = await select_candidates(catalog, normalize_query({"query": "email"}), 3)
        assert selection.fetched == 3
        assert "full_scan" in selection.filters_applied


class TestPrefilters:
    async def test_excluded_domains_removed(self, catalog: InMemoryCatalog):
        query = normalize_query(
            {"categories": ["communication"], "exclude_domains": ["slack.com"]}
        )
        selection = await select_candidates(catalog, query, 100)
        assert "slack.com" not in _domains(selection)
        assert "exclude_domains" in selection.filters_applied

    async def test_and_requirement_prefilter(self, catalog: InMemoryCatalog):
        query = normalize_query({"capabilities": {"required": ["email_send", "calendar_read"]}})
        selection = await select_candidates(catalog, query, 100)
        assert _domains(selection) == ["outlook.com"]
        assert "capabilities:AND" in selection.filters_applied


class TestReference:
    async def test_reference_loaded(self, catalog: InMemoryCatalog):
        query = normalize_query({"similar_to": {"domain": "gmail.com"}})
        selection = await select_candidates(catalog, query, 100)
        assert selection.reference is not None
        assert selection.reference.domain == "gmail.com"
        assert "similar_to:gmail.com" in selection.filters_applied

    async def test_missing_reference_returns_empty_selection(self, catalog: InMemoryCatalog):
        query = normalize_query({"similar_to": {"domain": "nonexistent.test"}})
        selection = await select_candidates(catalog, query, 100)
        assert selection.reference_missing is True
        assert selection.candidates == []


class TestRobustness:
    async def test_unparseable_rows_skipped(self, caplog: pytest.LogCaptureFixture):
        store = _make_store(query=[{"domain": "ok.com"}, "garbage", {"name": "no domain"}])
        with caplog.at_level("WARNING", logger="mcplookup.discovery.selector"):
            selection = await select_candidates(store, normalize_query({}), 100)
        assert _domains(selection) == ["ok.com"]
        assert selection.skipped == 2
        assert "Skipping catalog record" in caplog.text

    async def test_duplicate_domains_collapse(self):
        store = _make_store(query=[{"domain": "a.com", "name": "First"}, {"domain": "A.com"}])
        selection = await select_candidates(store, normalize_query({}), 100)
        assert len(selection.candidates) == 1
        assert selection.candidates[0].name == "First"

    async def test_malformed_field_isolated_to_its_record(self):
        store = _make_store(
            query=[
                {"domain": "good.com"},
                {"domain": "bad.com", "packages": [{"environment_variables": 5}]},
            ]
        )
        selection = await select_candidates(store, normalize_query({}), 100)
        assert _domains(selection) == ["bad.com", "good.com"]
        assert selection.skipped == 0

    async def test_unreadable_record_skipped_next_to_valid_one(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ):
        def _parse_packages(value: object) -> list:
            if value == "broken":
                raise TypeError("unreadable packages")
            return []

        monkeypatch.setattr("mcplookup.catalog.parsing._parse_packages", _parse_packages)
        store = _make_store(
            query=[{"domain": "good.com"}, {"domain": "bad.com", "packages": "broken"}]
        )

        with caplog.at_level("WARNING", logger="mcplookup.discovery.selector"):
            selection = await select_candidates(store, normalize_query({}), 100)

        assert _domains(selection) == ["good.com"]
        assert selection.skipped == 1
        assert "Unusable catalog record 'bad.com'" in caplog.text


class TestCapabilityPrefilter:
    @pytest.mark.parametrize(
        ("operator", "required", "preferred", "expected"),
        [
            (CapabilityOperator.AND, ["a", "b"], [], True),
            (CapabilityOperator.AND, ["a", "z"], [], False),
            (CapabilityOperator.OR, ["z"], ["b"], True),
            (CapabilityOperator.OR, ["y"], ["z"], False),
            (CapabilityOperator.NOT, ["z"], [], True),
            (CapabilityOperator.NOT, ["a"], [], False),
        ],
    )
    def test_operators(self, operator, required, preferred, expected):
        record = ServerRecord(domain="x.com", tools=["a", "b"])
        requirement = CapabilityRequirement(
            required=required, preferred=preferred, operator=operator
        )
        assert passes_capability_prefilter(record, requirement) is expected

    def test_excluded_capability_rejects(self):
        record = ServerRecord(domain="x.com", tools=["a"], subcategories=["sms"])
        assert not passes_capability_prefilter(record, CapabilityRequirement(excluded=["sms"]))
