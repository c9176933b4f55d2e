"""Tests for policy rules (discovery/filters.py)."""

from __future__ import annotations

import pytest

from mcplookup.catalog.parsing import parse_record
from mcplookup.discovery.filters import (
    active_rules,
    allowed_statuses,
    apply_policy,
    policy_violations,
)
from mcplookup.discovery.normalizer import normalize_query
from mcplookup.models import (
    LIVE_STATUSES,
    AuthType,
    Availability,
    AvailabilityFilter,
    AvailabilityStatus,
    HealthMetrics,
    HealthStatus,
    OfficialStatus,
    ScoreBreakdown,
    ScoredCandidate,
    ServerRecord,
    ServerType,
    ServerTypeInfo,
    Transport,
    VerificationStatus,
)


def _make_record(domain: str = "a.com", **kwargs) -> ServerRecord:
    defaults: dict = {
        "verification_status": VerificationStatus.VERIFIED,
        "health": HealthMetrics(
            status=HealthStatus.HEALTHY, uptime_percentage=99.9, avg_response_time_ms=80
        ),
        "trust_score": 90,
        "transport": Transport.STREAMABLE_HTTP,
        "auth_type": AuthType.OAUTH2,
        "server_type": ServerTypeInfo(
            type=ServerType.OFFICIAL, official_status=OfficialStatus.VERIFIED
        ),
    }
    defaults.update(kwargs)
    return ServerRecord(domain=domain, **defaults)


def _violations(request: dict, **kwargs) -> list[str]:
    return policy_violations(normalize_query(request), _make_record(**kwargs))


class TestPerformance:
    def test_default_query_has_no_performance_rules(self):
        unverified = VerificationStatus.UNVERIFIED
        assert _violations({}, verification_status=unverified, health=None) == []

    def test_verified_and_healthy(self):
        violations = _violations(
            {"performance": {}},
            verification_status=VerificationStatus.PENDING,
            health=HealthMetrics(status=HealthStatus.DEGRADED),
        )
        assert violations == ["verified_only", "healthy_only"]

    def test_missing_health_fails_active_bounds(self):
        request = {
            "performance": {"healthy_only": False, "min_uptime": 90, "max_response_time": 500}
        }
        assert _violations(request, health=None) == ["min_uptime", "max_response_time"]

    def test_bounds(self):
        request = {"performance": {"min_trust_score": 95, "max_response_time": 50}}
        assert _violations(request) == ["min_trust_score", "max_response_time"]


class TestAvailability:
    def test_default_is_live_only(self):
        assert allowed_statuses(AvailabilityFilter()) == LIVE_STATUSES

    def test_all_flags_off_falls_back_to_live(self):
        assert allowed_statuses(AvailabilityFilter(include_live=False)) == LIVE_STATUSES

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (AvailabilityStatus.LIVE, []),
            (AvailabilityStatus.BOTH, []),
            (AvailabilityStatus.PACKAGE_ONLY, ["availability"]),
            (AvailabilityStatus.DEPRECATED, ["availability"]),
            (AvailabilityStatus.UNKNOWN, ["availability"]),
        ],
    )
    def test_default_statuses(self, status: AvailabilityStatus, expected: list[str]):
        assert _violations({}, availability=Availability(status=status)) == expected

    def test_package_only_opt_in(self):
        request = {"availability_filter": {"include_package_only": True}}
        package = Availability(status=AvailabilityStatus.PACKAGE_ONLY)
        assert _violations(request, availability=package) == []

    def test_live_servers_only_rejects_packages_only(self):
        request = {"availability_filter": {"live_servers_only": True}}
        assert _violations(
            request, availability=Availability(status=AvailabilityStatus.PACKAGE_ONLY)
        ) == ["live_servers_only"]
        assert _violations(
            request, availability=Availability(status=AvailabilityStatus.DEPRECATED)
        ) == []


class TestServerType:
    def test_official_only(self):
        github = ServerTypeInfo(type=ServerType.GITHUB, official_status=OfficialStatus.VERIFIED)
        request = {"server_type_filter": {"official_only": True}}
        assert _violations(request, server_type=github) == ["official_only"]

    def test_exclude_github(self):
        github = ServerTypeInfo(type=ServerType.GITHUB, official_status=OfficialStatus.VERIFIED)
        request = {"server_type_filter": {"include_github": False}}
        assert _violations(request, server_type=github) == ["server_type"]

    def test_minimum_official_status_ladder(self):
        request = {"server_type_filter": {"minimum_official_status": "enterprise"}}
        assert _violations(request) == ["minimum_official_status"]
        enterprise = ServerTypeInfo(
            type=ServerType.OFFICIAL, official_status=OfficialStatus.ENTERPRISE
        )
        assert _violations(request, server_type=enterprise) == []

    def test_verification_requirements(self):
        request = {
            "server_type_filter": {
                "require_domain_verification": True,
                "require_github_verification": True,
            }
        }
        assert _violations(request) == [
            "require_domain_verification",
            "require_github_verification",
        ]


class TestTechnical:
    def test_transport_auth_and_cors(self):
        request = {
            "technical": {"transport": "stdio", "auth_types": ["api_key"], "cors_support": True}
        }
        assert _violations(request) == ["transport", "auth_types", "cors_support"]

    def test_matching_technical_filter(self):
        request = {"technical": {"transport": "streamable_http", "auth_types": ["oauth2", "none"]}}
        assert _violations(request) == []


class TestApplyPolicy:
    def test_partitions_and_explains(self):
        good = _make_record("good.com")
        bad = _make_record("bad.com", availability=Availability(status=AvailabilityStatus.OFFLINE))
        candidates = [
            ScoredCandidate(record=r, score=ScoreBreakdown(total=1.0)) for r in (good, bad)
        ]
        kept, rejected = apply_policy(normalize_query({}), candidates)
        assert [c.record.domain for c in kept] == ["good.com"]
        assert [r.candidate.record.domain for r in rejected] == ["bad.com"]
        assert rejected[0].violations == ["availability"]

    def test_every_survivor_satisfies_every_rule(self, catalog_entries: list[dict]):
        records = [parse_record(entry) for entry in catalog_entries]
        query = normalize_query(
            {
                "performance": {"min_trust_score": 80},
                "server_type_filter": {"minimum_official_status": "verified"},
            }
        )
        candidates = [ScoredCandidate(record=r, score=ScoreBreakdown(total=0.0)) for r in records]
        kept, rejected = apply_policy(query, candidates)

        assert all(policy_violations(query, c.record) == [] for c in kept)
        assert len(kept) + len(rejected) == len(records)
        assert sorted(c.record.domain for c in kept) == ["github.com", "gmail.com", "outlook.com"]


class TestActiveRules:
    def test_default_rules(self):
        assert active_rules(normalize_query({})) == ["availability:both,live,live_service"]

    def test_rule_descriptions(self):
        rules = active_rules(
            normalize_query(
                {
                    "performance": {"min_uptime": 99.5},
                    "availability_filter": {"live_servers_only": True},
                    "server_type_filter": {"github_only": True},
                    "technical": {"transport": "sse"},
                }
            )
        )
        assert rules == [
            "verified_only",
            "healthy_only",
            "min_uptime:99.5",
            "live_servers_only",
            "github_only",
            "transport:sse",
        ]
