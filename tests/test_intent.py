"""Tests for rule-based intent analysis (discovery/intent.py)."""

from __future__ import annotations

from mcplookup.discovery.intent import (
    IntentAnalysis,
    analyze_intent,
    extract_similar_to,
    normalize_text,
    related_intents,
)
from mcplookup.models import AuthType


class TestNormalizeText:
    def test_lowercases_and_squeezes(self):
        assert normalize_text("  Send   EMAIL!! ") == "send email"

    def test_keeps_dots_and_dashes(self):
        assert normalize_text("like mail.example-corp.org?") == "like mail.example-corp.org"


class TestCapabilities:
    def test_topical_email_capabilities(self):
        analysis = analyze_intent("I want to send an email to my customers")
        assert "email_send" in analysis.capabilities
        assert "email_read" in analysis.capabilities

    def test_several_families_merge_without_duplicates(self):
        caps = analyze_intent("share files with my team").capabilities
        assert "file_share" in caps
        assert "team_collaboration" in caps
        assert len(caps) == len(set(caps))

    def test_phrase_table_fallback_adds_aliases(self):
        caps = analyze_intent("process payment").capabilities
        assert caps[:3] == ["payment_processing", "billing", "checkout"]

    def test_keyword_fallback(self):
        assert analyze_intent("ai").capabilities == ["llm", "completion"]

    def test_no_match(self):
        assert analyze_intent("zzz qqq").capabilities == []

    def test_empty_text(self):
        assert analyze_intent("   ") == IntentAnalysis()


class TestSimilarTo:
    def test_known_service_gets_dot_com(self):
        assert extract_similar_to("alternatives to Slack") == "slack.com"

    def test_explicit_domain_kept(self):
        assert extract_similar_to("something like mail.example.org") == "mail.example.org"

    def test_instead_of_and_similar_to(self):
        assert extract_similar_to("instead of github please") == "github.com"
        assert extract_similar_to("similar to notion") == "notion.com"

    def test_unknown_bare_word_ignored(self):
        assert extract_similar_to("I would like to send mail") is None

    def test_later_match_used_when_first_unqualified(self):
        assert extract_similar_to("like to find something like gmail") == "gmail.com"

    def test_analysis_carries_reference(self):
        assert analyze_intent("a tool like outlook").similar_to == "outlook.com"


class TestConstraintHints:
    def test_performance_hints(self):
        analysis = analyze_intent("faster and more reliable secure storage")
        assert analysis.max_response_time == 100.0
        assert analysis.min_uptime == 99.0
        assert analysis.min_trust_score == 80.0

    def test_no_hints(self):
        analysis = analyze_intent("calendar")
        assert analysis.max_response_time is None
        assert analysis.min_uptime is None
        assert analysis.min_trust_score is None
        assert analysis.auth_types == []

    def test_oauth_and_sso(self):
        assert analyze_intent("login with SSO").auth_types == [AuthType.OAUTH2]
        assert analyze_intent("supports oauth2").auth_types == [AuthType.OAUTH2]


class TestRelatedIntents:
    def test_exact_phrase_suggestion_first(self):
        suggestions = related_intents("send email")
        assert suggestions[0] == "Send an email"

    def test_suggestions_are_unique_and_bounded(self):
        suggestions = related_intents("create file data database")
        assert len(suggestions) == len(set(suggestions))
        assert len(suggestions) <= 5

    def test_empty_text(self):
        assert related_intents("") == []
