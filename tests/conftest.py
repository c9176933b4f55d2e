"""Shared test fixtures."""

from __future__ import annotations

import pytest

from mcplookup.catalog.loader import build_catalog
from mcplookup.catalog.memory import InMemoryCatalog


def _entry(domain: str, category: str, **overrides: object) -> dict:
    entry: dict = {
        "domain": domain,
        "name": domain.split(".")[0].title(),
        "description": "",
        "capabilities": {"category": category, "subcategories": [], "intent_keywords": []},
        "tools": [],
        "trust_score": 50,
        "verification_status": "verified",
        "quality": {"score": 80},
        "availability": {"status": "live"},
        "server_type": {"type": "official", "official_status": "verified"},
        "transport": "streamable_http",
        "auth": {"type": "oauth2"},
        "health": {"status": "healthy", "uptime_percentage": 99.5, "avg_response_time_ms": 120},
    }
    entry.update(overrides)
    return entry


@pytest.fixture
def catalog_entries() -> list[dict]:
    """Small mixed catalog: two email servers, chat, dev, a package and an offline server."""
    return [
        _entry(
            "gmail.com",
            "communication",
            description="Send and read Gmail email",
            capabilities={
                "category": "communication",
                "subcategories": ["email"],
                "intent_keywords": ["email", "inbox"],
            },
            tools=["email_send", "email_read", "email_search"],
            trust_score=92,
            quality={"score": 140},
            server_type={
                "type": "official",
                "official_status": "enterprise",
                "domain_verified": True,
            },
        ),
        _entry(
            "outlook.com",
            "communication",
            description="Outlook email and calendar",
            capabilities={
                "category": "communication",
                "subcategories": ["email", "calendar"],
                "intent_keywords": ["email", "calendar"],
            },
            tools=["email_send", "email_read", "calendar_read"],
            trust_score=88,
            quality={"score": 120},
        ),
        _entry(
            "slack.com",
            "communication",
            description="Team chat messages",
            capabilities={
                "category": "communication",
                "subcategories": ["chat"],
                "intent_keywords": ["chat", "team"],
            },
            tools=["message_send", "channel_read"],
            trust_score=85,
            health={"status": "degraded", "uptime_percentage": 97.0, "avg_response_time_ms": 300},
        ),
        _entry(
            "github.com",
            "development",
            description="Repositories and issues",
            capabilities={"category": "development", "subcategories": ["git"]},
            tools=["repo_read", "issue_create", "file_read"],
            trust_score=95,
            github={"stars": 18000, "forks": 1500},
        ),
        _entry(
            "files.example.org",
            "storage",
            description="Local file access",
            capabilities={"category": "storage", "subcategories": ["files"]},
            tools=["file_read", "file_write"],
            trust_score=70,
            verification_status="unverified",
            availability={"status": "package_only"},
            server_type={"type": "github", "official_status": "community"},
            transport="stdio",
            auth={"type": "none"},
            health=None,
        ),
        _entry(
            "old-mail.example.net",
            "communication",
            description="Retired email relay",
            capabilities={"category": "communication", "subcategories": ["email"]},
            tools=["email_send"],
            trust_score=40,
            availability={"status": "offline"},
        ),
    ]


@pytest.fixture
def catalog(catalog_entries: list[dict]) -> InMemoryCatalog:
    return build_catalog(catalog_entries)
