"""Rule-based analysis of natural-language discovery queries.

Turns free text such as "alternatives to slack with oauth that are reliable"
into capability hints, a similarity reference and performance/auth hints.
No external model is involved: everything here is pattern tables.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from mcplookup.models import AuthType

_NORMALIZE_RE = re.compile(r"[^\w\s.-]")
_SPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[a-z0-9]+")

_SIMILARITY_RE = re.compile(
    r"\b(?:like|similar\s+to|alternatives?\s+to|instead\s+of)\s+([a-z0-9][\w-]*(?:\.[\w-]+)*)"
)

KNOWN_SERVICES: frozenset[str] = frozenset(
    {
        "gmail",
        "outlook",
        "slack",
        "discord",
        "teams",
        "zoom",
        "github",
        "gitlab",
        "bitbucket",
        "jira",
        "trello",
        "asana",
        "dropbox",
        "gdrive",
        "onedrive",
        "notion",
        "confluence",
        "stripe",
        "paypal",
        "shopify",
        "salesforce",
        "hubspot",
    }
)

# Capability families triggered by topical words anywhere in the query
_DOMAIN_PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"\b(?:email|mail|inbox|compose)|\bsend\b.*\bmessage"),
    "calendar": re.compile(r"\b(?:calendar|schedul|meeting|appointment|event)"),
    "files": re.compile(r"\b(?:file|document|storage|upload|download|share)"),
    "collaboration": re.compile(
        r"\b(?:collaborat|team|share|real[ -]?time)|\bwork\b.*\btogether\b"
    ),
    "communication": re.compile(r"\b(?:chat|message|messaging|talk|communicat|discuss)"),
    "development": re.compile(r"\b(?:code|coding|repo|git|deploy|develop)|\b(?:ci|cd)\b"),
    "analytics": re.compile(r"\b(?:analytic|track|metric|data|insight)"),
    "social": re.compile(r"\b(?:social|posts?|posting|tweet)\b|\bshare\b.*\bcontent"),
    "productivity": re.compile(r"\b(?:productiv|organi[sz]|manag|workflow)"),
    "security": re.compile(r"\b(?:secur|encrypt|privacy|login)|\bauth(?:entication|orization)?\b"),
}

_DOMAIN_CAPABILITIES: dict[str, tuple[str, ...]] = {
    "email": ("email_send", "email_read", "email_search"),
    "calendar": ("calendar_create", "calendar_read", "scheduling"),
    "files": ("file_read", "file_write", "file_storage", "file_share"),
    "collaboration": ("real_time_editing", "document_sharing", "team_collaboration"),
    "communication": ("messaging", "chat", "video_calls"),
    "development": ("repo_create", "ci_cd", "deployment", "code_review"),
    "analytics": ("analytics", "tracking", "metrics", "reporting"),
    "social": ("social_media", "content_posting", "social_sharing"),
    "productivity": ("task_management", "project_management", "workflow"),
    "security": ("authentication", "encryption", "access_control"),
}

# Fallback phrase table used when no topical pattern fires
_INTENT_PHRASES: dict[str, tuple[str, ...]] = {
    "email_send": ("send email", "send mail", "compose email", "write email", "mail to"),
    "email_read": ("read email", "check email", "check mail", "inbox", "view emails"),
    "calendar_create": ("create event", "schedule meeting", "book appointment", "add meeting"),
    "calendar_read": ("check calendar", "view calendar", "my schedule", "upcoming meetings"),
    "file_read": ("read file", "open file", "view file", "download file", "file content"),
    "file_write": ("write file", "save file", "create file", "upload file", "edit file"),
    "db_query": ("query database", "search database", "find data", "sql query", "data lookup"),
    "db_write": ("insert data", "update database", "save data", "store data"),
    "rest_api": ("api call", "http request", "rest call", "call api", "fetch data"),
    "repo_create": ("create repository", "new repo", "create repo", "git repository"),
    "issue_create": ("create issue", "new issue", "report bug", "bug report", "create ticket"),
    "payment_processing": ("process payment", "charge card", "payment", "billing", "checkout"),
    "social_media": ("post tweet", "social media", "linkedin post", "share content"),
    "llm": ("ai completion", "generate text", "ai chat", "language model"),
}

_CAPABILITY_ALIASES: dict[str, tuple[str, ...]] = {
    "email_send": ("email_compose", "messaging"),
    "email_read": ("email_search", "inbox_read"),
    "calendar_create": ("scheduling", "event_create"),
    "calendar_read": ("schedule_read", "event_read"),
    "file_read": ("file_download", "file_access"),
    "file_write": ("file_upload", "file_save"),
    "db_query": ("data_read", "sql_select"),
    "db_write": ("data_write", "sql_insert"),
    "rest_api": ("http_request", "web_api"),
    "repo_create": ("git_init", "project_create"),
    "issue_create": ("ticket_create", "bug_report"),
    "payment_processing": ("billing", "checkout"),
    "social_media": ("social_post", "content_share"),
    "llm": ("ai_completion", "text_generation"),
}

# Last resort: single words
_KEYWORD_CAPABILITIES: dict[str, tuple[str, ...]] = {
    "email": ("email_send", "email_read"),
    "mail": ("email_send", "email_read"),
    "message": ("email_send", "messaging"),
    "calendar": ("calendar_create", "calendar_read"),
    "schedule": ("calendar_create", "scheduling"),
    "file": ("file_read", "file_write"),
    "document": ("file_read", "file_write"),
    "database": ("db_query", "db_write"),
    "data": ("db_query", "data_analysis"),
    "api": ("rest_api", "http_request"),
    "github": ("repo_create", "issue_create"),
    "git": ("repo_create", "version_control"),
    "payment": ("payment_processing", "billing"),
    "analytics": ("analytics", "tracking"),
    "social": ("social_media", "posting"),
    "ai": ("llm", "completion"),
    "chat": ("chat", "messaging"),
}

_INTENT_SUGGESTIONS: dict[str, str] = {
    "email_send": "Send an email",
    "email_read": "Read my emails",
    "calendar_create": "Create a calendar event",
    "calendar_read": "Check my calendar",
    "file_read": "Read a file",
    "file_write": "Save a file",
    "db_query": "Query the database",
    "rest_api": "Make an API call",
    "repo_create": "Create a repository",
    "issue_create": "Create an issue",
    "payment_processing": "Process a payment",
}

_FASTER_RE = re.compile(r"\b(?:faster|speed)")
_RELIABLE_RE = re.compile(r"\b(?:reliable|reliability|uptime)")
_SECURE_RE = re.compile(r"\b(?:secure|privacy)")
_OAUTH_RE = re.compile(r"\b(?:oauth\w*|sso)\b")

HINT_MAX_RESPONSE_TIME = 100.0
HINT_MIN_UPTIME = 99.0
HINT_MIN_TRUST_SCORE = 80.0

_RELATED_INTENT_THRESHOLD = 0.3
_MAX_RELATED_INTENTS = 5


@dataclass(frozen=True, slots=True)
class IntentAnalysis:
    """What the rule tables extracted from one piece of free text."""

    capabilities: list[str] = field(default_factory=list)
    similar_to: str | None = None
    max_response_time: float | None = None
    min_uptime: float | None = None
    min_trust_score: float | None = None
    auth_types: list[AuthType] = field(default_factory=list)


def normalize_text(text: str) -> str:
    """Lowercase, replace punctuation (except dots and dashes) and squeeze spaces."""
    return _SPACE_RE.sub(" ", _NORMALIZE_RE.sub(" ", text.lower())).strip()


def analyze_intent(text: str) -> IntentAnalysis:
    """Extract capability, similarity and constraint hints from free text."""
    normalized = normalize_text(text)
    if not normalized:
        return IntentAnalysis()

    capabilities = _topical_capabilities(normalized)
    if not capabilities:
        capabilities = _phrase_capabilities(normalized)
    if not capabilities:
        capabilities = _keyword_capabilities(normalized)

    return IntentAnalysis(
        capabilities=capabilities,
        similar_to=extract_similar_to(normalized),
        max_response_time=HINT_MAX_RESPONSE_TIME if _FASTER_RE.search(normalized) else None,
        min_uptime=HINT_MIN_UPTIME if _RELIABLE_RE.search(normalized) else None,
        min_trust_score=HINT_MIN_TRUST_SCORE if _SECURE_RE.search(normalized) else None,
        auth_types=[AuthType.OAUTH2] if _OAUTH_RE.search(normalized) else [],
    )


def extract_similar_to(text: str) -> str | None:
    """Find the reference domain in "like X" / "alternatives to X" phrasing.

    X must look like a domain or be a well-known service; bare service
    names get ``.com`` appended. Returns None when nothing qualifies.
    """
    for match in _SIMILARITY_RE.finditer(normalize_text(text)):
        candidate = match.group(1).strip(".-")
        if "." in candidate:
            return candidate
        if candidate in KNOWN_SERVICES:
            return f"{candidate}.com"
    return None


def related_intents(text: str) -> list[str]:
    """Example phrasings close to ``text``, for "did you mean" suggestions."""
    words = set(_WORD_RE.findall(text.lower()))
    if not words:
        return []

    suggestions: list[str] = []
    for capability, phrases in _INTENT_PHRASES.items():
        for phrase in phrases:
            phrase_words = set(phrase.split())
            overlap = len(words & phrase_words) / len(words | phrase_words)
            if overlap >= _RELATED_INTENT_THRESHOLD:
                suggestion = _INTENT_SUGGESTIONS.get(capability, f"Use {capability}")
                if suggestion not in suggestions:
                    suggestions.append(suggestion)
                break
        if len(suggestions) >= _MAX_RELATED_INTENTS:
            break
    return suggestions


def _topical_capabilities(text: str) -> list[str]:
    found: list[str] = []
    for family, pattern in _DOMAIN_PATTERNS.items():
        if pattern.search(text):
            found.extend(_DOMAIN_CAPABILITIES[family])
    return list(dict.fromkeys(found))


def _phrase_capabilities(text: str) -> list[str]:
    found: list[str] = []
    for capability, phrases in _INTENT_PHRASES.items():
        if any(phrase in text for phrase in phrases):
            found.append(capability)
            found.extend(_CAPABILITY_ALIASES.get(capability, ()))
    return list(dict.fromkeys(found))


def _keyword_capabilities(text: str) -> list[str]:
    found: list[str] = []
    for word in _WORD_RE.findall(text):
        found.extend(_KEYWORD_CAPABILITIES.get(word, ()))
    return list(dict.fromkeys(found))
