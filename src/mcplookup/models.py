"""Domain models for mcplookup. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum

# ─── Enumerations ─────────────────────────────────────────────


class Category(StrEnum):
    COMMUNICATION = "communication"
    PRODUCTIVITY = "productivity"
    DATA = "data"
    DEVELOPMENT = "development"
    CONTENT = "content"
    INTEGRATION = "integration"
    ANALYTICS = "analytics"
    SECURITY = "security"
    FINANCE = "finance"
    ECOMMERCE = "ecommerce"
    SOCIAL = "social"
    STORAGE = "storage"
    OTHER = "other"


class Transport(StrEnum):
    STDIO = "stdio"
    HTTP = "http"
    STREAMABLE_HTTP = "streamable_http"
    WEBSOCKET = "websocket"
    SSE = "sse"
    UNKNOWN = "unknown"


class AuthType(StrEnum):
    NONE = "none"
    API_KEY = "api_key"
    OAUTH2 = "oauth2"
    BASIC = "basic"
    CUSTOM = "custom"
    UNKNOWN = "unknown"


class VerificationStatus(StrEnum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PENDING = "pending"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class AvailabilityStatus(StrEnum):
    LIVE = "live"
    LIVE_SERVICE = "live_service"
    BOTH = "both"
    PACKAGE_ONLY = "package_only"
    DEPRECATED = "deprecated"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


# Statuses with a reachable endpoint ("both" = live endpoint + installable package)
LIVE_STATUSES: frozenset[AvailabilityStatus] = frozenset(
    {AvailabilityStatus.LIVE, AvailabilityStatus.LIVE_SERVICE, AvailabilityStatus.BOTH}
)


class ServerType(StrEnum):
    GITHUB = "github"
    OFFICIAL = "official"
    UNKNOWN = "unknown"


class OfficialStatus(StrEnum):
    UNOFFICIAL = "unofficial"
    COMMUNITY = "community"
    VERIFIED = "verified"
    ENTERPRISE = "enterprise"


OFFICIAL_STATUS_RANK: dict[OfficialStatus, int] = {
    OfficialStatus.UNOFFICIAL: 0,
    OfficialStatus.COMMUNITY: 1,
    OfficialStatus.VERIFIED: 2,
    OfficialStatus.ENTERPRISE: 3,
}


class QualityCategory(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CapabilityOperator(StrEnum):
    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class SortKey(StrEnum):
    RELEVANCE = "relevance"
    SIMILARITY = "similarity"
    PERFORMANCE = "performance"
    POPULARITY = "popularity"
    TRUST_SCORE = "trust_score"
    RESPONSE_TIME = "response_time"


# ─── Catalog Models ───────────────────────────────────────────

TRUST_SCORE_MAX = 100.0
QUALITY_SCORE_MAX = 170.0


@dataclass(frozen=True, slots=True)
class Quality:
    """Quality rating computed by the registration pipeline (0-170)."""

    score: float = 0.0
    category: QualityCategory = QualityCategory.LOW


@dataclass(frozen=True, slots=True)
class Availability:
    status: AvailabilityStatus = AvailabilityStatus.LIVE
    endpoint_verified: bool = False


@dataclass(frozen=True, slots=True)
class ServerTypeInfo:
    """GitHub-vs-official classification and the official status ladder."""

    type: ServerType = ServerType.UNKNOWN
    official_status: OfficialStatus = OfficialStatus.UNOFFICIAL
    domain_verified: bool = False
    github_verified: bool = False
    verification_badges: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class HealthMetrics:
    status: HealthStatus = HealthStatus.UNKNOWN
    uptime_percentage: float | None = None
    avg_response_time_ms: float | None = None


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """An installable distribution of a server (npm, pypi, docker...)."""

    registry_name: str
    name: str
    version: str = ""
    environment_variables: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ServerRecord:
    """A registered MCP server as stored in the catalog.

    Capability identifiers (tools, resources, prompts, tags) are stored
    lowercased so matching is case-insensitive everywhere downstream.
    """

    domain: str
    name: str = ""
    description: str = ""
    endpoint: str = ""
    category: Category = Category.OTHER
    subcategories: list[str] = field(default_factory=list)
    intent_keywords: list[str] = field(default_factory=list)
    use_cases: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    trust_score: float = 0.0
    verification_status: VerificationStatus = VerificationStatus.UNKNOWN
    quality: Quality = field(default_factory=Quality)
    availability: Availability = field(default_factory=Availability)
    server_type: ServerTypeInfo = field(default_factory=ServerTypeInfo)
    transport: Transport = Transport.UNKNOWN
    auth_type: AuthType = AuthType.UNKNOWN
    cors_enabled: bool = False
    health: HealthMetrics | None = None
    stars: int = 0
    forks: int = 0
    packages: list[PackageInfo] = field(default_factory=list)
    ai_analysis_confidence: float | None = None
    parser_version: str = ""
    created_at: str = ""
    updated_at: str = ""

    def capability_set(self) -> frozenset[str]:
        """Protocol-level capabilities: tools, resources and prompts."""
        return frozenset((*self.tools, *self.resources, *self.prompts))

    def tag_set(self) -> frozenset[str]:
        return frozenset((*self.subcategories, *self.intent_keywords))

    def capability_names(self) -> frozenset[str]:
        """Everything a capability requirement can match against."""
        return self.capability_set() | frozenset(self.subcategories)

    def searchable_text(self) -> str:
        parts = [
            self.domain,
            self.name,
            self.description,
            " ".join(self.subcategories),
            " ".join(self.intent_keywords),
            " ".join(self.use_cases),
            " ".join(sorted(self.capability_set())),
        ]
        return " ".join(p for p in parts if p).lower()

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


# ─── Query Models ─────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CapabilityRequirement:
    required: list[str] = field(default_factory=list)
    preferred: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    operator: CapabilityOperator = CapabilityOperator.AND
    minimum_match: float = 0.5

    @property
    def wanted(self) -> list[str]:
        """Required followed by preferred, deduplicated in order."""
        return list(dict.fromkeys((*self.required, *self.preferred)))

    @property
    def is_empty(self) -> bool:
        return not (self.required or self.preferred or self.excluded)


@dataclass(frozen=True, slots=True)
class SimilarityReference:
    domain: str
    threshold: float = 0.7
    exclude_reference: bool = True


@dataclass(frozen=True, slots=True)
class PerformanceFilter:
    """Hard performance bounds. Missing record data fails any active bound."""

    min_uptime: float | None = None
    max_response_time: float | None = None
    min_trust_score: float | None = None
    verified_only: bool = False
    healthy_only: bool = False


@dataclass(frozen=True, slots=True)
class AvailabilityFilter:
    include_live: bool = True
    include_package_only: bool = False
    include_deprecated: bool = False
    include_offline: bool = False
    live_servers_only: bool = False


@dataclass(frozen=True, slots=True)
class ServerTypeFilter:
    include_github: bool = True
    include_official: bool = True
    official_only: bool = False
    github_only: bool = False
    minimum_official_status: OfficialStatus = OfficialStatus.UNOFFICIAL
    require_domain_verification: bool = False
    require_github_verification: bool = False


@dataclass(frozen=True, slots=True)
class TechnicalFilter:
    auth_types: list[AuthType] = field(default_factory=list)
    transport: Transport | None = None
    cors_support: bool | None = None


@dataclass(frozen=True, slots=True)
class NormalizedQuery:
    """Canonical, fully-defaulted form of a discovery request."""

    text_terms: list[str] = field(default_factory=list)
    domain_filter: list[str] = field(default_factory=list)
    excluded_domains: list[str] = field(default_factory=list)
    capability_requirement: CapabilityRequirement = field(default_factory=CapabilityRequirement)
    intent_capabilities: list[str] = field(default_factory=list)
    similarity_reference: SimilarityReference | None = None
    category_filter: list[Category] = field(default_factory=list)
    technical_filter: TechnicalFilter = field(default_factory=TechnicalFilter)
    performance_filter: PerformanceFilter = field(default_factory=PerformanceFilter)
    availability_filter: AvailabilityFilter = field(default_factory=AvailabilityFilter)
    server_type_filter: ServerTypeFilter = field(default_factory=ServerTypeFilter)
    limit: int = 10
    offset: int = 0
    sort_by: SortKey = SortKey.RELEVANCE
    include_alternatives: bool = True
    include_similar: bool = False

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


# ─── Pipeline Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Deterministic relevance score and how it was built."""

    total: float
    contributions: dict[str, float] = field(default_factory=dict)
    normalized: dict[str, float] = field(default_factory=dict)
    similarity: float | None = None
    capability_match: float | None = None
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    record: ServerRecord
    score: ScoreBreakdown


@dataclass(frozen=True, slots=True)
class Rejection:
    """A scored candidate eliminated by one or more policy rules."""

    candidate: ScoredCandidate
    violations: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RankedPage:
    """Output of the ranker: the requested page plus suggestion lists."""

    results: list[ScoredCandidate] = field(default_factory=list)
    total: int = 0
    alternatives: list[Rejection] = field(default_factory=list)
    similar: list[ScoredCandidate] = field(default_factory=list)
