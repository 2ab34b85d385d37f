"""
Pydantic configuration models for PromoWatch.

These models provide type-safe configuration with validation for:
- Text normalization and noise pattern tables
- Similarity thresholds and materiality rules
- Monitored targets
- Fetching, storage, notification, and logging settings
"""

from __future__ import annotations

import ipaddress
import re
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator


PROMOTION_FIELDS: tuple[str, ...] = ("title", "perk", "dates", "price")


# =============================================================================
# Default Pattern Tables
# =============================================================================

# Timestamp-like fragments that change between scrapes without changing the offer
DEFAULT_TIMESTAMP_PATTERNS: list[str] = [
    r"\(\s*(?:last\s+)?(?:updated|modified|posted|refreshed|as\s+of)\b[^)]*\)",
    r"\b(?:last\s+)?(?:updated|modified|posted|refreshed)\s*(?:on|at)?\s*:?\s*"
    r"\d{1,2}/\d{1,2}/\d{2,4}(?:,?\s+\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM)?)?",
    r"\b(?:last\s+)?(?:updated|modified|posted|refreshed)\s*(?:on|at)?\s*:?\s*"
    r"\d{4}-\d{2}-\d{2}(?:[T\s]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?",
    r"\b\d{4}-\d{2}-\d{2}[T\s]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?",
    r"\b(?:updated\s+|posted\s+)?\d+\s+(?:second|minute|hour|day)s?\s+ago\b",
    r"\bas\s+of\s+\d{1,2}:\d{2}(?::\d{2})?\s*(?:AM|PM)?(?:\s+[A-Z]{2,4})?",
]

# Tracking parameters, session tokens, and counters
DEFAULT_TRACKING_PATTERNS: list[str] = [
    r"\butm_[a-z]+=\S*",
    r"\b(?:fbclid|gclid|_ga|_gid|sessionid|session_id|jsessionid|phpsessid)=\S*",
    r"\bref:\S+",
    r"\b(?:trk|tracking(?:_id)?)[:=]\S+",
    r"\b(?:sid|sess|tok|token|trk|cid|clk)[-_]?(?=[A-Z0-9]*\d)[A-Z0-9]{10,}\b",
    r"\b\d[\d,]*\s*(?:views?|clicks?)\b",
]

# Promotional filler: urgency, calls to action, disclaimers, social proof
DEFAULT_FILLER_PATTERNS: list[str] = [
    r"\b(?:limited time(?: only)?|act now|hurry|expires soon|while supplies last)\b",
    r"\b(?:call now|book today|book now|reserve now|don't wait|don’t wait)\b",
    r"\*+[^*]*\*+",
    r"\([^)]*\bterms\b[^)]*\)",
    r"\([^)]*\bconditions\b[^)]*\)",
    r"\([^)]*\brestrictions\b[^)]*\)",
    r"\b\d[\d,]*\s*(?:people|customers|travelers|travellers)\s+(?:booked|viewed|saved)"
    r"(?:\s+(?:this|today|recently))?\b",
    r"\b(?:trending|popular|bestseller|best seller|top rated)\b",
]

# Placeholder content that is never a real promotion
DEFAULT_NOISE_PATTERNS: list[str] = [
    r"\bloading\b",
    r"\bplease wait\b",
    r"\b404\s+(?:error|page|not found)\b|\berror\s+404\b",
    r"\bnot found\b",
    r"\berror\s+(?:has\s+)?occurred\b",
    r"\bsomething went wrong\b",
    r"\bjavascript\b",
    r"\bcookie\s+(?:notice|policy|settings|consent|preferences)\b",
    r"\buses cookies\b",
    r"\baccess denied\b",
    r"\bunder maintenance\b",
    r"\btemporarily unavailable\b",
]


def _validate_patterns(patterns: list[str]) -> list[str]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern {pattern!r}: {e}") from e
    return patterns


# =============================================================================
# Detection Configuration
# =============================================================================


class NormalizationConfig(BaseModel):
    """Pattern tables used by the text normalizer."""

    timestamp_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TIMESTAMP_PATTERNS),
        description="Timestamp-like fragments removed by normalize()",
    )
    tracking_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRACKING_PATTERNS),
        description="Tracking tokens and counters removed by normalize()",
    )
    filler_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILLER_PATTERNS),
        description="Promotional filler removed by filter_noise()",
    )

    @field_validator("timestamp_patterns", "tracking_patterns", "filler_patterns")
    @classmethod
    def patterns_compile(cls, v: list[str]) -> list[str]:
        return _validate_patterns(v)


class SimilarityConfig(BaseModel):
    """Thresholds for the field similarity comparators."""

    text_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Minimum edit-distance ratio for two texts to count as the same",
    )
    price_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        description="Maximum relative price difference treated as rounding",
    )
    date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="Maximum day difference treated as date jitter",
    )


class MaterialityConfig(BaseModel):
    """Rules deciding whether a promotion is real content."""

    min_field_length: int = Field(
        default=3,
        ge=0,
        description="Title or perk must be longer than this many characters",
    )
    noise_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_NOISE_PATTERNS),
        description="Placeholder text that disqualifies a promotion",
    )

    @field_validator("noise_patterns")
    @classmethod
    def patterns_compile(cls, v: list[str]) -> list[str]:
        return _validate_patterns(v)


class DetectionConfig(BaseModel):
    """Everything the change-detection engine needs."""

    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    materiality: MaterialityConfig = Field(default_factory=MaterialityConfig)
    identity_fields: list[str] = Field(
        default_factory=lambda: ["title"],
        description="Fields hashed into a promotion id during extraction",
    )

    @field_validator("identity_fields")
    @classmethod
    def identity_fields_known(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("identity_fields must name at least one field")
        unknown = [f for f in v if f not in PROMOTION_FIELDS]
        if unknown:
            raise ValueError(f"Unknown identity fields: {', '.join(unknown)}")
        # Keep canonical order so the hash input is stable
        return [f for f in PROMOTION_FIELDS if f in v]


# =============================================================================
# Target Configuration
# =============================================================================

SELECTOR_PATTERN = re.compile(r"^[.#]?[\w\-\s,.:>\[\]=\"'()*]+$")
DANGEROUS_SELECTOR_PATTERNS = (
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"expression\(", re.IGNORECASE),
    re.compile(r"url\(", re.IGNORECASE),
    re.compile(r"@import", re.IGNORECASE),
    re.compile(r"behavior:", re.IGNORECASE),
)
BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}
BLOCKED_HOST_SUFFIXES = (".internal", ".local", ".localhost")


def is_safe_target_url(url: str, allowed_domains: list[str] | None = None) -> bool:
    """Check that a target URL is https, public, and within the allow list."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme != "https" or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_HOST_SUFFIXES):
        return False

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        address = None
    if address is not None and (
        address.is_private or address.is_loopback or address.is_link_local or address.is_reserved
    ):
        return False

    if allowed_domains:
        return any(
            hostname == domain or hostname.endswith(f".{domain}")
            for domain in (d.lower() for d in allowed_domains)
        )
    return True


def is_safe_selector(selector: str) -> bool:
    """Check a CSS selector against a conservative character set."""
    if not selector or len(selector) > 200:
        return False
    if not SELECTOR_PATTERN.match(selector):
        return False
    return not any(p.search(selector) for p in DANGEROUS_SELECTOR_PATTERNS)


class TargetConfig(BaseModel):
    """A monitored page and the selector for its promotion containers."""

    url: str = Field(..., description="Page to monitor (https only)")
    selector: str = Field(..., description="CSS selector for promotion containers")
    name: str | None = Field(default=None, description="Human-readable name")
    notes: str | None = Field(default=None, description="Free-form notes")
    enabled: bool = Field(default=True, description="Whether to process this target")

    @field_validator("url")
    @classmethod
    def url_is_safe(cls, v: str) -> str:
        v = v.strip()
        if not is_safe_target_url(v):
            raise ValueError("url must be a public https URL")
        return v

    @field_validator("selector")
    @classmethod
    def selector_is_safe(cls, v: str) -> str:
        v = v.strip()
        if not is_safe_selector(v):
            raise ValueError("selector contains unsupported characters")
        return v

    @field_validator("name")
    @classmethod
    def name_is_plain(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not 0 < len(v) <= 100:
            raise ValueError("name must be 1-100 characters")
        if re.search(r"<[^>]+>", v) or re.search(r"javascript:", v, re.IGNORECASE):
            raise ValueError("name must not contain markup")
        return v

    @field_validator("notes")
    @classmethod
    def notes_are_plain(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if len(v) > 500:
            raise ValueError("notes must be at most 500 characters")
        if re.search(r"<script[^>]*>", v, re.IGNORECASE) or re.search(r"javascript:", v, re.IGNORECASE):
            raise ValueError("notes must not contain scripts")
        return v

    @property
    def display_name(self) -> str:
        return self.name or self.url


# =============================================================================
# Collaborator Configuration
# =============================================================================


class FetchConfig(BaseModel):
    """HTTP fetch settings."""

    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    max_retries: int = Field(default=3, ge=1, le=10)
    retry_backoff: float = Field(default=2.0, ge=0.0)
    max_concurrency: int = Field(default=10, ge=1, le=100)
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; PromoWatch/0.1; +https://github.com/promowatch)",
    )


class StorageConfig(BaseModel):
    """State and history storage settings."""

    url: str = Field(
        default="sqlite:///data/promowatch.db",
        description="SQLAlchemy database URL",
    )
    history_keep: int = Field(
        default=5,
        ge=1,
        description="Historical snapshots kept per target",
    )
    echo: bool = Field(default=False, description="Log SQL statements")


class NotificationConfig(BaseModel):
    """Slack notification settings."""

    slack_webhook: str | None = Field(default=None, description="Incoming webhook URL")
    max_items_per_section: int = Field(default=3, ge=1, le=20)
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    default_target_name: str = Field(default="Travel Deal")


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO")
    file: Path | None = Field(default=Path("logs/promowatch.log"))
    json_format: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def level_known(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


# =============================================================================
# Root Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from promowatch.yaml.
    """

    data_dir: Path = Field(default=Path("data"), description="Data storage directory")

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    allowed_domains: list[str] = Field(
        default_factory=list,
        description="Restrict targets to these domains (empty allows any public host)",
    )
    targets: list[TargetConfig] = Field(
        default_factory=list,
        description="Targets seeded into storage on 'targets sync'",
    )

    @model_validator(mode="after")
    def targets_within_allowed_domains(self) -> "AppConfig":
        if self.allowed_domains:
            for target in self.targets:
                if not is_safe_target_url(target.url, self.allowed_domains):
                    raise ValueError(f"Target {target.url} is outside allowed_domains")
        return self

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
