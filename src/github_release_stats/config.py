"""Configuration settings for GitHub Release Stats."""

from functools import lru_cache
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitConfig(BaseModel):
    """Configuration for rate limit tracking.

    Thresholds are absolute counts of remaining requests, not percentages:
    a repository page costs one request regardless of the quota size.
    """

    warning_threshold: int = Field(
        default=10,
        ge=0,
        description="Remaining requests at or below which status is WARNING",
    )
    critical_threshold: int = Field(
        default=3,
        ge=0,
        description="Remaining requests at or below which status is CRITICAL",
    )

    reset_safety_margin_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Extra seconds to wait past the reported reset time",
    )

    # Behavior
    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )

    @model_validator(mode="after")
    def _check_threshold_order(self) -> Self:
        if self.critical_threshold > self.warning_threshold:
            raise ValueError("critical_threshold must not exceed warning_threshold")
        return self


class QueueConfig(BaseModel):
    """Configuration for the serialized request queue.

    Controls pacing, admission control, per-call timeout and retry backoff.
    """

    max_queue_size: int = Field(
        default=50,
        ge=1,
        le=10000,
        description="Maximum pending requests before new work is rejected",
    )
    pacing_interval_ms: int = Field(
        default=100,
        ge=0,
        description="Minimum milliseconds between dispatched requests",
    )

    # Retry policy
    max_retries: int = Field(
        default=5,
        ge=0,
        le=20,
        description="Maximum retries for a transient failure",
    )
    base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Base delay for exponential backoff",
    )
    max_delay_ms: int = Field(
        default=30000,
        ge=0,
        description="Upper bound for a single backoff delay",
    )

    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Timeout applied to each individual network call",
    )


class CacheConfig(BaseModel):
    """Configuration for the in-memory release cache."""

    ttl_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="Age after which a cached entry is treated as absent",
    )
    max_size: int = Field(
        default=100,
        ge=1,
        description="Maximum number of cached repositories",
    )
    max_releases_per_repo: int = Field(
        default=1000,
        ge=1,
        description="Maximum releases stored per cache key (newest kept)",
    )

    @classmethod
    def preset(cls, name: Literal["development", "production", "testing"]) -> "CacheConfig":
        """Build one of the named cache presets."""
        return cls.model_validate(CACHE_PRESETS[name])


CACHE_PRESETS: dict[str, dict[str, float | int]] = {
    "development": {"ttl_seconds": 60, "max_size": 50, "max_releases_per_repo": 500},
    "production": {"ttl_seconds": 300, "max_size": 100, "max_releases_per_repo": 1000},
    "testing": {"ttl_seconds": 10, "max_size": 10, "max_releases_per_repo": 100},
}


class FetchConfig(BaseModel):
    """Configuration for paginated release fetching."""

    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Releases requested per page (GitHub max is 100)",
    )
    max_results: int = Field(
        default=1000,
        ge=1,
        description="Upstream pagination ceiling; pages beyond it are not requested",
    )

    @property
    def max_pages(self) -> int:
        """Hard page limit derived from the page size."""
        return -(-self.max_results // self.per_page)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="Default GitHub personal access token (optional)",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Queueing
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit tracking configuration",
    )
    queue: QueueConfig = Field(
        default_factory=QueueConfig,
        description="Request queue configuration",
    )

    # --------------------------------------------------------------------------
    # Caching & Fetching
    # --------------------------------------------------------------------------
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Release cache configuration",
    )
    fetch: FetchConfig = Field(
        default_factory=FetchConfig,
        description="Pagination configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
