"""Pydantic schemas for GitHub API rate limit data.

These schemas represent rate limit information from the
x-ratelimit-* response headers and the events derived from it.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field

HEADER_LIMIT = "x-ratelimit-limit"
HEADER_REMAINING = "x-ratelimit-remaining"
HEADER_RESET = "x-ratelimit-reset"
HEADER_USED = "x-ratelimit-used"


class RateLimitSeverity(StrEnum):
    """Rate limit health derived from the remaining request count."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class RateLimitEventType(StrEnum):
    """Kinds of rate limit events delivered to listeners."""

    WARNING = "warning"
    CRITICAL = "critical"
    RESET = "reset"
    RETRY = "retry"
    QUEUE_FULL = "queue_full"


class RateLimitState(BaseModel):
    """Quota state reported by a single GitHub response."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(ge=0, description="Maximum requests allowed per window")
    remaining: int = Field(ge=0, description="Requests remaining in current window")
    reset_at: datetime = Field(description="UTC datetime when the window resets")
    used: int | None = Field(default=None, ge=0, description="Requests used in window")

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Self | None:
        """Parse from HTTP response headers.

        Header names are matched case-insensitively. Returns None unless
        limit, remaining and reset are all present and numeric; ``used``
        is optional.

        Args:
            headers: HTTP response headers

        Returns:
            RateLimitState, or None if the headers carry no usable quota
        """
        lowered = {str(k).lower(): str(v).strip() for k, v in headers.items()}
        try:
            limit = int(lowered[HEADER_LIMIT])
            remaining = int(lowered[HEADER_REMAINING])
            reset_ts = int(lowered[HEADER_RESET])
        except (KeyError, ValueError):
            return None
        if limit < 0 or remaining < 0:
            return None

        used: int | None
        try:
            used = int(lowered[HEADER_USED])
        except (KeyError, ValueError):
            used = None
        if used is not None and used < 0:
            used = None

        return cls(
            limit=limit,
            remaining=remaining,
            reset_at=datetime.fromtimestamp(reset_ts, tz=UTC),
            used=used,
        )


class RateLimitStatus(BaseModel):
    """Point-in-time summary of the tracker for display."""

    severity: RateLimitSeverity = RateLimitSeverity.NORMAL
    remaining: int | None = Field(default=None, description="None until a response is seen")
    limit: int | None = None
    reset_at: datetime | None = None
    retry_count: int = Field(default=0, ge=0, description="Retries since the last reset")
    recommendations: tuple[str, ...] = Field(
        default=(), description="Suggested next steps for the current quota"
    )

    @property
    def message(self) -> str:
        """Human-readable one-line summary."""
        if self.remaining is None:
            return "No rate limit information available"
        if self.severity is RateLimitSeverity.CRITICAL:
            return f"Critical: Only {self.remaining} requests left"
        if self.severity is RateLimitSeverity.WARNING:
            return f"Warning: {self.remaining} requests remaining"
        return f"{self.remaining} requests remaining"


class RateLimitEvent(BaseModel):
    """A notification emitted by the tracker or the request queue."""

    model_config = ConfigDict(frozen=True)

    type: RateLimitEventType
    message: str
    timestamp: datetime
    remaining: int | None = None
    reset_at: datetime | None = None
    details: dict[str, Any] = Field(default_factory=dict)
