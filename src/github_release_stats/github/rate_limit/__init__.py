"""Rate limit tracking for GitHub API.

This module tracks quota state from response headers so the request
queue can hold back before the limit is hit.
"""

from .schemas import (
    RateLimitEvent,
    RateLimitEventType,
    RateLimitSeverity,
    RateLimitState,
    RateLimitStatus,
)
from .tracker import RateLimitListener, RateLimitTracker

__all__ = [
    "RateLimitEvent",
    "RateLimitEventType",
    "RateLimitListener",
    "RateLimitSeverity",
    "RateLimitState",
    "RateLimitStatus",
    "RateLimitTracker",
]
