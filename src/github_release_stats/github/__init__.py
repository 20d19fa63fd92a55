"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub API client feeding the rate limit tracker
- Rate limit tracking: RateLimitTracker, RateLimitEvent, RateLimitSeverity
- Request queueing: RequestQueue
- Release fetching: ReleaseFetchOrchestrator, ReleaseDataResult
"""

from .client import GitHubClient, ReleasePage
from .exceptions import (
    FailureKind,
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubResponseError,
    GitHubRetryableError,
    GitHubServerError,
    NetworkError,
    QueueFullError,
    RateLimitExceededError,
    ReleaseValidationError,
    RequestTimeoutError,
)
from .fetch import FetchStage, OutputFormat, ReleaseDataResult, ReleaseFetchOrchestrator
from .pacing import QueuedRequest, RequestQueue
from .rate_limit import (
    RateLimitEvent,
    RateLimitEventType,
    RateLimitSeverity,
    RateLimitState,
    RateLimitStatus,
    RateLimitTracker,
)

__all__ = [
    # Client
    "GitHubClient",
    "ReleasePage",
    # Exceptions
    "FailureKind",
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubForbiddenError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubResponseError",
    "GitHubRetryableError",
    "GitHubServerError",
    "NetworkError",
    "QueueFullError",
    "RateLimitExceededError",
    "ReleaseValidationError",
    "RequestTimeoutError",
    # Rate limit tracking
    "RateLimitEvent",
    "RateLimitEventType",
    "RateLimitSeverity",
    "RateLimitState",
    "RateLimitStatus",
    "RateLimitTracker",
    # Request queueing
    "QueuedRequest",
    "RequestQueue",
    # Release fetching
    "FetchStage",
    "OutputFormat",
    "ReleaseDataResult",
    "ReleaseFetchOrchestrator",
]
