"""GitHub client exceptions.

Every failure a caller can see carries a ``FailureKind`` plus hints that
let a UI choose between prompting for a token, reporting the repository
as absent, or suggesting a later retry.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any


class FailureKind(StrEnum):
    """Machine-readable failure categories."""

    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    QUEUE_FULL = "queue_full"
    INVALID_RESPONSE = "invalid_response"
    VALIDATION = "validation"


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    kind: FailureKind = FailureKind.INVALID_RESPONSE
    token_may_help: bool = False
    retry_later: bool = False

    def __init__(self, message: str, *, http_status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "http_status": self.http_status,
            "token_may_help": self.token_may_help,
            "retry_later": self.retry_later,
        }


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404).

    GitHub answers 404 both for repositories that do not exist and for
    private repositories requested without a suitable token.
    """

    kind = FailureKind.NOT_FOUND
    token_may_help = True


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401)."""

    kind = FailureKind.UNAUTHORIZED
    token_may_help = True


class GitHubForbiddenError(GitHubClientError):
    """Raised on 403 when the quota is not exhausted (missing scope or policy)."""

    kind = FailureKind.FORBIDDEN
    token_may_help = True


class GitHubResponseError(GitHubClientError):
    """Raised for unexpected 4xx statuses or malformed response bodies."""

    kind = FailureKind.INVALID_RESPONSE


class GitHubRetryableError(GitHubClientError):
    """Base class for errors that should be retried by the request queue.

    Subclasses of this exception propagate from the client to the queue,
    which retries them in place with exponential backoff.
    """

    retry_later = True


class GitHubRateLimitError(GitHubRetryableError):
    """Raised when a single attempt hits an exhausted quota (403/429)."""

    kind = FailureKind.RATE_LIMITED
    token_may_help = True

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        *,
        http_status: int | None = 403,
    ) -> None:
        super().__init__(message, http_status=http_status)
        self.reset_at = reset_at

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reset_at"] = self.reset_at.isoformat() if self.reset_at else None
        return data


class GitHubServerError(GitHubRetryableError):
    """Raised on 5xx responses."""

    kind = FailureKind.SERVER_ERROR


class NetworkError(GitHubRetryableError):
    """Raised when the transport fails without a structured response."""

    kind = FailureKind.NETWORK


class RequestTimeoutError(NetworkError):
    """Raised when a single network call exceeds its timeout."""


class RateLimitExceededError(GitHubClientError):
    """Raised once retries are exhausted on rate-limit failures."""

    kind = FailureKind.RATE_LIMIT_EXCEEDED
    token_may_help = True
    retry_later = True

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        *,
        retries: int = 0,
    ) -> None:
        super().__init__(message, http_status=403)
        self.reset_at = reset_at
        self.retries = retries

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reset_at"] = self.reset_at.isoformat() if self.reset_at else None
        data["retries"] = self.retries
        return data


class QueueFullError(GitHubClientError):
    """Raised when the request queue rejects new work."""

    kind = FailureKind.QUEUE_FULL
    retry_later = True

    def __init__(self, message: str, *, max_size: int) -> None:
        super().__init__(message)
        self.max_size = max_size


class ReleaseValidationError(GitHubClientError):
    """Raised for one malformed release record.

    The orchestrator catches this per record, logs it, and drops the
    record; it never reaches callers of a fetch.
    """

    kind = FailureKind.VALIDATION

    def __init__(self, message: str, *, index: int, record_id: Any = None) -> None:
        super().__init__(message)
        self.index = index
        self.record_id = record_id
