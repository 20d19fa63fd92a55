"""Async GitHub API client wrapper using githubkit.

This module provides the transport adapter for the releases endpoint:
one call fetches one page, feeds the response headers to the rate limit
tracker, and maps failures onto the client exception hierarchy.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout

from github_release_stats.config import get_settings
from github_release_stats.logging import get_logger

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubResponseError,
    GitHubServerError,
    NetworkError,
    RequestTimeoutError,
)

if TYPE_CHECKING:
    from .rate_limit import RateLimitTracker

logger = get_logger(__name__)

_NEXT_LINK = re.compile(r'<[^>]+>\s*;\s*rel="?next"?')


@dataclass(frozen=True)
class ReleasePage:
    """One page of raw release records."""

    records: list[Any]
    has_next: bool
    status: int
    headers: dict[str, str] = field(default_factory=dict)
    truncated: bool = False


def has_next_page(link_header: str | None) -> bool:
    """Whether a Link header advertises a rel="next" page."""
    if not link_header:
        return False
    return any(_NEXT_LINK.search(part) for part in link_header.split(","))


def _header_dict(headers: Mapping[str, str] | None) -> dict[str, str]:
    # httpx.Headers -> plain dict with lowercase names
    if headers is None:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


class GitHubClient:
    """Async GitHub API client for release data retrieval.

    A token passed to a call overrides the default token; without either,
    requests are anonymous (60 requests/hour).

    Usage:
        async with GitHubClient(tracker=tracker) as client:
            page = await client.fetch_release_page("facebook", "react", page=1)
            for record in page.records:
                print(record["tag_name"])
    """

    def __init__(
        self,
        token: str | None = None,
        tracker: RateLimitTracker | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: Default GitHub PAT. If not provided, uses GITHUB_TOKEN from
                   settings; an empty value means anonymous access.
            tracker: Optional RateLimitTracker. When provided, headers of every
                     response (including error responses) update its state.
            timeout: Per-request timeout in seconds (defaults to settings)
        """
        settings = get_settings()
        self._token = token if token is not None else settings.github_token
        self._tracker = tracker
        self._timeout = timeout if timeout is not None else settings.queue.request_timeout_seconds
        self._clients: dict[str, GitHub[Any]] = {}

    def _github(self, token: str | None = None) -> GitHub[Any]:
        """Get or create the githubkit client instance for a token."""
        key = token or self._token or ""
        if key not in self._clients:
            self._clients[key] = GitHub(key or None, auto_retry=False, timeout=self._timeout)
        return self._clients[key]

    @property
    def tracker(self) -> RateLimitTracker | None:
        """Access the rate limit tracker (if configured)."""
        return self._tracker

    def _update_rate_limit_from_response(self, response: Any) -> None:
        """Extract rate limit headers from response and update the tracker.

        Args:
            response: A githubkit Response object with headers attribute.
        """
        if self._tracker is None:
            return
        headers = getattr(response, "headers", None)
        if headers is None:
            return
        self._tracker.update(_header_dict(headers))

    async def close(self) -> None:
        """Drop the underlying githubkit clients."""
        self._clients.clear()

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Release Methods
    # -------------------------------------------------------------------------
    async def fetch_release_page(
        self,
        owner: str,
        repo: str,
        *,
        page: int = 1,
        per_page: int = 100,
        token: str | None = None,
    ) -> ReleasePage:
        """Fetch one page of releases, newest first.

        A 422 answer means the page lies past GitHub's pagination ceiling;
        it is returned as an empty, truncated final page instead of an error.

        Args:
            owner: Repository owner (org or user)
            repo: Repository name
            page: 1-based page number
            per_page: Results per page (max 100)
            token: Optional PAT overriding the default token for this call

        Returns:
            ReleasePage with the raw records and pagination info

        Raises:
            GitHubNotFoundError: Repository absent, or private without access
            GitHubAuthenticationError: Token rejected
            GitHubForbiddenError: Access denied without quota exhaustion
            GitHubRateLimitError: Quota exhausted for this attempt
            GitHubServerError: GitHub returned 5xx
            NetworkError: Transport failure or timeout
            GitHubResponseError: Unexpected status or body
        """
        github = self._github(token)
        try:
            resp = await github.rest.repos.async_list_releases(
                owner=owner,
                repo=repo,
                per_page=per_page,
                page=page,
            )
        except RequestFailed as e:
            if e.response.status_code == 422:
                self._update_rate_limit_from_response(e.response)
                logger.info(
                    "Pagination ceiling reached for {}/{} at page {}", owner, repo, page
                )
                return ReleasePage(
                    records=[],
                    has_next=False,
                    status=422,
                    headers=_header_dict(e.response.headers),
                    truncated=True,
                )
            raise self._handle_error(e, owner, repo) from e
        except RequestTimeout as e:
            raise RequestTimeoutError(f"Request to GitHub timed out: {e}") from e
        except RequestError as e:
            raise NetworkError(f"Network error talking to GitHub: {e}") from e

        self._update_rate_limit_from_response(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise GitHubResponseError(
                f"Malformed releases response for {owner}/{repo}",
                http_status=resp.status_code,
            ) from e
        if not isinstance(data, list):
            raise GitHubResponseError(
                f"Expected a list of releases for {owner}/{repo}",
                http_status=resp.status_code,
            )

        headers = _header_dict(resp.headers)
        logger.debug(
            "Fetched {} releases for {}/{} (page={})", len(data), owner, repo, page
        )
        return ReleasePage(
            records=data,
            has_next=has_next_page(headers.get("link")),
            status=resp.status_code,
            headers=headers,
        )

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed, owner: str, repo: str) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        # Error responses carry rate limit headers too
        self._update_rate_limit_from_response(error.response)

        status = error.response.status_code
        headers = _header_dict(error.response.headers)

        if status == 401:
            return GitHubAuthenticationError(
                "Invalid or expired GitHub token", http_status=status
            )
        if status == 429 or (status == 403 and _is_rate_limited(headers, error.response)):
            return GitHubRateLimitError(
                "GitHub rate limit exceeded",
                reset_at=_reset_at(headers),
                http_status=status,
            )
        if status == 403:
            return GitHubForbiddenError(
                f"Access to {owner}/{repo} is forbidden; the token may lack the required scope",
                http_status=status,
            )
        if status == 404:
            return GitHubNotFoundError(
                f"Repository {owner}/{repo} not found. If it is private, "
                "provide a token with access to it",
                http_status=status,
            )
        if status >= 500:
            return GitHubServerError(
                f"GitHub server error ({status}); try again later", http_status=status
            )
        return GitHubResponseError(f"GitHub API error ({status}): {error}", http_status=status)


def _is_rate_limited(headers: dict[str, str], response: Any) -> bool:
    if headers.get("x-ratelimit-remaining") == "0":
        return True
    if "retry-after" in headers:
        return True
    text = getattr(response, "text", "")
    return isinstance(text, str) and "rate limit" in text.lower()


def _reset_at(headers: dict[str, str]) -> datetime | None:
    retry_after = headers.get("retry-after", "")
    if retry_after.isdigit():
        return datetime.now(UTC) + timedelta(seconds=int(retry_after))
    reset = headers.get("x-ratelimit-reset", "")
    if reset.isdigit():
        return datetime.fromtimestamp(int(reset), tz=UTC)
    return None
