"""Tests for GitHubClient.

Tests cover:
- Page fetch and Link-header pagination
- Per-call token override
- Error mapping (401/403/404/422/429/5xx, transport failures)
- Rate limit header extraction (success and error responses)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from githubkit.exception import RequestError, RequestFailed, RequestTimeout

from github_release_stats.github.client import GitHubClient, has_next_page
from github_release_stats.github.exceptions import (
    GitHubAuthenticationError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubResponseError,
    GitHubServerError,
    NetworkError,
    RequestTimeoutError,
)
from github_release_stats.github.rate_limit import RateLimitSeverity
from tests.conftest import RESET_AT
from tests.factories import make_error_response, make_github_release, make_list_response
from tests.fixtures.rate_limit_responses import (
    HEADERS_EXHAUSTED,
    HEADERS_HEALTHY,
    HEADERS_WARNING,
)


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def mock_github():
    """Create a mock githubkit GitHub client."""
    with patch("github_release_stats.github.client.GitHub") as mock_class:
        mock_instance = MagicMock()
        mock_class.return_value = mock_instance
        mock_instance.mock_class = mock_class
        yield mock_instance


@pytest.fixture
def client(tracker):
    return GitHubClient(token="", tracker=tracker, timeout=5.0)


def fail_with(mock_github, status_code: int, **kwargs) -> None:
    error = RequestFailed(make_error_response(status_code, **kwargs))
    mock_github.rest.repos.async_list_releases = AsyncMock(side_effect=error)


# -----------------------------------------------------------------------------
# Test: Link Header Parsing
# -----------------------------------------------------------------------------
class TestHasNextPage:
    """Tests for has_next_page."""

    def test_next_present(self):
        link = (
            '<https://api.github.com/repositories/1/releases?page=2>; rel="next", '
            '<https://api.github.com/repositories/1/releases?page=5>; rel="last"'
        )
        assert has_next_page(link) is True

    def test_last_page(self):
        link = (
            '<https://api.github.com/repositories/1/releases?page=4>; rel="prev", '
            '<https://api.github.com/repositories/1/releases?page=1>; rel="first"'
        )
        assert has_next_page(link) is False

    @pytest.mark.parametrize("link", [None, ""])
    def test_missing(self, link):
        assert has_next_page(link) is False


# -----------------------------------------------------------------------------
# Test: Fetching
# -----------------------------------------------------------------------------
class TestFetchReleasePage:
    """Tests for fetch_release_page."""

    async def test_returns_records_and_pagination(self, client, mock_github):
        records = [make_github_release(1, "v2.0.0"), make_github_release(2, "v1.0.0")]
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response(records, next_page=3)
        )

        page = await client.fetch_release_page("octo-org", "widgets", page=2, per_page=2)

        assert page.records == records
        assert page.has_next is True
        assert page.status == 200
        assert page.truncated is False
        mock_github.rest.repos.async_list_releases.assert_awaited_once_with(
            owner="octo-org", repo="widgets", per_page=2, page=2
        )

    async def test_last_page(self, client, mock_github):
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response([make_github_release()])
        )
        page = await client.fetch_release_page("octo-org", "widgets")
        assert page.has_next is False

    async def test_non_list_body(self, client, mock_github):
        response = make_list_response([])
        response.json.return_value = {"message": "unexpected"}
        mock_github.rest.repos.async_list_releases = AsyncMock(return_value=response)

        with pytest.raises(GitHubResponseError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_malformed_json(self, client, mock_github):
        response = make_list_response([])
        response.json.side_effect = ValueError("Expecting value")
        mock_github.rest.repos.async_list_releases = AsyncMock(return_value=response)

        with pytest.raises(GitHubResponseError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_token_override_uses_separate_client(self, tracker, mock_github):
        """A per-call token gets its own githubkit instance."""
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response([])
        )
        client = GitHubClient(token="default-token", tracker=tracker, timeout=5.0)

        await client.fetch_release_page("octo-org", "widgets")
        await client.fetch_release_page("octo-org", "widgets", token="override-token")
        await client.fetch_release_page("octo-org", "widgets")

        tokens = [call.args[0] for call in mock_github.mock_class.call_args_list]
        assert tokens == ["default-token", "override-token"]

    async def test_anonymous_client(self, client, mock_github):
        """No token at all means an unauthenticated githubkit client."""
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response([])
        )
        await client.fetch_release_page("octo-org", "widgets")

        mock_github.mock_class.assert_called_once_with(None, auto_retry=False, timeout=5.0)


# -----------------------------------------------------------------------------
# Test: Error Mapping
# -----------------------------------------------------------------------------
class TestErrorMapping:
    """Tests for converting githubkit failures into client exceptions."""

    async def test_not_found_suggests_token(self, client, mock_github):
        """404 is ambiguous between absent and private; a token may help."""
        fail_with(mock_github, 404)

        with pytest.raises(GitHubNotFoundError) as exc_info:
            await client.fetch_release_page("octo-org", "secret")

        assert "octo-org/secret" in str(exc_info.value)
        assert exc_info.value.token_may_help is True
        assert exc_info.value.http_status == 404

    async def test_unauthorized(self, client, mock_github):
        fail_with(mock_github, 401)
        with pytest.raises(GitHubAuthenticationError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_forbidden_with_quota_left(self, client, mock_github):
        fail_with(mock_github, 403, headers=HEADERS_HEALTHY, text="Resource not accessible")
        with pytest.raises(GitHubForbiddenError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_forbidden_with_exhausted_quota(self, client, mock_github):
        """403 with remaining=0 is a rate limit, carrying the reset time."""
        fail_with(mock_github, 403, headers=HEADERS_EXHAUSTED)

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await client.fetch_release_page("octo-org", "widgets")

        assert exc_info.value.reset_at == RESET_AT
        assert exc_info.value.retry_later is True

    async def test_forbidden_secondary_rate_limit(self, client, mock_github):
        fail_with(mock_github, 403, text="You have exceeded a secondary rate limit")
        with pytest.raises(GitHubRateLimitError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_too_many_requests_with_retry_after(self, client, mock_github):
        fail_with(mock_github, 429, headers={"retry-after": "30"})

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await client.fetch_release_page("octo-org", "widgets")

        assert exc_info.value.http_status == 429
        assert exc_info.value.reset_at is not None

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    async def test_server_error(self, client, mock_github, status_code):
        fail_with(mock_github, status_code)
        with pytest.raises(GitHubServerError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_unexpected_status(self, client, mock_github):
        fail_with(mock_github, 410)
        with pytest.raises(GitHubResponseError) as exc_info:
            await client.fetch_release_page("octo-org", "widgets")
        assert exc_info.value.http_status == 410

    async def test_pagination_ceiling_is_truncation(self, client, mock_github):
        """422 past the last reachable page ends pagination without an error."""
        fail_with(mock_github, 422, headers=HEADERS_HEALTHY)

        page = await client.fetch_release_page("octo-org", "widgets", page=11)

        assert page.truncated is True
        assert page.records == []
        assert page.has_next is False

    async def test_timeout(self, client, mock_github):
        mock_github.rest.repos.async_list_releases = AsyncMock(
            side_effect=RequestTimeout(MagicMock())
        )
        with pytest.raises(RequestTimeoutError):
            await client.fetch_release_page("octo-org", "widgets")

    async def test_transport_error(self, client, mock_github):
        mock_github.rest.repos.async_list_releases = AsyncMock(
            side_effect=RequestError(OSError("connection reset"))
        )
        with pytest.raises(NetworkError):
            await client.fetch_release_page("octo-org", "widgets")


# -----------------------------------------------------------------------------
# Test: Rate Limit Header Extraction
# -----------------------------------------------------------------------------
class TestRateLimitHeaderExtraction:
    """Tests for feeding response headers to the tracker."""

    async def test_success_updates_tracker(self, client, tracker, mock_github):
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response([], headers=HEADERS_WARNING)
        )
        await client.fetch_release_page("octo-org", "widgets")

        assert tracker.state.remaining == 8
        assert tracker.severity is RateLimitSeverity.WARNING

    async def test_error_updates_tracker(self, client, tracker, mock_github):
        """Error responses carry quota headers too."""
        fail_with(mock_github, 403, headers=HEADERS_EXHAUSTED)

        with pytest.raises(GitHubRateLimitError):
            await client.fetch_release_page("octo-org", "widgets")

        assert tracker.state.remaining == 0
        assert tracker.severity is RateLimitSeverity.CRITICAL

    async def test_without_tracker(self, mock_github):
        mock_github.rest.repos.async_list_releases = AsyncMock(
            return_value=make_list_response([])
        )
        client = GitHubClient(token="", timeout=5.0)
        page = await client.fetch_release_page("octo-org", "widgets")
        assert client.tracker is None
        assert page.headers["x-ratelimit-remaining"] == "4999"


async def test_context_manager_closes(mock_github):
    async with GitHubClient(token="", timeout=5.0) as client:
        client._github()
        assert client._clients
    assert client._clients == {}
