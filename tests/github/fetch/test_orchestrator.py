"""Tests for ReleaseFetchOrchestrator.

The orchestrator is wired with the real client, queue, tracker and cache;
only the githubkit transport is mocked.

Tests cover:
- Cache miss then hit (no network on the second call)
- Pagination, page limit and upstream ceiling
- Validation drops, filtering and sanitization
- Date bounds and future-dated releases against the wall clock
- Rate limit exhaustion: critical event and wait until reset
- Error propagation without caching
"""

from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest
from githubkit.exception import RequestFailed

from github_release_stats.cache import ReleaseCache
from github_release_stats.config import Settings
from github_release_stats.github.client import GitHubClient
from github_release_stats.github.exceptions import GitHubNotFoundError, RateLimitExceededError
from github_release_stats.github.fetch import FetchStage, ReleaseFetchOrchestrator
from github_release_stats.github.pacing import RequestQueue
from github_release_stats.github.rate_limit import RateLimitEvent, RateLimitEventType
from github_release_stats.schemas import ReleaseQueryOptions
from tests.conftest import RESET_AT, day
from tests.factories import make_error_response, make_github_release, make_list_response
from tests.fixtures.github_responses import GITHUB_MALFORMED_RELEASE_RESPONSE
from tests.fixtures.rate_limit_responses import HEADERS_EXHAUSTED, HEADERS_NEXT_WINDOW

THREE_RELEASES = [
    make_github_release(3, "v2.0.0", published_at=day(40)),
    make_github_release(2, "v1.1.0", published_at=day(10)),
    make_github_release(1, "v1.0.0", published_at=day(0)),
]


@pytest.fixture
def list_releases() -> Generator[AsyncMock, None, None]:
    """Patch githubkit and expose the releases endpoint mock."""
    with patch("github_release_stats.github.client.GitHub") as mock_class:
        mock_instance = MagicMock()
        mock_class.return_value = mock_instance
        endpoint = AsyncMock()
        mock_instance.rest.repos.async_list_releases = endpoint
        yield endpoint


@pytest.fixture
async def orchestrator(
    tracker,
    queue_config,
    rate_limit_config,
    cache_config,
    fetch_config,
    sleeper,
    monotonic_clock,
    wall_clock,
    list_releases,
) -> AsyncGenerator[ReleaseFetchOrchestrator, None]:
    client = GitHubClient(token="", tracker=tracker, timeout=5.0)
    queue = RequestQueue(tracker, queue_config, rate_limit_config, sleep=sleeper)
    cache = ReleaseCache(cache_config, clock=monotonic_clock)
    async with ReleaseFetchOrchestrator(
        client, queue, cache, tracker, fetch_config, clock=wall_clock
    ) as orch:
        yield orch


@pytest.fixture
def events(orchestrator: ReleaseFetchOrchestrator) -> list[RateLimitEvent]:
    received: list[RateLimitEvent] = []
    orchestrator.on_rate_limit_event(received.append)
    return received


# -----------------------------------------------------------------------------
# Test: Cache
# -----------------------------------------------------------------------------
class TestCaching:
    """Tests for the cache-first fetch path."""

    async def test_miss_fetches_and_computes(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.from_cache is False
        assert result.pages_fetched == 1
        assert [r.tag_name for r in result.releases] == ["v2.0.0", "v1.1.0", "v1.0.0"]
        assert result.statistics.total_releases == 3
        assert result.statistics.mean_interval_days == 20.0
        assert result.statistics.days_since_last_release == 111
        assert result.statistics.quality_score == 70
        assert result.stages == (
            FetchStage.IDLE,
            FetchStage.CACHE_CHECK,
            FetchStage.FETCHING,
            FetchStage.VALIDATING,
            FetchStage.SANITIZING,
            FetchStage.STORING,
            FetchStage.DONE,
        )

    async def test_second_fetch_served_from_cache(self, orchestrator, list_releases):
        """A repeat fetch within the TTL makes no network call."""
        list_releases.return_value = make_list_response(THREE_RELEASES)

        first = await orchestrator.fetch_release_data("octo-org", "widgets")
        second = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert list_releases.await_count == 1
        assert second.from_cache is True
        assert second.pages_fetched == 0
        assert second.releases == first.releases
        assert second.statistics == first.statistics
        assert FetchStage.CACHE_HIT in second.stages
        assert FetchStage.FETCHING not in second.stages

    async def test_cache_key_ignores_case(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("Octo-Org", "Widgets")
        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.from_cache is True

    async def test_different_options_refetch(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("octo-org", "widgets")
        result = await orchestrator.fetch_release_data(
            "octo-org", "widgets", options=ReleaseQueryOptions(include_drafts=True)
        )

        assert result.from_cache is False
        assert list_releases.await_count == 2

    async def test_date_bounds_are_part_of_cache_key(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("octo-org", "widgets")
        result = await orchestrator.fetch_release_data(
            "octo-org", "widgets", options=ReleaseQueryOptions(published_after=day(5))
        )

        assert result.from_cache is False
        assert [r.tag_name for r in result.releases] == ["v2.0.0", "v1.1.0"]
        assert list_releases.await_count == 2

    async def test_expired_entry_refetched(self, orchestrator, list_releases, monotonic_clock):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("octo-org", "widgets")
        monotonic_clock.advance(301)
        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.from_cache is False
        assert list_releases.await_count == 2

    async def test_invalidate(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("octo-org", "widgets")
        assert orchestrator.invalidate("octo-org", "widgets") is True
        await orchestrator.fetch_release_data("octo-org", "widgets")

        assert list_releases.await_count == 2

    async def test_cache_stats(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)

        await orchestrator.fetch_release_data("octo-org", "widgets")
        await orchestrator.fetch_release_data("octo-org", "widgets")

        stats = orchestrator.get_cache_stats()
        assert stats.size == 1
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == 0.5

    async def test_empty_repository(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response([])

        result = await orchestrator.fetch_release_data("octo-org", "empty")

        assert result.releases == ()
        assert result.statistics.total_releases == 0
        assert (await orchestrator.fetch_release_data("octo-org", "empty")).from_cache is True


# -----------------------------------------------------------------------------
# Test: Pagination
# -----------------------------------------------------------------------------
class TestPagination:
    """Tests for multi-page fetching (2 per page, 3 pages max)."""

    async def test_follows_next_links(self, orchestrator, list_releases):
        list_releases.side_effect = [
            make_list_response(THREE_RELEASES[:2], next_page=2),
            make_list_response(THREE_RELEASES[2:]),
        ]

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.pages_fetched == 2
        assert result.truncated is False
        assert len(result.releases) == 3
        assert list_releases.await_args_list == [
            call(owner="octo-org", repo="widgets", per_page=2, page=1),
            call(owner="octo-org", repo="widgets", per_page=2, page=2),
        ]

    async def test_stops_at_page_limit(self, orchestrator, list_releases):
        list_releases.side_effect = [
            make_list_response(
                [make_github_release(n * 2 + 1), make_github_release(n * 2 + 2)],
                next_page=n + 2,
            )
            for n in range(5)
        ]

        result = await orchestrator.fetch_release_data("octo-org", "busy")

        assert list_releases.await_count == 3
        assert result.pages_fetched == 3
        assert result.truncated is True
        assert len(result.releases) == 6

    async def test_upstream_pagination_ceiling(self, orchestrator, list_releases):
        """A 422 on a later page keeps what was fetched and marks truncation."""
        list_releases.side_effect = [
            make_list_response(THREE_RELEASES[:2], next_page=2),
            RequestFailed(make_error_response(422)),
        ]

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.truncated is True
        assert result.pages_fetched == 2
        assert len(result.releases) == 2

    async def test_token_passed_through(self, orchestrator, list_releases):
        with patch.object(GitHubClient, "fetch_release_page", autospec=True) as fetch_page:
            fetch_page.return_value = MagicMock(records=[], has_next=False, truncated=False)
            await orchestrator.fetch_release_data("octo-org", "private", token="ghp_test")

        assert fetch_page.call_args.kwargs["token"] == "ghp_test"


# -----------------------------------------------------------------------------
# Test: Validation, Filtering and Sanitization
# -----------------------------------------------------------------------------
class TestRecordProcessing:
    """Tests for what happens to records between fetch and cache."""

    async def test_malformed_records_dropped(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(
            [*THREE_RELEASES, GITHUB_MALFORMED_RELEASE_RESPONSE]
        )

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.dropped_records == 1
        assert len(result.releases) == 3

    @pytest.mark.parametrize(
        ("options", "expected_tags"),
        [
            (ReleaseQueryOptions(), ["v1.1.0-rc.1", "v1.0.0"]),
            (ReleaseQueryOptions(include_drafts=True), ["v1.2.0", "v1.1.0-rc.1", "v1.0.0"]),
            (ReleaseQueryOptions(include_prereleases=False), ["v1.0.0"]),
        ],
    )
    async def test_filters(self, orchestrator, list_releases, options, expected_tags):
        list_releases.return_value = make_list_response(
            [
                make_github_release(
                    13, "v1.2.0", published_at=None, created_at=day(9), draft=True
                ),
                make_github_release(12, "v1.1.0-rc.1", published_at=day(5), prerelease=True),
                make_github_release(11, "v1.0.0", published_at=day(0)),
            ]
        )

        result = await orchestrator.fetch_release_data("octo-org", "widgets", options=options)

        assert [r.tag_name for r in result.releases] == expected_tags
        assert result.statistics.total_releases == len(expected_tags)

    async def test_date_bounds(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(THREE_RELEASES)
        options = ReleaseQueryOptions(published_after=day(10), published_before=day(10))

        result = await orchestrator.fetch_release_data("octo-org", "widgets", options=options)

        assert [r.tag_name for r in result.releases] == ["v1.1.0"]

    async def test_future_dated_release_excluded(self, orchestrator, list_releases):
        """Releases published after the wall clock are dropped by default."""
        list_releases.return_value = make_list_response(
            [make_github_release(4, "v3.0.0", published_at=day(400)), *THREE_RELEASES]
        )

        default = await orchestrator.fetch_release_data("octo-org", "widgets")
        included = await orchestrator.fetch_release_data(
            "octo-org", "widgets", options=ReleaseQueryOptions(exclude_future=False)
        )

        assert [r.tag_name for r in default.releases] == ["v2.0.0", "v1.1.0", "v1.0.0"]
        assert included.releases[0].tag_name == "v3.0.0"

    async def test_records_sanitized(self, orchestrator, list_releases):
        list_releases.return_value = make_list_response(
            [
                make_github_release(
                    1,
                    "v1.0.0",
                    name="<b>Widgets</b> 1.0",
                    body="Notes<script>alert(1)</script>",
                )
            ]
        )

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert result.releases[0].name == "Widgets 1.0"
        assert result.releases[0].body == "Notes"


# -----------------------------------------------------------------------------
# Test: Rate Limiting
# -----------------------------------------------------------------------------
class TestRateLimiting:
    """Tests for quota exhaustion during a fetch."""

    async def test_exhausted_quota_waits_for_reset(
        self, orchestrator, list_releases, events, sleeper, wall_clock
    ):
        """403 with remaining=0: one critical event, then wait until reset."""
        list_releases.side_effect = [
            RequestFailed(make_error_response(403, headers=HEADERS_EXHAUSTED)),
            make_list_response(THREE_RELEASES, headers=HEADERS_NEXT_WINDOW),
        ]

        result = await orchestrator.fetch_release_data("octo-org", "widgets")

        assert len(result.releases) == 3
        critical = [e for e in events if e.type is RateLimitEventType.CRITICAL]
        assert len(critical) == 1
        assert critical[0].remaining == 0
        assert [e.type for e in events] == [
            RateLimitEventType.CRITICAL,
            RateLimitEventType.RETRY,
            RateLimitEventType.RESET,
        ]

        # 1s backoff, then the rest of the hour plus the 1s margin
        assert sleeper.delays == [1.0, 3600.0]
        assert wall_clock.now > RESET_AT
        assert orchestrator.rate_limit_status().remaining == 5000

    async def test_rate_limit_retries_exhausted(self, orchestrator, list_releases):
        list_releases.side_effect = RequestFailed(
            make_error_response(429, headers={"retry-after": "1"})
        )

        with pytest.raises(RateLimitExceededError):
            await orchestrator.fetch_release_data("octo-org", "widgets")

        # first attempt + 3 retries
        assert list_releases.await_count == 4
        assert orchestrator.get_cache_stats().size == 0

    async def test_unsubscribe(self, orchestrator, list_releases):
        received: list[RateLimitEvent] = []
        unsubscribe = orchestrator.on_rate_limit_event(received.append)
        unsubscribe()
        list_releases.return_value = make_list_response([], headers=HEADERS_EXHAUSTED)

        await orchestrator.fetch_release_data("octo-org", "widgets")

        assert received == []


# -----------------------------------------------------------------------------
# Test: Errors
# -----------------------------------------------------------------------------
class TestErrors:
    """Tests for failures surfacing to the caller."""

    async def test_not_found_propagates_uncached(self, orchestrator, list_releases):
        list_releases.side_effect = RequestFailed(make_error_response(404))

        with pytest.raises(GitHubNotFoundError):
            await orchestrator.fetch_release_data("octo-org", "missing")
        with pytest.raises(GitHubNotFoundError):
            await orchestrator.fetch_release_data("octo-org", "missing")

        assert list_releases.await_count == 2
        assert orchestrator.get_cache_stats().size == 0


async def test_create_wires_components():
    settings = Settings(_env_file=None, github_token="ghp_test")
    async with ReleaseFetchOrchestrator.create(settings) as orchestrator:
        assert orchestrator.rate_limit_status().remaining is None
        assert orchestrator.queue.get_stats()["max_queue_size"] == settings.queue.max_queue_size
        assert orchestrator.get_cache_stats().max_size == settings.cache.max_size
