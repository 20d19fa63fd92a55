"""Release Fetch Orchestrator - one entry point for release data.

Composes the rate limit tracker, request queue, GitHub client, release
cache and analytics: a cache hit returns immediately; a miss fetches
every page through the queue, validates and sanitizes the records,
computes statistics once, and stores the result.
"""

from __future__ import annotations

from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Any, Self

from github_release_stats.analytics import compute_release_statistics
from github_release_stats.cache import CacheStats, ReleaseCache
from github_release_stats.config import FetchConfig, Settings, get_settings
from github_release_stats.github.client import GitHubClient
from github_release_stats.github.exceptions import GitHubClientError
from github_release_stats.github.pacing import RequestQueue
from github_release_stats.github.rate_limit import (
    RateLimitListener,
    RateLimitStatus,
    RateLimitTracker,
)
from github_release_stats.logging import bind_repo
from github_release_stats.schemas.release import ReleaseQueryOptions

from .enums import FetchStage
from .results import ReleaseDataResult
from .validation import sanitize_release, validate_release_records

if TYPE_CHECKING:
    from collections.abc import Callable

    from loguru import Logger

    from github_release_stats.github.client import ReleasePage


class ReleaseFetchOrchestrator:
    """Fetches, caches and analyzes GitHub releases.

    Usage:
        async with ReleaseFetchOrchestrator.create() as orchestrator:
            orchestrator.on_rate_limit_event(lambda e: print(e.message))
            result = await orchestrator.fetch_release_data("facebook", "react")
            print(result.statistics.mean_interval_days)

    All collaborators are passed in explicitly; ``create()`` wires the
    default set from settings.
    """

    def __init__(
        self,
        client: GitHubClient,
        queue: RequestQueue,
        cache: ReleaseCache,
        tracker: RateLimitTracker,
        fetch_config: FetchConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: GitHub API client (transport adapter)
            queue: RequestQueue every page request goes through
            cache: Release cache
            tracker: Rate limit tracker shared with client and queue
            fetch_config: Optional pagination configuration (uses settings if not provided)
            clock: Optional wall clock for future-release filtering and recency
        """
        self._client = client
        self._queue = queue
        self._cache = cache
        self._tracker = tracker
        self._fetch_config = fetch_config or get_settings().fetch
        self._clock = clock or partial(datetime.now, UTC)

    @classmethod
    def create(cls, settings: Settings | None = None) -> Self:
        """Build an orchestrator with default collaborators.

        Args:
            settings: Optional settings (uses get_settings() if not provided)

        Returns:
            Orchestrator wired tracker -> client -> queue -> cache
        """
        settings = settings or get_settings()
        tracker = RateLimitTracker(settings.rate_limit)
        client = GitHubClient(
            token=settings.github_token,
            tracker=tracker,
            timeout=settings.queue.request_timeout_seconds,
        )
        queue = RequestQueue(tracker, settings.queue, settings.rate_limit)
        cache = ReleaseCache(settings.cache)
        return cls(client, queue, cache, tracker, settings.fetch)

    async def close(self) -> None:
        """Drain and stop the queue, then release the client."""
        await self._queue.shutdown()
        await self._client.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------
    async def fetch_release_data(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        options: ReleaseQueryOptions | None = None,
    ) -> ReleaseDataResult:
        """Get releases and statistics for a repository.

        Args:
            owner: Repository owner
            repo: Repository name
            token: Optional PAT for this fetch (overrides the default token)
            options: Draft, prerelease and date filters (part of the cache key)

        Returns:
            ReleaseDataResult; from_cache is True when no request was made
            (statistics of a cached result are measured as of the original fetch)

        Raises:
            GitHubNotFoundError: Repository absent, or private without a token
            GitHubAuthenticationError: Token rejected
            GitHubForbiddenError: Token lacks access
            RateLimitExceededError: Retries exhausted on rate limiting
            QueueFullError: Request queue rejected the work
            NetworkError: Transport failure after retries
            GitHubResponseError: Unexpected upstream response
        """
        options = options or ReleaseQueryOptions()
        log = bind_repo(owner, repo)
        stages: list[FetchStage] = [FetchStage.IDLE]
        advance = partial(self._advance, log, stages)

        advance(FetchStage.CACHE_CHECK)
        entry = self._cache.get(owner, repo, options)
        if entry is not None:
            advance(FetchStage.CACHE_HIT)
            advance(FetchStage.DONE)
            log.info("Served {} releases from cache", len(entry.releases))
            return ReleaseDataResult(
                owner=owner,
                repo=repo,
                releases=entry.releases,
                statistics=entry.statistics,
                from_cache=True,
                stages=tuple(stages),
            )

        try:
            advance(FetchStage.FETCHING)
            records, pages, truncated = await self._fetch_all_pages(owner, repo, token, log)

            advance(FetchStage.VALIDATING)
            now = self._clock()
            valid, dropped = validate_release_records(records)
            accepted = [r for r in valid if options.accepts(r, now)]
            if dropped:
                log.warning("Dropped {} malformed release records", dropped)

            advance(FetchStage.SANITIZING)
            sanitized = [sanitize_release(r) for r in accepted]

            advance(FetchStage.STORING)
            releases = self._cache.truncate(sanitized)
            statistics = compute_release_statistics(releases, as_of=now)
            self._cache.set(owner, repo, options, releases, statistics)
        except GitHubClientError as e:
            advance(FetchStage.FAILED)
            log.warning("Fetch failed ({}): {}", e.kind.value, e)
            raise

        advance(FetchStage.DONE)
        log.info(
            "Fetched {} releases ({} pages, {} dropped{})",
            len(releases),
            pages,
            dropped,
            ", truncated" if truncated else "",
        )
        return ReleaseDataResult(
            owner=owner,
            repo=repo,
            releases=releases,
            statistics=statistics,
            from_cache=False,
            truncated=truncated,
            dropped_records=dropped,
            pages_fetched=pages,
            stages=tuple(stages),
        )

    async def _fetch_all_pages(
        self,
        owner: str,
        repo: str,
        token: str | None,
        log: Logger,
    ) -> tuple[list[Any], int, bool]:
        """Request pages until there is no next page or the page limit is hit.

        Returns:
            Tuple of (raw records, pages fetched, truncated)
        """
        per_page = self._fetch_config.per_page
        max_pages = self._fetch_config.max_pages
        records: list[Any] = []
        pages = 0

        for page_number in range(1, max_pages + 1):
            page: ReleasePage = await self._queue.submit(
                partial(
                    self._client.fetch_release_page,
                    owner,
                    repo,
                    page=page_number,
                    per_page=per_page,
                    token=token,
                )
            )
            pages += 1

            if page.truncated:
                log.warning("Upstream pagination ceiling reached at page {}", page_number)
                return records, pages, True

            records.extend(page.records)
            log.debug("Page {}: {} records", page_number, len(page.records))

            if not page.has_next:
                return records, pages, False

        log.warning("Stopped at page limit ({} pages of {})", max_pages, per_page)
        return records, pages, True

    @staticmethod
    def _advance(log: Logger, stages: list[FetchStage], stage: FetchStage) -> None:
        log.debug("Stage {} -> {}", stages[-1].value, stage.value)
        stages.append(stage)

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    def on_rate_limit_event(self, listener: RateLimitListener) -> Callable[[], None]:
        """Subscribe to rate limit events.

        Returns:
            Function that unsubscribes the listener
        """
        return self._tracker.on_event(listener)

    def get_cache_stats(self) -> CacheStats:
        """Cache statistics (hit rate, size, oldest entry age)."""
        return self._cache.get_stats()

    def rate_limit_status(self) -> RateLimitStatus:
        """Current rate limit status."""
        return self._tracker.status()

    def invalidate(
        self,
        owner: str,
        repo: str,
        options: ReleaseQueryOptions | None = None,
    ) -> bool:
        """Drop a cached result so the next fetch goes to GitHub."""
        return self._cache.invalidate(owner, repo, options)

    @property
    def queue(self) -> RequestQueue:
        """The request queue (for diagnostics)."""
        return self._queue
