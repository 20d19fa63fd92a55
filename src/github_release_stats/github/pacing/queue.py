"""Serialized request queue for GitHub API calls.

Every outbound GitHub call goes through one RequestQueue so that calls
are issued one at a time, in submission order, paced, and held back when
the quota is nearly exhausted.

Features:
- FIFO dispatch, one request in flight at a time
- Fixed pacing interval between dispatches
- Admission control (bounded pending depth)
- Per-attempt timeout
- In-place retry with exponential backoff for transient failures
- Wait-for-reset when the tracker reports critical severity
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Generic, Self, TypeVar

from github_release_stats.config import QueueConfig, RateLimitConfig, get_settings
from github_release_stats.github.exceptions import (
    GitHubRateLimitError,
    GitHubRetryableError,
    QueueFullError,
    RateLimitExceededError,
    RequestTimeoutError,
)
from github_release_stats.github.rate_limit import (
    RateLimitEvent,
    RateLimitEventType,
    RateLimitSeverity,
    RateLimitTracker,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class QueuedRequest(Generic[T]):
    """A request waiting for (or undergoing) execution.

    Owned by the queue; discarded once its future is settled.
    """

    id: str
    coro_factory: Callable[[], Awaitable[T]]
    future: asyncio.Future[T]
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempt: int = 0

    @property
    def abandoned(self) -> bool:
        """Whether the caller stopped waiting before the request settled."""
        return self.future.cancelled()


class RequestQueue:
    """FIFO request queue with pacing, backoff and rate limit awareness.

    Usage:
        tracker = RateLimitTracker()
        queue = RequestQueue(tracker)

        # Submit and wait for result; the worker starts on first use
        page = await queue.submit(
            lambda: client.fetch_release_page("facebook", "react", page=1, per_page=100)
        )

        await queue.shutdown()
    """

    def __init__(
        self,
        tracker: RateLimitTracker,
        config: QueueConfig | None = None,
        rate_limit_config: RateLimitConfig | None = None,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        """Initialize the request queue.

        Args:
            tracker: Tracker consulted before each attempt and told about retries
            config: Optional queue configuration (uses settings if not provided)
            rate_limit_config: Optional rate limit configuration for the reset margin
            sleep: Optional sleep coroutine (defaults to asyncio.sleep)
        """
        self._tracker = tracker
        self._config = config or get_settings().queue
        self._rate_limit_config = rate_limit_config or get_settings().rate_limit
        self._sleep: Sleep = sleep or asyncio.sleep

        self._queue: asyncio.Queue[QueuedRequest[Any]] = asyncio.Queue(
            maxsize=self._config.max_queue_size
        )

        # State
        self._running = False
        self._worker_task: asyncio.Task[None] | None = None
        self._in_flight: QueuedRequest[Any] | None = None
        self._dispatched = 0

        # Statistics
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_rejected = 0
        self._total_retries = 0
        self._total_abandoned = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        """Start the worker loop (idempotent)."""
        if self._running:
            return

        self._running = True
        self._worker_task = asyncio.create_task(self._worker_loop())
        logger.info(
            "Request queue started (max_queue_size=%d, pacing_interval_ms=%d)",
            self._config.max_queue_size,
            self._config.pacing_interval_ms,
        )

    async def shutdown(self, wait: bool = True, timeout: float = 30.0) -> None:
        """Stop the queue.

        Args:
            wait: If True, wait for pending requests to complete
            timeout: Maximum seconds to wait for pending requests
        """
        if wait and self._worker_task and not self.is_idle:
            logger.info("Waiting for %d pending requests...", self._queue.qsize())
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except TimeoutError:
                logger.warning("Timed out waiting for request queue to drain")

        self._running = False

        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None

        # Cancel anything still waiting
        while not self._queue.empty():
            request = self._queue.get_nowait()
            if not request.future.done():
                request.future.cancel()
            self._queue.task_done()

        logger.info(
            "Request queue stopped (completed=%d, failed=%d, rejected=%d)",
            self._total_completed,
            self._total_failed,
            self._total_rejected,
        )

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.shutdown()

    @property
    def is_running(self) -> bool:
        """Whether the worker loop is running."""
        return self._running

    # -------------------------------------------------------------------------
    # Request Submission
    # -------------------------------------------------------------------------
    async def submit(self, coro_factory: Callable[[], Awaitable[T]]) -> T:
        """Submit a request and wait for its result.

        Args:
            coro_factory: Factory creating the coroutine to execute; called
                once per attempt

        Returns:
            Result of the coroutine

        Raises:
            QueueFullError: If the pending depth is at max_queue_size
            RateLimitExceededError: If retries ran out on rate limit failures
            GitHubRetryableError: The last error once retries ran out otherwise
            Exception: Any non-retryable exception from the coroutine
        """
        if not self._running:
            await self.start()

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        request: QueuedRequest[T] = QueuedRequest(
            id=str(uuid.uuid4()),
            coro_factory=coro_factory,
            future=future,
        )

        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            self._total_rejected += 1
            message = f"Request queue is full (max: {self._config.max_queue_size})"
            logger.warning(message)
            self._tracker.emit(
                RateLimitEvent(
                    type=RateLimitEventType.QUEUE_FULL,
                    message=message,
                    timestamp=datetime.now(UTC),
                    details={"max_queue_size": self._config.max_queue_size},
                )
            )
            raise QueueFullError(message, max_size=self._config.max_queue_size) from None

        self._total_submitted += 1
        logger.debug("Enqueued request %s (queue_size=%d)", request.id[:8], self._queue.qsize())

        return await future

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _worker_loop(self) -> None:
        """Main worker loop that processes the queue."""
        while True:
            request = await self._queue.get()
            try:
                if request.abandoned:
                    self._total_abandoned += 1
                    logger.debug("Skipping abandoned request %s", request.id[:8])
                    continue

                if self._dispatched and self._config.pacing_interval_ms > 0:
                    await self._sleep(self._config.pacing_interval_ms / 1000)

                self._in_flight = request
                self._dispatched += 1
                await self._execute_request(request)
            except asyncio.CancelledError:
                # Shutdown while in flight: the caller must not wait forever
                if not request.future.done():
                    request.future.cancel()
                raise
            finally:
                self._in_flight = None
                self._queue.task_done()

    async def _execute_request(self, request: QueuedRequest[Any]) -> None:
        """Run one request to completion, retrying transient failures in place."""
        timeout = self._config.request_timeout_seconds

        while True:
            request.attempt += 1
            await self._wait_for_quota()

            logger.debug("Executing request %s (attempt %d)", request.id[:8], request.attempt)

            error: GitHubRetryableError
            try:
                result = await asyncio.wait_for(request.coro_factory(), timeout)
            except TimeoutError:
                error = RequestTimeoutError(f"Request timed out after {timeout:.1f}s")
            except GitHubRetryableError as e:
                error = e
            except Exception as e:
                self._reject(request, e)
                return
            else:
                self._resolve(request, result)
                return

            retries_used = request.attempt - 1
            if retries_used >= self._config.max_retries:
                self._reject(request, self._final_error(error, retries_used))
                return

            await self._schedule_retry(request, error)

    async def _wait_for_quota(self) -> None:
        """Hold dispatch until the quota resets when severity is critical."""
        if self._tracker.severity is not RateLimitSeverity.CRITICAL:
            return

        wait = self._tracker.time_until_reset()
        if wait <= timedelta(0):
            return

        seconds = wait.total_seconds() + self._rate_limit_config.reset_safety_margin_seconds
        logger.warning("Rate limit critical, waiting %.1f seconds for reset", seconds)
        await self._sleep(seconds)

    async def _schedule_retry(
        self,
        request: QueuedRequest[Any],
        error: GitHubRetryableError,
    ) -> None:
        delay_ms = self.backoff_delay(request.attempt)
        retry_count = self._tracker.record_retry()
        self._total_retries += 1

        message = (
            f"Request failed ({error.kind.value}). Retrying in {delay_ms}ms "
            f"(attempt {request.attempt}/{self._config.max_retries})"
        )
        logger.warning("Request %s: %s", request.id[:8], message)

        state = self._tracker.state
        self._tracker.emit(
            RateLimitEvent(
                type=RateLimitEventType.RETRY,
                message=message,
                timestamp=datetime.now(UTC),
                remaining=state.remaining if state else None,
                reset_at=state.reset_at if state else None,
                details={
                    "attempt": request.attempt,
                    "delay_ms": delay_ms,
                    "error": str(error),
                    "retry_count": retry_count,
                },
            )
        )
        await self._sleep(delay_ms / 1000)

    def _final_error(self, error: GitHubRetryableError, retries: int) -> Exception:
        if not isinstance(error, GitHubRateLimitError):
            return error

        final = RateLimitExceededError(
            f"Rate limit exceeded after {retries} retries",
            reset_at=error.reset_at,
            retries=retries,
        )
        final.__cause__ = error
        return final

    def _resolve(self, request: QueuedRequest[Any], result: Any) -> None:
        self._total_completed += 1
        if request.future.done():
            logger.debug("Discarding result for abandoned request %s", request.id[:8])
            return
        request.future.set_result(result)

    def _reject(self, request: QueuedRequest[Any], error: BaseException) -> None:
        self._total_failed += 1
        logger.error("Request %s failed permanently: %s", request.id[:8], error)
        if request.future.done():
            return
        request.future.set_exception(error)

    def backoff_delay(self, attempt: int) -> int:
        """Backoff in milliseconds before retry number ``attempt`` (1-based).

        Args:
            attempt: Number of the attempt that just failed

        Returns:
            min(base_delay * 2^(attempt-1), max_delay)
        """
        exponent = max(0, attempt - 1)
        return min(self._config.base_delay_ms * (2**exponent), self._config.max_delay_ms)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def queue_size(self) -> int:
        """Number of pending requests in queue (excluding the one in flight)."""
        return self._queue.qsize()

    @property
    def is_idle(self) -> bool:
        """True if no pending or in-flight requests."""
        return self._queue.empty() and self._in_flight is None

    def get_stats(self) -> dict[str, int | bool]:
        """Get queue statistics.

        Returns:
            Dict with queue_size, total_submitted, total_completed, etc.
        """
        return {
            "queue_size": self._queue.qsize(),
            "is_running": self._running,
            "is_idle": self.is_idle,
            "max_queue_size": self._config.max_queue_size,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "total_rejected": self._total_rejected,
            "total_retries": self._total_retries,
            "total_abandoned": self._total_abandoned,
        }
