"""Rate limit tracking for GitHub API.

This module tracks quota state passively from response headers and turns
changes in that state into events for the request queue and the UI.

Key Features:
- Passive tracking from response headers (zero API cost)
- Absolute remaining-count thresholds (warning/critical)
- Events only on degradation edges, plus window resets
- Best-effort listener fan-out (sync and coroutine listeners)
- Bounded event history for diagnostics
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from github_release_stats.config import RateLimitConfig, get_settings

from .schemas import (
    RateLimitEvent,
    RateLimitEventType,
    RateLimitSeverity,
    RateLimitState,
    RateLimitStatus,
)

logger = logging.getLogger(__name__)

# Type for event listeners
RateLimitListener = Callable[[RateLimitEvent], Awaitable[None] | None]

Clock = Callable[[], datetime]

EVENT_HISTORY_SIZE = 100


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RateLimitTracker:
    """Tracks GitHub API quota from response headers.

    The tracker never calls GitHub itself: ``remaining`` is only ever set
    from headers of a real response. Severity is recomputed on every
    update and listeners hear about transitions to a worse severity and
    about quota window resets.

    Usage:
        tracker = RateLimitTracker()
        tracker.on_event(lambda event: print(event.message))

        tracker.update(response.headers)
        if tracker.severity is RateLimitSeverity.CRITICAL:
            await asyncio.sleep(tracker.time_until_reset().total_seconds())
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Clock | None = None,
        history_size: int = EVENT_HISTORY_SIZE,
    ) -> None:
        """Initialize the rate limit tracker.

        Args:
            config: Optional rate limit configuration (uses settings if not provided)
            clock: Optional wall clock returning aware UTC datetimes
            history_size: Number of recent events retained for diagnostics
        """
        self._config = config or get_settings().rate_limit
        self._clock = clock or _utcnow

        # State
        self._state: RateLimitState | None = None
        self._retry_count = 0

        # Listeners
        self._listeners: list[RateLimitListener] = []
        self._listener_tasks: set[asyncio.Task[None]] = set()  # Prevent task GC
        self._events: deque[RateLimitEvent] = deque(maxlen=history_size)

    # -------------------------------------------------------------------------
    # Passive Tracking (from Response Headers)
    # -------------------------------------------------------------------------
    def update(self, headers: Mapping[str, str]) -> RateLimitState | None:
        """Update quota state from response headers.

        Call this after every API response, successful or not. Headers
        without limit, remaining and reset values are ignored.

        Args:
            headers: HTTP response headers

        Returns:
            The new state, or None if the headers were ignored
        """
        if not self._config.track_from_headers:
            return None

        current = RateLimitState.from_headers(headers)
        if current is None:
            logger.debug("Response carried no usable rate limit headers")
            return None

        previous = self._state
        self._state = current

        previous_severity = (
            self._severity_for(previous.remaining) if previous else RateLimitSeverity.NORMAL
        )

        if previous is not None and current.reset_at > previous.reset_at:
            self._retry_count = 0
            previous_severity = RateLimitSeverity.NORMAL
            logger.info("Rate limit window reset (remaining=%d)", current.remaining)
            self.emit(
                RateLimitEvent(
                    type=RateLimitEventType.RESET,
                    message="Rate limit has been reset",
                    timestamp=self._clock(),
                    remaining=current.remaining,
                    reset_at=current.reset_at,
                )
            )

        current_severity = self._severity_for(current.remaining)
        if self._is_degradation(previous_severity, current_severity):
            self._emit_severity(current, current_severity)

        return current

    def _emit_severity(self, state: RateLimitState, severity: RateLimitSeverity) -> None:
        if severity is RateLimitSeverity.CRITICAL:
            event_type = RateLimitEventType.CRITICAL
            message = f"Rate limit critical: Only {state.remaining} requests remaining"
            logger.warning(message)
        else:
            event_type = RateLimitEventType.WARNING
            message = f"Rate limit warning: {state.remaining} requests remaining"
            logger.info(message)

        self.emit(
            RateLimitEvent(
                type=event_type,
                message=message,
                timestamp=self._clock(),
                remaining=state.remaining,
                reset_at=state.reset_at,
                details={"limit": state.limit, "used": state.used},
            )
        )

    def _severity_for(self, remaining: int) -> RateLimitSeverity:
        if remaining <= self._config.critical_threshold:
            return RateLimitSeverity.CRITICAL
        if remaining <= self._config.warning_threshold:
            return RateLimitSeverity.WARNING
        return RateLimitSeverity.NORMAL

    @staticmethod
    def _is_degradation(previous: RateLimitSeverity, current: RateLimitSeverity) -> bool:
        """Check if severity change is a degradation (worse severity)."""
        order = [
            RateLimitSeverity.NORMAL,
            RateLimitSeverity.WARNING,
            RateLimitSeverity.CRITICAL,
        ]
        return order.index(current) > order.index(previous)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------
    def on_event(self, listener: RateLimitListener) -> Callable[[], None]:
        """Register a listener for rate limit events.

        Args:
            listener: Sync function or coroutine function taking a RateLimitEvent

        Returns:
            Function that unregisters the listener
        """
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: RateLimitListener) -> None:
        """Unregister a listener (no-op if not registered)."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def emit(self, event: RateLimitEvent) -> None:
        """Record an event and deliver it to every listener.

        A failing listener is logged and skipped; the others still run.
        Coroutine listeners are scheduled as tasks on the running loop and
        require one: emitted outside a loop, their coroutine is closed
        unawaited and the event reaches them only through ``recent_events``.
        """
        self._events.append(event)

        for listener in list(self._listeners):
            try:
                result = listener(event)
            except Exception as e:
                logger.error("Rate limit listener failed for %s event: %s", event.type.value, e)
                continue
            if asyncio.iscoroutine(result):
                self._schedule(result, event)

    def _schedule(self, coro: Coroutine[Any, Any, None], event: RateLimitEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(
                "Async rate limit listener skipped for %s event: no running event loop",
                event.type.value,
            )
            return
        task = loop.create_task(coro)
        self._listener_tasks.add(task)
        task.add_done_callback(self._on_listener_task_done)

    def _on_listener_task_done(self, task: asyncio.Task[None]) -> None:
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async rate limit listener failed: %s", task.exception())

    def recent_events(self, limit: int | None = None) -> list[RateLimitEvent]:
        """Get recent events, oldest first.

        Args:
            limit: Maximum number of most recent events to return

        Returns:
            List of events
        """
        events = list(self._events)
        if limit is not None:
            return events[-limit:] if limit > 0 else []
        return events

    def record_retry(self) -> int:
        """Count one retry against the current quota window.

        Returns:
            Retries recorded since the last reset
        """
        self._retry_count += 1
        return self._retry_count

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def state(self) -> RateLimitState | None:
        """Latest observed quota (None until a response has been seen)."""
        return self._state

    @property
    def severity(self) -> RateLimitSeverity:
        """Current severity (NORMAL if unknown)."""
        if self._state is None:
            return RateLimitSeverity.NORMAL
        return self._severity_for(self._state.remaining)

    @property
    def retry_count(self) -> int:
        """Retries recorded since the last reset."""
        return self._retry_count

    def recommendations(self) -> list[str]:
        """Suggest what a caller should do given the current quota.

        Empty until a response has been seen or while the quota is healthy.
        """
        if self._state is None:
            return []

        advice: list[str] = []
        if self.severity is RateLimitSeverity.CRITICAL:
            advice.append("Wait for rate limit reset")
            advice.append("Consider using authenticated requests")
        if self._state.remaining < self._config.warning_threshold:
            advice.append("Slow down requests")
            advice.append("Use caching to reduce API calls")
        return advice

    def status(self) -> RateLimitStatus:
        """Get a status summary for display."""
        if self._state is None:
            return RateLimitStatus(retry_count=self._retry_count)
        return RateLimitStatus(
            severity=self.severity,
            remaining=self._state.remaining,
            limit=self._state.limit,
            reset_at=self._state.reset_at,
            retry_count=self._retry_count,
            recommendations=tuple(self.recommendations()),
        )

    def time_until_reset(self) -> timedelta:
        """Time until the quota window resets (zero if unknown or past)."""
        if self._state is None:
            return timedelta(0)
        return max(timedelta(0), self._state.reset_at - self._clock())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for diagnostics."""
        status = self.status()
        return {
            "severity": status.severity.value,
            "remaining": status.remaining,
            "limit": status.limit,
            "reset_at": status.reset_at.isoformat() if status.reset_at else None,
            "retry_count": status.retry_count,
            "seconds_until_reset": self.time_until_reset().total_seconds(),
            "recent_events": len(self._events),
        }
