"""Pytest configuration and shared fixtures."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest

from github_release_stats.config import (
    CacheConfig,
    FetchConfig,
    QueueConfig,
    RateLimitConfig,
    get_settings,
)
from github_release_stats.github.rate_limit import RateLimitTracker
from tests.fixtures.clocks import MonotonicClock, SleepRecorder, WallClock

# -----------------------------------------------------------------------------
# Test Date Constants
# -----------------------------------------------------------------------------
# Release timeline origin: releases are placed at EPOCH + N days
EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
EPOCH_ISO = "2024-01-01T12:00:00Z"

# "Now" for rate limit tests: one hour before the quota window resets
NOW = datetime(2024, 6, 1, 11, 0, 0, tzinfo=UTC)
RESET_AT = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)
RESET_TS = int(RESET_AT.timestamp())
NEXT_RESET_AT = RESET_AT + timedelta(hours=1)
NEXT_RESET_TS = int(NEXT_RESET_AT.timestamp())


def day(offset: float) -> datetime:
    """Release timeline point ``offset`` days after EPOCH."""
    return EPOCH + timedelta(days=offset)


def iso(moment: datetime) -> str:
    """Format a UTC datetime the way the GitHub API does."""
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Make every test read settings fresh from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Clocks
# -----------------------------------------------------------------------------
@pytest.fixture
def wall_clock() -> WallClock:
    """Controllable UTC clock starting at NOW."""
    return WallClock(NOW)


@pytest.fixture
def monotonic_clock() -> MonotonicClock:
    """Controllable monotonic clock starting at 1000s."""
    return MonotonicClock(1000.0)


@pytest.fixture
def sleeper(wall_clock: WallClock) -> SleepRecorder:
    """Sleep replacement that records delays and advances the wall clock."""
    return SleepRecorder(wall_clock)


# -----------------------------------------------------------------------------
# Component Configs
# -----------------------------------------------------------------------------
@pytest.fixture
def rate_limit_config() -> RateLimitConfig:
    """Default thresholds: warning at 10, critical at 3, 1s reset margin."""
    return RateLimitConfig()


@pytest.fixture
def queue_config() -> QueueConfig:
    """Queue config without pacing so tests only see backoff and quota waits."""
    return QueueConfig(
        max_queue_size=10,
        pacing_interval_ms=0,
        max_retries=3,
        base_delay_ms=1000,
        max_delay_ms=30000,
        request_timeout_seconds=1.0,
    )


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(ttl_seconds=300, max_size=3, max_releases_per_repo=1000)


@pytest.fixture
def fetch_config() -> FetchConfig:
    """Small pages: 2 releases per page, at most 3 pages."""
    return FetchConfig(per_page=2, max_results=6)


@pytest.fixture
def tracker(rate_limit_config: RateLimitConfig, wall_clock: WallClock) -> RateLimitTracker:
    return RateLimitTracker(rate_limit_config, clock=wall_clock)
