"""In-memory release cache with TTL expiry and LRU eviction.

Entries are keyed by repository and query options. All operations are
synchronous and never touch the network.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

from github_release_stats.analytics import ReleaseStatistics
from github_release_stats.config import CacheConfig, get_settings
from github_release_stats.schemas.release import Release, ReleaseQueryOptions

logger = logging.getLogger(__name__)

# Monotonic clock in seconds
Clock = Callable[[], float]


class CacheKey(NamedTuple):
    """Normalized cache key."""

    owner: str
    repo: str
    options_hash: str

    @classmethod
    def build(
        cls,
        owner: str,
        repo: str,
        options: ReleaseQueryOptions | None = None,
    ) -> CacheKey:
        """Lowercase the repository and hash the options."""
        options = options or ReleaseQueryOptions()
        return cls(owner.strip().lower(), repo.strip().lower(), options.fingerprint())

    @property
    def full_name(self) -> str:
        """Repository as owner/repo."""
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class CacheEntry:
    """Immutable snapshot of one cache entry.

    Timestamps are readings of the cache's monotonic clock.
    """

    key: CacheKey
    releases: tuple[Release, ...]
    statistics: ReleaseStatistics
    created_at: float
    last_access_at: float
    access_count: int


@dataclass
class _Slot:
    releases: tuple[Release, ...]
    statistics: ReleaseStatistics
    created_at: float
    last_access_at: float
    access_count: int = 0

    def snapshot(self, key: CacheKey) -> CacheEntry:
        return CacheEntry(
            key=key,
            releases=self.releases,
            statistics=self.statistics,
            created_at=self.created_at,
            last_access_at=self.last_access_at,
            access_count=self.access_count,
        )


@dataclass(frozen=True)
class CacheStats:
    """Cache statistics for diagnostics."""

    hit_rate: float
    """Hits / (hits + misses), 0.0 before any lookup."""

    size: int
    """Number of live entries."""

    oldest_entry_age: float
    """Age in seconds of the oldest entry (0.0 when empty)."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    max_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "hit_rate": round(self.hit_rate, 3),
            "size": self.size,
            "max_size": self.max_size,
            "oldest_entry_age": round(self.oldest_entry_age, 1),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }


class ReleaseCache:
    """TTL + LRU cache of fetched releases and their statistics.

    The underlying OrderedDict is kept in access order: the first entry
    is always the least recently accessed one.

    Usage:
        cache = ReleaseCache(CacheConfig.preset("production"))
        entry = cache.get("facebook", "react", options)
        if entry is None:
            cache.set("facebook", "react", options, releases, statistics)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            config: Optional cache configuration (uses settings if not provided)
            clock: Optional monotonic clock in seconds (defaults to time.monotonic)
        """
        self._config = config or get_settings().cache
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[CacheKey, _Slot] = OrderedDict()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def config(self) -> CacheConfig:
        """The active cache configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------
    def get(
        self,
        owner: str,
        repo: str,
        options: ReleaseQueryOptions | None = None,
    ) -> CacheEntry | None:
        """Look up an entry, purging expired entries first.

        Args:
            owner: Repository owner (case-insensitive)
            repo: Repository name (case-insensitive)
            options: Query options the entry was stored with

        Returns:
            Snapshot of the entry, or None on a miss
        """
        self._purge_expired()

        key = CacheKey.build(owner, repo, options)
        slot = self._entries.get(key)
        if slot is None:
            self._misses += 1
            logger.debug("Cache miss for %s", key.full_name)
            return None

        slot.last_access_at = self._clock()
        slot.access_count += 1
        self._entries.move_to_end(key)
        self._hits += 1
        logger.debug("Cache hit for %s (access_count=%d)", key.full_name, slot.access_count)
        return slot.snapshot(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, CacheKey):
            return False
        slot = self._entries.get(key)
        return slot is not None and not self._is_expired(slot, self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------
    def truncate(self, releases: Sequence[Release]) -> tuple[Release, ...]:
        """Keep the newest max_releases_per_repo releases, newest first."""
        ordered = sorted(releases, key=lambda r: (r.published_at, r.id), reverse=True)
        return tuple(ordered[: self._config.max_releases_per_repo])

    def set(
        self,
        owner: str,
        repo: str,
        options: ReleaseQueryOptions | None,
        releases: Sequence[Release],
        statistics: ReleaseStatistics,
    ) -> CacheEntry:
        """Store releases and their statistics.

        Expired entries are swept first. When the cache is full and the key
        is new, exactly one least recently accessed entry is evicted.

        Args:
            owner: Repository owner (case-insensitive)
            repo: Repository name (case-insensitive)
            options: Query options the releases were fetched with
            releases: Releases to store (truncated to the per-repo cap)
            statistics: Statistics computed from those releases

        Returns:
            Snapshot of the stored entry
        """
        self._purge_expired()

        key = CacheKey.build(owner, repo, options)
        stored = self.truncate(releases)
        if len(stored) < len(releases):
            logger.info(
                "Truncated %s to %d cached releases (had %d)",
                key.full_name,
                len(stored),
                len(releases),
            )

        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._config.max_size:
            self._evict_lru()

        now = self._clock()
        slot = _Slot(
            releases=stored,
            statistics=statistics,
            created_at=now,
            last_access_at=now,
        )
        self._entries[key] = slot
        return slot.snapshot(key)

    def invalidate(
        self,
        owner: str,
        repo: str,
        options: ReleaseQueryOptions | None = None,
    ) -> bool:
        """Remove one entry.

        Returns:
            True if an entry was removed
        """
        key = CacheKey.build(owner, repo, options)
        return self._entries.pop(key, None) is not None

    def invalidate_older_than(self, max_age_seconds: float) -> int:
        """Remove entries created more than max_age_seconds ago.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        stale = [k for k, s in self._entries.items() if now - s.created_at > max_age_seconds]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        """Remove every entry and reset statistics."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _is_expired(self, slot: _Slot, now: float) -> bool:
        return now - slot.created_at > self._config.ttl_seconds

    def _purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, s in self._entries.items() if self._is_expired(s, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    def _evict_lru(self) -> None:
        key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug("Evicted least recently used cache entry %s", key.full_name)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------
    def cached_repositories(self) -> list[str]:
        """Repositories with a live entry, as owner/repo."""
        now = self._clock()
        names = {k.full_name for k, s in self._entries.items() if not self._is_expired(s, now)}
        return sorted(names)

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        lookups = self._hits + self._misses
        now = self._clock()
        oldest = max((now - s.created_at for s in self._entries.values()), default=0.0)
        return CacheStats(
            hit_rate=self._hits / lookups if lookups else 0.0,
            size=len(self._entries),
            oldest_entry_age=oldest,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            max_size=self._config.max_size,
        )

    def export(self) -> dict[str, Any]:
        """Dump cache contents for debugging."""
        now = self._clock()
        return {
            "stats": self.get_stats().to_dict(),
            "entries": [
                {
                    "repository": key.full_name,
                    "options_hash": key.options_hash,
                    "releases": len(slot.releases),
                    "age_seconds": round(now - slot.created_at, 1),
                    "access_count": slot.access_count,
                    "expired": self._is_expired(slot, now),
                }
                for key, slot in self._entries.items()
            ],
        }
