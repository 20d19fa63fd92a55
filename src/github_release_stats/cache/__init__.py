"""In-memory caching of fetched releases."""

from .release_cache import CacheEntry, CacheKey, CacheStats, ReleaseCache

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "ReleaseCache",
]
