"""Result objects for release fetch operations.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output.
"""

from dataclasses import dataclass, field
from typing import Any

from github_release_stats.analytics import ReleaseStatistics
from github_release_stats.schemas.release import Release

from .enums import FetchStage


@dataclass(frozen=True)
class ReleaseDataResult:
    """Result of fetching one repository's releases.

    Captures the releases, their statistics, and how they were obtained.
    """

    owner: str
    repo: str

    releases: tuple[Release, ...]
    """Validated, sanitized releases, newest first."""

    statistics: ReleaseStatistics
    """Statistics computed from exactly these releases."""

    from_cache: bool = False
    """True if served from the cache without any network call."""

    truncated: bool = False
    """True if pagination stopped at the page limit or upstream ceiling."""

    dropped_records: int = 0
    """Raw records dropped as malformed during validation."""

    pages_fetched: int = 0
    """Pages requested from GitHub (0 for cache hits)."""

    stages: tuple[FetchStage, ...] = field(default=())
    """Stages this fetch went through, in order."""

    @property
    def full_name(self) -> str:
        """Repository as owner/repo."""
        return f"{self.owner}/{self.repo}"

    def to_dict(self, *, include_releases: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Args:
            include_releases: Whether to include the release list itself

        Returns:
            Dict with all result data
        """
        result: dict[str, Any] = {
            "repository": self.full_name,
            "from_cache": self.from_cache,
            "truncated": self.truncated,
            "dropped_records": self.dropped_records,
            "pages_fetched": self.pages_fetched,
            "statistics": self.statistics.to_dict(),
        }
        if include_releases:
            result["releases"] = [r.to_dict() for r in self.releases]
        return result
