"""Enums for release fetch operations."""

from enum import Enum


class FetchStage(str, Enum):
    """Stages a single release fetch moves through.

    idle -> cache_check -> cache_hit -> done
    idle -> cache_check -> fetching -> validating -> sanitizing -> storing -> done
    """

    IDLE = "idle"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    FETCHING = "fetching"
    """Requesting pages through the request queue."""

    VALIDATING = "validating"
    """Parsing records individually; malformed ones are dropped."""

    SANITIZING = "sanitizing"
    """Stripping unsafe markup from free-text fields."""

    STORING = "storing"
    DONE = "done"
    FAILED = "failed"


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
