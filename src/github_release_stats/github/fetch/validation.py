"""Per-record validation and sanitization of raw release data."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from github_release_stats.github.exceptions import ReleaseValidationError
from github_release_stats.logging import get_logger
from github_release_stats.schemas.github_api import GitHubRelease
from github_release_stats.schemas.release import Release

logger = get_logger(__name__)

_UNSAFE_BLOCKS = re.compile(
    r"<(script|style|iframe|object|embed)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_UNSAFE_TAGS = re.compile(r"</?(script|style|iframe|object|embed)\b[^>]*>", re.IGNORECASE)
_EVENT_HANDLERS = re.compile(
    r"""\s+on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""",
    re.IGNORECASE,
)
_JAVASCRIPT_URL = re.compile(r"javascript\s*:", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]*>")
_NAME_DISALLOWED = re.compile(r"[^\w\s\-.()\[\]#@!&+,=]")


def parse_release_record(record: Any, index: int) -> Release:
    """Validate one raw API record.

    Args:
        record: Raw JSON object from the releases endpoint
        index: Position in the fetched batch (for diagnostics)

    Returns:
        Validated Release

    Raises:
        ReleaseValidationError: If the record is malformed
    """
    record_id = record.get("id") if isinstance(record, dict) else None
    try:
        return GitHubRelease.model_validate(record).to_release()
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "record" for err in e.errors()})
        raise ReleaseValidationError(
            f"Release at index {index} failed validation: {', '.join(fields)}",
            index=index,
            record_id=record_id,
        ) from e


def validate_release_records(records: Sequence[Any]) -> tuple[list[Release], int]:
    """Validate records individually, dropping malformed ones.

    Args:
        records: Raw JSON objects

    Returns:
        Tuple of (valid releases, number of dropped records)
    """
    releases: list[Release] = []
    dropped = 0
    for index, record in enumerate(records):
        try:
            releases.append(parse_release_record(record, index))
        except ReleaseValidationError as e:
            dropped += 1
            logger.warning("Dropping malformed release (id={}): {}", e.record_id, e)
    return releases, dropped


def _strip_event_handlers(tag: re.Match[str]) -> str:
    return _EVENT_HANDLERS.sub("", tag.group(0))


def sanitize_body(body: str | None) -> str | None:
    """Remove executable markup from release notes.

    Strips script/style/iframe/object/embed elements, inline event
    handlers and javascript: URLs. Other markdown and HTML is kept.
    """
    if body is None:
        return None
    cleaned = _UNSAFE_BLOCKS.sub("", body)
    cleaned = _UNSAFE_TAGS.sub("", cleaned)
    cleaned = _ANY_TAG.sub(_strip_event_handlers, cleaned)
    cleaned = _JAVASCRIPT_URL.sub("", cleaned)
    cleaned = cleaned.strip()
    return cleaned or None


def sanitize_name(name: str | None) -> str | None:
    """Reduce a release title to plain text."""
    if name is None:
        return None
    cleaned = _UNSAFE_BLOCKS.sub("", name)
    cleaned = _ANY_TAG.sub("", cleaned)
    cleaned = _NAME_DISALLOWED.sub("", cleaned).strip()
    return cleaned or None


def sanitize_release(release: Release) -> Release:
    """Return a copy of a release with free-text fields sanitized."""
    return release.model_copy(
        update={
            "name": sanitize_name(release.name),
            "body": sanitize_body(release.body),
            "tag_name": release.tag_name.strip(),
        }
    )
