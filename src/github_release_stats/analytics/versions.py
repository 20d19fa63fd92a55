"""Major-version detection from release tags."""

import re
from collections.abc import Sequence

from github_release_stats.schemas.release import Release

from .schemas import MajorVersionMarker

_LEADING_INT = re.compile(r"^(\d+)")


def chronological(releases: Sequence[Release]) -> list[Release]:
    """Sort releases oldest first (ties broken by release ID)."""
    return sorted(releases, key=lambda r: (r.published_at, r.id))


def parse_major_version(tag_name: str) -> int | None:
    """Leading integer of a tag after stripping a 'v'/'V' prefix.

    Examples:
        >>> parse_major_version("v2.1.0")
        2
        >>> parse_major_version("release-2") is None
        True
    """
    tag = tag_name.strip()
    if tag[:1] in ("v", "V"):
        tag = tag[1:]
    match = _LEADING_INT.match(tag)
    if match is None:
        return None
    return int(match.group(1))


def major_version_markers(releases: Sequence[Release]) -> list[MajorVersionMarker]:
    """Releases that raise the highest major version seen so far.

    Scans chronologically. The first release with a parseable major only
    sets the baseline. Tags without a leading integer are never major and
    do not affect the running maximum.

    Args:
        releases: Releases in any order

    Returns:
        Markers in chronological order
    """
    markers: list[MajorVersionMarker] = []
    highest: int | None = None

    for release in chronological(releases):
        major = parse_major_version(release.tag_name)
        if major is None:
            continue
        if highest is not None and major > highest:
            markers.append(
                MajorVersionMarker(
                    release_id=release.id,
                    tag_name=release.tag_name,
                    major=major,
                    published_at=release.published_at,
                )
            )
        if highest is None or major > highest:
            highest = major

    return markers
