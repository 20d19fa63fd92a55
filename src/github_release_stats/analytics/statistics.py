"""Release statistics aggregation.

Months are calendar months in UTC.
"""

from collections import Counter, defaultdict
from collections.abc import Iterator, Sequence
from datetime import datetime

from github_release_stats.schemas.release import Release

from .health import days_since_last_release, quality_score, release_health
from .metrics import interval_stats, release_velocity, releases_per_month
from .schemas import (
    NOT_APPLICABLE,
    MonthBucket,
    MostActivePeriod,
    NotApplicable,
    ReleaseStatistics,
)
from .versions import chronological, major_version_markers


def _month_of(moment: datetime) -> tuple[int, int]:
    return moment.year, moment.month


def _period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _months_between(first: tuple[int, int], last: tuple[int, int]) -> Iterator[tuple[int, int]]:
    year, month = first
    while (year, month) <= last:
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def monthly_histogram(releases: Sequence[Release]) -> list[MonthBucket]:
    """One bucket per calendar month spanned by the releases, newest first.

    Months without releases are included with a zero count. Each bucket
    lists the tags of the major-version releases published in it.
    """
    if not releases:
        return []

    ordered = chronological(releases)
    counts = Counter(_month_of(r.published_at) for r in ordered)

    majors: defaultdict[tuple[int, int], list[str]] = defaultdict(list)
    for marker in major_version_markers(ordered):
        majors[_month_of(marker.published_at)].append(marker.tag_name)

    buckets = [
        MonthBucket(
            period=_period(year, month),
            year=year,
            month=month,
            count=counts.get((year, month), 0),
            major_versions=tuple(majors.get((year, month), ())),
        )
        for year, month in _months_between(
            _month_of(ordered[0].published_at), _month_of(ordered[-1].published_at)
        )
    ]
    buckets.reverse()
    return buckets


def most_active_period(releases: Sequence[Release]) -> MostActivePeriod | NotApplicable:
    """Calendar month with the most releases; ties go to the earliest month.

    The monthly average counts only months that have at least one release.
    """
    if not releases:
        return NOT_APPLICABLE

    counts = Counter(_month_of(r.published_at) for r in releases)
    (year, month), count = min(counts.items(), key=lambda item: (-item[1], item[0]))
    return MostActivePeriod(
        period=_period(year, month),
        count=count,
        monthly_average=round(len(releases) / len(counts), 2),
    )


def compute_release_statistics(
    releases: Sequence[Release],
    reference: datetime | None = None,
    *,
    as_of: datetime | None = None,
) -> ReleaseStatistics:
    """Compute every statistic for a release list.

    Pure and deterministic: identical input yields identical output,
    which lets a cache entry store the result next to its releases.

    Args:
        releases: Releases in any order
        reference: End of the velocity window; defaults to the latest release
        as_of: Moment that recency is measured at; defaults to ``reference``.
            Without either, days since last release is not applicable.

    Returns:
        ReleaseStatistics
    """
    total = len(releases)
    if total == 0:
        return ReleaseStatistics(total_releases=0)

    ordered = chronological(releases)
    drafts = sum(1 for r in ordered if r.draft)
    prereleases = sum(1 for r in ordered if r.prerelease)
    intervals = interval_stats(ordered)
    prerelease_ratio = round(prereleases / total, 3)
    days_since = days_since_last_release(ordered, as_of or reference)
    score = quality_score(
        total_releases=total,
        mean_interval_days=intervals.mean_days,
        prerelease_ratio=prerelease_ratio,
        days_since=days_since,
    )

    return ReleaseStatistics(
        total_releases=total,
        draft_count=drafts,
        prerelease_count=prereleases,
        final_count=sum(1 for r in ordered if r.is_final),
        first_release_at=ordered[0].published_at,
        last_release_at=ordered[-1].published_at,
        intervals=intervals,
        releases_per_month=releases_per_month(ordered),
        velocity=release_velocity(ordered, reference),
        most_active_period=most_active_period(ordered),
        monthly_histogram=tuple(monthly_histogram(ordered)),
        major_versions=tuple(major_version_markers(ordered)),
        prerelease_ratio=prerelease_ratio,
        days_since_last_release=days_since,
        health=release_health(score, total),
    )
