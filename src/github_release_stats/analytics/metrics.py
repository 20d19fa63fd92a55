"""Cadence metrics: intervals, consistency, rate and velocity.

All functions are pure and accept releases in any order.
"""

import math
import statistics
from collections.abc import Sequence
from datetime import datetime, timedelta

from github_release_stats.schemas.release import Release

from .schemas import (
    NOT_APPLICABLE,
    Consistency,
    IntervalStats,
    NotApplicable,
    ReleaseVelocity,
    VelocityTrend,
)
from .versions import chronological

# Average Gregorian month length in days
MONTH_DAYS = 30.4375
SECONDS_PER_DAY = 86400.0

# Coefficient of variation bounds (percent)
HIGH_CONSISTENCY_CV = 100.0
MEDIUM_CONSISTENCY_CV = 200.0

# Velocity classification
VELOCITY_WINDOW_MONTHS = 3
VELOCITY_CHANGE_THRESHOLD = 0.2
VELOCITY_MAX_CONFIDENCE = 0.9
VELOCITY_STABLE_CONFIDENCE = 0.7


def _days(delta: timedelta) -> float:
    return delta.total_seconds() / SECONDS_PER_DAY


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def interval_gaps(releases: Sequence[Release]) -> list[float]:
    """Day gaps between consecutive releases in chronological order."""
    ordered = chronological(releases)
    return [
        _days(later.published_at - earlier.published_at)
        for earlier, later in zip(ordered, ordered[1:], strict=False)
    ]


def classify_consistency(cv: float) -> Consistency:
    """Map a coefficient of variation (percent) to a consistency class."""
    if cv < HIGH_CONSISTENCY_CV:
        return Consistency.HIGH
    if cv < MEDIUM_CONSISTENCY_CV:
        return Consistency.MEDIUM
    return Consistency.LOW


def interval_stats(releases: Sequence[Release]) -> IntervalStats:
    """Mean/median/stddev of release gaps and the consistency class.

    Uses the population standard deviation. With fewer than two releases
    every metric is NOT_APPLICABLE.
    """
    gaps = interval_gaps(releases)
    if not gaps:
        return IntervalStats()

    mean = statistics.fmean(gaps)
    stddev = statistics.pstdev(gaps)
    cv = 0.0 if mean == 0 else stddev / mean * 100

    return IntervalStats(
        interval_count=len(gaps),
        mean_days=round(mean, 2),
        median_days=round(statistics.median(gaps), 2),
        stddev_days=round(stddev, 2),
        coefficient_of_variation=round(cv, 2),
        consistency=classify_consistency(cv),
    )


def releases_per_month(releases: Sequence[Release]) -> int | NotApplicable:
    """Total releases divided by the span in months, rounded half up.

    NOT_APPLICABLE with fewer than two releases or a zero-length span.
    """
    if len(releases) < 2:
        return NOT_APPLICABLE

    ordered = chronological(releases)
    span_days = _days(ordered[-1].published_at - ordered[0].published_at)
    if span_days <= 0:
        return NOT_APPLICABLE

    return round_half_up(len(ordered) / (span_days / MONTH_DAYS))


def _count_between(releases: Sequence[Release], start: datetime, end: datetime) -> int:
    # Half-open on the left: (start, end]
    return sum(1 for r in releases if start < r.published_at <= end)


def release_velocity(
    releases: Sequence[Release],
    reference: datetime | None = None,
) -> ReleaseVelocity | NotApplicable:
    """Compare the last 3 months of releases with the 3 months before.

    A relative change beyond 20% in either direction is a trend, with
    confidence equal to the change magnitude capped at 0.9; anything
    smaller is stable at confidence 0.7. An empty earlier window gives no
    baseline, so the trend is stable at 0.7 whatever the recent count.

    Args:
        releases: Releases in any order
        reference: End of the recent window; defaults to the latest release

    Returns:
        ReleaseVelocity, or NOT_APPLICABLE with fewer than two releases
    """
    if len(releases) < 2:
        return NOT_APPLICABLE

    ordered = chronological(releases)
    end = reference or ordered[-1].published_at
    window = timedelta(days=VELOCITY_WINDOW_MONTHS * MONTH_DAYS)

    recent = _count_between(ordered, end - window, end)
    previous = _count_between(ordered, end - 2 * window, end - window)
    yearly = _count_between(ordered, end - timedelta(days=12 * MONTH_DAYS), end)

    change: float | None = None
    if previous == 0:
        # No baseline to compare against
        trend, confidence = VelocityTrend.STABLE, VELOCITY_STABLE_CONFIDENCE
    else:
        change = (recent - previous) / previous
        if abs(change) > VELOCITY_CHANGE_THRESHOLD:
            trend = VelocityTrend.INCREASING if change > 0 else VelocityTrend.DECREASING
            confidence = min(VELOCITY_MAX_CONFIDENCE, abs(change))
        else:
            trend, confidence = VelocityTrend.STABLE, VELOCITY_STABLE_CONFIDENCE

    return ReleaseVelocity(
        trend=trend,
        confidence=round(confidence, 3),
        recent_count=recent,
        previous_count=previous,
        yearly_count=yearly,
        recent_per_month=round(recent / VELOCITY_WINDOW_MONTHS, 2),
        change=round(change, 3) if change is not None else None,
    )
