"""Release analytics.

Pure functions deriving cadence statistics from a release list:
- Interval statistics and consistency classification
- Releases-per-month rate and velocity trend
- Monthly histogram (UTC) with major-version markers
- Most active period
- Days since last release, quality score and health band
"""

from .health import days_since_last_release, quality_score, release_health
from .metrics import (
    MONTH_DAYS,
    classify_consistency,
    interval_gaps,
    interval_stats,
    release_velocity,
    releases_per_month,
)
from .schemas import (
    NOT_APPLICABLE,
    Consistency,
    HealthStatus,
    IntervalStats,
    MajorVersionMarker,
    MonthBucket,
    MostActivePeriod,
    NotApplicable,
    ReleaseHealth,
    ReleaseStatistics,
    ReleaseVelocity,
    VelocityTrend,
)
from .statistics import compute_release_statistics, monthly_histogram, most_active_period
from .versions import chronological, major_version_markers, parse_major_version

__all__ = [
    # Health
    "days_since_last_release",
    "quality_score",
    "release_health",
    # Metrics
    "MONTH_DAYS",
    "classify_consistency",
    "interval_gaps",
    "interval_stats",
    "release_velocity",
    "releases_per_month",
    # Schemas
    "NOT_APPLICABLE",
    "Consistency",
    "HealthStatus",
    "IntervalStats",
    "MajorVersionMarker",
    "MonthBucket",
    "MostActivePeriod",
    "NotApplicable",
    "ReleaseHealth",
    "ReleaseStatistics",
    "ReleaseVelocity",
    "VelocityTrend",
    # Aggregation
    "compute_release_statistics",
    "monthly_histogram",
    "most_active_period",
    # Versions
    "chronological",
    "major_version_markers",
    "parse_major_version",
]
