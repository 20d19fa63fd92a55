"""Pydantic schemas for derived release statistics.

Every metric that cannot be computed from the available data is the
explicit ``NotApplicable.NOT_APPLICABLE`` sentinel, never 0 or NaN.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from github_release_stats.schemas.base import FrozenSchema


class NotApplicable(StrEnum):
    """Sentinel for metrics that need more data than is available."""

    NOT_APPLICABLE = "n/a"


NOT_APPLICABLE = NotApplicable.NOT_APPLICABLE


class Consistency(StrEnum):
    """Release cadence consistency, from the coefficient of variation."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class VelocityTrend(StrEnum):
    """Direction of the recent release rate."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class MonthBucket(FrozenSchema):
    """Release count for one calendar month (UTC)."""

    period: str = Field(description="Month as YYYY-MM")
    year: int
    month: int = Field(ge=1, le=12)
    count: int = Field(ge=0)
    major_versions: tuple[str, ...] = Field(
        default=(), description="Tags of major-version releases in this month"
    )


class MajorVersionMarker(FrozenSchema):
    """A release that introduced a new highest major version."""

    release_id: int
    tag_name: str
    major: int = Field(ge=0)
    published_at: datetime


class IntervalStats(FrozenSchema):
    """Day gaps between consecutive releases."""

    interval_count: int = Field(default=0, ge=0)
    mean_days: float | NotApplicable = NOT_APPLICABLE
    median_days: float | NotApplicable = NOT_APPLICABLE
    stddev_days: float | NotApplicable = NOT_APPLICABLE
    coefficient_of_variation: float | NotApplicable = NOT_APPLICABLE
    consistency: Consistency | NotApplicable = NOT_APPLICABLE


class ReleaseVelocity(FrozenSchema):
    """Recent release rate compared with the preceding window."""

    trend: VelocityTrend
    confidence: float = Field(ge=0.0, le=1.0)
    recent_count: int = Field(ge=0, description="Releases in the last 3 months")
    previous_count: int = Field(ge=0, description="Releases in the 3 months before that")
    yearly_count: int = Field(ge=0, description="Releases in the last 12 months")
    recent_per_month: float = Field(ge=0.0)
    change: float | None = Field(
        default=None, description="Relative change; None when the previous window is empty"
    )


class MostActivePeriod(FrozenSchema):
    """The calendar month with the most releases."""

    period: str
    count: int = Field(ge=1)
    monthly_average: float = Field(
        ge=0.0, description="Releases per month, over months with at least one release"
    )


class HealthStatus(StrEnum):
    """Overall release health band, from the quality score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    INACTIVE = "inactive"


class ReleaseHealth(FrozenSchema):
    """Quality score (0-100) of the release pattern and its band."""

    status: HealthStatus = HealthStatus.INACTIVE
    score: int = Field(default=0, ge=0, le=100)
    description: str = "No releases found for this repository"


class ReleaseStatistics(FrozenSchema):
    """All statistics derived from one release list."""

    total_releases: int = Field(ge=0)
    draft_count: int = Field(default=0, ge=0)
    prerelease_count: int = Field(default=0, ge=0)
    final_count: int = Field(default=0, ge=0)
    first_release_at: datetime | NotApplicable = NOT_APPLICABLE
    last_release_at: datetime | NotApplicable = NOT_APPLICABLE
    intervals: IntervalStats = Field(default_factory=IntervalStats)
    releases_per_month: int | NotApplicable = NOT_APPLICABLE
    velocity: ReleaseVelocity | NotApplicable = NOT_APPLICABLE
    most_active_period: MostActivePeriod | NotApplicable = NOT_APPLICABLE
    monthly_histogram: tuple[MonthBucket, ...] = ()
    major_versions: tuple[MajorVersionMarker, ...] = ()
    prerelease_ratio: float | NotApplicable = NOT_APPLICABLE
    days_since_last_release: int | NotApplicable = Field(
        default=NOT_APPLICABLE, description="Whole days from the latest release to the as-of time"
    )
    health: ReleaseHealth = Field(default_factory=ReleaseHealth)

    @property
    def mean_interval_days(self) -> float | NotApplicable:
        """Average days between releases."""
        return self.intervals.mean_days

    @property
    def consistency(self) -> Consistency | NotApplicable:
        """Cadence consistency classification."""
        return self.intervals.consistency

    @property
    def quality_score(self) -> int:
        """Release pattern quality score (0-100)."""
        return self.health.score
