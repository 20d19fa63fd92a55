"""Release recency, quality score and health band.

The score starts at 50 and moves with cadence, prerelease share and how
recently the project shipped. It is clamped to 0..100 and mapped onto a
health band.
"""

from collections.abc import Sequence
from datetime import datetime

from github_release_stats.schemas.release import Release

from .metrics import round_half_up
from .schemas import NOT_APPLICABLE, HealthStatus, NotApplicable, ReleaseHealth

BASE_SCORE = 50

# (max mean interval in days, bonus)
CADENCE_BONUSES = ((30, 20), (90, 15), (180, 10))

# (min prerelease ratio, exclusive; penalty)
PRERELEASE_PENALTIES = ((0.5, 20), (0.3, 10))

# (max days since last release, bonus)
RECENCY_BONUSES = ((30, 10), (90, 5))
STALE_AFTER_DAYS = 365
STALE_PENALTY = 15

HEALTH_BANDS = (
    (
        80,
        HealthStatus.EXCELLENT,
        "Excellent release patterns with consistent, high-quality releases",
    ),
    (60, HealthStatus.GOOD, "Good release patterns with regular updates"),
    (40, HealthStatus.FAIR, "Fair release patterns, could be more consistent"),
)
POOR_DESCRIPTION = "Poor release patterns with long gaps between releases"


def days_since_last_release(
    releases: Sequence[Release], as_of: datetime | None
) -> int | NotApplicable:
    """Whole days between the newest release and ``as_of``.

    Not applicable without releases or without an ``as_of`` time, so the
    result never depends on the host clock.
    """
    if not releases or as_of is None:
        return NOT_APPLICABLE
    latest = max(r.published_at for r in releases)
    return abs(as_of - latest).days


def quality_score(
    *,
    total_releases: int,
    mean_interval_days: float | NotApplicable,
    prerelease_ratio: float | NotApplicable,
    days_since: int | NotApplicable,
) -> int:
    """Score a release pattern from 0 to 100 (0 when there are no releases)."""
    if total_releases == 0:
        return 0

    score = BASE_SCORE

    if mean_interval_days is not NOT_APPLICABLE:
        mean = round_half_up(mean_interval_days)
        if mean > 0:
            score += next((bonus for limit, bonus in CADENCE_BONUSES if mean <= limit), 0)

    if prerelease_ratio is not NOT_APPLICABLE:
        score -= next(
            (penalty for floor, penalty in PRERELEASE_PENALTIES if prerelease_ratio > floor), 0
        )

    if days_since is not NOT_APPLICABLE:
        score += next((bonus for limit, bonus in RECENCY_BONUSES if days_since <= limit), 0)
        if days_since > STALE_AFTER_DAYS:
            score -= STALE_PENALTY

    return max(0, min(100, score))


def release_health(score: int, total_releases: int) -> ReleaseHealth:
    """Map a quality score onto its health band."""
    for floor, status, description in HEALTH_BANDS:
        if score >= floor:
            return ReleaseHealth(status=status, score=score, description=description)
    if total_releases > 0:
        return ReleaseHealth(status=HealthStatus.POOR, score=score, description=POOR_DESCRIPTION)
    return ReleaseHealth(score=score)
