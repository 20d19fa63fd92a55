"""Tests for cadence metrics."""

import pytest

from github_release_stats.analytics import (
    NOT_APPLICABLE,
    Consistency,
    VelocityTrend,
)
from github_release_stats.analytics.metrics import (
    classify_consistency,
    interval_gaps,
    interval_stats,
    release_velocity,
    releases_per_month,
    round_half_up,
)
from tests.conftest import day
from tests.factories import make_release, releases_on_days


def on_days(*offsets: float):
    return releases_on_days(*((f"v1.{i}.0", d) for i, d in enumerate(offsets)))


class TestRounding:
    @pytest.mark.parametrize(("value", "expected"), [(2.5, 3), (2.49, 2), (0.5, 1), (3.0, 3)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


# -----------------------------------------------------------------------------
# Test: Intervals
# -----------------------------------------------------------------------------
class TestIntervals:
    """Tests for interval gaps and their statistics."""

    def test_gaps_are_chronological(self):
        """Input order does not matter."""
        releases = on_days(0, 10, 40)
        assert interval_gaps(list(reversed(releases))) == [10.0, 30.0]

    def test_stats(self):
        stats = interval_stats(on_days(0, 10, 40))

        assert stats.interval_count == 2
        assert stats.mean_days == 20.0
        assert stats.median_days == 20.0
        assert stats.stddev_days == 10.0  # population standard deviation
        assert stats.coefficient_of_variation == 50.0
        assert stats.consistency is Consistency.HIGH

    @pytest.mark.parametrize("releases", [[], on_days(0)])
    def test_fewer_than_two_releases(self, releases):
        """Every interval metric is the explicit not-applicable sentinel."""
        stats = interval_stats(releases)

        assert stats.interval_count == 0
        assert stats.mean_days is NOT_APPLICABLE
        assert stats.median_days is NOT_APPLICABLE
        assert stats.stddev_days is NOT_APPLICABLE
        assert stats.coefficient_of_variation is NOT_APPLICABLE
        assert stats.consistency is NOT_APPLICABLE

    def test_simultaneous_releases(self):
        """Zero mean gap yields CV 0 rather than a division error."""
        stats = interval_stats(on_days(5, 5, 5))
        assert stats.mean_days == 0.0
        assert stats.coefficient_of_variation == 0.0
        assert stats.consistency is Consistency.HIGH

    def test_cv_grows_with_irregularity(self):
        """Same mean gap, more spread, higher CV."""
        regular = interval_stats(on_days(0, 10, 20, 30, 40))
        uneven = interval_stats(on_days(0, 2, 4, 6, 40))
        erratic = interval_stats(on_days(0, 0.1, 0.2, 0.3, 40))

        assert regular.mean_days == uneven.mean_days == erratic.mean_days == 10.0
        assert (
            regular.coefficient_of_variation
            < uneven.coefficient_of_variation
            < erratic.coefficient_of_variation
        )

    @pytest.mark.parametrize(
        ("cv", "expected"),
        [
            (0.0, Consistency.HIGH),
            (99.99, Consistency.HIGH),
            (100.0, Consistency.MEDIUM),
            (199.99, Consistency.MEDIUM),
            (200.0, Consistency.LOW),
            (450.0, Consistency.LOW),
        ],
    )
    def test_classify_consistency(self, cv, expected):
        assert classify_consistency(cv) is expected

    def test_low_consistency(self):
        """One long gap among many short ones is inconsistent."""
        stats = interval_stats(on_days(0, 1, 2, 3, 4, 5, 6, 7, 8, 400))
        assert stats.consistency is Consistency.LOW


# -----------------------------------------------------------------------------
# Test: Releases per Month
# -----------------------------------------------------------------------------
class TestReleasesPerMonth:
    """Tests for the average monthly release rate."""

    def test_rate(self):
        # 3 releases over 40 days (1.31 months) = 2.28 -> 2
        assert releases_per_month(on_days(0, 10, 40)) == 2

    def test_rounds_half_up(self):
        # 2 releases over exactly 4 months = 0.5 -> 1
        releases = on_days(0, 4 * 30.4375)
        assert releases_per_month(releases) == 1

    def test_single_release(self):
        assert releases_per_month(on_days(0)) is NOT_APPLICABLE

    def test_zero_span(self):
        assert releases_per_month(on_days(3, 3)) is NOT_APPLICABLE


# -----------------------------------------------------------------------------
# Test: Velocity
# -----------------------------------------------------------------------------
class TestReleaseVelocity:
    """Tests for recent-vs-previous window velocity."""

    # Windows for reference day 200: recent (108.7, 200], previous (17.4, 108.7]
    REFERENCE = day(200)

    def test_decreasing(self):
        releases = on_days(20, 30, 40, 50, 60, 150, 160)
        velocity = release_velocity(releases, self.REFERENCE)

        assert velocity.trend is VelocityTrend.DECREASING
        assert velocity.recent_count == 2
        assert velocity.previous_count == 5
        assert velocity.change == -0.6
        assert velocity.confidence == 0.6

    def test_increasing_confidence_capped(self):
        releases = on_days(50, 120, 130, 140, 150, 160)
        velocity = release_velocity(releases, self.REFERENCE)

        assert velocity.trend is VelocityTrend.INCREASING
        assert velocity.change == 4.0
        assert velocity.confidence == 0.9

    def test_stable_within_threshold(self):
        """A 20% change is not yet a trend."""
        releases = on_days(20, 30, 40, 50, 60, 120, 130, 140, 150)
        velocity = release_velocity(releases, self.REFERENCE)

        assert velocity.trend is VelocityTrend.STABLE
        assert velocity.change == -0.2
        assert velocity.confidence == 0.7

    def test_empty_previous_window(self):
        """Without a baseline window the trend is stable, not increasing."""
        velocity = release_velocity(on_days(150, 160), self.REFERENCE)

        assert velocity.trend is VelocityTrend.STABLE
        assert velocity.recent_count == 2
        assert velocity.previous_count == 0
        assert velocity.change is None
        assert velocity.confidence == 0.7

    def test_new_project_defaults_to_stable(self):
        """Two releases ten days apart, measured at the latest one."""
        velocity = release_velocity(on_days(0, 10))

        assert velocity.trend is VelocityTrend.STABLE
        assert velocity.confidence == 0.7

    def test_both_windows_empty(self):
        velocity = release_velocity(on_days(0, 5), day(400))

        assert velocity.trend is VelocityTrend.STABLE
        assert velocity.recent_count == 0
        assert velocity.confidence == 0.7

    def test_reference_defaults_to_latest_release(self):
        velocity = release_velocity(on_days(0, 10, 40))

        assert velocity.recent_count == 3
        assert velocity.yearly_count == 3
        assert velocity.recent_per_month == 1.0

    def test_yearly_count(self):
        releases = on_days(0, 300, 390)
        velocity = release_velocity(releases, day(400))
        assert velocity.yearly_count == 2

    def test_too_few_releases(self):
        assert release_velocity([make_release()]) is NOT_APPLICABLE
