"""Tests for 24-hour time accounting."""

from __future__ import annotations

import pytest

from herdsense.analysis import account_day, totals_from_intervals
from herdsense.behavior import build_intervals

DAY = 86_400


class TestAccountDay:
    """Tests for reconciling behavior durations into one day."""

    def test_shortfall_goes_to_unknown(self):
        """Test missing time is attributed to unknown, never to lying."""
        totals = account_day({"lying": 3600, "standing": 1800, "walking": 600})

        assert totals.lying_sec == 3600
        assert totals.standing_sec == 1800
        assert totals.walking_sec == 600
        assert totals.unknown_sec == DAY - 6000
        assert totals.total_sec == DAY

    def test_excess_is_shrunk_proportionally(self):
        """Test an over-full day shrinks known behaviors by their share."""
        totals = account_day({"lying": 50_000, "standing": 30_000, "walking": 20_000}, unknown_sec=10_000)

        assert totals.unknown_sec == 10_000
        assert totals.lying_sec == 38_200
        assert totals.standing_sec == 22_920
        assert totals.walking_sec == 15_280
        assert totals.total_sec == DAY

    def test_unknown_is_clamped(self):
        """Test unknown time never exceeds the day."""
        totals = account_day({"lying": 1000}, unknown_sec=100_000)
        assert totals.unknown_sec == DAY
        assert totals.lying_sec == 0

    def test_pairs_are_summed(self):
        """Test an iterable of pairs accumulates per behavior."""
        totals = account_day([("lying", 10), ("lying", 20), ("walking", 5)])
        assert totals.lying_sec == 30
        assert totals.walking_sec == 5

    def test_unknown_behavior_rejected(self):
        """Test behaviors outside lying/standing/walking are rejected."""
        with pytest.raises(ValueError):
            account_day({"flying": 10})

    @pytest.mark.parametrize(
        "known,unknown",
        [
            ({"lying": 0, "standing": 0, "walking": 0}, 0),
            ({"lying": 33_333.3, "standing": 33_333.3, "walking": 33_333.3}, 0),
            ({"lying": 86_399, "standing": 7, "walking": 1}, 5),
            ({"lying": 12_345, "standing": 67_890, "walking": 11_111}, 9_999),
        ],
    )
    def test_always_sums_to_one_day(self, known, unknown):
        """Test the four totals add up to exactly one day."""
        assert account_day(known, unknown).total_sec == DAY

    def test_share(self):
        """Test fraction of the day."""
        totals = account_day({"lying": DAY / 2})
        assert totals.share("lying") == pytest.approx(0.5)
        assert totals.share("unknown") == pytest.approx(0.5)


class TestTotalsFromIntervals:
    """Tests for accounting classified intervals."""

    def test_intervals_and_unknown(self, make_samples):
        """Test interval durations and skipped gaps are accounted."""
        lying = make_samples(range(36000, 36610, 10), acc=(1024, 0, 0))
        standing = make_samples(range(40000, 40310, 10), acc=(0, 0, 1024))
        result = build_intervals(lying + standing, max_gap_sec=3000)

        totals = totals_from_intervals(result.intervals, result.unknown_sec)

        assert totals.lying_sec == 600
        assert totals.standing_sec == 300
        assert totals.walking_sec == 0
        assert totals.total_sec == DAY
