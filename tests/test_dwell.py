"""Tests for dwell zones, isolation and perimeter outliers."""

from __future__ import annotations

import numpy as np
import pytest

from herdsense.analysis import (
    DwellConfig,
    DwellPoint,
    IsolationConfig,
    cluster_dwell_zones,
    collect_perimeter_outliers,
    detect_isolation_events,
    detect_lying_zones,
    detect_standing_zones,
    outlier_threshold,
)
from herdsense.behavior import build_intervals
from herdsense.errors import ConfigurationError

CENTER = (50.0, 14.0)
# About 111 m north of the center
FAR_LAT = 50.001


class TestClusterDwellZones:
    """Tests for greedy dwell clustering."""

    @pytest.fixture
    def points(self):
        return [
            DwellPoint(50.0, 14.0, 100, 0, 100),
            DwellPoint(50.00005, 14.0, 300, 100, 400),
            DwellPoint(50.001, 14.0, 200, 400, 600),
            DwellPoint(50.01, 14.0, 60, 600, 660),
        ]

    def test_nearby_points_merge(self, points):
        """Test points within the radius share a weighted centroid."""
        clusters = cluster_dwell_zones(points)

        assert [c.total_dwell_sec for c in clusters] == [400, 200]
        assert clusters[0].lat == pytest.approx(50.0000375)
        assert clusters[0].sample_count == 2
        assert clusters[0].start_sec == 0
        assert clusters[0].end_sec == 400

    def test_short_clusters_dropped(self, points):
        """Test clusters below the minimum dwell are discarded."""
        clusters = cluster_dwell_zones(points, DwellConfig(min_duration_sec=250))
        assert len(clusters) == 1

    def test_deterministic(self, points):
        """Test the same order always yields the same clusters."""
        assert cluster_dwell_zones(points) == cluster_dwell_zones(list(points))


class TestDetectZones:
    """Tests for lying and standing zones from intervals."""

    def test_lying_zone(self, make_samples):
        """Test a long lying period forms one zone."""
        intervals = build_intervals(make_samples(range(36000, 36610, 10), acc=(1024, 0, 0))).intervals
        stationary = sum(iv.dt for iv in intervals if iv.final_behavior == "lying")

        zones = detect_lying_zones(intervals)

        assert len(zones) == 1
        assert zones[0].total_dwell_sec == 600
        assert sum(z.total_dwell_sec for z in zones) <= stationary
        assert detect_lying_zones(intervals, "night") == []
        assert detect_standing_zones(intervals) == []

    def test_standing_zone(self, make_samples):
        """Test a still standing period forms one zone."""
        intervals = build_intervals(make_samples(range(36000, 36310, 10), acc=(0, 0, 1024))).intervals
        zones = detect_standing_zones(intervals, "day")
        assert len(zones) == 1
        assert zones[0].total_dwell_sec == 300

    def test_unknown_period(self, make_samples):
        """Test an unknown period is a configuration error."""
        intervals = build_intervals(make_samples([36000, 36010])).intervals
        with pytest.raises(ConfigurationError):
            detect_lying_zones(intervals, "evening")


class TestIsolation:
    """Tests for isolation episodes."""

    def test_sustained_isolation(self, make_samples):
        """Test a long stay far from the center is reported once."""
        near = make_samples(range(35000, 36000, 10))
        far = make_samples(range(36000, 38010, 10), lat=FAR_LAT)
        intervals = build_intervals(near + far).intervals

        events = detect_isolation_events(intervals, CENTER)

        assert len(events) == 1
        assert events[0].duration_sec >= 2000
        assert events[0].max_distance_m == pytest.approx(111.19, abs=0.1)
        assert events[0].avg_lat == pytest.approx(FAR_LAT)

    def test_short_excursion_ignored(self, make_samples):
        """Test short stays are not isolation."""
        far = make_samples(range(36000, 36600, 10), lat=FAR_LAT)
        intervals = build_intervals(far).intervals
        assert detect_isolation_events(intervals, CENTER) == []
        assert len(detect_isolation_events(intervals, CENTER, IsolationConfig(min_duration_sec=300))) == 1

    def test_gap_splits_episodes(self, make_samples):
        """Test episodes never bridge a gap between intervals."""
        first = make_samples(range(36000, 37010, 10), lat=FAR_LAT)
        second = make_samples(range(45000, 46010, 10), lat=FAR_LAT)
        intervals = build_intervals(first + second, max_gap_sec=3600).intervals

        events = detect_isolation_events(intervals, CENTER)

        assert events == []


class TestPerimeterOutliers:
    """Tests for perimeter-outlier episodes."""

    def test_threshold(self):
        """Test percentile threshold with the distance floor."""
        assert outlier_threshold(np.arange(100.0)) == pytest.approx(85.0)
        assert outlier_threshold(np.full(10, 5.0)) == pytest.approx(30.0)
        assert outlier_threshold(np.zeros(0)) is None

    def test_outlier_episode(self, make_samples):
        """Test the far end of the day's range becomes an outlier episode."""
        near = make_samples(range(36000, 37010, 10))
        far = make_samples(range(37010, 37210, 10), lat=FAR_LAT)
        intervals = build_intervals(near + far).intervals

        events = collect_perimeter_outliers(intervals, CENTER)

        assert len(events) == 1
        assert events[0].lat == pytest.approx(FAR_LAT)
        assert events[0].duration_sec >= 60
        assert events[0].is_day

    def test_no_intervals(self):
        """Test empty input."""
        assert collect_perimeter_outliers([], CENTER) == []
