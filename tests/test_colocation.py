"""Tests for the dataset registry and co-location detection."""

from __future__ import annotations

from datetime import date

import pytest

from herdsense.colocation import (
    CoLocationConfig,
    DatasetRegistry,
    dataset_name,
    detect_colocation,
    detect_pair_events,
    interpolate_position,
    overlap_window,
    parse_dataset_name,
    parse_date_code,
    prepare_track,
)
from herdsense.errors import ConfigurationError, NoOverlapError, ParseError

DAY = date(2025, 12, 14)
THREE_METERS_LAT = 3.0 / 111_194.93
TWO_PM = 14 * 3600


@pytest.fixture
def close_pair(make_samples):
    """Two tracks within 3 m of each other for 90 s from 14:00, then 111 m apart."""
    seconds = list(range(TWO_PM, TWO_PM + 201))
    track_a = make_samples(seconds)
    lats = [50.0 + THREE_METERS_LAT if s <= TWO_PM + 90 else 50.001 for s in seconds]
    track_b = make_samples(seconds, lat=lats)
    return track_a, track_b


class TestDatasetNames:
    """Tests for dataset naming."""

    def test_round_trip(self):
        """Test names are built and split consistently."""
        name = dataset_name(227, DAY)
        assert name == "ID227_141225"
        assert parse_dataset_name(name) == ("227", DAY)

    @pytest.mark.parametrize("name", ["227_141225", "ID227-141225", "ID227_1412", "ID_141225"])
    def test_invalid_names(self, name):
        """Test malformed names are rejected."""
        with pytest.raises(ParseError):
            parse_dataset_name(name)

    def test_invalid_date_code(self):
        """Test impossible dates are rejected."""
        with pytest.raises(ParseError):
            parse_date_code("321325")


class TestDatasetRegistry:
    """Tests for the track registry."""

    @pytest.fixture
    def registry(self, make_samples):
        registry = DatasetRegistry()
        registry.add(1, DAY, make_samples([36010, 36000]))
        registry.add("2", DAY, make_samples([36000]))
        registry.add_named("ID3_141225", make_samples([36000]))
        registry.add("1", date(2025, 12, 15), make_samples([36000]))
        registry.add("4", DAY, [])
        return registry

    def test_lookup(self, registry):
        """Test keys are stringified and tracks sorted."""
        track = registry.get(1, DAY)
        assert [s.second_of_day for s in track] == [36000, 36010]
        assert ("3", DAY) in registry
        assert registry.get("9", DAY) is None
        assert len(registry) == 5

    def test_dates_animals_pairs(self, registry):
        """Test per-date animals skip empty tracks."""
        assert registry.dates() == [DAY, date(2025, 12, 15)]
        assert registry.animals(DAY) == ["1", "2", "3"]
        assert registry.pairs(DAY) == [("1", "2"), ("1", "3"), ("2", "3")]
        assert registry.pairs(date(2025, 12, 15)) == []

    def test_filter_dates(self, registry):
        """Test inclusive date filtering."""
        filtered = registry.filter_dates(start=date(2025, 12, 15))
        assert filtered.dates() == [date(2025, 12, 15)]
        assert len(registry.filter_dates(DAY, DAY)) == 4

    def test_prepare_track(self, make_records):
        """Test raw records become a 1 Hz track."""
        track = prepare_track(make_records([36000, 36005]))
        assert len(track) == 6


class TestInterpolatePosition:
    """Tests for track interpolation."""

    @pytest.fixture
    def track(self, make_samples):
        return make_samples([36000, 36010, 37000], lat=[50.0, 50.001, 50.002])

    def test_linear(self, track):
        """Test positions between samples are interpolated."""
        lat, lon = interpolate_position(track, track[0].epoch + 5)
        assert lat == pytest.approx(50.0005)
        assert lon == pytest.approx(14.0)

    def test_exact_sample(self, track):
        """Test a query on a sample returns it."""
        assert interpolate_position(track, track[1].epoch) == (50.001, 14.0)
        assert interpolate_position(track, track[-1].epoch) == (50.002, 14.0)

    def test_outside_bounds(self, track):
        """Test queries before or after the track."""
        assert interpolate_position(track, track[0].epoch - 1) is None
        assert interpolate_position(track, track[-1].epoch + 1) is None
        assert interpolate_position([], 0) is None

    def test_wide_gap(self, track):
        """Test no position inside a gap wider than the limit."""
        assert interpolate_position(track, track[1].epoch + 100, max_gap_sec=300) is None
        assert interpolate_position(track, track[1].epoch + 100, max_gap_sec=1000) is not None


class TestDetectPairEvents:
    """Tests for pairwise co-location episodes."""

    def test_single_daytime_event(self, close_pair):
        """Test 90 s within 3 m gives one daytime event."""
        track_a, track_b = close_pair

        events = detect_pair_events("A", track_a, "B", track_b, date_code="141225")

        assert len(events) == 1
        event = events[0]
        assert event.pair_id == "A x B"
        assert event.period == "day"
        assert 85 <= event.duration_sec <= 91
        assert event.start_clock == "14:00:00"
        assert event.avg_distance_m == pytest.approx(3.0, abs=0.05)
        assert event.min_distance_m <= event.avg_distance_m <= event.max_distance_m
        assert [p.animal_id for p in event.positions] == ["A", "B"]
        assert event.to_dict()["date_code"] == "141225"

    def test_short_event_dropped(self, close_pair):
        """Test episodes below the minimum duration are not reported."""
        track_a, track_b = close_pair
        config = CoLocationConfig(min_duration_sec=120)
        assert detect_pair_events("A", track_a, "B", track_b, config) == []

    def test_night_event(self, make_samples):
        """Test an episode starting before 06:00 is a night event."""
        seconds = list(range(3600, 3800))
        events = detect_pair_events("A", make_samples(seconds), "B", make_samples(seconds))
        assert len(events) == 1
        assert events[0].period == "night"
        assert events[0].min_distance_m == 0.0

    def test_no_overlap(self, make_samples):
        """Test tracks without a shared window give no events."""
        track_a = make_samples(range(3600, 3700))
        track_b = make_samples(range(7200, 7300))
        with pytest.raises(NoOverlapError):
            overlap_window(track_a, track_b)
        assert detect_pair_events("A", track_a, "B", track_b) == []

    def test_invalid_config(self):
        """Test non-positive steps are rejected."""
        with pytest.raises(ConfigurationError):
            CoLocationConfig(step_sec=0)
        with pytest.raises(ConfigurationError):
            CoLocationConfig(distance_m=-1.0)


class TestDetectColocation:
    """Tests for registry-wide detection."""

    def test_all_pairs(self, close_pair, make_samples):
        """Test events of every pair sharing a date are collected."""
        track_a, track_b = close_pair
        registry = DatasetRegistry()
        registry.add("A", DAY, track_a)
        registry.add("B", DAY, track_b)
        registry.add("C", DAY, make_samples(range(TWO_PM, TWO_PM + 201), lat=50.01))

        events = detect_colocation(registry)

        assert len(events) == 1
        assert events[0].pair_id == "A x B"
        assert events[0].date_code == "141225"
