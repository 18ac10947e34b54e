"""Tests for record parsing and the cleaning stage."""

from __future__ import annotations

import pandas as pd
import pytest

from herdsense.data import (
    CleaningConfig,
    RawRecord,
    clean_records,
    filter_retry_records,
    fix_midnight_crossing,
    format_clock,
    parse_record,
    parse_time_of_day,
    records_from_frame,
)
from herdsense.errors import InsufficientDataError, ParseError


class TestParsing:
    """Tests for field parsers."""

    def test_time_of_day(self):
        """Test clock strings with and without seconds."""
        assert parse_time_of_day("00:00:00") == 0
        assert parse_time_of_day("12:30:15") == 45015
        assert parse_time_of_day("06:00") == 21600

    @pytest.mark.parametrize("value", ["", None, "25:00:00", "12:61:00", "noon", "12"])
    def test_time_of_day_rejects(self, value):
        """Test malformed and out-of-range clocks."""
        with pytest.raises(ParseError):
            parse_time_of_day(value)

    def test_format_clock(self):
        """Test second-of-day formatting wraps at midnight."""
        assert format_clock(45015) == "12:30:15"
        assert format_clock(86400 + 61) == "00:01:01"

    def test_parse_record(self, day_epoch):
        """Test a well-formed record."""
        record = parse_record(RawRecord("10:00:00", "14.12.2025", "50.1", "14.2", "0", "12", "1024"))
        assert record.epoch == day_epoch + 36000
        assert record.time_of_day == 36000
        assert record.lat == pytest.approx(50.1)
        assert record.acc_z == 1024
        assert record.has_acc

    def test_bad_acc_is_kept_without_acc(self):
        """Test unusable accelerometer values do not drop the record."""
        record = parse_record(RawRecord("10:00:00", "14.12.2025", 50.1, 14.2, "x", None, ""))
        assert not record.has_acc
        assert record.magnitude is None

    def test_bad_coordinate_is_parse_error(self):
        """Test invalid coordinates raise."""
        with pytest.raises(ParseError):
            parse_record(RawRecord("10:00:00", "14.12.2025", "abc", 14.2))

    def test_records_from_frame(self):
        """Test DataFrame conversion and column checks."""
        frame = pd.DataFrame(
            {
                "timestamp": ["10:00:00"],
                "date": ["14.12.2025"],
                "gps_lat": [50.0],
                "gps_lon": [14.0],
            }
        )
        records = records_from_frame(frame)
        assert len(records) == 1
        assert records[0].lat == 50.0

        with pytest.raises(ValueError):
            records_from_frame(frame.drop(columns=["gps_lon"]))


class TestMidnightFix:
    """Tests for the missed-midnight rollover repair."""

    def test_moves_early_records_forward(self, make_records, day_epoch):
        """Test records after a late-to-early jump move to the next day."""
        raws = make_records([23 * 3600 + 3500, 23 * 3600 + 3590, 30, 90])
        parsed = [parse_record(r) for r in raws]

        fixed = fix_midnight_crossing(parsed)

        assert fixed == 2
        assert parsed[2].epoch == day_epoch + 86400 + 30
        assert parsed[3].date_fixed
        assert parsed[1].epoch < parsed[2].epoch

    def test_noop_without_backward_jump(self, make_records):
        """Test a monotonic day is left untouched."""
        parsed = [parse_record(r) for r in make_records([3600, 7200, 50000, 80000])]
        before = [p.epoch for p in parsed]

        assert fix_midnight_crossing(parsed) == 0
        assert [p.epoch for p in parsed] == before


class TestRetryFilter:
    """Tests for retransmission removal."""

    def test_removes_stale_records(self, make_records):
        """Test a record far behind the running maximum is dropped."""
        parsed = [parse_record(r) for r in make_records([36000, 36010, 35000, 36020, 35900])]

        kept, removed = filter_retry_records(parsed, max_backward_jump_sec=300)

        assert [r.time_of_day for r in removed] == [35000]
        # 35900 is only 120 s behind the maximum
        assert [r.time_of_day for r in kept] == [36000, 36010, 36020, 35900]

    def test_idempotent(self, make_records):
        """Test filtering its own output removes nothing."""
        parsed = [parse_record(r) for r in make_records([36000, 30000, 36010, 20000, 36500])]
        kept, _ = filter_retry_records(parsed)
        kept_again, removed_again = filter_retry_records(kept)

        assert removed_again == []
        assert kept_again == kept


class TestCleanRecords:
    """Tests for the full cleaning stage."""

    def test_sorted_output_and_stats(self, make_records):
        """Test parse errors are counted and output is sorted."""
        raws = make_records([36010, 36000, 36020])
        raws.append(RawRecord("bad", "14.12.2025", 50.0, 14.0))

        samples, stats = clean_records(raws)

        assert [s.second_of_day for s in samples] == [36000, 36010, 36020]
        assert stats.total_records == 4
        assert stats.parse_errors == 1
        assert stats.kept == 3

    def test_fake_gps_filtered_by_fence(self, make_records, square_facility):
        """Test records outside every fence are counted as fake GPS."""
        raws = make_records([36000, 36010, 36020], lat=[50.0, 48.0, 50.0])

        samples, stats = clean_records(raws, fences=square_facility.fences)

        assert stats.fake_gps_records == 1
        assert len(samples) == 2

    def test_all_fake_gps_is_insufficient(self, make_records, square_facility):
        """Test a day entirely outside the fence cannot be analyzed."""
        raws = make_records([36000, 36010, 36020], lat=48.0)

        with pytest.raises(InsufficientDataError) as excinfo:
            clean_records(raws, fences=square_facility.fences)

        assert excinfo.value.stats is not None
        assert excinfo.value.stats.fake_gps_records == 3
        assert excinfo.value.stats.kept == 0

    def test_min_samples(self, make_records):
        """Test the minimum sample requirement is configurable."""
        raws = make_records([36000, 36010])
        with pytest.raises(InsufficientDataError):
            clean_records(raws, config=CleaningConfig(min_samples=3))
