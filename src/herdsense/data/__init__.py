"""Data ingestion for HerdSense.

This module provides record parsing, cleaning, 1 Hz resampling and the
signal filters used by the posture extractor.
"""

from herdsense.data.cleaning import (
    CleaningConfig,
    CleaningStats,
    clean_records,
    filter_retry_records,
    fix_midnight_crossing,
)
from herdsense.data.filters import butterworth_lowpass, sliding_variance
from herdsense.data.records import (
    SECONDS_PER_DAY,
    ParsedRecord,
    PostureContext,
    RawRecord,
    Sample,
    format_clock,
    parse_date_epoch,
    parse_record,
    parse_time_of_day,
    records_from_dicts,
    records_from_frame,
)
from herdsense.data.resampling import (
    ResampleConfig,
    ResampleStats,
    StandByAnalysis,
    StandByPeriod,
    analyze_standby_periods,
    is_standby_gap,
    resample_to_1hz,
    segment_by_gaps,
)

__all__ = [
    # Records
    "SECONDS_PER_DAY",
    "RawRecord",
    "ParsedRecord",
    "Sample",
    "PostureContext",
    "parse_time_of_day",
    "format_clock",
    "parse_date_epoch",
    "parse_record",
    "records_from_dicts",
    "records_from_frame",
    # Cleaning
    "CleaningConfig",
    "CleaningStats",
    "clean_records",
    "fix_midnight_crossing",
    "filter_retry_records",
    # Resampling
    "ResampleConfig",
    "ResampleStats",
    "StandByPeriod",
    "StandByAnalysis",
    "is_standby_gap",
    "resample_to_1hz",
    "analyze_standby_periods",
    "segment_by_gaps",
    # Filters
    "butterworth_lowpass",
    "sliding_variance",
]
