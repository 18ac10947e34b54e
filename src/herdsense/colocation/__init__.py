"""Co-location detection for HerdSense.

This module provides the dataset registry and pairwise proximity episodes.
"""

from herdsense.colocation.proximity import (
    AnimalPosition,
    CoLocationConfig,
    CoLocationEvent,
    detect_colocation,
    detect_pair_events,
    interpolate_position,
    overlap_window,
)
from herdsense.colocation.registry import (
    DATE_CODE_FORMAT,
    DatasetRegistry,
    dataset_name,
    parse_dataset_name,
    parse_date_code,
    prepare_track,
)

__all__ = [
    # Registry
    "DATE_CODE_FORMAT",
    "DatasetRegistry",
    "dataset_name",
    "parse_dataset_name",
    "parse_date_code",
    "prepare_track",
    # Proximity
    "CoLocationConfig",
    "CoLocationEvent",
    "AnimalPosition",
    "interpolate_position",
    "overlap_window",
    "detect_pair_events",
    "detect_colocation",
]
