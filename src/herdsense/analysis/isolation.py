"""Isolation and perimeter-outlier episodes.

Both detectors merge consecutive qualifying intervals into episodes.
Episodes are measured on the epoch axis and never bridge a gap between
non-contiguous intervals.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np

from herdsense.behavior.intervals import Interval
from herdsense.geo.geometry import LatLon, haversine_array


@dataclass
class IsolationConfig:
    """Configuration for isolation and perimeter-outlier detection.

    Attributes:
        distance_m: Distance from the facility center counting as isolated.
        min_duration_sec: Shortest reported isolation episode.
        outlier_percentile: Percentile of distance-from-center used as the
            perimeter-outlier threshold.
        outlier_floor_m: Lower bound of the perimeter-outlier threshold.
        outlier_min_duration_sec: Shortest reported outlier episode.
    """

    distance_m: float = 50.0
    min_duration_sec: int = 1800
    outlier_percentile: float = 0.85
    outlier_floor_m: float = 30.0
    outlier_min_duration_sec: int = 60


@dataclass
class IsolationEvent:
    start_sec: int
    end_sec: int
    start_epoch: int
    end_epoch: int
    duration_sec: int
    max_distance_m: float
    avg_lat: float
    avg_lon: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class OutlierEvent:
    start_sec: int
    end_sec: int
    start_epoch: int
    end_epoch: int
    duration_sec: int
    lat: float
    lon: float
    is_day: bool

    def to_dict(self) -> dict:
        return asdict(self)


def distances_from_center(intervals: Sequence[Interval], center: LatLon) -> np.ndarray:
    """Distance of each interval's end point from the center, in meters."""
    if not intervals:
        return np.zeros(0)
    lats = np.fromiter((iv.lat for iv in intervals), dtype=np.float64, count=len(intervals))
    lons = np.fromiter((iv.lon for iv in intervals), dtype=np.float64, count=len(intervals))
    return haversine_array(center[0], center[1], lats, lons)


def _runs(flags: Sequence[bool], intervals: Sequence[Interval], split_on_day: bool = False) -> list[list[int]]:
    runs: list[list[int]] = []
    current: list[int] = []
    for i, flag in enumerate(flags):
        if not flag:
            if current:
                runs.append(current)
                current = []
            continue
        if current:
            prev = intervals[current[-1]]
            if prev.end_epoch != intervals[i].start_epoch or (split_on_day and prev.is_day != intervals[i].is_day):
                runs.append(current)
                current = []
        current.append(i)
    if current:
        runs.append(current)
    return runs


def detect_isolation_events(
    intervals: Sequence[Interval],
    center: LatLon,
    config: IsolationConfig | None = None,
) -> list[IsolationEvent]:
    """Sustained stays farther than ``distance_m`` from the facility center.

    Args:
        intervals: Classified intervals in time order.
        center: Facility center ``(lat, lon)``.
        config: Detector configuration.

    Returns:
        Episodes lasting at least ``min_duration_sec``.
    """
    config = config or IsolationConfig()
    dists = distances_from_center(intervals, center)
    events: list[IsolationEvent] = []

    for run in _runs(dists > config.distance_m, intervals):
        first, last = intervals[run[0]], intervals[run[-1]]
        duration = last.end_epoch - first.start_epoch
        if duration < config.min_duration_sec:
            continue
        events.append(
            IsolationEvent(
                start_sec=first.start_sec,
                end_sec=last.end_sec,
                start_epoch=first.start_epoch,
                end_epoch=last.end_epoch,
                duration_sec=duration,
                max_distance_m=float(dists[run].max()),
                avg_lat=float(np.mean([intervals[i].lat for i in run])),
                avg_lon=float(np.mean([intervals[i].lon for i in run])),
            )
        )
    return events


def outlier_threshold(distances: np.ndarray, config: IsolationConfig | None = None) -> float | None:
    """Perimeter-outlier distance threshold, or None without data."""
    config = config or IsolationConfig()
    finite = np.sort(distances[np.isfinite(distances)])
    if len(finite) == 0:
        return None
    idx = min(len(finite) - 1, int(np.floor(len(finite) * config.outlier_percentile)))
    return max(config.outlier_floor_m, float(finite[idx]))


def collect_perimeter_outliers(
    intervals: Sequence[Interval],
    center: LatLon,
    config: IsolationConfig | None = None,
) -> list[OutlierEvent]:
    """Episodes at or beyond the day's high-percentile distance from center.

    Episodes are split whenever day/night status changes.

    Returns:
        Episodes lasting at least ``outlier_min_duration_sec``, each with its
        dwell-weighted position.
    """
    config = config or IsolationConfig()
    dists = distances_from_center(intervals, center)
    threshold = outlier_threshold(dists, config)
    if threshold is None:
        return []

    events: list[OutlierEvent] = []
    for run in _runs(dists >= threshold, intervals, split_on_day=True):
        first, last = intervals[run[0]], intervals[run[-1]]
        duration = last.end_epoch - first.start_epoch
        if duration < config.outlier_min_duration_sec:
            continue
        weight = sum(intervals[i].dt for i in run)
        events.append(
            OutlierEvent(
                start_sec=first.start_sec,
                end_sec=last.end_sec,
                start_epoch=first.start_epoch,
                end_epoch=last.end_epoch,
                duration_sec=duration,
                lat=sum(intervals[i].lat * intervals[i].dt for i in run) / weight,
                lon=sum(intervals[i].lon * intervals[i].dt for i in run) / weight,
                is_day=first.is_day,
            )
        )
    return events
