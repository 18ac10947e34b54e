"""Dwell-zone clustering of stationary behavior.

A single greedy pass assigns each point to the nearest existing cluster if
it lies within ``radius_m`` of that cluster's centroid, otherwise opens a new
cluster. The result depends on point order: the same order always yields the
same clusters.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

from herdsense.behavior.intervals import Interval
from herdsense.errors import ConfigurationError
from herdsense.geo.geometry import haversine

PERIODS = ("all", "day", "night")


@dataclass
class DwellConfig:
    """Configuration for dwell-zone clustering.

    Attributes:
        radius_m: Maximum distance between a point and the cluster centroid.
        min_duration_sec: Clusters with less accumulated dwell are dropped.
    """

    radius_m: float = 10.0
    min_duration_sec: float = 180.0


@dataclass(frozen=True)
class DwellPoint:
    lat: float
    lon: float
    dt: float
    start_sec: int
    end_sec: int


@dataclass
class DwellCluster:
    """Dwell-time weighted centroid of nearby stationary points."""

    lat: float
    lon: float
    total_dwell_sec: float
    sample_count: int
    start_sec: int
    end_sec: int

    def absorb(self, point: DwellPoint) -> None:
        total = self.total_dwell_sec + point.dt
        if total > 0:
            self.lat = (self.lat * self.total_dwell_sec + point.lat * point.dt) / total
            self.lon = (self.lon * self.total_dwell_sec + point.lon * point.dt) / total
        self.total_dwell_sec = total
        self.sample_count += 1
        self.start_sec = min(self.start_sec, point.start_sec)
        self.end_sec = max(self.end_sec, point.end_sec)

    def to_dict(self) -> dict:
        return asdict(self)


def cluster_dwell_zones(points: Iterable[DwellPoint], config: DwellConfig | None = None) -> list[DwellCluster]:
    """Greedy single-pass clustering of dwell points.

    Args:
        points: Points in processing order.
        config: Clustering configuration.

    Returns:
        Clusters with at least ``min_duration_sec`` dwell, longest first.
    """
    config = config or DwellConfig()
    clusters: list[DwellCluster] = []

    for point in points:
        best: DwellCluster | None = None
        best_dist = float("inf")
        for cluster in clusters:
            d = haversine(cluster.lat, cluster.lon, point.lat, point.lon)
            if d < best_dist:
                best_dist = d
                best = cluster

        if best is not None and best_dist <= config.radius_m:
            best.absorb(point)
        else:
            clusters.append(
                DwellCluster(
                    lat=point.lat,
                    lon=point.lon,
                    total_dwell_sec=point.dt,
                    sample_count=1,
                    start_sec=point.start_sec,
                    end_sec=point.end_sec,
                )
            )

    significant = [c for c in clusters if c.total_dwell_sec >= config.min_duration_sec]
    significant.sort(key=lambda c: c.total_dwell_sec, reverse=True)
    return significant


def _period_filter(intervals: Sequence[Interval], period: str) -> list[Interval]:
    if period not in PERIODS:
        raise ConfigurationError(f"Unknown period: {period}. Use one of {PERIODS}")
    if period == "day":
        return [iv for iv in intervals if iv.is_day]
    if period == "night":
        return [iv for iv in intervals if not iv.is_day]
    return list(intervals)


def _to_points(intervals: Iterable[Interval]) -> list[DwellPoint]:
    return [DwellPoint(iv.lat, iv.lon, iv.dt, iv.start_sec, iv.end_sec) for iv in intervals]


def detect_lying_zones(
    intervals: Sequence[Interval],
    period: str = "all",
    config: DwellConfig | None = None,
) -> list[DwellCluster]:
    """Dwell zones of lying intervals."""
    selected = [iv for iv in _period_filter(intervals, period) if iv.final_behavior == "lying"]
    return cluster_dwell_zones(_to_points(selected), config)


def detect_standing_zones(
    intervals: Sequence[Interval],
    period: str = "all",
    config: DwellConfig | None = None,
) -> list[DwellCluster]:
    """Dwell zones of standing intervals where GPS reported no movement."""
    selected = [
        iv
        for iv in _period_filter(intervals, period)
        if iv.final_behavior == "standing" and not iv.gps_moving
    ]
    return cluster_dwell_zones(_to_points(selected), config)
