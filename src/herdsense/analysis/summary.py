"""Daily summaries derived from classified intervals.

Hourly behavior budgets, distance walked, activity level, two-hour speed
profile, heading per time-of-day window, fence crossings and the point /
heat-weight arrays consumed by map renderers.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Sequence

import numpy as np
import pandas as pd

from herdsense.behavior.intervals import Interval
from herdsense.geo.geometry import circular_mean, direction8, haversine

if TYPE_CHECKING:
    from herdsense.geo.zones import Facility

HEAT_WEIGHTS = {"lying": 0.95, "walking": 0.55, "standing": 0.45}

DIRECTION_WINDOWS = {
    "morning": (6 * 3600, 10 * 3600),
    "midday": (10 * 3600, 14 * 3600),
    "afternoon": (14 * 3600, 18 * 3600),
}

MIN_DIRECTION_DISTANCE_M = 2.0
MIN_CROSSING_SPACING_M = 20.0


@dataclass
class Heading:
    degrees: float | None
    direction: str | None
    intervals_used: int


@dataclass
class FenceCrossing:
    """Movement from one fence polygon into another."""

    epoch: int
    second_of_day: int
    from_fence: int
    to_fence: int
    lat: float
    lon: float
    bearing_deg: float | None
    is_day: bool


@dataclass
class PointSet:
    """GPS points and heat points split by day and night."""

    gps_day: list[tuple[float, float]] = field(default_factory=list)
    gps_night: list[tuple[float, float]] = field(default_factory=list)
    heat_day: list[tuple[float, float, float]] = field(default_factory=list)
    heat_night: list[tuple[float, float, float]] = field(default_factory=list)

    @property
    def gps(self) -> list[tuple[float, float]]:
        return self.gps_day + self.gps_night

    @property
    def heat(self) -> list[tuple[float, float, float]]:
        return self.heat_day + self.heat_night


@dataclass
class DailySummary:
    """Aggregates of one animal-day beyond the 24 h accounting."""

    hourly_sec: dict[str, list[float]]
    total_distance_m: float
    day_distance_m: float
    night_distance_m: float
    rms_dynamic_g: float
    mean_energy_g: float
    hourly_rms_g: list[float]
    hourly_energy_g: list[float]
    speed_bins_2h: list[float]
    headings: dict[str, Heading]
    max_distance_from_center_m: float
    standby_lying_sec: int
    fence_crossings: list[FenceCrossing] = field(default_factory=list)
    points: PointSet = field(default_factory=PointSet)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["points"] = {"gps": len(self.points.gps), "heat": len(self.points.heat)}
        return data


def hourly_behavior(intervals: Sequence[Interval]) -> dict[str, list[float]]:
    """Seconds per simplified behavior for each hour of the day."""
    hourly = {b: [0.0] * 24 for b in HEAT_WEIGHTS}
    for iv in intervals:
        hourly[iv.final_behavior][iv.hour] += iv.dt
    return hourly


def distance_walked(intervals: Sequence[Interval]) -> tuple[float, float, float]:
    """Total, day and night distance over GPS-moving intervals."""
    day = sum(iv.distance_m for iv in intervals if iv.gps_moving and iv.is_day)
    night = sum(iv.distance_m for iv in intervals if iv.gps_moving and not iv.is_day)
    return day + night, day, night


def activity_levels(intervals: Sequence[Interval]) -> tuple[float, float, list[float], list[float]]:
    """Dwell-weighted RMS and mean of dynamic acceleration, overall and hourly.

    Returns:
        Tuple of (rms, mean energy, hourly rms, hourly energy sums).
    """
    sq_sum = 0.0
    weight = 0.0
    energy = 0.0
    hourly_sq = np.zeros(24)
    hourly_w = np.zeros(24)
    hourly_energy = np.zeros(24)
    for iv in intervals:
        if iv.dynamic_g is None:
            continue
        sq_sum += iv.dynamic_g**2 * iv.dt
        weight += iv.dt
        energy += iv.dynamic_g * iv.dt
        hourly_sq[iv.hour] += iv.dynamic_g**2 * iv.dt
        hourly_w[iv.hour] += iv.dt
        hourly_energy[iv.hour] += iv.dynamic_g * iv.dt

    total_dt = sum(iv.dt for iv in intervals)
    rms = math.sqrt(sq_sum / weight) if weight > 0 else 0.0
    mean_energy = energy / total_dt if total_dt > 0 else 0.0
    with np.errstate(invalid="ignore", divide="ignore"):
        hourly_rms = np.where(hourly_w > 0, np.sqrt(hourly_sq / np.maximum(hourly_w, 1e-12)), 0.0)
    return rms, mean_energy, hourly_rms.tolist(), hourly_energy.tolist()


def bins_2h(values: Sequence[float], mid_secs: Sequence[float], weights: Sequence[float]) -> list[float]:
    """Weighted mean of a value in twelve two-hour bins."""
    sums = np.zeros(12)
    totals = np.zeros(12)
    for v, mid, w in zip(values, mid_secs, weights):
        if v is None or not math.isfinite(v) or w <= 0:
            continue
        b = min(11, max(0, int(mid // 7200)))
        sums[b] += v * w
        totals[b] += w
    return np.where(totals > 0, sums / np.maximum(totals, 1e-12), 0.0).tolist()


def average_direction(intervals: Sequence[Interval], from_sec: int, to_sec: int) -> Heading:
    """Circular mean heading of intervals moving at least 2 m in a window."""
    bearings = [
        iv.bearing_deg
        for iv in intervals
        if from_sec <= iv.mid_sec < to_sec and iv.distance_m >= MIN_DIRECTION_DISTANCE_M and iv.bearing_deg is not None
    ]
    mean = circular_mean(bearings)
    return Heading(mean, direction8(mean), len(bearings))


def detect_fence_crossings(intervals: Sequence[Interval], facility: Facility) -> list[FenceCrossing]:
    """Moves between fence polygons, thinned to one per 20 m."""
    crossings: list[FenceCrossing] = []
    if len(facility.fences) < 2:
        return crossings

    for iv in intervals:
        src = facility.fence_index(iv.prev_lat, iv.prev_lon)
        dst = facility.fence_index(iv.lat, iv.lon)
        if src is None or dst is None or src == dst:
            continue
        mid_lat = (iv.prev_lat + iv.lat) / 2
        mid_lon = (iv.prev_lon + iv.lon) / 2
        if crossings:
            last = crossings[-1]
            if (last.from_fence, last.to_fence) == (src, dst) and haversine(last.lat, last.lon, mid_lat, mid_lon) < MIN_CROSSING_SPACING_M:
                continue
        crossings.append(
            FenceCrossing(
                epoch=iv.end_epoch,
                second_of_day=iv.end_sec,
                from_fence=src,
                to_fence=dst,
                lat=mid_lat,
                lon=mid_lon,
                bearing_deg=iv.bearing_deg,
                is_day=iv.is_day,
            )
        )
    return crossings


def collect_points(intervals: Sequence[Interval]) -> PointSet:
    """GPS points for intervals ending on a tracker fix, heat points for every interval."""
    points = PointSet()
    for iv in intervals:
        heat = (iv.lat, iv.lon, HEAT_WEIGHTS[iv.final_behavior])
        (points.heat_day if iv.is_day else points.heat_night).append(heat)
        if not iv.interpolated:
            (points.gps_day if iv.is_day else points.gps_night).append((iv.lat, iv.lon))
    return points


def summarize_day(
    intervals: Sequence[Interval],
    facility: Facility | None = None,
    activity_center: tuple[float, float] | None = None,
) -> DailySummary:
    """Compute all daily aggregates.

    Args:
        intervals: Classified intervals in time order.
        facility: Optional facility for fence crossings.
        activity_center: Reference point for the maximum-distance metric;
            defaults to the mean position of the intervals.
    """
    total, day, night = distance_walked(intervals)
    rms, energy, hourly_rms, hourly_energy = activity_levels(intervals)

    if intervals:
        if activity_center is None:
            activity_center = (
                float(np.mean([iv.lat for iv in intervals])),
                float(np.mean([iv.lon for iv in intervals])),
            )
        max_dist = max(haversine(activity_center[0], activity_center[1], iv.lat, iv.lon) for iv in intervals)
    else:
        max_dist = 0.0

    return DailySummary(
        hourly_sec=hourly_behavior(intervals),
        total_distance_m=total,
        day_distance_m=day,
        night_distance_m=night,
        rms_dynamic_g=rms,
        mean_energy_g=energy,
        hourly_rms_g=hourly_rms,
        hourly_energy_g=hourly_energy,
        speed_bins_2h=bins_2h(
            [iv.speed_mps for iv in intervals],
            [iv.mid_sec for iv in intervals],
            [iv.dt for iv in intervals],
        ),
        headings={name: average_direction(intervals, lo, hi) for name, (lo, hi) in DIRECTION_WINDOWS.items()},
        max_distance_from_center_m=max_dist,
        standby_lying_sec=sum(iv.dt for iv in intervals if iv.stand_by and iv.final_behavior == "lying"),
        fence_crossings=detect_fence_crossings(intervals, facility) if facility is not None else [],
        points=collect_points(intervals),
    )


def intervals_to_frame(intervals: Sequence[Interval]) -> pd.DataFrame:
    """Tabular view of intervals, one row per interval."""
    if not intervals:
        return pd.DataFrame(columns=list(Interval.__dataclass_fields__))
    return pd.DataFrame([asdict(iv) for iv in intervals])
