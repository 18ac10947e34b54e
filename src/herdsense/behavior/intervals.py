"""Interval construction, per-interval fusion and segment merging.

Each pair of adjacent resampled samples becomes one Interval. Intervals that
cannot be classified (non-positive or oversized time step, position outside
the fence) are skipped and their duration is reported as unknown time.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Sequence

from herdsense.behavior.classification import (
    MovementThresholds,
    classify_acc_movement,
    classify_gps_movement,
    classify_posture,
    dynamic_acceleration,
    simplify_behavior,
)
from herdsense.behavior.fusion import (
    ACC_OVERRIDE,
    CONSISTENT,
    GPS_OVERRIDE,
    LYING_ACTIVE,
    MINOR_INCONSISTENCY,
    STANDBY,
    UNCERTAIN,
    ZONE_OVERRIDE,
    FusionConfig,
    apply_zone_constraint,
    cross_validate,
    fuse_standby,
)
from herdsense.data.records import SECONDS_PER_DAY, Sample
from herdsense.geo.geometry import bearing, haversine
from herdsense.posture.fsm import UNKNOWN
from herdsense.utils.logging import get_logger

if TYPE_CHECKING:
    from herdsense.geo.zones import Facility

logger = get_logger("behavior.intervals")

DAY_START_SEC = 6 * 3600
DAY_END_SEC = 18 * 3600
MIN_BEARING_DISTANCE_M = 0.5


def is_daytime(second_of_day: float, day_start: int = DAY_START_SEC, day_end: int = DAY_END_SEC) -> bool:
    """True if a second of day falls in the day window [start, end)."""
    return day_start <= second_of_day < day_end


@dataclass
class Interval:
    """One classified step between two adjacent samples."""

    start_epoch: int
    end_epoch: int
    start_sec: int
    end_sec: int
    dt: int
    mid_sec: float
    lat: float
    lon: float
    prev_lat: float
    prev_lon: float
    distance_m: float
    speed_mps: float
    bearing_deg: float | None
    is_day: bool
    behavior: str
    final_behavior: str
    consistency: str
    confidence: float
    gps_movement: str
    acc_movement: str
    dynamic_g: float | None
    stand_by: bool
    interpolated: bool
    gps_moving: bool

    @property
    def hour(self) -> int:
        return min(23, max(0, int(self.mid_sec // 3600)))


@dataclass
class Segment:
    """Maximal run of contiguous intervals sharing one simplified behavior."""

    behavior: str
    start_sec: int
    end_sec: int
    start_epoch: int
    end_epoch: int
    duration_sec: int
    center_lat: float
    center_lon: float


@dataclass
class CrossValidationStats:
    """Consistency tag counters and the day's consistency score."""

    total: int = 0
    consistent: int = 0
    gps_override: int = 0
    acc_override: int = 0
    uncertain: int = 0
    minor_inconsistency: int = 0
    standby: int = 0
    zone_override: int = 0
    classified_sec: int = 0
    inconsistent_sec: int = 0

    @property
    def consistency_score(self) -> float:
        if self.classified_sec <= 0:
            return 1.0
        return 1.0 - self.inconsistent_sec / self.classified_sec

    def to_dict(self) -> dict:
        data = asdict(self)
        data["consistency_score"] = self.consistency_score
        return data


@dataclass
class IntervalResult:
    """Output of interval construction."""

    intervals: list[Interval] = field(default_factory=list)
    stats: CrossValidationStats = field(default_factory=CrossValidationStats)
    unknown_sec: int = 0
    skipped_invalid_time: int = 0
    skipped_outside_fence: int = 0


_TAG_COUNTERS = {
    CONSISTENT: "consistent",
    GPS_OVERRIDE: "gps_override",
    ACC_OVERRIDE: "acc_override",
    UNCERTAIN: "uncertain",
    MINOR_INCONSISTENCY: "minor_inconsistency",
    STANDBY: "standby",
    ZONE_OVERRIDE: "zone_override",
}


def _is_inconsistent(gps_moving: bool, acc_movement: str, acc_moving: bool, behavior: str, standby: bool) -> bool:
    if standby or acc_movement == UNKNOWN or behavior == LYING_ACTIVE:
        return False
    return gps_moving != acc_moving


def build_intervals(
    samples: Sequence[Sample],
    facility: Facility | None = None,
    thresholds: MovementThresholds | None = None,
    fusion: FusionConfig | None = None,
    max_gap_sec: int = 3600,
    day_start_sec: int = DAY_START_SEC,
    day_end_sec: int = DAY_END_SEC,
) -> IntervalResult:
    """Classify every adjacent sample pair.

    Args:
        samples: Resampled samples with posture annotations.
        facility: Optional ``Facility`` for fence and rest-zone checks.
        thresholds: Movement threshold ladders.
        fusion: Fusion configuration.
        max_gap_sec: Steps longer than this are skipped as unknown time.
        day_start_sec: Start of the day window.
        day_end_sec: End of the day window.

    Returns:
        IntervalResult with intervals, cross-validation stats and unknown time.
    """
    thresholds = thresholds or MovementThresholds()
    fusion = fusion or FusionConfig()
    result = IntervalResult()
    stats = result.stats

    for prev, curr in zip(samples[:-1], samples[1:]):
        dt = curr.epoch - prev.epoch
        if dt <= 0:
            result.skipped_invalid_time += 1
            continue
        if dt > max_gap_sec:
            result.skipped_invalid_time += 1
            result.unknown_sec += dt
            continue
        if facility is not None and not (
            facility.in_fence(prev.lat, prev.lon) and facility.in_fence(curr.lat, curr.lon)
        ):
            result.skipped_outside_fence += 1
            result.unknown_sec += dt
            continue

        distance = haversine(prev.lat, prev.lon, curr.lat, curr.lon)
        speed = distance / dt
        heading = bearing(prev.lat, prev.lon, curr.lat, curr.lon) if distance > MIN_BEARING_DISTANCE_M else None
        mid_sec = (prev.epoch + dt / 2.0) % SECONDS_PER_DAY
        is_day = is_daytime(mid_sec, day_start_sec, day_end_sec)

        dyn_g = dynamic_acceleration(curr, thresholds.acc_scale)
        posture = classify_posture(curr, thresholds)
        acc = classify_acc_movement(dyn_g, thresholds)
        standby = curr.stand_by or prev.stand_by

        if standby:
            gps = classify_gps_movement(0.0, dt, thresholds)
            fused = fuse_standby(posture, fusion)
        else:
            gps = classify_gps_movement(speed, dt, thresholds)
            fused = cross_validate(gps, acc, posture)

        gps_moving = not standby and gps.gps_moving
        in_rest = True if facility is None else facility.in_rest_zone(curr.lat, curr.lon)
        fused = apply_zone_constraint(fused, in_rest, gps_moving, fusion)

        stats.total += 1
        counter = _TAG_COUNTERS.get(fused.consistency)
        if counter is not None:
            setattr(stats, counter, getattr(stats, counter) + 1)
        stats.classified_sec += dt
        if _is_inconsistent(gps_moving, acc.movement, acc.acc_moving, fused.behavior, standby):
            stats.inconsistent_sec += dt

        result.intervals.append(
            Interval(
                start_epoch=prev.epoch,
                end_epoch=curr.epoch,
                start_sec=prev.second_of_day,
                end_sec=curr.second_of_day,
                dt=dt,
                mid_sec=mid_sec,
                lat=curr.lat,
                lon=curr.lon,
                prev_lat=prev.lat,
                prev_lon=prev.lon,
                distance_m=distance,
                speed_mps=speed,
                bearing_deg=heading,
                is_day=is_day,
                behavior=fused.behavior,
                final_behavior=simplify_behavior(fused.behavior),
                consistency=fused.consistency,
                confidence=fused.confidence,
                gps_movement=gps.movement,
                acc_movement=acc.movement,
                dynamic_g=dyn_g,
                stand_by=standby,
                interpolated=curr.interpolated,
                gps_moving=gps_moving,
            )
        )

    logger.debug(
        f"Intervals: {len(result.intervals)} classified, {result.skipped_invalid_time} invalid, "
        f"{result.skipped_outside_fence} outside fence, unknown={result.unknown_sec}s"
    )
    return result


def build_segments(intervals: Sequence[Interval]) -> list[Segment]:
    """Run-length merge intervals into behavior segments.

    A new segment starts when the simplified behavior changes or when the
    next interval does not start where the previous one ended.
    """
    segments: list[Segment] = []
    run: list[Interval] = []

    def _flush() -> None:
        if not run:
            return
        total = sum(iv.dt for iv in run)
        segments.append(
            Segment(
                behavior=run[0].final_behavior,
                start_sec=run[0].start_sec,
                end_sec=run[-1].end_sec,
                start_epoch=run[0].start_epoch,
                end_epoch=run[-1].end_epoch,
                duration_sec=total,
                center_lat=sum(iv.lat * iv.dt for iv in run) / total,
                center_lon=sum(iv.lon * iv.dt for iv in run) / total,
            )
        )
        run.clear()

    for interval in intervals:
        if run and (
            interval.final_behavior != run[-1].final_behavior or interval.start_epoch != run[-1].end_epoch
        ):
            _flush()
        run.append(interval)
    _flush()
    return segments
