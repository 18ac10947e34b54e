"""Gap-aware 1 Hz resampling.

Every gap up to ``max_gap_sec`` between consecutive cleaned samples is filled
with one synthetic sample per second. Gaps inside the StandBy window are
treated as device sleep: position and acceleration are held at the earlier
sample. Larger gaps are left open and reported so that their duration ends
up as unknown time.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Sequence

from herdsense.data.records import SECONDS_PER_DAY, Sample
from herdsense.utils.logging import get_logger

logger = get_logger("data.resampling")


@dataclass
class ResampleConfig:
    """Configuration for the 1 Hz resampler.

    Attributes:
        max_gap_sec: Largest gap that is filled; larger gaps are skipped.
        standby_min_sec: Shortest gap treated as device sleep.
        standby_max_sec: Longest gap treated as device sleep.
    """

    max_gap_sec: int = 3600
    standby_min_sec: int = 60
    standby_max_sec: int = 3600


@dataclass
class ResampleStats:
    """Counters describing one resampling run."""

    original_samples: int = 0
    output_samples: int = 0
    interpolated_samples: int = 0
    standby_samples: int = 0
    skipped_gaps: int = 0
    skipped_duration_sec: int = 0
    non_positive_gaps: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class StandByPeriod:
    """One device-sleep gap in the cleaned sequence."""

    start_epoch: int
    end_epoch: int
    duration_sec: int
    lat: float
    lon: float


@dataclass
class StandByAnalysis:
    """StandBy gaps of a sequence with aggregate statistics."""

    periods: list[StandByPeriod] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.periods)

    @property
    def total_sec(self) -> int:
        return sum(p.duration_sec for p in self.periods)

    @property
    def longest_sec(self) -> int:
        return max((p.duration_sec for p in self.periods), default=0)

    @property
    def average_sec(self) -> float:
        return self.total_sec / self.count if self.periods else 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "total_sec": self.total_sec,
            "longest_sec": self.longest_sec,
            "average_sec": self.average_sec,
        }


def is_standby_gap(gap_sec: float, config: ResampleConfig | None = None) -> bool:
    """True if a gap's duration lies in the StandBy window (inclusive)."""
    config = config or ResampleConfig()
    return config.standby_min_sec <= gap_sec <= config.standby_max_sec


def _interpolate_acc(s0: Sample, s1: Sample, t: float, hold: bool) -> tuple[float | None, float | None, float | None]:
    if hold:
        source = s0 if s0.has_acc else s1
        return (source.acc_x, source.acc_y, source.acc_z) if source.has_acc else (None, None, None)
    if not (s0.has_acc and s1.has_acc):
        return None, None, None
    return (
        float(round(s0.acc_x + (s1.acc_x - s0.acc_x) * t)),
        float(round(s0.acc_y + (s1.acc_y - s0.acc_y) * t)),
        float(round(s0.acc_z + (s1.acc_z - s0.acc_z) * t)),
    )


def resample_to_1hz(
    samples: Sequence[Sample],
    config: ResampleConfig | None = None,
) -> tuple[list[Sample], ResampleStats]:
    """Fill gaps between consecutive samples at one sample per second.

    Args:
        samples: Cleaned samples sorted by epoch.
        config: Resampler configuration.

    Returns:
        Tuple of (resampled sequence, statistics). Original samples keep
        ``interpolated=False``; inserted samples carry ``interpolated=True``
        and ``stand_by`` set to the gap's classification. Samples sharing an
        epoch with the previous output sample are collapsed.
    """
    config = config or ResampleConfig()
    stats = ResampleStats(original_samples=len(samples))
    if len(samples) < 2:
        out = [replace(s, interpolated=False, stand_by=False, posture=None) for s in samples]
        stats.output_samples = len(out)
        return out, stats

    out: list[Sample] = []

    def _push_original(s: Sample) -> None:
        if out and out[-1].epoch == s.epoch:
            return
        out.append(
            Sample(
                second_of_day=s.epoch % SECONDS_PER_DAY,
                epoch=s.epoch,
                lat=s.lat,
                lon=s.lon,
                acc_x=s.acc_x,
                acc_y=s.acc_y,
                acc_z=s.acc_z,
                interpolated=False,
                stand_by=False,
            )
        )

    for s0, s1 in zip(samples[:-1], samples[1:]):
        _push_original(s0)
        gap = s1.epoch - s0.epoch

        if gap <= 0:
            stats.non_positive_gaps += 1
            if gap < 0:
                logger.warning(f"Non-positive gap {gap}s at epoch {s0.epoch}")
            continue
        if gap > config.max_gap_sec:
            stats.skipped_gaps += 1
            stats.skipped_duration_sec += gap
            logger.debug(f"Skipping interpolation for {gap}s gap at epoch {s0.epoch}")
            continue
        if gap <= 1:
            continue

        standby = is_standby_gap(gap, config)
        for epoch in range(s0.epoch + 1, s1.epoch):
            t = (epoch - s0.epoch) / gap
            if standby:
                lat, lon = s0.lat, s0.lon
            else:
                lat = s0.lat + (s1.lat - s0.lat) * t
                lon = s0.lon + (s1.lon - s0.lon) * t
            ax, ay, az = _interpolate_acc(s0, s1, t, hold=standby)
            out.append(
                Sample(
                    second_of_day=epoch % SECONDS_PER_DAY,
                    epoch=epoch,
                    lat=lat,
                    lon=lon,
                    acc_x=ax,
                    acc_y=ay,
                    acc_z=az,
                    interpolated=True,
                    stand_by=standby,
                )
            )
            stats.interpolated_samples += 1
            if standby:
                stats.standby_samples += 1

    _push_original(samples[-1])
    stats.output_samples = len(out)

    logger.debug(
        f"Interpolation: {stats.original_samples} original -> {stats.output_samples} total "
        f"({stats.interpolated_samples} interpolated, {stats.standby_samples} StandBy)"
    )
    if stats.skipped_gaps:
        logger.info(
            f"Skipped {stats.skipped_gaps} gaps totaling {stats.skipped_duration_sec}s"
        )
    return out, stats


def analyze_standby_periods(
    samples: Sequence[Sample],
    config: ResampleConfig | None = None,
) -> StandByAnalysis:
    """List the StandBy gaps of a cleaned (not yet resampled) sequence."""
    config = config or ResampleConfig()
    analysis = StandByAnalysis()
    for s0, s1 in zip(samples[:-1], samples[1:]):
        gap = s1.epoch - s0.epoch
        if is_standby_gap(gap, config):
            analysis.periods.append(
                StandByPeriod(
                    start_epoch=s0.epoch,
                    end_epoch=s1.epoch,
                    duration_sec=gap,
                    lat=s0.lat,
                    lon=s0.lon,
                )
            )
    return analysis


def segment_by_gaps(samples: Sequence[Sample], max_gap_sec: int = 3600) -> list[list[Sample]]:
    """Split a sequence into continuous runs at gaps larger than ``max_gap_sec``."""
    segments: list[list[Sample]] = []
    current: list[Sample] = []
    for sample in samples:
        if current and sample.epoch - current[-1].epoch > max_gap_sec:
            segments.append(current)
            current = []
        current.append(sample)
    if current:
        segments.append(current)
    return segments
