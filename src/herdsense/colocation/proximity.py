"""Co-location detection between pairs of animal tracks.

For each unordered pair sharing a day the overlapping epoch range is walked in
fixed steps. Both positions are linearly interpolated from their own tracks;
while both resolve and lie within ``distance_m`` of each other a proximity
episode grows, otherwise it is closed. Episodes shorter than
``min_duration_sec`` are discarded.
"""

from __future__ import annotations

from bisect import bisect_right
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Sequence

from tqdm import tqdm

from herdsense.behavior.intervals import DAY_END_SEC, DAY_START_SEC, is_daytime
from herdsense.colocation.registry import DATE_CODE_FORMAT, DatasetRegistry
from herdsense.data.records import SECONDS_PER_DAY, Sample, format_clock
from herdsense.errors import ConfigurationError, NoOverlapError
from herdsense.geo.geometry import LatLon, haversine
from herdsense.utils.logging import get_logger

logger = get_logger("colocation.proximity")


@dataclass
class CoLocationConfig:
    """Configuration for co-location detection.

    Attributes:
        step_sec: Step between position checks.
        distance_m: Maximum distance between the two animals.
        min_duration_sec: Shortest reported episode.
        max_interp_gap_sec: Widest sample gap that may be interpolated across.
        day_start_sec: Start of the daytime window (seconds of day).
        day_end_sec: End of the daytime window (exclusive).
    """

    step_sec: int = 5
    distance_m: float = 5.0
    min_duration_sec: int = 60
    max_interp_gap_sec: int = 300
    day_start_sec: int = DAY_START_SEC
    day_end_sec: int = DAY_END_SEC

    def __post_init__(self) -> None:
        if self.step_sec <= 0:
            raise ConfigurationError(f"step_sec must be positive, got {self.step_sec}")
        if self.distance_m < 0:
            raise ConfigurationError(f"distance_m must be non-negative, got {self.distance_m}")


@dataclass
class AnimalPosition:
    animal_id: str
    avg_lat: float
    avg_lon: float


@dataclass
class CoLocationEvent:
    """A sustained period during which two animals stayed close together.

    Attributes:
        pair_id: ``"A x B"`` label of the pair.
        start_epoch: Epoch of the first qualifying check.
        end_epoch: Epoch of the last qualifying check.
        duration_sec: ``end_epoch - start_epoch + 1``.
        period: ``"day"`` or ``"night"`` by the start time of day.
        min_distance_m: Smallest distance seen in the episode.
        max_distance_m: Largest distance seen in the episode.
        avg_distance_m: Mean distance over the checks of the episode.
        positions: Averaged position of each animal over the episode.
        date_code: ``ddmmyy`` code of the shared day, if known.
    """

    pair_id: str
    start_epoch: int
    end_epoch: int
    duration_sec: int
    period: str
    min_distance_m: float
    max_distance_m: float
    avg_distance_m: float
    positions: list[AnimalPosition] = field(default_factory=list)
    date_code: str | None = None

    @property
    def start_clock(self) -> str:
        return format_clock(self.start_epoch)

    @property
    def end_clock(self) -> str:
        return format_clock(self.end_epoch)

    @property
    def duration_min(self) -> float:
        return self.duration_sec / 60.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["start_clock"] = self.start_clock
        data["end_clock"] = self.end_clock
        return data


def interpolate_position(
    track: Sequence[Sample],
    epoch: float,
    max_gap_sec: float = 300,
    epochs: Sequence[int] | None = None,
) -> LatLon | None:
    """Position of a track at an epoch.

    Args:
        track: Samples in ascending epoch order.
        epoch: Query time.
        max_gap_sec: Samples further apart than this are not interpolated.
        epochs: Precomputed epochs of ``track`` (avoids rebuilding per call).

    Returns:
        ``(lat, lon)``, or None outside the track bounds or inside a gap
        wider than ``max_gap_sec``.
    """
    if not track:
        return None
    if epochs is None:
        epochs = [s.epoch for s in track]
    if epoch < epochs[0] or epoch > epochs[-1]:
        return None

    hi = bisect_right(epochs, epoch)
    lo = hi - 1
    before = track[lo]
    if before.epoch == epoch or hi >= len(track):
        return before.lat, before.lon

    after = track[hi]
    gap = after.epoch - before.epoch
    if gap > max_gap_sec:
        return None
    t = (epoch - before.epoch) / gap
    return before.lat + t * (after.lat - before.lat), before.lon + t * (after.lon - before.lon)


def overlap_window(track_a: Sequence[Sample], track_b: Sequence[Sample]) -> tuple[int, int]:
    """Shared epoch range of two tracks.

    Raises:
        NoOverlapError: If either track is empty or the ranges do not overlap.
    """
    if not track_a or not track_b:
        raise NoOverlapError("empty track")
    start = max(track_a[0].epoch, track_b[0].epoch)
    end = min(track_a[-1].epoch, track_b[-1].epoch)
    if start >= end:
        raise NoOverlapError(f"no shared time window ({start} >= {end})")
    return start, end


class _Episode:
    def __init__(self, epoch: int):
        self.start = epoch
        self.last = epoch
        self.count = 0
        self.sums = [0.0, 0.0, 0.0, 0.0]
        self.dist_sum = 0.0
        self.min_dist = float("inf")
        self.max_dist = 0.0

    def extend(self, epoch: int, pos_a: LatLon, pos_b: LatLon, dist: float) -> None:
        self.last = epoch
        self.count += 1
        self.sums[0] += pos_a[0]
        self.sums[1] += pos_a[1]
        self.sums[2] += pos_b[0]
        self.sums[3] += pos_b[1]
        self.dist_sum += dist
        self.min_dist = min(self.min_dist, dist)
        self.max_dist = max(self.max_dist, dist)


def detect_pair_events(
    animal_a: str,
    track_a: Sequence[Sample],
    animal_b: str,
    track_b: Sequence[Sample],
    config: CoLocationConfig | None = None,
    date_code: str | None = None,
) -> list[CoLocationEvent]:
    """Co-location episodes of one pair of animals.

    Args:
        animal_a: Identifier of the first animal.
        track_a: First animal's samples in ascending epoch order.
        animal_b: Identifier of the second animal.
        track_b: Second animal's samples in ascending epoch order.
        config: Detector configuration.
        date_code: Optional ``ddmmyy`` code stored on the events.

    Returns:
        Episodes in start order. Tracks without a shared time window give
        an empty list.
    """
    config = config or CoLocationConfig()
    pair_id = f"{animal_a} x {animal_b}"
    try:
        start, end = overlap_window(track_a, track_b)
    except NoOverlapError as e:
        logger.debug(f"{pair_id}: {e}")
        return []

    logger.debug(f"{pair_id}: overlap {round((end - start) / 60)} min")
    epochs_a = [s.epoch for s in track_a]
    epochs_b = [s.epoch for s in track_b]
    events: list[CoLocationEvent] = []
    current: _Episode | None = None
    checks = 0

    def finalize() -> None:
        nonlocal current
        if current is None:
            return
        duration = current.last - current.start + 1
        if duration >= config.min_duration_sec:
            n = current.count
            start_sec = current.start % SECONDS_PER_DAY
            events.append(
                CoLocationEvent(
                    pair_id=pair_id,
                    start_epoch=current.start,
                    end_epoch=current.last,
                    duration_sec=duration,
                    period="day" if is_daytime(start_sec, config.day_start_sec, config.day_end_sec) else "night",
                    min_distance_m=current.min_dist,
                    max_distance_m=current.max_dist,
                    avg_distance_m=current.dist_sum / n,
                    positions=[
                        AnimalPosition(animal_a, current.sums[0] / n, current.sums[1] / n),
                        AnimalPosition(animal_b, current.sums[2] / n, current.sums[3] / n),
                    ],
                    date_code=date_code,
                )
            )
        current = None

    for epoch in range(start, end + 1, config.step_sec):
        pos_a = interpolate_position(track_a, epoch, config.max_interp_gap_sec, epochs_a)
        pos_b = interpolate_position(track_b, epoch, config.max_interp_gap_sec, epochs_b)
        if pos_a is None or pos_b is None:
            finalize()
            continue

        checks += 1
        dist = haversine(pos_a[0], pos_a[1], pos_b[0], pos_b[1])
        if dist <= config.distance_m:
            if current is None:
                current = _Episode(epoch)
            current.extend(epoch, pos_a, pos_b, dist)
        else:
            finalize()
    finalize()

    logger.debug(f"{pair_id}: {checks} checks, {len(events)} events")
    return events


def _pair_task(args: tuple) -> list[CoLocationEvent]:
    return detect_pair_events(*args)


def detect_colocation(
    registry: DatasetRegistry,
    config: CoLocationConfig | None = None,
    n_workers: int = 1,
    verbose: bool = False,
) -> list[CoLocationEvent]:
    """Co-location events over every pair of animals sharing a date.

    Args:
        registry: Registered tracks.
        config: Detector configuration.
        n_workers: Worker processes; 1 runs serially.
        verbose: Show a progress bar.

    Returns:
        All events sorted by start epoch.
    """
    config = config or CoLocationConfig()
    tasks = []
    for day in registry.dates():
        code = day.strftime(DATE_CODE_FORMAT)
        for a, b in registry.pairs(day):
            tasks.append((a, registry.get(a, day), b, registry.get(b, day), config, code))

    logger.info(f"Checking {len(tasks)} pairs over {len(registry.dates())} dates")
    events: list[CoLocationEvent] = []
    if n_workers > 1 and len(tasks) > 1:
        with ProcessPoolExecutor(max_workers=n_workers) as pool:
            for pair_events in tqdm(pool.map(_pair_task, tasks), total=len(tasks), desc="Pairs", disable=not verbose):
                events.extend(pair_events)
    else:
        for task in tqdm(tasks, desc="Pairs", disable=not verbose):
            events.extend(_pair_task(task))

    events.sort(key=lambda e: e.start_epoch)
    logger.info(f"Found {len(events)} co-location events")
    return events
