"""Per-day orchestration and batch execution.

``analyze_day`` runs one animal-day through every stage: cleaning, 1 Hz
resampling, posture extraction, interval fusion, 24 h accounting, dwell
zones, isolation detection and the daily summary. ``analyze_days`` fans
independent animal-days out over a process pool; one failed day never
affects the others.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Sequence

from tqdm import tqdm

from herdsense.analysis.accounting import BehaviorTotals, totals_from_intervals
from herdsense.analysis.dwell import PERIODS, DwellCluster, DwellConfig, detect_lying_zones, detect_standing_zones
from herdsense.analysis.isolation import (
    IsolationConfig,
    IsolationEvent,
    OutlierEvent,
    collect_perimeter_outliers,
    detect_isolation_events,
)
from herdsense.analysis.summary import DailySummary, summarize_day
from herdsense.behavior.classification import MovementThresholds
from herdsense.behavior.fusion import FusionConfig
from herdsense.behavior.intervals import (
    DAY_END_SEC,
    DAY_START_SEC,
    CrossValidationStats,
    Interval,
    Segment,
    build_intervals,
    build_segments,
)
from herdsense.clustering.engine import ClusteringConfig
from herdsense.colocation.proximity import CoLocationConfig
from herdsense.data.cleaning import CleaningConfig, CleaningStats, clean_records
from herdsense.data.records import RawRecord
from herdsense.data.resampling import (
    ResampleConfig,
    ResampleStats,
    StandByAnalysis,
    analyze_standby_periods,
    resample_to_1hz,
)
from herdsense.errors import HerdSenseError
from herdsense.geo.zones import Facility
from herdsense.posture.timeline import PostureConfig, PostureTimeline, build_posture_timeline
from herdsense.utils.logging import LoggerAdapter, get_logger

logger = get_logger("pipeline")


@dataclass
class PipelineConfig:
    """All tunables of the pipeline, one section per stage."""

    day_start_sec: int = DAY_START_SEC
    day_end_sec: int = DAY_END_SEC
    cleaning: CleaningConfig = field(default_factory=CleaningConfig)
    resample: ResampleConfig = field(default_factory=ResampleConfig)
    posture: PostureConfig = field(default_factory=PostureConfig)
    thresholds: MovementThresholds = field(default_factory=MovementThresholds)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    dwell: DwellConfig = field(default_factory=DwellConfig)
    isolation: IsolationConfig = field(default_factory=IsolationConfig)
    colocation: CoLocationConfig = field(default_factory=CoLocationConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)


@dataclass
class DayResult:
    """Everything computed for one animal-day.

    Attributes:
        dataset: Dataset name, if known.
        cleaning: Cleaner counters.
        resampling: Resampler counters.
        standby: StandBy gaps of the cleaned sequence.
        posture: Posture timeline with calibration status.
        intervals: Classified intervals.
        segments: Merged behavior segments.
        cross_validation: Fusion tag counters and consistency score.
        totals: 24 h behavior totals.
        lying_zones: Lying dwell zones keyed by period.
        standing_zones: Standing dwell zones keyed by period.
        isolation_events: Sustained isolation episodes.
        outliers: Perimeter-outlier episodes.
        summary: Daily aggregates.
        skipped_intervals: Intervals skipped for time or fence reasons.
    """

    dataset: str | None
    cleaning: CleaningStats
    resampling: ResampleStats
    standby: StandByAnalysis
    posture: PostureTimeline
    intervals: list[Interval]
    segments: list[Segment]
    cross_validation: CrossValidationStats
    totals: BehaviorTotals
    lying_zones: dict[str, list[DwellCluster]]
    standing_zones: dict[str, list[DwellCluster]]
    isolation_events: list[IsolationEvent]
    outliers: list[OutlierEvent]
    summary: DailySummary
    skipped_intervals: int = 0

    @property
    def diagnostics(self) -> dict[str, Any]:
        """Counters explaining where the day's records and time went."""
        return {
            "records_total": self.cleaning.total_records,
            "records_parsed": self.cleaning.total_records - self.cleaning.parse_errors,
            "parse_errors": self.cleaning.parse_errors,
            "fake_gps_records": self.cleaning.fake_gps_records,
            "retry_removed": self.cleaning.retry_removed,
            "midnight_fixed": self.cleaning.midnight_fixed,
            "samples": self.resampling.output_samples,
            "interpolated_samples": self.resampling.interpolated_samples,
            "intervals": len(self.intervals),
            "intervals_skipped": self.skipped_intervals,
            "calibration": self.posture.calibration.status.value,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (intervals are summarized by count)."""
        return {
            "dataset": self.dataset,
            "diagnostics": self.diagnostics,
            "totals": self.totals.to_dict(),
            "cross_validation": self.cross_validation.to_dict(),
            "standby": self.standby.to_dict(),
            "posture": self.posture.to_dict(),
            "segments": [asdict(s) for s in self.segments],
            "lying_zones": {p: [c.to_dict() for c in zs] for p, zs in self.lying_zones.items()},
            "standing_zones": {p: [c.to_dict() for c in zs] for p, zs in self.standing_zones.items()},
            "isolation_events": [e.to_dict() for e in self.isolation_events],
            "outliers": [e.to_dict() for e in self.outliers],
            "summary": self.summary.to_dict(),
        }

    def summary_text(self) -> str:
        """Get a short text summary of the day."""
        t = self.totals
        lines = [
            f"=== {self.dataset or 'day'} ===",
            f"Lying:    {t.lying_sec / 3600:6.2f} h",
            f"Standing: {t.standing_sec / 3600:6.2f} h",
            f"Walking:  {t.walking_sec / 3600:6.2f} h",
            f"Unknown:  {t.unknown_sec / 3600:6.2f} h",
            f"Distance: {self.summary.total_distance_m:.0f} m",
            f"Consistency: {self.cross_validation.consistency_score:.1%}",
            f"Calibration: {self.posture.calibration.status.value}",
            f"Lying zones: {len(self.lying_zones['all'])}, isolation events: {len(self.isolation_events)}",
        ]
        return "\n".join(lines)


def analyze_day(
    records: Sequence[RawRecord],
    facility: Facility | None = None,
    config: PipelineConfig | None = None,
    dataset: str | None = None,
) -> DayResult:
    """Run the full pipeline for one animal-day.

    Args:
        records: Raw records in arrival order.
        facility: Facility geometry; without it no geofence, zone constraint
            or isolation detection is applied.
        config: Pipeline configuration.
        dataset: Dataset name used for logging.

    Returns:
        DayResult for the day.

    Raises:
        InsufficientDataError: If fewer than two samples survive cleaning.
    """
    config = config or PipelineConfig()
    log = LoggerAdapter(logger, {"dataset": dataset} if dataset else None)

    samples, cleaning = clean_records(records, fences=facility.fences if facility else None, config=config.cleaning)
    log.info(f"Cleaned {cleaning.total_records} records -> {cleaning.kept} samples")

    standby = analyze_standby_periods(samples, config.resample)
    resampled, resampling = resample_to_1hz(samples, config.resample)
    timeline = build_posture_timeline(resampled, config.posture)
    log.debug(f"Calibration: {timeline.calibration.status.value}")

    built = build_intervals(
        resampled,
        facility=facility,
        thresholds=config.thresholds,
        fusion=config.fusion,
        max_gap_sec=config.resample.max_gap_sec,
        day_start_sec=config.day_start_sec,
        day_end_sec=config.day_end_sec,
    )
    intervals = built.intervals
    totals = totals_from_intervals(intervals, built.unknown_sec)

    lying_zones = {p: detect_lying_zones(intervals, p, config.dwell) for p in PERIODS}
    standing_zones = {p: detect_standing_zones(intervals, p, config.dwell) for p in PERIODS}

    if facility is not None:
        isolation_events = detect_isolation_events(intervals, facility.center, config.isolation)
        outliers = collect_perimeter_outliers(intervals, facility.center, config.isolation)
    else:
        isolation_events, outliers = [], []

    result = DayResult(
        dataset=dataset,
        cleaning=cleaning,
        resampling=resampling,
        standby=standby,
        posture=timeline,
        intervals=intervals,
        segments=build_segments(intervals),
        cross_validation=built.stats,
        totals=totals,
        lying_zones=lying_zones,
        standing_zones=standing_zones,
        isolation_events=isolation_events,
        outliers=outliers,
        summary=summarize_day(intervals, facility, facility.center if facility else None),
        skipped_intervals=built.skipped_invalid_time + built.skipped_outside_fence,
    )
    log.info(
        f"lying={totals.lying_sec}s standing={totals.standing_sec}s "
        f"walking={totals.walking_sec}s unknown={totals.unknown_sec}s"
    )
    return result


@dataclass
class BatchResult:
    """Results of a batch run.

    Attributes:
        results: Day results keyed by dataset name.
        failures: Error message per dataset that could not be analyzed.
    """

    results: dict[str, DayResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def summary(self) -> str:
        return f"{len(self.results)} days analyzed, {len(self.failures)} failed"


def _analyze_task(
    name: str,
    records: Sequence[RawRecord],
    facility: Facility | None,
    config: PipelineConfig,
) -> tuple[str, DayResult | None, str | None]:
    try:
        return name, analyze_day(records, facility, config, dataset=name), None
    except HerdSenseError as e:
        return name, None, str(e)


def analyze_days(
    days: Mapping[str, Sequence[RawRecord]],
    facility: Facility | None = None,
    config: PipelineConfig | None = None,
    n_workers: int = 1,
    verbose: bool = False,
) -> BatchResult:
    """Analyze independent animal-days.

    Args:
        days: Raw records keyed by dataset name.
        facility: Facility geometry shared by all days.
        config: Pipeline configuration.
        n_workers: Worker processes; 1 runs serially.
        verbose: Show a progress bar.

    Returns:
        BatchResult with per-day results and failures.
    """
    config = config or PipelineConfig()
    batch = BatchResult()

    def _collect(outcome: tuple[str, DayResult | None, str | None]) -> None:
        name, result, error = outcome
        if error is not None:
            logger.warning(f"[dataset={name}] skipped: {error}")
            batch.failures[name] = error
        else:
            batch.results[name] = result

    if n_workers > 1 and len(days) > 1:
        with ProcessPoolExecutor(max_workers=n_workers) as pool:
            futures = [pool.submit(_analyze_task, name, recs, facility, config) for name, recs in days.items()]
            for future in tqdm(as_completed(futures), total=len(futures), desc="Days", disable=not verbose):
                _collect(future.result())
    else:
        for name, recs in tqdm(days.items(), total=len(days), desc="Days", disable=not verbose):
            _collect(_analyze_task(name, recs, facility, config))

    logger.info(batch.summary())
    return batch
