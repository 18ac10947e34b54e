"""Sample cleaning: parsing, geofencing, midnight repair and retry filtering.

The cleaner turns the arrival-ordered raw records of one animal-day into an
ascending-epoch Sample sequence. Record-level problems are counted in
``CleaningStats`` and never raised; only a day with fewer than two usable
samples fails with ``InsufficientDataError``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

from herdsense.data.records import (
    SECONDS_PER_DAY,
    ParsedRecord,
    RawRecord,
    Sample,
    parse_record,
)
from herdsense.errors import InsufficientDataError, ParseError
from herdsense.geo.geometry import Polygon, point_in_any
from herdsense.utils.logging import get_logger

logger = get_logger("data.cleaning")

LATE_EVENING_SEC = 18 * 3600
EARLY_MORNING_SEC = 6 * 3600


@dataclass
class CleaningConfig:
    """Configuration for the sample cleaner.

    Attributes:
        max_backward_jump_sec: Records older than the running maximum epoch by
            more than this are treated as retransmissions.
        min_samples: Minimum number of samples required after cleaning.
    """

    max_backward_jump_sec: int = 300
    min_samples: int = 2


@dataclass
class CleaningStats:
    """Diagnostic counters for one cleaning run."""

    total_records: int = 0
    parse_errors: int = 0
    fake_gps_records: int = 0
    midnight_fixed: int = 0
    retry_removed: int = 0
    kept: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def fix_midnight_crossing(records: list[ParsedRecord]) -> int:
    """Repair records whose date did not roll over at midnight.

    A record later than 18:00 directly followed by one earlier than 06:00 with
    the same nominal date marks a missed rollover. From that point on, every
    early-morning record still carrying the stale date is moved one day
    forward. Records are modified in place.

    Args:
        records: Parsed records in arrival order.

    Returns:
        Number of records whose epoch was shifted.
    """
    if len(records) < 2:
        return 0

    fixed = 0
    stale_dates: set[str | None] = set()
    for i in range(1, len(records)):
        prev = records[i - 1]
        curr = records[i]
        if (
            prev.time_of_day > LATE_EVENING_SEC
            and curr.time_of_day < EARLY_MORNING_SEC
            and prev.date == curr.date
            and curr.date not in stale_dates
        ):
            logger.debug(
                f"Midnight transition at index {i} ({prev.time_of_day}s -> {curr.time_of_day}s), "
                f"date {curr.date!r} did not roll over"
            )
            stale_dates.add(curr.date)

        if curr.date in stale_dates and curr.time_of_day < EARLY_MORNING_SEC and not curr.date_fixed:
            curr.epoch += SECONDS_PER_DAY
            curr.date_fixed = True
            fixed += 1

    if fixed:
        logger.info(f"Fixed {fixed} records by moving them to the next day")
    return fixed


def filter_retry_records(
    records: Sequence[ParsedRecord],
    max_backward_jump_sec: int = 300,
) -> tuple[list[ParsedRecord], list[ParsedRecord]]:
    """Drop retransmitted records.

    Walks the records in arrival order keeping the maximum epoch accepted so
    far; a record more than ``max_backward_jump_sec`` behind it is a stale
    retransmission. Removed records never advance the maximum, so running the
    filter on its own output removes nothing further.

    Args:
        records: Records in arrival order.
        max_backward_jump_sec: Tolerated backward jump in seconds.

    Returns:
        Tuple of (kept, removed) records, both in arrival order.
    """
    kept: list[ParsedRecord] = []
    removed: list[ParsedRecord] = []
    max_epoch: int | None = None

    for record in records:
        if max_epoch is not None and record.epoch < max_epoch - max_backward_jump_sec:
            removed.append(record)
            continue
        kept.append(record)
        if max_epoch is None or record.epoch > max_epoch:
            max_epoch = record.epoch

    return kept, removed


def clean_records(
    raw_records: Sequence[RawRecord],
    fences: Sequence[Polygon] | None = None,
    config: CleaningConfig | None = None,
) -> tuple[list[Sample], CleaningStats]:
    """Run the full cleaning stage for one animal-day.

    Args:
        raw_records: Raw records in arrival order.
        fences: Fence polygons; a record outside all of them is a fake GPS fix.
            With no fences every position is accepted.
        config: Cleaner configuration.

    Returns:
        Tuple of (ascending-epoch samples, cleaning statistics).

    Raises:
        InsufficientDataError: If fewer than ``config.min_samples`` samples remain.
    """
    config = config or CleaningConfig()
    stats = CleaningStats(total_records=len(raw_records))

    parsed: list[ParsedRecord] = []
    for raw in raw_records:
        try:
            record = parse_record(raw)
        except ParseError as exc:
            stats.parse_errors += 1
            logger.debug(f"Dropping record: {exc}")
            continue
        if fences and not point_in_any(record.lat, record.lon, fences):
            stats.fake_gps_records += 1
            continue
        parsed.append(record)

    stats.midnight_fixed = fix_midnight_crossing(parsed)

    kept, removed = filter_retry_records(parsed, config.max_backward_jump_sec)
    stats.retry_removed = len(removed)
    if removed:
        logger.info(f"Filtered {len(removed)} retry records ({len(parsed)} -> {len(kept)})")

    kept.sort(key=lambda r: r.epoch)
    stats.kept = len(kept)

    if len(kept) < config.min_samples:
        raise InsufficientDataError(
            f"Only {len(kept)} valid samples after cleaning "
            f"(total={stats.total_records}, parse_errors={stats.parse_errors}, "
            f"fake_gps={stats.fake_gps_records}, retry={stats.retry_removed})",
            stats=stats,
        )

    logger.debug(f"Cleaning stats: {stats.to_dict()}")
    return [Sample.from_record(r) for r in kept], stats
