"""Raw tracker records and the per-second Sample type.

Trackers deliver rows of ``timestamp`` (``HH:MM[:SS]``), ``date``
(``dd.mm.yyyy``), ``gps_lat``, ``gps_lon`` and three raw accelerometer counts.
Parsing turns them into ``ParsedRecord`` objects carrying an epoch second
(UTC midnight of the date plus the time of day, so that
``epoch % 86400 == time of day``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable

from herdsense.errors import ParseError

if TYPE_CHECKING:
    import pandas as pd

SECONDS_PER_DAY = 86_400

DATE_FORMATS = ("%d.%m.%Y", "%d/%m/%Y", "%Y-%m-%d", "%d.%m.%y")

FRAME_COLUMNS = ("timestamp", "date", "gps_lat", "gps_lon", "acc_x", "acc_y", "acc_z")


@dataclass(frozen=True)
class RawRecord:
    """One row as delivered by the tracker, before any validation."""

    timestamp: Any
    date: Any
    lat: Any
    lon: Any
    acc_x: Any = None
    acc_y: Any = None
    acc_z: Any = None


@dataclass
class ParsedRecord:
    """A record that passed parsing.

    Attributes:
        time_of_day: Seconds since local midnight as reported by the device.
        epoch: Absolute epoch second (may be corrected by the midnight fix).
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.
        acc_x: Raw accelerometer count, or None if unusable.
        acc_y: Raw accelerometer count, or None if unusable.
        acc_z: Raw accelerometer count, or None if unusable.
        date: Nominal date string from the device.
        date_fixed: True if the midnight fix moved this record to the next day.
    """

    time_of_day: int
    epoch: int
    lat: float
    lon: float
    acc_x: float | None
    acc_y: float | None
    acc_z: float | None
    date: str | None = None
    date_fixed: bool = False

    @property
    def has_acc(self) -> bool:
        return self.acc_x is not None and self.acc_y is not None and self.acc_z is not None

    @property
    def magnitude(self) -> float | None:
        if not self.has_acc:
            return None
        return math.sqrt(self.acc_x**2 + self.acc_y**2 + self.acc_z**2)


@dataclass
class PostureContext:
    """Posture annotation attached to a Sample by the posture extractor.

    Attributes:
        stable_posture: Hysteresis output ("standing", "lying" or "unknown").
        raw_posture: Per-sample classification before hysteresis.
        confidence: Confidence in [0, 1] for the stable posture.
        tilt_deg: Tilt against the calibrated reference, None if unavailable.
        variance: Sliding variance of the gravity magnitude (g^2).
    """

    stable_posture: str
    raw_posture: str
    confidence: float
    tilt_deg: float | None
    variance: float


@dataclass
class Sample:
    """One sample of the uniform 1 Hz sequence.

    Produced by the cleaner and resampler, then annotated in place with a
    ``PostureContext`` by the posture extractor.
    """

    second_of_day: int
    epoch: int
    lat: float
    lon: float
    acc_x: float | None = None
    acc_y: float | None = None
    acc_z: float | None = None
    interpolated: bool = False
    stand_by: bool = False
    posture: PostureContext | None = None

    @property
    def has_acc(self) -> bool:
        return self.acc_x is not None and self.acc_y is not None and self.acc_z is not None

    @property
    def magnitude(self) -> float | None:
        if not self.has_acc:
            return None
        return math.sqrt(self.acc_x**2 + self.acc_y**2 + self.acc_z**2)

    @classmethod
    def from_record(cls, record: ParsedRecord) -> Sample:
        return cls(
            second_of_day=record.epoch % SECONDS_PER_DAY,
            epoch=record.epoch,
            lat=record.lat,
            lon=record.lon,
            acc_x=record.acc_x,
            acc_y=record.acc_y,
            acc_z=record.acc_z,
        )


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_time_of_day(value: Any) -> int:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into seconds since midnight.

    Raises:
        ParseError: If the value is empty or malformed.
    """
    if _is_blank(value):
        raise ParseError("empty timestamp")
    parts = str(value).strip().split(":")
    if len(parts) < 2 or len(parts) > 3:
        raise ParseError(f"malformed timestamp: {value!r}")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(float(parts[2])) if len(parts) == 3 else 0
    except ValueError as exc:
        raise ParseError(f"malformed timestamp: {value!r}") from exc
    if not (0 <= hours < 24 and 0 <= minutes < 60 and 0 <= seconds < 60):
        raise ParseError(f"timestamp out of range: {value!r}")
    return hours * 3600 + minutes * 60 + seconds


def format_clock(second_of_day: float) -> str:
    """Format seconds since midnight as ``HH:MM:SS`` (wrapped to one day)."""
    sec = int(second_of_day) % SECONDS_PER_DAY
    return f"{sec // 3600:02d}:{sec % 3600 // 60:02d}:{sec % 60:02d}"


def parse_date_epoch(value: Any) -> int | None:
    """Epoch second of UTC midnight for a calendar date string.

    Returns:
        Epoch second, or None if the date is absent or unparseable.
    """
    if _is_blank(value):
        return None
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return int(parsed.replace(tzinfo=timezone.utc).timestamp())
    return None


def parse_coordinate(value: Any, name: str) -> float:
    """Parse a decimal-degree coordinate.

    Raises:
        ParseError: If the value is missing or not a finite number.
    """
    if _is_blank(value):
        raise ParseError(f"missing {name}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"invalid {name}: {value!r}") from exc
    if not math.isfinite(number):
        raise ParseError(f"invalid {name}: {value!r}")
    return number


def parse_acc(value: Any) -> float | None:
    """Parse an accelerometer count; unusable values become None."""
    if _is_blank(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_record(raw: RawRecord) -> ParsedRecord:
    """Validate and convert one raw record.

    Time, latitude and longitude are mandatory. A missing date falls back to
    the time of day as epoch; unusable accelerometer values are kept as None.

    Raises:
        ParseError: If time, latitude or longitude cannot be parsed.
    """
    tod = parse_time_of_day(raw.timestamp)
    lat = parse_coordinate(raw.lat, "latitude")
    lon = parse_coordinate(raw.lon, "longitude")
    day_epoch = parse_date_epoch(raw.date)
    epoch = tod if day_epoch is None else day_epoch + tod
    return ParsedRecord(
        time_of_day=tod,
        epoch=epoch,
        lat=lat,
        lon=lon,
        acc_x=parse_acc(raw.acc_x),
        acc_y=parse_acc(raw.acc_y),
        acc_z=parse_acc(raw.acc_z),
        date=None if _is_blank(raw.date) else str(raw.date).strip(),
    )


def records_from_dicts(rows: Iterable[dict[str, Any]]) -> list[RawRecord]:
    """Convert tracker-style mappings to RawRecords."""
    return [
        RawRecord(
            timestamp=row.get("timestamp"),
            date=row.get("date"),
            lat=row.get("gps_lat"),
            lon=row.get("gps_lon"),
            acc_x=row.get("acc_x"),
            acc_y=row.get("acc_y"),
            acc_z=row.get("acc_z"),
        )
        for row in rows
    ]


def records_from_frame(frame: pd.DataFrame) -> list[RawRecord]:
    """Convert a DataFrame with tracker columns to RawRecords in row order.

    Missing optional columns (date, accelerometer axes) are treated as empty.

    Raises:
        ValueError: If ``timestamp``, ``gps_lat`` or ``gps_lon`` is missing.
    """
    missing = [c for c in ("timestamp", "gps_lat", "gps_lon") if c not in frame.columns]
    if missing:
        raise ValueError(f"DataFrame is missing required columns: {missing}")

    columns = [c for c in FRAME_COLUMNS if c in frame.columns]
    rows = frame[columns].to_dict(orient="records")
    return records_from_dicts(rows)
