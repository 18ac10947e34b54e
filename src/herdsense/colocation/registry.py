"""Registry of cleaned animal-day tracks.

Tracks are injected by the caller under an ``(animal_id, date)`` key; the
registry never discovers datasets on its own. Dataset names follow the
``ID{animal_id}_{ddmmyy}`` convention and are used for lookup and logging
only.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from itertools import combinations
from typing import Iterator, Sequence

from herdsense.data.cleaning import CleaningConfig, clean_records
from herdsense.data.records import RawRecord, Sample
from herdsense.data.resampling import ResampleConfig, resample_to_1hz
from herdsense.errors import ParseError
from herdsense.geo.geometry import Polygon

DATE_CODE_FORMAT = "%d%m%y"

_DATASET_NAME = re.compile(r"^ID(?P<animal>[A-Za-z0-9]+)_(?P<code>\d{6})$")

TrackKey = tuple[str, date]


def parse_date_code(code: str) -> date:
    """Parse a ``ddmmyy`` date code.

    Raises:
        ParseError: If the code is not a valid date.
    """
    try:
        return datetime.strptime(code, DATE_CODE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid date code: {code!r}") from e


def dataset_name(animal_id: str | int, day: date) -> str:
    """Name of an animal-day dataset, e.g. ``ID227_141225``."""
    return f"ID{animal_id}_{day.strftime(DATE_CODE_FORMAT)}"


def parse_dataset_name(name: str) -> TrackKey:
    """Split a dataset name into ``(animal_id, date)``.

    Raises:
        ParseError: If the name does not follow ``ID{animal}_{ddmmyy}``.
    """
    match = _DATASET_NAME.match(name)
    if match is None:
        raise ParseError(f"Invalid dataset name: {name!r}")
    return match.group("animal"), parse_date_code(match.group("code"))


def prepare_track(
    records: Sequence[RawRecord],
    fences: Sequence[Polygon] | None = None,
    cleaning: CleaningConfig | None = None,
    resample: ResampleConfig | None = None,
) -> list[Sample]:
    """Clean and resample raw records into a track usable for co-location.

    Raises:
        InsufficientDataError: If fewer than two samples survive cleaning.
    """
    samples, _ = clean_records(records, fences=fences, config=cleaning)
    resampled, _ = resample_to_1hz(samples, resample)
    return resampled


class DatasetRegistry:
    """Mapping from ``(animal_id, date)`` to an ascending-epoch Sample track.

    Example:
        >>> registry = DatasetRegistry()
        >>> registry.add("227", date(2025, 12, 14), samples)
        >>> registry.pairs(date(2025, 12, 14))
    """

    def __init__(self) -> None:
        self._tracks: dict[TrackKey, list[Sample]] = {}

    def add(self, animal_id: str | int, day: date, samples: Sequence[Sample]) -> None:
        """Register a track, replacing any previous track under the same key."""
        self._tracks[(str(animal_id), day)] = sorted(samples, key=lambda s: s.epoch)

    def add_named(self, name: str, samples: Sequence[Sample]) -> TrackKey:
        """Register a track under a dataset name such as ``ID227_141225``."""
        key = parse_dataset_name(name)
        self.add(key[0], key[1], samples)
        return key

    def get(self, animal_id: str | int, day: date) -> list[Sample] | None:
        return self._tracks.get((str(animal_id), day))

    def dates(self) -> list[date]:
        return sorted({day for _, day in self._tracks})

    def animals(self, day: date) -> list[str]:
        """Animals with a non-empty track on a date, in sorted order."""
        return sorted(animal for animal, d in self._tracks if d == day and self._tracks[(animal, d)])

    def pairs(self, day: date) -> list[tuple[str, str]]:
        """Unordered animal pairs sharing a date."""
        return list(combinations(self.animals(day), 2))

    def filter_dates(self, start: date | None = None, end: date | None = None) -> DatasetRegistry:
        """New registry restricted to dates in ``[start, end]`` (inclusive)."""
        filtered = DatasetRegistry()
        for (animal, day), samples in self._tracks.items():
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
            filtered._tracks[(animal, day)] = samples
        return filtered

    def __contains__(self, key: object) -> bool:
        return key in self._tracks

    def __iter__(self) -> Iterator[TrackKey]:
        return iter(sorted(self._tracks))

    def __len__(self) -> int:
        return len(self._tracks)
