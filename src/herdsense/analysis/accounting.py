"""Strict 24-hour time accounting.

Lying, standing, walking and unknown seconds always add up to exactly one
day. A shortfall is attributed to unknown time, never to lying. An excess is
taken out of lying, standing and walking in proportion to their own share,
and unknown time is never reduced.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from herdsense.data.records import SECONDS_PER_DAY
from herdsense.utils.logging import get_logger

logger = get_logger("analysis.accounting")

BEHAVIORS = ("lying", "standing", "walking")


@dataclass
class BehaviorTotals:
    """Seconds per simplified behavior for one day."""

    lying_sec: int = 0
    standing_sec: int = 0
    walking_sec: int = 0
    unknown_sec: int = 0

    @property
    def total_sec(self) -> int:
        return self.lying_sec + self.standing_sec + self.walking_sec + self.unknown_sec

    def share(self, behavior: str) -> float:
        """Fraction of the day spent in a behavior ("lying", ..., "unknown")."""
        return getattr(self, f"{behavior}_sec") / SECONDS_PER_DAY

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _largest_remainder(values: dict[str, int], target: int) -> dict[str, int]:
    """Scale non-negative integers to sum to ``target`` preserving proportions."""
    total = sum(values.values())
    if total <= 0:
        return {k: 0 for k in values}

    exact = {k: v * target / total for k, v in values.items()}
    floors = {k: int(x) for k, x in exact.items()}
    remaining = target - sum(floors.values())
    order = sorted(values, key=lambda k: (exact[k] - floors[k], values[k]), reverse=True)
    for k in order[:remaining]:
        floors[k] += 1
    return floors


def account_day(
    behavior_seconds: dict[str, float] | Iterable[tuple[str, float]],
    unknown_sec: float = 0,
    day_sec: int = SECONDS_PER_DAY,
) -> BehaviorTotals:
    """Reconcile behavior durations into totals that sum to one day.

    Args:
        behavior_seconds: Seconds per simplified behavior, either a mapping or
            an iterable of ``(behavior, seconds)`` pairs to be summed.
        unknown_sec: Unknown time accumulated upstream (skipped gaps, etc.).
        day_sec: Length of the accounting window.

    Returns:
        BehaviorTotals whose four fields sum to exactly ``day_sec``.
    """
    sums = {b: 0.0 for b in BEHAVIORS}
    items = behavior_seconds.items() if isinstance(behavior_seconds, dict) else behavior_seconds
    for behavior, seconds in items:
        if behavior not in sums:
            raise ValueError(f"Unknown behavior for accounting: {behavior!r}")
        sums[behavior] += max(0.0, float(seconds))

    known = {b: int(round(v)) for b, v in sums.items()}
    unknown = int(round(max(0.0, float(unknown_sec))))

    if unknown >= day_sec:
        logger.warning(f"Unknown time {unknown}s fills the whole day; clamping")
        return BehaviorTotals(unknown_sec=day_sec)

    total = sum(known.values()) + unknown
    if total < day_sec:
        unknown += day_sec - total
    elif total > day_sec:
        excess = total - day_sec
        logger.debug(f"Shrinking known behaviors by {excess}s to fit the day")
        known = _largest_remainder(known, day_sec - unknown)

    return BehaviorTotals(
        lying_sec=known["lying"],
        standing_sec=known["standing"],
        walking_sec=known["walking"],
        unknown_sec=unknown,
    )


def totals_from_intervals(intervals: Iterable, unknown_sec: float = 0) -> BehaviorTotals:
    """Account a day directly from classified intervals."""
    return account_day(((iv.final_behavior, iv.dt) for iv in intervals), unknown_sec)
