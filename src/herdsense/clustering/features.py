"""Feature space for co-location clustering.

Each co-location event becomes one point ``(duration_minutes,
mean_distance_m)``, min-max normalized jointly over the selected cohort.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from herdsense.colocation.proximity import CoLocationEvent
from herdsense.errors import ConfigurationError

FEATURE_NAMES = ("duration_min", "avg_distance_m")

PERIODS = ("all", "day", "night")


def filter_by_period(events: Sequence[CoLocationEvent], period: str = "all") -> list[CoLocationEvent]:
    """Select events of one period ("all", "day" or "night")."""
    if period not in PERIODS:
        raise ConfigurationError(f"Unknown period: {period}. Use one of {PERIODS}")
    if period == "all":
        return list(events)
    return [e for e in events if e.period == period]


def event_features(events: Sequence[CoLocationEvent]) -> NDArray[np.float64]:
    """Raw feature matrix of shape (n_events, 2)."""
    if not events:
        return np.zeros((0, len(FEATURE_NAMES)))
    return np.array([[e.duration_min, e.avg_distance_m] for e in events], dtype=np.float64)


def normalize_features(features: NDArray[np.float64]) -> NDArray[np.float64]:
    """Min-max normalize each column to [0, 1].

    A constant column maps to zeros.

    Args:
        features: Feature matrix of shape (n_samples, n_features).

    Returns:
        Normalized copy of the feature matrix.
    """
    features = np.asarray(features, dtype=np.float64)
    if features.size == 0:
        return features.copy()
    lo = features.min(axis=0)
    span = features.max(axis=0) - lo
    span = np.where(span == 0, 1.0, span)
    return (features - lo) / span
