"""Automatic orientation calibration.

The collar can sit at any angle on the neck, so the "upright" gravity
direction is learned from the data: quiet windows whose mean gravity
magnitude is close to 1 g vote with their mean direction, and the
component-wise median of the votes becomes the reference vector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from herdsense.utils.logging import get_logger

logger = get_logger("posture.calibration")

VERTICAL = (0.0, 0.0, 1.0)


class CalibrationStatus(str, Enum):
    """Outcome of the calibration scan."""

    PENDING = "PENDING"
    UNCALIBRATED = "UNCALIBRATED"
    CALIBRATED = "CALIBRATED"


@dataclass
class CalibrationConfig:
    """Configuration for the calibration scan.

    Attributes:
        window_sec: Window length in seconds.
        max_hours: Only the first ``max_hours`` of data are scanned.
        min_windows: Qualifying windows required for CALIBRATED.
        variance_threshold: Maximum magnitude variance of a window (g^2).
        magnitude_min: Lower bound of the window's mean magnitude (g).
        magnitude_max: Upper bound of the window's mean magnitude (g).
    """

    window_sec: int = 60
    max_hours: float = 24.0
    min_windows: int = 10
    variance_threshold: float = 0.02
    magnitude_min: float = 0.9
    magnitude_max: float = 1.1


@dataclass(frozen=True)
class Calibration:
    """Calibration result.

    Attributes:
        status: Calibration status.
        reference: Unit reference vector (vertical fallback unless CALIBRATED).
        window_count: Number of qualifying windows found.
    """

    status: CalibrationStatus
    reference: tuple[float, float, float] = field(default=VERTICAL)
    window_count: int = 0

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "reference": list(self.reference),
            "window_count": self.window_count,
        }


def auto_calibrate(
    gravity: NDArray[np.float64],
    sampling_rate: float = 1.0,
    config: CalibrationConfig | None = None,
) -> Calibration:
    """Estimate the upright reference vector from filtered gravity.

    Args:
        gravity: Filtered gravity vectors in g, shape (n_samples, 3).
        sampling_rate: Sampling rate in Hz.
        config: Calibration configuration.

    Returns:
        Calibration with status PENDING (no data), UNCALIBRATED (too few quiet
        windows, vertical fallback) or CALIBRATED.
    """
    config = config or CalibrationConfig()
    gravity = np.asarray(gravity, dtype=np.float64).reshape(-1, 3)
    if len(gravity) == 0:
        return Calibration(CalibrationStatus.PENDING)

    max_samples = min(len(gravity), int(round(config.max_hours * 3600 * sampling_rate)))
    window = max(1, int(round(config.window_sec * sampling_rate)))
    step = max(1, window // 2)
    magnitudes = np.linalg.norm(gravity, axis=1)

    candidates = []
    for start in range(0, max_samples - window + 1, step):
        mags = magnitudes[start : start + window]
        mean_mag = mags.mean()
        if mags.var() > config.variance_threshold:
            continue
        if not config.magnitude_min <= mean_mag <= config.magnitude_max:
            continue
        mean_vec = gravity[start : start + window].mean(axis=0)
        norm = np.linalg.norm(mean_vec)
        if norm > 0:
            candidates.append(mean_vec / norm)

    if len(candidates) < config.min_windows:
        logger.debug(f"Calibration unavailable: {len(candidates)} quiet windows (< {config.min_windows})")
        return Calibration(CalibrationStatus.UNCALIBRATED, VERTICAL, len(candidates))

    median = np.median(np.vstack(candidates), axis=0)
    norm = np.linalg.norm(median)
    reference = tuple(float(v) for v in median / norm) if norm > 0 else VERTICAL
    logger.debug(f"Calibrated from {len(candidates)} windows: {reference}")
    return Calibration(CalibrationStatus.CALIBRATED, reference, len(candidates))
