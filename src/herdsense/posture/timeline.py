"""Gravity extraction and posture timeline.

Raw accelerometer counts are scaled to g, low-pass filtered into a gravity
estimate, compared against the calibrated reference to give a tilt angle,
and classified per sample. The hysteresis reducer then turns the raw labels
into a stable posture, which is written back onto each Sample as a
``PostureContext``.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from herdsense.data.filters import butterworth_lowpass, sliding_variance
from herdsense.data.records import PostureContext, Sample
from herdsense.posture.calibration import (
    Calibration,
    CalibrationConfig,
    CalibrationStatus,
    auto_calibrate,
)
from herdsense.posture.fsm import (
    LYING,
    STANDING,
    TRANSITION,
    UNKNOWN,
    PostureFSMState,
    advance_posture,
)
from herdsense.utils.logging import get_logger

logger = get_logger("posture.timeline")

ACC_SCALE = 1024.0


@dataclass
class PostureConfig:
    """Configuration for gravity extraction and posture classification.

    Attributes:
        acc_scale: Raw accelerometer counts per g.
        sampling_rate: Sample rate of the resampled stream in Hz.
        cutoff_hz: Low-pass cutoff for the gravity estimate.
        filter_order: Butterworth filter order.
        window_sec: Sliding-variance window.
        variance_threshold: Variance above which a sample is a transition (g^2).
        standing_max_deg: Tilt below which a sample is standing.
        lying_min_deg: Tilt above which a sample is lying.
        min_dwell_sec: Hysteresis minimum duration.
        low_confidence: Confidence threshold for the low-confidence tallies.
        calibration: Calibration scan settings.
    """

    acc_scale: float = ACC_SCALE
    sampling_rate: float = 1.0
    cutoff_hz: float = 0.5
    filter_order: int = 2
    window_sec: int = 60
    variance_threshold: float = 0.05
    standing_max_deg: float = 35.0
    lying_min_deg: float = 55.0
    min_dwell_sec: float = 300.0
    low_confidence: float = 0.6
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)


@dataclass
class PostureSegment:
    """A maximal run of one stable posture."""

    state: str
    start_sec: int
    end_sec: int
    start_epoch: int
    end_epoch: int
    duration_sec: int
    avg_tilt_deg: float | None


@dataclass
class PostureSummary:
    """Per-state time, sample counts and confidence statistics."""

    standing_sec: float = 0.0
    lying_sec: float = 0.0
    transition_sec: float = 0.0
    standing_samples: int = 0
    lying_samples: int = 0
    transition_samples: int = 0
    standing_confidence_sum: float = 0.0
    lying_confidence_sum: float = 0.0
    low_confidence_standing_samples: int = 0
    low_confidence_lying_samples: int = 0
    low_confidence_standing_sec: float = 0.0
    low_confidence_lying_sec: float = 0.0
    low_confidence_threshold: float = 0.6
    total_samples: int = 0

    @property
    def avg_standing_confidence(self) -> float | None:
        if self.standing_samples == 0:
            return None
        return self.standing_confidence_sum / self.standing_samples

    @property
    def avg_lying_confidence(self) -> float | None:
        if self.lying_samples == 0:
            return None
        return self.lying_confidence_sum / self.lying_samples

    @property
    def low_confidence_samples(self) -> int:
        return self.low_confidence_standing_samples + self.low_confidence_lying_samples

    @property
    def low_confidence_sec(self) -> float:
        return self.low_confidence_standing_sec + self.low_confidence_lying_sec

    def to_dict(self) -> dict:
        data = asdict(self)
        data["avg_standing_confidence"] = self.avg_standing_confidence
        data["avg_lying_confidence"] = self.avg_lying_confidence
        data["low_confidence_samples"] = self.low_confidence_samples
        data["low_confidence_sec"] = self.low_confidence_sec
        return data


@dataclass
class PostureTimeline:
    """Calibration, stable-posture segments and summary of one run."""

    calibration: Calibration
    segments: list[PostureSegment] = field(default_factory=list)
    summary: PostureSummary = field(default_factory=PostureSummary)

    def to_dict(self) -> dict:
        return {
            "calibration": self.calibration.to_dict(),
            "segments": [asdict(s) for s in self.segments],
            "summary": self.summary.to_dict(),
        }


def tilt_degrees(vector: Sequence[float], reference: Sequence[float]) -> float | None:
    """Angle between a gravity vector and the reference axis.

    The axis is unsigned, so a collar mounted upside down reads the same
    tilt as one mounted upright.

    Returns:
        Angle in degrees in [0, 90], or None for a near-zero vector.
    """
    magnitude = math.sqrt(sum(v * v for v in vector))
    if not math.isfinite(magnitude) or magnitude < 1e-3:
        return None
    ref_mag = math.sqrt(sum(r * r for r in reference)) or 1.0
    dot = sum(v * r for v, r in zip(vector, reference))
    cos_tilt = min(1.0, abs(dot) / (magnitude * ref_mag))
    return math.degrees(math.acos(cos_tilt))


def classify_posture_by_tilt(
    tilt_deg: float | None,
    variance: float,
    config: PostureConfig | None = None,
) -> str:
    """Raw per-sample posture from tilt and local variance."""
    config = config or PostureConfig()
    if tilt_deg is None or not math.isfinite(tilt_deg):
        return UNKNOWN
    if variance > config.variance_threshold:
        return TRANSITION
    if tilt_deg < config.standing_max_deg:
        return STANDING
    if tilt_deg > config.lying_min_deg:
        return LYING
    return TRANSITION


def posture_confidence(
    state: str,
    tilt_deg: float | None,
    variance: float,
    config: PostureConfig | None = None,
) -> float:
    """Confidence from the tilt's distance to the decision boundary.

    Halved while the local variance is above 80% of the transition threshold.
    """
    config = config or PostureConfig()
    if state == UNKNOWN or tilt_deg is None or not math.isfinite(tilt_deg):
        return 0.3

    if state == STANDING:
        confidence = 1.0 - min(1.0, tilt_deg / config.standing_max_deg)
    elif state == LYING:
        delta = max(0.0, tilt_deg - config.lying_min_deg)
        confidence = 0.6 + min(0.4, delta / 45.0)
    else:
        confidence = 0.4

    if variance > config.variance_threshold * 0.8:
        confidence *= 0.5
    return max(0.0, min(1.0, confidence))


def extract_gravity(samples: Sequence[Sample], config: PostureConfig | None = None) -> NDArray[np.float64]:
    """Low-pass filtered gravity vectors in g, shape (n_samples, 3).

    Missing accelerometer values repeat the last known value (the stream
    starts from an upright 1 g vector).
    """
    config = config or PostureConfig()
    raw = np.empty((len(samples), 3), dtype=np.float64)
    last = np.array([0.0, 0.0, 1.0])
    for i, s in enumerate(samples):
        for axis, value in enumerate((s.acc_x, s.acc_y, s.acc_z)):
            if value is not None and math.isfinite(value):
                last[axis] = value / config.acc_scale
        raw[i] = last

    return butterworth_lowpass(
        raw,
        cutoff_freq=config.cutoff_hz,
        sampling_rate=config.sampling_rate,
        order=config.filter_order,
    )


def build_posture_timeline(
    samples: Sequence[Sample],
    config: PostureConfig | None = None,
) -> PostureTimeline:
    """Classify posture for every sample and summarise the result.

    Each sample's ``posture`` attribute is set in place.

    Args:
        samples: Resampled 1 Hz samples sorted by epoch.
        config: Posture configuration.

    Returns:
        PostureTimeline with calibration, stable segments and summary.
    """
    config = config or PostureConfig()
    summary = PostureSummary(low_confidence_threshold=config.low_confidence, total_samples=len(samples))
    if not samples:
        return PostureTimeline(Calibration(CalibrationStatus.PENDING), [], summary)

    gravity = extract_gravity(samples, config)
    calibration = auto_calibrate(gravity, config.sampling_rate, config.calibration)
    magnitudes = np.linalg.norm(gravity, axis=1)
    window = max(1, int(round(config.window_sec * config.sampling_rate)))
    variances = sliding_variance(magnitudes, window)
    sample_sec = 1.0 / max(0.001, config.sampling_rate)

    segments: list[PostureSegment] = []
    active: dict | None = None

    def _close() -> None:
        nonlocal active
        if active is None:
            return
        segments.append(
            PostureSegment(
                state=active["state"],
                start_sec=active["start_sec"],
                end_sec=active["end_sec"],
                start_epoch=active["start_epoch"],
                end_epoch=active["end_epoch"],
                duration_sec=active["end_epoch"] - active["start_epoch"] + 1,
                avg_tilt_deg=active["tilt_sum"] / active["tilt_n"] if active["tilt_n"] else None,
            )
        )
        active = None

    state = PostureFSMState()
    for i, sample in enumerate(samples):
        tilt = tilt_degrees(gravity[i], calibration.reference)
        variance = float(variances[i])
        raw = classify_posture_by_tilt(tilt, variance, config)
        state = advance_posture(state, sample.epoch, raw, config.min_dwell_sec)
        if state.current != UNKNOWN:
            final = state.current
        else:
            final = UNKNOWN if raw == TRANSITION else raw
        confidence = posture_confidence(final, tilt, variance, config)

        sample.posture = PostureContext(
            stable_posture=final,
            raw_posture=raw,
            confidence=confidence,
            tilt_deg=tilt,
            variance=variance,
        )

        low = confidence < config.low_confidence
        if final == STANDING:
            summary.standing_sec += sample_sec
            summary.standing_samples += 1
            summary.standing_confidence_sum += confidence
            if low:
                summary.low_confidence_standing_samples += 1
                summary.low_confidence_standing_sec += sample_sec
        elif final == LYING:
            summary.lying_sec += sample_sec
            summary.lying_samples += 1
            summary.lying_confidence_sum += confidence
            if low:
                summary.low_confidence_lying_samples += 1
                summary.low_confidence_lying_sec += sample_sec
        else:
            summary.transition_sec += sample_sec
            summary.transition_samples += 1
            _close()
            continue

        if active is None or active["state"] != final:
            _close()
            active = {
                "state": final,
                "start_sec": sample.second_of_day,
                "end_sec": sample.second_of_day,
                "start_epoch": sample.epoch,
                "end_epoch": sample.epoch,
                "tilt_sum": tilt if tilt is not None else 0.0,
                "tilt_n": 1 if tilt is not None else 0,
            }
        else:
            active["end_sec"] = sample.second_of_day
            active["end_epoch"] = sample.epoch
            if tilt is not None:
                active["tilt_sum"] += tilt
                active["tilt_n"] += 1

    _close()
    logger.debug(
        f"Posture: calibration={calibration.status.value}, {len(segments)} segments, "
        f"standing={summary.standing_sec:.0f}s lying={summary.lying_sec:.0f}s"
    )
    return PostureTimeline(calibration, segments, summary)
