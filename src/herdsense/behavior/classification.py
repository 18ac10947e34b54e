"""Movement classification from GPS speed and accelerometer dynamics.

GPS and accelerometer each get their own ordered threshold ladder. Posture
comes from the tilt-based timeline when a sample carries one, otherwise from
the normalised axis components of the raw acceleration.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from herdsense.data.records import PostureContext, Sample
from herdsense.posture.fsm import LYING, STANDING, UNKNOWN

STATIONARY = "stationary"
RUMINATING = "ruminating"
GRAZING = "grazing"
SLOW_WALK = "slow_walk"
NORMAL_WALK = "normal_walk"
WALKING = "walking"
FAST_WALK = "fast_walk"
RUNNING = "running"
MOVING = "moving"

GPS_MOVING_CLASSES = frozenset({GRAZING, SLOW_WALK, NORMAL_WALK, FAST_WALK, RUNNING})
ACC_MOVING_CLASSES = frozenset({GRAZING, WALKING, FAST_WALK, RUNNING})
ACC_STATIONARY_CLASSES = frozenset({STATIONARY, RUMINATING})


@dataclass
class MovementThresholds:
    """Ordered threshold ladders for movement classification.

    Attributes:
        gps_stationary_mps: Below this speed GPS reports stationary.
        gps_grazing_mps: Upper bound of grazing speed.
        gps_slow_walk_mps: Upper bound of slow walk.
        gps_normal_walk_mps: Upper bound of normal walk.
        gps_fast_walk_mps: Upper bound of fast walk; above is running.
        acc_stationary_g: Below this dynamic acceleration the animal is still.
        acc_ruminating_g: Upper bound of ruminating.
        acc_grazing_g: Upper bound of grazing.
        acc_walking_g: Upper bound of walking.
        acc_fast_walk_g: Upper bound of fast walk; above is running.
        acc_scale: Raw accelerometer counts per g.
        gravity_tolerance: Relative band around 1 g accepted as pure gravity.
    """

    gps_stationary_mps: float = 0.02
    gps_grazing_mps: float = 0.08
    gps_slow_walk_mps: float = 0.25
    gps_normal_walk_mps: float = 0.8
    gps_fast_walk_mps: float = 1.5
    acc_stationary_g: float = 0.05
    acc_ruminating_g: float = 0.12
    acc_grazing_g: float = 0.20
    acc_walking_g: float = 0.35
    acc_fast_walk_g: float = 0.55
    acc_scale: float = 1024.0
    gravity_tolerance: float = 0.15


@dataclass(frozen=True)
class MovementResult:
    movement: str
    confidence: float

    @property
    def gps_moving(self) -> bool:
        return self.movement in GPS_MOVING_CLASSES

    @property
    def acc_moving(self) -> bool:
        return self.movement in ACC_MOVING_CLASSES


@dataclass(frozen=True)
class PostureResult:
    posture: str
    confidence: float
    source: str = "axes"


def classify_gps_movement(
    speed_mps: float,
    dt: float,
    thresholds: MovementThresholds | None = None,
) -> MovementResult:
    """Movement class from interval speed."""
    t = thresholds or MovementThresholds()
    if dt <= 0 or not math.isfinite(speed_mps):
        return MovementResult(UNKNOWN, 0.0)
    if speed_mps < t.gps_stationary_mps:
        return MovementResult(STATIONARY, 0.95)
    if speed_mps < t.gps_grazing_mps:
        return MovementResult(GRAZING, 0.85)
    if speed_mps < t.gps_slow_walk_mps:
        return MovementResult(SLOW_WALK, 0.8)
    if speed_mps < t.gps_normal_walk_mps:
        return MovementResult(NORMAL_WALK, 0.85)
    if speed_mps < t.gps_fast_walk_mps:
        return MovementResult(FAST_WALK, 0.8)
    return MovementResult(RUNNING, 0.9)


def classify_acc_movement(
    dynamic_g: float | None,
    thresholds: MovementThresholds | None = None,
) -> MovementResult:
    """Movement class from dynamic acceleration ``|‖a‖ - 1 g|``."""
    t = thresholds or MovementThresholds()
    if dynamic_g is None or not math.isfinite(dynamic_g):
        return MovementResult(UNKNOWN, 0.0)
    if dynamic_g < t.acc_stationary_g:
        return MovementResult(STATIONARY, 0.95)
    if dynamic_g < t.acc_ruminating_g:
        return MovementResult(RUMINATING, 0.8)
    if dynamic_g < t.acc_grazing_g:
        return MovementResult(GRAZING, 0.75)
    if dynamic_g < t.acc_walking_g:
        return MovementResult(WALKING, 0.8)
    if dynamic_g < t.acc_fast_walk_g:
        return MovementResult(FAST_WALK, 0.75)
    return MovementResult(RUNNING, 0.85)


def dynamic_acceleration(sample: Sample, acc_scale: float = 1024.0) -> float | None:
    """Deviation of the acceleration magnitude from 1 g, in g."""
    magnitude = sample.magnitude
    if magnitude is None or not math.isfinite(magnitude) or magnitude <= 1.0:
        return None
    return abs(magnitude / acc_scale - 1.0)


def classify_posture_from_axes(
    sample: Sample,
    thresholds: MovementThresholds | None = None,
) -> PostureResult:
    """Posture from the normalised absolute axis components.

    Used when no tilt-based posture is attached to the sample.
    """
    t = thresholds or MovementThresholds()
    magnitude = sample.magnitude
    if magnitude is None or magnitude <= 1.0:
        return PostureResult(UNKNOWN, 0.0)

    norm_g = magnitude / t.acc_scale
    if abs(norm_g - 1.0) > t.gravity_tolerance:
        return PostureResult(MOVING, 0.7)

    ax = abs(sample.acc_x) / magnitude
    ay = abs(sample.acc_y) / magnitude
    az = abs(sample.acc_z) / magnitude

    if az >= 0.85 and ax <= 0.30 and ay <= 0.30:
        return PostureResult(STANDING, min(1.0, (az - 0.7) / 0.3))
    if az <= 0.45 and (ax >= 0.75 or ay >= 0.75):
        return PostureResult(LYING, min(1.0, (max(ax, ay) - 0.5) / 0.4))
    if az > 0.5:
        return PostureResult(STANDING, 0.5)
    return PostureResult(LYING, 0.5)


def classify_posture(sample: Sample, thresholds: MovementThresholds | None = None) -> PostureResult:
    """Posture of a sample, preferring the attached tilt-based context."""
    context: PostureContext | None = sample.posture
    if context is not None and context.stable_posture:
        return PostureResult(context.stable_posture, context.confidence, source="tilt_filter")
    return classify_posture_from_axes(sample, thresholds)


def simplify_behavior(behavior: str) -> str:
    """Collapse a detailed behavior into lying, standing or walking."""
    if LYING in behavior:
        return LYING
    if "walk" in behavior or behavior in (RUNNING, GRAZING):
        return WALKING
    return STANDING
