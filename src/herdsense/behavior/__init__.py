"""Movement classification and GPS/accelerometer fusion for HerdSense."""

from herdsense.behavior.classification import (
    ACC_MOVING_CLASSES,
    GPS_MOVING_CLASSES,
    MovementResult,
    MovementThresholds,
    PostureResult,
    classify_acc_movement,
    classify_gps_movement,
    classify_posture,
    classify_posture_from_axes,
    dynamic_acceleration,
    simplify_behavior,
)
from herdsense.behavior.fusion import (
    FusedBehavior,
    FusionConfig,
    apply_zone_constraint,
    cross_validate,
    fuse_standby,
)
from herdsense.behavior.intervals import (
    DAY_END_SEC,
    DAY_START_SEC,
    CrossValidationStats,
    Interval,
    IntervalResult,
    Segment,
    build_intervals,
    build_segments,
    is_daytime,
)

__all__ = [
    # Classification
    "GPS_MOVING_CLASSES",
    "ACC_MOVING_CLASSES",
    "MovementThresholds",
    "MovementResult",
    "PostureResult",
    "classify_gps_movement",
    "classify_acc_movement",
    "classify_posture",
    "classify_posture_from_axes",
    "dynamic_acceleration",
    "simplify_behavior",
    # Fusion
    "FusionConfig",
    "FusedBehavior",
    "cross_validate",
    "fuse_standby",
    "apply_zone_constraint",
    # Intervals
    "DAY_START_SEC",
    "DAY_END_SEC",
    "Interval",
    "Segment",
    "CrossValidationStats",
    "IntervalResult",
    "build_intervals",
    "build_segments",
    "is_daytime",
]
