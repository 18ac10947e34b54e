"""Posture extraction for HerdSense.

This module provides gravity extraction, orientation auto-calibration, the
posture hysteresis reducer and the per-day posture timeline.
"""

from herdsense.posture.calibration import (
    VERTICAL,
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
    run_posture_fsm,
)
from herdsense.posture.timeline import (
    ACC_SCALE,
    PostureConfig,
    PostureSegment,
    PostureSummary,
    PostureTimeline,
    build_posture_timeline,
    classify_posture_by_tilt,
    extract_gravity,
    posture_confidence,
    tilt_degrees,
)

__all__ = [
    # Hysteresis
    "STANDING",
    "LYING",
    "TRANSITION",
    "UNKNOWN",
    "PostureFSMState",
    "advance_posture",
    "run_posture_fsm",
    # Calibration
    "VERTICAL",
    "Calibration",
    "CalibrationConfig",
    "CalibrationStatus",
    "auto_calibrate",
    # Timeline
    "ACC_SCALE",
    "PostureConfig",
    "PostureSegment",
    "PostureSummary",
    "PostureTimeline",
    "build_posture_timeline",
    "classify_posture_by_tilt",
    "extract_gravity",
    "posture_confidence",
    "tilt_degrees",
]
