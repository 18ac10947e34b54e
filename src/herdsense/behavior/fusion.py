"""GPS/accelerometer fusion into one behavior label per interval.

GPS is trusted for movement and the accelerometer for posture. Each fused
result carries a consistency tag describing how the sources related:

    consistent           both sources agree
    gps_override         GPS moving, accelerometer quiet
    acc_override         GPS stationary, unknown posture, accelerometer moving
    minor_inconsistency  lying with head movement (``lying_active``)
    uncertain            GPS stationary, unknown posture, accelerometer quiet
    standby              device-sleep interval, fusion bypassed
    zone_override        lying outside the rest zone corrected to standing
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from herdsense.behavior.classification import (
    ACC_STATIONARY_CLASSES,
    GRAZING,
    RUMINATING,
    STATIONARY,
    WALKING,
    MovementResult,
    PostureResult,
)
from herdsense.errors import ConfigurationError
from herdsense.posture.fsm import LYING, STANDING

CONSISTENT = "consistent"
GPS_OVERRIDE = "gps_override"
ACC_OVERRIDE = "acc_override"
MINOR_INCONSISTENCY = "minor_inconsistency"
UNCERTAIN = "uncertain"
STANDBY = "standby"
ZONE_OVERRIDE = "zone_override"

LYING_ACTIVE = "lying_active"
STANDING_RUMINATING = "standing_ruminating"
STANDING_ACTIVE = "standing_active"


@dataclass
class FusionConfig:
    """Configuration for behavior fusion.

    Attributes:
        zone_override: Correct lying outside the rest zone to standing.
        standby_default_posture: Posture assumed in StandBy when the
            accelerometer posture is unknown or weak.
        standby_lying_confidence: Confidence of a StandBy lying result.
        standby_standing_confidence: Confidence of a StandBy standing result.
        standby_min_posture_confidence: Posture confidence below which the
            StandBy default posture is used.
    """

    zone_override: bool = True
    standby_default_posture: str = LYING
    standby_lying_confidence: float = 0.9
    standby_standing_confidence: float = 0.8
    standby_min_posture_confidence: float = 0.5

    def __post_init__(self):
        if self.standby_default_posture not in (LYING, STANDING):
            raise ConfigurationError(
                f"standby_default_posture must be 'lying' or 'standing', got {self.standby_default_posture!r}"
            )


@dataclass(frozen=True)
class FusedBehavior:
    """Fused classification of one interval."""

    behavior: str
    posture: str
    movement: str
    confidence: float
    consistency: str
    source: str = "combined"


def cross_validate(gps: MovementResult, acc: MovementResult, posture: PostureResult) -> FusedBehavior:
    """Fuse GPS movement, accelerometer movement and posture.

    Args:
        gps: GPS movement class of the interval.
        acc: Accelerometer movement class of the interval.
        posture: Posture of the interval's end sample.

    Returns:
        FusedBehavior with a consistency tag.
    """
    acc_stationary = acc.movement in ACC_STATIONARY_CLASSES

    if gps.gps_moving:
        behavior = GRAZING if gps.movement == GRAZING else WALKING
        if acc.acc_moving:
            return FusedBehavior(behavior, STANDING, gps.movement, max(gps.confidence, acc.confidence), CONSISTENT)
        return FusedBehavior(behavior, STANDING, gps.movement, gps.confidence * 0.8, GPS_OVERRIDE)

    if posture.posture == LYING:
        if acc_stationary:
            return FusedBehavior(LYING, LYING, STATIONARY, posture.confidence, CONSISTENT)
        return FusedBehavior(LYING_ACTIVE, LYING, STATIONARY, posture.confidence, MINOR_INCONSISTENCY)

    if posture.posture == STANDING:
        if acc.movement == RUMINATING:
            behavior = STANDING_RUMINATING
        elif acc_stationary:
            behavior = STANDING
        else:
            behavior = STANDING_ACTIVE
        return FusedBehavior(behavior, STANDING, STATIONARY, posture.confidence, CONSISTENT)

    if acc.acc_moving:
        return FusedBehavior(WALKING, STANDING, STATIONARY, acc.confidence * 0.7, ACC_OVERRIDE)
    return FusedBehavior(STANDING, STANDING, STATIONARY, 0.5, UNCERTAIN)


def fuse_standby(posture: PostureResult, config: FusionConfig | None = None) -> FusedBehavior:
    """Behavior of a StandBy interval.

    The device slept because the animal was still, so movement is forced to
    stationary and only the posture decides between lying and standing.
    """
    config = config or FusionConfig()
    if posture.posture in (LYING, STANDING) and posture.confidence >= config.standby_min_posture_confidence:
        resolved = posture.posture
    else:
        resolved = config.standby_default_posture

    confidence = config.standby_lying_confidence if resolved == LYING else config.standby_standing_confidence
    return FusedBehavior(resolved, resolved, STATIONARY, confidence, STANDBY, source="standby_inferred")


def apply_zone_constraint(
    fused: FusedBehavior,
    in_rest_zone: bool,
    gps_moving: bool,
    config: FusionConfig | None = None,
) -> FusedBehavior:
    """Correct a lying result outside the rest zone.

    Returns:
        The input unchanged unless it is lying outside the rest zone and the
        override is enabled; then standing (or walking if GPS moved), tagged
        ``zone_override``.
    """
    config = config or FusionConfig()
    if not config.zone_override or in_rest_zone:
        return fused
    if fused.behavior != LYING and fused.posture != LYING and LYING not in fused.behavior:
        return fused
    return replace(
        fused,
        behavior=WALKING if gps_moving else STANDING,
        posture=STANDING,
        consistency=ZONE_OVERRIDE,
        source="zone_constraint",
    )
