"""Configuration parameters for the swerve motion core.

This module centralizes all configuration parameters including:
- Chassis speed and acceleration limits
- Heading controller gain and tolerance
- Pose estimation (odometry and vision) uncertainty
- Vision standard deviation policy
- WebSocket connection parameters

All parameters are documented with their purpose, valid ranges, and tuning rationale.
The immutable MotionLimits struct is built from these values once at startup.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .geometry import Translation2d
from .vision import PoseConfidence

# ============================================================================
# Control Loop Timing
# ============================================================================

CONTROL_PERIOD_SECONDS = 0.02
"""Fixed period of the control tick (seconds).

The scheduler calls MotionCoordinator.periodic() once per period (50 Hz).
Rate limiters use this as their default dt."""


# ============================================================================
# Chassis Limits
# ============================================================================

MAX_MODULE_SPEED_MPS = 5.0
"""Maximum speed a single wheel module can reach (m/s).

Measured hardware capability. This is NOT the value used to cap how fast the
robot drives on the field; use MAX_TRANSLATION_SPEED_MPS for that."""

MAX_TRANSLATION_SPEED_MPS = 4.42
"""Speed limit of the robot across the field (m/s).

Tuning rationale:
- 4.42 m/s is a good practical maximum for this chassis
- Consider 1-2 m/s for development and 2-3 m/s for competition
"""

MAX_ROTATIONAL_VELOCITY_RAD_PER_SEC = 0.75 * 2.0 * math.pi
"""Maximum chassis angular velocity (rad/s). 0.75 rotations per second."""

MAX_TRANSLATION_ACCELERATION_MPS2 = 6.0
"""Maximum translational acceleration per axis (m/s²).

Used by the x and y rate limiters. At 50 Hz a command can change by at most
0.12 m/s per tick."""

MAX_ROTATION_ACCELERATION_RAD_PER_SEC2 = 4.0 * math.pi
"""Maximum angular acceleration (rad/s²). Used by the omega rate limiter."""

DECEL_FROM_MAX_TO_STOP_DIST_METRES = 1.5
"""Distance over which the velocity profile ramps from max speed to zero (m).

Tuning rationale:
- Shorter values stop more abruptly and risk overshooting the target
- Longer values waste time crawling toward the target
"""


# ============================================================================
# Heading Controller
# ============================================================================

HEADING_GAIN_P = 0.036
"""Proportional gain of the heading controller (1/rad).

omega = error * HEADING_GAIN_P * MAX_ROTATIONAL_VELOCITY_RAD_PER_SEC

Tuning rationale:
- Integral and derivative terms are not used (I = D = 0)
- With errors bounded by π the output never exceeds ~11% of max rotation,
  keeping in-place turns smooth
"""

ROTATION_TOLERANCE_RADIANS = math.radians(2.0)
"""Heading error considered "at target" (radians). 2 degrees."""

TARGET_POSITION_TOLERANCE_METRES = 0.05
"""Distance from a target pose considered "arrived" (m).

Used by drive-to-pose in the client. Below this the profile speed is under
0.15 m/s with the default limits, so the robot stops without a visible jerk."""


# ============================================================================
# Pose Estimation
# ============================================================================

ODOMETRY_STD_DEVS = np.array([0.1, 0.1, 0.1])
"""Standard deviations of the odometry state estimate [x (m), y (m), heading (rad)].

Larger values = trust odometry less, pull harder toward vision.
Smaller values = trust odometry more, vision corrections are gentler.
"""

POSE_HISTORY_SECONDS = 1.5
"""Length of the odometry pose history used for latency compensation (seconds).

Vision observations older than this are fused against the current pose."""

CAMERA_LOC_REL_TO_ROBOT_CENTER = Translation2d(0.0, 0.0)
"""Camera position relative to the robot centre (m).

Subtracted from vision poses to convert camera pose to robot-centre pose.
Translation only; orientation is unchanged."""


# ============================================================================
# Vision Standard Deviation Policy
# ============================================================================

VISION_STD_DEV_POLICY: Dict[PoseConfidence, List[Tuple[float, Tuple[float, float, float]]]] = {
    PoseConfidence.HIGH: [
        (0.5, (0.1, 0.1, math.radians(5.0))),
        (1.5, (0.5, 0.5, math.radians(15.0))),
        (2.5, (1.0, 1.0, math.radians(30.0))),
    ],
    PoseConfidence.MEDIUM: [
        (0.5, (0.5, 0.5, math.radians(15.0))),
        (1.0, (1.0, 1.0, math.radians(30.0))),
    ],
    PoseConfidence.LOW: [
        (0.25, (1.5, 1.5, math.radians(45.0))),
    ],
}
"""Vision standard deviations keyed by confidence tier and pose delta.

Each tier maps to an ascending list of (max_delta_m, (σx, σy, σheading)).
The first bracket whose max_delta_m is >= the distance between the current
estimate and the vision pose wins. A delta beyond the last bracket rejects
the observation.

Tuning rationale:
- High confidence (multiple tags, close range) tolerates up to 2.5m of drift
- Low confidence (single distant tag) is only used to nudge a nearby estimate
- Larger deltas get larger σ so a single bad frame cannot yank the pose
"""


def get_vision_standard_deviation(
    confidence: PoseConfidence, delta_m: float
) -> Optional[np.ndarray]:
    """Resolve the vision standard deviations for an observation.

    Args:
        confidence: Confidence tier reported by the perception pipeline.
        delta_m: Distance between the current estimate and the vision pose (m).

    Returns:
        Array [σx, σy, σheading], or None if the observation should be rejected.
    """
    if not math.isfinite(delta_m):
        return None

    for max_delta, std_devs in VISION_STD_DEV_POLICY.get(confidence, []):
        if delta_m <= max_delta:
            return np.array(std_devs, dtype=float)

    return None


# ============================================================================
# Motion Limits
# ============================================================================


@dataclass(frozen=True)
class MotionLimits:
    """Immutable chassis limits and controller gains.

    Built once at startup and passed into the components that need them.
    """

    max_translation_speed: float = MAX_TRANSLATION_SPEED_MPS
    max_module_speed: float = MAX_MODULE_SPEED_MPS
    max_rotational_velocity: float = MAX_ROTATIONAL_VELOCITY_RAD_PER_SEC
    max_translation_accel: float = MAX_TRANSLATION_ACCELERATION_MPS2
    max_rotation_accel: float = MAX_ROTATION_ACCELERATION_RAD_PER_SEC2
    decel_distance: float = DECEL_FROM_MAX_TO_STOP_DIST_METRES
    heading_gain_p: float = HEADING_GAIN_P
    rotation_tolerance: float = ROTATION_TOLERANCE_RADIANS

    def __post_init__(self) -> None:
        for name in (
            "max_translation_speed",
            "max_module_speed",
            "max_rotational_velocity",
            "max_translation_accel",
            "max_rotation_accel",
            "decel_distance",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"MotionLimits.{name} must be positive and finite, got {value}")

        if not math.isfinite(self.heading_gain_p) or self.heading_gain_p < 0:
            raise ValueError(f"MotionLimits.heading_gain_p must be >= 0, got {self.heading_gain_p}")

        if not math.isfinite(self.rotation_tolerance) or self.rotation_tolerance < 0:
            raise ValueError(
                f"MotionLimits.rotation_tolerance must be >= 0, got {self.rotation_tolerance}"
            )

    @classmethod
    def from_config(cls, config=None) -> "MotionLimits":
        """Build limits from a configuration module.

        Args:
            config: Module or object exposing the constants above.
                    If None, uses swerve_motion.config.
        """
        if config is None:
            from swerve_motion import config as cfg
        else:
            cfg = config

        return cls(
            max_translation_speed=cfg.MAX_TRANSLATION_SPEED_MPS,
            max_module_speed=cfg.MAX_MODULE_SPEED_MPS,
            max_rotational_velocity=cfg.MAX_ROTATIONAL_VELOCITY_RAD_PER_SEC,
            max_translation_accel=cfg.MAX_TRANSLATION_ACCELERATION_MPS2,
            max_rotation_accel=cfg.MAX_ROTATION_ACCELERATION_RAD_PER_SEC2,
            decel_distance=cfg.DECEL_FROM_MAX_TO_STOP_DIST_METRES,
            heading_gain_p=cfg.HEADING_GAIN_P,
            rotation_tolerance=cfg.ROTATION_TOLERANCE_RADIANS,
        )


# ============================================================================
# Telemetry Keys
# ============================================================================

TELEMETRY_PREFIX = "SwerveSubsystem"
"""Prefix for all values published to the telemetry sink."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status messages (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket server URI for the drivetrain simulation."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
