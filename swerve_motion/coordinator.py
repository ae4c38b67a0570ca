"""Motion coordinator for the swerve chassis.

Single entry point for everything that moves the robot or asks where it is:
- Robot- and field-oriented drive with per-axis acceleration limiting
- Heading correction (desired heading -> angular velocity)
- Point-to-point velocity profile
- The periodic tick: odometry -> vision fusion -> telemetry
"""

import logging
import math
import time
from typing import Callable, Optional

from .config import (
    CAMERA_LOC_REL_TO_ROBOT_CENTER,
    CONTROL_PERIOD_SECONDS,
    TELEMETRY_PREFIX,
    MotionLimits,
)
from .drivetrain import Drivetrain
from .estimator import PoseEstimator
from .geometry import ChassisSpeeds, Pose2d, Translation2d
from .heading import HeadingController
from .profiler import calculate_velocity
from .rate_limiter import RateLimiter
from .telemetry import TelemetrySink
from .vision import VisionSlot


class MotionCoordinator:
    """Orchestrates rate limiting, heading control, and pose estimation.

    The coordinator depends only on the Drivetrain interface, a vision source
    exposing take(), and a TelemetrySink. It is driven by an external
    scheduler that calls periodic() once per control period on the control
    thread; drive methods are called from that same thread.

    Attributes:
        drivetrain: Hardware backend executing velocity commands
        vision_source: Latest-value vision hand-off (take() clears it)
        telemetry: Sink for per-tick pose values
        limits: Immutable motion limits
        estimator: Field pose estimator
        heading_controller: Proportional heading controller
        x_limiter, y_limiter, omega_limiter: Per-axis acceleration limiters
    """

    def __init__(
        self,
        drivetrain: Drivetrain,
        telemetry: TelemetrySink,
        vision_source: Optional[VisionSlot] = None,
        limits: Optional[MotionLimits] = None,
        estimator: Optional[PoseEstimator] = None,
        camera_offset: Translation2d = CAMERA_LOC_REL_TO_ROBOT_CENTER,
        period: float = CONTROL_PERIOD_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the coordinator.

        Args:
            drivetrain: Hardware backend.
            telemetry: Telemetry sink for pose publishing.
            vision_source: Vision hand-off. If None, a fresh empty VisionSlot is used.
            limits: Motion limits. If None, built from config.
            estimator: Pose estimator. If None, starts at the origin.
            camera_offset: Camera position relative to robot centre (m).
            period: Control period (seconds), dt for the rate limiters.
            clock: Monotonic time source used for odometry and vision timestamps.
        """
        self.drivetrain = drivetrain
        self.telemetry = telemetry
        self.vision_source = vision_source if vision_source is not None else VisionSlot()
        self.limits = limits if limits is not None else MotionLimits.from_config()
        self.estimator = estimator if estimator is not None else PoseEstimator()
        self.camera_offset = camera_offset
        self.clock = clock

        self.x_limiter = RateLimiter(self.limits.max_translation_accel, period)
        self.y_limiter = RateLimiter(self.limits.max_translation_accel, period)
        self.omega_limiter = RateLimiter(self.limits.max_rotation_accel, period)

        self.heading_controller = HeadingController(
            self.limits.max_rotational_velocity, self.limits.heading_gain_p
        )

        self.last_vision_applied: bool = False

    # ------------------------------------------------------------------
    # Drive
    # ------------------------------------------------------------------

    def drive_robot_oriented(self, velocity: ChassisSpeeds) -> ChassisSpeeds:
        """Drive at a robot-relative velocity, bounded in speed and acceleration.

        Non-finite components are replaced with zero. Translation is capped at
        the lower of the translation and module speed limits (direction kept),
        omega at the rotational velocity limit. Each axis is then rate limited;
        axes may reach their targets on different ticks, which the next call
        corrects.

        Args:
            velocity: Desired robot-relative chassis velocity

        Returns:
            The limited velocity forwarded to the drivetrain
        """
        vx = self._finite_or_zero(velocity.vx, "vx")
        vy = self._finite_or_zero(velocity.vy, "vy")
        omega = self._finite_or_zero(velocity.omega, "omega")

        max_speed = min(self.limits.max_translation_speed, self.limits.max_module_speed)
        speed = math.hypot(vx, vy)
        if speed > max_speed:
            vx *= max_speed / speed
            vy *= max_speed / speed

        max_omega = self.limits.max_rotational_velocity
        omega = max(-max_omega, min(max_omega, omega))

        limited = ChassisSpeeds(
            self.x_limiter.calculate(vx),
            self.y_limiter.calculate(vy),
            self.omega_limiter.calculate(omega),
        )
        self.drivetrain.apply_velocity(limited)
        return limited

    def drive_field_oriented(
        self, translation: Optional[Translation2d] = None, rotation: Optional[float] = None
    ) -> ChassisSpeeds:
        """Drive with a field-relative translation velocity.

        Args:
            translation: Field velocity (m/s). +x away from the alliance wall,
                +y toward the left wall. None means no translation.
            rotation: Angular velocity (rad/s), CCW positive. None means no rotation.

        Returns:
            The limited robot-relative velocity forwarded to the drivetrain
        """
        x = 0.0 if translation is None else translation.x
        y = 0.0 if translation is None else translation.y
        w = 0.0 if rotation is None else rotation

        heading = self.get_pose().heading
        return self.drive_robot_oriented(ChassisSpeeds.from_field_relative_speeds(x, y, w, heading))

    # ------------------------------------------------------------------
    # Heading and profile utilities
    # ------------------------------------------------------------------

    def compute_omega(self, desired_heading: float) -> float:
        """Angular velocity that turns the robot toward desired_heading (rad/s)."""
        return self.heading_controller.compute_omega(desired_heading, self.get_pose().heading)

    def is_at_heading(self, desired_heading: float) -> bool:
        return self.heading_controller.is_at_heading(
            desired_heading, self.get_pose().heading, self.limits.rotation_tolerance
        )

    @staticmethod
    def calculate_velocity(
        translation_to_travel: Translation2d, limits: Optional[MotionLimits] = None
    ) -> Translation2d:
        """Velocity that covers translation_to_travel without overshooting.

        See profiler.calculate_velocity. Callable without an instance.
        """
        return calculate_velocity(translation_to_travel, limits)

    # ------------------------------------------------------------------
    # Pose and hardware pass-through
    # ------------------------------------------------------------------

    def get_pose(self) -> Pose2d:
        return self.estimator.get_pose()

    def reset_odometry(self, pose: Pose2d) -> None:
        """Hard-reset the pose estimate and the drivetrain odometry to pose.

        Raises:
            ValueError: If any pose component is not finite.
        """
        if not pose.is_finite():
            raise ValueError(f"Cannot reset odometry to non-finite pose: {pose}")

        self.drivetrain.reset_pose(pose)
        self.estimator.reset(pose)
        logging.info(
            f"Odometry reset to ({pose.x:.2f}, {pose.y:.2f}, {pose.heading_degrees:.1f}°)"
        )

    def zero_gyro(self) -> None:
        """Zero the heading reference; keep position, face heading 0."""
        self.drivetrain.zero_reference()
        pose = self.get_pose()
        self.estimator.reset(Pose2d(pose.x, pose.y, 0.0))
        logging.info("Gyro zeroed")

    def lock(self) -> None:
        """Lock the wheels so the robot resists being moved."""
        self.drivetrain.lock_wheels()

    # ------------------------------------------------------------------
    # Periodic tick
    # ------------------------------------------------------------------

    def periodic(self) -> bool:
        """Run one control tick.

        Order is fixed: odometry first, so that vision always corrects the
        freshest estimate, then vision, then telemetry.

        Returns:
            True if a vision observation was fused this tick
        """
        now = self.clock()

        self.estimator.apply_odometry(self.drivetrain.update_odometry(), now)

        self.last_vision_applied = self.estimator.fuse_vision(
            self.vision_source.take(), self.camera_offset, now
        )

        self._publish_telemetry()
        return self.last_vision_applied

    def _publish_telemetry(self) -> None:
        pose = self.get_pose()
        self.telemetry.put_number(f"{TELEMETRY_PREFIX}/location/x", pose.x)
        self.telemetry.put_number(f"{TELEMETRY_PREFIX}/location/y", pose.y)
        self.telemetry.put_number(f"{TELEMETRY_PREFIX}/heading", pose.heading_degrees)

        odometry_pose = self.drivetrain.report_pose()
        self.telemetry.put_number(f"{TELEMETRY_PREFIX}/odometry/x", odometry_pose.x)
        self.telemetry.put_number(f"{TELEMETRY_PREFIX}/odometry/y", odometry_pose.y)
        self.telemetry.put_number(
            f"{TELEMETRY_PREFIX}/odometry/heading", odometry_pose.heading_degrees
        )

    @staticmethod
    def _finite_or_zero(value: float, axis: str) -> float:
        if math.isfinite(value):
            return value
        logging.warning(f"Non-finite {axis} command {value} replaced with 0")
        return 0.0
