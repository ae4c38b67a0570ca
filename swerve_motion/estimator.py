"""Pose estimation for the swerve chassis.

This module maintains the field pose by fusing wheel odometry with vision:
- Odometry deltas every control tick (dead reckoning)
- Vision poses whenever the perception pipeline sees a target
- Confidence- and delta-dependent vision uncertainty, with outlier rejection
- Latency compensation from a short odometry pose history
"""

import logging
import math
from collections import deque
from typing import Deque, Dict, Optional, Tuple

import numpy as np

from .config import (
    CAMERA_LOC_REL_TO_ROBOT_CENTER,
    ODOMETRY_STD_DEVS,
    POSE_HISTORY_SECONDS,
    get_vision_standard_deviation,
)
from .drivetrain import OdometryDelta
from .geometry import Pose2d, Translation2d, normalize_angle
from .vision import VisionObservation


class PoseEstimator:
    """Odometry/vision pose estimator with per-axis uncertainty weighting.

    State: pose (x, y, heading) in the field frame.

    Odometry is taken as ground truth for each tick. Vision pulls the estimate
    toward the observed pose with a per-axis gain derived from the odometry
    and vision standard deviations:
        q = σ_odometry², r = σ_vision²
        k = q / (q + sqrt(q * r))
    Lower vision σ gives a gain closer to 1 (stronger pull).
    """

    def __init__(
        self,
        start_pose: Optional[Pose2d] = None,
        state_std_devs: Optional[np.ndarray] = None,
        history_seconds: float = POSE_HISTORY_SECONDS,
    ):
        """Initialize the pose estimator.

        Args:
            start_pose: Initial field pose. Default: origin facing +x.
            state_std_devs: Odometry standard deviations [x, y, heading].
                If None, uses config.ODOMETRY_STD_DEVS.
            history_seconds: Length of pose history kept for latency compensation.
        """
        self.pose: Pose2d = start_pose if start_pose is not None else Pose2d()

        if state_std_devs is None:
            state_std_devs = ODOMETRY_STD_DEVS
        self.q = np.square(np.asarray(state_std_devs, dtype=float))

        self.history_seconds = history_seconds
        self.history: Deque[Tuple[float, Pose2d]] = deque()
        self.last_timestamp: Optional[float] = None

        # Diagnostics (for logging/tuning)
        self.vision_fused = 0
        self.vision_rejected = 0
        self.last_vision_delta = 0.0
        self.last_correction = np.zeros(3)

    def apply_odometry(self, delta: OdometryDelta, timestamp: float) -> Pose2d:
        """Advance the estimate by one tick of odometry.

        Args:
            delta: Robot-relative motion since the last tick
            timestamp: Time of the odometry read (seconds)

        Returns:
            The updated pose
        """
        if not delta.is_finite():
            logging.warning(f"Ignoring non-finite odometry delta: {delta}")
        else:
            field_delta = Translation2d(delta.dx, delta.dy).rotate_by(self.pose.heading)
            self.pose = Pose2d(
                self.pose.x + field_delta.x,
                self.pose.y + field_delta.y,
                self.pose.heading + delta.dheading,
            )

        self.last_timestamp = timestamp
        self.history.append((timestamp, self.pose))
        while self.history and self.history[0][0] < timestamp - self.history_seconds:
            self.history.popleft()

        return self.pose

    def fuse_vision(
        self,
        observation: Optional[VisionObservation],
        camera_offset: Optional[Translation2d] = None,
        now: Optional[float] = None,
    ) -> bool:
        """Fuse a vision observation into the estimate.

        Args:
            observation: Latest vision observation, or None if no target is visible
            camera_offset: Camera position relative to robot centre.
                If None, uses config.CAMERA_LOC_REL_TO_ROBOT_CENTER.
            now: Current time (seconds). Defaults to the last odometry timestamp.

        Returns:
            True if the observation was fused, False if absent or rejected.
        """
        if observation is None:
            return False

        if not observation.pose.is_finite() or not math.isfinite(observation.latency):
            self.vision_rejected += 1
            logging.warning(f"Rejected non-finite vision observation: {observation}")
            return False

        if camera_offset is None:
            camera_offset = CAMERA_LOC_REL_TO_ROBOT_CENTER

        # convert camera pose to robot-centre pose
        candidate = Pose2d.from_translation(
            observation.pose.translation - camera_offset, observation.pose.heading
        )

        delta_m = self.pose.translation.distance(candidate.translation)
        self.last_vision_delta = delta_m

        std_devs = get_vision_standard_deviation(observation.confidence, delta_m)
        if std_devs is None:
            self.vision_rejected += 1
            logging.debug(
                f"Vision pose rejected: {observation.confidence.name} confidence, "
                f"delta {delta_m:.2f}m"
            )
            return False

        if now is None:
            now = self.last_timestamp if self.last_timestamp is not None else 0.0
        fusion_timestamp = now - observation.latency

        self._add_vision_measurement(candidate, fusion_timestamp, std_devs)
        self.vision_fused += 1
        logging.debug(
            f"Updating pose from vision: ({candidate.x:.2f}, {candidate.y:.2f}, "
            f"{candidate.heading_degrees:.1f}°), delta {delta_m:.2f}m"
        )
        return True

    def _add_vision_measurement(
        self, vision_pose: Pose2d, timestamp: float, std_devs: np.ndarray
    ) -> None:
        r = np.square(std_devs)
        denominator = self.q + np.sqrt(self.q * r)
        gain = np.divide(self.q, denominator, out=np.zeros(3), where=denominator > 0)

        past_pose = self.sample_at(timestamp)
        residual = np.array(
            [
                vision_pose.x - past_pose.x,
                vision_pose.y - past_pose.y,
                normalize_angle(vision_pose.heading - past_pose.heading),
            ]
        )
        correction = gain * residual
        self.last_correction = correction

        self.pose = Pose2d(
            self.pose.x + float(correction[0]),
            self.pose.y + float(correction[1]),
            self.pose.heading + float(correction[2]),
        )

    def sample_at(self, timestamp: float) -> Pose2d:
        """Odometry-advanced pose at timestamp, interpolated from history.

        Falls back to the current pose when timestamp lies outside the history.
        """
        if not self.history:
            return self.pose

        oldest_time = self.history[0][0]
        newest_time = self.history[-1][0]
        if timestamp < oldest_time or timestamp >= newest_time:
            return self.pose

        previous_time, previous_pose = self.history[0]
        for sample_time, sample_pose in self.history:
            if sample_time >= timestamp:
                span = sample_time - previous_time
                if span <= 0:
                    return sample_pose
                t = (timestamp - previous_time) / span
                return Pose2d(
                    previous_pose.x + (sample_pose.x - previous_pose.x) * t,
                    previous_pose.y + (sample_pose.y - previous_pose.y) * t,
                    previous_pose.heading
                    + normalize_angle(sample_pose.heading - previous_pose.heading) * t,
                )
            previous_time, previous_pose = sample_time, sample_pose

        return self.pose

    def get_pose(self) -> Pose2d:
        """Current best estimate (immutable snapshot)."""
        return self.pose

    def reset(self, pose: Pose2d) -> None:
        """Overwrite the estimate with pose, discarding history."""
        self.pose = pose
        self.history.clear()
        self.last_correction = np.zeros(3)

    def get_diagnostics(self) -> Dict[str, float]:
        """Get estimator diagnostic information for tuning and monitoring.

        Returns:
            Dictionary containing:
                - vision_fused: Total observations fused
                - vision_rejected: Total observations rejected
                - last_vision_delta: Distance of the last observation from the estimate (m)
                - correction_norm: Translation size of the last vision correction (m)
                - history_size: Number of poses in the latency buffer
        """
        return {
            "vision_fused": self.vision_fused,
            "vision_rejected": self.vision_rejected,
            "last_vision_delta": float(self.last_vision_delta),
            "correction_norm": float(np.linalg.norm(self.last_correction[:2])),
            "history_size": len(self.history),
        }
