"""Drivetrain hardware interface.

The motion core never talks to wheel modules directly. It depends only on the
Drivetrain capability set below, implemented once per hardware backend:
- SimulatedDrivetrain (this module): ideal kinematic integration, for tests
  and offline runs
- WebSocketDrivetrain (client.py): proxies a remote drivetrain simulation
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .geometry import ChassisSpeeds, Pose2d, Translation2d


@dataclass(frozen=True)
class OdometryDelta:
    """Robot motion since the previous odometry read.

    Attributes:
        dx: Forward displacement in the robot frame at the start of the tick (m)
        dy: Leftward displacement in the robot frame at the start of the tick (m)
        dheading: Heading change (rad), CCW positive
    """

    dx: float = 0.0
    dy: float = 0.0
    dheading: float = 0.0

    def is_finite(self) -> bool:
        return math.isfinite(self.dx) and math.isfinite(self.dy) and math.isfinite(self.dheading)


class Drivetrain(ABC):
    """Capability set the motion coordinator requires from a drivetrain backend."""

    @abstractmethod
    def apply_velocity(self, velocity: ChassisSpeeds) -> None:
        """Drive at the given robot-relative velocity (already limited)."""

    @abstractmethod
    def report_pose(self) -> Pose2d:
        """Pose according to wheel odometry and the heading reference alone."""

    @abstractmethod
    def zero_reference(self) -> None:
        """Zero the heading reference (gyro)."""

    @abstractmethod
    def lock_wheels(self) -> None:
        """Turn the modules into an X so the chassis resists being pushed."""

    @abstractmethod
    def update_odometry(self) -> OdometryDelta:
        """Read module positions and heading; return the motion since the last read."""

    @abstractmethod
    def reset_pose(self, pose: Pose2d) -> None:
        """Re-seed the backend's odometry at pose."""


class SimulatedDrivetrain(Drivetrain):
    """Ideal drivetrain that integrates the commanded velocity each period.

    Modules track the command instantly. An optional odometry scale error
    makes the reported deltas drift from the true motion, which is what
    vision fusion is there to correct.

    Attributes:
        period: Integration time step (seconds)
        odometry_scale: Multiplier applied to reported translation deltas
        true_pose: Ground-truth pose of the simulated chassis
        odometry_pose: Pose from integrating reported deltas only
        commands: Every velocity passed to apply_velocity()
    """

    def __init__(
        self,
        period: float = 0.02,
        start_pose: Optional[Pose2d] = None,
        odometry_scale: float = 1.0,
    ):
        self.period = period
        self.odometry_scale = odometry_scale
        self.true_pose: Pose2d = start_pose if start_pose is not None else Pose2d()
        self.odometry_pose: Pose2d = self.true_pose
        self.current_velocity = ChassisSpeeds()
        self.commands: List[ChassisSpeeds] = []
        self.locked: bool = False

    def apply_velocity(self, velocity: ChassisSpeeds) -> None:
        self.locked = False
        self.current_velocity = velocity
        self.commands.append(velocity)

    def report_pose(self) -> Pose2d:
        return self.odometry_pose

    def zero_reference(self) -> None:
        self.odometry_pose = Pose2d(self.odometry_pose.x, self.odometry_pose.y, 0.0)

    def lock_wheels(self) -> None:
        self.locked = True
        self.current_velocity = ChassisSpeeds()
        logging.debug("Simulated drivetrain wheels locked")

    def update_odometry(self) -> OdometryDelta:
        v = self.current_velocity
        dt = self.period

        self.true_pose = self._advance(self.true_pose, v.vx * dt, v.vy * dt, v.omega * dt)

        delta = OdometryDelta(
            dx=v.vx * dt * self.odometry_scale,
            dy=v.vy * dt * self.odometry_scale,
            dheading=v.omega * dt,
        )
        self.odometry_pose = self._advance(self.odometry_pose, delta.dx, delta.dy, delta.dheading)
        return delta

    def reset_pose(self, pose: Pose2d) -> None:
        self.odometry_pose = pose
        self.true_pose = pose

    @staticmethod
    def _advance(pose: Pose2d, dx: float, dy: float, dheading: float) -> Pose2d:
        field_delta = Translation2d(dx, dy).rotate_by(pose.heading)
        return Pose2d(pose.x + field_delta.x, pose.y + field_delta.y, pose.heading + dheading)
