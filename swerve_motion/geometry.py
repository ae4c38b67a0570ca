"""Planar geometry types for the swerve motion core.

Conventions:
- Field frame: +x away from the alliance wall, +y toward the left wall
- Headings are CCW-positive radians, normalized to (-π, π]
- Robot frame: +x forward, +y left
"""

import math
from dataclasses import dataclass


def normalize_angle(angle: float) -> float:
    """Fold an angle into (-π, π].

    Args:
        angle: Angle in radians (any range)

    Returns:
        Equivalent angle in (-π, π]
    """
    folded = angle % (2.0 * math.pi)
    if folded > math.pi:
        folded -= 2.0 * math.pi
    return folded


@dataclass(frozen=True)
class Translation2d:
    """A 2D vector in metres (or metres/second when used as a velocity)."""

    x: float = 0.0
    y: float = 0.0

    def norm(self) -> float:
        return math.hypot(self.x, self.y)

    def angle(self) -> float:
        """Direction of the vector (radians). Zero vector points along +x."""
        return math.atan2(self.y, self.x)

    def distance(self, other: "Translation2d") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def rotate_by(self, theta: float) -> "Translation2d":
        """Rotate the vector CCW by theta radians."""
        cos_theta = math.cos(theta)
        sin_theta = math.sin(theta)
        return Translation2d(
            self.x * cos_theta - self.y * sin_theta,
            self.x * sin_theta + self.y * cos_theta,
        )

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def __sub__(self, other: "Translation2d") -> "Translation2d":
        return Translation2d(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Pose2d:
    """Field-relative position and orientation.

    Attributes:
        x: Field x-coordinate (m)
        y: Field y-coordinate (m)
        heading: Orientation (rad), normalized to (-π, π] on construction
    """

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def __post_init__(self) -> None:
        if math.isfinite(self.heading):
            # frozen dataclass: bypass __setattr__ to store the folded heading
            object.__setattr__(self, "heading", normalize_angle(self.heading))

    @classmethod
    def from_translation(cls, translation: Translation2d, heading: float = 0.0) -> "Pose2d":
        return cls(translation.x, translation.y, heading)

    @property
    def translation(self) -> Translation2d:
        return Translation2d(self.x, self.y)

    @property
    def heading_degrees(self) -> float:
        return math.degrees(self.heading)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.heading)


@dataclass(frozen=True)
class ChassisSpeeds:
    """Robot-relative chassis velocity.

    Attributes:
        vx: Forward velocity (m/s)
        vy: Leftward velocity (m/s)
        omega: Angular velocity (rad/s), CCW positive
    """

    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    @classmethod
    def from_field_relative_speeds(
        cls, vx: float, vy: float, omega: float, heading: float
    ) -> "ChassisSpeeds":
        """Convert field-relative speeds into robot-relative speeds.

        The field velocity is rotated by -heading. With heading = 90° (robot
        facing field +y), a field +x request becomes robot (0, -1): the robot
        has to move toward its right.

        Args:
            vx: Field-relative x velocity (m/s)
            vy: Field-relative y velocity (m/s)
            omega: Angular velocity (rad/s), unchanged by the transform
            heading: Current robot heading (rad)
        """
        robot = Translation2d(vx, vy).rotate_by(-heading)
        return cls(robot.x, robot.y, omega)

    @property
    def translation(self) -> Translation2d:
        return Translation2d(self.vx, self.vy)
