"""Heading controller for the swerve chassis.

Computes the angular velocity needed to turn the robot toward a desired
heading. Proportional only; the law is re-evaluated every tick against the
latest pose, so it acts as a closed loop rather than a planned turn.
"""

import logging
import math


class HeadingController:
    """Proportional, wraparound-aware heading controller.

    Control law:
        error = (desired - current) mod 2π, folded into (-π, π]
        omega = error * gain_p * max_angular_velocity

    Attributes:
        max_angular_velocity: Maximum chassis angular velocity (rad/s)
        gain_p: Proportional gain (1/rad)
        clamp_output: If True, omega is clamped to ±max_angular_velocity
    """

    def __init__(self, max_angular_velocity: float, gain_p: float, clamp_output: bool = True):
        """Initialize the heading controller.

        Args:
            max_angular_velocity: Maximum chassis angular velocity (rad/s).
            gain_p: Proportional gain. With gain_p > 1/π a large error would ask
                for more than max_angular_velocity.
            clamp_output: Clamp omega to ±max_angular_velocity. Default: True.
                Set False to keep the raw proportional output.
        """
        self.max_angular_velocity = max_angular_velocity
        self.gain_p = gain_p
        self.clamp_output = clamp_output

    @staticmethod
    def heading_error(desired_heading: float, current_heading: float) -> float:
        """Shortest signed rotation from current to desired heading, in (-π, π]."""
        error = (desired_heading - current_heading) % (2.0 * math.pi)
        if error > math.pi:
            error -= 2.0 * math.pi
        return error

    def compute_omega(self, desired_heading: float, current_heading: float) -> float:
        """Compute the angular velocity toward desired_heading.

        Args:
            desired_heading: Target heading (rad)
            current_heading: Current heading (rad)

        Returns:
            Angular velocity command (rad/s), CCW positive
        """
        error = self.heading_error(desired_heading, current_heading)
        if not math.isfinite(error):
            logging.warning(
                f"Non-finite heading error (desired={desired_heading}, current={current_heading}); "
                "commanding zero rotation"
            )
            return 0.0

        omega = error * self.gain_p * self.max_angular_velocity

        if self.clamp_output:
            omega = max(-self.max_angular_velocity, min(self.max_angular_velocity, omega))

        return omega

    def is_at_heading(self, desired_heading: float, current_heading: float, tolerance: float) -> bool:
        return abs(self.heading_error(desired_heading, current_heading)) <= tolerance
