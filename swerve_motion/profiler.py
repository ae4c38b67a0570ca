"""Point-to-point velocity profile.

Maps the remaining translation to a target into a velocity for this tick.
Called every tick with the current remaining distance (not a precomputed
path), so the profile corrects itself when the robot is pushed off course.

The move is assumed to start and end at rest. There is no acceleration phase
here; acceleration is bounded by the rate limiters downstream.
"""

import logging
import math
from typing import Optional

from .config import MotionLimits
from .geometry import Translation2d


def calculate_velocity(
    translation_to_travel: Translation2d, limits: Optional[MotionLimits] = None
) -> Translation2d:
    """Return the fastest velocity that reaches the target without overshooting.

    Profile:
        - Cruise at max speed while distance >= decel distance
        - Ramp linearly to zero over the decel distance
        - Moves shorter than the decel distance scale both max speed and decel
          distance by distance / decel_distance, so they never accelerate to
          a speed they cannot shed in time

    Args:
        translation_to_travel: Remaining field-relative translation (m)
        limits: Motion limits. If None, uses MotionLimits.from_config().

    Returns:
        Field-relative velocity vector (m/s) pointing along translation_to_travel
    """
    if limits is None:
        limits = MotionLimits.from_config()

    distance = translation_to_travel.norm()
    if distance == 0.0 or not math.isfinite(distance):
        return Translation2d(0.0, 0.0)

    max_speed = limits.max_translation_speed
    decel_distance = limits.decel_distance

    decel_ratio = distance / limits.decel_distance
    if decel_ratio < 1.0:
        max_speed = max_speed * decel_ratio
        decel_distance = decel_distance * decel_ratio

    if distance >= decel_distance:
        # cruising
        speed = max_speed
    else:
        # decelerating
        speed = max_speed * (distance / decel_distance)

    angle = translation_to_travel.angle()
    logging.debug(
        f"Need to travel {distance:.3f}m at angle {math.degrees(angle):.1f}° -> {speed:.3f} m/s"
    )
    return Translation2d(speed * math.cos(angle), speed * math.sin(angle))
