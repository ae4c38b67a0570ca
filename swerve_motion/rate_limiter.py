"""Slew rate limiter for chassis velocity commands.

Bounds how fast a scalar command may change between control ticks so that the
drivetrain is never asked for more acceleration than it can deliver. One
instance is used per axis (x, y, omega); instances share no state.
"""

import math
from typing import Optional


class RateLimiter:
    """Bounded-step limiter on a scalar command.

    Each call moves the output toward the target by at most rate_limit * dt:
        out = prev + clamp(target - prev, -rate_limit * dt, +rate_limit * dt)

    Attributes:
        rate_limit: Maximum rate of change (units per second)
        period: Default time step between calls (seconds)
        previous_output: Last value returned by calculate()
    """

    def __init__(self, rate_limit: float, period: float = 0.02, initial_value: float = 0.0):
        """Initialize the rate limiter.

        Args:
            rate_limit: Maximum rate of change in units per second. Must be > 0.
            period: Default dt used when calculate() is called without one (seconds).
            initial_value: Starting output. Default: 0.0 (robot at rest)

        Raises:
            ValueError: If rate_limit or period is not positive.
        """
        if rate_limit <= 0:
            raise ValueError(f"rate_limit must be positive, got {rate_limit}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        self.rate_limit = rate_limit
        self.period = period
        self.previous_output: float = initial_value

    def calculate(self, target: float, dt: Optional[float] = None) -> float:
        """Step the output toward target.

        Args:
            target: Desired value
            dt: Time since the last call (seconds). Defaults to the configured period.

        Returns:
            Rate-limited output
        """
        if not math.isfinite(target):
            # hold the last output
            return self.previous_output

        if dt is None:
            dt = self.period

        max_step = self.rate_limit * max(dt, 0.0)
        step = max(-max_step, min(max_step, target - self.previous_output))

        self.previous_output = self.previous_output + step
        return self.previous_output

    def reset(self, value: float = 0.0) -> None:
        """Re-seed the limiter output without any rate limiting."""
        self.previous_output = value
