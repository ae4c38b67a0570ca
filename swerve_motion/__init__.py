"""Swerve Motion - Motion Limiting and Pose Fusion for Swerve-Drive Robots

The motion-control and pose-estimation core of a ground robot with
independently steerable wheel modules. Converts velocity and position intents
into physically-limited chassis commands, and keeps a best-estimate field pose
by fusing wheel odometry with asynchronous vision observations.

## Architecture Overview

### Layer 1: Command Shaping
- `profiler.py` - Self-correcting point-to-point velocity profile
- `heading.py` - Proportional, wraparound-aware heading controller
- `rate_limiter.py` - Per-axis acceleration limiting

### Layer 2: Pose Estimation
- `estimator.py` - Odometry integration plus uncertainty-weighted vision fusion
- `vision.py` - Vision observation types and the single-slot hand-off

### Layer 3: Coordination
- `coordinator.py` - Public drive/query API and the periodic tick
  (odometry -> vision fusion -> telemetry, in that order)

### Collaborator Interfaces
- `drivetrain.py` - Abstract drivetrain and a simulated backend
- `telemetry.py` - Telemetry sinks (in-memory table, CSV)
- `client.py` - WebSocket drivetrain backend and 50 Hz control loop

## Quick Start

```python
from swerve_motion import DashboardTable, MotionCoordinator, SimulatedDrivetrain
from swerve_motion.geometry import Translation2d

coordinator = MotionCoordinator(SimulatedDrivetrain(), DashboardTable())
coordinator.drive_field_oriented(Translation2d(1.0, 0.0), 0.0)
coordinator.periodic()
```

Or connect to a drivetrain simulation:
```bash
python -m swerve_motion --target 2.0 2.0 -20
```

## Conventions

- Field frame: +x away from the alliance wall, +y toward the left wall
- Headings CCW positive, radians, normalized to (-π, π]
- Field -> robot velocity: rotate by -heading

## Configuration

All limits, gains and the vision uncertainty policy live in `config.py`.
"""

__version__ = "0.1.0"

from .config import MotionLimits
from .coordinator import MotionCoordinator
from .drivetrain import Drivetrain, OdometryDelta, SimulatedDrivetrain
from .estimator import PoseEstimator
from .geometry import ChassisSpeeds, Pose2d, Translation2d
from .heading import HeadingController
from .profiler import calculate_velocity
from .rate_limiter import RateLimiter
from .telemetry import CsvTelemetrySink, DashboardTable, TelemetrySink
from .vision import PoseConfidence, VisionObservation, VisionSlot

__all__ = [
    "MotionLimits",
    "MotionCoordinator",
    "Drivetrain",
    "OdometryDelta",
    "SimulatedDrivetrain",
    "PoseEstimator",
    "ChassisSpeeds",
    "Pose2d",
    "Translation2d",
    "HeadingController",
    "calculate_velocity",
    "RateLimiter",
    "CsvTelemetrySink",
    "DashboardTable",
    "TelemetrySink",
    "PoseConfidence",
    "VisionObservation",
    "VisionSlot",
]
