"""Shared fixtures for swerve_motion tests."""

import itertools

import pytest

from swerve_motion.config import MotionLimits
from swerve_motion.coordinator import MotionCoordinator
from swerve_motion.drivetrain import SimulatedDrivetrain
from swerve_motion.estimator import PoseEstimator
from swerve_motion.telemetry import DashboardTable
from swerve_motion.vision import VisionSlot


class FakeClock:
    """Deterministic clock advancing one control period per call."""

    def __init__(self, step: float = 0.02):
        self._ticks = itertools.count()
        self.step = step

    def __call__(self) -> float:
        return next(self._ticks) * self.step


@pytest.fixture
def limits():
    return MotionLimits()


@pytest.fixture
def unlimited_accel():
    """Limits whose rate limiters never bind for speeds up to the max."""
    return MotionLimits(max_translation_accel=1000.0, max_rotation_accel=1000.0)


@pytest.fixture
def drivetrain():
    return SimulatedDrivetrain()


@pytest.fixture
def dashboard():
    return DashboardTable()


@pytest.fixture
def vision_slot():
    return VisionSlot()


@pytest.fixture
def make_coordinator(drivetrain, dashboard, vision_slot, limits):
    """Factory for coordinators wired to the shared fakes."""

    def _make(start_pose=None, limits_override=None, clock=None):
        return MotionCoordinator(
            drivetrain,
            dashboard,
            vision_source=vision_slot,
            limits=limits_override or limits,
            estimator=PoseEstimator(start_pose=start_pose),
            clock=clock or FakeClock(),
        )

    return _make
