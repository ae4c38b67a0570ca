"""
Motion coordinator tests (drive API, periodic pipeline, end-to-end)
"""

import math

import pytest

from swerve_motion.config import MotionLimits
from swerve_motion.coordinator import MotionCoordinator
from swerve_motion.drivetrain import Drivetrain, OdometryDelta, SimulatedDrivetrain
from swerve_motion.estimator import PoseEstimator
from swerve_motion.geometry import ChassisSpeeds, Pose2d, Translation2d
from swerve_motion.telemetry import DashboardTable
from swerve_motion.vision import PoseConfidence, VisionObservation, VisionSlot

from .conftest import FakeClock


# ============================================================================
# Field-oriented drive
# ============================================================================


def test_field_oriented_at_zero_heading(make_coordinator, drivetrain, unlimited_accel):
    coordinator = make_coordinator(start_pose=Pose2d(0.0, 0.0, 0.0), limits_override=unlimited_accel)

    coordinator.drive_field_oriented(Translation2d(1.0, 0.0), 0.0)

    command = drivetrain.commands[-1]
    assert command.vx == pytest.approx(1.0)
    assert command.vy == pytest.approx(0.0)
    assert command.omega == pytest.approx(0.0)


def test_field_oriented_at_ninety_degrees(make_coordinator, drivetrain, unlimited_accel):
    # CCW-positive heading: facing field +y, field +x is robot -y
    coordinator = make_coordinator(
        start_pose=Pose2d(0.0, 0.0, math.radians(90.0)), limits_override=unlimited_accel
    )

    coordinator.drive_field_oriented(Translation2d(1.0, 0.0), 0.0)

    command = drivetrain.commands[-1]
    assert command.vx == pytest.approx(0.0, abs=1e-9)
    assert command.vy == pytest.approx(-1.0)
    assert command.omega == pytest.approx(0.0)


def test_field_oriented_transform_before_limiting(make_coordinator, monkeypatch):
    coordinator = make_coordinator(start_pose=Pose2d(0.0, 0.0, math.radians(90.0)))
    requested = []
    monkeypatch.setattr(coordinator, "drive_robot_oriented", requested.append)

    coordinator.drive_field_oriented(Translation2d(1.0, 0.0), 0.0)

    assert requested[0].vx == pytest.approx(0.0, abs=1e-9)
    assert requested[0].vy == pytest.approx(-1.0)


def test_field_oriented_none_means_zero(make_coordinator, drivetrain):
    coordinator = make_coordinator()

    coordinator.drive_field_oriented(None, None)

    assert drivetrain.commands[-1] == ChassisSpeeds(0.0, 0.0, 0.0)


# ============================================================================
# Robot-oriented drive and limiting
# ============================================================================


def test_robot_oriented_rate_limited(make_coordinator, drivetrain, limits):
    coordinator = make_coordinator()
    max_step = limits.max_translation_accel * 0.02
    max_omega_step = limits.max_rotation_accel * 0.02

    coordinator.drive_robot_oriented(ChassisSpeeds(3.0, -3.0, 5.0))

    command = drivetrain.commands[-1]
    assert command.vx == pytest.approx(max_step)
    assert command.vy == pytest.approx(-max_step)
    assert command.omega == pytest.approx(max_omega_step)


def test_rate_limit_bound_over_sequence(make_coordinator, drivetrain, limits):
    coordinator = make_coordinator()
    targets = [ChassisSpeeds(4.0, 0.0, 3.0), ChassisSpeeds(-4.0, 2.0, -3.0)] * 20

    for target in targets:
        coordinator.drive_robot_oriented(target)

    previous = ChassisSpeeds()
    for command in drivetrain.commands:
        assert abs(command.vx - previous.vx) <= limits.max_translation_accel * 0.02 + 1e-12
        assert abs(command.vy - previous.vy) <= limits.max_translation_accel * 0.02 + 1e-12
        assert abs(command.omega - previous.omega) <= limits.max_rotation_accel * 0.02 + 1e-12
        previous = command


def test_translation_capped_at_max_speed(make_coordinator, drivetrain, unlimited_accel):
    coordinator = make_coordinator(limits_override=unlimited_accel)

    coordinator.drive_robot_oriented(ChassisSpeeds(30.0, 40.0, 100.0))

    command = drivetrain.commands[-1]
    assert math.hypot(command.vx, command.vy) == pytest.approx(unlimited_accel.max_translation_speed)
    assert command.vy / command.vx == pytest.approx(40.0 / 30.0)
    assert command.omega == pytest.approx(unlimited_accel.max_rotational_velocity)


def test_non_finite_command_axis_zeroed(make_coordinator, drivetrain, unlimited_accel):
    coordinator = make_coordinator(limits_override=unlimited_accel)

    coordinator.drive_robot_oriented(ChassisSpeeds(math.nan, 1.0, math.inf))

    command = drivetrain.commands[-1]
    assert command == ChassisSpeeds(0.0, 1.0, 0.0)


# ============================================================================
# Heading and profile utilities
# ============================================================================


def test_compute_omega_uses_current_heading(make_coordinator, limits):
    coordinator = make_coordinator(start_pose=Pose2d(0.0, 0.0, math.radians(-179.0)))

    omega = coordinator.compute_omega(math.radians(179.0))

    expected = math.radians(-2.0) * limits.heading_gain_p * limits.max_rotational_velocity
    assert omega == pytest.approx(expected)


def test_compute_omega_zero_at_target(make_coordinator):
    coordinator = make_coordinator(start_pose=Pose2d(0.0, 0.0, 1.2))

    assert coordinator.compute_omega(1.2) == 0.0


def test_non_finite_heading_target_does_not_spin(make_coordinator, drivetrain):
    coordinator = make_coordinator()

    omega = coordinator.compute_omega(math.nan)
    coordinator.drive_field_oriented(Translation2d(0.0, 0.0), omega)

    assert omega == 0.0
    assert drivetrain.commands[-1].omega == 0.0


def test_is_at_heading(make_coordinator):
    coordinator = make_coordinator(start_pose=Pose2d(0.0, 0.0, math.radians(45.0)))

    assert coordinator.is_at_heading(math.radians(46.0))
    assert not coordinator.is_at_heading(math.radians(50.0))


def test_calculate_velocity_without_instance(limits):
    velocity = MotionCoordinator.calculate_velocity(Translation2d(10.0, 0.0))

    assert velocity.x == pytest.approx(limits.max_translation_speed)


# ============================================================================
# Pass-through operations
# ============================================================================


def test_reset_odometry(make_coordinator, drivetrain):
    coordinator = make_coordinator()
    pose = Pose2d(1.83, 0.40, 0.0)

    coordinator.reset_odometry(pose)

    assert coordinator.get_pose() == pose
    assert drivetrain.report_pose() == pose


def test_reset_odometry_rejects_non_finite(make_coordinator):
    coordinator = make_coordinator()

    with pytest.raises(ValueError):
        coordinator.reset_odometry(Pose2d(math.nan, 0.0, 0.0))
    assert coordinator.get_pose() == Pose2d()


def test_zero_gyro_keeps_position(make_coordinator):
    coordinator = make_coordinator(start_pose=Pose2d(2.0, 3.0, 1.0))

    coordinator.zero_gyro()

    assert coordinator.get_pose() == Pose2d(2.0, 3.0, 0.0)


def test_lock(make_coordinator, drivetrain):
    coordinator = make_coordinator()

    coordinator.lock()

    assert drivetrain.locked


# ============================================================================
# Periodic pipeline
# ============================================================================


class StepDrivetrain(SimulatedDrivetrain):
    """Reports a fixed forward step every tick and records call order."""

    def __init__(self, calls):
        super().__init__()
        self.calls = calls

    def update_odometry(self):
        self.calls.append("odometry")
        return OdometryDelta(dx=1.0)


class RecordingVision:
    def __init__(self, calls, coordinator_ref, observation=None):
        self.calls = calls
        self.coordinator_ref = coordinator_ref
        self.observation = observation
        self.seen_x = []

    def take(self):
        self.calls.append("vision")
        self.seen_x.append(self.coordinator_ref[0].get_pose().x)
        observation, self.observation = self.observation, None
        return observation


class RecordingTelemetry(DashboardTable):
    def __init__(self, calls):
        super().__init__()
        self.calls = calls

    def put_number(self, key, value):
        self.calls.append("telemetry")
        super().put_number(key, value)


def test_periodic_order_odometry_vision_telemetry():
    calls = []
    ref = []
    vision = RecordingVision(calls, ref)
    coordinator = MotionCoordinator(
        StepDrivetrain(calls), RecordingTelemetry(calls), vision_source=vision, clock=FakeClock()
    )
    ref.append(coordinator)

    coordinator.periodic()

    assert calls[0] == "odometry"
    assert calls[1] == "vision"
    assert set(calls[2:]) == {"telemetry"}
    # vision saw the odometry-advanced pose
    assert vision.seen_x == [1.0]


def test_periodic_publishes_pose(make_coordinator, dashboard):
    coordinator = make_coordinator(start_pose=Pose2d(1.0, 2.0, math.radians(30.0)))

    coordinator.periodic()

    assert dashboard.get_number("SwerveSubsystem/location/x") == pytest.approx(1.0)
    assert dashboard.get_number("SwerveSubsystem/location/y") == pytest.approx(2.0)
    assert dashboard.get_number("SwerveSubsystem/heading") == pytest.approx(30.0)
    assert "SwerveSubsystem/odometry/x" in dashboard.values


def test_periodic_fuses_vision_once(make_coordinator, vision_slot):
    coordinator = make_coordinator()
    vision_slot.publish(
        VisionObservation(pose=Pose2d(0.2, 0.0, 0.0), confidence=PoseConfidence.HIGH)
    )

    assert coordinator.periodic() is True
    fused_x = coordinator.get_pose().x
    assert 0.0 < fused_x < 0.2

    # no replay of the consumed observation
    assert coordinator.periodic() is False
    assert coordinator.get_pose().x == pytest.approx(fused_x)


def test_periodic_rejects_implausible_vision(make_coordinator, vision_slot):
    coordinator = make_coordinator()
    vision_slot.publish(
        VisionObservation(pose=Pose2d(8.0, 0.0, 0.0), confidence=PoseConfidence.LOW)
    )

    assert coordinator.periodic() is False
    assert coordinator.get_pose() == Pose2d()
    assert vision_slot.take() is None


def test_periodic_without_vision(make_coordinator):
    coordinator = make_coordinator()

    assert coordinator.periodic() is False


# ============================================================================
# End-to-end scenarios
# ============================================================================


def _drive_to(coordinator, target, ticks):
    for _ in range(ticks):
        coordinator.periodic()
        remaining = target.translation - coordinator.get_pose().translation
        velocity = MotionCoordinator.calculate_velocity(remaining, coordinator.limits)
        coordinator.drive_field_oriented(velocity, coordinator.compute_omega(target.heading))


def test_drive_to_position_converges():
    drivetrain = SimulatedDrivetrain()
    coordinator = MotionCoordinator(drivetrain, DashboardTable(), clock=FakeClock())
    target = Pose2d(1.0, 0.5, 0.0)

    _drive_to(coordinator, target, ticks=500)

    assert drivetrain.true_pose.translation.distance(target.translation) < 0.02


def test_drive_to_heading_converges():
    limits = MotionLimits(heading_gain_p=0.3)
    drivetrain = SimulatedDrivetrain()
    coordinator = MotionCoordinator(drivetrain, DashboardTable(), limits=limits, clock=FakeClock())
    target = Pose2d(0.0, 0.0, math.radians(90.0))

    _drive_to(coordinator, target, ticks=500)

    assert coordinator.is_at_heading(target.heading)


def test_vision_corrects_odometry_drift():
    drivetrain = SimulatedDrivetrain(odometry_scale=1.1)
    slot = VisionSlot()
    coordinator = MotionCoordinator(
        drivetrain,
        DashboardTable(),
        vision_source=slot,
        estimator=PoseEstimator(),
        clock=FakeClock(),
    )
    target = Pose2d(2.0, 0.0, 0.0)

    for _ in range(400):
        slot.publish(VisionObservation(pose=drivetrain.true_pose, confidence=PoseConfidence.HIGH))
        coordinator.periodic()
        remaining = target.translation - coordinator.get_pose().translation
        velocity = MotionCoordinator.calculate_velocity(remaining, coordinator.limits)
        coordinator.drive_field_oriented(velocity, 0.0)

    true_position = drivetrain.true_pose.translation
    fused_error = coordinator.get_pose().translation.distance(true_position)
    odometry_error = drivetrain.report_pose().translation.distance(true_position)

    assert fused_error < 0.5 * odometry_error


class MinimalDrivetrain(Drivetrain):
    """A backend implementing only the abstract interface."""

    def __init__(self):
        self.applied = []

    def apply_velocity(self, velocity):
        self.applied.append(velocity)

    def report_pose(self):
        return Pose2d()

    def zero_reference(self):
        pass

    def lock_wheels(self):
        pass

    def update_odometry(self):
        return OdometryDelta()

    def reset_pose(self, pose):
        pass


def test_coordinator_depends_only_on_interface():
    backend = MinimalDrivetrain()
    coordinator = MotionCoordinator(backend, DashboardTable(), clock=FakeClock())

    coordinator.periodic()
    coordinator.drive_robot_oriented(ChassisSpeeds(0.1, 0.0, 0.0))

    assert backend.applied == [ChassisSpeeds(0.1, 0.0, 0.0)]


def test_drivetrain_interface_is_abstract():
    with pytest.raises(TypeError):
        Drivetrain()
