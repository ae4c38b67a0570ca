#!/usr/bin/env python3
"""
WebSocket Client for Swerve Drive Control

This module connects the motion core to a remote drivetrain simulation over a
WebSocket. The server streams odometry deltas and vision poses; the client
runs the fixed-period control tick, drives toward an optional target pose,
and sends chassis velocity commands back. Published telemetry is saved to CSV.
"""

import asyncio
import json
import logging
import math
import signal
import time
from typing import Any, Dict, List, Optional, Union

import websockets

from swerve_motion.config import (
    CONTROL_PERIOD_SECONDS,
    TARGET_POSITION_TOLERANCE_METRES,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    WS_URI,
)
from swerve_motion.coordinator import MotionCoordinator
from swerve_motion.drivetrain import Drivetrain, OdometryDelta
from swerve_motion.geometry import ChassisSpeeds, Pose2d
from swerve_motion.telemetry import CsvTelemetrySink
from swerve_motion.vision import PoseConfidence, VisionObservation, VisionSlot


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            # INFO messages: just the message without timestamp
            return record.getMessage()
        else:
            # WARNING, ERROR, etc.: include timestamp and level
            return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        # Verbose mode: show all levels with timestamps
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        # Normal mode: INFO without timestamps, WARNING/ERROR with timestamps
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


class WebSocketDrivetrain(Drivetrain):
    """Drivetrain backend that proxies a remote simulation.

    Commands are queued synchronously by the coordinator and flushed to the
    socket by the control loop once per tick. Odometry deltas received between
    ticks are accumulated and handed over by update_odometry().

    Attributes:
        outbox: JSON messages waiting to be sent
        reported_pose: Latest odometry-only pose reported by the server
    """

    def __init__(self) -> None:
        self.outbox: List[Dict[str, Any]] = []
        self.reported_pose = Pose2d()
        self._pending_dx = 0.0
        self._pending_dy = 0.0
        self._pending_dheading = 0.0

    def apply_velocity(self, velocity: ChassisSpeeds) -> None:
        self.outbox.append({"vx": velocity.vx, "vy": velocity.vy, "omega": velocity.omega})

    def report_pose(self) -> Pose2d:
        return self.reported_pose

    def zero_reference(self) -> None:
        self.outbox.append({"command": "zero_gyro"})

    def lock_wheels(self) -> None:
        self.outbox.append({"command": "lock"})

    def update_odometry(self) -> OdometryDelta:
        delta = OdometryDelta(self._pending_dx, self._pending_dy, self._pending_dheading)
        self._pending_dx = 0.0
        self._pending_dy = 0.0
        self._pending_dheading = 0.0
        return delta

    def reset_pose(self, pose: Pose2d) -> None:
        self.reported_pose = pose
        self.outbox.append({"command": "reset_pose", "pose": [pose.x, pose.y, pose.heading]})

    def handle_odometry(self, data: Dict[str, Any]) -> None:
        """Accumulate an odometry message from the server.

        Deltas are summed in the robot frame; at 50 Hz the heading change
        within one tick is small enough for this to hold.
        """
        self._pending_dx += float(data.get("dx", 0.0))
        self._pending_dy += float(data.get("dy", 0.0))
        self._pending_dheading += float(data.get("dheading", 0.0))

        pose = data.get("pose")
        if isinstance(pose, list) and len(pose) >= 3:
            self.reported_pose = Pose2d(float(pose[0]), float(pose[1]), float(pose[2]))

    def drain(self) -> List[Dict[str, Any]]:
        messages = self.outbox
        self.outbox = []
        return messages


def parse_vision_message(data: Dict[str, Any]) -> VisionObservation:
    """Build a VisionObservation from a server vision message.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If the confidence tier or pose is malformed.
    """
    pose = data["pose"]
    if not isinstance(pose, list) or len(pose) < 3:
        raise ValueError(f"Vision pose must be [x, y, heading], got {pose}")

    return VisionObservation(
        pose=Pose2d(float(pose[0]), float(pose[1]), float(pose[2])),
        confidence=PoseConfidence(str(data["confidence"]).lower()),
        latency=float(data.get("latency", 0.0)),
        capture_timestamp=float(data.get("timestamp", 0.0)),
    )


class SwerveClient:
    """Swerve control system with WebSocket communication and telemetry logging.

    This class manages the complete control pipeline:
    - WebSocket connection to the drivetrain simulation
    - Odometry and vision message intake
    - Fixed-period coordinator tick (odometry -> vision -> telemetry)
    - Drive-to-pose using the velocity profile and heading controller
    - Telemetry logging to CSV

    Attributes:
        uri: WebSocket URI to connect to.
        target: Optional pose to drive to.
        drivetrain: WebSocket-backed drivetrain.
        vision_slot: Latest-value vision hand-off.
        telemetry: CSV telemetry sink.
        coordinator: Motion coordinator.
        should_stop: Flag indicating whether to stop control loop.
    """

    def __init__(self, uri: str, output_dir: str = ".", target: Optional[Pose2d] = None) -> None:
        """Initialize the swerve client.

        Args:
            uri: WebSocket URI to connect to (must start with ws:// or wss://).
            output_dir: Base directory for output files (default: current directory).
            target: Pose to drive to. If None, the robot holds still.

        Raises:
            ValueError: If URI format is invalid.
        """
        # Validate URI format
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.target: Optional[Pose2d] = target
        self.should_stop: bool = False
        self.target_reached: bool = False

        # Initialize drivetrain proxy, vision hand-off and telemetry sink
        self.drivetrain = WebSocketDrivetrain()
        self.vision_slot = VisionSlot()
        self.telemetry = CsvTelemetrySink(output_dir=output_dir)
        self.coordinator = MotionCoordinator(
            self.drivetrain, self.telemetry, vision_source=self.vision_slot
        )

    def parse_and_route_message(self, message: Union[str, bytes]) -> None:
        """Parse incoming message and route to appropriate handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.
        """
        try:
            # Handle both str and bytes
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            if not isinstance(data, dict):
                logging.warning(f"Ignoring non-object message: {message!r}")
                return

            # Route message based on type
            message_type = data.get("message_type")

            if message_type == "odometry":
                self.drivetrain.handle_odometry(data)
            elif message_type == "vision":
                self.vision_slot.publish(parse_vision_message(data))
            elif message_type == "stop":
                logging.info(f"{TERM_BLUE}Server requested stop{TERM_RESET}")
                self.should_stop = True
            else:
                # Unknown message type - log for debugging
                logging.debug(f"Received unknown message: {json.dumps(data)}")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")
        except Exception as e:
            logging.error(f"Unexpected error processing message: {e}", exc_info=True)

    def control_step(self) -> None:
        """Run one coordinator tick and issue this tick's drive command."""
        self.coordinator.periodic()

        if self.target is None or self.target_reached:
            self.coordinator.drive_robot_oriented(ChassisSpeeds())
            return

        pose = self.coordinator.get_pose()
        remaining = self.target.translation - pose.translation

        if (
            remaining.norm() <= TARGET_POSITION_TOLERANCE_METRES
            and self.coordinator.is_at_heading(self.target.heading)
        ):
            logging.info(
                f"{TERM_BLUE}✓ Reached target ({pose.x:.2f}, {pose.y:.2f}, "
                f"{pose.heading_degrees:.1f}°){TERM_RESET}"
            )
            self.target_reached = True
            self.coordinator.drive_robot_oriented(ChassisSpeeds())
            self.coordinator.lock()
            return

        velocity = MotionCoordinator.calculate_velocity(remaining, self.coordinator.limits)
        omega = self.coordinator.compute_omega(self.target.heading)
        self.coordinator.drive_field_oriented(velocity, omega)

    async def receive_messages(self, websocket: Any) -> None:
        """Read server messages until the connection closes or stop is requested."""
        while not self.should_stop:
            try:
                message = await asyncio.wait_for(websocket.recv(), timeout=WS_TIMEOUT_SECONDS)
                self.parse_and_route_message(message)
            except asyncio.TimeoutError:
                continue

    async def run_ticks(self, websocket: Any) -> None:
        """Run the control tick at a fixed period and flush commands."""
        next_tick = time.monotonic()
        while not self.should_stop:
            self.control_step()

            # Flush this tick's commands in the order they were issued
            for command in self.drivetrain.drain():
                await websocket.send(json.dumps(command))
            self.telemetry.flush()

            # Sleep until the next period boundary
            next_tick += CONTROL_PERIOD_SECONDS
            delay = next_tick - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            else:
                # overran the period; resynchronize instead of bursting
                logging.debug(f"Control tick overran by {-delay * 1000.0:.1f}ms")
                next_tick = time.monotonic()

    async def run_control_loop(self) -> None:
        """Connect to WebSocket and run the control loop.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until should_stop is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS
        max_retry_delay = WS_MAX_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    # Receive and tick concurrently; whichever ends first ends the session
                    receiver = asyncio.create_task(self.receive_messages(websocket))
                    ticker = asyncio.create_task(self.run_ticks(websocket))
                    done, pending = await asyncio.wait(
                        {receiver, ticker}, return_when=asyncio.FIRST_COMPLETED
                    )
                    for task in pending:
                        task.cancel()
                    for task in done:
                        task.result()

            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by server")
            except (OSError, websockets.exceptions.WebSocketException) as e:
                if self.should_stop:
                    break
                logging.error(f"Connection error: {e}")

            # Exponential backoff before reconnecting
            if not self.should_stop:
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, max_retry_delay)

    def stop(self) -> None:
        """Signal the client to stop."""
        self.should_stop = True

    def __enter__(self) -> "SwerveClient":
        self.telemetry.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.telemetry.cleanup()
        diagnostics = self.coordinator.estimator.get_diagnostics()
        logging.info(
            f"{TERM_BLUE}Vision: {diagnostics['vision_fused']} fused, "
            f"{diagnostics['vision_rejected']} rejected{TERM_RESET}"
        )


async def main(uri: str = WS_URI, target: Optional[Pose2d] = None, output_dir: str = ".") -> None:
    """Main entry point for the WebSocket client.

    Creates a SwerveClient, sets up signal handlers for graceful shutdown,
    and starts the control loop.

    Args:
        uri: WebSocket server URI.
        target: Optional pose to drive to.
        output_dir: Base directory for telemetry output.
    """
    with SwerveClient(uri, output_dir=output_dir, target=target) as client:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            """Handle shutdown signals (SIGINT, SIGTERM)."""
            logging.info("\nShutdown signal received...")
            client.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await client.run_control_loop()


def parse_target(values: Optional[List[float]]) -> Optional[Pose2d]:
    """Convert CLI [x, y, heading_degrees] into a target pose."""
    if not values:
        return None
    x, y, heading_degrees = values
    return Pose2d(x, y, math.radians(heading_degrees))
