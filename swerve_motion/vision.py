"""Vision observation types and the single-slot hand-off cell.

The perception pipeline runs on its own thread and publishes pose observations
whenever it sees a target. The control thread takes at most one observation
per tick. The hand-off keeps only the latest value: an observation superseded
before it is read is dropped, and a taken observation is never seen again.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .geometry import Pose2d


class PoseConfidence(Enum):
    """Coarse quality label attached to a vision pose."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class VisionObservation:
    """A camera-frame pose estimate from the perception pipeline.

    Attributes:
        pose: Field pose of the camera (m, rad)
        confidence: Confidence tier
        latency: Time between image capture and publication (seconds)
        capture_timestamp: Capture time on the perception clock (seconds)
    """

    pose: Pose2d
    confidence: PoseConfidence
    latency: float = 0.0
    capture_timestamp: float = 0.0


class VisionSlot:
    """Lock-guarded latest-value cell between perception and control threads.

    publish() overwrites, take() returns and clears. Neither blocks beyond
    the brief lock hold.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Optional[VisionObservation] = None
        self.published_count: int = 0
        self.dropped_count: int = 0

    def publish(self, observation: VisionObservation) -> None:
        with self._lock:
            if self._latest is not None:
                self.dropped_count += 1
            self._latest = observation
            self.published_count += 1

    def take(self) -> Optional[VisionObservation]:
        """Return the latest observation and clear the slot (None if empty)."""
        with self._lock:
            observation = self._latest
            self._latest = None
            return observation

    def peek(self) -> Optional[VisionObservation]:
        with self._lock:
            return self._latest
