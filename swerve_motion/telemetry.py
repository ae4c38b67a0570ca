"""Telemetry sinks for published pose values.

The motion coordinator publishes scalar values once per tick through an
injected TelemetrySink. Publishing is fire-and-forget: sinks never report
back and never raise into the control loop.

Sinks:
- DashboardTable: in-memory key/value table (latest value per key)
- CsvTelemetrySink: appends every published value to a CSV file
"""

import csv
import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO


class TelemetrySink(ABC):
    """Receiver for scalar telemetry values."""

    @abstractmethod
    def put_number(self, key: str, value: float) -> None:
        """Publish value under key."""


class DashboardTable(TelemetrySink):
    """Latest-value table, the in-process stand-in for a network dashboard."""

    def __init__(self) -> None:
        self.values: Dict[str, float] = {}

    def put_number(self, key: str, value: float) -> None:
        self.values[key] = float(value)

    def get_number(self, key: str, default: float = 0.0) -> float:
        return self.values.get(key, default)


class CsvTelemetrySink(TelemetrySink):
    """Manages CSV file creation and logging for published telemetry.

    Every put_number() call becomes one row: timestamp, key, value.

    Attributes:
        run_dir: Directory path for this run's output files.
        telemetry_output_path: Path of the telemetry CSV file.
    """

    def __init__(
        self,
        output_dir: str = ".",
        run_dir: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the CSV sink.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.
            clock: Timestamp source for rows.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.clock = clock
        self.csv_file: Optional[TextIO] = None
        self.csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.telemetry_output_path: Path = self.run_dir / "telemetry.csv"

    def setup(self) -> None:
        """Open the CSV file and write the header. Must be called before writing data."""
        self.csv_file = open(self.telemetry_output_path, "w", newline="")
        self.csv_writer = csv.writer(self.csv_file)
        self.csv_writer.writerow(["timestamp", "key", "value"])
        self.csv_file.flush()

    def put_number(self, key: str, value: float) -> None:
        if self.csv_writer is None:
            return
        self.csv_writer.writerow([f"{self.clock():.6f}", key, value])

    def flush(self) -> None:
        if self.csv_file:
            self.csv_file.flush()

    def cleanup(self) -> None:
        """Close the CSV file."""
        if self.csv_file:
            self.csv_file.close()
            self.csv_file = None
            self.csv_writer = None
            logging.info(f"Telemetry saved to {self.telemetry_output_path}")

    def __enter__(self) -> "CsvTelemetrySink":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
