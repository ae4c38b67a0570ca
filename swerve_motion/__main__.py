"""
Main entry point when running the swerve_motion module with python -m.
"""

import argparse
import asyncio
import logging
import sys

from .client import main, parse_target, setup_logging
from .config import WS_URI


def cli() -> None:
    parser = argparse.ArgumentParser(
        description="WebSocket client for swerve drive control and telemetry logging"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument("--uri", default=WS_URI, help=f"Simulation server URI (default: {WS_URI})")
    parser.add_argument(
        "--target",
        nargs=3,
        type=float,
        metavar=("X", "Y", "HEADING_DEG"),
        help="Field pose to drive to (metres, metres, degrees)",
    )
    parser.add_argument("--output-dir", default=".", help="Base directory for telemetry CSV")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        asyncio.run(main(uri=args.uri, target=parse_target(args.target), output_dir=args.output_dir))
    except ValueError as e:
        logging.error(str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()
