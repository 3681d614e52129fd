#!/usr/bin/env python3
"""Run a Python script with fault monitoring installed.

Usage::

    # Default config
    python scripts/run_monitored.py path/to/job.py --job-arg value

    # Custom config file
    python scripts/run_monitored.py --config config/settings.yaml job.py

    # Override log level
    python scripts/run_monitored.py --log-level DEBUG job.py
"""

from __future__ import annotations

import argparse
import runpy
import sys

import structlog
from pydantic import ValidationError

from faultwatch.core.config import load_settings
from faultwatch.core.exceptions import ConfigError
from faultwatch.core.host import HostEnvironment
from faultwatch.core.logging import setup_logging
from faultwatch.monitor.factory import create_fault_monitor
from faultwatch.monitor.hooks import install_hooks

logger = structlog.get_logger(__name__)


def run(args: argparse.Namespace) -> int:
    """Load settings, install the hooks and execute the target script."""
    try:
        settings = load_settings(args.config)
    except (ConfigError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    setup_logging(settings.logging, level=args.log_level)

    monitor = create_fault_monitor(settings, host=HostEnvironment.batch(program=args.script))
    install_hooks(monitor)

    logger.info(
        "monitored_run_starting",
        script=args.script,
        live=settings.is_live,
        alerts=settings.alerts.enabled,
    )

    sys.argv = [args.script, *args.script_args]
    runpy.run_path(args.script, run_name="__main__")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run a Python script with fault logging and email alerts.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument("script", help="Python script to run")
    parser.add_argument("script_args", nargs=argparse.REMAINDER, help="Arguments for the script")
    args = parser.parse_args()

    code = run(args)
    sys.exit(code)


if __name__ == "__main__":
    main()
