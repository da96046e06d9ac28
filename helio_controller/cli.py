"""Command-line interface for helio-controller."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import HelioControllerApp
from .config import ConfigError, load_config

LOGGER = logging.getLogger(__name__)

EPILOG = """\
examples:
  collect metrics from 192.168.1.3 every 10 minutes:
    helio-controller start --dummy 192.168.1.3

  run a conditions file against 192.168.1.3:
    helio-controller start --conditions GC03-conditions.csv 192.168.1.3

schedule format:
  the first row is a header and is skipped. column 0 is the date/time
  (day first), columns 1-3 are ignored and every column from 4 onward is
  the target intensity of one channel, in device channel order.

  if both --dummy and --no-metrics are given there is nothing to do and the
  controller exits with an error. an interval of 0s reads one metric and exits.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME,
        description="Schedule runner and metrics bridge for networked light fixtures",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    start_parser = subparsers.add_parser(
        "start",
        help="Run the controller",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_override_arguments(start_parser)

    show_parser = subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )
    _add_override_arguments(show_parser)

    return parser


def _add_override_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "address", nargs="?", help="Device address as host[:port]"
    )
    parser.add_argument(
        "--conditions", help="Conditions (schedule) file to run on the device"
    )
    parser.add_argument(
        "--dummy",
        action="store_true",
        default=None,
        help="Don't control the device, only collect metrics",
    )
    parser.add_argument(
        "--no-metrics",
        action="store_true",
        default=None,
        help="Don't send metrics to telegraf",
    )
    parser.add_argument(
        "--interval", help="Metrics interval, e.g. 10m or 30s (default: 10m)"
    )
    parser.add_argument(
        "--multiplier", help="Scale from schedule intensity to device power units"
    )
    parser.add_argument("--host-tag", help="Host tag added to measurements")
    parser.add_argument("--group-tag", help="Group tag added to measurements")
    parser.add_argument("--user-tag", help="User tag added to measurements")
    parser.add_argument("--log-level", help="Log level, e.g. DEBUG or INFO")


def _overrides(args: argparse.Namespace) -> dict[str, dict[str, Optional[str]]]:
    return {
        "device": {
            "address": args.address,
            "multiplier": args.multiplier,
        },
        "schedule": {
            "path": args.conditions,
            "dummy": "true" if args.dummy else None,
        },
        "poll": {"interval": args.interval},
        "telemetry": {
            "enabled": "false" if args.no_metrics else None,
            "host_tag": args.host_tag,
            "group_tag": args.group_tag,
            "user_tag": args.user_tag,
        },
        "logging": {"level": args.log_level},
    }


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, overrides=_overrides(args))
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    if args.command == "start":
        try:
            return HelioControllerApp.start(config)
        except ConfigError as exc:
            LOGGER.error("Invalid configuration: %s", exc)
            return 1

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
