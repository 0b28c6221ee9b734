"""Command-line interface for minidrone-link."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .adapters import BleakStack
from .app import MiniDroneApp
from .config import LinkConfig, load_config
from .discovery import PeripheralFilter
from .errors import PeripheralDiscoveryError
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minidrone-link", description="BLE link for Parrot MiniDrones"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Connect to a drone and keep the link alive")

    scan_parser = subparsers.add_parser("scan", help="List drones in range")
    scan_parser.add_argument(
        "--timeout", type=float, default=10.0, help="Seconds to scan (default: 10)"
    )

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


async def scan(config: LinkConfig, timeout: float) -> list[str]:
    """Return a line per matching drone seen within ``timeout`` seconds."""

    stack = BleakStack(adapter=config.drone.adapter)
    drone_filter = PeripheralFilter(config.drone.filter)
    seen: dict[str, str] = {}

    async def _collect() -> None:
        discovery = stack.discover()
        try:
            async for candidate in discovery:
                if not drone_filter.matches(candidate):
                    continue
                key = candidate.address or candidate.advertised_name
                if key not in seen:
                    seen[key] = (
                        f"{candidate.advertised_name}\t{candidate.address}\trssi={candidate.rssi}"
                    )
                    print(seen[key])
        finally:
            await discovery.aclose()

    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(_collect(), timeout=timeout)
    return list(seen.values())


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 1

    if args.command == "start":
        MiniDroneApp.start(config)
        return 0

    if args.command == "scan":
        configure_logging(config.logging.level, log_ble=config.logging.log_ble)
        try:
            found = asyncio.run(scan(config, args.timeout))
        except PeripheralDiscoveryError as exc:
            LOGGER.error("Scan failed: %s", exc)
            return 1
        if not found:
            print("No drones found")
        return 0

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
