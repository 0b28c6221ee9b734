"""Constants used across the minidrone-link package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "minidrone-link"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".minidrone" / DEFAULT_CONFIG_FILENAME

DEFAULT_LOG_PATH = Path.home() / ".minidrone" / "logs" / f"{APP_NAME}.log"

DEFAULT_FLIGHT_INTERVAL_SECONDS = 0.1
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_CONNECTED_EVENT_DELAY_SECONDS = 0.2
DEFAULT_RESCAN_DELAY_SECONDS = 2.0

# Piloting axes are signed percentages
FLIGHT_PARAM_MIN = -100
FLIGHT_PARAM_MAX = 100
