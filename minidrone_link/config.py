"""Configuration loader for minidrone-link."""

from __future__ import annotations

import re
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class DroneConfig:
    filter: str = ""
    adapter: Optional[str] = None
    connect_timeout_seconds: float = constants.DEFAULT_CONNECT_TIMEOUT_SECONDS
    connected_event_delay_seconds: float = constants.DEFAULT_CONNECTED_EVENT_DELAY_SECONDS


@dataclass(slots=True)
class FlightConfig:
    interval_seconds: float = constants.DEFAULT_FLIGHT_INTERVAL_SECONDS


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    log_ble: bool = False


@dataclass(slots=True)
class ResilienceConfig:
    rescan_delay_seconds: float = constants.DEFAULT_RESCAN_DELAY_SECONDS
    rssi_interval_seconds: float = 0.0
    health_enabled: bool = False
    health_host: str = "127.0.0.1"
    health_port: int = 0


@dataclass(slots=True)
class LinkConfig:
    drone: DroneConfig
    flight: FlightConfig
    logging: LoggingConfig
    resilience: ResilienceConfig
    raw: ConfigParser
    path: Path


def load_config(path: Optional[Path] = None) -> LinkConfig:
    """Load configuration from disk, applying defaults where necessary.

    Raises:
        ValueError: If the drone filter is not a valid regular expression or
            the flight interval is not positive.
    """

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser(interpolation=None)
    parser.read_dict(
        {
            "drone": {
                "filter": "",
                "connect_timeout_seconds": str(constants.DEFAULT_CONNECT_TIMEOUT_SECONDS),
                "connected_event_delay_seconds": str(
                    constants.DEFAULT_CONNECTED_EVENT_DELAY_SECONDS
                ),
            },
            "flight": {
                "interval_seconds": str(constants.DEFAULT_FLIGHT_INTERVAL_SECONDS),
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "log_ble": "false",
            },
            "resilience": {
                "rescan_delay_seconds": str(constants.DEFAULT_RESCAN_DELAY_SECONDS),
                "rssi_interval_seconds": "0",
                "health_enabled": "false",
                "health_host": "127.0.0.1",
                "health_port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    drone_filter = parser.get("drone", "filter", fallback="").strip()
    if drone_filter:
        try:
            re.compile(drone_filter)
        except re.error as exc:
            raise ValueError(f"Invalid drone filter {drone_filter!r}: {exc}") from exc

    drone = DroneConfig(
        filter=drone_filter,
        adapter=parser.get("drone", "adapter", fallback=None) or None,
        connect_timeout_seconds=max(
            0.0,
            parser.getfloat(
                "drone",
                "connect_timeout_seconds",
                fallback=constants.DEFAULT_CONNECT_TIMEOUT_SECONDS,
            ),
        ),
        connected_event_delay_seconds=max(
            0.0,
            parser.getfloat(
                "drone",
                "connected_event_delay_seconds",
                fallback=constants.DEFAULT_CONNECTED_EVENT_DELAY_SECONDS,
            ),
        ),
    )

    interval = parser.getfloat(
        "flight", "interval_seconds", fallback=constants.DEFAULT_FLIGHT_INTERVAL_SECONDS
    )
    if interval <= 0:
        raise ValueError("flight.interval_seconds must be > 0")
    flight = FlightConfig(interval_seconds=interval)

    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(
            parser.get("logging", "path", fallback=str(constants.DEFAULT_LOG_PATH))
        ).expanduser(),
        log_ble=parser.getboolean("logging", "log_ble", fallback=False),
    )

    resilience = ResilienceConfig(
        rescan_delay_seconds=max(
            0.0,
            parser.getfloat(
                "resilience",
                "rescan_delay_seconds",
                fallback=constants.DEFAULT_RESCAN_DELAY_SECONDS,
            ),
        ),
        rssi_interval_seconds=max(
            0.0, parser.getfloat("resilience", "rssi_interval_seconds", fallback=0.0)
        ),
        health_enabled=parser.getboolean(
            "resilience", "health_enabled", fallback=False
        ),
        health_host=parser.get("resilience", "health_host", fallback="127.0.0.1"),
        health_port=parser.getint("resilience", "health_port", fallback=0),
    )

    return LinkConfig(
        drone=drone,
        flight=flight,
        logging=logging_config,
        resilience=resilience,
        raw=parser,
        path=config_path,
    )


def save_config(config: LinkConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
