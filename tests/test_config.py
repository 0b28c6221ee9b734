from pathlib import Path

import pytest

from minidrone_link import constants
from minidrone_link.config import load_config, save_config


def test_load_config_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config = load_config(config_path)

    assert config.path == config_path
    assert config.drone.filter == ""
    assert config.drone.adapter is None
    assert config.drone.connect_timeout_seconds == constants.DEFAULT_CONNECT_TIMEOUT_SECONDS
    assert config.drone.connected_event_delay_seconds == 0.2
    assert config.flight.interval_seconds == 0.1
    assert config.logging.level == "INFO"
    assert config.logging.log_ble is False
    assert config.resilience.rescan_delay_seconds == 2.0
    assert config.resilience.rssi_interval_seconds == 0.0
    assert config.resilience.health_enabled is False
    assert config.resilience.health_port == 0


def test_load_config_overrides_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text(
        """
[drone]
filter = ^Mambo_6
adapter = hci1
connected_event_delay_seconds = 0.5

[flight]
interval_seconds = 0.05

[logging]
level = DEBUG
path = ~/drone.log
log_ble = true

[resilience]
rssi_interval_seconds = 5
health_enabled = true
health_port = 8123
        """.strip()
        + "\n",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.drone.filter == "^Mambo_6"
    assert config.drone.adapter == "hci1"
    assert config.drone.connected_event_delay_seconds == 0.5
    assert config.flight.interval_seconds == 0.05
    assert config.logging.level == "DEBUG"
    assert config.logging.path == Path("~/drone.log").expanduser()
    assert config.logging.log_ble is True
    assert config.resilience.rssi_interval_seconds == 5.0
    assert config.resilience.health_enabled is True
    assert config.resilience.health_port == 8123


def test_negative_delays_are_clamped(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text(
        "[resilience]\nrescan_delay_seconds = -3\n\n[drone]\nconnect_timeout_seconds = -1\n",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.resilience.rescan_delay_seconds == 0.0
    assert config.drone.connect_timeout_seconds == 0.0


def test_invalid_filter_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text("[drone]\nfilter = Mambo_(\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid drone filter"):
        load_config(config_path)


def test_non_positive_flight_interval_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text("[flight]\ninterval_seconds = 0\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_save_config_round_trips(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "minidrone-link.cfg"
    config = load_config(config_path)
    config.raw.set("drone", "filter", "^RS_")

    save_config(config)
    reloaded = load_config(config_path)

    assert config_path.exists()
    assert reloaded.drone.filter == "^RS_"
