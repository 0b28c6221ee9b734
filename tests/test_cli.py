from pathlib import Path

import pytest

from conftest import FakeStack
from minidrone_link import cli
from minidrone_link.core import PeripheralCandidate
from minidrone_link.errors import AdapterUnavailableError


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


def test_parser_requires_command() -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args([])

    args = parser.parse_args(["scan", "--timeout", "2.5"])
    assert args.command == "scan"
    assert args.timeout == 2.5


def test_show_config_prints_sections(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text("[drone]\nfilter = ^RS_\n", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "show-config"]) == 0

    output = capsys.readouterr().out
    assert "[drone]" in output
    assert "filter = ^RS_" in output
    assert "[flight]" in output


def test_invalid_config_returns_error(tmp_path: Path) -> None:
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text("[flight]\ninterval_seconds = -1\n", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "show-config"]) == 1


def test_scan_lists_matching_drones(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    stack = FakeStack(
        [
            PeripheralCandidate("Mambo_1", address="AA", rssi=-40),
            PeripheralCandidate("SomeRandomBLE", address="BB"),
            PeripheralCandidate("Mambo_1", address="AA", rssi=-42),
        ]
    )
    monkeypatch.setattr(cli, "BleakStack", lambda adapter=None: stack)

    assert cli.main(["--config", str(tmp_path / "none.cfg"), "scan", "--timeout", "1"]) == 0

    output = capsys.readouterr().out.splitlines()
    assert output == ["Mambo_1\tAA\trssi=-40"]


def test_scan_without_results(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(cli, "BleakStack", lambda adapter=None: FakeStack())

    assert cli.main(["--config", str(tmp_path / "none.cfg"), "scan"]) == 0
    assert "No drones found" in capsys.readouterr().out


def test_scan_reports_adapter_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    stack = FakeStack(discover_error=AdapterUnavailableError("powered off"))
    monkeypatch.setattr(cli, "BleakStack", lambda adapter=None: stack)

    assert cli.main(["--config", str(tmp_path / "none.cfg"), "scan"]) == 1


def test_start_runs_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    started = []
    monkeypatch.setattr(cli.MiniDroneApp, "start", classmethod(lambda cls, config: started.append(config)))

    assert cli.main(["--config", str(tmp_path / "none.cfg"), "start"]) == 0
    assert len(started) == 1
    assert started[0].path == tmp_path / "none.cfg"
