import asyncio
from pathlib import Path

import pytest

from conftest import FakeConnection, FakeStack, telemetry_frame
from minidrone_link.app import AgentState, MiniDroneApp
from minidrone_link.config import load_config
from minidrone_link.errors import AdapterUnavailableError


def make_config(tmp_path: Path, extra: str = ""):
    config_path = tmp_path / "minidrone-link.cfg"
    config_path.write_text(
        "[drone]\nconnected_event_delay_seconds = 0\n\n"
        "[flight]\ninterval_seconds = 60\n\n"
        "[resilience]\nrescan_delay_seconds = 0.01\n" + extra,
        encoding="utf-8",
    )
    return load_config(config_path)


async def wait_for_state(app: MiniDroneApp, state: AgentState, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while app.state is not state:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_app_reports_active_link_and_telemetry(
    tmp_path: Path, fake_stack: FakeStack, fake_connection: FakeConnection
) -> None:
    app = MiniDroneApp(make_config(tmp_path), stack=fake_stack)
    task = asyncio.create_task(app.run())

    try:
        await wait_for_state(app, AgentState.ACTIVE)
        fake_connection.char("fb0f").notify(telemetry_frame(0, 5, 1, bytes([30])))
        fake_connection.char("fb0e").notify(telemetry_frame(2, 3, 2, bytes([4, 0, 0, 0])))
        await asyncio.sleep(0.01)

        snapshot = await app.health.snapshot()
        components = {item["name"]: item for item in snapshot["components"]}
        assert components["ble"]["healthy"] is True
        assert components["ble"]["detail"] == "Mambo_612345"
        assert components["flight-loop"]["healthy"] is True
        assert components["battery"]["healthy"] is False
        assert components["battery"]["detail"] == "low_battery"
        assert snapshot["drone"]["batteryLevel"] == 30
        assert snapshot["agentState"]["state"] == "active"
    finally:
        app.stop()
        await asyncio.wait_for(task, timeout=1.0)

    assert app.state is AgentState.STOPPING
    assert not app.link.connected


@pytest.mark.asyncio
async def test_app_keeps_scanning_until_a_drone_appears(
    tmp_path: Path, fake_stack: FakeStack, fake_connection: FakeConnection
) -> None:
    fake_stack.candidates = fake_stack.candidates[:1]
    app = MiniDroneApp(make_config(tmp_path), stack=fake_stack)
    task = asyncio.create_task(app.run())

    try:
        await wait_for_state(app, AgentState.SCANNING)
        assert fake_stack.connect_calls == []
    finally:
        app.stop()
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_app_degrades_when_adapter_is_off(tmp_path: Path) -> None:
    stack = FakeStack(discover_error=AdapterUnavailableError("powered off"))
    app = MiniDroneApp(make_config(tmp_path), stack=stack)
    task = asyncio.create_task(app.run())

    try:
        await wait_for_state(app, AgentState.DEGRADED)
        snapshot = await app.health.snapshot()
        assert snapshot["status"] == "degraded"
    finally:
        app.stop()
        await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_app_polls_rssi_when_enabled(
    tmp_path: Path, fake_stack: FakeStack
) -> None:
    config = make_config(tmp_path, "rssi_interval_seconds = 0.01\n")
    app = MiniDroneApp(config, stack=fake_stack)
    readings = []
    app.link.on("rssiUpdate", readings.append)
    task = asyncio.create_task(app.run())

    try:
        await wait_for_state(app, AgentState.ACTIVE)
        await asyncio.sleep(0.05)
    finally:
        app.stop()
        await asyncio.wait_for(task, timeout=1.0)

    assert readings
    assert set(readings) == {-58}
    assert app.link.state.rssi == -58
