import asyncio
from typing import Any, List

import pytest

from conftest import build_characteristics, mambo_uuid
from minidrone_link.core import FlightParams
from minidrone_link.flight_loop import FlightLoop
from minidrone_link.protocol import ChannelTransport, CommandEncoder
from minidrone_link.telemetry import DeviceState, EventBus, EventName, FlightStatus


class LoopHarness:
    def __init__(self, interval: float = 60.0) -> None:
        self.characteristics = build_characteristics()
        self.transport = ChannelTransport()
        self.encoder = CommandEncoder(self.transport.channels)
        self.state = DeviceState()
        self.bus = EventBus()
        self.params = FlightParams(roll=10, pitch=-5, altitude=20)
        self.echoes: List[Any] = []
        self.bus.on(EventName.FLIGHT_PARAM_CHANGE, self.echoes.append)
        self.loop = FlightLoop(
            encoder=self.encoder,
            transport=self.transport,
            state=self.state,
            bus=self.bus,
            params=lambda: self.params,
            interval=interval,
        )

    @property
    def writes(self) -> List[bytes]:
        return self.characteristics[mambo_uuid("fa0a")].writes

    def make_ready(self) -> None:
        self.transport.attach(self.characteristics)
        self.state.flight_status = FlightStatus.LANDED


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LoopHarness(interval=0)


def test_tick_is_noop_when_not_started() -> None:
    harness = LoopHarness()
    harness.make_ready()

    assert harness.loop.tick() is False
    assert harness.writes == []


@pytest.mark.asyncio
async def test_tick_waits_for_transport_and_flight_status() -> None:
    harness = LoopHarness()
    harness.loop.start()
    await asyncio.sleep(0)

    assert harness.loop.tick() is False

    harness.transport.attach(harness.characteristics)
    assert harness.loop.tick() is False

    harness.state.flight_status = FlightStatus.LANDED
    assert harness.loop.tick() is True

    await harness.loop.stop()
    assert len(harness.writes) == 1


@pytest.mark.asyncio
async def test_consecutive_ticks_advance_step_and_echo_params() -> None:
    harness = LoopHarness()
    harness.make_ready()
    harness.loop.start()
    await asyncio.sleep(0)

    harness.loop.tick()
    harness.params = harness.params.merged(yaw=30)
    harness.loop.tick()
    await harness.loop.stop()

    assert [frame[1] for frame in harness.writes] == [1, 2, 3]
    assert harness.writes[0] == bytes(
        [2, 1, 2, 0, 2, 0, 1, 10, 0, 251, 255, 0, 0, 20, 0, 0, 0, 0, 0]
    )
    assert harness.echoes[-1] == FlightParams(roll=10, pitch=-5, yaw=30, altitude=20)
    assert len(harness.echoes) == 3


@pytest.mark.asyncio
async def test_loop_runs_on_interval_and_stops_cleanly() -> None:
    harness = LoopHarness(interval=0.01)
    harness.make_ready()

    harness.loop.start()
    await asyncio.sleep(0.055)
    await harness.loop.stop()
    sent = len(harness.writes)
    await asyncio.sleep(0.03)

    assert sent >= 3
    assert len(harness.writes) == sent
    assert not harness.loop.running
    assert harness.loop.tick() is False


@pytest.mark.asyncio
async def test_start_is_idempotent() -> None:
    harness = LoopHarness()
    harness.make_ready()

    harness.loop.start()
    harness.loop.start()
    await asyncio.sleep(0)
    await harness.loop.stop()

    assert len(harness.writes) == 1
