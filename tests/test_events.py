import asyncio
import logging
from typing import Any, List

import pytest

from minidrone_link.telemetry import (
    BatteryChanged,
    EventBus,
    EventName,
    LimitChanged,
    LimitKind,
)


def test_handlers_run_in_registration_order() -> None:
    bus = EventBus()
    calls: List[str] = []
    bus.on(EventName.CONNECTED, lambda _: calls.append("first"))
    bus.on("connected", lambda _: calls.append("second"))

    bus.emit(EventName.CONNECTED)

    assert calls == ["first", "second"]


def test_off_removes_handler() -> None:
    bus = EventBus()
    calls: List[Any] = []
    bus.on(EventName.RSSI_UPDATE, calls.append)
    bus.off(EventName.RSSI_UPDATE, calls.append)
    bus.off(EventName.DISCONNECTED, calls.append)

    bus.emit(EventName.RSSI_UPDATE, -50)

    assert calls == []


def test_unknown_event_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        EventBus().on("batteryChange", print)


@pytest.mark.asyncio
async def test_async_handlers_are_scheduled(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR, logger="minidrone_link.telemetry.events")
    bus = EventBus()
    received: List[Any] = []

    async def handler(payload: Any) -> None:
        await asyncio.sleep(0)
        received.append(payload)

    async def failing(_payload: Any) -> None:
        raise RuntimeError("handler broke")

    bus.on(EventName.POWERED_OFF, handler)
    bus.on(EventName.POWERED_OFF, failing)

    bus.emit(EventName.POWERED_OFF, True)
    assert received == []
    await asyncio.sleep(0.01)

    assert received == [True]
    assert "Async event handler failed: handler broke" in caplog.text


def test_event_serialization() -> None:
    assert BatteryChanged(level=40).to_dict() == {
        "eventName": "batteryStatusChange",
        "level": 40,
    }
    limit = LimitChanged(kind=LimitKind.MAX_TILT, current=10.0, min=5.0, max=20.0)
    assert limit.name is EventName.MAX_TILT_CHANGE
    assert limit.to_dict()["kind"] == "maxTilt"


@pytest.mark.parametrize("kind", list(LimitKind))
def test_limit_event_name_follows_kind(kind: LimitKind) -> None:
    event = LimitChanged(kind=kind, current=1.0, min=0.0, max=2.0)

    assert event.name.value == f"{kind.value}Change"
    assert event.to_dict()["eventName"] == f"{kind.value}Change"
    assert not hasattr(LimitChanged, "event_name")
