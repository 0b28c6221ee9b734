from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

import pytest

from minidrone_link.core import PeripheralCandidate
from minidrone_link.errors import DroneConnectionError, RssiQueryError

MAMBO_SUFFIXES = (
    "fa0a",
    "fa0b",
    "fa0c",
    "fa1e",
    "fb0e",
    "fb0f",
    "fb1b",
    "fb1c",
    "fd22",
    "fd23",
    "fd24",
    "fd52",
    "fd53",
    "fd54",
)


def mambo_uuid(suffix: str) -> str:
    return f"9a66{suffix}-0800-9191-11e4-012d1540cb8e"


def telemetry_frame(
    project: int,
    msg_class: int,
    command: int,
    payload: bytes = b"",
    *,
    data_type: int = 0x02,
    step: int = 1,
    spare: int = 0x00,
) -> bytes:
    """Build an inbound frame: 5 byte header, the unrouted byte 5, then the payload."""
    return bytes([data_type, step, project, msg_class, command, spare]) + payload


class FakeCharacteristic:
    def __init__(self, uuid: str) -> None:
        self.uuid = uuid
        self.subscribed = False
        self.writes: List[bytes] = []
        self.without_response: List[bool] = []
        self._callbacks: List[Callable[[bytes], None]] = []

    def subscribe(self) -> None:
        self.subscribed = True

    def on_data(self, callback: Callable[[bytes], None]) -> None:
        self._callbacks.append(callback)

    def write(self, data: bytes, without_response: bool = True) -> None:
        self.writes.append(bytes(data))
        self.without_response.append(without_response)

    def notify(self, data: bytes) -> None:
        for callback in list(self._callbacks):
            callback(bytes(data))


class FakeConnection:
    def __init__(
        self,
        characteristics: Dict[str, FakeCharacteristic],
        *,
        rssi: Optional[int] = -58,
    ) -> None:
        self.characteristics = characteristics
        self.rssi = rssi
        self.disconnect_calls = 0
        self._disconnect_callbacks: List[Callable[[], None]] = []

    def char(self, suffix: str) -> FakeCharacteristic:
        return self.characteristics[mambo_uuid(suffix)]

    async def discover_characteristics(self) -> Dict[str, FakeCharacteristic]:
        return dict(self.characteristics)

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._disconnect_callbacks.append(callback)

    async def read_signal_strength(self) -> int:
        if self.rssi is None:
            raise RssiQueryError("no rssi")
        return self.rssi

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.drop()

    def drop(self) -> None:
        callbacks, self._disconnect_callbacks = self._disconnect_callbacks, []
        for callback in callbacks:
            callback()


class FakeStack:
    def __init__(
        self,
        candidates: Iterable[PeripheralCandidate] = (),
        *,
        connection: Optional[FakeConnection] = None,
        connect_error: Optional[Exception] = None,
        discover_error: Optional[Exception] = None,
    ) -> None:
        self.candidates = list(candidates)
        self.connection = connection
        self.connect_error = connect_error
        self.discover_error = discover_error
        self.connect_calls: List[PeripheralCandidate] = []
        self.discover_calls = 0

    async def discover(self):
        self.discover_calls += 1
        if self.discover_error is not None:
            raise self.discover_error
        for candidate in self.candidates:
            yield candidate

    async def connect(self, candidate: PeripheralCandidate, *, timeout=None):
        self.connect_calls.append(candidate)
        if self.connect_error is not None:
            raise self.connect_error
        if self.connection is None:
            raise DroneConnectionError("no connection configured")
        return self.connection


def build_characteristics(
    suffixes: Iterable[str] = MAMBO_SUFFIXES,
) -> Dict[str, FakeCharacteristic]:
    return {mambo_uuid(suffix): FakeCharacteristic(mambo_uuid(suffix)) for suffix in suffixes}


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection(build_characteristics())


@pytest.fixture
def mambo() -> PeripheralCandidate:
    return PeripheralCandidate(
        advertised_name="Mambo_612345",
        manufacturer_data=bytes.fromhex("4300cf1909090100"),
        address="E0:14:00:00:00:01",
        rssi=-60,
    )


@pytest.fixture
def fake_stack(fake_connection: FakeConnection, mambo: PeripheralCandidate) -> FakeStack:
    stranger = PeripheralCandidate(advertised_name="SomeRandomBLE", address="00:11:22:33:44:55")
    return FakeStack([stranger, mambo], connection=fake_connection)
