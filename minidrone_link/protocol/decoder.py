"""Inbound telemetry frame decoding.

Frames share a fixed header::

    data type (u8) | step (u8) | project (u8) | class (u8) | command (u8)

Byte 5 is not used for routing. The command-specific payload starts at byte 6.
Decoding is split in two phases: a pure decode function turns the payload into a
:class:`Decoded` pair (state delta and event), then :meth:`TelemetryDecoder.apply`
commits the delta to :class:`DeviceState` and emits the event.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from ..errors import UnrecognizedFrame
from ..telemetry.event_types import (
    AlertChanged,
    AlertStatus,
    AutoTakeOffChanged,
    BatteryChanged,
    FlightStatus,
    FlightStatusChanged,
    LimitChanged,
    LimitKind,
    PictureError,
    PictureState,
    PictureStateChanged,
    PositionChanged,
    SpeedChanged,
    TelemetryEvent,
    enum_from_index,
)
from ..telemetry.events import EventBus
from ..telemetry.state import EMPTY_DELTA, DeviceState, StateDelta
from .constants import PAYLOAD_OFFSET, DataType, Project

LOGGER = logging.getLogger(__name__)

_HEADER = struct.Struct("<BBBBB")
_POSITION = struct.Struct("<ffHHH")
_SPEED = struct.Struct("<fffH")
_LIMIT = struct.Struct("<fff")


class FrameHeader(NamedTuple):
    data_type: int
    step: int
    project: int
    msg_class: int
    command: int

    @property
    def triple(self) -> Tuple[int, int, int]:
        return (self.project, self.msg_class, self.command)


@dataclass(slots=True, frozen=True)
class Decoded:
    """Outcome of decoding one recognized payload."""

    delta: StateDelta
    event: Optional[TelemetryEvent]


class MalformedPayload(ValueError):
    """A recognized frame carried a payload that cannot be interpreted."""


PayloadDecoder = Callable[[bytes], Decoded]


def _read(layout: struct.Struct, data: bytes, offset: int = PAYLOAD_OFFSET) -> tuple:
    try:
        return layout.unpack_from(data, offset)
    except struct.error as exc:
        raise MalformedPayload(
            f"payload too short: {len(data)} bytes, need {offset + layout.size}"
        ) from exc


def _read_u8(data: bytes, offset: int = PAYLOAD_OFFSET) -> int:
    if len(data) <= offset:
        raise MalformedPayload(f"payload too short: {len(data)} bytes")
    return data[offset]


# ----------------------------------------------------------------------
# Payload decoders
# ----------------------------------------------------------------------
def decode_battery(data: bytes) -> Decoded:
    level = _read_u8(data)
    return Decoded(StateDelta(battery_level=level), BatteryChanged(level=level))


def decode_run_id(data: bytes) -> Decoded:
    # Used by the vendor's education tooling only
    return Decoded(EMPTY_DELTA, None)


def decode_flying_state(data: bytes) -> Decoded:
    index = _read_u8(data)
    status = enum_from_index(FlightStatus, index)
    if status is None:
        raise MalformedPayload(f"unknown flying state index {index}")
    return Decoded(StateDelta(flight_status=status), FlightStatusChanged(status=status))


def decode_alert_state(data: bytes) -> Decoded:
    index = _read_u8(data)
    alert = enum_from_index(AlertStatus, index)
    if alert is None:
        raise MalformedPayload(f"unknown alert state index {index}")
    return Decoded(StateDelta(alert_status=alert), AlertChanged(alert=alert))


def decode_auto_takeoff(data: bytes) -> Decoded:
    enabled = bool(_read_u8(data))
    return Decoded(StateDelta(auto_takeoff=enabled), AutoTakeOffChanged(enabled=enabled))


def decode_position(data: bytes) -> Decoded:
    x, y, z, psi, timestamp = _read(_POSITION, data)
    event = PositionChanged(x=x, y=y, z=z, psi=psi, timestamp=timestamp)
    return Decoded(StateDelta(position=event), event)


def decode_speed(data: bytes) -> Decoded:
    x, y, z, timestamp = _read(_SPEED, data)
    event = SpeedChanged(x=x, y=y, z=z, timestamp=timestamp)
    return Decoded(StateDelta(speed=event), event)


def decode_picture_state(data: bytes) -> Decoded:
    state_index = _read_u8(data)
    # Enums are 4 bytes on the wire, so the error index follows at offset 10
    error_index = _read_u8(data, PAYLOAD_OFFSET + 4)
    state = enum_from_index(PictureState, state_index)
    error = enum_from_index(PictureError, error_index)
    if state is None or error is None:
        raise MalformedPayload(
            f"unknown picture state {state_index} / error {error_index}"
        )
    event = PictureStateChanged(state=state, error=error)
    return Decoded(StateDelta(picture_state=event), event)


def _limit_decoder(kind: LimitKind) -> PayloadDecoder:
    def decode(data: bytes) -> Decoded:
        current, minimum, maximum = _read(_LIMIT, data)
        event = LimitChanged(kind=kind, current=current, min=minimum, max=maximum)
        return Decoded(StateDelta(limit=event), event)

    decode.__name__ = f"decode_{kind.value}"
    return decode


# (project, class, command) -> payload decoder
DECODERS: Dict[Tuple[int, int, int], PayloadDecoder] = {
    (Project.COMMON, 5, 1): decode_battery,  # CommonState.BatteryStateChanged
    (Project.COMMON, 30, 0): decode_run_id,  # RunState.RunIdChanged
    (Project.MINIDRONE, 3, 1): decode_flying_state,  # PilotingState.FlyingStateChanged
    (Project.MINIDRONE, 3, 2): decode_alert_state,  # PilotingState.AlertStateChanged
    (Project.MINIDRONE, 3, 3): decode_auto_takeoff,  # PilotingState.AutoTakeOffModeChanged
    (Project.MINIDRONE, 18, 0): decode_position,  # NavigationDataState.DronePosition
    (Project.MINIDRONE, 18, 1): decode_speed,  # NavigationDataState.DroneSpeed
    (Project.MINIDRONE, 2, 0): _limit_decoder(LimitKind.MAX_VERTICAL_SPEED),
    (Project.MINIDRONE, 2, 1): _limit_decoder(LimitKind.MAX_ROTATION_SPEED),
    (Project.MINIDRONE, 9, 0): _limit_decoder(LimitKind.MAX_ALTITUDE),
    (Project.MINIDRONE, 9, 1): _limit_decoder(LimitKind.MAX_TILT),
    (Project.MINIDRONE, 7, 1): decode_picture_state,  # MediaRecordState.PictureStateChangedV2
}


def parse_header(data: bytes) -> Optional[FrameHeader]:
    if len(data) < _HEADER.size:
        return None
    return FrameHeader(*_HEADER.unpack_from(data, 0))


class TelemetryDecoder:
    """Routes inbound frames to payload decoders and publishes the results.

    Decoding never raises: unknown triples, unknown data types and malformed
    payloads are logged and dropped so the next notification is processed
    normally.
    """

    def __init__(
        self,
        state: DeviceState,
        bus: EventBus,
        *,
        decoders: Optional[Dict[Tuple[int, int, int], PayloadDecoder]] = None,
    ) -> None:
        self.state = state
        self.bus = bus
        self._decoders = dict(DECODERS if decoders is None else decoders)

    def decode(self, data: bytes) -> Optional[Decoded]:
        """Decode ``data`` without touching device state."""

        data = bytes(data)
        header = parse_header(data)
        if header is None:
            LOGGER.warning("Dropping short frame (%d bytes): %s", len(data), data.hex())
            return None

        try:
            data_type = DataType(header.data_type)
        except ValueError:
            LOGGER.info("DataType missing : %s", self._unrecognized(header))
        else:
            LOGGER.debug("RX %s step=%d", data_type.name, header.step)

        decoder = self._decoders.get(header.triple)
        if decoder is None:
            LOGGER.info("Packet implementation missing : %s", self._unrecognized(header))
            return None

        try:
            return decoder(data)
        except MalformedPayload as exc:
            LOGGER.warning(
                "Malformed payload for project:%d | class:%d | command:%d: %s",
                header.project,
                header.msg_class,
                header.command,
                exc,
            )
            return None

    def apply(self, decoded: Decoded) -> None:
        """Commit the delta, then emit the event."""

        self.state.apply(decoded.delta)
        event = decoded.event
        if event is None:
            return
        LOGGER.debug("Telemetry %s", event)
        self.bus.emit(event.name, event)

    def handle(self, data: bytes) -> Optional[Decoded]:
        decoded = self.decode(data)
        if decoded is not None:
            self.apply(decoded)
        return decoded

    @staticmethod
    def _unrecognized(header: FrameHeader) -> UnrecognizedFrame:
        return UnrecognizedFrame(
            header.data_type, header.project, header.msg_class, header.command
        )
