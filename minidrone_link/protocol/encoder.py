"""Outbound frame construction."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, Optional

from ..core.models import FlightParams
from .channels import Channel, ChannelKind, ChannelSet
from .constants import (
    FIXED_FRAME_LENGTH,
    MD_DEVICE_TYPE,
    CommandClass,
    DataType,
    PilotingCommand,
    Project,
)

# data type, step, project, class, command (u16), axes flag, roll, pitch, yaw,
# altitude (i16 each), timestamp (u32)
_FLIGHT_PARAMS_STRUCT = struct.Struct("<BBBBHBhhhhI")
# data type, step, project, class, command (u16), value (f32), reserved (u32)
_LIMIT_STRUCT = struct.Struct("<BBBBHfI")


@dataclass(slots=True, frozen=True)
class Frame:
    """An encoded outbound frame and the channel it belongs to."""

    channel: ChannelKind
    data: bytes

    @property
    def frame_type(self) -> DataType:
        return DataType(self.data[0])

    @property
    def step(self) -> int:
        return self.data[1]

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)


class CommandEncoder:
    """Builds protocol frames, advancing the owning channel's step on every call.

    Inputs are trusted: flight parameter ranges are the caller's responsibility.
    """

    def __init__(
        self, channels: ChannelSet, *, device_type: int = MD_DEVICE_TYPE
    ) -> None:
        self.channels = channels
        self.device_type = device_type

    def build_command_frame(
        self,
        channel: Channel,
        class_code: int,
        command_code: int,
        args: Optional[Iterable[int]] = None,
    ) -> Frame:
        step = channel.next_step()
        data = bytes(
            [DataType.DATA, step, self.device_type, class_code, command_code]
            + list(args or ())
        )
        return Frame(channel=channel.kind, data=data)

    def build_flight_params_frame(self, params: FlightParams) -> Frame:
        channel = self.channels.flight_params
        step = channel.next_step()
        data = _FLIGHT_PARAMS_STRUCT.pack(
            DataType.DATA,
            step,
            Project.MINIDRONE,
            CommandClass.PILOTING,
            PilotingCommand.PCMD,
            1,  # roll/pitch axes active
            params.roll,
            params.pitch,
            params.yaw,
            params.altitude,
            0,  # timestamp, unused by the firmware
        )
        return Frame(channel=channel.kind, data=data)

    def build_limit_frame(
        self, class_code: int, command_code: int, value: float
    ) -> Frame:
        channel = self.channels.command
        step = channel.next_step()
        packed = _LIMIT_STRUCT.pack(
            DataType.DATA,
            step,
            self.device_type,
            class_code,
            command_code,
            float(value),
            0,
        )
        data = packed.ljust(FIXED_FRAME_LENGTH, b"\x00")
        return Frame(channel=channel.kind, data=data)
