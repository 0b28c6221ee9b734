"""Outbound channels and their sequence counters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from .constants import COMMAND_KEY, EMERGENCY_KEY, FLIGHT_PARAMS_KEY


class ChannelKind(str, Enum):
    """Logical outbound stream, valued by its characteristic suffix."""

    FLIGHT_PARAMS = FLIGHT_PARAMS_KEY
    COMMAND = COMMAND_KEY
    EMERGENCY = EMERGENCY_KEY


@dataclass(slots=True)
class Channel:
    """Outbound stream with its own one-byte wrapping step counter.

    Every frame sent on a channel carries the next step. The counter fits in a
    single byte, so 255 advances to 0 rather than 256.
    """

    kind: ChannelKind
    step: int = 0

    def next_step(self) -> int:
        self.step = (self.step + 1) & 0xFF
        return self.step

    def reset(self) -> None:
        self.step = 0


@dataclass(slots=True)
class ChannelSet:
    flight_params: Channel = field(
        default_factory=lambda: Channel(ChannelKind.FLIGHT_PARAMS)
    )
    command: Channel = field(default_factory=lambda: Channel(ChannelKind.COMMAND))
    emergency: Channel = field(default_factory=lambda: Channel(ChannelKind.EMERGENCY))

    def get(self, kind: ChannelKind) -> Channel:
        if kind is ChannelKind.FLIGHT_PARAMS:
            return self.flight_params
        if kind is ChannelKind.COMMAND:
            return self.command
        return self.emergency

    def __iter__(self) -> Iterator[Channel]:
        return iter((self.flight_params, self.command, self.emergency))

    def reset(self) -> None:
        for channel in self:
            channel.reset()
