"""MiniDrone binary command protocol."""

from .channels import Channel, ChannelKind, ChannelSet
from .decoder import DECODERS, Decoded, FrameHeader, TelemetryDecoder, parse_header
from .encoder import CommandEncoder, Frame
from .transport import ChannelTransport, find_characteristic

__all__ = [
    "Channel",
    "ChannelKind",
    "ChannelSet",
    "ChannelTransport",
    "CommandEncoder",
    "DECODERS",
    "Decoded",
    "Frame",
    "FrameHeader",
    "TelemetryDecoder",
    "find_characteristic",
    "parse_header",
]
