"""Core primitives for minidrone-link."""

from .models import FlightParams, PeripheralCandidate
from .protocols import (
    BleCharacteristic,
    BleConnection,
    BleStack,
    DataCallback,
    DisconnectCallback,
)

__all__ = [
    "BleCharacteristic",
    "BleConnection",
    "BleStack",
    "DataCallback",
    "DisconnectCallback",
    "FlightParams",
    "PeripheralCandidate",
]
