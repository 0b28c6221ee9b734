"""Host-side BLE driver for Parrot MiniDrones."""

from .core import FlightParams, PeripheralCandidate
from .discovery import PeripheralFilter, matches
from .flight_loop import FlightLoop
from .link import MiniDroneLink
from .telemetry import DeviceState, EventBus, EventName

__version__ = "0.1.0"

__all__ = [
    "DeviceState",
    "EventBus",
    "EventName",
    "FlightLoop",
    "FlightParams",
    "MiniDroneLink",
    "PeripheralCandidate",
    "PeripheralFilter",
    "matches",
]
