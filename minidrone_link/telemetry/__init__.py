"""Telemetry model: device state, typed events and event fan-out."""

from .event_types import (
    AlertChanged,
    AlertStatus,
    AutoTakeOffChanged,
    BatteryChanged,
    EventName,
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
)
from .events import EventBus, EventHandler
from .state import DeviceState, StateDelta

__all__ = [
    "AlertChanged",
    "AlertStatus",
    "AutoTakeOffChanged",
    "BatteryChanged",
    "DeviceState",
    "EventBus",
    "EventHandler",
    "EventName",
    "FlightStatus",
    "FlightStatusChanged",
    "LimitChanged",
    "LimitKind",
    "PictureError",
    "PictureState",
    "PictureStateChanged",
    "PositionChanged",
    "SpeedChanged",
    "StateDelta",
    "TelemetryEvent",
]
