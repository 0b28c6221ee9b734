"""Event type definitions for drone telemetry and link lifecycle.

Every decoded telemetry payload is represented by a small immutable dataclass.
Each dataclass knows the public event name it is emitted under, so the
decoder only has to hand the instance to the event bus.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional


class EventName(str, Enum):
    """Names of the events emitted to the application layer.

    Link lifecycle:
        connected, disconnected, poweredOff, rssiUpdate

    Pilot echo:
        flightParamChange

    Telemetry:
        flightStatusChange, batteryStatusChange, alertStateChange,
        dronePositionChange, droneSpeedChange, pictureStateChange,
        autoTakeOffModeChange and the four max*Change limit events
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    POWERED_OFF = "poweredOff"
    RSSI_UPDATE = "rssiUpdate"

    FLIGHT_PARAM_CHANGE = "flightParamChange"

    FLIGHT_STATUS_CHANGE = "flightStatusChange"
    BATTERY_STATUS_CHANGE = "batteryStatusChange"
    ALERT_STATE_CHANGE = "alertStateChange"
    AUTO_TAKEOFF_MODE_CHANGE = "autoTakeOffModeChange"
    DRONE_POSITION_CHANGE = "dronePositionChange"
    DRONE_SPEED_CHANGE = "droneSpeedChange"
    PICTURE_STATE_CHANGE = "pictureStateChange"
    MAX_ALTITUDE_CHANGE = "maxAltitudeChange"
    MAX_TILT_CHANGE = "maxTiltChange"
    MAX_VERTICAL_SPEED_CHANGE = "maxVerticalSpeedChange"
    MAX_ROTATION_SPEED_CHANGE = "maxRotationSpeedChange"


class FlightStatus(str, Enum):
    """FlyingStateChanged values, in wire index order."""

    LANDED = "landed"
    TAKING_OFF = "taking off"
    HOVERING = "hovering"
    FLYING = "flying"
    LANDING = "landing"
    EMERGENCY = "emergency"
    ROLLING = "rolling"
    INITIALIZING = "initializing"


class AlertStatus(str, Enum):
    """AlertStateChanged values, in wire index order."""

    NONE = "none"
    USER = "user"
    CUT_OUT = "cut_out"
    CRITICAL_BATTERY = "critical_battery"
    LOW_BATTERY = "low_battery"


class PictureState(str, Enum):
    READY = "ready"
    BUSY = "busy"
    NOT_AVAILABLE = "notAvailable"


class PictureError(str, Enum):
    OK = "ok"
    UNKNOWN = "unknown"
    CAMERA_KO = "camera_ko"
    MEMORY_FULL = "memoryFull"
    LOW_BATTERY = "lowBattery"


class LimitKind(str, Enum):
    MAX_ALTITUDE = "maxAltitude"
    MAX_TILT = "maxTilt"
    MAX_VERTICAL_SPEED = "maxVerticalSpeed"
    MAX_ROTATION_SPEED = "maxRotationSpeed"


LIMIT_EVENT_NAMES: Dict[LimitKind, EventName] = {
    LimitKind.MAX_ALTITUDE: EventName.MAX_ALTITUDE_CHANGE,
    LimitKind.MAX_TILT: EventName.MAX_TILT_CHANGE,
    LimitKind.MAX_VERTICAL_SPEED: EventName.MAX_VERTICAL_SPEED_CHANGE,
    LimitKind.MAX_ROTATION_SPEED: EventName.MAX_ROTATION_SPEED_CHANGE,
}


def enum_from_index(enum_type: type[Enum], index: int) -> Optional[Any]:
    """Return the ``index``-th member of ``enum_type`` or None when out of range."""

    members = list(enum_type)
    if 0 <= index < len(members):
        return members[index]
    return None


@dataclass(slots=True, frozen=True)
class TelemetryEvent:
    """Base class for decoded telemetry payloads."""

    event_name: ClassVar[EventName]

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"eventName": self.name.value}
        for key, value in asdict(self).items():
            result[key] = value.value if isinstance(value, Enum) else value
        return result

    @property
    def name(self) -> EventName:
        return self.event_name


@dataclass(slots=True, frozen=True)
class BatteryChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.BATTERY_STATUS_CHANGE

    level: int


@dataclass(slots=True, frozen=True)
class FlightStatusChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.FLIGHT_STATUS_CHANGE

    status: FlightStatus


@dataclass(slots=True, frozen=True)
class AlertChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.ALERT_STATE_CHANGE

    alert: AlertStatus


@dataclass(slots=True, frozen=True)
class AutoTakeOffChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.AUTO_TAKEOFF_MODE_CHANGE

    enabled: bool


@dataclass(slots=True, frozen=True)
class PositionChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.DRONE_POSITION_CHANGE

    x: float
    y: float
    z: int
    psi: int
    timestamp: int


@dataclass(slots=True, frozen=True)
class SpeedChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.DRONE_SPEED_CHANGE

    x: float
    y: float
    z: float
    timestamp: int


@dataclass(slots=True, frozen=True)
class PictureStateChanged(TelemetryEvent):
    event_name: ClassVar[EventName] = EventName.PICTURE_STATE_CHANGE

    state: PictureState
    error: PictureError


@dataclass(slots=True, frozen=True)
class LimitChanged(TelemetryEvent):
    """Limit echo. The event name depends on ``kind``, see :attr:`name`."""

    kind: LimitKind
    current: float
    min: float
    max: float

    @property
    def name(self) -> EventName:
        return LIMIT_EVENT_NAMES[self.kind]
