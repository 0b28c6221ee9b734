"""Device state mirrored from decoded telemetry."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .event_types import (
    AlertStatus,
    FlightStatus,
    LimitChanged,
    LimitKind,
    PictureStateChanged,
    PositionChanged,
    SpeedChanged,
)

_UNSET: Any = object()


@dataclass(slots=True)
class DeviceState:
    """Process-owned view of the drone, mutated only through :meth:`apply`."""

    battery_level: Optional[int] = None
    flight_status: Optional[FlightStatus] = None
    alert_status: AlertStatus = AlertStatus.NONE
    auto_takeoff: Optional[bool] = None
    position: Optional[PositionChanged] = None
    speed: Optional[SpeedChanged] = None
    picture_state: Optional[PictureStateChanged] = None
    limits: Dict[LimitKind, LimitChanged] = field(default_factory=dict)
    rssi: Optional[int] = None

    @property
    def battery_label(self) -> str:
        return "Unknown" if self.battery_level is None else f"{self.battery_level}%"

    @property
    def has_flight_status(self) -> bool:
        return self.flight_status is not None

    def apply(self, delta: "StateDelta") -> None:
        for name, value in delta.changes().items():
            if name == "limit":
                self.limits[value.kind] = value
            else:
                setattr(self, name, value)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "batteryLevel": self.battery_level,
            "flightStatus": self.flight_status.value if self.flight_status else None,
            "alertStatus": self.alert_status.value,
            "autoTakeOff": self.auto_takeoff,
            "rssi": self.rssi,
            "limits": {
                kind.value: {"current": item.current, "min": item.min, "max": item.max}
                for kind, item in self.limits.items()
            },
        }


@dataclass(slots=True, frozen=True)
class StateDelta:
    """Fields a decoded frame changes. Unset fields are left untouched."""

    battery_level: Any = _UNSET
    flight_status: Any = _UNSET
    alert_status: Any = _UNSET
    auto_takeoff: Any = _UNSET
    position: Any = _UNSET
    speed: Any = _UNSET
    picture_state: Any = _UNSET
    limit: Any = _UNSET

    def changes(self) -> Dict[str, Any]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not _UNSET
        }

    def __bool__(self) -> bool:
        return bool(self.changes())


EMPTY_DELTA = StateDelta()
