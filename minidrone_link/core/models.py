"""Domain models shared between the protocol layer and the BLE contract."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from ..constants import FLIGHT_PARAM_MAX, FLIGHT_PARAM_MIN

LOGGER = logging.getLogger(__name__)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass(slots=True, frozen=True)
class FlightParams:
    """Last requested piloting axes, each in [-100, 100]."""

    roll: int = 0
    pitch: int = 0
    yaw: int = 0
    altitude: int = 0

    def merged(self, **updates: Optional[int]) -> "FlightParams":
        """Return a copy with the given axes replaced.

        Axes passed as ``None`` or omitted keep their previous value. Values
        outside the legal range are clamped and a warning is logged.
        """

        known = {item.name for item in fields(self)}
        changes: dict[str, int] = {}
        for name, value in updates.items():
            if name not in known:
                raise TypeError(f"Unknown flight parameter: {name}")
            if value is None:
                continue
            raw = int(value)
            clamped = _clamp(raw, FLIGHT_PARAM_MIN, FLIGHT_PARAM_MAX)
            if clamped != raw:
                LOGGER.warning(
                    "Flight parameter %s=%d outside [%d, %d]; clamped to %d",
                    name,
                    raw,
                    FLIGHT_PARAM_MIN,
                    FLIGHT_PARAM_MAX,
                    clamped,
                )
            changes[name] = clamped
        return replace(self, **changes)

    def as_dict(self) -> dict[str, int]:
        return {
            "roll": self.roll,
            "pitch": self.pitch,
            "yaw": self.yaw,
            "altitude": self.altitude,
        }


@dataclass(slots=True, frozen=True)
class PeripheralCandidate:
    """A peripheral seen during discovery. Transient, never retained."""

    advertised_name: str
    manufacturer_data: bytes = b""
    address: Optional[str] = None
    rssi: Optional[int] = None
    handle: Any = field(default=None, compare=False, repr=False)
