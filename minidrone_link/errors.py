"""Exception taxonomy for the drone link."""

from __future__ import annotations


class MiniDroneError(RuntimeError):
    """Base class for all minidrone-link failures."""


class TransportUnavailable(MiniDroneError):
    """No connected transport is attached when a send or query is attempted."""


class UnrecognizedFrame(MiniDroneError):
    """An inbound frame carries an unknown data type or command triple."""

    def __init__(
        self, data_type: int, project: int, msg_class: int, command: int
    ) -> None:
        super().__init__(
            f"dataType:{data_type} | project:{project} | class:{msg_class} | command:{command}"
        )
        self.data_type = data_type
        self.project = project
        self.msg_class = msg_class
        self.command = command


class PeripheralDiscoveryError(MiniDroneError):
    """Scanning for peripherals failed."""


class AdapterUnavailableError(PeripheralDiscoveryError):
    """The local Bluetooth adapter is powered off or missing."""


class DroneConnectionError(MiniDroneError):
    """Connecting to a discovered peripheral failed."""


class CharacteristicDiscoveryError(DroneConnectionError):
    """The connected peripheral does not expose the expected characteristics."""


class RssiQueryError(MiniDroneError):
    """Signal strength could not be read from the connection."""
