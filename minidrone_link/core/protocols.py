"""Protocol definitions for the BLE stack the link depends on."""

from __future__ import annotations

from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .models import PeripheralCandidate

DataCallback = Callable[[bytes], None]
DisconnectCallback = Callable[[], None]
MaybeAwaitable = Union[Awaitable[Any], None]


@runtime_checkable
class BleCharacteristic(Protocol):
    """Addressable notify/write endpoint on the drone."""

    uuid: str

    def subscribe(self) -> MaybeAwaitable:
        """Enable notifications for this characteristic."""
        ...

    def on_data(self, callback: DataCallback) -> None:
        """Route notification payloads to ``callback``."""
        ...

    def write(self, data: bytes, without_response: bool = True) -> MaybeAwaitable:
        """Write ``data``; the returned awaitable, if any, completes the write."""
        ...


@runtime_checkable
class BleConnection(Protocol):
    """An established link to a single peripheral."""

    async def discover_characteristics(self) -> Mapping[str, BleCharacteristic]:
        """Return characteristics keyed by UUID.

        Raises:
            CharacteristicDiscoveryError: If service discovery fails.
        """
        ...

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        """Invoke ``callback`` once when the link drops."""
        ...

    async def read_signal_strength(self) -> int:
        """Return the RSSI in dBm.

        Raises:
            RssiQueryError: If the value is not available.
        """
        ...

    async def disconnect(self) -> None:
        ...


@runtime_checkable
class BleStack(Protocol):
    """Discovery and connection primitives of the underlying BLE library."""

    def discover(self) -> AsyncIterator[PeripheralCandidate]:
        """Yield advertising peripherals until the iterator is closed.

        Raises:
            AdapterUnavailableError: If the radio is powered off.
            PeripheralDiscoveryError: If scanning fails for another reason.
        """
        ...

    async def connect(
        self, candidate: PeripheralCandidate, *, timeout: Optional[float] = None
    ) -> BleConnection:
        """Connect to ``candidate``.

        Raises:
            DroneConnectionError: If the connection cannot be established.
        """
        ...
