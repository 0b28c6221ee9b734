"""BLE adapter encapsulating bleak scanner and client usage."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Dict, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.characteristic import BleakGATTCharacteristic
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakBluetoothNotAvailableError, BleakError

from ..core import DataCallback, DisconnectCallback, PeripheralCandidate
from ..errors import (
    AdapterUnavailableError,
    CharacteristicDiscoveryError,
    DroneConnectionError,
    PeripheralDiscoveryError,
    RssiQueryError,
)

LOGGER = logging.getLogger(__name__)


def manufacturer_bytes(advertisement: AdvertisementData) -> bytes:
    """Render the first manufacturer block as company id (LE) followed by its payload."""

    for company_id, payload in advertisement.manufacturer_data.items():
        return company_id.to_bytes(2, "little") + bytes(payload)
    return b""


def candidate_from_advertisement(
    device: BLEDevice, advertisement: AdvertisementData
) -> PeripheralCandidate:
    return PeripheralCandidate(
        advertised_name=advertisement.local_name or device.name or "",
        manufacturer_data=manufacturer_bytes(advertisement),
        address=device.address,
        rssi=advertisement.rssi,
        handle=device,
    )


class BleakCharacteristic:
    """Notify/write endpoint backed by a connected :class:`BleakClient`."""

    def __init__(self, client: BleakClient, characteristic: BleakGATTCharacteristic) -> None:
        self._client = client
        self._characteristic = characteristic
        self._callbacks: List[DataCallback] = []
        self.uuid = characteristic.uuid

    async def subscribe(self) -> None:
        try:
            await self._client.start_notify(self._characteristic, self._on_notify)
        except (BleakError, OSError) as exc:
            raise DroneConnectionError(
                f"Failed to enable notifications on {self.uuid}: {exc}"
            ) from exc

    def on_data(self, callback: DataCallback) -> None:
        self._callbacks.append(callback)

    async def write(self, data: bytes, without_response: bool = True) -> None:
        await self._client.write_gatt_char(
            self._characteristic, data, response=not without_response
        )

    def _on_notify(self, sender: BleakGATTCharacteristic, data: bytearray) -> None:
        payload = bytes(data)
        for callback in list(self._callbacks):
            try:
                callback(payload)
            except Exception:
                LOGGER.exception("Notification handler for %s raised", self.uuid)


class BleakConnection:
    def __init__(self, client: BleakClient, candidate: PeripheralCandidate) -> None:
        self._client = client
        self._candidate = candidate
        self._disconnect_callbacks: List[DisconnectCallback] = []

    @property
    def client(self) -> BleakClient:
        return self._client

    async def discover_characteristics(self) -> Dict[str, BleakCharacteristic]:
        try:
            services = self._client.services
        except BleakError as exc:
            raise CharacteristicDiscoveryError(f"Service discovery failed: {exc}") from exc
        return {
            characteristic.uuid: BleakCharacteristic(self._client, characteristic)
            for characteristic in services.characteristics.values()
        }

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        self._disconnect_callbacks.append(callback)

    async def read_signal_strength(self) -> int:
        # bleak exposes no RSSI for connected clients; use the last advertisement
        if self._candidate.rssi is None:
            raise RssiQueryError("No advertisement RSSI recorded for this peripheral")
        return self._candidate.rssi

    async def disconnect(self) -> None:
        with contextlib.suppress(BleakError):
            await self._client.disconnect()

    def _handle_disconnect(self, client: BleakClient) -> None:
        callbacks, self._disconnect_callbacks = self._disconnect_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                LOGGER.exception("Disconnect callback failed")


class BleakStack:
    """Async-friendly scanner and connector over bleak."""

    def __init__(self, *, adapter: Optional[str] = None) -> None:
        self.adapter = adapter

    async def discover(self) -> AsyncIterator[PeripheralCandidate]:
        queue: asyncio.Queue[PeripheralCandidate] = asyncio.Queue()

        def _on_detection(device: BLEDevice, advertisement: AdvertisementData) -> None:
            queue.put_nowait(candidate_from_advertisement(device, advertisement))

        kwargs = {"adapter": self.adapter} if self.adapter else {}
        scanner = BleakScanner(detection_callback=_on_detection, **kwargs)
        try:
            await scanner.start()
        except BleakBluetoothNotAvailableError as exc:
            raise AdapterUnavailableError(str(exc)) from exc
        except (BleakError, OSError) as exc:
            raise PeripheralDiscoveryError(f"Failed to start scanning: {exc}") from exc

        LOGGER.debug("BLE scan started")
        try:
            while True:
                yield await queue.get()
        finally:
            with contextlib.suppress(BleakError, OSError):
                await scanner.stop()
            LOGGER.debug("BLE scan stopped")

    async def connect(
        self, candidate: PeripheralCandidate, *, timeout: Optional[float] = None
    ) -> BleakConnection:
        target = candidate.handle or candidate.address
        if target is None:
            raise DroneConnectionError("Candidate has no address to connect to")

        connection: Optional[BleakConnection] = None

        def _on_disconnect(client: BleakClient) -> None:
            if connection is not None:
                connection._handle_disconnect(client)

        kwargs = {"timeout": timeout} if timeout else {}
        client = BleakClient(target, disconnected_callback=_on_disconnect, **kwargs)
        connection = BleakConnection(client, candidate)

        LOGGER.info("Connecting to %s (%s)", candidate.advertised_name, candidate.address)
        try:
            await client.connect()
        except (BleakError, asyncio.TimeoutError, OSError) as exc:
            raise DroneConnectionError(
                f"Failed to connect to {candidate.advertised_name}: {exc}"
            ) from exc
        return connection
