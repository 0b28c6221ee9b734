"""Connection lifecycle and pilot commands for a single MiniDrone.

:class:`MiniDroneLink` ties the protocol pieces to a :class:`BleStack`:
it scans for a matching peripheral, connects, subscribes the vendor
characteristics, feeds notifications into the telemetry decoder and exposes
the pilot commands. When the link drops it returns to scanning.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from .core import BleConnection, BleStack, FlightParams, PeripheralCandidate
from .discovery import PeripheralFilter
from .errors import (
    AdapterUnavailableError,
    CharacteristicDiscoveryError,
    DroneConnectionError,
    PeripheralDiscoveryError,
    RssiQueryError,
    TransportUnavailable,
)
from .flight_loop import FlightLoop
from .protocol import ChannelSet, ChannelTransport, CommandEncoder, TelemetryDecoder, find_characteristic
from .protocol.constants import (
    ANIMATIONS,
    CHARACTERISTIC_MAP,
    RX_COMMAND_NO_ACK,
    RX_COMMAND_WITH_ACK,
    AnimationCommand,
    CommandClass,
    MediaRecordCommand,
    PilotingCommand,
    PilotingSettingsCommand,
    SpeedSettingsCommand,
)
from .telemetry import DeviceState, EventBus, EventHandler, EventName

LOGGER = logging.getLogger(__name__)


class MiniDroneLink:
    """Network adapter between the drone and a BLE stack."""

    def __init__(
        self,
        stack: BleStack,
        *,
        drone_filter: str = "",
        flight_interval: float = 0.1,
        connect_timeout: Optional[float] = 10.0,
        connected_event_delay: float = 0.2,
        rescan_delay: float = 2.0,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.stack = stack
        self.filter = PeripheralFilter(drone_filter)
        self.bus = bus or EventBus()
        self.state = DeviceState()
        self.channels = ChannelSet()
        self.transport = ChannelTransport(self.channels)
        self.encoder = CommandEncoder(self.channels)
        self.decoder = TelemetryDecoder(self.state, self.bus)
        self.flight_params = FlightParams()
        self.flight_loop = FlightLoop(
            encoder=self.encoder,
            transport=self.transport,
            state=self.state,
            bus=self.bus,
            params=lambda: self.flight_params,
            interval=flight_interval,
        )

        self.connect_timeout = connect_timeout
        self.connected_event_delay = max(0.0, connected_event_delay)
        self.rescan_delay = max(0.0, rescan_delay)

        self.connected = False
        self.peripheral: Optional[PeripheralCandidate] = None
        self._connection: Optional[BleConnection] = None
        self._disconnected = asyncio.Event()
        self._connected_handle: Optional[asyncio.TimerHandle] = None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, name: EventName | str, handler: EventHandler) -> None:
        self.bus.on(name, handler)

    def off(self, name: EventName | str, handler: EventHandler) -> None:
        self.bus.off(name, handler)

    # ------------------------------------------------------------------
    # Discovery and connection
    # ------------------------------------------------------------------
    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Scan, connect and stay connected until ``stop_event`` is set.

        Every disconnect returns to scanning. Discovery and connection
        failures are logged and scanning resumes after ``rescan_delay``.
        """

        stop_event = stop_event or asyncio.Event()
        try:
            while not stop_event.is_set():
                try:
                    candidate = await self.find_drone()
                    await self.connect(candidate)
                except AdapterUnavailableError as exc:
                    LOGGER.warning("Bluetooth adapter unavailable: %s", exc)
                    self.bus.emit(EventName.POWERED_OFF, True)
                except (PeripheralDiscoveryError, DroneConnectionError) as exc:
                    LOGGER.error("Drone connection attempt failed: %s", exc)
                else:
                    await _wait_first(self._disconnected, stop_event)
                    continue

                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=self.rescan_delay)
        finally:
            await self.close()

    async def find_drone(self) -> PeripheralCandidate:
        """Scan until a peripheral passes the drone filter."""

        LOGGER.info("Searching for drones...")
        discovery = self.stack.discover()
        try:
            async for candidate in discovery:
                if self.filter.matches(candidate):
                    LOGGER.info("Peripheral found %s", candidate.advertised_name)
                    return candidate
        finally:
            aclose = getattr(discovery, "aclose", None)
            if aclose is not None:
                await aclose()
        raise PeripheralDiscoveryError("Scan ended without finding a drone")

    async def connect(self, candidate: PeripheralCandidate) -> None:
        """Connect to ``candidate`` and set up its characteristics.

        Raises:
            DroneConnectionError: If connecting or setting up the peripheral
                fails, including when the link drops during setup.
        """

        self.peripheral = candidate
        try:
            connection = await self.stack.connect(candidate, timeout=self.connect_timeout)
        except DroneConnectionError:
            self.peripheral = None
            raise
        LOGGER.info("Connected")

        self._connection = connection
        self._disconnected.clear()
        connection.on_disconnect(self._on_disconnect)
        try:
            await self._setup_peripheral(connection)
        except Exception as exc:
            self.transport.detach()
            self._connection = None
            self.peripheral = None
            try:
                await connection.disconnect()
            except Exception as disconnect_exc:
                LOGGER.debug("Disconnect after failed setup raised: %s", disconnect_exc)
            if isinstance(exc, DroneConnectionError):
                raise
            raise DroneConnectionError(
                f"Setup of {candidate.advertised_name} failed: {exc}"
            ) from exc

    def _ensure_link(self, connection: BleConnection) -> None:
        if self._disconnected.is_set() or self._connection is not connection:
            raise DroneConnectionError("link dropped during setup")

    async def _setup_peripheral(self, connection: BleConnection) -> None:
        characteristics = await connection.discover_characteristics()
        self._ensure_link(connection)

        no_ack = find_characteristic(characteristics, RX_COMMAND_NO_ACK)
        with_ack = find_characteristic(characteristics, RX_COMMAND_WITH_ACK)
        if no_ack is None or with_ack is None:
            raise CharacteristicDiscoveryError(
                "Drone does not expose the telemetry characteristics"
            )

        for key in CHARACTERISTIC_MAP:
            characteristic = find_characteristic(characteristics, key)
            if characteristic is None:
                LOGGER.warning("Characteristic %s not found; skipping subscription", key)
                continue
            await _maybe_await(characteristic.subscribe())
            self._ensure_link(connection)

        no_ack.on_data(self._on_rx_command_no_ack)
        with_ack.on_data(self._on_rx_command_with_ack)

        self.transport.attach(characteristics)
        if not self.transport.is_ready:
            raise CharacteristicDiscoveryError("Drone does not expose the command characteristics")

        self.connected = True
        name = self.peripheral.advertised_name if self.peripheral else "unknown"
        LOGGER.info("Device connected %s", name)
        self.flight_loop.start()

        # The firmware ignores commands sent right after subscription
        loop = asyncio.get_running_loop()
        self._connected_handle = loop.call_later(
            self.connected_event_delay, self._emit_connected
        )

    def _emit_connected(self) -> None:
        self._connected_handle = None
        if self.connected:
            self.bus.emit(EventName.CONNECTED)

    def _on_disconnect(self) -> None:
        if self._connection is None and not self.connected:
            return
        was_connected = self.connected
        if was_connected:
            LOGGER.info("Disconnected from drone")
        else:
            LOGGER.warning("Link dropped before setup completed")
        if self._connected_handle is not None:
            self._connected_handle.cancel()
            self._connected_handle = None
        self.transport.detach()
        self._connection = None
        self.peripheral = None
        self.connected = False
        self._disconnected.set()
        if was_connected:
            self.bus.emit(EventName.DISCONNECTED)

    async def disconnect(self) -> None:
        connection = self._connection
        if connection is None:
            return
        await self.flight_loop.stop()
        await connection.disconnect()

    async def close(self) -> None:
        await self.flight_loop.stop()
        if self._connection is not None:
            with contextlib.suppress(Exception):
                await self._connection.disconnect()
        if self.connected:
            self._on_disconnect()

    # ------------------------------------------------------------------
    # Inbound notifications
    # ------------------------------------------------------------------
    def _on_rx_command_with_ack(self, data: bytes) -> None:
        self.decoder.handle(data)

    def _on_rx_command_no_ack(self, data: bytes) -> None:
        self.decoder.handle(data)

    # ------------------------------------------------------------------
    # Pilot commands
    # ------------------------------------------------------------------
    def set_flight_params(
        self,
        *,
        roll: Optional[int] = None,
        pitch: Optional[int] = None,
        yaw: Optional[int] = None,
        altitude: Optional[int] = None,
    ) -> FlightParams:
        """Update the cached axes; the flight loop sends them on its next tick."""

        self.flight_params = self.flight_params.merged(
            roll=roll, pitch=pitch, yaw=yaw, altitude=altitude
        )
        return self.flight_params

    def write_flight_params(self) -> bool:
        """Send the cached axes immediately, outside the loop cadence."""

        frame = self.encoder.build_flight_params_frame(self.flight_params)
        if not self.transport.send(frame):
            return False
        self.bus.emit(EventName.FLIGHT_PARAM_CHANGE, self.flight_params)
        return True

    def write_trim(self) -> bool:
        LOGGER.info("Trim command called")
        return self._send_piloting(PilotingCommand.FLAT_TRIM)

    def write_takeoff(self) -> bool:
        LOGGER.info("Takeoff command called")
        return self._send_piloting(PilotingCommand.TAKEOFF)

    def write_land(self) -> bool:
        LOGGER.info("Land command called")
        return self._send_piloting(PilotingCommand.LAND)

    def write_emergency(self) -> bool:
        LOGGER.info("Emergency command called")
        frame = self.encoder.build_command_frame(
            self.channels.emergency, CommandClass.PILOTING, PilotingCommand.EMERGENCY, [0x00]
        )
        return self.transport.send(frame)

    def write_take_picture(self) -> bool:
        LOGGER.info("Take picture command called")
        frame = self.encoder.build_command_frame(
            self.channels.command, CommandClass.MEDIA_RECORD, MediaRecordCommand.PICTURE, [0x00]
        )
        return self.transport.send(frame)

    def write_animation(self, animation: str) -> bool:
        """Send a flip animation (``flipFront``, ``flipBack``, ``flipRight``, ``flipLeft``)."""

        direction = ANIMATIONS.get(animation)
        if direction is None:
            LOGGER.warning("Unknown animation %r ignored", animation)
            return False
        # The 0x00 after the class constant mirrors the vendor tools; its meaning
        # is not documented.
        frame = self.encoder.build_command_frame(
            self.channels.command,
            CommandClass.ANIMATION,
            AnimationCommand.FLIP,
            [0x00, direction, 0x00, 0x00, 0x00],
        )
        LOGGER.info("Animation command called with %s argument", animation)
        return self.transport.send(frame)

    def write_max_altitude(self, altitude: float) -> bool:
        """Altitude limit in meters (2-10 for Airborne Cargo, 2-25 for Mambo)."""

        LOGGER.info("Setting max altitude to %sm", altitude)
        return self._send_limit(
            CommandClass.PILOTING_SETTINGS,
            PilotingSettingsCommand.MAX_ALTITUDE,
            altitude,
            EventName.MAX_ALTITUDE_CHANGE,
        )

    def write_max_tilt(self, tilt: float) -> bool:
        LOGGER.info("Setting max tilt to %s%% (20° max)", tilt)
        return self._send_limit(
            CommandClass.PILOTING_SETTINGS,
            PilotingSettingsCommand.MAX_TILT,
            tilt,
            EventName.MAX_TILT_CHANGE,
        )

    def write_max_vertical_speed(self, vertical_speed: float) -> bool:
        LOGGER.info("Setting max vertical speed to %s m/s", vertical_speed)
        return self._send_limit(
            CommandClass.SPEED_SETTINGS,
            SpeedSettingsCommand.MAX_VERTICAL_SPEED,
            vertical_speed,
            EventName.MAX_VERTICAL_SPEED_CHANGE,
        )

    def write_max_rotation_speed(self, rotation_speed: float) -> bool:
        LOGGER.info("Setting max rotation speed to %s °/s", rotation_speed)
        return self._send_limit(
            CommandClass.SPEED_SETTINGS,
            SpeedSettingsCommand.MAX_ROTATION_SPEED,
            rotation_speed,
            EventName.MAX_ROTATION_SPEED_CHANGE,
        )

    async def update_rssi(self) -> Optional[int]:
        """Read the signal strength and emit ``rssiUpdate``.

        Failures are logged and leave the state untouched.
        """

        try:
            connection = self._require_connection()
            rssi = await connection.read_signal_strength()
        except TransportUnavailable as exc:
            LOGGER.warning("RSSI not available: %s", exc)
            return None
        except RssiQueryError as exc:
            LOGGER.warning("RSSI query failed: %s", exc)
            return None

        self.state.rssi = rssi
        self.bus.emit(EventName.RSSI_UPDATE, rssi)
        return rssi

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_connection(self) -> BleConnection:
        if self._connection is None or not self.connected:
            raise TransportUnavailable("BTLE Device must be connected before calling this method")
        return self._connection

    def _send_piloting(self, command: PilotingCommand) -> bool:
        frame = self.encoder.build_command_frame(
            self.channels.command, CommandClass.PILOTING, command, [0x00]
        )
        return self.transport.send(frame)

    def _send_limit(
        self, class_code: int, command_code: int, value: float, event: EventName
    ) -> bool:
        frame = self.encoder.build_limit_frame(class_code, command_code, value)
        if not self.transport.send(frame):
            return False
        self.bus.emit(event, value)
        return True


async def _maybe_await(result) -> None:
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        await result


async def _wait_first(*events: asyncio.Event) -> None:
    waiters = [asyncio.ensure_future(event.wait()) for event in events]
    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            waiter.cancel()

