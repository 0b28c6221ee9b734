"""Main application entry-point for minidrone-link."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Any, Optional

from .adapters import BleakStack
from .config import LinkConfig, load_config
from .core import BleStack
from .health import HealthReporter, HealthServer
from .link import MiniDroneLink
from .logging import configure_logging
from .telemetry import AlertStatus, EventName

LOGGER = logging.getLogger(__name__)

_BATTERY_ALERTS = (AlertStatus.CRITICAL_BATTERY, AlertStatus.LOW_BATTERY)


class AgentState(str, Enum):
    COLD_START = "cold_start"
    SCANNING = "scanning"
    ACTIVE = "active"
    DEGRADED = "degraded"
    STOPPING = "stopping"


class MiniDroneApp:
    """Coordinates the drone link, health reporting and shutdown.

    The BLE stack can be injected for testing; by default a bleak-backed
    stack is created from the configuration.
    """

    def __init__(
        self,
        config: Optional[LinkConfig] = None,
        *,
        stack: Optional[BleStack] = None,
    ) -> None:
        self._config = config or load_config()
        drone = self._config.drone
        self._stack: BleStack = stack or BleakStack(adapter=drone.adapter)
        self.link = MiniDroneLink(
            self._stack,
            drone_filter=drone.filter,
            flight_interval=self._config.flight.interval_seconds,
            connect_timeout=drone.connect_timeout_seconds or None,
            connected_event_delay=drone.connected_event_delay_seconds,
            rescan_delay=self._config.resilience.rescan_delay_seconds,
        )
        self._health = HealthReporter()
        self._health_server: Optional[HealthServer] = None
        self._state = AgentState.COLD_START
        self._shutdown_event: Optional[asyncio.Event] = None
        self._rssi_task: Optional[asyncio.Task[None]] = None

        self.link.on(EventName.CONNECTED, self._on_connected)
        self.link.on(EventName.DISCONNECTED, self._on_disconnected)
        self.link.on(EventName.POWERED_OFF, self._on_powered_off)
        self.link.on(EventName.BATTERY_STATUS_CHANGE, self._on_telemetry)
        self.link.on(EventName.FLIGHT_STATUS_CHANGE, self._on_telemetry)
        self.link.on(EventName.RSSI_UPDATE, self._on_telemetry)
        self.link.on(EventName.ALERT_STATE_CHANGE, self._on_alert)

    @property
    def health(self) -> HealthReporter:
        return self._health

    @property
    def state(self) -> AgentState:
        return self._state

    @classmethod
    def start(cls, config: Optional[LinkConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_ble=instance._config.logging.log_ble,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("minidrone-link received shutdown signal")

    async def run(self) -> None:
        self._shutdown_event = asyncio.Event()
        LOGGER.info("minidrone-link starting with config: %s", self._config.path)

        await self._transition_state(AgentState.COLD_START, detail="initialising")
        await self._health.update("ble", False, "scanning")
        await self._start_health_server()
        self._start_rssi_monitor()

        await self._transition_state(AgentState.SCANNING, detail="searching for drones")
        try:
            await self.link.run(self._shutdown_event)
        except asyncio.CancelledError:
            LOGGER.info("minidrone-link received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def stop(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def _stop_services(self) -> None:
        await self._transition_state(AgentState.STOPPING)
        if self._rssi_task is not None:
            self._rssi_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._rssi_task
            self._rssi_task = None
        if self._health_server is not None:
            await self._health_server.stop()
            self._health_server = None

    async def _transition_state(
        self, state: AgentState, *, detail: Optional[str] = None
    ) -> None:
        previous = self._state
        if previous is AgentState.STOPPING and state is not AgentState.STOPPING:
            return
        self._state = state
        LOGGER.info(
            "Agent state transition %s -> %s (%s)",
            previous.value,
            state.value,
            detail or state.value,
        )
        await self._health.set_agent_state(
            state.value,
            healthy=state in (AgentState.ACTIVE, AgentState.SCANNING),
            detail=detail or state.value,
        )

    async def _start_health_server(self) -> None:
        resilience = self._config.resilience
        if not resilience.health_enabled or resilience.health_port <= 0:
            return

        server = HealthServer(
            self._health,
            resilience.health_host,
            resilience.health_port,
        )
        try:
            await server.start()
        except OSError as exc:
            LOGGER.error("Failed to start health endpoint: %s", exc)
            await self._health.update("health-endpoint", False, str(exc))
        else:
            self._health_server = server
            await self._health.update("health-endpoint", True, None)

    def _start_rssi_monitor(self) -> None:
        interval = self._config.resilience.rssi_interval_seconds
        if interval <= 0:
            return
        self._rssi_task = asyncio.create_task(self._rssi_loop(interval))

    async def _rssi_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self.link.connected:
                await self.link.update_rssi()

    # ------------------------------------------------------------------
    # Link event handlers
    # ------------------------------------------------------------------
    async def _on_connected(self, _: Any) -> None:
        name = self.link.peripheral.advertised_name if self.link.peripheral else None
        await self._health.update("ble", True, name)
        await self._health.update("flight-loop", self.link.flight_loop.running, None)
        await self._transition_state(AgentState.ACTIVE, detail=f"connected to {name}")

    async def _on_disconnected(self, _: Any) -> None:
        await self._health.update("ble", False, "disconnected")
        await self._transition_state(AgentState.SCANNING, detail="drone disconnected")

    async def _on_powered_off(self, _: Any) -> None:
        await self._health.update("ble", False, "adapter powered off")
        await self._transition_state(AgentState.DEGRADED, detail="bluetooth unavailable")

    async def _on_telemetry(self, _: Any) -> None:
        await self._health.set_drone_state(self.link.state.as_dict())

    async def _on_alert(self, event: Any) -> None:
        alert = getattr(event, "alert", None)
        await self._health.update(
            "battery",
            alert not in _BATTERY_ALERTS,
            alert.value if alert is not None else None,
        )
        await self._health.set_drone_state(self.link.state.as_dict())
