"""Periodic flight parameter broadcast."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from .core.models import FlightParams
from .protocol import ChannelTransport, CommandEncoder
from .telemetry import DeviceState, EventBus, EventName

LOGGER = logging.getLogger(__name__)


class FlightLoop:
    """Re-sends the cached flight parameters on a fixed interval.

    The drone drops back to a hover when piloting frames stop arriving, so the
    last requested axes are written every tick whether or not they changed.
    Ticks are skipped while the transport is detached or before the first
    flight status report. Missed ticks are not replayed.
    """

    def __init__(
        self,
        *,
        encoder: CommandEncoder,
        transport: ChannelTransport,
        state: DeviceState,
        bus: EventBus,
        params: Callable[[], FlightParams],
        interval: float = 0.1,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._encoder = encoder
        self._transport = transport
        self._state = state
        self._bus = bus
        self._params = params
        self.interval = float(interval)
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name="minidrone-flight-loop")

    async def stop(self) -> None:
        """Cancel the loop. No frame is sent once this is called."""

        self._running = False
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def tick(self) -> bool:
        """Send one frame if the link allows it. Returns True when sent."""

        if not self._running:
            return False
        if not self._transport.is_ready or not self._state.has_flight_status:
            return False

        params = self._params()
        frame = self._encoder.build_flight_params_frame(params)
        if not self._transport.send(frame):
            return False
        self._bus.emit(EventName.FLIGHT_PARAM_CHANGE, params)
        return True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self._running:
            self.tick()
            next_tick += self.interval
            now = loop.time()
            if next_tick < now:
                # Drop missed ticks rather than bursting to catch up
                next_tick = now
            await asyncio.sleep(next_tick - now)
