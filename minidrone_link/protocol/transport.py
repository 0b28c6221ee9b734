"""Outbound channel transport over the BLE write primitive."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Mapping, Optional

from ..core.protocols import BleCharacteristic
from .channels import ChannelKind, ChannelSet
from .encoder import Frame

LOGGER = logging.getLogger(__name__)


def find_characteristic(
    characteristics: Mapping[str, BleCharacteristic], key: str
) -> Optional[BleCharacteristic]:
    """Return the first characteristic whose UUID contains ``key``."""

    pattern = re.compile(key, re.IGNORECASE)
    for uuid, characteristic in characteristics.items():
        if pattern.search(uuid):
            return characteristic
    return None


class ChannelTransport:
    """Owns the outbound channels and writes frames to their characteristics.

    Writes are fire-and-forget: :meth:`send` schedules the write and returns
    immediately. A failed write is logged and dropped; the next flight loop
    tick supersedes it.
    """

    def __init__(self, channels: Optional[ChannelSet] = None) -> None:
        self.channels = channels or ChannelSet()
        self._characteristics: Dict[ChannelKind, BleCharacteristic] = {}
        self._pending: set[asyncio.Future[Any]] = set()

    @property
    def is_ready(self) -> bool:
        return len(self._characteristics) == len(ChannelKind)

    def attach(self, characteristics: Mapping[str, BleCharacteristic]) -> None:
        """Bind each channel to its characteristic and restart step counters."""

        resolved: Dict[ChannelKind, BleCharacteristic] = {}
        for kind in ChannelKind:
            characteristic = find_characteristic(characteristics, kind.value)
            if characteristic is None:
                LOGGER.warning("Characteristic %s not found; channel unavailable", kind.value)
                continue
            resolved[kind] = characteristic
        self._characteristics = resolved
        self.channels.reset()

    def detach(self) -> None:
        self._characteristics = {}

    def send(self, frame: Frame) -> bool:
        """Write ``frame`` to its channel. Returns False when nothing was sent."""

        characteristic = self._characteristics.get(frame.channel)
        if characteristic is None:
            LOGGER.warning(
                "You must have bluetooth enabled and be connected to a drone "
                "before executing a command (channel %s not attached)",
                frame.channel.value,
            )
            return False

        try:
            result = characteristic.write(frame.data, without_response=True)
        except Exception as exc:
            LOGGER.warning("Write on %s failed: %s", frame.channel.value, exc)
            return False

        if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
            future = asyncio.ensure_future(result)
            self._pending.add(future)
            future.add_done_callback(self._write_done)
        return True

    async def drain(self) -> None:
        """Wait for scheduled writes to complete."""

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _write_done(self, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            LOGGER.warning("Characteristic write failed: %s", exc)
