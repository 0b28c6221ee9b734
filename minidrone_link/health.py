"""Health reporting for the drone link service.

Components (BLE link, flight loop, battery, health endpoint) report whether
they are healthy. The overall status is ``ok`` only when every component and
the agent state are healthy. The last known drone state is attached so a
supervisor can see battery and flight status without a BLE client of its own.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aiohttp import web

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ComponentStatus:
    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }


class HealthReporter:
    """Collects component health, the agent state and a drone state snapshot."""

    def __init__(self) -> None:
        self._components: Dict[str, ComponentStatus] = {}
        self._agent: Optional[ComponentStatus] = None
        self._drone: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    async def update(
        self, name: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._components[name] = ComponentStatus(name, healthy, detail)

    async def set_agent_state(
        self, state: str, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._agent = ComponentStatus("agent", healthy, detail or state)

    async def set_drone_state(self, drone: Dict[str, Any]) -> None:
        async with self._lock:
            self._drone = dict(drone)

    async def drone_state(self) -> Dict[str, Any]:
        async with self._lock:
            return dict(self._drone)

    async def snapshot(self) -> Dict[str, Any]:
        async with self._lock:
            components = [status.as_dict() for status in self._components.values()]
            agent = self._agent
            drone = dict(self._drone)

        healthy = all(item["healthy"] for item in components)
        if agent is not None:
            healthy = healthy and agent.healthy

        payload: Dict[str, Any] = {
            "status": "ok" if healthy else "degraded",
            "components": components,
        }
        if agent is not None:
            payload["agentState"] = {
                "state": agent.detail,
                "healthy": agent.healthy,
                "updatedAt": agent.updated_at.isoformat(timespec="seconds"),
            }
        if drone:
            payload["drone"] = drone
        return payload


class HealthServer:
    """Serves ``GET /healthz`` and ``GET /drone`` over aiohttp."""

    def __init__(self, reporter: HealthReporter, host: str, port: int) -> None:
        self._reporter = reporter
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    @property
    def port(self) -> int:
        """Bound port, resolved after :meth:`start` when 0 was requested."""

        if self._runner is not None:
            for address in self._runner.addresses:
                if isinstance(address, tuple) and len(address) >= 2:
                    return int(address[1])
        return self._port

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        app.router.add_get("/drone", self._handle_drone)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        self._site = site
        LOGGER.info("Health endpoint listening on http://%s:%s/healthz", self._host, self.port)

    async def stop(self) -> None:
        site, self._site = self._site, None
        runner, self._runner = self._runner, None
        if site is not None:
            with contextlib.suppress(RuntimeError):
                await site.stop()
        if runner is not None:
            await runner.cleanup()

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = await self._reporter.snapshot()
        return web.json_response(snapshot, status=200 if snapshot["status"] == "ok" else 503)

    async def _handle_drone(self, request: web.Request) -> web.Response:
        drone = await self._reporter.drone_state()
        if not drone:
            return web.json_response({"error": "no telemetry received yet"}, status=404)
        return web.json_response(drone)
