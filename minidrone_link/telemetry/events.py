"""Synchronous event fan-out to application subscribers.

Handlers run in registration order on the caller's thread, which is always
the event loop driving the link. A handler may return an awaitable; it is
scheduled as a task and not awaited, so emitting never blocks decoding.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional, Union

from .event_types import EventName

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[Awaitable[None], None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[EventName, List[EventHandler]] = defaultdict(list)
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, name: Union[EventName, str], handler: EventHandler) -> None:
        """Register ``handler`` for ``name``."""

        self._handlers[EventName(name)].append(handler)

    def off(self, name: Union[EventName, str], handler: EventHandler) -> None:
        handlers = self._handlers.get(EventName(name))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, name: Union[EventName, str], payload: Optional[Any] = None) -> None:
        event_name = EventName(name)
        for handler in list(self._handlers.get(event_name, ())):
            try:
                result = handler(payload)
            except Exception:
                LOGGER.exception("Handler for %s raised an exception", event_name.value)
                continue
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Async event handler failed: %s", exc, exc_info=exc)
