"""Per-request monitors.

Monitors are notified with ``on()`` when a request begins and with
``shutdown()`` when it ends, on both the success and the error path.
They release what framework code acquired during the request and would
otherwise leak into the next request on the same worker.
"""

from __future__ import annotations

import logging
from typing import Any

from .base.component import Component, Event


class ConnectionMonitor:
    """Closes connection-like components left open by a request.

    Any component that triggers ``after_open`` (sessions, database
    connections) is tracked; at shutdown every tracked component that is
    still active is closed.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger
        self._opened: list[Any] = []

    def _track(self, event: Event) -> None:
        if not any(sender is event.sender for sender in self._opened):
            self._opened.append(event.sender)

    def on(self) -> None:
        self._opened = []
        Event.on(Component, Component.EVENT_AFTER_OPEN, self._track)

    async def shutdown(self) -> None:
        Event.off(Component, Component.EVENT_AFTER_OPEN, self._track)
        opened, self._opened = self._opened, []
        for connection in opened:
            if getattr(connection, "is_active", False):
                await connection.close()
                if self._logger:
                    self._logger.debug("Closed %s left open by request", type(connection).__name__)


class EventMonitor:
    """Removes class-level event handlers attached during a request."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger
        self._snapshot: dict[tuple[type, str], list[Any]] = {}

    def on(self) -> None:
        self._snapshot = Event.snapshot()

    async def shutdown(self) -> None:
        removed = Event.restrict_to(self._snapshot)
        self._snapshot = {}
        if removed and self._logger:
            self._logger.debug("Removed %d class-level event handlers", removed)
