"""Async event bus between the session provider and the gateway."""

from __future__ import annotations

import asyncio

from wagate.provider import SessionEvent


class EventBus:
    """In-memory queue carrying provider events to the gateway loop."""

    def __init__(self) -> None:
        self._events: asyncio.Queue[SessionEvent] = asyncio.Queue()

    async def publish(self, event: SessionEvent) -> None:
        await self._events.put(event)

    def publish_nowait(self, event: SessionEvent) -> None:
        """Publish from synchronous provider callbacks."""
        self._events.put_nowait(event)

    async def next(self, timeout_seconds: float | None = None) -> SessionEvent | None:
        if timeout_seconds is None:
            return await self._events.get()
        try:
            return await asyncio.wait_for(self._events.get(), timeout=timeout_seconds)
        except TimeoutError:
            return None

    def pending(self) -> int:
        return self._events.qsize()
