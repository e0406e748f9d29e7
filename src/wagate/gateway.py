"""Gateway runtime: the provider event loop and its collaborators."""

from __future__ import annotations

import asyncio
from contextlib import suppress

from loguru import logger

from wagate.bus import EventBus
from wagate.dispatch import Dispatcher
from wagate.groups import GroupResolver
from wagate.provider import MessageReceived, SessionEvent, SessionProvider
from wagate.relay import InboundRelay
from wagate.session import SessionLifecycle


class Gateway:
    """Consume provider events and expose the outbound operations.

    One task drains the event bus: lifecycle events update the session
    state, inbound messages are handed to the relay without waiting for
    delivery. Outbound operations run on the caller's task.
    """

    def __init__(
        self,
        provider: SessionProvider,
        bus: EventBus,
        lifecycle: SessionLifecycle,
        relay: InboundRelay,
    ) -> None:
        self.provider = provider
        self.bus = bus
        self.lifecycle = lifecycle
        self.relay = relay
        self.dispatcher = Dispatcher(provider, lifecycle)
        self.groups = GroupResolver(provider, lifecycle)
        self._consumer: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info("gateway.start relay_enabled={}", self.relay.enabled)
        self._consumer = asyncio.create_task(self._consume())
        self.lifecycle.start()

    async def stop(self) -> None:
        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            with suppress(asyncio.CancelledError):
                await consumer
        await self.lifecycle.close()
        await self.relay.aclose(grace_seconds=1.0)
        try:
            await self.provider.close()
        except Exception:
            logger.exception("gateway.provider.close_error")
        logger.info("gateway.stopped")

    async def _consume(self) -> None:
        while True:
            event = await self.bus.next()
            if event is None:
                continue
            try:
                self.handle_event(event)
            except Exception:
                logger.exception("gateway.event.error event={}", type(event).__name__)

    def handle_event(self, event: SessionEvent) -> None:
        if isinstance(event, MessageReceived):
            message = event.message
            logger.info(
                "gateway.inbound from={} type={} body={}",
                message.sender,
                message.message_type,
                message.body[:100],
            )
            self.relay.submit(message)
            return
        self.lifecycle.apply(event)
