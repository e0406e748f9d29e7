"""In-process dry-run provider."""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable, Sequence

from loguru import logger

from wagate.bus import EventBus
from wagate.config import Settings
from wagate.provider import (
    Authenticated,
    Conversation,
    Disconnected,
    InboundEvent,
    MessageReceived,
    QrChallenge,
    Ready,
)


class InMemoryProvider:
    """Provider that never touches a chat network.

    Sends are recorded in `sent` instead of transmitted. `initialize()`
    authenticates and reports ready immediately unless `require_scan` is set,
    in which case it issues a QR challenge and waits for `complete_scan()`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        *,
        conversations: Iterable[Conversation] = (),
        own_address: str = "0@c.us",
        require_scan: bool = False,
    ) -> None:
        self.settings = settings
        self.bus = bus or EventBus()
        self.conversations = list(conversations)
        self.own_address = own_address
        self.require_scan = require_scan
        self.sent: list[tuple[str, str]] = []
        self.initialize_calls = 0
        self.closed = False

    async def initialize(self) -> None:
        self.initialize_calls += 1
        auth_dir = self.settings.auth_dir if self.settings is not None else None
        logger.info("memory.initialize calls={} auth_dir={}", self.initialize_calls, auth_dir)
        if self.require_scan:
            await self.bus.publish(QrChallenge(payload=f"dry-run-{uuid.uuid4().hex[:12]}"))
            return
        await self.complete_scan()

    async def complete_scan(self) -> None:
        await self.bus.publish(Authenticated())
        await self.bus.publish(Ready())

    async def send_message(self, address: str, body: str) -> None:
        self.sent.append((address, body))
        logger.info("memory.send to={} body={}", address, body[:100])

    async def list_conversations(self) -> Sequence[Conversation]:
        return list(self.conversations)

    async def close(self) -> None:
        self.closed = True

    async def receive(self, sender: str, body: str, *, message_type: str = "chat") -> InboundEvent:
        """Inject an inbound message as if it came from the network."""

        event = InboundEvent(
            sender=sender,
            recipient=self.own_address,
            body=body,
            timestamp=int(time.time()),
            message_type=message_type,
            message_id=f"false_{sender}_{uuid.uuid4().hex[:20].upper()}",
        )
        await self.bus.publish(MessageReceived(event))
        return event

    async def drop_connection(self, reason: str = "simulated") -> None:
        await self.bus.publish(Disconnected(reason=reason))
