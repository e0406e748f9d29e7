from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from wagate.bus import EventBus
from wagate.provider import Authenticated, Conversation, Ready
from wagate.providers.memory import InMemoryProvider
from wagate.session import ReconnectPolicy, SessionLifecycle

CONVERSATIONS = [
    Conversation(id="628999@c.us", is_group=False, name="Team Alpha"),
    Conversation(id="120363001@g.us", is_group=True, name="Team Alphabet"),
    Conversation(id="120363002@g.us", is_group=True, name="team alpha"),
    Conversation(id="120363003@g.us", is_group=True, name="TEAM ALPHA"),
]


class FlakyProvider(InMemoryProvider):
    """Memory provider whose sends fail for selected addresses."""

    def __init__(self, *args: Any, fail_for: set[str] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fail_for = fail_for or set()

    async def send_message(self, address: str, body: str) -> None:
        if address in self.fail_for:
            raise RuntimeError(f"rejected by network: {address}")
        await super().send_message(address, body)


class BlockingInitProvider(InMemoryProvider):
    """Memory provider whose `initialize` waits, like a session waiting for a QR scan."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.active = 0
        self.max_active = 0
        self.cancelled = 0

    async def initialize(self) -> None:
        self.initialize_calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1


@pytest.fixture
def blocking_provider() -> BlockingInitProvider:
    return BlockingInitProvider(bus=EventBus())


@pytest.fixture
def provider() -> FlakyProvider:
    return FlakyProvider(bus=EventBus(), conversations=CONVERSATIONS)


@pytest.fixture
def lifecycle(provider: FlakyProvider) -> SessionLifecycle:
    return SessionLifecycle(provider, ReconnectPolicy(initial_delay_seconds=0))


@pytest.fixture
def ready_lifecycle(lifecycle: SessionLifecycle) -> SessionLifecycle:
    lifecycle.apply(Authenticated())
    lifecycle.apply(Ready())
    return lifecycle


async def _wait_until(predicate: Callable[[], bool], timeout_seconds: float = 2.0) -> None:
    async with asyncio.timeout(timeout_seconds):
        while not predicate():
            await asyncio.sleep(0.005)


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    return _wait_until
