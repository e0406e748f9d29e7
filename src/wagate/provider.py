"""Session provider boundary and the events it emits."""

from __future__ import annotations

import importlib
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

from wagate.errors import ConfigurationError

if TYPE_CHECKING:
    from wagate.bus import EventBus
    from wagate.config import Settings


@dataclass(frozen=True)
class Conversation:
    """Snapshot of one conversation as listed by the provider."""

    id: str
    is_group: bool
    name: str


@dataclass(frozen=True)
class InboundEvent:
    """Message received from the chat network."""

    sender: str
    recipient: str
    body: str
    timestamp: int
    message_type: str = "chat"
    message_id: str | None = None


@dataclass(frozen=True)
class QrChallenge:
    payload: str


@dataclass(frozen=True)
class Authenticated:
    pass


@dataclass(frozen=True)
class AuthFailure:
    reason: str


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class MessageReceived:
    message: InboundEvent
    raw: Any = field(default=None, compare=False, repr=False)


LifecycleEvent: TypeAlias = QrChallenge | Authenticated | AuthFailure | Ready | Disconnected
SessionEvent: TypeAlias = LifecycleEvent | MessageReceived


@runtime_checkable
class SessionProvider(Protocol):
    """Minimal async contract for chat-network session providers.

    Providers report lifecycle changes and inbound messages by publishing
    `SessionEvent` values onto the bus they were constructed with.
    """

    async def initialize(self) -> None: ...

    async def send_message(self, address: str, body: str) -> None: ...

    async def list_conversations(self) -> Sequence[Conversation]: ...

    async def close(self) -> None: ...


ProviderFactory: TypeAlias = Callable[["Settings", "EventBus"], SessionProvider]


def load_provider_factory(path: str) -> ProviderFactory:
    """Resolve a `package.module:attribute` path to a provider factory."""

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"provider must look like 'package.module:factory', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import provider module {module_name!r}: {exc}") from exc
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ConfigurationError(f"provider factory {attr!r} not found in {module_name!r}")
    return factory
