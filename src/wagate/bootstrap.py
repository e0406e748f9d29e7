"""Gateway bootstrap helpers."""

from __future__ import annotations

from wagate.bus import EventBus
from wagate.config import Settings
from wagate.gateway import Gateway
from wagate.provider import ProviderFactory, load_provider_factory
from wagate.relay import InboundRelay
from wagate.session import ReconnectPolicy, SessionLifecycle


def build_gateway(settings: Settings, *, provider_factory: ProviderFactory | None = None) -> Gateway:
    """Wire a gateway from settings.

    `provider_factory` overrides `settings.provider`, mainly for tests.
    """

    factory = provider_factory or load_provider_factory(settings.provider)
    bus = EventBus()
    provider = factory(settings, bus)
    lifecycle = SessionLifecycle(
        provider,
        ReconnectPolicy(
            initial_delay_seconds=settings.reconnect_initial_delay_seconds,
            max_delay_seconds=settings.reconnect_max_delay_seconds,
        ),
    )
    relay = InboundRelay(
        settings.webhook_url,
        timeout_seconds=settings.webhook_timeout_seconds,
        max_in_flight=settings.webhook_max_in_flight,
        max_pending=settings.webhook_max_pending,
    )
    return Gateway(provider, bus, lifecycle, relay)
