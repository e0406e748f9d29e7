"""Bundled session providers."""

from wagate.providers.memory import InMemoryProvider

__all__ = ["InMemoryProvider"]
