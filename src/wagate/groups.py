"""Group lookup by human-readable name."""

from __future__ import annotations

from loguru import logger

from wagate.address import Address, AddressKind
from wagate.errors import GroupNotFoundError, NotReadyError, ProviderError
from wagate.provider import Conversation, SessionProvider
from wagate.session import SessionLifecycle


class GroupResolver:
    """Resolve group names against the provider's live conversation list.

    Nothing is cached: group names and membership change, so every lookup
    queries the provider. Names match case-insensitively and exactly. When
    several groups share a name the first one listed wins.
    """

    def __init__(self, provider: SessionProvider, lifecycle: SessionLifecycle) -> None:
        self._provider = provider
        self._lifecycle = lifecycle

    async def find(self, name: str) -> Conversation:
        if not self._lifecycle.is_ready:
            raise NotReadyError(self._lifecycle.state)
        wanted = name.lower()
        try:
            conversations = await self._provider.list_conversations()
        except Exception as exc:
            logger.warning("groups.list_failed error={}", exc)
            raise ProviderError("list conversations", exc) from exc
        for conversation in conversations:
            if conversation.is_group and conversation.name.lower() == wanted:
                logger.debug("groups.resolved name={} id={}", name, conversation.id)
                return conversation
        logger.info("groups.not_found name={} scanned={}", name, len(conversations))
        raise GroupNotFoundError(name)

    async def resolve(self, name: str) -> Address:
        conversation = await self.find(name)
        return Address(conversation.id, AddressKind.GROUP)
