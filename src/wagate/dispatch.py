"""Outbound dispatch and broadcast."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias

from loguru import logger

from wagate.address import Address, normalize
from wagate.errors import DispatchError, GatewayError, InvalidAddressError, NotReadyError, ProviderSendError
from wagate.provider import SessionProvider
from wagate.session import SessionLifecycle


class Dispatcher:
    """Gate outbound sends on session readiness and serialize them.

    The provider's behavior under concurrent sends is undefined, so at most
    one send is outstanding at a time. A send already handed to the provider
    runs to completion even if the caller is cancelled.
    """

    def __init__(self, provider: SessionProvider, lifecycle: SessionLifecycle) -> None:
        self._provider = provider
        self._lifecycle = lifecycle
        self._lock = asyncio.Lock()

    async def dispatch(self, target: Address, body: str) -> Address:
        if not self._lifecycle.is_ready:
            raise NotReadyError(self._lifecycle.state)
        send = asyncio.get_running_loop().create_task(self._send_serialized(target, body))
        try:
            return await asyncio.shield(send)
        except asyncio.CancelledError:
            send.add_done_callback(_log_abandoned_send)
            raise

    async def _send_serialized(self, target: Address, body: str) -> Address:
        async with self._lock:
            # The session may have dropped while waiting for the previous send.
            if not self._lifecycle.is_ready:
                raise NotReadyError(self._lifecycle.state)
            try:
                await self._provider.send_message(target.value, body)
            except Exception as exc:
                logger.warning("dispatch.failed to={} error={}", target, exc)
                raise ProviderSendError(exc) from exc
        logger.info("dispatch.sent to={}", target)
        return target


def _log_abandoned_send(task: asyncio.Task[Address]) -> None:
    # Nobody awaits the send once its caller is cancelled.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("dispatch.abandoned error={}", exc)


class Outcome(StrEnum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class BroadcastEntry:
    """Outcome of one broadcast recipient."""

    target: str
    outcome: Outcome
    error: GatewayError | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"to": self.target, "status": self.outcome.value}
        if self.error is not None:
            data["error"] = self.error.code
            data["message"] = str(self.error)
        return data


BroadcastResult: TypeAlias = list[BroadcastEntry]


async def broadcast(dispatcher: Dispatcher, raw_targets: Sequence[object], body: str) -> BroadcastResult:
    """Send `body` to every target in order, recording one entry per target.

    A failing recipient never stops the batch; failed entries are not retried.
    """

    results: BroadcastResult = []
    for raw in raw_targets:
        try:
            address = normalize(raw)
        except InvalidAddressError as exc:
            results.append(BroadcastEntry(target=str(raw), outcome=Outcome.FAILED, error=exc))
            continue
        try:
            await dispatcher.dispatch(address, body)
        except DispatchError as exc:
            results.append(BroadcastEntry(target=address.value, outcome=Outcome.FAILED, error=exc))
            continue
        results.append(BroadcastEntry(target=address.value, outcome=Outcome.SENT))

    failed = sum(1 for entry in results if entry.outcome is Outcome.FAILED)
    logger.info("broadcast.done total={} failed={}", len(results), failed)
    return results
