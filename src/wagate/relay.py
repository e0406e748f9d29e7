"""Best-effort webhook relay for inbound messages."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Any

import httpx
from loguru import logger

from wagate.provider import InboundEvent


def webhook_payload(event: InboundEvent) -> dict[str, Any]:
    return {
        "from": event.sender,
        "to": event.recipient,
        "body": event.body,
        "timestamp": event.timestamp,
        "type": event.message_type,
        "id": event.message_id,
    }


class InboundRelay:
    """Forward inbound messages to the configured webhook without blocking intake.

    `submit` schedules one delivery attempt and returns immediately. At most
    `max_in_flight` requests run at once, each bounded by `timeout_seconds`.
    Once `max_pending` deliveries are outstanding further events are dropped
    and logged. Failures are logged and never retried.
    """

    def __init__(
        self,
        url: str | None,
        *,
        timeout_seconds: float = 5.0,
        max_in_flight: int = 4,
        max_pending: int = 256,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url or None
        self._timeout_seconds = timeout_seconds
        self._slots = asyncio.Semaphore(max(1, max_in_flight))
        self._max_pending = max(1, max_pending)
        self._client = client
        self._owns_client = client is None
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def enabled(self) -> bool:
        return self.url is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, event: InboundEvent) -> asyncio.Task[bool] | None:
        """Schedule delivery of one event; returns the detached task if any."""

        if self.url is None:
            return None
        if len(self._tasks) >= self._max_pending:
            logger.warning("relay.dropped id={} pending={}", event.message_id, len(self._tasks))
            return None
        task = asyncio.get_running_loop().create_task(self._deliver(self.url, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, url: str, event: InboundEvent) -> bool:
        async with self._slots:
            try:
                async with asyncio.timeout(self._timeout_seconds):
                    response = await self._http().post(url, json=webhook_payload(event))
            except TimeoutError:
                logger.warning(
                    "relay.timeout id={} url={} after={}s", event.message_id, url, self._timeout_seconds
                )
                return False
            except httpx.HTTPError as exc:
                logger.warning("relay.error id={} url={} error={}", event.message_id, url, exc)
                return False
            except Exception:
                logger.exception("relay.error id={} url={}", event.message_id, url)
                return False
        if response.is_error:
            logger.warning("relay.rejected id={} url={} status={}", event.message_id, url, response.status_code)
            return False
        logger.debug("relay.delivered id={} status={}", event.message_id, response.status_code)
        return True

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._client

    async def aclose(self, *, grace_seconds: float = 0.0) -> None:
        """Wait up to `grace_seconds` for in-flight deliveries, cancel the rest."""

        tasks = list(self._tasks)
        if tasks and grace_seconds > 0:
            await asyncio.wait(tasks, timeout=grace_seconds)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
