from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from wagate.provider import InboundEvent
from wagate.relay import InboundRelay, webhook_payload

HOOK_URL = "http://hooks.test/inbound"


def _event(n: int = 1) -> InboundEvent:
    return InboundEvent(
        sender="628111@c.us",
        recipient="628999@c.us",
        body=f"hello {n}",
        timestamp=1_700_000_000 + n,
        message_type="chat",
        message_id=f"false_628111@c.us_{n}",
    )


class BlockingHook:
    """Async webhook handler that holds every request until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0
        self.received: list[dict[str, object]] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.release.wait()
            self.received.append(json.loads(request.content))
            return httpx.Response(204)
        finally:
            self.active -= 1


def test_payload_shape() -> None:
    assert webhook_payload(_event()) == {
        "from": "628111@c.us",
        "to": "628999@c.us",
        "body": "hello 1",
        "timestamp": 1_700_000_001,
        "type": "chat",
        "id": "false_628111@c.us_1",
    }


@pytest.mark.asyncio
async def test_delivers_one_post_per_event() -> None:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        relay = InboundRelay(HOOK_URL, client=client)
        task = relay.submit(_event())

        assert task is not None
        assert await task is True
        await relay.aclose()

    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert str(requests[0].url) == HOOK_URL
    assert requests[0].headers["content-type"] == "application/json"
    assert json.loads(requests[0].content) == webhook_payload(_event())


@pytest.mark.asyncio
@pytest.mark.parametrize("url", [None, ""])
async def test_without_destination_relay_is_a_noop(url: str | None) -> None:
    relay = InboundRelay(url)

    assert relay.enabled is False
    assert relay.submit(_event()) is None
    await relay.aclose()


@pytest.mark.asyncio
async def test_error_status_counts_as_failure() -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda _req: httpx.Response(502))) as client:
        relay = InboundRelay(HOOK_URL, client=client)
        task = relay.submit(_event())

        assert task is not None
        assert await task is False


@pytest.mark.asyncio
async def test_transport_error_is_logged_not_raised() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        relay = InboundRelay(HOOK_URL, client=client)
        task = relay.submit(_event())

        assert task is not None
        assert await task is False


@pytest.mark.asyncio
async def test_slow_delivery_is_abandoned_after_timeout() -> None:
    hook = BlockingHook()
    async with httpx.AsyncClient(transport=httpx.MockTransport(hook)) as client:
        relay = InboundRelay(HOOK_URL, client=client, timeout_seconds=0.05)
        task = relay.submit(_event())

        assert task is not None
        assert await asyncio.wait_for(task, timeout=2) is False
        assert relay.pending == 0


@pytest.mark.asyncio
async def test_submit_returns_before_delivery_and_bounds_concurrency() -> None:
    hook = BlockingHook()
    async with httpx.AsyncClient(transport=httpx.MockTransport(hook)) as client:
        relay = InboundRelay(HOOK_URL, client=client, max_in_flight=2)
        tasks = [relay.submit(_event(n)) for n in range(5)]

        assert all(task is not None and not task.done() for task in tasks)
        assert relay.pending == 5

        for _ in range(20):
            await asyncio.sleep(0)
        assert hook.active == 2

        hook.release.set()
        results = await asyncio.gather(*(task for task in tasks if task is not None))

    assert results == [True] * 5
    assert hook.max_active == 2
    assert sorted(item["id"] for item in hook.received) == sorted(_event(n).message_id for n in range(5))


@pytest.mark.asyncio
async def test_backlog_beyond_limit_is_dropped() -> None:
    hook = BlockingHook()
    async with httpx.AsyncClient(transport=httpx.MockTransport(hook)) as client:
        relay = InboundRelay(HOOK_URL, client=client, max_in_flight=1, max_pending=2)
        first = relay.submit(_event(1))
        second = relay.submit(_event(2))
        third = relay.submit(_event(3))

        assert first is not None and second is not None
        assert third is None

        await relay.aclose()

        assert first.cancelled() and second.cancelled()
        assert relay.pending == 0
