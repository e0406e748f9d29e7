"""Session lifecycle state machine."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from enum import StrEnum

from blinker import Signal
from loguru import logger

from wagate.provider import (
    AuthFailure,
    Authenticated,
    Disconnected,
    LifecycleEvent,
    QrChallenge,
    Ready,
    SessionProvider,
)


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    AWAITING_AUTHENTICATION = "awaiting_authentication"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff between re-initializations.

    `initial_delay_seconds=0` reconnects immediately on every disconnect.
    """

    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0

    def delay_for(self, attempt: int) -> float:
        if self.initial_delay_seconds <= 0:
            return 0.0
        return min(self.initial_delay_seconds * (2**attempt), self.max_delay_seconds)


class SessionLifecycle:
    """Owns the single session state and reacts to provider lifecycle events.

    This is the only writer of the session state. Every transition is
    published on `state_changed` with `previous` and `current` keyword
    arguments.
    """

    def __init__(self, provider: SessionProvider, policy: ReconnectPolicy | None = None) -> None:
        self._provider = provider
        self._policy = policy or ReconnectPolicy()
        self._state = SessionState.UNINITIALIZED
        self._consecutive_disconnects = 0
        self._init_task: asyncio.Task[None] | None = None
        self._init_lock = asyncio.Lock()
        self.state_changed = Signal("wagate.session.state_changed")
        self.qr_payload: str | None = None
        self.last_auth_failure: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def initializing(self) -> bool:
        """True while an initialization is scheduled or running."""
        return self._init_task is not None and not self._init_task.done()

    def start(self) -> None:
        """Run the first initialization in the background.

        A provider may block in `initialize()` until the operator scans the QR
        challenge, so callers must not wait for it. Failures are handled like
        a disconnect.
        """
        self._launch(0.0, reconnect=False)

    async def initialize(self) -> None:
        """Invoke the provider's initialization entry point."""
        logger.info("session.initialize state={}", self._state)
        await self._provider.initialize()

    def apply(self, event: LifecycleEvent) -> None:
        """Apply one provider lifecycle event to the state machine."""

        if isinstance(event, AuthFailure):
            self.last_auth_failure = event.reason
            logger.error("session.auth_failure reason={}", event.reason)
            self._transition(SessionState.UNINITIALIZED)
            return

        if isinstance(event, Disconnected):
            logger.warning("session.disconnected reason={}", event.reason or "<none>")
            self._transition(SessionState.DISCONNECTED)
            self._schedule_reconnect()
            return

        if isinstance(event, QrChallenge):
            # The provider refreshes the challenge periodically while waiting for a scan.
            if self._state in (SessionState.UNINITIALIZED, SessionState.AWAITING_AUTHENTICATION):
                self.qr_payload = event.payload
                logger.info("session.qr payload={}", event.payload)
                self._transition(SessionState.AWAITING_AUTHENTICATION)
                return
        elif isinstance(event, Authenticated):
            # Restored sessions authenticate without a challenge.
            if self._state in (SessionState.UNINITIALIZED, SessionState.AWAITING_AUTHENTICATION):
                self.qr_payload = None
                self._transition(SessionState.AUTHENTICATED)
                return
        elif isinstance(event, Ready):
            if self._state is SessionState.AUTHENTICATED:
                self._consecutive_disconnects = 0
                self._transition(SessionState.READY)
                return

        logger.warning("session.event.ignored event={} state={}", type(event).__name__, self._state)

    async def close(self) -> None:
        task = self._init_task
        self._init_task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def _transition(self, current: SessionState) -> None:
        previous = self._state
        if previous is current:
            return
        self._state = current
        logger.info("session.transition from={} to={}", previous, current)
        self.state_changed.send(self, previous=previous, current=current)

    def _schedule_reconnect(self) -> None:
        delay = self._policy.delay_for(self._consecutive_disconnects)
        self._consecutive_disconnects += 1
        logger.info("session.reconnect.scheduled delay={}s attempt={}", delay, self._consecutive_disconnects)
        self._launch(delay, reconnect=True)

    def _launch(self, delay: float, *, reconnect: bool) -> None:
        # A newer request supersedes a pending or running initialization.
        previous = self._init_task
        if previous is not None and previous is not asyncio.current_task() and not previous.done():
            previous.cancel()
        self._init_task = asyncio.get_running_loop().create_task(self._run_initialize(delay, reconnect=reconnect))

    async def _run_initialize(self, delay: float, *, reconnect: bool) -> None:
        try:
            if delay > 0:
                await asyncio.sleep(delay)
            if reconnect:
                if self._state is not SessionState.DISCONNECTED:
                    return
                self._transition(SessionState.UNINITIALIZED)
            try:
                async with self._init_lock:
                    await self.initialize()
            except Exception as exc:
                logger.exception("session.initialize.error")
                self.apply(Disconnected(reason=f"initialize failed: {exc}"))
        finally:
            if self._init_task is asyncio.current_task():
                self._init_task = None
