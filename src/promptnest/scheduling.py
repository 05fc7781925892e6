"""
Timer scheduling for the reconciliation loop.

The loop only needs single-shot timers it can cancel, which is exactly what an
asyncio event loop's call_later() returns. Anything exposing
call_later(delay, callback) -> handle-with-cancel() works, so hosts driving
their own event loop (Qt timers, a test clock) can plug in an adapter.
"""
import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Single-shot timer source."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    With no explicit loop, the running loop is looked up on each call, so the
    scheduler can be constructed before the loop starts.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError(
                "AsyncioScheduler has no event loop: call it from a running loop "
                "(e.g. inside asyncio.run()) or pass loop=... explicitly"
            ) from None

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


def cancel_timer(handle: Optional[TimerHandle]) -> None:
    """Cancel a timer handle if there is one (None-safe)."""
    if handle is not None:
        handle.cancel()
