"""Keyed debounce timers.

A :class:`Debouncer` collapses bursts of calls into one delayed callback
per key.  Scheduling again within the window stops the pending timer and
starts a fresh one, so only the most recent callback ever runs.

Timers come from an injected ``set_timer(delay_seconds, callback)``
factory (``App.set_timer`` in Textual, or :func:`asyncio_set_timer`).
The returned handle must have a ``.stop()`` method.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from ..log import logger

# Type alias for the handle returned by ``set_timer``.
TimerHandle = Any
SetTimer = Callable[[float, Callable[[], object]], TimerHandle]


class _LoopTimer:
    """Adapt an asyncio ``TimerHandle`` to the ``.stop()`` protocol."""

    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def stop(self) -> None:
        self._handle.cancel()


def asyncio_set_timer(delay: float, callback: Callable[[], object]) -> _LoopTimer:
    """``set_timer`` backed by the running asyncio event loop."""
    loop = asyncio.get_running_loop()
    return _LoopTimer(loop.call_later(delay, callback))


class Debouncer:
    """Run at most one pending callback per key after *delay_ms* of quiet."""

    def __init__(self, set_timer: SetTimer, delay_ms: int) -> None:
        self._set_timer = set_timer
        self.delay_ms = delay_ms
        self._timers: dict[str, TimerHandle] = {}

    def schedule(self, key: str, callback: Callable[[], object]) -> None:
        """(Re)start the timer for *key*; *callback* runs when it fires."""
        self.cancel(key)
        timer: TimerHandle = None

        def fire() -> None:
            # A superseded timer that slipped past stop() must not run
            if self._timers.get(key) is not timer:
                return
            del self._timers[key]
            try:
                callback()
            except Exception:
                logger.debug("debounced callback for %s failed", key, exc_info=True)

        timer = self._set_timer(self.delay_ms / 1000, fire)
        self._timers[key] = timer

    def cancel(self, key: str) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.stop()
        return True

    def cancel_all(self) -> int:
        count = len(self._timers)
        for key in list(self._timers):
            self.cancel(key)
        return count

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    @property
    def pending(self) -> list[str]:
        return list(self._timers)
