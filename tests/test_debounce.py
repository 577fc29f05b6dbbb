"""Tests for keyed debounce timers."""

from __future__ import annotations

import asyncio

import pytest

from waymark.core.debounce import Debouncer, asyncio_set_timer


class TestDebouncer:
    def test_schedule_uses_delay_in_seconds(self, timers):
        debouncer = Debouncer(timers, 250)
        debouncer.schedule("a", lambda: None)
        assert timers.timers[0].delay == 0.25
        assert debouncer.is_pending("a")

    def test_burst_collapses_to_last_callback(self, timers):
        calls = []
        debouncer = Debouncer(timers, 100)
        for i in range(5):
            debouncer.schedule("a", lambda i=i: calls.append(i))
        assert len(timers.active) == 1
        timers.fire_all()
        assert calls == [4]
        assert not debouncer.is_pending("a")

    def test_keys_are_independent(self, timers):
        calls = []
        debouncer = Debouncer(timers, 100)
        debouncer.schedule("a", lambda: calls.append("a"))
        debouncer.schedule("b", lambda: calls.append("b"))
        assert sorted(debouncer.pending) == ["a", "b"]
        timers.fire_all()
        assert sorted(calls) == ["a", "b"]

    def test_cancel(self, timers):
        calls = []
        debouncer = Debouncer(timers, 100)
        debouncer.schedule("a", lambda: calls.append("a"))
        assert debouncer.cancel("a") is True
        assert debouncer.cancel("a") is False
        timers.fire_all()
        assert calls == []

    def test_superseded_timer_does_not_run(self, timers):
        calls = []
        debouncer = Debouncer(timers, 100)
        debouncer.schedule("a", lambda: calls.append("old"))
        stale = timers.timers[0]
        debouncer.schedule("a", lambda: calls.append("new"))
        # A host that fires a stopped timer anyway
        stale.callback()
        assert calls == []
        timers.fire_all()
        assert calls == ["new"]

    def test_cancel_all(self, timers):
        debouncer = Debouncer(timers, 100)
        debouncer.schedule("a", lambda: None)
        debouncer.schedule("b", lambda: None)
        assert debouncer.cancel_all() == 2
        assert timers.active == []

    def test_callback_error_is_contained(self, timers):
        debouncer = Debouncer(timers, 100)

        def boom():
            raise RuntimeError("fail")

        debouncer.schedule("a", boom)
        timers.fire_all()
        assert not debouncer.is_pending("a")


class TestAsyncioTimer:
    @pytest.mark.asyncio
    async def test_fires_on_loop(self):
        fired = asyncio.Event()
        debouncer = Debouncer(asyncio_set_timer, 10)
        debouncer.schedule("a", fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2)

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self):
        calls = []
        debouncer = Debouncer(asyncio_set_timer, 10)
        debouncer.schedule("a", lambda: calls.append(1))
        debouncer.cancel("a")
        await asyncio.sleep(0.05)
        assert calls == []
