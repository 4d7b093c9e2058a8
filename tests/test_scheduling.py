"""Tests for the debounce and periodic timer abstractions."""

import asyncio

import pytest

from cv_autofill.scheduling import Debouncer, PeriodicTimer


class TestDebouncer:
    """Test cases for Debouncer."""

    @pytest.mark.asyncio
    async def test_burst_of_signals_fires_once(self):
        calls = []

        async def callback():
            calls.append(asyncio.get_running_loop().time())

        debouncer = Debouncer(0.05, callback)
        for _ in range(10):
            debouncer.signal()
            await asyncio.sleep(0.005)

        assert debouncer.pending
        await asyncio.sleep(0.15)
        await debouncer.drain()

        assert len(calls) == 1
        assert debouncer.fire_count == 1
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_separated_signals_fire_separately(self):
        calls = []

        async def callback():
            calls.append(True)

        debouncer = Debouncer(0.02, callback)
        debouncer.signal()
        await asyncio.sleep(0.08)
        debouncer.signal()
        await asyncio.sleep(0.08)
        await debouncer.drain()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self):
        calls = []

        async def callback():
            calls.append(True)

        debouncer = Debouncer(0.02, callback)
        debouncer.signal()
        debouncer.cancel()
        await asyncio.sleep(0.06)

        assert calls == []
        assert debouncer.fire_count == 0

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self):
        async def callback():
            raise RuntimeError("scan failed")

        debouncer = Debouncer(0.01, callback)
        debouncer.signal()
        await asyncio.sleep(0.05)
        await debouncer.drain()

        assert debouncer.fire_count == 1


class TestPeriodicTimer:
    """Test cases for PeriodicTimer."""

    @pytest.mark.asyncio
    async def test_runs_until_stopped(self):
        calls = []

        async def callback():
            calls.append(True)

        timer = PeriodicTimer(0.02, callback)
        timer.start()
        timer.start()
        await asyncio.sleep(0.11)
        await timer.stop()
        count = len(calls)
        await asyncio.sleep(0.05)

        assert count >= 2
        assert len(calls) == count
        assert not timer.running

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_timer(self):
        calls = []

        async def callback():
            calls.append(True)
            raise RuntimeError("boom")

        timer = PeriodicTimer(0.01, callback)
        timer.start()
        await asyncio.sleep(0.08)
        await timer.stop()

        assert len(calls) >= 2
