"""Tests for the debounce timer."""

import asyncio

import pytest

from stashsync.sync.debounce import Debouncer


class TestDebouncer:
    """Tests for Debouncer."""

    @pytest.mark.asyncio
    async def test_fires_after_delay(self):
        """Test the callback runs once the quiet period passes."""
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(10, callback)
        debouncer.schedule()
        assert debouncer.pending

        await asyncio.sleep(0.05)

        assert calls == [1]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_burst_fires_once(self):
        """Test a burst of triggers yields one callback."""
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(30, callback)
        for _ in range(10):
            debouncer.schedule()
            await asyncio.sleep(0.005)

        await asyncio.sleep(0.1)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancelling the pending timer."""
        calls = []

        async def callback():
            calls.append(1)

        debouncer = Debouncer(10, callback)
        assert debouncer.cancel() is False

        debouncer.schedule()
        assert debouncer.cancel() is True

        await asyncio.sleep(0.05)
        assert calls == []

    @pytest.mark.asyncio
    async def test_running_callback_not_cancelled(self):
        """Test a new schedule never cancels a callback already running."""
        started = asyncio.Event()
        finished = []

        async def callback():
            started.set()
            await asyncio.sleep(0.03)
            finished.append(1)

        debouncer = Debouncer(5, callback)
        debouncer.schedule()
        await started.wait()

        debouncer.schedule()
        debouncer.cancel()
        await debouncer.wait_idle()

        assert finished == [1]

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self):
        """Test a failing callback does not break the debouncer."""
        calls = []

        async def callback():
            calls.append(1)
            raise RuntimeError("boom")

        debouncer = Debouncer(5, callback)
        debouncer.schedule()
        await asyncio.sleep(0.03)
        debouncer.schedule()
        await asyncio.sleep(0.03)

        assert calls == [1, 1]
