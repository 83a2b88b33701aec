"""Tests for the pausable live-update subscription."""

import pytest

from stashsync.sync.store import RemoteStore
from stashsync.sync.subscription import PausableSubscription, PauseWindow

CODE = "AB12CD"


class PollOnlyStore(RemoteStore):
    """A store without live updates."""

    async def get(self, code):
        return None

    async def put(self, code, data, merge=False, expected_version=None):
        pass


class TestPausableSubscription:
    """Tests for PausableSubscription."""

    @pytest.mark.asyncio
    async def test_delivers_events(self, store):
        """Test events reach the handler while open."""
        received = []
        subscription = PausableSubscription(store, CODE, received.append).open()

        await store.put(CODE, {"state": 1, "version": 1})

        assert subscription.is_open
        assert received == [{"state": 1, "version": 1}]

    @pytest.mark.asyncio
    async def test_pause_withholds_events(self, store):
        """Test events during a pause are counted, not delivered."""
        received = []
        subscription = PausableSubscription(store, CODE, received.append).open()

        with subscription.paused() as window:
            assert subscription.is_paused
            await store.put(CODE, {"state": 1, "version": 1})
            await store.put(CODE, {"state": 2, "version": 2})

        assert received == []
        assert window.withheld_events == 2
        assert window.needs_pull
        assert not subscription.is_paused

    @pytest.mark.asyncio
    async def test_quiet_pause(self, store):
        """Test a pause without events needs no pull."""
        subscription = PausableSubscription(store, CODE, lambda record: None).open()
        with subscription.paused() as window:
            pass
        assert not window.needs_pull

    @pytest.mark.asyncio
    async def test_nested_pauses(self, store):
        """Test withheld events are reported when the outermost pause ends."""
        received = []
        subscription = PausableSubscription(store, CODE, received.append).open()

        subscription.pause()
        subscription.pause()
        await store.put(CODE, {"state": 1, "version": 1})

        assert subscription.resume() == 0
        assert subscription.is_paused
        assert subscription.resume() == 1
        assert subscription.resume() == 0

        await store.put(CODE, {"state": 2, "version": 2})
        assert received == [{"state": 2, "version": 2}]

    @pytest.mark.asyncio
    async def test_resume_after_exception(self, store):
        """Test the pause window closes when the block raises."""
        subscription = PausableSubscription(store, CODE, lambda record: None).open()
        with pytest.raises(RuntimeError):
            with subscription.paused():
                raise RuntimeError("push failed")
        assert not subscription.is_paused

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, store):
        """Test closing twice and events after close."""
        received = []
        subscription = PausableSubscription(store, CODE, received.append).open()

        subscription.close()
        subscription.close()
        await store.put(CODE, {"state": 1, "version": 1})

        assert received == []
        assert not subscription.is_open
        assert store.subscriber_count(CODE) == 0

    def test_cannot_reopen(self, store):
        """Test a closed subscription cannot be reopened."""
        subscription = PausableSubscription(store, CODE, lambda record: None)
        subscription.close()
        with pytest.raises(RuntimeError):
            subscription.open()

    def test_store_without_live_updates(self):
        """Test opening over a store without subscriptions is a no-op."""
        subscription = PausableSubscription(PollOnlyStore(), CODE, lambda record: None).open()
        assert not subscription.is_open
        with subscription.paused() as window:
            pass
        assert window == PauseWindow(withheld_events=0)
