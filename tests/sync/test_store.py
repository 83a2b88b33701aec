"""Tests for remote stores."""

import asyncio

import pytest

from stashsync.errors import VersionMismatch
from stashsync.sync.store import InMemoryRemoteStore, RemoteStore


class TestInMemoryRemoteStore:
    """Tests for InMemoryRemoteStore."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        """Test reading an absent code returns None."""
        assert await store.get("AB12CD") is None

    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        """Test a whole-record write is readable."""
        await store.put("AB12CD", {"state": {"a": 1}, "version": 1})
        assert await store.get("AB12CD") == {"state": {"a": 1}, "version": 1}

    @pytest.mark.asyncio
    async def test_records_are_copied(self, store):
        """Test callers cannot mutate stored records."""
        data = {"state": {"a": 1}, "version": 1}
        await store.put("AB12CD", data)
        data["state"]["a"] = 2

        read = await store.get("AB12CD")
        read["state"]["a"] = 3

        assert (await store.get("AB12CD"))["state"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_merge_updates_fields(self, store):
        """Test merge writes keep other fields."""
        await store.put("AB12CD", {"state": 1, "version": 5})
        await store.put("AB12CD", {"invalidated": True}, merge=True)
        assert await store.get("AB12CD") == {"state": 1, "version": 5, "invalidated": True}

    @pytest.mark.asyncio
    async def test_merge_on_missing_creates(self, store):
        """Test a merge write to an absent code creates the record."""
        await store.put("AB12CD", {"credential_hash": "h"}, merge=True)
        assert await store.get("AB12CD") == {"credential_hash": "h"}

    @pytest.mark.asyncio
    async def test_expected_version(self, store):
        """Test a conditional write only lands on the expected version."""
        await store.put("AB12CD", {"state": 1, "version": 1}, expected_version=0)
        await store.put("AB12CD", {"state": 2, "version": 2}, expected_version=1)

        with pytest.raises(VersionMismatch):
            await store.put("AB12CD", {"state": 3, "version": 3}, expected_version=1)

        assert (await store.get("AB12CD"))["state"] == 2

    @pytest.mark.asyncio
    async def test_subscribers_notified(self, store):
        """Test subscribers receive each write."""
        received = []
        store.subscribe("AB12CD", received.append)

        await store.put("AB12CD", {"state": 1, "version": 1})
        await store.put("OTHER1", {"state": 2, "version": 1})

        assert received == [{"state": 1, "version": 1}]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, store):
        """Test the disposer stops notifications."""
        received = []
        unsubscribe = store.subscribe("AB12CD", received.append)
        assert store.subscriber_count("AB12CD") == 1

        unsubscribe()
        unsubscribe()
        await store.put("AB12CD", {"state": 1, "version": 1})

        assert received == []
        assert store.subscriber_count("AB12CD") == 0

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_put(self, store):
        """Test subscriber exceptions are contained."""
        received = []

        def broken(record):
            raise RuntimeError("boom")

        store.subscribe("AB12CD", broken)
        store.subscribe("AB12CD", received.append)

        await store.put("AB12CD", {"state": 1, "version": 1})
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_transaction_serializes(self, store):
        """Test transactions on one code do not interleave."""
        order = []

        async def worker(name):
            async with store.transaction("AB12CD"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_counters(self, store):
        """Test get/put counters."""
        await store.put("AB12CD", {"state": 1, "version": 1})
        await store.get("AB12CD")
        assert store.put_count == 1
        assert store.get_count == 1


class TestRemoteStoreDefaults:
    """Tests for RemoteStore base behavior."""

    @pytest.mark.asyncio
    async def test_defaults(self):
        """Test stores without live updates or locking."""

        class DictStore(RemoteStore):
            def __init__(self):
                self.records = {}

            async def get(self, code):
                return self.records.get(code)

            async def put(self, code, data, merge=False, expected_version=None):
                self.records[code] = data

        base = DictStore()
        assert base.supports_subscriptions is False
        unsubscribe = base.subscribe("AB12CD", lambda record: None)
        unsubscribe()

        async with base.transaction("AB12CD"):
            await base.put("AB12CD", {"state": 1, "version": 1})
        assert await base.get("AB12CD") == {"state": 1, "version": 1}
