"""Remote shared store interface and an in-process implementation.

A store keeps one whole-record document per access code. It has no notion of
versions or conflicts; those live in ``SharedRecordClient``.
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Optional

import structlog

from stashsync.errors import VersionMismatch

logger = structlog.get_logger(__name__)

OnChange = Callable[[Optional[dict]], None]
Unsubscribe = Callable[[], None]


class RemoteStore(ABC):
    """Durable keyed storage with get/put and optional live updates."""

    supports_subscriptions: bool = False

    @abstractmethod
    async def get(self, code: str) -> Optional[dict]:
        """Read the record stored under ``code``; ``None`` if absent."""

    @abstractmethod
    async def put(
        self,
        code: str,
        data: dict,
        merge: bool = False,
        expected_version: Optional[int] = None,
    ) -> None:
        """Write a record.

        Args:
            code: Access code.
            data: Whole record, or the fields to update when ``merge`` is set.
            merge: Update only the given top-level fields.
            expected_version: Refuse the write unless the stored version
                (0 when absent) equals this value.

        Raises:
            VersionMismatch: If ``expected_version`` does not hold.
        """

    def subscribe(self, code: str, on_change: OnChange) -> Unsubscribe:
        """Register for change notifications on ``code``.

        Stores without live updates return a disposer that does nothing.
        """
        return lambda: None

    @asynccontextmanager
    async def transaction(self, code: str) -> AsyncIterator[None]:
        """Scope in which a read-compare-write on ``code`` runs.

        The base implementation provides no isolation.
        """
        yield


class InMemoryRemoteStore(RemoteStore):
    """Shared store living in the current process.

    Several engines pointing at one instance behave like devices sharing a
    remote document database. Records are deep-copied on the way in and out,
    subscribers are notified synchronously after every write, and
    ``transaction`` serializes read-compare-write sequences per code.
    """

    supports_subscriptions = True

    def __init__(self):
        """Initialize an empty store."""
        self._records: dict[str, dict] = {}
        self._subscribers: dict[str, list[OnChange]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.get_count = 0
        self.put_count = 0

    async def get(self, code: str) -> Optional[dict]:
        self.get_count += 1
        record = self._records.get(code)
        return copy.deepcopy(record) if record is not None else None

    async def put(
        self,
        code: str,
        data: dict,
        merge: bool = False,
        expected_version: Optional[int] = None,
    ) -> None:
        self.put_count += 1
        if expected_version is not None:
            stored = self._records.get(code) or {}
            if stored.get("version", 0) != expected_version:
                raise VersionMismatch(code, expected_version)
        if merge and code in self._records:
            self._records[code].update(copy.deepcopy(data))
        else:
            self._records[code] = copy.deepcopy(data)
        self._notify(code)

    def subscribe(self, code: str, on_change: OnChange) -> Unsubscribe:
        self._subscribers.setdefault(code, []).append(on_change)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(code, [])
            if on_change in handlers:
                handlers.remove(on_change)

        return unsubscribe

    def subscriber_count(self, code: str) -> int:
        """Number of live subscriptions on ``code``."""
        return len(self._subscribers.get(code, []))

    @asynccontextmanager
    async def transaction(self, code: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(code, asyncio.Lock())
        async with lock:
            yield

    def _notify(self, code: str) -> None:
        record = self._records.get(code)
        for handler in list(self._subscribers.get(code, [])):
            try:
                handler(copy.deepcopy(record))
            except Exception as e:
                logger.error(
                    "Subscriber failed handling change",
                    access_code=code,
                    error=str(e),
                )
