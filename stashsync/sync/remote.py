"""Version/CAS push-pull core.

``SharedRecordClient`` is the only writer of the shared record. A push is a
compare-and-swap on the record's version: it succeeds only if the writer has
observed the current version (or forces the write). Every accepted write gets
a version strictly greater than anything stored or observed before.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, Optional, TypeVar

import structlog

from stashsync.errors import (
    CorruptRemoteState,
    RemoteUnavailable,
    SessionInvalidated,
    StaleWrite,
    SyncError,
    VersionMismatch,
)

from .change_detector import normalize_state
from .models import PushOutcome, PushResult, RemoteSnapshot, SharedRecord
from .store import RemoteStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class SharedRecordClient:
    """Reads and conditionally writes the shared record for an access code."""

    def __init__(
        self,
        store: RemoteStore,
        timeout_seconds: float = 10.0,
        clock: Clock = wall_clock_ms,
    ):
        """Initialize the client.

        Args:
            store: Remote shared store.
            timeout_seconds: Upper bound for each store call.
            clock: Source of candidate versions.
        """
        self.store = store
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def _call(self, code: str, operation: str, call: Awaitable[T]) -> T:
        """Run a store call under the timeout, classifying failures."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise RemoteUnavailable(
                f"{operation} on {code} timed out after {self.timeout_seconds}s"
            ) from e
        except SyncError:
            raise
        except Exception as e:
            raise RemoteUnavailable(f"{operation} on {code} failed: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    async def fetch_record(self, code: str) -> Optional[SharedRecord]:
        """Read and validate the shared record.

        Returns:
            The record, or None if no record exists for ``code``.

        Raises:
            RemoteUnavailable: On transport failure or timeout.
            CorruptRemoteState: If the record has the wrong shape.
        """
        raw = await self._call(code, "get", self.store.get(code))
        if raw is None:
            return None
        try:
            return SharedRecord.from_dict(raw)
        except ValueError as e:
            raise CorruptRemoteState(code, str(e)) from e

    async def exists(self, code: str) -> bool:
        """Check if any record, valid or not, is stored under ``code``."""
        return await self._call(code, "get", self.store.get(code)) is not None

    async def pull(self, code: str) -> Optional[RemoteSnapshot]:
        """Read the shared state and version.

        Returns:
            The remote snapshot, or None when no record exists.

        Raises:
            SessionInvalidated: If the access code was revoked.
            RemoteUnavailable: On transport failure or timeout.
            CorruptRemoteState: If the record has the wrong shape.
        """
        record = await self.fetch_record(code)
        if record is None:
            return None
        if record.invalidated:
            raise SessionInvalidated(code)
        return RemoteSnapshot(state=record.state, version=record.version)

    # =========================================================================
    # Writes
    # =========================================================================

    async def push(
        self,
        code: str,
        local_state: Any,
        known_version: int,
        force: bool = False,
        credential_hash: Optional[str] = None,
    ) -> PushResult:
        """Conditionally replace the shared state.

        Non-forced writes also ask the store to refuse the put if the version
        read here has moved, for stores that cannot lock.

        Args:
            code: Access code.
            local_state: Whole state to write.
            known_version: Highest version the writer has observed.
            force: Skip the version check (administrator overwrite).
            credential_hash: Administrator hash to store with the record;
                the existing hash is kept when omitted.

        Returns:
            ACCEPTED with the new version, REJECTED with the current version
            and remote snapshot, or ERROR on transport failure. An ERROR does
            not mean the write did not apply.

        Raises:
            SessionInvalidated: If the access code was revoked.
            CorruptRemoteState: If the existing record has the wrong shape.
        """
        try:
            async with self.store.transaction(code):
                record = await self.fetch_record(code)
                if record is not None and record.invalidated:
                    raise SessionInvalidated(code)

                current_version = record.version if record else 0

                if not force and current_version > known_version:
                    logger.info(
                        "Push rejected: stale known version",
                        access_code=code,
                        known_version=known_version,
                        current_version=current_version,
                    )
                    return PushResult(
                        outcome=PushOutcome.REJECTED,
                        current_version=current_version,
                        remote=RemoteSnapshot(state=record.state, version=record.version),
                    )

                new_version = max(self._clock(), current_version + 1, known_version + 1)
                new_record = SharedRecord(
                    state=normalize_state(local_state),
                    version=new_version,
                    credential_hash=credential_hash or (record.credential_hash if record else None),
                    updated_at=datetime.now(UTC),
                )
                await self._call(
                    code,
                    "put",
                    self.store.put(
                        code,
                        new_record.to_dict(),
                        expected_version=None if force else current_version,
                    ),
                )

        except VersionMismatch:
            return await self._rejected_after_race(code, known_version)
        except RemoteUnavailable as e:
            logger.warning(
                "Push failed",
                access_code=code,
                known_version=known_version,
                force=force,
                error=str(e),
            )
            return PushResult(outcome=PushOutcome.ERROR, error=str(e))

        logger.info(
            "Push accepted",
            access_code=code,
            previous_version=current_version,
            new_version=new_version,
            force=force,
        )
        return PushResult(
            outcome=PushOutcome.ACCEPTED,
            new_version=new_version,
            current_version=current_version,
        )

    async def _rejected_after_race(self, code: str, known_version: int) -> PushResult:
        """Turn a store-side version refusal into a REJECTED result."""
        try:
            record = await self.fetch_record(code)
        except RemoteUnavailable as e:
            return PushResult(outcome=PushOutcome.ERROR, error=str(e))
        if record is None:
            return PushResult(outcome=PushOutcome.ERROR, error=f"Shared record {code} disappeared")
        if record.invalidated:
            raise SessionInvalidated(code)

        logger.info(
            "Push rejected: record changed during write",
            access_code=code,
            known_version=known_version,
            current_version=record.version,
        )
        return PushResult(
            outcome=PushOutcome.REJECTED,
            current_version=record.version,
            remote=RemoteSnapshot(state=record.state, version=record.version),
        )

    async def push_or_raise(
        self,
        code: str,
        local_state: Any,
        known_version: int,
        force: bool = False,
        credential_hash: Optional[str] = None,
    ) -> int:
        """Push, turning non-accepted outcomes into exceptions.

        Returns:
            The new version.

        Raises:
            StaleWrite: If the write was rejected.
            RemoteUnavailable: On transport failure or timeout.
        """
        result = await self.push(
            code, local_state, known_version, force=force, credential_hash=credential_hash
        )
        if result.outcome == PushOutcome.REJECTED:
            raise StaleWrite(known_version, result.current_version)
        if result.outcome == PushOutcome.ERROR:
            raise RemoteUnavailable(result.error or "push failed")
        return result.new_version

    async def invalidate(self, code: str) -> None:
        """Mark the shared record as revoked. The version is left untouched."""
        await self._call(
            code,
            "invalidate",
            self.store.put(
                code,
                {"invalidated": True, "invalidated_at": datetime.now(UTC).isoformat()},
                merge=True,
            ),
        )
        logger.info("Access code invalidated", access_code=code)

    # =========================================================================
    # Credentials
    # =========================================================================

    async def get_credential_hash(self, code: str) -> Optional[str]:
        """Stored administrator hash for ``code``, if any."""
        record = await self.fetch_record(code)
        return record.credential_hash if record else None

    async def set_credential_hash(self, code: str, credential_hash: str) -> None:
        """Store the administrator hash for ``code``."""
        await self._call(
            code,
            "set_credential",
            self.store.put(code, {"credential_hash": credential_hash}, merge=True),
        )
