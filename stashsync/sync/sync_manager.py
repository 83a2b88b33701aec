"""Sync engine keeping a device replica consistent with the shared record."""

import asyncio
import copy
import dataclasses
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from stashsync.config import Settings, get_settings
from stashsync.errors import (
    CorruptRemoteState,
    CredentialRejected,
    InvalidAccessCode,
    RemoteUnavailable,
    SessionInvalidated,
    SessionNotStarted,
    SyncError,
)
from stashsync.export import build_export_filename, export_state, load_export
from stashsync.security import CredentialGate, hash_secret
from stashsync.utils.logging import configure_logging, get_logger, log_operation

from .access_code import generate_access_code, validate_access_code
from .cache import InMemoryCache, JsonFileCache, LocalCache
from .change_detector import describe_state, normalize_state
from .conflict_resolver import ConflictResolver
from .debounce import Debouncer
from .http_store import HttpRemoteStore
from .models import (
    ConflictContext,
    ConflictResolution,
    ConflictSource,
    LocalReplica,
    PullOutcome,
    PullResult,
    PushOutcome,
    PushResult,
    RemoteSnapshot,
    SharedRecord,
    SyncNotification,
    SyncNotificationType,
    SyncStatus,
)
from .remote import Clock, SharedRecordClient, wall_clock_ms
from .store import RemoteStore
from .subscription import PausableSubscription, PauseWindow

logger = get_logger(__name__)

StateSink = Callable[[Any], None]
EventHandler = Callable[[SyncNotification], None]


@dataclass
class SyncConfig:
    """Configuration for the sync engine."""

    # Propagation
    debounce_ms: int = 500
    auto_push: bool = True

    # Remote calls
    remote_timeout_seconds: float = 10.0

    # Sessions
    access_code_length: int = 6
    max_code_attempts: int = 10

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SyncConfig":
        """Build from application settings."""
        settings = settings or get_settings()
        return cls(
            debounce_ms=settings.debounce_ms,
            auto_push=settings.auto_push,
            remote_timeout_seconds=settings.remote_timeout_seconds,
            access_code_length=settings.access_code_length,
        )


class SyncEngine:
    """Synchronizes one device's replica with the shared record.

    Features:
    - Debounced automatic push of local edits
    - Version compare-and-swap pushes, strictly sequential per device
    - Silent fast-forward while clean, conflict prompt while dirty
    - Echo suppression around the device's own writes
    - Credential-gated force overwrite, invalidation and rotation

    One instance serves one device. The session (access code, subscription,
    pending timer) lives on the instance between ``start`` and ``stop``.
    """

    def __init__(
        self,
        store: RemoteStore,
        cache: Optional[LocalCache] = None,
        initial_state: Any = None,
        config: Optional[SyncConfig] = None,
        state_sink: Optional[StateSink] = None,
        clock: Clock = wall_clock_ms,
        hasher: Callable[[str], str] = hash_secret,
    ):
        """Initialize the engine.

        Args:
            store: Remote shared store.
            cache: Local durable cache (in-memory if omitted).
            initial_state: State to use when the cache is empty.
            config: Engine configuration.
            state_sink: Receives state adopted from the remote
                (the State Source's ``apply_external_state``).
            clock: Source of candidate versions.
            hasher: Credential primitive.
        """
        self.config = config or SyncConfig()
        self.store = store
        self.cache = cache or InMemoryCache()
        self.client = SharedRecordClient(
            store,
            timeout_seconds=self.config.remote_timeout_seconds,
            clock=clock,
        )
        self.gate = CredentialGate(self.client, hasher=hasher)

        self._state_sink = state_sink
        self._handlers: list[EventHandler] = []
        self._resolver = ConflictResolver()
        self._debouncer = Debouncer(self.config.debounce_ms, self._debounced_push)
        self._push_lock = asyncio.Lock()
        self._subscription: Optional[PausableSubscription] = None
        self._pushing = False
        self._edited_during_push = False
        self._last_error: Optional[str] = None

        self.replica = self._load_replica(initial_state)

    def _load_replica(self, initial_state: Any) -> LocalReplica:
        data = self.cache.load()
        if data:
            replica = LocalReplica.from_dict(data)
            logger.info(
                "Replica loaded from cache",
                access_code=replica.access_code,
                known_version=replica.known_version,
                pending_changes=replica.pending_changes,
            )
            return replica
        return LocalReplica(state=copy.deepcopy(initial_state))

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def access_code(self) -> Optional[str]:
        """Current access code, or None without a session."""
        return self.replica.access_code

    @property
    def is_running(self) -> bool:
        """Check if the engine is attached to a session."""
        return self._subscription is not None

    @property
    def pending_changes(self) -> bool:
        """Check if local edits are not yet confirmed by the remote."""
        return self.replica.pending_changes

    @property
    def conflict(self) -> Optional[ConflictContext]:
        """The pending conflict, if any."""
        return self._resolver.context

    @property
    def status(self) -> SyncStatus:
        """Overall sync status of this device."""
        if not self.replica.has_session:
            return SyncStatus.DISCONNECTED
        if self._resolver.pending:
            return SyncStatus.CONFLICT
        if self._pushing:
            return SyncStatus.SYNCING
        if self._last_error:
            return SyncStatus.ERROR
        if self.replica.pending_changes:
            return SyncStatus.DIRTY
        return SyncStatus.CLEAN

    def get_sync_status(self) -> dict:
        """Status dictionary for display."""
        return {
            "access_code": self.replica.access_code,
            "status": self.status.value,
            "known_version": self.replica.known_version,
            "pending_changes": self.replica.pending_changes,
            "push_scheduled": self._debouncer.pending,
            "conflict": self.conflict.to_dict() if self.conflict else None,
            "last_error": self._last_error,
            "resolved_conflicts": [resolved.to_dict() for resolved in self._resolver.history],
            "state": describe_state(self.replica.state),
        }

    # =========================================================================
    # Notifications
    # =========================================================================

    def add_event_handler(self, handler: EventHandler) -> None:
        """Add a handler for engine notifications.

        Args:
            handler: Function to call with each notification.
        """
        self._handlers.append(handler)

    def remove_event_handler(self, handler: EventHandler) -> None:
        """Remove a notification handler.

        Args:
            handler: Handler to remove.
        """
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _emit(self, type: SyncNotificationType, message: str, **data: Any) -> None:
        notification = SyncNotification(type=type, message=message, data=data)
        for handler in list(self._handlers):
            try:
                handler(notification)
            except Exception as e:
                logger.error(
                    "Notification handler failed",
                    notification=type.value,
                    error=str(e),
                )

    # =========================================================================
    # Replica persistence
    # =========================================================================

    def _commit(self, **changes: Any) -> None:
        """Apply replica changes to the cache and memory together."""
        updated = dataclasses.replace(self.replica, **changes)
        self.cache.save(updated.to_dict())
        self.replica = updated

    def _adopt(self, snapshot: RemoteSnapshot, **changes: Any) -> None:
        """Replace local state with a remote snapshot and mark it synced."""
        self._commit(
            state=copy.deepcopy(snapshot.state),
            known_version=snapshot.version,
            last_synced_snapshot=copy.deepcopy(snapshot.state),
            **changes,
        )
        self._apply_external(self.replica.state)

    def _apply_external(self, state: Any) -> None:
        if self._state_sink is not None:
            self._state_sink(copy.deepcopy(state))

    def _require_session(self) -> str:
        if not self.replica.access_code:
            raise SessionNotStarted("No access code; create or join a session first")
        return self.replica.access_code

    def _record_error(self, error: SyncError) -> None:
        self._last_error = str(error)
        logger.warning(
            "Sync error",
            access_code=self.replica.access_code,
            kind=type(error).__name__,
            error=str(error),
        )
        self._emit(
            SyncNotificationType.ERROR,
            str(error),
            kind=type(error).__name__,
            retryable=isinstance(error, RemoteUnavailable),
        )

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def start(self, code: Optional[str] = None) -> PullResult:
        """Attach to a session and run an initial pull.

        Args:
            code: Access code; defaults to the cached one.

        Returns:
            Result of the initial pull.

        Raises:
            SessionNotStarted: If no code is given or cached.
            InvalidAccessCode: If the code is malformed.
        """
        code = code or self.replica.access_code
        if not code:
            raise SessionNotStarted("No access code to start with")
        code = validate_access_code(code, self.config.access_code_length)

        if code != self.replica.access_code:
            # Versions observed under another code mean nothing here
            self._resolver.discard()
            self._commit(access_code=code, known_version=0, last_synced_snapshot=None)

        self._open_subscription(code)
        logger.info("Sync started", access_code=code, known_version=self.replica.known_version)
        return await self.pull()

    async def stop(self) -> None:
        """Detach from the session, keeping it in the cache.

        Cancels the pending push timer, waits for an in-flight push and
        closes the live-update subscription.
        """
        self._debouncer.cancel()
        await self._debouncer.wait_idle()
        async with self._push_lock:
            pass
        self._close_subscription()

    async def leave(self) -> None:
        """End the session on this device. Local state is kept."""
        code = self.replica.access_code
        await self.stop()
        self._resolver.discard()
        self._commit(access_code=None, known_version=0, last_synced_snapshot=None)
        self._last_error = None
        logger.info("Left session", access_code=code)

    async def join_session(self, code: str) -> PullResult:
        """Bootstrap this device from an existing shared record.

        The remote state replaces local state unconditionally.

        Returns:
            UPDATED on success, otherwise NOT_FOUND, INVALIDATED or ERROR.
        """
        code = validate_access_code(code, self.config.access_code_length)
        await self.stop()

        with log_operation("join_session", logger=logger, access_code=code) as op:
            try:
                snapshot = await self.client.pull(code)
            except SessionInvalidated:
                op["outcome"] = PullOutcome.INVALIDATED.value
                return PullResult(outcome=PullOutcome.INVALIDATED)
            except (RemoteUnavailable, CorruptRemoteState) as e:
                op["outcome"] = PullOutcome.ERROR.value
                self._record_error(e)
                return PullResult(outcome=PullOutcome.ERROR, error=str(e))

            if snapshot is None:
                op["outcome"] = PullOutcome.NOT_FOUND.value
                return PullResult(outcome=PullOutcome.NOT_FOUND)

            self._debouncer.cancel()
            self._resolver.discard()
            self._last_error = None
            self._adopt(snapshot, access_code=code)
            self._open_subscription(code)
            op["outcome"] = PullOutcome.UPDATED.value
            op["version"] = snapshot.version

        self._emit(
            SyncNotificationType.REMOTE_APPLIED,
            "Joined shared session",
            version=snapshot.version,
        )
        return PullResult(outcome=PullOutcome.UPDATED, version=snapshot.version)

    async def create_session(self, secret: str, code: Optional[str] = None) -> str:
        """Create a shared record from the local state.

        Sets the administrator credential and force-pushes the current
        state as the first version.

        Args:
            secret: Administrator secret for destructive operations.
            code: Desired access code; generated if omitted.

        Returns:
            The access code of the new session.
        """
        with log_operation("create_session", logger=logger) as op:
            if not secret:
                raise CredentialRejected("An administrator secret is required to create a session")

            if code:
                code = validate_access_code(code, self.config.access_code_length)
                if await self.client.exists(code):
                    raise InvalidAccessCode(code, "already in use")
            else:
                code = await self._allocate_access_code()
            op["access_code"] = code

            await self.stop()
            state = copy.deepcopy(self.replica.state)
            # Record and credential are written in one put
            version = await self.client.push_or_raise(
                code, state, 0, force=True, credential_hash=self.gate.credential_hash(secret)
            )

            self._debouncer.cancel()
            self._resolver.discard()
            self._last_error = None
            self._commit(access_code=code, known_version=version, last_synced_snapshot=state)
            self._open_subscription(code)
            op["version"] = version

        return code

    async def _allocate_access_code(self) -> str:
        for _ in range(self.config.max_code_attempts):
            candidate = generate_access_code(self.config.access_code_length)
            if not await self.client.exists(candidate):
                return candidate
        raise SyncError("Could not allocate an unused access code")

    async def invalidate(self, secret: str) -> bool:
        """Revoke the current access code for every device.

        Returns:
            True once the code is revoked; False if the store could not be
            reached (an error notification is emitted and the session stays).

        Raises:
            CredentialRejected: If the secret does not verify.
        """
        code = self._require_session()
        with log_operation("invalidate_session", logger=logger, access_code=code) as op:
            try:
                await self.gate.require(code, secret, action="invalidate")
                with self._paused_subscription():
                    await self.client.invalidate(code)
            except (RemoteUnavailable, CorruptRemoteState) as e:
                self._record_error(e)
                op["invalidated"] = False
                return False
            self._teardown_session(code, by_this_device=True)
            op["invalidated"] = True
        return True

    async def rotate(self, secret: str) -> Optional[str]:
        """Invalidate the current code and move the state to a fresh one.

        Returns:
            The new access code, or None if the old code could not be
            invalidated (the session is left as it was).

        Raises:
            CredentialRejected: If the secret does not verify.
            RemoteUnavailable: If the new record could not be written.
        """
        old_code = self._require_session()
        with log_operation("rotate_session", logger=logger, access_code=old_code) as op:
            if not await self.invalidate(secret):
                op["new_code"] = None
                return None
            new_code = await self.create_session(secret)
            op["new_code"] = new_code
        return new_code

    def _teardown_session(self, code: str, by_this_device: bool = False) -> None:
        """Force this device out of an invalidated session."""
        self._debouncer.cancel()
        self._close_subscription()
        self._resolver.discard()
        self._commit(access_code=None, known_version=0, last_synced_snapshot=None)
        self._last_error = None
        logger.warning("Session invalidated", access_code=code, by_this_device=by_this_device)
        self._emit(
            SyncNotificationType.SESSION_INVALIDATED,
            "The access code was invalidated; enter a new code to keep syncing",
            access_code=code,
            by_this_device=by_this_device,
        )

    # =========================================================================
    # Live updates
    # =========================================================================

    def _open_subscription(self, code: str) -> None:
        self._close_subscription()
        self._subscription = PausableSubscription(self.store, code, self._on_remote_event).open()

    def _close_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    @contextmanager
    def _paused_subscription(self) -> Iterator[PauseWindow]:
        if self._subscription is None:
            yield PauseWindow()
            return
        with self._subscription.paused() as window:
            yield window

    def _on_remote_event(self, record: Optional[dict]) -> None:
        """Handle a live update delivered outside any pause window."""
        code = self.replica.access_code
        if record is None or code is None:
            return

        try:
            parsed = SharedRecord.from_dict(record)
        except ValueError as e:
            self._record_error(CorruptRemoteState(code, str(e)))
            return

        if parsed.invalidated:
            self._teardown_session(code)
            return

        # Own writes and stale notifications
        if parsed.version <= self.replica.known_version and not self._resolver.pending:
            return

        self._apply_remote_snapshot(RemoteSnapshot(state=parsed.state, version=parsed.version))

    # =========================================================================
    # Pull
    # =========================================================================

    async def pull(self) -> PullResult:
        """Read the shared record and reconcile it with the replica.

        Fast-forwards when clean; opens a conflict when dirty and the
        remote is newer. Local state is never replaced while dirty.

        Raises:
            SessionNotStarted: Without an access code.
        """
        return await self._pull(check_content=False)

    async def check_for_updates(self) -> PullResult:
        """Pull and also compare content when versions match.

        Catches silent desynchronization (same version, divergent content).
        """
        return await self._pull(check_content=True)

    async def _pull(self, check_content: bool) -> PullResult:
        code = self._require_session()
        try:
            snapshot = await self.client.pull(code)
        except SessionInvalidated:
            self._teardown_session(code)
            return PullResult(outcome=PullOutcome.INVALIDATED)
        except (RemoteUnavailable, CorruptRemoteState) as e:
            self._record_error(e)
            return PullResult(outcome=PullOutcome.ERROR, error=str(e))

        if snapshot is None:
            logger.info("No shared record for access code", access_code=code)
            return PullResult(outcome=PullOutcome.NOT_FOUND)

        # A read overlapping this device's own write is reconciled after the
        # write has settled known_version
        async with self._push_lock:
            if self.replica.access_code != code:
                logger.info("Session ended while pull was in flight", access_code=code)
                return PullResult(outcome=PullOutcome.ERROR, error=f"Session {code} ended during pull")
            self._last_error = None
            return self._apply_remote_snapshot(snapshot, check_content=check_content)

    def _apply_remote_snapshot(
        self,
        snapshot: RemoteSnapshot,
        check_content: bool = False,
    ) -> PullResult:
        if self._resolver.pending:
            context, _ = self._resolver.open(self.replica, snapshot, self._resolver.context.source)
            return PullResult(outcome=PullOutcome.CONFLICT, version=snapshot.version, conflict=context)

        if self._resolver.should_fast_forward(self.replica, snapshot):
            previous = self.replica.known_version
            self._adopt(snapshot)
            logger.info(
                "Fast-forwarded to remote version",
                access_code=self.replica.access_code,
                previous_version=previous,
                version=snapshot.version,
            )
            self._emit(
                SyncNotificationType.REMOTE_APPLIED,
                "Applied changes from another device",
                version=snapshot.version,
            )
            return PullResult(outcome=PullOutcome.UPDATED, version=snapshot.version)

        source = self._resolver.detect(self.replica, snapshot, check_content=check_content)
        if source is not None:
            return self._enter_conflict(snapshot, source)

        return PullResult(outcome=PullOutcome.UP_TO_DATE, version=snapshot.version)

    def _enter_conflict(self, snapshot: RemoteSnapshot, source: ConflictSource) -> PullResult:
        context, created = self._resolver.open(self.replica, snapshot, source)
        self._debouncer.cancel()
        if created:
            self._emit(
                SyncNotificationType.CONFLICT_DETECTED,
                "Someone else changed the shared data",
                conflict=context.to_dict(),
            )
        return PullResult(outcome=PullOutcome.CONFLICT, version=snapshot.version, conflict=context)

    # =========================================================================
    # Local edits and push
    # =========================================================================

    def on_user_edit(self, new_state: Any) -> None:
        """Record a new state produced by the State Source.

        Persists immediately and (re)starts the debounced push. Edits made
        while a push is in flight start a fresh cycle once it settles.

        The cache write is synchronous; with ``JsonFileCache`` each call costs
        one file write on the event loop, which suits small states.
        """
        self._commit(state=copy.deepcopy(new_state))
        if self._pushing:
            self._edited_during_push = True
        elif self._should_auto_push():
            self._debouncer.schedule()

    def discard_changes(self) -> bool:
        """Revert local edits to the last synced snapshot.

        Returns:
            True if anything was reverted.
        """
        if self.replica.last_synced_snapshot is None or not self.replica.pending_changes:
            return False
        self._debouncer.cancel()
        self._commit(state=copy.deepcopy(self.replica.last_synced_snapshot))
        self._apply_external(self.replica.state)
        logger.info("Local changes discarded", access_code=self.replica.access_code)
        return True

    def _should_auto_push(self) -> bool:
        return (
            self.config.auto_push
            and self.is_running
            and not self._resolver.pending
            and self.replica.pending_changes
        )

    async def _debounced_push(self) -> None:
        if self._pushing:
            self._edited_during_push = True
            return
        if self._should_auto_push():
            await self.push()

    async def push(self, force: bool = False) -> PushResult:
        """Push the local state with a version compare-and-swap.

        Pushes never overlap. The live-update subscription is paused while
        the write is outstanding; events that arrived meanwhile are
        coalesced into one pull afterwards.

        Args:
            force: Overwrite regardless of version (use ``force_local`` or
                ``import_state``, which check the credential first).

        Raises:
            SessionNotStarted: Without an access code.
        """
        code = self._require_session()

        async with self._push_lock:
            if not force and not self.replica.pending_changes:
                return PushResult(outcome=PushOutcome.SKIPPED, current_version=self.replica.known_version)

            state = copy.deepcopy(self.replica.state)
            known_version = self.replica.known_version
            self._pushing = True
            self._edited_during_push = False

            try:
                with self._paused_subscription() as window:
                    result = await self.client.push(code, state, known_version, force=force)
            except SessionInvalidated:
                self._teardown_session(code)
                return PushResult(outcome=PushOutcome.ERROR, error=f"Access code {code} has been invalidated")
            except CorruptRemoteState as e:
                self._record_error(e)
                return PushResult(outcome=PushOutcome.ERROR, error=str(e))
            finally:
                self._pushing = False

            if result.outcome == PushOutcome.ACCEPTED:
                self._last_error = None
                self._commit(known_version=result.new_version, last_synced_snapshot=state)
                if not self.replica.pending_changes:
                    self._debouncer.cancel()
                if force and self._resolver.pending:
                    self._resolver.settle(ConflictResolution.FORCE_LOCAL)
                    self._emit(
                        SyncNotificationType.CONFLICT_RESOLVED,
                        "Shared data overwritten with local data",
                        resolution=ConflictResolution.FORCE_LOCAL.value,
                        version=result.new_version,
                    )
                elif self._resolver.settle_if_converged(state, result.new_version) is not None:
                    self._emit(
                        SyncNotificationType.CONFLICT_RESOLVED,
                        "Shared data already matches local data",
                        resolution=ConflictResolution.SUPERSEDED.value,
                        version=result.new_version,
                    )
                self._emit(
                    SyncNotificationType.PUSH_ACCEPTED,
                    "Changes saved to the shared record",
                    version=result.new_version,
                    force=force,
                )
            elif result.outcome == PushOutcome.REJECTED:
                self._enter_conflict(result.remote, ConflictSource.PUSH_REJECTED)
            else:
                self._record_error(RemoteUnavailable(result.error or "push failed"))

        if window.needs_pull and self.replica.has_session:
            logger.debug("Coalescing events withheld during push", withheld=window.withheld_events)
            await self._pull(check_content=False)

        if self._edited_during_push:
            self._edited_during_push = False
            if self._should_auto_push():
                self._debouncer.schedule()

        return result

    # =========================================================================
    # Conflict resolution
    # =========================================================================

    def adopt_remote(self, confirm: bool = False) -> ConflictContext:
        """Resolve the conflict by taking the shared state.

        Args:
            confirm: Explicit confirmation that pending local edits may be
                discarded. Required whenever edits are pending.

        Raises:
            NoConflictPending: If there is no conflict.
            ConfirmationRequired: If edits are pending and not confirmed.
        """
        context = self._resolver.check_adopt_remote(self.replica, confirm)
        self._debouncer.cancel()
        self._adopt(RemoteSnapshot(state=context.remote_state, version=context.remote_version))
        self._resolver.settle(ConflictResolution.ADOPT_REMOTE)
        self._emit(
            SyncNotificationType.CONFLICT_RESOLVED,
            "Using the shared data",
            resolution=ConflictResolution.ADOPT_REMOTE.value,
            version=context.remote_version,
        )
        return context

    async def force_local(self, secret: str) -> PushResult:
        """Resolve the conflict by overwriting the shared state.

        Raises:
            NoConflictPending: If there is no conflict.
            CredentialRejected: If the secret does not verify; nothing changes.
        """
        self._resolver.require()
        code = self._require_session()

        try:
            await self.gate.require(code, secret, action="force_local")
        except (RemoteUnavailable, CorruptRemoteState) as e:
            self._record_error(e)
            return PushResult(outcome=PushOutcome.ERROR, error=str(e))

        return await self.push(force=True)

    def cancel_conflict(self) -> ConflictContext:
        """Dismiss the conflict; local edits stay pending.

        Raises:
            NoConflictPending: If there is no conflict.
        """
        return self._resolver.settle(ConflictResolution.CANCEL)

    # =========================================================================
    # Import / export
    # =========================================================================

    async def import_state(self, state: Any, secret: Optional[str] = None) -> Optional[PushResult]:
        """Replace the state wholesale, superseding all history.

        With an active session the import is credential-gated and
        force-pushed; without one it only replaces local state.

        Returns:
            The push result, or None without a session.

        Raises:
            CredentialRejected: If a session is active and the secret does
                not verify.
        """
        if not self.replica.has_session:
            self._commit(state=copy.deepcopy(state))
            self._apply_external(self.replica.state)
            return None

        code = self.replica.access_code
        try:
            await self.gate.require(code, secret, action="import")
        except (RemoteUnavailable, CorruptRemoteState) as e:
            self._record_error(e)
            return PushResult(outcome=PushOutcome.ERROR, error=str(e))

        self._debouncer.cancel()
        self._commit(state=copy.deepcopy(state))
        self._apply_external(self.replica.state)

        return await self.push(force=True)

    async def import_file(self, path: str | Path, secret: Optional[str] = None) -> Optional[PushResult]:
        """Load an export file and import its state."""
        return await self.import_state(load_export(path), secret=secret)

    def export_file(self, directory: str | Path = ".") -> Path:
        """Write the local state to a dated export file in ``directory``."""
        path = Path(directory) / build_export_filename()
        return export_state(normalize_state(self.replica.state), path)


def create_sync_engine(
    settings: Optional[Settings] = None,
    store: Optional[RemoteStore] = None,
    cache: Optional[LocalCache] = None,
    initial_state: Any = None,
    state_sink: Optional[StateSink] = None,
) -> SyncEngine:
    """Create a sync engine configured from settings.

    Logging is configured from ``settings``.

    Args:
        settings: Application settings (loaded from the environment if omitted).
        store: Remote store; an ``HttpRemoteStore`` for ``remote_url`` if omitted.
        cache: Local cache; a ``JsonFileCache`` at ``cache_path`` if omitted.
        initial_state: State used when the cache is empty.
        state_sink: Receives state adopted from the remote.

    Returns:
        Configured SyncEngine.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    if store is None:
        store = HttpRemoteStore(settings=settings)
    return SyncEngine(
        store=store,
        cache=cache or JsonFileCache(settings.cache_path),
        initial_state=initial_state,
        config=SyncConfig.from_settings(settings),
        state_sink=state_sink,
    )
