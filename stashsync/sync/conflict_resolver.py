"""Conflict detection and the human-mediated resolution workflow.

A device is in one of three states:

- Clean: no pending edits; newer remote versions are fast-forwarded.
- Dirty: pending edits; remote versions are compared by number only.
- ConflictPending: a ``ConflictContext`` waits for AdoptRemote, ForceLocal
  or Cancel.

State is always replaced wholesale. There is no field-level merge.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

import structlog

from stashsync.errors import ConfirmationRequired, NoConflictPending

from .change_detector import states_equal
from .models import (
    ConflictContext,
    ConflictResolution,
    ConflictSource,
    LocalReplica,
    RemoteSnapshot,
)

logger = structlog.get_logger(__name__)


@dataclass
class ResolvedConflict:
    """A settled conflict, kept for the status display."""

    context: ConflictContext
    resolution: ConflictResolution
    resolved_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "conflict": self.context.to_dict(),
            "resolution": self.resolution.value,
            "resolved_at": self.resolved_at.isoformat(),
        }


class ConflictResolver:
    """Owns the single pending conflict of a device.

    Decides what an incoming remote snapshot means for the replica and keeps
    the conflict context until a terminal action settles it.
    """

    HISTORY_LIMIT = 20

    def __init__(self):
        """Initialize with no pending conflict."""
        self._context: Optional[ConflictContext] = None
        self.history: list[ResolvedConflict] = []

    @property
    def pending(self) -> bool:
        """Check if a conflict awaits a decision."""
        return self._context is not None

    @property
    def context(self) -> Optional[ConflictContext]:
        """The pending conflict, if any."""
        return self._context

    # =========================================================================
    # Detection
    # =========================================================================

    @staticmethod
    def should_fast_forward(replica: LocalReplica, remote: RemoteSnapshot) -> bool:
        """Check if ``remote`` can be adopted silently."""
        return remote.version > replica.known_version and not replica.pending_changes

    @staticmethod
    def detect(
        replica: LocalReplica,
        remote: RemoteSnapshot,
        check_content: bool = False,
    ) -> Optional[ConflictSource]:
        """Classify a remote snapshot against the replica.

        Args:
            replica: Local replica.
            remote: Snapshot read from the shared record.
            check_content: Also compare content when versions match, to catch
                silent desynchronization (manual "check for updates").

        Returns:
            The conflict source, or None if there is no conflict.
        """
        if remote.version > replica.known_version:
            return ConflictSource.PULL_WHILE_DIRTY if replica.pending_changes else None

        if (
            check_content
            and remote.version == replica.known_version
            and replica.last_synced_snapshot is not None
            and not states_equal(remote.state, replica.last_synced_snapshot)
        ):
            return ConflictSource.DIVERGED

        return None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(
        self,
        replica: LocalReplica,
        remote: RemoteSnapshot,
        source: ConflictSource,
    ) -> tuple[ConflictContext, bool]:
        """Enter ConflictPending, or refresh the pending conflict.

        A pending conflict keeps its local side; only its remote side moves
        forward when a newer remote version shows up.

        Returns:
            The context and whether it was newly created.
        """
        if self._context is not None:
            if remote.version > self._context.remote_version:
                self._context.remote_state = remote.state
                self._context.remote_version = remote.version
                logger.info(
                    "Pending conflict refreshed with newer remote",
                    conflict_id=self._context.id,
                    remote_version=remote.version,
                )
            return self._context, False

        self._context = ConflictContext(
            local_state=replica.state,
            local_known_version=replica.known_version,
            remote_state=remote.state,
            remote_version=remote.version,
            source=source,
        )
        logger.info(
            "Conflict detected",
            conflict_id=self._context.id,
            source=source.value,
            known_version=replica.known_version,
            remote_version=remote.version,
        )
        return self._context, True

    def require(self) -> ConflictContext:
        """Return the pending conflict.

        Raises:
            NoConflictPending: If there is none.
        """
        if self._context is None:
            raise NoConflictPending("No conflict is pending")
        return self._context

    def check_adopt_remote(self, replica: LocalReplica, confirm: bool) -> ConflictContext:
        """Validate an AdoptRemote request.

        Raises:
            NoConflictPending: If there is no conflict.
            ConfirmationRequired: If pending edits would be discarded without
                explicit confirmation.
        """
        context = self.require()
        if replica.pending_changes and not confirm:
            raise ConfirmationRequired(
                "Adopting the shared state discards local edits; confirmation required"
            )
        return context

    def settle(self, resolution: ConflictResolution) -> ConflictContext:
        """Close the pending conflict with a terminal action.

        Raises:
            NoConflictPending: If there is none.
        """
        context = self.require()
        self._context = None
        self.history.append(ResolvedConflict(context=context, resolution=resolution))
        del self.history[:-self.HISTORY_LIMIT]
        logger.info(
            "Conflict settled",
            conflict_id=context.id,
            resolution=resolution.value,
        )
        return context

    def settle_if_converged(self, state: Any, version: int) -> Optional[ConflictContext]:
        """Settle the pending conflict if the shared record caught up with us.

        Applies after an accepted push of ``state`` at ``version`` when the
        conflict's remote side is that same state at no later version, which
        happens when a read overlapped this device's own write.

        Returns:
            The settled context, or None if nothing was settled.
        """
        context = self._context
        if (
            context is None
            or context.remote_version > version
            or not states_equal(context.remote_state, state)
        ):
            return None
        return self.settle(ConflictResolution.SUPERSEDED)

    def discard(self) -> None:
        """Drop any pending conflict without recording it (session teardown)."""
        self._context = None
