"""Data models for shared replica synchronization."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from .change_detector import describe_state, states_equal


class SyncStatus(str, Enum):
    """Sync status of a device."""

    DISCONNECTED = "disconnected"  # No access code
    CLEAN = "clean"  # Replica equals the last synced snapshot
    DIRTY = "dirty"  # Local edits not yet confirmed by the remote
    CONFLICT = "conflict"  # A conflict awaits a human decision
    SYNCING = "syncing"  # A push is in flight
    ERROR = "error"  # Last remote call failed


class PullOutcome(str, Enum):
    """Outcome of a pull."""

    UPDATED = "updated"  # Fast-forwarded to a newer remote version
    UP_TO_DATE = "up_to_date"
    CONFLICT = "conflict"  # Newer remote version while local edits are pending
    NOT_FOUND = "not_found"
    INVALIDATED = "invalidated"
    ERROR = "error"


class PushOutcome(str, Enum):
    """Outcome of a push."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"  # Compare-and-swap failure
    ERROR = "error"
    SKIPPED = "skipped"  # Nothing to push


class ConflictSource(str, Enum):
    """What revealed a conflict."""

    PUSH_REJECTED = "push_rejected"
    PULL_WHILE_DIRTY = "pull_while_dirty"
    DIVERGED = "diverged"  # Same version, different content


class ConflictResolution(str, Enum):
    """How a conflict was settled."""

    ADOPT_REMOTE = "adopt_remote"
    FORCE_LOCAL = "force_local"
    CANCEL = "cancel"
    SUPERSEDED = "superseded"


class SyncNotificationType(str, Enum):
    """Notifications emitted to the application."""

    CONFLICT_DETECTED = "conflict_detected"
    CONFLICT_RESOLVED = "conflict_resolved"
    REMOTE_APPLIED = "remote_applied"
    PUSH_ACCEPTED = "push_accepted"
    SESSION_INVALIDATED = "session_invalidated"
    ERROR = "error"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class SharedRecord:
    """The remote record shared by every device using one access code."""

    state: Any = None
    version: int = 0
    invalidated: bool = False
    credential_hash: Optional[str] = None
    updated_at: Optional[datetime] = None
    invalidated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to the wire form."""
        data = {
            "state": self.state,
            "version": self.version,
            "invalidated": self.invalidated,
            "credential_hash": self.credential_hash,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.invalidated_at:
            data["invalidated_at"] = self.invalidated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "SharedRecord":
        """Create from the wire form.

        Raises:
            ValueError: If the record does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"record is a {type(data).__name__}, not an object")

        invalidated = data.get("invalidated", False)
        if not isinstance(invalidated, bool):
            raise ValueError("'invalidated' is not a boolean")

        credential_hash = data.get("credential_hash")
        if credential_hash is not None and not isinstance(credential_hash, str):
            raise ValueError("'credential_hash' is not a string")

        # An invalidated record may be a bare tombstone written by merge
        if not invalidated:
            if "state" not in data:
                raise ValueError("'state' is missing")
            version = data.get("version")
            if isinstance(version, bool) or not isinstance(version, int) or version < 0:
                raise ValueError("'version' is not a non-negative integer")
        else:
            version = data.get("version", 0)
            if isinstance(version, bool) or not isinstance(version, int):
                version = 0

        try:
            updated_at = _parse_timestamp(data.get("updated_at"))
            invalidated_at = _parse_timestamp(data.get("invalidated_at"))
        except (TypeError, ValueError) as e:
            raise ValueError(f"bad timestamp: {e}") from e

        return cls(
            state=data.get("state"),
            version=version,
            invalidated=invalidated,
            credential_hash=credential_hash,
            updated_at=updated_at,
            invalidated_at=invalidated_at,
        )


@dataclass
class RemoteSnapshot:
    """State and version read from the shared record."""

    state: Any
    version: int

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"version": self.version, **describe_state(self.state)}


@dataclass
class LocalReplica:
    """Per-device replica of the shared state."""

    state: Any = None
    known_version: int = 0  # 0 = never synced
    last_synced_snapshot: Any = None  # None = never synced
    access_code: Optional[str] = None

    @property
    def pending_changes(self) -> bool:
        """Check if the live state differs from the last confirmed sync."""
        return not states_equal(self.state, self.last_synced_snapshot)

    @property
    def has_session(self) -> bool:
        """Check if the replica is attached to an access code."""
        return self.access_code is not None

    def to_dict(self) -> dict:
        """Convert to the cache document."""
        return {
            "state": self.state,
            "known_version": self.known_version,
            "last_synced_snapshot": self.last_synced_snapshot,
            "access_code": self.access_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LocalReplica":
        """Create from the cache document."""
        return cls(
            state=data.get("state"),
            known_version=data.get("known_version", 0),
            last_synced_snapshot=data.get("last_synced_snapshot"),
            access_code=data.get("access_code"),
        )


@dataclass
class ConflictContext:
    """A conflict between the local replica and the shared record."""

    local_state: Any
    local_known_version: int
    remote_state: Any
    remote_version: int
    source: ConflictSource = ConflictSource.PUSH_REJECTED
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def local(self) -> dict:
        """Local side as ``{state, known_version}``."""
        return {"state": self.local_state, "known_version": self.local_known_version}

    @property
    def remote(self) -> dict:
        """Remote side as ``{state, version}``."""
        return {"state": self.remote_state, "version": self.remote_version}

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "id": self.id,
            "source": self.source.value,
            "local": {
                "known_version": self.local_known_version,
                **describe_state(self.local_state),
            },
            "remote": {
                "version": self.remote_version,
                **describe_state(self.remote_state),
            },
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PushResult:
    """Result of a push."""

    outcome: PushOutcome
    new_version: int = 0
    current_version: int = 0
    remote: Optional[RemoteSnapshot] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        """Check if the write was accepted."""
        return self.outcome == PushOutcome.ACCEPTED

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "new_version": self.new_version,
            "current_version": self.current_version,
            "error": self.error,
        }


@dataclass
class PullResult:
    """Result of a pull."""

    outcome: PullOutcome
    version: int = 0
    conflict: Optional[ConflictContext] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """Check if the pull reached the remote and left the replica consistent."""
        return self.outcome in (PullOutcome.UPDATED, PullOutcome.UP_TO_DATE)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "version": self.version,
            "conflict": self.conflict.to_dict() if self.conflict else None,
            "error": self.error,
        }


@dataclass
class SyncNotification:
    """A user-facing event emitted by the engine."""

    type: SyncNotificationType
    message: str = ""
    data: dict = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
