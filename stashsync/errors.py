"""Error taxonomy for stashsync."""

from typing import Optional


class SyncError(Exception):
    """Base exception for synchronization errors."""
    pass


class RemoteUnavailable(SyncError):
    """Transport failure or timeout talking to the shared store. Retryable."""
    pass


class StaleWrite(SyncError):
    """A push was rejected because the writer has not seen the current version."""

    def __init__(self, known_version: int, current_version: int):
        super().__init__(
            f"Stale write: known version {known_version} is behind {current_version}"
        )
        self.known_version = known_version
        self.current_version = current_version


class VersionMismatch(SyncError):
    """The store refused a write because the record changed since it was read."""

    def __init__(self, access_code: str, expected_version: int):
        super().__init__(
            f"Shared record {access_code} is no longer at version {expected_version}"
        )
        self.access_code = access_code
        self.expected_version = expected_version


class SessionInvalidated(SyncError):
    """The access code was revoked by an administrator."""

    def __init__(self, access_code: str):
        super().__init__(f"Access code {access_code} has been invalidated")
        self.access_code = access_code


class CredentialRejected(SyncError):
    """The administrator secret did not match the stored hash."""
    pass


class CorruptRemoteState(SyncError):
    """The shared record exists but does not have the expected shape."""

    def __init__(self, access_code: str, reason: str):
        super().__init__(f"Shared record {access_code} is corrupt: {reason}")
        self.access_code = access_code
        self.reason = reason


class SessionNotStarted(SyncError):
    """The operation needs an access code but the device has none."""
    pass


class ConfirmationRequired(SyncError):
    """Adopting remote state would discard pending local edits."""
    pass


class NoConflictPending(SyncError):
    """A resolution action was requested while no conflict exists."""
    pass


class InvalidAccessCode(SyncError):
    """The access code is malformed."""

    def __init__(self, access_code: Optional[str], reason: str):
        super().__init__(f"Invalid access code {access_code!r}: {reason}")
        self.access_code = access_code
        self.reason = reason


class InvalidExportFile(SyncError):
    """An import file is unreadable or not a stashsync export."""
    pass
