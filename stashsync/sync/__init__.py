"""Multi-device state synchronization module."""

from .access_code import (
    ACCESS_CODE_ALPHABET,
    generate_access_code,
    normalize_access_code,
    validate_access_code,
)
from .cache import (
    InMemoryCache,
    JsonFileCache,
    LocalCache,
)
from .change_detector import (
    calculate_checksum,
    describe_state,
    normalize_state,
    states_equal,
)
from .conflict_resolver import (
    ConflictResolver,
    ResolvedConflict,
)
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
from .remote import SharedRecordClient, wall_clock_ms
from .store import InMemoryRemoteStore, RemoteStore
from .subscription import PausableSubscription, PauseWindow
from .sync_manager import (
    SyncConfig,
    SyncEngine,
    create_sync_engine,
)

__all__ = [
    # Models
    "SyncStatus",
    "PullOutcome",
    "PushOutcome",
    "ConflictSource",
    "ConflictResolution",
    "SyncNotificationType",
    "SharedRecord",
    "RemoteSnapshot",
    "LocalReplica",
    "ConflictContext",
    "PushResult",
    "PullResult",
    "SyncNotification",
    # Access codes
    "ACCESS_CODE_ALPHABET",
    "generate_access_code",
    "normalize_access_code",
    "validate_access_code",
    # Change detector
    "normalize_state",
    "calculate_checksum",
    "states_equal",
    "describe_state",
    # Stores and caches
    "RemoteStore",
    "InMemoryRemoteStore",
    "HttpRemoteStore",
    "LocalCache",
    "InMemoryCache",
    "JsonFileCache",
    # Remote client
    "SharedRecordClient",
    "wall_clock_ms",
    # Live updates
    "PausableSubscription",
    "PauseWindow",
    "Debouncer",
    # Conflict resolver
    "ConflictResolver",
    "ResolvedConflict",
    # Sync engine
    "SyncConfig",
    "SyncEngine",
    "create_sync_engine",
]
