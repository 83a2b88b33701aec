"""Tests for sync models."""

from datetime import UTC, datetime

import pytest

from stashsync.sync.models import (
    ConflictContext,
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

# =============================================================================
# Enum Tests
# =============================================================================


class TestEnums:
    """Tests for sync enums."""

    def test_sync_status_values(self):
        """Test SyncStatus enum values."""
        assert SyncStatus.DISCONNECTED.value == "disconnected"
        assert SyncStatus.CLEAN.value == "clean"
        assert SyncStatus.DIRTY.value == "dirty"
        assert SyncStatus.CONFLICT.value == "conflict"

    def test_outcomes_are_strings(self):
        """Test outcomes compare equal to their string values."""
        assert PullOutcome.UP_TO_DATE == "up_to_date"
        assert PushOutcome.REJECTED == "rejected"


# =============================================================================
# SharedRecord Tests
# =============================================================================


class TestSharedRecord:
    """Tests for SharedRecord wire form."""

    def test_round_trip(self):
        """Test to_dict / from_dict."""
        record = SharedRecord(
            state={"a": 1},
            version=42,
            credential_hash="abc",
            updated_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        restored = SharedRecord.from_dict(record.to_dict())
        assert restored == record

    def test_defaults(self):
        """Test missing optional fields."""
        record = SharedRecord.from_dict({"state": [], "version": 3})
        assert record.invalidated is False
        assert record.credential_hash is None
        assert record.updated_at is None

    def test_invalidated_at_only_when_set(self):
        """Test invalidated_at is omitted from the wire form when unset."""
        assert "invalidated_at" not in SharedRecord(state=1, version=1).to_dict()

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            "record",
            {"version": 1},
            {"state": {}, "version": "7"},
            {"state": {}, "version": -1},
            {"state": {}, "version": True},
            {"state": {}, "version": 1, "invalidated": "yes"},
            {"state": {}, "version": 1, "credential_hash": 5},
            {"state": {}, "version": 1, "updated_at": "yesterday"},
        ],
    )
    def test_rejects_bad_shape(self, data):
        """Test records with the wrong shape raise ValueError."""
        with pytest.raises(ValueError):
            SharedRecord.from_dict(data)

    def test_tombstone_without_state(self):
        """Test an invalidated record may lack state and version."""
        record = SharedRecord.from_dict({"invalidated": True})
        assert record.invalidated is True
        assert record.version == 0


# =============================================================================
# LocalReplica Tests
# =============================================================================


class TestLocalReplica:
    """Tests for LocalReplica."""

    def test_never_synced_with_state_is_pending(self):
        """Test a replica that was never synced has pending changes."""
        replica = LocalReplica(state={"a": 1})
        assert replica.pending_changes is True
        assert replica.has_session is False

    def test_empty_never_synced_is_not_pending(self):
        """Test None state with no snapshot is not pending."""
        assert LocalReplica().pending_changes is False

    def test_pending_uses_structural_equality(self):
        """Test key order does not make a replica dirty."""
        replica = LocalReplica(
            state={"b": 2, "a": 1},
            last_synced_snapshot={"a": 1, "b": 2},
            known_version=5,
        )
        assert replica.pending_changes is False

    def test_pending_after_edit(self):
        """Test an edit makes the replica dirty."""
        replica = LocalReplica(state=[1, 2], last_synced_snapshot=[2, 1], known_version=5)
        assert replica.pending_changes is True

    def test_round_trip(self):
        """Test cache document round trip."""
        replica = LocalReplica(
            state={"x": [1]},
            known_version=9,
            last_synced_snapshot={"x": []},
            access_code="AB12CD",
        )
        assert LocalReplica.from_dict(replica.to_dict()) == replica


# =============================================================================
# Result and Context Tests
# =============================================================================


class TestResults:
    """Tests for push/pull results and conflict contexts."""

    def test_push_result_accepted(self):
        """Test accepted property."""
        assert PushResult(outcome=PushOutcome.ACCEPTED, new_version=2).accepted
        assert not PushResult(outcome=PushOutcome.REJECTED).accepted

    def test_pull_result_success(self):
        """Test success property."""
        assert PullResult(outcome=PullOutcome.UPDATED).success
        assert PullResult(outcome=PullOutcome.UP_TO_DATE).success
        assert not PullResult(outcome=PullOutcome.CONFLICT).success
        assert not PullResult(outcome=PullOutcome.ERROR).success

    def test_conflict_context_sides(self):
        """Test local/remote views and display dict."""
        context = ConflictContext(
            local_state={"a": 1},
            local_known_version=10,
            remote_state={"a": 2},
            remote_version=11,
            source=ConflictSource.PULL_WHILE_DIRTY,
        )
        assert context.local == {"state": {"a": 1}, "known_version": 10}
        assert context.remote == {"state": {"a": 2}, "version": 11}

        data = context.to_dict()
        assert data["source"] == "pull_while_dirty"
        assert data["remote"]["version"] == 11
        assert data["local"]["checksum"] != data["remote"]["checksum"]

    def test_pull_result_to_dict_with_conflict(self):
        """Test nested conflict serialization."""
        context = ConflictContext(
            local_state=1, local_known_version=1, remote_state=2, remote_version=2
        )
        data = PullResult(outcome=PullOutcome.CONFLICT, version=2, conflict=context).to_dict()
        assert data["outcome"] == "conflict"
        assert data["conflict"]["id"] == context.id

    def test_remote_snapshot_to_dict(self):
        """Test snapshot summary."""
        data = RemoteSnapshot(state={"a": 1}, version=3).to_dict()
        assert data["version"] == 3
        assert "checksum" in data

    def test_notification_to_dict(self):
        """Test notification serialization."""
        notification = SyncNotification(
            type=SyncNotificationType.PUSH_ACCEPTED,
            message="saved",
            data={"version": 4},
        )
        data = notification.to_dict()
        assert data["type"] == "push_accepted"
        assert data["data"] == {"version": 4}
        assert data["id"]
