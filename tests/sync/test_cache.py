"""Tests for the local durable cache."""

import json

from stashsync.sync.cache import InMemoryCache, JsonFileCache


class TestInMemoryCache:
    """Tests for InMemoryCache."""

    def test_empty(self):
        """Test a new cache has nothing stored."""
        assert InMemoryCache().load() is None

    def test_save_load_clear(self):
        """Test save, load and clear."""
        cache = InMemoryCache()
        cache.save({"state": 1, "known_version": 2})
        assert cache.load() == {"state": 1, "known_version": 2}
        assert cache.save_count == 1

        cache.clear()
        assert cache.load() is None

    def test_copies(self):
        """Test stored documents are isolated from callers."""
        data = {"state": {"a": 1}}
        cache = InMemoryCache(data)
        data["state"]["a"] = 2
        assert cache.load() == {"state": {"a": 1}}


class TestJsonFileCache:
    """Tests for JsonFileCache."""

    def test_missing_file(self, tmp_path):
        """Test a missing file loads as None."""
        assert JsonFileCache(tmp_path / "replica.json").load() is None

    def test_round_trip(self, tmp_path):
        """Test the replica document survives a save/load cycle."""
        cache = JsonFileCache(tmp_path / "nested" / "replica.json")
        replica = {
            "state": {"drawers": {"1": ["peas"]}},
            "known_version": 1700000000000,
            "last_synced_snapshot": {"drawers": {"1": []}},
            "access_code": "AB12CD",
        }
        cache.save(replica)
        assert cache.load() == replica

    def test_document_format(self, tmp_path):
        """Test the on-disk document wraps the replica."""
        path = tmp_path / "replica.json"
        JsonFileCache(path).save({"state": {"tags": {"b", "a"}}})

        document = json.loads(path.read_text())
        assert document["format"] == 1
        assert document["replica"] == {"state": {"tags": ["a", "b"]}}

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes leave only the target file."""
        path = tmp_path / "replica.json"
        cache = JsonFileCache(path)
        cache.save({"state": 1})
        cache.save({"state": 2})

        assert [p.name for p in tmp_path.iterdir()] == ["replica.json"]
        assert cache.load() == {"state": 2}

    def test_unreadable_cache_is_ignored(self, tmp_path):
        """Test corrupt JSON loads as None."""
        path = tmp_path / "replica.json"
        path.write_text("{not json")
        assert JsonFileCache(path).load() is None

    def test_malformed_document_is_ignored(self, tmp_path):
        """Test a JSON document without a replica loads as None."""
        path = tmp_path / "replica.json"
        path.write_text(json.dumps({"format": 1, "replica": [1, 2]}))
        assert JsonFileCache(path).load() is None

    def test_clear(self, tmp_path):
        """Test clear removes the file."""
        path = tmp_path / "replica.json"
        cache = JsonFileCache(path)
        cache.save({"state": 1})
        cache.clear()
        cache.clear()
        assert not path.exists()
