"""Tests for chuk_mcp_osm.core.cache module."""

import json

import pytest

from chuk_mcp_osm.core.cache import TTLCache


class TestGetSet:
    def test_roundtrip(self, clock):
        cache = TTLCache(1000, 10, clock=clock)
        cache.set("a", {"x": 1})
        assert cache.get("a") == {"x": 1}
        assert cache.has("a")

    def test_missing_key(self, clock):
        cache = TTLCache(1000, 10, clock=clock)
        assert cache.get("nope") is None
        assert not cache.has("nope")

    def test_expires_after_ttl(self, clock):
        cache = TTLCache(1000, 10, clock=clock)
        cache.set("a", 1)
        clock.advance(0.5)
        assert cache.get("a") == 1
        clock.advance(0.5)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_reset_refreshes_expiry(self, clock):
        cache = TTLCache(1000, 10, clock=clock)
        cache.set("a", 1)
        clock.advance(0.8)
        cache.set("a", 2)
        clock.advance(0.8)
        assert cache.get("a") == 2

    def test_clear(self, clock):
        cache = TTLCache(1000, 10, clock=clock)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0

    def test_max_entries_validated(self):
        with pytest.raises(ValueError):
            TTLCache(1000, 0)


class TestEviction:
    def test_evicts_earliest_inserted(self, clock):
        cache = TTLCache(10_000, 2, clock=clock)
        cache.set("first", 1)
        clock.advance(1)
        cache.set("second", 2)
        clock.advance(1)
        cache.set("third", 3)
        assert cache.get("first") is None
        assert cache.get("second") == 2
        assert cache.get("third") == 3

    def test_reading_does_not_protect_from_eviction(self, clock):
        cache = TTLCache(10_000, 2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert not cache.has("a")
        assert cache.has("b")

    def test_resetting_key_moves_it_to_newest(self, clock):
        cache = TTLCache(10_000, 2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)
        assert cache.get("a") == 10
        assert not cache.has("b")

    def test_expired_entries_purged_before_eviction(self, clock):
        cache = TTLCache(1000, 2, clock=clock)
        cache.set("old", 1)
        clock.advance(2)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.has("b") and cache.has("c")


class TestPersistence:
    def test_snapshot_written_on_set(self, clock, tmp_path):
        path = tmp_path / "cache.json"
        cache = TTLCache(1000, 10, persist_file=path, clock=clock)
        cache.set("a", [1, 2])
        snapshot = json.loads(path.read_text())
        assert snapshot == [["a", {"value": [1, 2], "expires": 1_001_000.0}]]

    def test_reload_skips_expired(self, clock, tmp_path):
        path = tmp_path / "cache.json"
        cache = TTLCache(1000, 10, persist_file=path, clock=clock)
        cache.set("short", 1)
        clock.advance(0.5)
        cache.set("long", 2)
        clock.advance(0.6)

        reloaded = TTLCache(1000, 10, persist_file=path, clock=clock)
        assert reloaded.get("short") is None
        assert reloaded.get("long") == 2

    def test_expiry_during_get_rewrites_snapshot(self, clock, tmp_path):
        path = tmp_path / "cache.json"
        cache = TTLCache(1000, 10, persist_file=path, clock=clock)
        cache.set("a", 1)
        clock.advance(2)
        cache.get("a")
        assert json.loads(path.read_text()) == []

    def test_corrupt_snapshot_is_ignored(self, clock, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        cache = TTLCache(1000, 10, persist_file=path, clock=clock)
        assert len(cache) == 0
        cache.set("a", 1)
        assert cache.get("a") == 1

    def test_unwritable_path_keeps_memory_cache(self, clock, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        cache = TTLCache(1000, 10, persist_file=blocker / "cache.json", clock=clock)
        cache.set("a", 1)
        assert cache.get("a") == 1

    def test_oversized_snapshot_keeps_newest_entries(self, clock, tmp_path):
        path = tmp_path / "cache.json"
        expires = 2_000_000.0
        path.write_text(
            json.dumps([[key, {"value": key, "expires": expires}] for key in "abcde"])
        )
        cache = TTLCache(1000, 3, persist_file=path, clock=clock)
        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("b") is None
        assert [cache.get(key) for key in "cde"] == ["c", "d", "e"]
