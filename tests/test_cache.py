"""Tests for the TTL cache: expiry, ownership, item index, generations, listeners."""
import pytest

from sprintboard_core.cache import TTLCache


def _ids(value):
    return value.get("ids", [])


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(indexer=_ids, clock=clock)


class TestExpiry:
    """Entries expire lazily once now - stored_at > ttl."""

    def test_get_returns_value_before_expiry(self, cache, clock):
        cache.set("k", {"ids": []}, ttl=60)
        clock.advance(60)
        assert cache.get("k") == {"ids": []}

    def test_get_misses_one_millisecond_after_expiry(self, cache, clock):
        cache.set("k", {"ids": []}, ttl=60)
        clock.advance(60.001)
        assert cache.get("k") is None
        assert "k" not in cache
        assert len(cache) == 0

    def test_set_overwrites_and_refreshes_timestamp(self, cache, clock):
        cache.set("k", {"v": 1}, ttl=60)
        clock.advance(50)
        cache.set("k", {"v": 2}, ttl=60)
        clock.advance(50)
        assert cache.get("k") == {"v": 2}

    def test_default_clock_is_usable(self):
        cache = TTLCache()
        cache.set("k", 1, ttl=60)
        assert cache.get("k") == 1

    def test_invalidate(self, cache):
        cache.set("k", {"v": 1}, ttl=60)
        assert cache.invalidate("k") is True
        assert cache.get("k") is None
        assert cache.invalidate("k") is False

    def test_stats_count_hits_and_misses(self, cache):
        cache.set("k", {"v": 1}, ttl=60)
        cache.get("k")
        cache.get("missing")
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["entries"] == 1


class TestUpdate:
    """update() keeps the original timestamp so the entry expires on schedule."""

    def test_update_preserves_stored_at(self, cache, clock):
        cache.set("k", {"v": 1}, ttl=60)
        stored_at = cache.entry("k").stored_at
        clock.advance(30)
        assert cache.update("k", {"v": 2}) is True
        assert cache.entry("k").stored_at == stored_at
        clock.advance(30.001)
        assert cache.get("k") is None

    def test_update_missing_entry_writes_nothing(self, cache):
        assert cache.update("k", {"v": 1}) is False
        assert cache.get("k") is None

    def test_update_expired_entry_writes_nothing(self, cache, clock):
        cache.set("k", {"v": 1}, ttl=10)
        clock.advance(11)
        assert cache.update("k", {"v": 2}) is False
        assert cache.get("k") is None


class TestOwnership:
    """Cached values are never aliased by callers."""

    def test_mutating_returned_value_does_not_change_cache(self, cache):
        cache.set("k", {"ids": ["a"]}, ttl=60)
        value = cache.get("k")
        value["ids"].append("b")
        assert cache.get("k") == {"ids": ["a"]}

    def test_mutating_stored_value_does_not_change_cache(self, cache):
        value = {"ids": ["a"]}
        cache.set("k", value, ttl=60)
        value["ids"].append("b")
        assert cache.get("k") == {"ids": ["a"]}


class TestItemIndex:
    """Secondary index from item id to the keys holding it."""

    def test_keys_containing(self, cache):
        cache.set("board", {"ids": ["a", "b"]}, ttl=60)
        cache.set("list", {"ids": ["b", "c"]}, ttl=60)
        assert cache.keys_containing("b") == ["board", "list"]
        assert cache.keys_containing("a") == ["board"]
        assert cache.keys_containing("z") == []

    def test_index_follows_overwrites(self, cache):
        cache.set("list", {"ids": ["a"]}, ttl=60)
        cache.update("list", {"ids": ["b"]})
        assert cache.keys_containing("a") == []
        assert cache.keys_containing("b") == ["list"]

    def test_index_drops_invalidated_and_expired_keys(self, cache, clock):
        cache.set("short", {"ids": ["a"]}, ttl=10)
        cache.set("long", {"ids": ["a"]}, ttl=100)
        cache.set("gone", {"ids": ["a"]}, ttl=100)
        cache.invalidate("gone")
        clock.advance(11)
        assert cache.keys_containing("a") == ["long"]

    def test_cache_without_indexer(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("k", {"ids": ["a"]}, ttl=60)
        assert cache.keys_containing("a") == []


class TestGenerations:
    """A fetch commits only if nothing touched its key since it started."""

    def test_commit_when_untouched(self, cache):
        generation = cache.begin("k")
        assert cache.set_if_current("k", {"v": 1}, 60, generation) is True
        assert cache.get("k") == {"v": 1}

    def test_later_fetch_start_supersedes_earlier(self, cache):
        slow = cache.begin("k")
        fast = cache.begin("k")
        assert cache.set_if_current("k", {"v": "fast"}, 60, fast) is True
        assert cache.set_if_current("k", {"v": "slow"}, 60, slow) is False
        assert cache.get("k") == {"v": "fast"}

    def test_invalidate_during_fetch_discards_result(self, cache):
        generation = cache.begin("k")
        cache.invalidate("k")
        assert cache.set_if_current("k", {"v": 1}, 60, generation) is False
        assert cache.get("k") is None

    def test_local_write_during_fetch_wins(self, cache):
        cache.set("k", {"v": "old"}, ttl=60)
        generation = cache.begin("k")
        cache.update("k", {"v": "optimistic"})
        assert cache.set_if_current("k", {"v": "fetched"}, 60, generation) is False
        assert cache.get("k") == {"v": "optimistic"}


class TestBulkInvalidation:
    """invalidate_matching and clear."""

    def test_invalidate_matching(self, cache):
        cache.set("a:1", {}, ttl=60)
        cache.set("a:2", {}, ttl=60)
        cache.set("b:1", {}, ttl=60)
        removed = cache.invalidate_matching(lambda key: key.startswith("a:"))
        assert sorted(removed) == ["a:1", "a:2"]
        assert cache.get("b:1") == {}

    def test_clear(self, cache):
        cache.set("a", {"ids": ["x"]}, ttl=60)
        cache.set("b", {"ids": ["x"]}, ttl=60)
        cache.clear()
        assert len(cache) == 0
        assert cache.keys_containing("x") == []


class TestListeners:
    """Listeners see every write and invalidation of their key."""

    def test_listener_receives_writes_and_invalidation(self, cache):
        seen = []
        cache.subscribe("k", lambda key, value: seen.append(value))
        cache.set("k", {"v": 1}, ttl=60)
        cache.update("k", {"v": 2})
        cache.invalidate("k")
        assert seen == [{"v": 1}, {"v": 2}, None]

    def test_listener_only_for_its_key(self, cache):
        seen = []
        cache.subscribe("k", lambda key, value: seen.append(key))
        cache.set("other", {}, ttl=60)
        assert seen == []

    def test_unsubscribe(self, cache):
        seen = []
        unsubscribe = cache.subscribe("k", lambda key, value: seen.append(value))
        unsubscribe()
        cache.set("k", {"v": 1}, ttl=60)
        assert seen == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
