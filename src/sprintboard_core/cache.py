"""Key-addressed in-memory TTL cache for collection snapshots.

Entries expire lazily: an expired entry is dropped the next time it is looked
up, there is no background sweep. All access happens on one event loop, so
there is no locking.

Besides plain get/set/invalidate the cache keeps:

- a secondary index ``item_id -> keys`` so a mutation can reach every cached
  copy of a ticket without scanning all entries;
- a generation counter per key, bumped by every write, invalidation and fetch
  start, so a slow fetch cannot overwrite a newer write;
- per-key listeners, notified after each write or invalidation.
"""
from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger("sprintboard.cache")

Listener = Callable[[str, Any], None]


@dataclass
class CacheEntry:
    """A stored value with its write time and time-to-live (seconds)."""

    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache:
    """In-memory TTL cache with item index, generations and listeners.

    Values are deep-copied on the way in and on the way out; callers never
    hold a reference into cached state.
    """

    def __init__(
        self,
        indexer: Optional[Callable[[Any], Iterable[str]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            indexer: Returns the item ids contained in a cached value. Without
                one, ``keys_containing`` always returns an empty list.
            clock: Time source in seconds; injectable for tests.
        """
        self._indexer = indexer
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._index: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._listeners: dict[str, list[Listener]] = {}
        self._hits = 0
        self._misses = 0

    def __contains__(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return a copy of the cached value, or None if missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache MISS: %s", key)
            return None
        self._hits += 1
        logger.debug("Cache HIT: %s", key)
        return copy.deepcopy(entry.value)

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Return a copy of the live entry (value and timestamps), or None."""
        entry = self._live_entry(key)
        if entry is None:
            return None
        return CacheEntry(copy.deepcopy(entry.value), entry.stored_at, entry.ttl)

    def keys_containing(self, item_id: str) -> list[str]:
        """Return the live keys whose value contains ``item_id``."""
        keys = sorted(self._index.get(item_id, ()))
        return [key for key in keys if self._live_entry(key) is not None]

    def generation(self, key: str) -> int:
        return self._generations.get(key, 0)

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "indexed_items": len(self._index),
            "hits": self._hits,
            "misses": self._misses,
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` with a fresh timestamp, overwriting any entry."""
        self._store(key, CacheEntry(copy.deepcopy(value), self._clock(), ttl))
        self._bump(key)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        self._notify(key, value)

    def update(self, key: str, value: Any) -> bool:
        """Replace the value of a live entry, keeping its timestamp and TTL.

        Returns:
            False if the entry is missing or expired (nothing is written).
        """
        entry = self._live_entry(key)
        if entry is None:
            return False
        self._store(key, CacheEntry(copy.deepcopy(value), entry.stored_at, entry.ttl))
        self._bump(key)
        logger.debug("Cache UPDATE: %s", key)
        self._notify(key, value)
        return True

    def begin(self, key: str) -> int:
        """Start a fetch for ``key`` and return the generation it must commit against."""
        return self._bump(key)

    def set_if_current(self, key: str, value: Any, ttl: float, generation: int) -> bool:
        """Store ``value`` only if nothing touched ``key`` since ``begin`` returned ``generation``."""
        if self.generation(key) != generation:
            logger.debug(
                "Cache SKIP stale write: %s (generation %s, current %s)",
                key, generation, self.generation(key),
            )
            return False
        self.set(key, value, ttl)
        return True

    def invalidate(self, key: str) -> bool:
        """Remove ``key``. Returns True if a live or expired entry was removed."""
        existed = self._evict(key)
        self._bump(key)
        logger.debug("Cache INVALIDATE: %s", key)
        self._notify(key, None)
        return existed

    def invalidate_matching(self, predicate: Callable[[str], bool]) -> list[str]:
        """Invalidate every key for which ``predicate(key)`` is true."""
        keys = [key for key in self._entries if predicate(key)]
        for key in keys:
            self.invalidate(key)
        if keys:
            logger.info("Cache INVALIDATE: %s keys", len(keys))
        return keys

    def clear(self) -> None:
        """Drop every entry."""
        self.invalidate_matching(lambda key: True)

    def subscribe(self, key: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener(key, value)`` for changes to ``key``.

        ``value`` is None after an invalidation.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(key, None)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._evict(key)
            logger.debug("Cache EXPIRED: %s", key)
            return None
        return entry

    def _store(self, key: str, entry: CacheEntry) -> None:
        self._unindex(key)
        self._entries[key] = entry
        if self._indexer is not None:
            for item_id in self._indexer(entry.value):
                self._index.setdefault(item_id, set()).add(key)

    def _evict(self, key: str) -> bool:
        self._unindex(key)
        return self._entries.pop(key, None) is not None

    def _unindex(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is None or self._indexer is None:
            return
        for item_id in self._indexer(entry.value):
            keys = self._index.get(item_id)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._index[item_id]

    def _bump(self, key: str) -> int:
        self._generations[key] = self._generations.get(key, 0) + 1
        return self._generations[key]

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners.get(key, ())):
            listener(key, copy.deepcopy(value))
