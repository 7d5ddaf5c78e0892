import threading
import time
from typing import Any, Callable, Dict, Optional, Set
import logging

logger = logging.getLogger(__name__)


class CacheEntry:
    __slots__ = ("key", "value", "stored_at", "ttl_seconds")

    def __init__(self, key: str, value: Any, stored_at: float, ttl_seconds: float):
        self.key = key
        self.value = value
        self.stored_at = stored_at
        self.ttl_seconds = ttl_seconds

    def is_expired(self, now: float) -> bool:
        # An entry exactly at its TTL boundary is still valid
        return self.ttl_seconds <= 0 or now - self.stored_at > self.ttl_seconds


class TTLStore:
    """Capacity-bounded in-memory store with per-entry expiry.

    Entries are kept in insertion order; when the store is full the oldest
    inserted entry is evicted first, regardless of how often it is read.
    Every operation holds the same lock and never yields, so the store is safe
    to share between threads and between tasks of an event loop.
    """

    def __init__(self, max_entries: int = 500, clock: Optional[Callable[[], float]] = None):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def peek(self, key: str, default: Any = None) -> Any:
        """Like ``get`` but leaves the hit/miss counters alone."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return default
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> bool:
        with self._lock:
            if ttl_seconds <= 0:
                # Zero TTL means "never cache"
                self._entries.pop(key, None)
                return False

            now = self._clock()
            if key in self._entries:
                # Re-insert so a refreshed key counts as the newest one
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._make_room(now)

            self._entries[key] = CacheEntry(key, value, now, ttl_seconds)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        return self.delete_where(lambda key: key.startswith(prefix))

    def delete_where(self, predicate: Callable[[str], bool]) -> int:
        with self._lock:
            keys_to_delete = [key for key in self._entries if predicate(key)]
            for key in keys_to_delete:
                del self._entries[key]
            return len(keys_to_delete)

    def keys(self) -> Set[str]:
        with self._lock:
            self._purge_expired(self._clock())
            return set(self._entries)

    def flush_all(self) -> int:
        with self._lock:
            # Count live entries only, as keys() would
            self._purge_expired(self._clock())
            cleared = len(self._entries)
            self._entries.clear()
            return cleared

    def sweep(self) -> int:
        with self._lock:
            return self._purge_expired(self._clock())

    def stats(self) -> Dict[str, int]:
        with self._lock:
            now = self._clock()
            size = sum(1 for entry in self._entries.values() if not entry.is_expired(now))
            return {"hits": self._hits, "misses": self._misses, "size": size}

    def _purge_expired(self, now: float) -> int:
        expired_keys = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    def _make_room(self, now: float) -> None:
        self._purge_expired(now)
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Cache full ({self.max_entries} keys), evicted {oldest}")
