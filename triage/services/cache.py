"""TTL cache with LRU eviction, shared by the engine, config loader and issue source."""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Lock-guarded in-memory cache with time-to-live and max-size eviction.

    An entry is fresh while ``now - stored_at < ttl``.  By default expired
    entries stay in the store so ``get_stale`` can serve them when a fresh
    fetch fails; with ``evict_expired=True`` they are dropped on access.

    Usage::

        cache = TTLCache(ttl=300, max_size=100)
        cache.set("key", value)
        hit = cache.get("key")  # returns value or None if expired/missing
    """

    def __init__(
        self,
        ttl: float = 300,
        max_size: int = 100,
        *,
        evict_expired: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._max_size = max_size
        self._evict_expired = evict_expired
        self._clock = clock
        self._lock = threading.Lock()
        # OrderedDict preserves insertion order for LRU eviction
        self._store: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    def _is_fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self._ttl

    def get(self, key: str) -> Any | None:
        """Return the cached value if present and not expired, else None."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, ts = entry
            if not self._is_fresh(ts):
                if self._evict_expired:
                    del self._store[key]
                return None
            # Move to end (most recently used)
            self._store.move_to_end(key)
            return value

    def get_stale(self, key: str) -> Any | None:
        """Return the cached value even if expired, or None if missing.

        Does NOT delete the entry so subsequent stale reads still work
        within a burst of failures.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, _ts = entry
            return value

    def set(self, key: str, value: Any) -> None:
        """Store a value under *key*, evicting the oldest entry if at capacity."""
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = (value, self._clock())
            while len(self._store) > self._max_size:
                self._store.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def cleanup_expired(self) -> int:
        """Drop every expired entry now. Returns how many were removed."""
        with self._lock:
            expired = [
                k for k, (_v, ts) in self._store.items() if not self._is_fresh(ts)
            ]
            for key in expired:
                del self._store[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
