# storefront/services/cache.py
import threading
import time
from typing import Any, Callable


class TTLCache:
    """
    Time-boxed memoization keyed by string. One TTL for every entry, no size
    bound, no LRU. Expired entries stay until the next set() or invalidate().

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None

        inserted_at, value = entry
        if self._clock() - inserted_at < self.ttl:
            return value
        return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
