"""Thread-safe key/value cache with lazy time-based expiry."""

import time
from threading import Lock
from typing import Any, Callable, Generic, Optional, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """
    Map whose entries disappear ``ttl_seconds`` after insertion.

    Expiry is checked on read (``now - inserted_at >= ttl``), so behavior is a
    pure function of the injected clock.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, V]] = {}
        self._lock = Lock()

    def _expired(self, inserted_at: float, now: float) -> bool:
        return now - inserted_at >= self.ttl_seconds

    def set(self, key: str, value: V, inserted_at: Optional[float] = None) -> float:
        """Store ``value`` and return its insertion time (``inserted_at`` or the clock's now)."""
        with self._lock:
            now = self._clock() if inserted_at is None else inserted_at
            self._entries[key] = (now, value)
            return now

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            inserted_at, value = entry
            if self._expired(inserted_at, self._clock()):
                del self._entries[key]
                return None
            return value

    def pop(self, key: str) -> Optional[V]:
        """Remove ``key``; returns None if it was absent or already expired."""
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None or self._expired(entry[0], self._clock()):
                return None
            return entry[1]

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [key for key, (inserted_at, _) in self._entries.items() if self._expired(inserted_at, now)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None
