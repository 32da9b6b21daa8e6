"""
In-process caches for catalog and identity lookups.

The catalog is effectively immutable on the timescale of a session, so
results are memoized across requests. Components receive a cache instance
instead of reaching for module globals, so tests can pass a NullCache or a
fresh MemoCache.
"""
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Protocol, Tuple

_MISSING = object()


class Cache(Protocol):
    """Minimal cache interface used by the catalog client and identity resolver."""

    def get(self, key: Hashable, default: Any = None) -> Any: ...

    def set(self, key: Hashable, value: Any) -> None: ...

    def evict(self, key: Hashable) -> None: ...

    def __contains__(self, key: Hashable) -> bool: ...


class TTLCache:
    """
    Bounded cache with a fixed time-to-live per entry.

    When full, the oldest inserted entry is evicted before a new one is
    stored. Expired entries are dropped lazily on read.
    """

    def __init__(self, max_entries: int, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if expires_at <= self._clock():
                self._data.pop(key, None)
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        if self.max_entries <= 0 or self.ttl_seconds <= 0:
            return
        with self._lock:
            self._data.pop(key, None)
            while len(self._data) >= self.max_entries:
                self._data.popitem(last=False)
            self._data[key] = (self._clock() + self.ttl_seconds, value)

    def evict(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._data)


class MemoCache:
    """Unbounded memo map. Stores None results too, so a real "not found" is not looked up again."""

    def __init__(self):
        self._data: Dict[Hashable, Any] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value

    def evict(self, key: Hashable) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: Hashable, default: Any = None) -> Any:
        return default

    def set(self, key: Hashable, value: Any) -> None:
        return None

    def evict(self, key: Hashable) -> None:
        return None

    def __contains__(self, key: Hashable) -> bool:
        return False


def memoized(cache: Cache, key: Hashable, compute: Callable[[], Any]) -> Any:
    """Return cache[key], computing and storing it on a miss."""
    value = cache.get(key, _MISSING)
    if value is not _MISSING:
        return value
    value = compute()
    cache.set(key, value)
    return value
