"""
In-Process Expiring Cache

A small thread-safe key/value cache used for email existence results.

Each entry has two expiry rules and goes stale at whichever comes first:
- absolute: `ttl` seconds after it was written
- sliding: `sliding_ttl` seconds after it was last read or written

When the cache is full, expired entries are dropped first and then the
least recently used entry is evicted.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Entry:
    value: Any
    created_at: float
    last_access: float


class TTLCache:
    """Bounded LRU cache with absolute and sliding expiry."""

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        sliding_ttl: float | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.maxsize = maxsize
        self.ttl = ttl
        self.sliding_ttl = sliding_ttl
        self._timer = timer
        self._data: OrderedDict[Hashable, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        if now - entry.created_at >= self.ttl:
            return True
        if self.sliding_ttl is not None and now - entry.last_access >= self.sliding_ttl:
            return True
        return False

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, entry in self._data.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._data[key]
        return len(expired)

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value, or `default` if missing or expired."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return default
            now = self._timer()
            if self._is_expired(entry, now):
                del self._data[key]
                return default
            entry.last_access = now
            self._data.move_to_end(key)
            return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            now = self._timer()
            if key in self._data:
                del self._data[key]
            elif len(self._data) >= self.maxsize:
                self._purge_locked(now)
                while len(self._data) >= self.maxsize:
                    self._data.popitem(last=False)
            self._data[key] = _Entry(value=value, created_at=now, last_access=now)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            return self._purge_locked(self._timer())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._data.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry, self._timer())
