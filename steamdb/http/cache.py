"""Response cache stores.

The client talks to any object exposing ``fetch(key)`` and
``write(key, value, expires_in)``; :class:`InMemoryCache` is the default.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    """Cached value with an optional expiry instant (``None`` never expires)."""
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class CacheStore(ABC):
    """Key/value store contract used by ``HttpClient``.

    Implementations must return ``None`` for a missing key rather than raise.
    """

    @abstractmethod
    def fetch(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or ``None``."""
        pass

    @abstractmethod
    def write(self, key: str, value: Any, expires_in: Optional[float]) -> Any:
        """Store ``value`` for ``expires_in`` seconds and return it."""
        pass


class InMemoryCache(CacheStore):
    """Thread-safe in-process cache with lazy TTL expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def fetch(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return entry.value

    def write(self, key: str, value: Any, expires_in: Optional[float] = None) -> Any:
        with self._lock:
            expires_at = self._clock() + float(expires_in) if expires_in is not None else None
            self._store[key] = CacheEntry(value, expires_at)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


def is_cache_store(store: Any) -> bool:
    """True when ``store`` quacks like a cache store."""
    return callable(getattr(store, "fetch", None)) and callable(getattr(store, "write", None))
