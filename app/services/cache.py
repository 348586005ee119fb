"""In-memory caches shared by the analysis and product services."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

from app.config import settings


class MemoryCache:
    """Thread-safe in-memory cache with optional capacity and TTL.

    With the defaults (no capacity, no TTL) entries live for the process
    lifetime until clear() is called.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls) -> "MemoryCache":
        return cls(
            max_entries=settings.cache_max_entries,
            ttl_seconds=settings.cache_ttl_seconds,
        )

    def _expired(self, stored_at: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return self._clock() - stored_at > self.ttl_seconds

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value for key, or default if missing/expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return default

            stored_at, value = entry
            if self._expired(stored_at):
                del self._entries[key]
                self.misses += 1
                return default

            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store value under key, evicting the least recently used entry if full."""
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop all entries. Returns the number of entries removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry[0])

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        """Get cache statistics."""
        return {
            "entries": len(self),
            "hits": self.hits,
            "misses": self.misses,
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
        }


class QuotaGuard:
    """Sticky flag for one family of remote calls.

    Once tripped by a quota/rate-limit error, remote calls of that family
    are skipped. Without a cooldown the flag stays set until reset().
    """

    def __init__(
        self,
        name: str,
        cooldown_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._tripped_at: Optional[float] = None
        self.reason: Optional[str] = None

    @property
    def exceeded(self) -> bool:
        if self._tripped_at is None:
            return False
        if (
            self.cooldown_seconds is not None
            and self._clock() - self._tripped_at >= self.cooldown_seconds
        ):
            self.reset()
            return False
        return True

    def trip(self, reason: str = "") -> None:
        if self._tripped_at is None:
            self._tripped_at = self._clock()
            self.reason = reason

    def reset(self) -> None:
        self._tripped_at = None
        self.reason = None


QUOTA_ERROR_KEYWORDS = ("quota", "rate limit", "capacity", "billing")


def is_quota_error(error: Optional[BaseException]) -> bool:
    """Check whether an error is a quota/rate-limit class failure."""
    if error is None:
        return False
    if getattr(error, "is_quota_error", False):
        return True
    message = str(error).lower()
    return any(keyword in message for keyword in QUOTA_ERROR_KEYWORDS)
