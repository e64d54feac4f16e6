"""Caching strategies for compiled policies and merged ACLs.

The resolver only talks to the Cache protocol, so hosts can pick
NullCache, MemoryCache, or their own implementation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CacheEntry(BaseModel):
    """A cached item."""

    key: Hashable
    value: Any
    created_at: float = Field(default_factory=time.time)
    expires_at: float | None = None
    hit_count: int = 0
    last_accessed: float = Field(default_factory=time.time)

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CacheStats(BaseModel):
    """Cache statistics."""

    total_entries: int = 0
    total_hits: int = 0
    total_misses: int = 0
    evictions: int = 0
    hit_rate: float = 0.0


@runtime_checkable
class Cache(Protocol):
    """Get-or-compute store for immutable values.

    Values are never None; None from get() means a miss.
    """

    def get(self, key: Hashable) -> Any | None: ...

    def put(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None: ...

    def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Any],
        ttl_seconds: float | None = None,
    ) -> Any: ...

    def invalidate(self, key: Hashable) -> bool: ...

    def invalidate_where(self, predicate: Callable[[Hashable], bool]) -> int: ...

    def clear(self) -> int: ...

    def stats(self) -> CacheStats: ...


class NullCache:
    """Cache that never stores anything."""

    def __init__(self):
        self._misses = 0

    def get(self, key: Hashable) -> Any | None:
        self._misses += 1
        return None

    def put(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None:
        pass

    def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Any],
        ttl_seconds: float | None = None,
    ) -> Any:
        self._misses += 1
        return compute()

    def invalidate(self, key: Hashable) -> bool:
        return False

    def invalidate_where(self, predicate: Callable[[Hashable], bool]) -> int:
        return 0

    def clear(self) -> int:
        return 0

    def stats(self) -> CacheStats:
        return CacheStats(total_misses=self._misses)


class MemoryCache:
    """Thread-safe in-memory cache with TTL expiry and LRU eviction.

    get_or_compute() lets concurrent misses for one key share a single
    computation. A computation that raises stores nothing.
    """

    def __init__(
        self,
        default_ttl_seconds: float | None = 3600,  # 1 hour
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.default_ttl = default_ttl_seconds
        self.max_entries = max_entries
        self._clock = clock

        self._entries: dict[Hashable, CacheEntry] = {}
        self._inflight: dict[Hashable, threading.Lock] = {}
        self._lock = threading.Lock()

        # Stats
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _lookup(self, key: Hashable) -> Any | None:
        """Find a live entry. Caller holds self._lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            return None
        entry.hit_count += 1
        entry.last_accessed = now
        return entry.value

    def _evict_if_needed(self) -> None:
        """Evict entries if cache is full. Caller holds self._lock."""
        if len(self._entries) < self.max_entries:
            return

        # Remove expired entries first
        now = self._clock()
        expired = [k for k, v in self._entries.items() if v.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._evictions += len(expired)

        # If still full, remove least recently used
        if len(self._entries) >= self.max_entries:
            sorted_entries = sorted(self._entries.items(), key=lambda x: x[1].last_accessed)
            to_remove = len(self._entries) - self.max_entries + 1
            for key, _ in sorted_entries[:to_remove]:
                del self._entries[key]
            self._evictions += to_remove

    def get(self, key: Hashable) -> Any | None:
        """Get a cached value, or None on a miss."""
        with self._lock:
            value = self._lookup(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
            return value

    def put(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None:
        """Cache a value."""
        if value is None:
            raise ValueError("Cannot cache None")
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        now = self._clock()

        with self._lock:
            if key not in self._entries:
                self._evict_if_needed()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                expires_at=now + ttl if ttl else None,
                last_accessed=now,
            )

    def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], Any],
        ttl_seconds: float | None = None,
    ) -> Any:
        """Get a cached value, computing and storing it on a miss."""
        with self._lock:
            value = self._lookup(key)
            if value is not None:
                self._hits += 1
                return value
            key_lock = self._inflight.setdefault(key, threading.Lock())

        with key_lock:
            # Another thread may have finished the same computation meanwhile
            with self._lock:
                value = self._lookup(key)
                if value is not None:
                    self._hits += 1
                    return value
                self._misses += 1

            try:
                value = compute()
                self.put(key, value, ttl_seconds)
                return value
            finally:
                with self._lock:
                    if self._inflight.get(key) is key_lock:
                        del self._inflight[key]

    def invalidate(self, key: Hashable) -> bool:
        """Drop one entry."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_where(self, predicate: Callable[[Hashable], bool]) -> int:
        """Drop every entry whose key matches the predicate."""
        with self._lock:
            keys_to_remove = [k for k in self._entries if predicate(k)]
            for key in keys_to_remove:
                del self._entries[key]
            return len(keys_to_remove)

    def clear(self) -> int:
        """Clear all entries."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        with self._lock:
            total_requests = self._hits + self._misses
            return CacheStats(
                total_entries=len(self._entries),
                total_hits=self._hits,
                total_misses=self._misses,
                evictions=self._evictions,
                hit_rate=(self._hits / total_requests * 100) if total_requests > 0 else 0.0,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = [
    "Cache",
    "CacheEntry",
    "CacheStats",
    "MemoryCache",
    "NullCache",
]
