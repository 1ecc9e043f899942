"""In-memory TTL cache used to avoid repeated LLM calls for the same README.

Thread-safe, LRU-bounded, per-process. Values are stored as plain dicts so
the cache never holds live model objects.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from hashlib import sha256
from typing import Any

logger = logging.getLogger(__name__)


CachedValue = dict[str, Any]


@dataclass
class CacheItem:
    value: CachedValue
    expires_at: float


class SimpleTTLCache:
    """Thread-safe, in-memory TTL cache with LRU eviction.

    Attributes:
        ttl_seconds: Time-to-live applied to all entries.
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int | None = 1024) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._store: OrderedDict[str, CacheItem] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(ttl_seconds={self._ttl}, max_entries={self._max_entries}, "
            f"size={len(self._store)})"
        )

    def get(self, key: str) -> CachedValue | None:
        """Return the cached value, or None if missing or expired."""

        with self._lock:
            item = self._store.get(key)
            if item is None or time.time() > item.expires_at:
                if item is not None:
                    self._evict(key)
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={"cache_key": key[:16], "reason": "expired" if item else "not_found"},
                )
                return None

            self._hits += 1
            self._store.move_to_end(key)
            logger.debug("cache.hit", extra={"cache_key": key[:16]})
            return item.value

    def set(self, key: str, value: CachedValue) -> None:
        """Store a value with TTL, evicting expired and least recently used entries."""

        with self._lock:
            now = time.time()
            for expired in [k for k, item in self._store.items() if item.expires_at <= now]:
                self._evict(expired)

            self._store[key] = CacheItem(value=value, expires_at=now + self._ttl)
            self._store.move_to_end(key)

            if self._max_entries is not None:
                while len(self._store) > self._max_entries:
                    # Oldest access first
                    self._store.popitem(last=False)
                    self._evictions += 1

            logger.debug("cache.set", extra={"cache_key": key[:16], "size": len(self._store)})

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = self._misses = self._evictions = 0

    def stats(self) -> dict[str, int | None]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1


def build_cache_key(*parts: str) -> str:
    """Build a stable SHA-256 cache key from text parts.

    Parts are length-prefixed so ("ab", "c") and ("a", "bc") differ.

    Examples:
        >>> build_cache_key("v1", "readme") == build_cache_key("v1", "readme")
        True
    """

    hasher = sha256()
    for part in parts:
        encoded = part.encode("utf-8", errors="ignore")
        hasher.update(f"{len(encoded)}:".encode())
        hasher.update(encoded)
    return hasher.hexdigest()
