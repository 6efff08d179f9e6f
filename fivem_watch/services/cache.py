"""
TtlCache - In-memory key/value cache with a fixed per-entry TTL.

Features:
- Lazy expiry: an expired entry is evicted by the next get() that touches it
- Optional background sweep that prunes expired entries periodically
- Hit/miss statistics for diagnostics
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, Hashable, TypeVar

from loguru import logger

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """A single cache entry."""

    value: V
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if entry is past its expiry time."""
        return (now or datetime.now()) > self.expires_at


class TtlCache(Generic[K, V]):
    """
    Key/value store where every entry expires ``ttl_ms`` milliseconds after
    it was set.

    A TTL of 0 means "caching disabled"; owners should not build a cache at
    all in that case.

    Usage:
        cache = TtlCache(ttl_ms=5000)
        cache.set("info", data)

        cached = cache.get("info")
        if cached is not None:
            return cached
    """

    def __init__(
        self,
        ttl_ms: int,
        sweep_interval_ms: int | None = None,
        name: str = "cache",
        debug: bool = False,
    ):
        if ttl_ms < 0:
            raise ValueError("ttl_ms must be >= 0")
        self._ttl = timedelta(milliseconds=ttl_ms)
        self._store: dict[K, CacheEntry[V]] = {}
        self._sweep_interval_ms = sweep_interval_ms
        self._sweeper: asyncio.Task[None] | None = None
        self._name = name
        self._debug = debug
        self._stats = CacheStats()

    @property
    def ttl_ms(self) -> int:
        return int(self._ttl.total_seconds() * 1000)

    def get(self, key: K) -> V | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key}")
            return None

        if entry.is_expired():
            del self._store[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            self._log(f"EXPIRED: {key}")
            return None

        self._stats.hits += 1
        self._log(f"HIT: {key}")
        return entry.value

    def set(self, key: K, value: V) -> None:
        self._store[key] = CacheEntry(value=value, expires_at=datetime.now() + self._ttl)
        self._log(f"SET: {key} (TTL: {self.ttl_ms}ms)")

    def delete(self, key: K) -> bool:
        """Delete a specific key. Returns True if it was present."""
        if key in self._store:
            del self._store[key]
            self._log(f"DELETE: {key}")
            return True
        return False

    def clear(self) -> None:
        count = len(self._store)
        self._store.clear()
        self._log(f"CLEAR: {count} entries removed")

    def prune(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = datetime.now()
        expired_keys = [k for k, v in self._store.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._store[key]

        if expired_keys:
            self._stats.expirations += len(expired_keys)
            self._log(f"PRUNE: {len(expired_keys)} expired entries removed")

        return len(expired_keys)

    def start_sweeper(self) -> None:
        """
        Start the background sweep on the running event loop.

        No-op when no sweep interval was configured or the sweep is already
        running.
        """
        if not self._sweep_interval_ms or self._sweeper is not None:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        interval = self._sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            self.prune()

    def destroy(self) -> None:
        """Stop the background sweep and drop every entry."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
        self.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        entry = self._store.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.is_expired()

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._store)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[{self._name}] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
