"""
In-memory TTL cache with lazy expiry.

One instance is created at startup and shared by every request handler in the
process, so all reads and writes go through a single lock. Values are stored by
reference; callers should cache immutable payloads (frozensets, tuples, frozen
models).
"""

import asyncio
import contextlib
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Hashable, Iterator, Optional, Tuple, Union

from grc_backend.logging_config import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]
TTL = Union[int, float, timedelta]
Version = Tuple[int, int]


def cache_key(prefix: str, *parts: Any) -> str:
    """Build a cache key such as ``role_permissions:<role_id>``."""
    return ":".join([prefix, *(str(part) for part in parts)])


def _ttl_seconds(ttl: TTL) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    value: Any
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters, exposed on the health endpoint."""

    size: int
    hits: int
    misses: int
    invalidations: int


class TTLCache:
    """
    Keyed cache with a per-entry absolute expiry.

    - ``get`` never returns an entry whose expiry has passed; a stale entry is
      treated as absent and dropped on the spot.
    - ``set`` with a non-positive TTL leaves nothing retrievable for the key.
    - ``delete`` and ``clear`` bump the key's version, so a writer holding a
      token from ``version()`` taken before the invalidation cannot put the
      older value back with ``set_if_version``.

    Every ``version()`` call must be paired with ``release()`` once the fill
    is done (``reserve()`` does both). Per-key versions are only tracked while
    a fill is outstanding, so invalidating keys nobody is filling leaves no
    bookkeeping behind.

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake clock.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, CacheEntry] = {}
        # Bumped by clear(); invalidates every outstanding version token
        self._epoch = 0
        # Outstanding version() tokens per key
        self._pending: Dict[Hashable, int] = {}
        # Bumped by delete(key); only kept for keys in _pending
        self._generations: Dict[Hashable, int] = {}
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def get(self, key: Hashable) -> Tuple[Optional[Any], bool]:
        """Return ``(value, True)`` for a live entry, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return None, False
            self._hits += 1
            return entry.value, True

    def set(self, key: Hashable, value: Any, ttl: TTL) -> None:
        """Insert or overwrite ``key``; it expires ``ttl`` after now."""
        with self._lock:
            self._store(key, value, ttl)

    def version(self, key: Hashable) -> Version:
        """
        Token describing the invalidations seen so far for ``key``.

        Registers an outstanding fill; call ``release(key)`` when done.
        """
        with self._lock:
            self._pending[key] = self._pending.get(key, 0) + 1
            return self._epoch, self._generations.get(key, 0)

    def release(self, key: Hashable) -> None:
        """End a fill started with ``version(key)``."""
        with self._lock:
            remaining = self._pending.get(key, 0) - 1
            if remaining > 0:
                self._pending[key] = remaining
                return
            self._pending.pop(key, None)
            self._generations.pop(key, None)

    @contextlib.contextmanager
    def reserve(self, key: Hashable) -> Iterator[Version]:
        """Take a version token for ``key`` and release it on exit."""
        token = self.version(key)
        try:
            yield token
        finally:
            self.release(key)

    def set_if_version(self, key: Hashable, value: Any, ttl: TTL, version: Version) -> bool:
        """
        Store ``value`` only if ``key`` was not invalidated since ``version``.

        Returns:
            True if the value was stored
        """
        with self._lock:
            if (self._epoch, self._generations.get(key, 0)) != version:
                return False
            self._store(key, value, ttl)
            return True

    def delete(self, key: Hashable) -> None:
        """Remove ``key`` if present and invalidate outstanding version tokens."""
        with self._lock:
            self._entries.pop(key, None)
            if key in self._pending:
                self._generations[key] = self._generations.get(key, 0) + 1
            self._invalidations += 1

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
            # Pending bookkeeping survives; the new epoch rejects old tokens
            self._epoch += 1
            self._invalidations += 1

    def purge_expired(self) -> int:
        """
        Drop every entry whose expiry has passed.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                invalidations=self._invalidations,
            )

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry.expires_at

    def __len__(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""
        with self._lock:
            return len(self._entries)

    def _store(self, key: Hashable, value: Any, ttl: TTL) -> None:
        # Caller holds the lock
        seconds = _ttl_seconds(ttl)
        if seconds <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + seconds)


class CacheSweeper:
    """
    Background task that purges expired entries on a fixed interval.

    Lazy expiry in ``TTLCache.get`` is enough for correctness; the sweeper only
    bounds memory held by keys that are never read again.
    """

    def __init__(self, cache: TTLCache, interval_seconds: float):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ttl-cache-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            removed = self.cache.purge_expired()
            if removed:
                logger.debug("Purged expired cache entries", extra={"removed": removed})
