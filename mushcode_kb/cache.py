"""In-memory LRU cache with per-entry TTL and hit/miss statistics.

Entries are kept in an OrderedDict in recency order: the front is the least
recently used entry and is what gets evicted when the cache is full. TTLs are
in seconds; a stale entry is removed lazily when ``get``/``has`` touch it,
and eagerly by ``sweep()``.

An optional background sweeper (``cleanup_interval``) calls ``sweep()``
periodically. It is a daemon thread owned by the cache and must be stopped
with ``stop()``/``destroy()`` (or by using the cache as a context manager).

The cache is an accelerator only. A cold cache must give the same answers
as a warm one, so nothing here raises under normal use.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE = 1000


@dataclass
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float
    ttl: float | None = None
    access_count: int = 1
    last_accessed_at: float = 0.0

    def is_stale(self, now: float) -> bool:
        # ttl of None or 0 never expires
        if not self.ttl:
            return False
        return now - self.inserted_at > self.ttl

    def expires_at(self) -> float | None:
        return self.inserted_at + self.ttl if self.ttl else None


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    size: int = 0
    max_size: int = DEFAULT_MAX_SIZE
    evictions: int = 0
    total_requests: int = 0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": self.hit_rate,
            "size": self.size,
            "maxSize": self.max_size,
            "evictions": self.evictions,
            "totalRequests": self.total_requests,
        }


class LRUCache(Generic[T]):
    """Least-recently-used cache keyed by string."""

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        default_ttl: float | None = None,
        cleanup_interval: float | None = None,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.name = name
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._hit_rate = 0.0

        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None
        if cleanup_interval:
            self.start()

    # ── Core operations ───────────────────────────────────────────

    def get(self, key: str, default: T | None = None) -> T | None:
        """Return the cached value, or ``default`` on a miss.

        A hit refreshes the entry's access metadata and makes it the most
        recently used. A stale entry counts as a miss and is removed.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                self._update_hit_rate()
                return default

            if entry.is_stale(now):
                del self._entries[key]
                self._misses += 1
                self._update_hit_rate()
                logger.debug("Cache %s: expired key %s", self.name, key)
                return default

            entry.access_count += 1
            entry.last_accessed_at = now
            self._entries.move_to_end(key)
            self._hits += 1
            self._update_hit_rate()
            logger.debug(
                "Cache %s: hit %s (access_count=%d)", self.name, key, entry.access_count,
            )
            return entry.value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Insert or overwrite. Evicts the LRU entry when a new key is full."""
        with self._lock:
            now = self._clock()
            entry = CacheEntry(
                value=value,
                inserted_at=now,
                ttl=ttl if ttl is not None else self.default_ttl,
                last_accessed_at=now,
            )
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                logger.debug("Cache %s: updated %s", self.name, key)
                return

            if len(self._entries) >= self.max_size:
                self._evict_lru()
            self._entries[key] = entry
            logger.debug(
                "Cache %s: set %s (ttl=%s, size=%d)",
                self.name, key, entry.ttl, len(self._entries),
            )

    def has(self, key: str) -> bool:
        """Presence check. Drops a stale entry; never changes recency or stats."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_stale(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            logger.debug("Cache %s: deleted %s", self.name, key)
            return True

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._evictions += dropped
        logger.info("Cache %s cleared, evicted %d entries", self.name, dropped)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hit_rate,
                size=len(self._entries),
                max_size=self.max_size,
                evictions=self._evictions,
                total_requests=self._hits + self._misses,
            )

    # ── Introspection ─────────────────────────────────────────────

    def keys_by_frequency(self) -> list[dict]:
        """Keys with access metadata, most accessed first."""
        with self._lock:
            rows = [
                {
                    "key": key,
                    "access_count": entry.access_count,
                    "last_accessed_at": entry.last_accessed_at,
                }
                for key, entry in self._entries.items()
            ]
        rows.sort(key=lambda r: r["access_count"], reverse=True)
        return rows

    def expiring_entries(self, within: float = 300.0) -> list[str]:
        """Keys of fresh entries that expire in the next ``within`` seconds."""
        with self._lock:
            now = self._clock()
            expiring = []
            for key, entry in self._entries.items():
                expires_at = entry.expires_at()
                if expires_at is not None and now < expires_at <= now + within:
                    expiring.append(key)
            return expiring

    def refresh_ttl(self, key: str, ttl: float | None = None) -> bool:
        """Restart an entry's TTL clock, optionally with a new TTL."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.inserted_at = self._clock()
            if ttl is not None:
                entry.ttl = ttl
            return True

    # ── Expiry ────────────────────────────────────────────────────

    def sweep(self) -> int:
        """Remove every stale entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if entry.is_stale(now)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(
                "Cache %s: sweep removed %d expired entries (%d remaining)",
                self.name, len(stale), len(self._entries),
            )
        return len(stale)

    def start(self) -> None:
        """Start the background sweeper (no-op if running or no interval)."""
        if not self.cleanup_interval or self.sweeper_running:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name=f"cache-sweep-{self.name}",
            daemon=True,
        )
        self._sweeper.start()

    def stop(self) -> None:
        """Cancel the background sweeper and wait for it to exit."""
        self._stop_event.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=5)

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def destroy(self) -> None:
        """Stop the sweeper and drop every entry."""
        self.stop()
        self.clear()

    def __enter__(self) -> "LRUCache[T]":
        return self

    def __exit__(self, *exc) -> None:
        self.destroy()

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.cleanup_interval):
            self.sweep()

    # ── Internals ─────────────────────────────────────────────────

    def _evict_lru(self) -> None:
        if not self._entries:
            return
        key, _entry = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug("Cache %s: evicted LRU key %s", self.name, key)

    def _update_hit_rate(self) -> None:
        total = self._hits + self._misses
        self._hit_rate = self._hits / total if total else 0.0


class CacheManager:
    """Named LRU caches sharing default options.

    Owned by whoever serves requests and torn down with ``destroy()``.
    """

    DEFAULTS = {
        "max_size": DEFAULT_MAX_SIZE,
        "default_ttl": 300.0,
        "cleanup_interval": 60.0,
    }

    def __init__(self, **defaults):
        self.defaults = {**self.DEFAULTS, **defaults}
        self._caches: dict[str, LRUCache] = {}

    def get_cache(self, name: str, **options) -> LRUCache:
        """Return the named cache, creating it on first use."""
        cache = self._caches.get(name)
        if cache is None:
            cache = LRUCache(name=name, **{**self.defaults, **options})
            self._caches[name] = cache
            logger.info(
                "Created cache %s (max_size=%d, default_ttl=%s)",
                name, cache.max_size, cache.default_ttl,
            )
        return cache

    def names(self) -> list[str]:
        return list(self._caches)

    def all_stats(self) -> dict[str, dict]:
        return {name: cache.stats().to_dict() for name, cache in self._caches.items()}

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    def destroy(self) -> None:
        for name, cache in self._caches.items():
            cache.destroy()
            logger.info("Destroyed cache %s", name)
        self._caches.clear()
