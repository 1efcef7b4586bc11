"""
In-memory response cache for the fleet API proxy.

Stores already-shaped JSON response bodies keyed by endpoint-specific
strings ('all_flights', 'all_vehicles', 'flights_2_100', ...), enabling:
- One upstream round trip per TTL window instead of one per request
- Automatic expiration (checked on read, and swept in the background)
- Thread-safe operations for concurrent Flask request threads

Design rationale:
Fleet records change slowly compared with how often the dashboard is
reloaded, so a five minute TTL keeps the upstream API quiet while the
numbers stay reasonably fresh. There is no partial invalidation: the
clear endpoint flushes everything.

The cache is constructed explicitly and handed to the app (see
create_app), so tests and multiple apps get independent instances.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the moment it was captured."""
    value: Any
    cached_at: float = field(default_factory=time.time)

    @property
    def cached_at_iso(self) -> str:
        return datetime.fromtimestamp(self.cached_at, tz=timezone.utc).isoformat()


class TTLCache:
    """
    Thread-safe key/value cache with a shared time-to-live.

    Entries expire ttl_seconds after insertion. get() treats an expired
    entry as a miss even if the sweeper has not removed it yet.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        check_period_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.check_period_seconds = check_period_seconds
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        # Background sweeper
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self._hits = 0
        self._misses = 0
        self._last_flush: Optional[float] = None

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.cached_at >= self.ttl_seconds

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """
        Get the cache entry for key.

        Returns None if not cached or expired.
        """
        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if not self._is_expired(entry, now):
                    self._hits += 1
                    return entry
                # Expired
                del self._entries[key]
            self._misses += 1

        return None

    def get(self, key: str) -> Optional[Any]:
        """Get the cached value for key, or None on a miss."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, cached_at: Optional[float] = None) -> CacheEntry:
        """
        Store value under key.

        The entry is stamped with the current time unless cached_at is
        given; a value derived from another cached entry passes that
        entry's capture time so both expire together.
        """
        if cached_at is None:
            cached_at = self._clock()
        entry = CacheEntry(value=value, cached_at=cached_at)
        with self._lock:
            self._entries[key] = entry
        logger.debug(f'Cached {key}')
        return entry

    def flush_all(self) -> int:
        """Clear every entry. Returns how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._last_flush = self._clock()
        logger.info(f'Cache flushed ({removed} entries)')
        return removed

    def sweep(self) -> int:
        """Evict expired entries. Returns count evicted."""
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f'Swept {len(expired)} expired cache entries')
        return len(expired)

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self.check_period_seconds):
            self.sweep()

    def start_sweeper(self) -> None:
        """Start periodic eviction in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Cache sweeper already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_sweeper,
            name='cache-sweeper',
            daemon=True,
        )
        self._thread.start()
        logger.info(f'Cache sweeper started (every {self.check_period_seconds}s)')

    def stop_sweeper(self) -> None:
        """Stop the background sweeper."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'entries': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / lookups if lookups > 0 else 0,
                'ttl_seconds': self.ttl_seconds,
                'last_flush': self._last_flush,
                'sweeper_running': bool(self._thread and self._thread.is_alive()),
            }
