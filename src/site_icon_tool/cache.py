"""Three-tier icon cache.

Main holds fresh entries, Expired holds stale copies served while a
background refresh runs, Negative remembers origins that produced no icon.
Each tier is an independent ExpiringMap.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from .constants import DEFAULT_CACHE_CAPACITY, DEFAULT_CACHE_TTL, DEFAULT_EXPIRED_TTL
from .models import CacheEntry, CacheTier
from .utils.debug_stats import get_stats_tracker

logger = logging.getLogger(__name__)

EvictionListener = Callable[[Hashable, Any, str], None]


@dataclass
class _Slot:
    value: Any
    written_at: float
    read_at: float


class ExpiringMap:
    """
    Thread-safe bounded map with time-to-live and time-to-idle expiry.

    Expired entries are dropped lazily when touched and by purge(). When the
    map is full the least recently used entry is evicted. The eviction
    listener runs outside the lock for "expired" and "capacity" evictions;
    remove() and overwrites do not notify.
    """

    def __init__(
        self,
        capacity: int,
        ttl: float,
        tti: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_evict: EvictionListener | None = None,
    ):
        """
        Initialize map.

        Args:
            capacity: Maximum number of entries
            ttl: Seconds an entry lives after being written
            tti: Seconds an entry lives after its last read (None disables)
            clock: Monotonic time source in seconds
            on_evict: Called as on_evict(key, value, reason)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.ttl = ttl
        self.tti = tti
        self._clock = clock
        self._on_evict = on_evict
        self._data: OrderedDict[Hashable, _Slot] = OrderedDict()
        self._lock = threading.Lock()

    def _is_expired(self, slot: _Slot, now: float) -> bool:
        if now - slot.written_at >= self.ttl:
            return True
        return self.tti is not None and now - slot.read_at >= self.tti

    def _notify(self, evicted: list[tuple[Hashable, Any, str]]) -> None:
        if self._on_evict is None:
            return
        for key, value, reason in evicted:
            try:
                self._on_evict(key, value, reason)
            except Exception as e:
                logger.error(f"Eviction listener failed for {key}: {e}", exc_info=True)

    def _lookup(self, key: Hashable, touch: bool) -> Any | None:
        evicted = []
        with self._lock:
            slot = self._data.get(key)
            if slot is None:
                return None

            now = self._clock()
            if self._is_expired(slot, now):
                del self._data[key]
                evicted.append((key, slot.value, "expired"))
                value = None
            else:
                if touch:
                    slot.read_at = now
                    self._data.move_to_end(key)
                value = slot.value

        self._notify(evicted)
        return value

    def get(self, key: Hashable) -> Any | None:
        """Return the live value for key (refreshing its idle timer), or None."""
        return self._lookup(key, touch=True)

    def contains(self, key: Hashable) -> bool:
        """Check for a live entry without counting it as a read."""
        return self._lookup(key, touch=False) is not None

    def __contains__(self, key: Hashable) -> bool:
        return self.contains(key)

    def insert(self, key: Hashable, value: Any) -> None:
        """Write value under key, evicting the least recently used entries if full."""
        evicted = []
        with self._lock:
            now = self._clock()
            self._data.pop(key, None)
            self._data[key] = _Slot(value=value, written_at=now, read_at=now)

            while len(self._data) > self.capacity:
                old_key, old_slot = self._data.popitem(last=False)
                reason = "expired" if self._is_expired(old_slot, now) else "capacity"
                evicted.append((old_key, old_slot.value, reason))

        self._notify(evicted)

    def remove(self, key: Hashable) -> Any | None:
        """Remove key without notifying the listener. Returns the removed value."""
        with self._lock:
            slot = self._data.pop(key, None)
        return slot.value if slot is not None else None

    def purge(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries dropped
        """
        evicted = []
        with self._lock:
            now = self._clock()
            for key, slot in list(self._data.items()):
                if self._is_expired(slot, now):
                    del self._data[key]
                    evicted.append((key, slot.value, "expired"))

        self._notify(evicted)
        return len(evicted)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class IconCache:
    """
    Main, Expired and Negative tiers behind one interface.

    Main entries that expire or are pushed out by capacity are copied to
    Expired, where they stay available as stale fallback. A key marked
    negative is authoritative: lookups miss and writes are refused until the
    marker lapses.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CACHE_CAPACITY,
        ttl: float = DEFAULT_CACHE_TTL,
        expired_ttl: float = DEFAULT_EXPIRED_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache tiers.

        Args:
            capacity: Main and Expired capacity (Negative gets half)
            ttl: Main time-to-live in seconds (idle timeout is twice this,
                Negative lives half of it)
            expired_ttl: Expired tier time-to-live in seconds
            clock: Monotonic time source, injectable for tests
        """
        self.main = ExpiringMap(
            capacity, ttl, tti=ttl * 2, clock=clock, on_evict=self._on_main_evict
        )
        self.expired = ExpiringMap(capacity, expired_ttl, clock=clock)
        self.negative = ExpiringMap(max(1, capacity // 2), ttl / 2, clock=clock)

    def _on_main_evict(self, key: str, entry: CacheEntry, reason: str) -> None:
        logger.debug(f"Main cache evicted {key} ({reason}), keeping stale copy")
        self.move_to_expired(key, entry)

    def get(self, key: str) -> tuple[CacheEntry, bool] | None:
        """
        Look up a key across the tiers.

        Args:
            key: Cache key (see build_cache_key())

        Returns:
            (entry, needs_refresh) on a hit, None on a miss or negative hit
        """
        stats = get_stats_tracker()

        if self.negative.contains(key):
            stats.record_cache_lookup(key, CacheTier.NEGATIVE.value)
            return None

        entry = self.main.get(key)
        if entry is not None:
            entry.access_count += 1
            stats.record_cache_lookup(key, CacheTier.MAIN.value)
            return entry, False

        entry = self.expired.get(key)
        if entry is not None:
            stats.record_cache_lookup(key, CacheTier.EXPIRED.value)
            return entry, True

        stats.record_cache_lookup(key, "miss")
        return None

    def insert(self, key: str, content: bytes, content_type: str, etag: str | None = None) -> bool:
        """
        Store a fresh entry in Main.

        Args:
            key: Cache key
            content: Response body
            content_type: Response content type
            etag: Precomputed ETag (computed from content if omitted)

        Returns:
            False if the write was refused because the key is marked negative
        """
        if self.negative.contains(key):
            logger.warning(f"Refusing to cache {key}: key is marked as not found")
            return False

        entry = CacheEntry.create(content, content_type)
        if etag is not None:
            entry.etag = etag
        self.main.insert(key, entry)
        logger.debug(f"Cached {key} ({len(content)} bytes, {content_type})")
        return True

    def move_to_expired(self, key: str, entry: CacheEntry) -> None:
        """Keep a copy of an entry as stale fallback."""
        self.expired.insert(key, entry)

    def remove_from_expired(self, key: str) -> None:
        """Drop the stale copy of a key."""
        self.expired.remove(key)

    def insert_negative(self, key: str) -> None:
        """Mark a key as a known failed lookup."""
        self.negative.insert(key, True)
        logger.debug(f"Negative cached {key}")

    def is_negative(self, key: str) -> bool:
        return self.negative.contains(key)

    def stats(self) -> tuple[int, int, int]:
        """
        Count live entries per tier.

        Returns:
            Tuple of (main, expired, negative) entry counts
        """
        for tier in (self.main, self.expired, self.negative):
            tier.purge()
        return len(self.main), len(self.expired), len(self.negative)
