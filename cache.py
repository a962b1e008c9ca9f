# cache.py
"""
In-memory extraction cache.

Entries expire lazily when read; when the cache is full the oldest inserted
entry is dropped, regardless of how recently it was read.
"""
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, NamedTuple, Optional

import config
from models import CacheStats

logger = logging.getLogger(__name__)


class CacheEntry(NamedTuple):
    key: str
    payload: Any
    created_at: float
    ttl: float


class ExtractionCache:
    def __init__(
        self,
        max_size: int = config.CACHE_MAX_SIZE,
        default_ttl: float = config.CACHE_DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max(1, max_size)
        self.default_ttl = default_ttl
        self.clock = clock
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[Any]:
        entry = self.entry(key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.payload

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Live entry for ``key`` without touching the counters."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.created_at >= entry.ttl:
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry

    def age(self, key: str) -> Optional[float]:
        entry = self.entry(key)
        return None if entry is None else self.clock() - entry.created_at

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        if key in self._entries:
            # Re-inserting moves the key to the newest position
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {oldest}")
        self._entries[key] = CacheEntry(key, payload, self.clock(), self.default_ttl if ttl is None else ttl)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.entry(key) is not None

    def stats(self) -> CacheStats:
        lookups = self.hits + self.misses
        return CacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            hits=self.hits,
            misses=self.misses,
            hit_rate=round(self.hits / lookups, 4) if lookups else 0.0,
        )
