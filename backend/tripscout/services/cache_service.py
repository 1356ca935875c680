"""In-memory TTL/LRU cache used by the geocoding and weather services."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from tripscout.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    key: str
    value: T
    created_at: float
    expires_at: float
    access_count: int = 0
    last_accessed_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStats:
    name: str
    hits: int
    misses: int
    size: int
    max_size: int
    evictions: int
    expirations: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total * 100, 1) if total else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "max_size": self.max_size,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "hit_rate": self.hit_rate,
        }


class TTLCache(Generic[T]):
    """Bounded key/value store with per-entry expiry and LRU eviction.

    Entries are kept in access order: the first entry of the underlying
    ``OrderedDict`` is always the least recently accessed one. Reads and
    writes are synchronous and only ever happen on the event loop thread.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        max_size: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def get(self, key: str) -> T | None:
        """Return the cached value, or None on miss. Expired entries are removed."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            self._expirations += 1
            self._misses += 1
            logger.debug(f"[{self.name}] expired: {key}")
            return None

        entry.access_count += 1
        entry.last_accessed_at = now
        self._entries.move_to_end(key)
        self._hits += 1
        logger.debug(f"[{self.name}] hit: {key}")
        return entry.value

    def set(self, key: str, value: T) -> None:
        now = self._clock()
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"[{self.name}] evicted LRU entry: {evicted_key}")

        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + self.ttl_seconds,
            last_accessed_at=now,
        )

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def peek_entry(self, key: str) -> CacheEntry[T] | None:
        """Entry metadata without touching statistics or recency."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            hits=self._hits,
            misses=self._misses,
            size=len(self._entries),
            max_size=self.max_size,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def __contains__(self, key: str) -> bool:
        return self.peek_entry(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


# Typed key helpers

def location_key(code: str) -> str:
    return f"location:{code.upper()}"


def forecast_key(code: str, day: str) -> str:
    return f"forecast:{code.upper()}:{day}"


geocoding_cache: TTLCache = TTLCache(
    "geocoding",
    ttl_seconds=settings.geocoding_cache_ttl_seconds,
    max_size=settings.geocoding_cache_max_size,
)
weather_cache: TTLCache = TTLCache(
    "weather",
    ttl_seconds=settings.weather_cache_ttl_seconds,
    max_size=settings.weather_cache_max_size,
)
