"""TTL response cache for idempotent GET requests.

Entries are keyed by ``(method, endpoint, sha256(body))``. Expired entries are
treated as absent and dropped on read. Once the cache is full, inserting a new
key evicts the entry with the oldest insertion time (reads do not refresh it).
"""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from pydantic import BaseModel

from .rate_limiter import Clock

T = TypeVar("T")

CacheKey = Tuple[str, str, str]


def make_cache_key(method: str, endpoint: str, body: Optional[Any] = None) -> CacheKey:
    encoded = json.dumps(body if body is not None else {}, sort_keys=True, default=str)
    return method.upper(), endpoint, hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float


class CacheStats(BaseModel):
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate_percentage: float
    ttl_ms: int


class ResponseCache(Generic[T]):
    def __init__(self, max_size: int, ttl_ms: int, *, clock: Clock = time.monotonic) -> None:
        self._max_size = max_size
        self._ttl_ms = ttl_ms
        self._ttl_s = ttl_ms / 1000.0
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[T]] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry)

    def _expired(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.inserted_at > self._ttl_s

    def get(self, key: Hashable) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._expired(entry):
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: Hashable, value: T) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            oldest = min(self._entries, key=lambda k: self._entries[k].inserted_at)
            del self._entries[oldest]
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        total = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            max_size=self._max_size,
            hits=self._hits,
            misses=self._misses,
            hit_rate_percentage=(self._hits / total * 100) if total else 0.0,
            ttl_ms=self._ttl_ms,
        )
