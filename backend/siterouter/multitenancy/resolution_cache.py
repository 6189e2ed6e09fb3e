from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from siterouter.multitenancy.host_normalization import normalize_host


class _NotFound:
    _instance: '_NotFound | None' = None

    def __new__(cls) -> '_NotFound':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'NOT_FOUND'

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()


@dataclass(frozen=True)
class CacheEntry:
    host: str
    value: Any
    filled_at: float
    expires_at: float

    @property
    def is_negative(self) -> bool:
        return self.value is NOT_FOUND

    @property
    def ttl(self) -> float:
        return self.expires_at - self.filled_at


class ResolutionCache:
    """
    Normalized host -> TenantRef (or NOT_FOUND) with per-entry expiry.

    Expiry is checked on read. Every invalidation bumps ``generation``; a fill
    carrying an older generation is discarded so a lookup that raced an
    invalidation can never write back pre-invalidation data.
    """

    def __init__(
        self,
        *,
        positive_ttl: float = 300.0,
        negative_ttl: float = 30.0,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if positive_ttl <= 0 or negative_ttl <= 0:
            raise ValueError('Cache TTLs must be positive')
        if max_entries is not None and max_entries <= 0:
            raise ValueError('max_entries must be positive')
        self.positive_ttl = positive_ttl
        self.negative_ttl = negative_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._generation = 0
        self._hits = 0
        self._misses = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, host: str) -> CacheEntry | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(host)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= now:
                del self._entries[host]
                self._misses += 1
                return None
            self._entries.move_to_end(host)
            self._hits += 1
            return entry

    def put(self, host: str, value: Any, ttl: float | None = None, *, generation: int | None = None) -> bool:
        if ttl is None:
            ttl = self.negative_ttl if value is NOT_FOUND else self.positive_ttl
        now = self._clock()
        entry = CacheEntry(host=host, value=value, filled_at=now, expires_at=now + ttl)
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            if host in self._entries:
                self._entries.move_to_end(host)
            elif self.max_entries is not None and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[host] = entry
            return True

    def invalidate(self, host: str) -> bool:
        return self.invalidate_hosts([host]) > 0

    def invalidate_hosts(self, hosts: Iterable[str]) -> int:
        keys = {normalize_host(host) for host in hosts}
        removed = 0
        with self._lock:
            self._generation += 1
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def invalidate_all(self) -> int:
        with self._lock:
            self._generation += 1
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                'size': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'generation': self._generation,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, now: float) -> None:
        # Caller holds the lock. Expired entries go first, then the least recently
        # used negative entry, and only then the least recently used entry overall.
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if len(self._entries) < self.max_entries:
            return
        for key, entry in self._entries.items():
            if entry.is_negative:
                del self._entries[key]
                return
        self._entries.popitem(last=False)
