import time
from dataclasses import dataclass
from typing import Any, Callable

from cachetools import FIFOCache

from .config import settings


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    inserted_at: float
    ttl: float

    def fresh(self, now: float) -> bool:
        return now - self.inserted_at <= self.ttl


class ResultCache:
    """
    Process-local, size-bounded cache with a fixed time-to-live.

    Entries are checked for expiry on read; when full, the oldest inserted
    entry is evicted first (FIFO), regardless of how often it was read.
    Not shared between server instances.
    """
    def __init__(self, maxsize: int, ttl: float, timer: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.timer = timer
        self._entries: FIFOCache = FIFOCache(maxsize=maxsize)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.fresh(self.timer()):
            # Expired: drop it so it stops counting against capacity
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        # Re-inserting refreshes the timestamp and the FIFO position
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self.timer(), ttl=self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


search_cache = ResultCache(
    maxsize=settings.SEARCH_CACHE_MAXSIZE,
    ttl=settings.SEARCH_CACHE_TTL_SECONDS,
)
