from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from .video import ExtractionResult

ClockFn = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    result: ExtractionResult
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    entry_count: int
    hit_count: int
    miss_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "entryCount": self.entry_count,
            "hitCount": self.hit_count,
            "missCount": self.miss_count,
        }


class ResultCache:
    """
    In-memory TTL cache of extraction results keyed by tweet id.

    Expiry is passive: get() treats an expired entry as a miss and drops it,
    and reap() (run periodically by run_reaper) bounds memory between reads.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        reap_interval_seconds: float = 60.0,
        clock: ClockFn | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if reap_interval_seconds <= 0:
            raise ValueError("reap_interval_seconds must be positive")

        self._ttl = float(ttl_seconds)
        self._reap_interval = float(reap_interval_seconds)
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, post_id: str) -> ExtractionResult | None:
        entry = self._entries.get(post_id)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() >= entry.expires_at:
            self._entries.pop(post_id, None)
            self._misses += 1
            return None

        self._hits += 1
        return entry.result

    def put(self, post_id: str, result: ExtractionResult) -> None:
        self._entries[post_id] = CacheEntry(
            result=result,
            expires_at=self._clock() + self._ttl,
        )

    def stats(self) -> CacheStats:
        return CacheStats(
            entry_count=len(self._entries),
            hit_count=self._hits,
            miss_count=self._misses,
        )

    def flush(self) -> None:
        self._entries.clear()

    def reap(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def run_reaper(self) -> None:
        """Reap on a fixed interval until the surrounding task is cancelled."""
        while True:
            await asyncio.sleep(self._reap_interval)
            self.reap()

    def __len__(self) -> int:
        return len(self._entries)
