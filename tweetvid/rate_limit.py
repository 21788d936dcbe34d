from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque


@dataclass
class SlidingWindowRateLimiter:
    """
    Per-client request limiter over a sliding time window.

    allow() records the request and returns True while the client has made
    fewer than `max_requests` requests in the last `window_seconds`.
    """

    max_requests: int
    window_seconds: float
    clock: Callable[[], float] = time.monotonic
    _hits: dict[str, Deque[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

    def allow(self, key: str) -> bool:
        now = self.clock()
        hits = self._hits.setdefault(key, deque())
        self._evict(hits, now)

        if len(hits) >= self.max_requests:
            return False

        hits.append(now)
        return True

    def retry_after(self, key: str) -> float:
        """Seconds until `key` may make another request (0 if it may now)."""
        hits = self._hits.get(key)
        if not hits:
            return 0.0
        now = self.clock()
        self._evict(hits, now)
        if len(hits) < self.max_requests:
            return 0.0
        return max(0.0, hits[0] + self.window_seconds - now)

    def prune(self) -> None:
        now = self.clock()
        for key in list(self._hits):
            hits = self._hits[key]
            self._evict(hits, now)
            if not hits:
                del self._hits[key]

    def _evict(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
