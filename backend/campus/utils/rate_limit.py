"""In-memory rate limiter for lightweight endpoint protection."""

from __future__ import annotations

import math
import threading
import time
from collections import defaultdict, deque
from typing import Callable, NamedTuple


class Decision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after: int


class InMemoryRateLimiter:
    """Sliding-window limiter over (client, scope) buckets.

    The limit and window are read through callables on every hit, so a
    settings change applies without rebuilding the limiter. Buckets with
    no hit inside the current window are swept at most once per window.
    """

    def __init__(
        self,
        max_requests: Callable[[], int],
        window_seconds: Callable[[], float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[tuple[str, str], deque] = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, client: str, scope: str = "*") -> Decision:
        """Record one request from `client` against `scope`."""
        limit = self._max_requests()
        window = self._window_seconds()
        now = self._clock()
        cutoff = now - window
        with self._lock:
            if now - self._last_sweep >= window:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = self._hits[(client, scope)]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                retry_after = max(1, math.ceil(hits[0] + window - now))
                return Decision(False, 0, retry_after)
            hits.append(now)
            return Decision(True, limit - len(hits), 0)

    def _sweep(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()
