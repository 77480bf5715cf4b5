"""Per-client Rate Limiter — sliding window log.

Keeps the timestamps of admitted requests per client identity. A request
is admitted while fewer than `max_requests` timestamps fall inside the
trailing window; rejected attempts are never recorded, so a client that
keeps hammering is admitted again as soon as its oldest entry ages out.

Thread-safe via asyncio.Lock: admit/reject decisions for a client are
linearizable.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class _ClientWindow:
    """Sliding window for a single client."""

    client_id: str
    request_times: deque[float] = field(default_factory=deque)

    def prune(self, now: float, window: float) -> None:
        """Drop timestamps that are a full window old or older."""
        while self.request_times and now - self.request_times[0] >= window:
            self.request_times.popleft()


class SlidingWindowRateLimiter:
    """Per-client request limiter.

    Usage:
        limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=60)

        if not await limiter.allow(client_id):
            # reject with 429
            ...
    """

    def __init__(
        self,
        max_requests: int = 3,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _ClientWindow] = {}
        self._lock = asyncio.Lock()

    async def allow(self, client_id: str) -> bool:
        """Admit and record the request, or reject without recording it."""
        async with self._lock:
            now = self._clock()
            window = self._windows.get(client_id) or _ClientWindow(client_id=client_id)
            window.prune(now, self.window_seconds)

            if len(window.request_times) >= self.max_requests:
                logger.debug(
                    "Rate limit hit for client %s (%d in %.0fs)",
                    client_id,
                    len(window.request_times),
                    self.window_seconds,
                )
                return False

            window.request_times.append(now)
            self._windows[client_id] = window
            return True

    async def purge_idle(self) -> int:
        """Forget clients whose windows have fully aged out. Returns count removed."""
        async with self._lock:
            now = self._clock()
            idle = []
            for client_id, window in self._windows.items():
                window.prune(now, self.window_seconds)
                if not window.request_times:
                    idle.append(client_id)
            for client_id in idle:
                del self._windows[client_id]
        return len(idle)

    def get_window(self, client_id: str) -> list[float]:
        """Snapshot of the stored timestamps for a client (unpruned)."""
        window = self._windows.get(client_id)
        return list(window.request_times) if window else []

    def get_stats(self) -> dict:
        """Get current limiter configuration and table size."""
        return {
            "tracked_clients": len(self._windows),
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
        }
