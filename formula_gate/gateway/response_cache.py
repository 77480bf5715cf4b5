"""Response Cache — normalized key → parsed result with a TTL.

Entries are valid while `now - created_at < ttl`. Stale entries are not
removed on read; they are replaced by the next put for the same key or
dropped by sweep(). An optional capacity bound evicts least-recently-used
entries on put.

Thread-safe via asyncio.Lock (one lock for the whole table).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from formula_gate.gateway.types import CacheEntry, FormulaResult

logger = logging.getLogger(__name__)


class ResponseCache:
    """Shared TTL cache of generated formulas.

    Usage:
        cache = ResponseCache(ttl_seconds=3600)

        result = await cache.get(key)
        if result is None:
            ...
            await cache.put(key, result)
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: Lifetime of an entry from its insertion
            max_entries: Capacity bound, 0 for unbounded
            clock: Monotonic time source (injected in tests)
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at < self.ttl_seconds

    async def get(self, key: str) -> FormulaResult | None:
        """Return the cached result, or None if absent or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or not self._is_fresh(entry, self._clock()):
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.result

    async def put(self, key: str, result: FormulaResult) -> None:
        """Insert or replace the entry for key, stamped with the current time."""
        async with self._lock:
            self._entries[key] = CacheEntry(key=key, result=result, created_at=self._clock())
            self._entries.move_to_end(key)

            if self.max_entries > 0:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Cache full, evicted %r", evicted)

    async def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        async with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if not self._is_fresh(e, now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        """Current cache size and hit/miss counters."""
        return {
            "size": len(self._entries),
            "ttl_seconds": self.ttl_seconds,
            "max_entries": self.max_entries,
            "hits": self._hits,
            "misses": self._misses,
        }
