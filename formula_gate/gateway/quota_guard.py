"""Quota Guard — global ceiling on real generations per calendar day.

The counter rolls over lazily: allow() compares the current day with the
stored one before it reads the count, and resets on change. No timer task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date

logger = logging.getLogger(__name__)


class DailyQuotaGuard:
    """Process-wide daily counter of external generation calls."""

    def __init__(self, daily_limit: int = 1000, today: Callable[[], date] = date.today):
        self.daily_limit = daily_limit
        self._today = today
        self._date = today()
        self._count = 0
        self._lock = asyncio.Lock()

    def _roll_over(self) -> None:
        current = self._today()
        if current != self._date:
            logger.info("New day %s: resetting quota (used %d on %s)", current, self._count, self._date)
            self._date = current
            self._count = 0

    async def allow(self) -> bool:
        """True while today's generations are below the daily limit."""
        async with self._lock:
            self._roll_over()
            return self._count < self.daily_limit

    async def record_usage(self) -> int:
        """Count one successful generation. Returns the new total for today."""
        async with self._lock:
            self._roll_over()
            self._count += 1
            if self._count == self.daily_limit:
                logger.warning("Daily generation quota of %d reached", self.daily_limit)
            return self._count

    @property
    def count(self) -> int:
        return self._count

    def get_stats(self) -> dict:
        return {
            "date": self._date.isoformat(),
            "count": self._count,
            "daily_limit": self.daily_limit,
            "remaining": max(0, self.daily_limit - self._count),
        }
