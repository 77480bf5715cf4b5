"""In-flight registry — collapses concurrent identical generations.

The first caller for a normalized key becomes the leader and performs the
generation; later callers for the same key get the leader's future and
await it instead of issuing a second provider call.

join() and settle() never await between reading and writing the table, so
they are atomic on the event loop without a lock.
"""

from __future__ import annotations

import asyncio
import logging

from formula_gate.gateway.types import FormulaResult

logger = logging.getLogger(__name__)


class InflightRegistry:
    """Pending generations keyed by normalized input."""

    def __init__(self):
        self._pending: dict[str, asyncio.Future[FormulaResult]] = {}

    def join(self, key: str) -> tuple[asyncio.Future[FormulaResult], bool]:
        """Return (future, is_leader) for key, registering a new future if none is pending."""
        future = self._pending.get(key)
        if future is not None:
            logger.debug("Joining in-flight generation for %r", key)
            return future, False

        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        return future, True

    def settle(
        self,
        key: str,
        result: FormulaResult | None = None,
        error: BaseException | None = None,
    ) -> None:
        """Publish the leader's outcome to all waiters and forget the key."""
        future = self._pending.pop(key, None)
        if future is None or future.done():
            return

        if error is not None:
            future.set_exception(error)
            # mark retrieved so a leader without followers does not log a warning
            future.exception()
        else:
            future.set_result(result)

    def __len__(self) -> int:
        return len(self._pending)
