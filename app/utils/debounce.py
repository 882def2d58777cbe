"""
Trailing-edge debouncing for fire-and-forget coroutines.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Tuple

logger = logging.getLogger(__name__)

CallFactory = Callable[[], Awaitable[None]]


class Debouncer:
    """
    Keyed trailing-edge debouncer.

    `call(key, factory)` schedules `factory()` to run once `wait` seconds have
    passed without another call for the same key. A new call within the window
    cancels the pending one and restarts the timer. Failures of the debounced
    call are logged, never raised to the caller.
    """

    def __init__(self, wait: float):
        self.wait = wait
        self._pending: Dict[Hashable, Tuple[asyncio.Task, CallFactory]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def call(self, key: Hashable, factory: CallFactory) -> None:
        """
        Schedule a debounced call, replacing any pending call for the key.

        Must be called from a running event loop.
        """
        pending = self._pending.pop(key, None)
        if pending is not None:
            pending[0].cancel()

        task = asyncio.create_task(self._run_later(key, factory))
        self._pending[key] = (task, factory)

    async def _run_later(self, key: Hashable, factory: CallFactory) -> None:
        try:
            await asyncio.sleep(self.wait)
        except asyncio.CancelledError:
            return
        entry = self._pending.get(key)
        if entry is not None and entry[1] is factory:
            del self._pending[key]
        await self._invoke(key, factory)

    async def _invoke(self, key: Hashable, factory: CallFactory) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Debounced call failed: {key}", extra={"error": str(e)})

    def cancel(self, key: Hashable) -> bool:
        """Drop a pending call without running it."""
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending[0].cancel()
        return True

    async def flush(self) -> int:
        """
        Run every pending call immediately, used at shutdown.

        Returns:
            Number of calls flushed
        """
        pending = list(self._pending.items())
        self._pending.clear()
        for _, (task, _) in pending:
            task.cancel()
        await asyncio.gather(*(self._invoke(key, factory) for key, (_, factory) in pending))
        if pending:
            logger.info(f"Flushed {len(pending)} pending debounced calls")
        return len(pending)
