"""Coalescing of repeated persistence requests into one delayed flush."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

FlushCallback = Callable[[], Awaitable[None]]


class DebouncedFlusher:
    """Single armed timer plus the set of flushes still in flight.

    ``schedule`` (re)arms the timer; when it fires the flush runs as a task
    tracked in the pending set until it completes. ``drain`` waits for
    in-flight flushes and then, if the timer is still armed, cancels it and
    flushes immediately so nothing scheduled is lost.
    """

    def __init__(self, flush: FlushCallback, delay: float = 2.0):
        self._flush = flush
        self._delay = delay
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def schedule(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._run_flush())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_flush(self) -> None:
        try:
            await self._flush()
        except OSError as exc:
            logger.warning("Cache flush failed: %s", exc)

    async def flush_now(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._run_flush()

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))
        if self._timer is not None:
            await self.flush_now()


__all__ = ["DebouncedFlusher", "FlushCallback"]
