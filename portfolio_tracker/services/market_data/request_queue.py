# portfolio_tracker/services/market_data/request_queue.py
"""
Strict FIFO request queue with minimum spacing between request starts.

Yahoo Finance throttles clients that fire requests in bursts. Every Yahoo
call goes through one RequestQueue: callers enqueue a coroutine factory and
await their own future, while a single worker task starts the requests one
at a time, at least `min_interval` seconds apart, in arrival order.

- No priorities, no reordering
- Each caller gets its own result (or exception)
- A caller that stops waiting (cancelled future) is skipped, not executed
- The worker is created lazily and exits when the queue drains, so an idle
  queue holds no task
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestQueue:
    """
    Serializes coroutine calls with a minimum start-to-start interval.

    Example:
        queue = RequestQueue(min_interval=0.2)
        quote = await queue.submit(fetch_quote, "AAPL")

    Attributes:
        min_interval: Seconds between the start of consecutive requests
    """

    def __init__(
            self,
            min_interval: float = 0.2,
            clock: Callable[[], float] = time.monotonic,
            sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
            name: str = "request-queue",
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.min_interval = min_interval
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._pending: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._worker: asyncio.Task | None = None
        self._last_start: float | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def submit(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Enqueue func(*args, **kwargs) and wait for its result.

        Raises:
            Whatever func raises
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending.append((lambda: func(*args, **kwargs), future))
        logger.debug(f"{self.name}: queued request ({len(self._pending)} pending)")

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        while self._pending:
            factory, future = self._pending.popleft()
            if future.done():
                # Caller gave up before its turn
                continue

            await self._wait_for_slot()
            self._last_start = self._clock()

            try:
                result = await factory()
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as exc:
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(result)

    async def _wait_for_slot(self) -> None:
        if self._last_start is None:
            return
        wait = self.min_interval - (self._clock() - self._last_start)
        if wait > 0:
            await self._sleep(wait)
