"""Per-room serial execution of async operations.

Every event that touches a room (slash commands, button presses, sink
callbacks, progress ticks) is funnelled through :class:`SerialExecutor`
keyed by the room id. Each key owns a FIFO of pending closures drained by a
single worker task, so an operation never starts before the previous one for
the same room has finished, even when that one suspends on network I/O.
Different keys are drained by different workers and interleave freely.

A failing operation only fails its own caller; the worker moves on to the
next queued closure.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[Any]]


class SerialExecutor:
    def __init__(self) -> None:
        self._pending: dict[Hashable, deque[tuple[Operation, asyncio.Future[Any]]]] = {}
        self._workers: dict[Hashable, asyncio.Task[None]] = {}

    async def run(self, key: Hashable, operation: Callable[[], Awaitable[T]]) -> T:
        """Queue *operation* behind everything already queued for *key* and await its result."""
        return await self._enqueue(key, operation)

    def submit(
        self,
        key: Hashable,
        operation: Callable[[], Awaitable[Any]],
        *,
        label: str = "operation",
    ) -> asyncio.Future[Any]:
        """Queue *operation* without waiting for it; failures are logged."""
        future = self._enqueue(key, operation)

        def _log_failure(fut: asyncio.Future[Any]) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                logger.error(LogTemplates.EXECUTOR_TASK_FAILED, label, key, exc, exc_info=exc)

        future.add_done_callback(_log_failure)
        return future

    def _enqueue(self, key: Hashable, operation: Operation) -> asyncio.Future[Any]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._pending.setdefault(key, deque()).append((operation, future))

        if key not in self._workers:
            self._workers[key] = loop.create_task(self._drain(key), name=f"serial-executor-{key}")
        return future

    async def _drain(self, key: Hashable) -> None:
        queue = self._pending[key]
        try:
            while queue:
                operation, future = queue.popleft()
                if future.done():
                    continue
                try:
                    result = await operation()
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as exc:
                    if not future.done():
                        future.set_exception(exc)
                else:
                    if not future.done():
                        future.set_result(result)
        finally:
            for _, future in queue:
                future.cancel()
            self._pending.pop(key, None)
            self._workers.pop(key, None)
            logger.debug(LogTemplates.EXECUTOR_DRAINED, key)

    def is_busy(self, key: Hashable) -> bool:
        return key in self._workers

    @property
    def active_keys(self) -> list[Hashable]:
        return list(self._workers)

    async def shutdown(self) -> None:
        """Cancel every worker and the operations still queued behind them."""
        workers = list(self._workers.values())
        for task in workers:
            task.cancel()
        for task in workers:
            try:
                await task
            except asyncio.CancelledError:
                pass
