"""Recurring per-room timer that keeps the panel's progress bar moving."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], Awaitable[None]]


class ProgressTicker:
    """Runs ``on_tick(room_id)`` every *interval_s* while started for that room."""

    def __init__(self, on_tick: TickCallback, *, interval_s: float = 5.0) -> None:
        self._on_tick = on_tick
        self._interval_s = interval_s
        self._tasks: dict[int, asyncio.Task[None]] = {}

    def start(self, room_id: int) -> None:
        if self.is_running(room_id):
            logger.debug(LogTemplates.TICKER_ALREADY_RUNNING, room_id)
            return

        self._tasks[room_id] = asyncio.create_task(
            self._run_loop(room_id), name=f"progress-ticker-{room_id}"
        )
        logger.debug(LogTemplates.TICKER_STARTED, room_id)

    def stop(self, room_id: int) -> None:
        task = self._tasks.pop(room_id, None)
        if task is None:
            return
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug(LogTemplates.TICKER_STOPPED, room_id)

    async def stop_all(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def is_running(self, room_id: int) -> bool:
        task = self._tasks.get(room_id)
        return task is not None and not task.done()

    async def _run_loop(self, room_id: int) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval_s)
            except asyncio.CancelledError:
                break

            if self._tasks.get(room_id) is not asyncio.current_task():
                break

            try:
                await self._on_tick(room_id)
            except Exception:
                logger.exception("Error during progress tick for room %s", room_id)
