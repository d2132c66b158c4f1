"""Named boundary for side calls whose failure must not abort playback."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def best_effort(label: str, room_id: int, call: Awaitable[T]) -> T | None:
    """Await *call*, logging and swallowing any ``Exception`` it raises.

    Used for presence updates, panel refreshes, autoplay lookups and other
    conveniences. Cancellation still propagates.
    """
    try:
        return await call
    except Exception as exc:
        logger.warning(LogTemplates.BEST_EFFORT_FAILED, label, room_id, exc)
        return None
