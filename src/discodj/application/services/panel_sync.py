"""Keeps each room's panel message in step with its state."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...domain.shared.messages import LogTemplates
from .panel_renderer import render_panel

if TYPE_CHECKING:
    from ...domain.music.room import RoomState
    from ..interfaces.display import DisplaySurface
    from .panel_models import PanelPayload

logger = logging.getLogger(__name__)


class PanelSync:
    """Pushes rendered panels to the display surface.

    Pushes for one room are single-flight and FIFO. A push is abandoned when
    a newer one was requested while it waited, and skipped when the rendered
    content hash matches the last one sent, unless forced.
    """

    def __init__(
        self,
        display: DisplaySurface,
        *,
        slots: int = 10,
        page_size: int = 10,
    ) -> None:
        self._display = display
        self._slots = slots
        self._page_size = page_size
        self._locks: dict[int, asyncio.Lock] = {}
        self._forced: set[int] = set()

    @property
    def display(self) -> DisplaySurface:
        return self._display

    @property
    def page_size(self) -> int:
        return self._page_size

    def _get_lock(self, room_id: int) -> asyncio.Lock:
        if room_id not in self._locks:
            self._locks[room_id] = asyncio.Lock()
        return self._locks[room_id]

    def render(self, room: RoomState) -> PanelPayload:
        handle = room.playback_handle
        playback_ms = handle.played_ms if handle is not None else None
        return render_panel(
            room,
            room.queue_page,
            slots=self._slots,
            page_size=self._page_size,
            playback_ms=playback_ms,
        )

    async def refresh(self, room: RoomState, *, force: bool = False) -> bool:
        """Bring the room's panel up to date. Returns True when something was sent."""
        version = room.bump_version()
        if force:
            self._forced.add(room.room_id)

        async with self._get_lock(room.room_id):
            if room.edit_version != version:
                logger.debug(LogTemplates.PANEL_SUPERSEDED, version, room.edit_version, room.room_id)
                return False

            forced = room.room_id in self._forced
            self._forced.discard(room.room_id)

            payload = self.render(room)
            digest = payload.content_key.digest()
            if not forced and digest == room.last_panel_hash:
                logger.debug(LogTemplates.PANEL_SKIPPED_UNCHANGED, room.room_id)
                return False

            if not await self._push(room, payload):
                return False

            room.last_panel_hash = digest
            return True

    async def _push(self, room: RoomState, payload: PanelPayload) -> bool:
        """Edit the existing panel, or send a new one if its message is gone.

        Edit errors other than a missing message propagate with ``panel_ref``
        kept, so a later refresh edits the same message again.
        """
        ref = room.panel_ref
        if ref is not None:
            if await self._display.edit(ref, payload):
                return True

            room.panel_ref = await self._display.send(ref.channel_id, payload)
            logger.info(LogTemplates.PANEL_RECREATED, room.room_id)
            return True

        if room.panel_channel_id is None:
            logger.debug(LogTemplates.PANEL_NO_CHANNEL, room.room_id)
            return False

        room.panel_ref = await self._display.send(room.panel_channel_id, payload)
        return True

    async def publish(self, room: RoomState, channel_id: int) -> bool:
        """Make sure the room's panel lives in *channel_id*, then refresh it."""
        room.panel_channel_id = channel_id
        ref = room.panel_ref
        if ref is not None and (ref.channel_id != channel_id or await self._display.fetch_message(ref) is None):
            room.panel_ref = None
        return await self.refresh(room, force=True)

    def forget(self, room_id: int) -> None:
        self._locks.pop(room_id, None)
        self._forced.discard(room_id)
