"""Routes panel button clicks into the playback controller."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import discord

from discodj.domain.shared.exceptions import DomainError
from discodj.domain.shared.messages import DiscordUIMessages
from discodj.infrastructure.discord.guards.voice_guards import (
    check_user_in_bot_channel,
    ensure_dj,
    send_ephemeral,
)

if TYPE_CHECKING:
    from discodj.application.services.playback_controller import PlaybackController
    from discodj.application.services.serial_executor import SerialExecutor

logger = logging.getLogger(__name__)

# Paging only changes what this panel shows, so it skips the DJ check.
PAGING_ACTIONS = frozenset({"page_prev", "page_next"})


class PanelActions:
    """Handler behind every ``music:*`` button."""

    def __init__(
        self,
        *,
        controller: PlaybackController,
        executor: SerialExecutor,
        dj_role_name: str = "DJ",
    ) -> None:
        self._controller = controller
        self._executor = executor
        self._dj_role_name = dj_role_name

    def _operation(self, room_id: int, action: str) -> Callable[[], Awaitable[Any]] | None:
        controller = self._controller
        operations: dict[str, Callable[[], Awaitable[Any]]] = {
            "prev": lambda: controller.previous(room_id),
            "toggle": lambda: controller.toggle_pause(room_id),
            "skip": lambda: controller.skip(room_id),
            "stop": lambda: controller.stop(room_id),
            "page_prev": lambda: controller.change_panel_page(room_id, -1),
            "page_next": lambda: controller.change_panel_page(room_id, 1),
        }
        return operations.get(action)

    async def handle(self, interaction: discord.Interaction, action: str) -> None:
        member = await check_user_in_bot_channel(interaction)
        if member is None:
            return

        room_id = member.guild.id
        operation = self._operation(room_id, action)
        if operation is None:
            logger.warning("Unknown panel action %r in guild %s", action, room_id)
            return

        if action not in PAGING_ACTIONS:
            room = await self._executor.run(room_id, lambda: self._controller.get_room(room_id))
            if not await ensure_dj(
                interaction, member, dj_only=room.settings.dj_only, role_name=self._dj_role_name
            ):
                return

        await interaction.response.defer()
        try:
            await self._executor.run(room_id, operation)
        except DomainError as exc:
            await send_ephemeral(interaction, exc.message)
        except Exception:
            logger.exception("Panel action %s failed in guild %s", action, room_id)
            await send_ephemeral(interaction, DiscordUIMessages.ERROR_GENERIC)
