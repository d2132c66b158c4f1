"""DisplaySurface implementation that draws panels as Discord embeds."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from discodj.application.interfaces.display import DisplaySurface
from discodj.domain.music.entities import PanelRef
from discodj.domain.music.value_objects import PlayerStatus
from discodj.domain.shared.messages import DiscordUIMessages, LogTemplates
from discodj.infrastructure.discord.views.panel_view import PanelView
from discodj.utils.reply import truncate

if TYPE_CHECKING:
    from discord.abc import Messageable
    from discord.ext import commands

    from discodj.application.services.panel_models import PanelPayload
    from discodj.infrastructure.discord.views.panel_view import PanelActionHandler

logger = logging.getLogger(__name__)

EMBED_FIELD_LIMIT = 1024

_COLORS: dict[PlayerStatus, discord.Color] = {
    PlayerStatus.PLAYING: discord.Color.green(),
    PlayerStatus.PAUSED: discord.Color.orange(),
    PlayerStatus.AUTO_PAUSED: discord.Color.orange(),
    PlayerStatus.IDLE: discord.Color.dark_grey(),
}


def build_panel_embed(payload: PanelPayload) -> discord.Embed:
    embed = discord.Embed(
        title=payload.title,
        description=payload.description,
        color=_COLORS[payload.status],
    )

    if payload.thumbnail:
        embed.set_thumbnail(url=payload.thumbnail)

    if payload.progress:
        embed.add_field(name="Progress", value=payload.progress, inline=False)

    for field in payload.fields:
        embed.add_field(name=field.name, value=truncate(field.value, EMBED_FIELD_LIMIT), inline=field.inline)

    embed.add_field(
        name=DiscordUIMessages.PANEL_UP_NEXT,
        value=truncate(payload.up_next_text, EMBED_FIELD_LIMIT),
        inline=False,
    )

    if payload.footer:
        embed.set_footer(text=payload.footer)

    return embed


class DiscordDisplaySurface(DisplaySurface):
    """Sends and edits panel messages in guild text channels."""

    def __init__(self, bot: commands.Bot, handler: PanelActionHandler | None = None) -> None:
        self._bot = bot
        self._handler = handler

    def attach_handler(self, handler: PanelActionHandler) -> None:
        """Route button clicks on panels sent from now on to *handler*."""
        self._handler = handler

    def build_view(self, payload: PanelPayload) -> PanelView | None:
        if self._handler is None:
            return None
        return PanelView(self._handler, payload.controls)

    async def _get_channel(self, channel_id: int) -> Messageable | None:
        channel = self._bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden):
                return None

        if not isinstance(channel, discord.abc.Messageable):
            return None
        return channel

    async def _fetch_message(self, ref: PanelRef) -> discord.Message | None:
        channel = await self._get_channel(ref.channel_id)
        if channel is None:
            return None

        fetch_message = getattr(channel, "fetch_message", None)
        if fetch_message is None:
            return None

        try:
            return await fetch_message(ref.message_id)
        except discord.NotFound:
            return None

    async def channel_exists(self, channel_id: int) -> bool:
        return await self._get_channel(channel_id) is not None

    async def send(self, channel_id: int, payload: PanelPayload) -> PanelRef:
        channel = await self._get_channel(channel_id)
        if channel is None:
            raise LookupError(f"Channel {channel_id} is not available")

        message = await channel.send(embed=build_panel_embed(payload), view=self.build_view(payload))
        return PanelRef(channel_id=channel_id, message_id=message.id)

    async def edit(self, ref: PanelRef, payload: PanelPayload) -> bool:
        message = await self._fetch_message(ref)
        if message is None:
            return False

        # Only a deleted message counts as missing; other HTTP errors propagate.
        try:
            await message.edit(content=None, embed=build_panel_embed(payload), view=self.build_view(payload))
        except discord.NotFound as exc:
            logger.debug(LogTemplates.PANEL_EDIT_FAILED, ref.message_id, ref.channel_id, exc)
            return False
        return True

    async def fetch_message(self, ref: PanelRef) -> PanelRef | None:
        message = await self._fetch_message(ref)
        return ref if message is not None else None

    async def notify(self, channel_id: int, text: str) -> None:
        channel = await self._get_channel(channel_id)
        if channel is not None:
            await channel.send(text)
