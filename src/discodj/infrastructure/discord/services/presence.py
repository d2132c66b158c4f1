"""PresencePublisher backed by the bot's Discord activity."""

from __future__ import annotations

import discord

from discodj.application.interfaces.presence import PresencePublisher

ACTIVITY_NAME_LIMIT = 128


class DiscordPresencePublisher(PresencePublisher):
    """Shows "Listening to <title>" while something plays."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def set_playing(self, title: str) -> None:
        activity = discord.Activity(type=discord.ActivityType.listening, name=title[:ACTIVITY_NAME_LIMIT])
        await self._client.change_presence(activity=activity, status=discord.Status.online)

    async def clear(self) -> None:
        await self._client.change_presence(activity=None, status=discord.Status.online)
