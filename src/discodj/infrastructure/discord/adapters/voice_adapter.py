"""Discord voice adapter: joins channels and exposes each voice client as a VoiceConnection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import discord

from discodj.application.interfaces.audio_source import PlayableResource
from discodj.application.interfaces.voice import SinkEvent, StatusListener, VoiceConnection, VoiceGateway
from discodj.domain.music.value_objects import PlayerStatus
from discodj.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 10.0


class DiscordVoiceConnection(VoiceConnection):
    """A live ``discord.VoiceClient`` with a single status listener.

    discord.py calls a source's ``after`` hook from its audio thread; the
    resulting IDLE event is handed back to the event loop before the listener
    sees it.
    """

    def __init__(self, voice_client: discord.VoiceClient, loop: asyncio.AbstractEventLoop) -> None:
        self._vc = voice_client
        self._loop = loop
        self._listener: StatusListener | None = None

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._vc

    @property
    def channel_id(self) -> int | None:
        channel = self._vc.channel
        return channel.id if channel else None

    def is_connected(self) -> bool:
        return self._vc.is_connected()

    def play(self, resource: PlayableResource) -> None:
        if self._vc.is_playing() or self._vc.is_paused():
            self._vc.stop()

        def after_callback(error: Exception | None = None) -> None:
            if error:
                logger.warning(LogTemplates.PLAYBACK_ERROR, self._vc.guild.id, error)
            event = SinkEvent(status=PlayerStatus.IDLE, resource=resource, error=error)
            asyncio.run_coroutine_threadsafe(self._emit(event), self._loop)

        self._vc.play(resource, after=after_callback)  # type: ignore[arg-type]

    def stop(self) -> None:
        if self._vc.is_playing() or self._vc.is_paused():
            self._vc.stop()

    def pause(self) -> bool:
        if self._vc.is_playing():
            self._vc.pause()
            return True
        return False

    def resume(self) -> bool:
        if self._vc.is_paused():
            self._vc.resume()
            return True
        return False

    def subscribe(self, listener: StatusListener) -> None:
        self._listener = listener

    def unsubscribe(self) -> None:
        self._listener = None

    @property
    def has_listener(self) -> bool:
        return self._listener is not None

    def human_listener_count(self) -> int:
        channel = self._vc.channel
        if channel is None:
            return 0
        return sum(1 for member in channel.members if not member.bot)

    async def destroy(self) -> None:
        self._listener = None
        if self._vc.is_connected():
            await self._vc.disconnect(force=True)

    async def _emit(self, event: SinkEvent) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            await listener(event)
        except Exception:
            logger.exception("Status listener failed for guild %s", self._vc.guild.id)


class DiscordVoiceGateway(VoiceGateway):
    """Joins the requesting member's voice channel, moving or reconnecting as needed."""

    def __init__(self, bot: discord.Client) -> None:
        self._bot = bot
        self._connections: dict[int, DiscordVoiceConnection] = {}

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    def _wrap(self, guild_id: int, vc: discord.VoiceClient) -> DiscordVoiceConnection:
        cached = self._connections.get(guild_id)
        if cached is not None and cached.voice_client is vc:
            return cached
        connection = DiscordVoiceConnection(vc, self._bot.loop)
        self._connections[guild_id] = connection
        return connection

    def get_existing(self, room_id: int) -> DiscordVoiceConnection | None:
        vc = self._get_voice_client(room_id)
        if vc is None or not vc.is_connected():
            self._connections.pop(room_id, None)
            return None
        return self._wrap(room_id, vc)

    async def join(self, room_id: int, context: Any) -> DiscordVoiceConnection | None:
        """Join the voice channel of *context*, a ``discord.Member``."""
        voice_state = getattr(context, "voice", None)
        channel = voice_state.channel if voice_state else None
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            return None

        vc = self._get_voice_client(room_id)
        if vc is not None and not vc.is_connected():
            logger.warning(LogTemplates.VOICE_STALE_CLEANUP, room_id)
            try:
                await vc.disconnect(force=True)
            except Exception:
                logger.debug("Stale voice client disconnect failed in guild %s", room_id)
            self._connections.pop(room_id, None)
            vc = None

        try:
            async with asyncio.timeout(CONNECT_TIMEOUT):
                if vc is None:
                    vc = await channel.connect(self_deaf=True)
                    logger.info(LogTemplates.VOICE_CONNECTED, channel.name, channel.guild.name)
                elif vc.channel is None or vc.channel.id != channel.id:
                    await vc.move_to(channel)
                    logger.info(LogTemplates.VOICE_MOVED, channel.name)
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel.id)
            return None
        except discord.Forbidden:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel.id)
            return None
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return None

        return self._wrap(room_id, vc)
