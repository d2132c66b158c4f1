"""Slash-command music cog delegating to the playback controller.

Every command that touches a room runs through the container's
:class:`SerialExecutor` under the guild id, so commands, panel buttons and
sink callbacks for one guild never interleave.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import discord
from discord import app_commands
from discord.ext import commands

from discodj.domain.music.entities import Requester
from discodj.domain.music.value_objects import AudioFilter, LoopMode, QueuePlacement
from discodj.domain.shared.exceptions import DomainError, TrackResolutionError, ValidationError
from discodj.domain.shared.messages import DiscordUIMessages, ErrorMessages, LogTemplates
from discodj.infrastructure.audio.ytdlp_resolver import is_url
from discodj.infrastructure.discord.guards.voice_guards import (
    check_user_in_bot_channel,
    ensure_dj,
    ensure_user_in_voice,
    get_member,
    send_ephemeral,
)
from discodj.utils.reply import format_duration, parse_timestamp, truncate

if TYPE_CHECKING:
    from discodj.config.container import Container

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTOCOMPLETE_MIN_CHARS = 2
AUTOCOMPLETE_LIMIT = 5
CHOICE_MAX_LENGTH = 100

FILTER_OFF = "off"


def _on_off(value: bool) -> str:
    return "on" if value else "off"


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    # ── Helpers ─────────────────────────────────────────────────────

    async def _run(self, room_id: int, operation: Callable[[], Awaitable[T]]) -> T:
        return await self.container.executor.run(room_id, operation)

    async def _control(
        self,
        interaction: discord.Interaction,
        *,
        require_dj: bool = True,
    ) -> discord.Member | None:
        """Gate a control command: same voice channel, then DJ-only mode.

        Defers the interaction once the checks pass so slow operations do not
        miss the response deadline.
        """
        member = await check_user_in_bot_channel(interaction)
        if member is None:
            return None

        if require_dj:
            room_id = member.guild.id
            controller = self.container.controller
            room = await self._run(room_id, lambda: controller.get_room(room_id))
            if not await ensure_dj(
                interaction,
                member,
                dj_only=room.settings.dj_only,
                role_name=self.container.settings.discord.dj_role_name,
            ):
                return None

        await interaction.response.defer(ephemeral=True)
        return member

    async def _connect(self, interaction: discord.Interaction, member: discord.Member) -> bool:
        room_id = member.guild.id
        controller = self.container.controller
        connection = await self._run(room_id, lambda: controller.ensure_connected(room_id, member))
        if connection is None:
            await send_ephemeral(interaction, DiscordUIMessages.ERROR_COULD_NOT_JOIN_VOICE)
            return False
        return True

    # ── Error handling ──────────────────────────────────────────────

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        original: BaseException = getattr(error, "original", error)
        interaction.extras["error_handled"] = True

        if isinstance(original, DomainError):
            logger.debug(
                LogTemplates.BOT_SLASH_COMMAND_ERROR,
                getattr(interaction.command, "name", "<unknown>"),
                original.message,
            )
            message = original.message
            if isinstance(original, TrackResolutionError):
                message = DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(query=truncate(original.query, 80))
        else:
            logger.exception(
                LogTemplates.BOT_SLASH_COMMAND_ERROR,
                getattr(interaction.command, "name", "<unknown>"),
                original,
                exc_info=original,
            )
            message = DiscordUIMessages.ERROR_GENERIC

        try:
            await send_ephemeral(interaction, message)
        except discord.HTTPException:
            logger.warning(LogTemplates.BOT_ERROR_MESSAGE_SEND_FAILED)

    # ── Voice events ────────────────────────────────────────────────

    @commands.Cog.listener()
    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        room_id = member.guild.id
        controller = self.container.controller
        executor = self.container.executor

        if self.bot.user is not None and member.id == self.bot.user.id:
            if before.channel is not None and after.channel is None:
                executor.submit(room_id, lambda: controller.leave(room_id), label="voice disconnect")
            return

        connection = self.container.voice_gateway.get_existing(room_id)
        if connection is None or connection.channel_id is None:
            return

        touched = {c.id for c in (before.channel, after.channel) if c is not None}
        if connection.channel_id not in touched:
            return

        human_count = connection.human_listener_count()
        executor.submit(
            room_id,
            lambda: controller.on_membership_change(room_id, human_count),
            label="membership change",
        )

    # ── Connection ──────────────────────────────────────────────────

    @app_commands.command(name="join", description="Join your voice channel.")
    async def join(self, interaction: discord.Interaction) -> None:
        member = await ensure_user_in_voice(interaction)
        if member is None:
            return

        await interaction.response.defer(ephemeral=True)
        if not await self._connect(interaction, member):
            return

        assert member.voice is not None and member.voice.channel is not None
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_JOINED.format(channel=member.voice.channel.name))

    @app_commands.command(name="leave", description="Disconnect from the voice channel.")
    async def leave(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.leave(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_DISCONNECTED)

    # ── Queueing ────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song by URL or search query.")
    @app_commands.describe(q="URL (YouTube, SoundCloud, Spotify) or search query", position="Where to queue it")
    @app_commands.choices(
        position=[
            app_commands.Choice(name="End of queue", value=QueuePlacement.END.value),
            app_commands.Choice(name="Play next", value=QueuePlacement.NEXT.value),
            app_commands.Choice(name="Top of queue", value=QueuePlacement.TOP.value),
        ]
    )
    async def play(
        self,
        interaction: discord.Interaction,
        q: str,
        position: app_commands.Choice[str] | None = None,
    ) -> None:
        member = await check_user_in_bot_channel(interaction)
        if member is None:
            return

        # Resolving and connecting can exceed the 3-second interaction deadline
        await interaction.response.defer(ephemeral=True)

        requester = Requester(id=member.id, tag=str(member))
        tracks = await self.container.resolver.resolve(q, requester)
        if not tracks:
            await send_ephemeral(interaction, DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(query=truncate(q, 80)))
            return

        if not await self._connect(interaction, member):
            return

        room_id = member.guild.id
        placement = QueuePlacement(position.value) if position else QueuePlacement.END
        controller = self.container.controller
        channel_id = interaction.channel_id

        async def enqueue_and_start() -> int:
            first = await controller.enqueue(room_id, tracks, placement)
            await controller.start_if_idle(room_id, channel_id)
            return first

        first = await self._run(room_id, enqueue_and_start)

        if len(tracks) == 1:
            message = DiscordUIMessages.ACTION_QUEUED_ONE.format(title=truncate(tracks[0].title, 80), position=first + 1)
        else:
            message = DiscordUIMessages.ACTION_QUEUED_MANY.format(count=len(tracks), position=first + 1)
        await send_ephemeral(interaction, message)

    @play.autocomplete("q")
    async def play_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        current = current.strip()
        if len(current) < AUTOCOMPLETE_MIN_CHARS or is_url(current):
            return []

        try:
            results = await self.container.resolver.search(current, limit=AUTOCOMPLETE_LIMIT)
        except TrackResolutionError:
            return []

        choices: list[app_commands.Choice[str]] = []
        for track in results:
            if not track.url or len(track.url) > CHOICE_MAX_LENGTH:
                continue
            label = track.title
            if track.duration_sec:
                label = f"{truncate(label, CHOICE_MAX_LENGTH - 12)} ({format_duration(track.duration_sec)})"
            choices.append(app_commands.Choice(name=truncate(label, CHOICE_MAX_LENGTH), value=track.url))
        return choices[:AUTOCOMPLETE_LIMIT]

    @app_commands.command(name="queue", description="Post the player panel in this channel.")
    async def queue(self, interaction: discord.Interaction) -> None:
        member = await get_member(interaction)
        if member is None or interaction.channel_id is None:
            return

        await interaction.response.defer(ephemeral=True)
        room_id = member.guild.id
        channel_id = interaction.channel_id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.publish_panel(room_id, channel_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_PANEL_POSTED)

    @app_commands.command(name="shuffle", description="Shuffle the queue.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        count = await self._run(room_id, lambda: controller.shuffle(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_SHUFFLED.format(count=count))

    @app_commands.command(name="jump", description="Skip straight to a queued track.")
    @app_commands.describe(index="Queue position (1 = next)")
    async def jump(self, interaction: discord.Interaction, index: app_commands.Range[int, 1]) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        track = await self._run(room_id, lambda: controller.jump(room_id, index - 1))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_JUMPED.format(title=truncate(track.title, 80)))

    @app_commands.command(name="remove", description="Remove a track from the queue.")
    @app_commands.describe(index="Queue position (1 = next)")
    async def remove(self, interaction: discord.Interaction, index: app_commands.Range[int, 1]) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        track = await self._run(room_id, lambda: controller.remove(room_id, index - 1))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_REMOVED.format(title=truncate(track.title, 80)))

    @app_commands.command(name="move", description="Move a queued track to another position.")
    @app_commands.describe(source="Current position", target="New position")
    async def move(
        self,
        interaction: discord.Interaction,
        source: app_commands.Range[int, 1],
        target: app_commands.Range[int, 1],
    ) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        track = await self._run(room_id, lambda: controller.move(room_id, source - 1, target - 1))
        await send_ephemeral(
            interaction,
            DiscordUIMessages.ACTION_MOVED.format(title=truncate(track.title, 80), position=target),
        )

    @app_commands.command(name="clear", description="Clear the queue (the current track keeps playing).")
    async def clear(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        count = await self._run(room_id, lambda: controller.clear_queue(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_CLEARED.format(count=count))

    # ── Transport ───────────────────────────────────────────────────

    @app_commands.command(name="skip", description="Skip the current track.")
    async def skip(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.skip(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_SKIPPED)

    @app_commands.command(name="prev", description="Go back to the previous track.")
    async def prev(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.previous(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_PREVIOUS)

    @app_commands.command(name="pause", description="Pause playback.")
    async def pause(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.pause(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_PAUSED)

    @app_commands.command(name="resume", description="Resume playback.")
    async def resume(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.resume(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_RESUMED)

    @app_commands.command(name="stop", description="Stop playback and clear the queue.")
    async def stop(self, interaction: discord.Interaction) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.stop(room_id))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_STOPPED)

    @app_commands.command(name="seek", description="Jump to a position in the current track.")
    @app_commands.describe(position="e.g. 90, 1:30, 1:02:03 or 1m30s")
    async def seek(self, interaction: discord.Interaction, position: str) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        seconds = parse_timestamp(position)
        if seconds is None:
            raise ValidationError(ErrorMessages.INVALID_TIMESTAMP, field="position")

        room_id = member.guild.id
        controller = self.container.controller
        await self._run(room_id, lambda: controller.seek(room_id, float(seconds)))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_SEEK.format(position=format_duration(seconds)))

    # ── Settings ────────────────────────────────────────────────────

    @app_commands.command(name="volume", description="Set the playback volume.")
    @app_commands.describe(level="0 to 200 percent")
    async def volume(self, interaction: discord.Interaction, level: app_commands.Range[int, 0, 200]) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        applied = await self._run(room_id, lambda: controller.set_volume(room_id, level))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_VOLUME.format(volume=applied))

    @app_commands.command(name="loop", description="Set or cycle the loop mode.")
    @app_commands.choices(
        mode=[
            app_commands.Choice(name="Off", value=LoopMode.OFF.value),
            app_commands.Choice(name="Current track", value=LoopMode.ONE.value),
            app_commands.Choice(name="Whole queue", value=LoopMode.ALL.value),
        ]
    )
    async def loop(
        self, interaction: discord.Interaction, mode: app_commands.Choice[str] | None = None
    ) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        wanted = LoopMode(mode.value) if mode else None
        applied = await self._run(room_id, lambda: controller.set_loop_mode(room_id, wanted))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_LOOP.format(mode=applied.value))

    @app_commands.command(name="autoplay", description="Queue related tracks when the queue runs out.")
    async def autoplay(self, interaction: discord.Interaction, enabled: bool | None = None) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        state = await self._run(room_id, lambda: controller.set_autoplay(room_id, enabled))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_AUTOPLAY.format(state=_on_off(state)))

    @app_commands.command(name="filter", description="Apply an audio filter to the current track.")
    @app_commands.choices(
        effect=[app_commands.Choice(name="Off", value=FILTER_OFF)]
        + [app_commands.Choice(name=f.label, value=f.value) for f in AudioFilter]
    )
    async def filter(self, interaction: discord.Interaction, effect: app_commands.Choice[str]) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        room_id = member.guild.id
        controller = self.container.controller
        audio_filter = None if effect.value == FILTER_OFF else AudioFilter(effect.value)
        await self._run(room_id, lambda: controller.apply_filter(room_id, audio_filter))
        label = audio_filter.label if audio_filter else DiscordUIMessages.PANEL_FILTER_NONE
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_FILTER.format(name=label))

    @app_commands.command(name="djonly", description="Restrict player controls to DJs.")
    @app_commands.default_permissions(manage_guild=True)
    async def djonly(self, interaction: discord.Interaction, enabled: bool | None = None) -> None:
        member = await get_member(interaction)
        if member is None:
            return

        await interaction.response.defer(ephemeral=True)
        room_id = member.guild.id
        controller = self.container.controller
        state = await self._run(room_id, lambda: controller.set_dj_only(room_id, enabled))
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_DJ_ONLY.format(state=_on_off(state)))

    # ── Playlists ───────────────────────────────────────────────────

    playlist = app_commands.Group(name="playlist", description="Save and load named playlists.")

    @playlist.command(name="save", description="Save the current track and queue.")
    async def playlist_save(self, interaction: discord.Interaction, name: str) -> None:
        member = await get_member(interaction)
        if member is None:
            return

        await interaction.response.defer(ephemeral=True)
        room_id = member.guild.id
        controller = self.container.controller
        saved = await self._run(room_id, lambda: controller.save_playlist(room_id, name.strip()))
        await send_ephemeral(
            interaction, DiscordUIMessages.PLAYLIST_SAVED.format(name=saved.name, count=saved.count)
        )

    @playlist.command(name="load", description="Queue a saved playlist.")
    @app_commands.choices(
        position=[
            app_commands.Choice(name="End of queue", value=QueuePlacement.END.value),
            app_commands.Choice(name="Play next", value=QueuePlacement.NEXT.value),
        ]
    )
    async def playlist_load(
        self,
        interaction: discord.Interaction,
        name: str,
        position: app_commands.Choice[str] | None = None,
    ) -> None:
        member = await self._control(interaction)
        if member is None:
            return

        if not await self._connect(interaction, member):
            return

        room_id = member.guild.id
        placement = QueuePlacement(position.value) if position else QueuePlacement.END
        controller = self.container.controller
        channel_id = interaction.channel_id

        async def load_and_start() -> Any:
            loaded, _ = await controller.load_playlist(room_id, name, placement)
            await controller.start_if_idle(room_id, channel_id)
            return loaded

        loaded = await self._run(room_id, load_and_start)
        await send_ephemeral(
            interaction, DiscordUIMessages.PLAYLIST_LOADED.format(name=loaded.name, count=loaded.count)
        )

    @playlist.command(name="list", description="List saved playlists.")
    async def playlist_list(self, interaction: discord.Interaction) -> None:
        member = await get_member(interaction)
        if member is None:
            return

        playlists = await self.container.controller.list_playlists(member.guild.id)
        if not playlists:
            await send_ephemeral(interaction, DiscordUIMessages.PLAYLIST_NONE)
            return

        lines = [DiscordUIMessages.PLAYLIST_LIST_HEADER]
        lines.extend(
            DiscordUIMessages.PLAYLIST_LIST_LINE.format(
                name=p.name,
                count=p.count,
                saved_at=discord.utils.format_dt(p.saved_at, style="R"),
            )
            for p in playlists
        )
        await send_ephemeral(interaction, "\n".join(lines))

    @playlist.command(name="delete", description="Delete a saved playlist.")
    async def playlist_delete(self, interaction: discord.Interaction, name: str) -> None:
        member = await get_member(interaction)
        if member is None:
            return

        await self.container.controller.delete_playlist(member.guild.id, name)
        await send_ephemeral(interaction, DiscordUIMessages.PLAYLIST_DELETED.format(name=name.strip()))


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
