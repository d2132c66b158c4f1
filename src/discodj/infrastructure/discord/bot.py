"""The discodj client: wires the container into discord.py and owns the process lifecycle."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import commands

from discodj.domain.shared.messages import DiscordUIMessages, LogTemplates
from discodj.infrastructure.discord.views.panel_view import PanelView

if TYPE_CHECKING:
    from discodj.config.container import Container
    from discodj.config.settings import Settings

logger = logging.getLogger(__name__)

COGS = ("discodj.infrastructure.discord.cogs.music_cog",)


def _music_intents() -> discord.Intents:
    # Members are needed to count human listeners left in a voice channel.
    intents = discord.Intents.default()
    intents.guilds = True
    intents.voice_states = True
    intents.members = True
    return intents


class MusicBot(commands.Bot):
    """Slash-command only client; no prefix commands or help."""

    def __init__(self, container: Container, settings: Settings, **kwargs: Any) -> None:
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=_music_intents(),
            help_command=None,
            **kwargs,
        )
        self.container = container
        self.settings = settings
        self._closing = False
        container.set_bot(self)

    async def setup_hook(self) -> None:
        logger.info(LogTemplates.BOT_SETUP)

        await self._load_cogs()
        self.tree.on_error = self._on_app_command_error

        # Panels posted before a restart keep routing their buttons.
        self.add_view(PanelView.persistent(self.container.panel_actions))
        logger.info(LogTemplates.BOT_PANEL_VIEW_REGISTERED)

        if self.settings.discord.sync_on_startup:
            await self._sync_commands()

        logger.info(LogTemplates.BOT_SETUP_COMPLETE)

    async def _load_cogs(self) -> None:
        failed: list[str] = []
        for extension in COGS:
            try:
                await self.load_extension(extension)
            except Exception as e:
                logger.exception(LogTemplates.BOT_COG_LOAD_FAILED, extension, e)
                failed.append(extension)
            else:
                logger.info(LogTemplates.BOT_COG_LOADED, extension)

        logger.info(LogTemplates.BOT_COGS_LOADED_SUMMARY, len(COGS) - len(failed), len(failed))

    async def _sync_commands(self) -> None:
        """Push the command tree to each dev guild, then globally.

        Guild syncs show up immediately, which is what makes them useful
        while iterating; a failing guild does not stop the global sync.
        """
        for guild_id in self.settings.discord.guild_ids:
            target = discord.Object(id=guild_id)
            try:
                self.tree.copy_global_to(guild=target)
                commands_synced = await self.tree.sync(guild=target)
            except discord.HTTPException as e:
                logger.warning(LogTemplates.BOT_SYNC_GUILD_FAILED, guild_id, e)
            else:
                logger.info(LogTemplates.BOT_SYNCED_GUILD, len(commands_synced), guild_id)

        try:
            commands_synced = await self.tree.sync()
        except discord.HTTPException as e:
            logger.warning(LogTemplates.BOT_SYNC_GLOBAL_FAILED, e)
        else:
            logger.info(LogTemplates.BOT_SYNCED_GLOBAL, len(commands_synced))

    async def _on_app_command_error(
        self, interaction: discord.Interaction, error: discord.app_commands.AppCommandError
    ) -> None:
        # The cog marks interactions it already answered.
        if interaction.extras.get("error_handled"):
            return

        command_name = interaction.command.name if interaction.command else "<unknown>"
        logger.error(LogTemplates.BOT_SLASH_COMMAND_ERROR, command_name, getattr(error, "original", error))

        send = (
            interaction.followup.send
            if interaction.response.is_done()
            else interaction.response.send_message
        )
        try:
            await send(DiscordUIMessages.ERROR_GENERIC, ephemeral=True)
        except discord.HTTPException:
            logger.warning(LogTemplates.BOT_ERROR_MESSAGE_SEND_FAILED)

    async def on_ready(self) -> None:
        if self.user is not None:
            logger.info(LogTemplates.BOT_READY, self.user, self.user.id)
        logger.info(LogTemplates.BOT_CONNECTED_GUILDS, len(self.guilds))

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        logger.info(LogTemplates.BOT_SHUTTING_DOWN)

        # Rooms leave voice and flush their state before the gateway goes away.
        try:
            await self.container.shutdown()
        except Exception as e:
            logger.warning(LogTemplates.BOT_CONTROLLER_SHUTDOWN_ERROR, e)

        await super().close()
        logger.info(LogTemplates.BOT_SHUTDOWN_COMPLETE)

    def run_with_graceful_shutdown(self, token: str, *, shutdown_timeout: float = 30.0) -> None:
        """Run until SIGINT/SIGTERM, giving ``close`` at most *shutdown_timeout* seconds."""

        async def bounded_close() -> None:
            try:
                await asyncio.wait_for(self.close(), timeout=shutdown_timeout)
            except TimeoutError:
                logger.warning(LogTemplates.BOT_SHUTDOWN_TIMEOUT, shutdown_timeout)

        async def serve() -> None:
            async with self:
                loop = asyncio.get_running_loop()
                for signum in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(signum, lambda: loop.create_task(bounded_close()))
                await self.start(token)

        asyncio.run(serve())


def create_bot(container: Container, settings: Settings) -> MusicBot:
    return MusicBot(container=container, settings=settings)
