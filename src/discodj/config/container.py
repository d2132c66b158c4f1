"""Dependency Injection Container

Builds the object graph lazily: the room registry and serial executor, the
yt-dlp/Spotify resolver and FFmpeg source factory, the Discord adapters, the
JSON stores, and the playback controller that ties them together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.services.panel_sync import PanelSync
    from ..application.services.playback_controller import PlaybackController
    from ..application.services.serial_executor import SerialExecutor
    from ..domain.music.room import RoomRegistry
    from ..infrastructure.audio.ffmpeg_source import FFmpegSourceFactory
    from ..infrastructure.audio.spotify import SpotifyLookup
    from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver
    from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceGateway
    from ..infrastructure.discord.services.display import DiscordDisplaySurface
    from ..infrastructure.discord.services.panel_actions import PanelActions
    from ..infrastructure.discord.services.presence import DiscordPresencePublisher
    from ..infrastructure.persistence.json_store import JsonPlaylistStore, JsonRoomStore
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed and cached for the
    lifetime of the bot.
    """

    settings: Settings
    _bot: Bot | None = None

    # Core
    _registry: RoomRegistry | None = None
    _executor: SerialExecutor | None = None

    # Persistence
    _room_store: JsonRoomStore | None = None
    _playlist_store: JsonPlaylistStore | None = None

    # Audio
    _spotify: SpotifyLookup | None = None
    _spotify_checked: bool = False
    _resolver: YtDlpResolver | None = None
    _source_factory: FFmpegSourceFactory | None = None

    # Discord adapters
    _voice_gateway: DiscordVoiceGateway | None = None
    _display: DiscordDisplaySurface | None = None
    _presence: DiscordPresencePublisher | None = None
    _panel_actions: PanelActions | None = None

    # Application services
    _panel_sync: PanelSync | None = None
    _controller: PlaybackController | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Core ===

    @property
    def registry(self) -> RoomRegistry:
        if self._registry is None:
            from ..domain.music.room import RoomRegistry

            self._registry = RoomRegistry()
        return self._registry

    @property
    def executor(self) -> SerialExecutor:
        if self._executor is None:
            from ..application.services.serial_executor import SerialExecutor

            self._executor = SerialExecutor()
        return self._executor

    # === Persistence ===

    @property
    def room_store(self) -> JsonRoomStore:
        if self._room_store is None:
            from ..infrastructure.persistence.json_store import JsonRoomStore

            self._room_store = JsonRoomStore(
                self.settings.persistence.path, default_volume=self.settings.audio.default_volume
            )
        return self._room_store

    @property
    def playlist_store(self) -> JsonPlaylistStore:
        if self._playlist_store is None:
            from ..infrastructure.persistence.json_store import JsonPlaylistStore

            self._playlist_store = JsonPlaylistStore(self.settings.persistence.path)
        return self._playlist_store

    # === Audio ===

    @property
    def spotify(self) -> SpotifyLookup | None:
        """Spotify link expansion, or None when no credentials are configured."""
        if not self._spotify_checked:
            from ..infrastructure.audio.spotify import create_spotify_lookup

            resolver_settings = self.settings.resolver
            self._spotify = create_spotify_lookup(
                resolver_settings.spotify_client_id.get_secret_value(),
                resolver_settings.spotify_client_secret.get_secret_value(),
                limit=resolver_settings.playlist_limit,
            )
            self._spotify_checked = True
        return self._spotify

    @property
    def resolver(self) -> YtDlpResolver:
        if self._resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._resolver = YtDlpResolver(
                self.settings.resolver, self.settings.audio, spotify=self.spotify
            )
        return self._resolver

    @property
    def source_factory(self) -> FFmpegSourceFactory:
        if self._source_factory is None:
            from ..infrastructure.audio.ffmpeg_source import FFmpegSourceFactory

            self._source_factory = FFmpegSourceFactory(self.resolver, self.settings.audio)
        return self._source_factory

    # === Discord Adapters ===

    @property
    def voice_gateway(self) -> DiscordVoiceGateway:
        if self._voice_gateway is None:
            from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceGateway

            self._voice_gateway = DiscordVoiceGateway(self.bot)
        return self._voice_gateway

    @property
    def display(self) -> DiscordDisplaySurface:
        if self._display is None:
            from ..infrastructure.discord.services.display import DiscordDisplaySurface

            self._display = DiscordDisplaySurface(self.bot)
        return self._display

    @property
    def presence(self) -> DiscordPresencePublisher:
        if self._presence is None:
            from ..infrastructure.discord.services.presence import DiscordPresencePublisher

            self._presence = DiscordPresencePublisher(self.bot)
        return self._presence

    @property
    def panel_actions(self) -> PanelActions:
        """Button handler for panel messages, shared with the persistent view."""
        if self._panel_actions is None:
            from ..infrastructure.discord.services.panel_actions import PanelActions

            self._panel_actions = PanelActions(
                controller=self.controller,
                executor=self.executor,
                dj_role_name=self.settings.discord.dj_role_name,
            )
        return self._panel_actions

    # === Application Services ===

    @property
    def panel_sync(self) -> PanelSync:
        if self._panel_sync is None:
            from ..application.services.panel_sync import PanelSync

            self._panel_sync = PanelSync(
                self.display,
                slots=self.settings.panel.progress_slots,
                page_size=self.settings.panel.queue_page_size,
            )
        return self._panel_sync

    @property
    def controller(self) -> PlaybackController:
        if self._controller is None:
            from ..application.services.playback_controller import PlaybackController

            self._controller = PlaybackController(
                registry=self.registry,
                executor=self.executor,
                voice_gateway=self.voice_gateway,
                resolver=self.resolver,
                source_factory=self.source_factory,
                panel_sync=self.panel_sync,
                presence=self.presence,
                room_store=self.room_store,
                playlist_store=self.playlist_store,
                settings=self.settings.playback,
                refresh_interval_s=self.settings.panel.refresh_interval_s,
            )
            self.display.attach_handler(self.panel_actions)
        return self._controller

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Persist rooms, drop voice connections and stop background work."""
        if self._controller is not None:
            await self._controller.shutdown()
        if self._executor is not None:
            await self._executor.shutdown()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
