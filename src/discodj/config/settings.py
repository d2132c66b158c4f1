"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    DEFAULT_VOLUME,
    NonEmptyStr,
    PageSize,
    PositiveFloat,
    PositiveInt,
    ProgressSlots,
    VolumePercent,
)
from ..domain.shared.validators import validate_discord_snowflake


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("guild_ids", "guilds")
    )
    sync_on_startup: bool = True
    dj_role_name: NonEmptyStr = "DJ"

    @field_validator("guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            validate_discord_snowflake(snowflake)
        return v


class AudioSettings(BaseModel):
    """Audio transcode configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: VolumePercent = DEFAULT_VOLUME
    ffmpeg_before_options: str = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
    ffmpeg_options: str = "-vn"
    ytdlp_format: NonEmptyStr = "bestaudio/best"


class ResolverSettings(BaseModel):
    """Track lookup configuration (yt-dlp and Spotify)."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    timeout_s: PositiveFloat = 30.0
    retries: int = Field(default=1, ge=0, le=5)
    retry_base_delay_s: PositiveFloat = 0.5
    info_ttl_s: PositiveInt = 600
    playlist_ttl_s: PositiveInt = 300
    stream_url_ttl_s: PositiveInt = 300
    playlist_limit: int = Field(default=100, ge=1, le=500)
    search_limit: int = Field(default=5, ge=1, le=25)
    spotify_client_id: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("spotify_client_id", "spotipy_client_id"),
    )
    spotify_client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("spotify_client_secret", "spotipy_client_secret"),
    )

    @property
    def spotify_enabled(self) -> bool:
        return bool(
            self.spotify_client_id.get_secret_value()
            and self.spotify_client_secret.get_secret_value()
        )


class PlaybackSettings(BaseModel):
    """Playback controller policy."""

    model_config = SettingsConfigDict(frozen=True)

    max_consecutive_failures: int = Field(default=5, ge=1, le=20)
    history_limit: int = Field(default=20, ge=0, le=200)
    leave_when_alone: bool = True


class PanelSettings(BaseModel):
    """Now-playing panel configuration."""

    model_config = SettingsConfigDict(frozen=True)

    refresh_interval_s: PositiveFloat = 5.0
    progress_slots: ProgressSlots = 10
    queue_page_size: PageSize = 10


class PersistenceSettings(BaseModel):
    """Where room snapshots and playlists are written."""

    model_config = SettingsConfigDict(frozen=True)

    data_dir: NonEmptyStr = "data"

    @property
    def path(self) -> Path:
        return Path(self.data_dir)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__GUILD_IDS, etc. (nested with ``__``)
    - RESOLVER__SPOTIFY_CLIENT_ID, PANEL__REFRESH_INTERVAL_S, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    panel: PanelSettings = Field(default_factory=PanelSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
