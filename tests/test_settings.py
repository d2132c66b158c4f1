"""
Unit Tests for Application Settings Configuration

Tests for:
- Default values for every nested settings group
- Loading settings from environment variables (flat and nested)
- Custom validators (log level, snowflake IDs)
- Spotify credential detection
- Settings caching and clearing
"""

import pytest
from pydantic import SecretStr, ValidationError

from discodj.config.settings import (
    AudioSettings,
    DiscordSettings,
    PanelSettings,
    PersistenceSettings,
    PlaybackSettings,
    ResolverSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

_ENV_VARS = (
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "DISCORD__TOKEN",
    "DISCORD__GUILD_IDS",
    "RESOLVER__SPOTIFY_CLIENT_ID",
    "RESOLVER__SPOTIFY_CLIENT_SECRET",
    "PANEL__REFRESH_INTERVAL_S",
    "PLAYBACK__MAX_CONSECUTIVE_FAILURES",
    "PERSISTENCE__DATA_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate every test from the developer's environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# DiscordSettings Tests
# =============================================================================


class TestDiscordSettings:
    """Unit tests for DiscordSettings configuration."""

    def test_defaults(self):
        """Should default to an empty token and no guilds."""
        discord = DiscordSettings()

        assert discord.token.get_secret_value() == ""
        assert discord.guild_ids == ()
        assert discord.sync_on_startup is True
        assert discord.dj_role_name == "DJ"

    def test_token_aliases(self):
        """Should accept bot_token and discord_token aliases."""
        assert DiscordSettings(bot_token="a").token.get_secret_value() == "a"
        assert DiscordSettings(discord_token="b").token.get_secret_value() == "b"

    def test_guild_ids_list_converted_to_tuple(self):
        """Should store guild IDs as a tuple."""
        discord = DiscordSettings(guild_ids=[111, 222])

        assert discord.guild_ids == (111, 222)

    def test_invalid_snowflake_rejected(self):
        """Should reject non-positive guild IDs."""
        with pytest.raises(ValidationError, match="must be positive"):
            DiscordSettings(guild_ids=[0])

    def test_frozen(self):
        """Should not allow mutation after creation."""
        discord = DiscordSettings()

        with pytest.raises(ValidationError):
            discord.dj_role_name = "Other"


# =============================================================================
# Nested group Tests
# =============================================================================


class TestNestedGroups:
    """Defaults and bounds of the smaller settings groups."""

    def test_audio_defaults(self):
        audio = AudioSettings()

        assert audio.default_volume == 100
        assert audio.ytdlp_format == "bestaudio/best"
        assert "-reconnect 1" in audio.ffmpeg_before_options

    def test_audio_volume_bounds(self):
        with pytest.raises(ValidationError):
            AudioSettings(default_volume=201)

    def test_resolver_defaults(self):
        resolver = ResolverSettings()

        assert resolver.timeout_s == 30.0
        assert resolver.retries == 1
        assert resolver.spotify_enabled is False

    def test_spotify_enabled_needs_both_credentials(self):
        assert not ResolverSettings(spotify_client_id=SecretStr("id")).spotify_enabled
        assert ResolverSettings(
            spotify_client_id=SecretStr("id"), spotify_client_secret=SecretStr("secret")
        ).spotify_enabled

    def test_playback_defaults(self):
        playback = PlaybackSettings()

        assert playback.max_consecutive_failures == 5
        assert playback.history_limit == 20
        assert playback.leave_when_alone is True

    def test_panel_page_size_bounds(self):
        with pytest.raises(ValidationError):
            PanelSettings(queue_page_size=0)

    def test_persistence_path(self):
        assert str(PersistenceSettings(data_dir="state").path) == "state"


# =============================================================================
# Settings Tests
# =============================================================================


class TestSettings:
    """Unit tests for the top-level Settings container."""

    def test_defaults(self):
        """Should create settings with default nested groups."""
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert isinstance(settings.playback, PlaybackSettings)

    def test_load_from_environment_variables(self, monkeypatch):
        """Should load top-level settings from environment variables."""
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.debug is True
        assert settings.log_level == "WARNING"

    def test_load_nested_settings_from_env(self, monkeypatch):
        """Should load nested settings using env_nested_delimiter."""
        monkeypatch.setenv("DISCORD__TOKEN", "secret-token")
        monkeypatch.setenv("PANEL__REFRESH_INTERVAL_S", "2.5")
        monkeypatch.setenv("PLAYBACK__MAX_CONSECUTIVE_FAILURES", "3")
        monkeypatch.setenv("PERSISTENCE__DATA_DIR", "/tmp/discodj")

        settings = Settings(_env_file=None)

        assert settings.discord.token.get_secret_value() == "secret-token"
        assert settings.panel.refresh_interval_s == 2.5
        assert settings.playback.max_consecutive_failures == 3
        assert settings.persistence.data_dir == "/tmp/discodj"

    def test_spotify_credentials_from_env(self, monkeypatch):
        """Should enable Spotify when both credentials are present."""
        monkeypatch.setenv("RESOLVER__SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("RESOLVER__SPOTIFY_CLIENT_SECRET", "secret")

        assert Settings(_env_file=None).resolver.spotify_enabled

    def test_invalid_log_level(self, monkeypatch):
        """Should reject unknown log levels."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(_env_file=None)

    def test_environment_validation(self, monkeypatch):
        """Should reject unknown environments."""
        monkeypatch.setenv("ENVIRONMENT", "staging")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestSettingsCache:
    def test_get_settings_cached(self):
        """Should return the same instance until the cache is cleared."""
        first = get_settings()

        assert get_settings() is first
        clear_settings_cache()
        assert get_settings() is not first
