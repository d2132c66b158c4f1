"""Unit tests for FFmpeg option building, the frame-counting volume source and the factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from discodj.config.settings import AudioSettings
from discodj.domain.music.value_objects import AudioFilter
from discodj.domain.shared.exceptions import TrackResolutionError
from discodj.infrastructure.audio.ffmpeg_source import (
    FFmpegConfig,
    FFmpegSourceFactory,
    TrackedVolumeSource,
)

from .conftest import make_placeholder, make_track

FRAME = b"\x00" * 3840


class _Silence(discord.AudioSource):
    def read(self) -> bytes:
        return b""


@pytest.fixture
def resolver():
    resolver = MagicMock()
    resolver.stream_url = AsyncMock(return_value="https://cdn.example/stream.m4a")
    return resolver


@pytest.fixture
def factory(resolver):
    return FFmpegSourceFactory(resolver, AudioSettings(ffmpeg_before_options="-reconnect 1", ffmpeg_options="-vn"))


# =============================================================================
# FFmpegConfig Tests
# =============================================================================


class TestFFmpegConfig:
    """Unit tests for FFmpegConfig option strings."""

    def test_before_options_without_seek(self):
        assert FFmpegConfig(before_options="-reconnect 1").get_before_options() == "-reconnect 1"

    def test_before_options_with_seek(self):
        """Should keep the fractional offset so FFmpeg matches the playback clock."""
        config = FFmpegConfig(before_options="-reconnect 1")

        assert config.get_before_options(42.9) == "-ss 42.900 -reconnect 1"

    def test_negative_seek_ignored(self):
        assert FFmpegConfig(before_options="").get_before_options(-5) == ""

    def test_options_with_filter(self):
        options = FFmpegConfig(options="-vn").get_options(AudioFilter.BASSBOOST)

        assert options == "-vn -af bass=g=10,dynaudnorm=f=200"

    def test_options_without_filter(self):
        assert FFmpegConfig(options="-vn").get_options(None) == "-vn"


# =============================================================================
# TrackedVolumeSource Tests
# =============================================================================


class TestTrackedVolumeSource:
    """Frame counting and volume mapping."""

    def test_counts_frames_read(self):
        source = TrackedVolumeSource(_Silence())

        with patch.object(discord.PCMVolumeTransformer, "read", side_effect=[FRAME, FRAME, FRAME, b""]):
            for _ in range(4):
                source.read()

        assert source.played_ms == 60.0

    def test_initial_volume(self):
        assert TrackedVolumeSource(_Silence(), 150).volume == pytest.approx(1.5)

    def test_set_volume_clamped(self):
        source = TrackedVolumeSource(_Silence())

        source.set_volume(250)
        assert source.volume == pytest.approx(2.0)

        source.set_volume(50)
        assert source.volume == pytest.approx(0.5)


# =============================================================================
# FFmpegSourceFactory Tests
# =============================================================================


class TestFFmpegSourceFactory:
    @pytest.mark.asyncio
    async def test_make_resource(self, factory, resolver):
        with patch("discord.FFmpegPCMAudio", return_value=_Silence()) as mock_ffmpeg:
            resource = await factory.make_resource(
                make_track("A"),
                seek_offset_sec=30,
                audio_filter=AudioFilter.NIGHTCORE,
                volume_percent=80,
            )

        resolver.stream_url.assert_awaited_once_with("https://www.youtube.com/watch?v=a")
        args, kwargs = mock_ffmpeg.call_args
        assert args == ("https://cdn.example/stream.m4a",)
        assert kwargs["before_options"] == "-ss 30.000 -reconnect 1"
        assert kwargs["options"].startswith("-vn -af ")
        assert isinstance(resource, TrackedVolumeSource)
        assert resource.volume == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_placeholder_rejected(self, factory, resolver):
        with pytest.raises(TrackResolutionError):
            await factory.make_resource(make_placeholder())

        resolver.stream_url.assert_not_awaited()

    def test_ffmpeg_missing(self, factory):
        with (
            patch("discord.FFmpegPCMAudio", side_effect=discord.ClientException("ffmpeg was not found.")),
            pytest.raises(TrackResolutionError, match="ffmpeg was not found"),
        ):
            factory.create_source("https://cdn.example/stream.m4a", title="A")
