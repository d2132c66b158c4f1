"""
FFmpeg Audio Sources

Builds discord.py FFmpeg sources for tracks, with seek offsets, audio
filters and live volume, and counts the audio actually handed to the
voice client.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import discord
from discord.opus import Encoder

from discodj.application.interfaces.audio_source import AudioSourceFactory, PlayableResource
from discodj.config.settings import AudioSettings
from discodj.domain.shared.exceptions import TrackResolutionError
from discodj.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from discodj.domain.music.entities import Track
    from discodj.domain.music.value_objects import AudioFilter
    from discodj.infrastructure.audio.ytdlp_resolver import YtDlpResolver

logger = logging.getLogger(__name__)


@dataclass
class FFmpegConfig:
    """Configuration for FFmpeg audio processing."""

    before_options: str = "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5"
    options: str = "-vn"

    def get_before_options(self, seek_offset_sec: float = 0.0) -> str:
        """Get FFmpeg before_options, seeking on the input when an offset is given."""
        offset = max(0.0, seek_offset_sec)
        if offset > 0:
            return f"-ss {offset:.3f} {self.before_options}".strip()
        return self.before_options

    def get_options(self, audio_filter: AudioFilter | None = None) -> str:
        """Get FFmpeg output options, with the filter's ``-af`` chain when set."""
        if audio_filter is None:
            return self.options
        return f"{self.options} -af {shlex.quote(audio_filter.ffmpeg_chain)}".strip()


class TrackedVolumeSource(discord.PCMVolumeTransformer, PlayableResource):
    """Volume-controlled source that counts the 20 ms frames the voice client reads.

    The count only advances while audio is actually being pulled, so it stops
    during a pause and reflects what listeners heard.
    """

    def __init__(self, original: discord.AudioSource, volume_percent: int = 100) -> None:
        super().__init__(original, volume=volume_percent / 100)
        self._frames = 0

    def read(self) -> bytes:
        data = super().read()
        if data:
            self._frames += 1
        return data

    @property
    def played_ms(self) -> float | None:
        return float(self._frames * Encoder.FRAME_LENGTH)

    def set_volume(self, volume_percent: int) -> None:
        self.volume = max(0, min(200, volume_percent)) / 100


class FFmpegSourceFactory(AudioSourceFactory):
    """Creates :class:`TrackedVolumeSource` objects from resolved tracks."""

    def __init__(
        self,
        resolver: YtDlpResolver,
        settings: AudioSettings | None = None,
        config: FFmpegConfig | None = None,
    ) -> None:
        self._resolver = resolver
        self._settings = settings or AudioSettings()
        self._config = config or FFmpegConfig(
            before_options=self._settings.ffmpeg_before_options,
            options=self._settings.ffmpeg_options,
        )

    async def make_resource(
        self,
        track: Track,
        *,
        seek_offset_sec: float = 0.0,
        audio_filter: AudioFilter | None = None,
        volume_percent: int = 100,
    ) -> TrackedVolumeSource:
        if not track.url:
            raise TrackResolutionError(
                track.lazy_query or track.title,
                ErrorMessages.NO_STREAM_URL_FOR_TRACK.format(title=track.title),
            )

        stream_url = await self._resolver.stream_url(track.url)
        return self.create_source(
            stream_url,
            seek_offset_sec=seek_offset_sec,
            audio_filter=audio_filter,
            volume_percent=volume_percent,
            title=track.title,
        )

    def create_source(
        self,
        stream_url: str,
        *,
        seek_offset_sec: float = 0.0,
        audio_filter: AudioFilter | None = None,
        volume_percent: int = 100,
        title: str = "",
    ) -> TrackedVolumeSource:
        """Spawn FFmpeg for *stream_url* and wrap it for volume and frame counting.

        Raises:
            TrackResolutionError: If FFmpeg cannot be started.
        """
        kwargs: dict[str, Any] = {
            "before_options": self._config.get_before_options(seek_offset_sec),
            "options": self._config.get_options(audio_filter),
        }
        try:
            source = discord.FFmpegPCMAudio(stream_url, **kwargs)
        except discord.ClientException as exc:
            raise TrackResolutionError(title or stream_url, str(exc)) from exc

        logger.debug(
            LogTemplates.FFMPEG_SOURCE_CREATED,
            title,
            seek_offset_sec,
            audio_filter.value if audio_filter else None,
        )
        return TrackedVolumeSource(source, volume_percent)
