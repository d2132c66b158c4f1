"""Port interface for building playable audio resources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.value_objects import AudioFilter


class PlayableResource(ABC):
    """A single playback of a track, handed to a voice connection."""

    @property
    @abstractmethod
    def played_ms(self) -> float | None:
        """Milliseconds of audio actually delivered to the sink, if known."""
        ...

    @abstractmethod
    def set_volume(self, volume_percent: int) -> None:
        """Apply a 0..200 room volume to this resource."""
        ...


class AudioSourceFactory(ABC):
    """Interface for turning a resolved track into a playable resource."""

    @abstractmethod
    async def make_resource(
        self,
        track: Track,
        *,
        seek_offset_sec: float = 0.0,
        audio_filter: AudioFilter | None = None,
        volume_percent: int = 100,
    ) -> PlayableResource:
        """Build a resource starting at *seek_offset_sec*.

        Raises:
            TrackResolutionError: If the track cannot be played.
        """
        ...
