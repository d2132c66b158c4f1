"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, StrEnum


class TrackSource(StrEnum):
    """Where a track was sourced from."""

    YOUTUBE = "yt"
    SPOTIFY = "sp"
    SOUNDCLOUD = "sc"


class LoopMode(StrEnum):
    """Loop mode settings for queue playback."""

    OFF = "off"
    ONE = "one"  # Replay the finished track
    ALL = "all"  # Recycle finished tracks to the back of the queue

    def next_mode(self) -> LoopMode:
        """Cycle to next loop mode."""
        modes = list(LoopMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class PlayerStatus(Enum):
    """Status transitions reported for a room's audio sink.

    State transitions:
    - IDLE -> PLAYING (a resource starts)
    - PLAYING -> PAUSED / AUTO_PAUSED (explicit pause / no listeners)
    - PAUSED / AUTO_PAUSED -> PLAYING (resume)
    - PLAYING / PAUSED / AUTO_PAUSED -> IDLE (exhausted, stopped or skipped)
    """

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    AUTO_PAUSED = "auto_paused"

    def can_transition_to(self, target: PlayerStatus) -> bool:
        """Check if transition to target status is valid."""
        paused = {PlayerStatus.PAUSED, PlayerStatus.AUTO_PAUSED}
        valid_transitions = {
            PlayerStatus.IDLE: {PlayerStatus.PLAYING},
            PlayerStatus.PLAYING: paused | {PlayerStatus.IDLE},
            PlayerStatus.PAUSED: {PlayerStatus.PLAYING, PlayerStatus.IDLE, PlayerStatus.AUTO_PAUSED},
            PlayerStatus.AUTO_PAUSED: {PlayerStatus.PLAYING, PlayerStatus.IDLE, PlayerStatus.PAUSED},
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_paused(self) -> bool:
        return self in {PlayerStatus.PAUSED, PlayerStatus.AUTO_PAUSED}

    @property
    def is_active(self) -> bool:
        return self != PlayerStatus.IDLE


class QueuePlacement(StrEnum):
    """Where newly enqueued tracks land."""

    END = "end"
    NEXT = "next"
    TOP = "top"

    @property
    def at_front(self) -> bool:
        return self is not QueuePlacement.END


class AudioFilter(StrEnum):
    """Audio effects applied through the FFmpeg ``-af`` chain."""

    BASSBOOST = "bassboost"
    NIGHTCORE = "nightcore"
    VAPORWAVE = "vaporwave"
    EIGHT_D = "8d"
    KARAOKE = "karaoke"

    @property
    def ffmpeg_chain(self) -> str:
        return _FILTER_CHAINS[self]

    @property
    def label(self) -> str:
        return self.value.capitalize() if self is not AudioFilter.EIGHT_D else "8D"


_FILTER_CHAINS: dict[AudioFilter, str] = {
    AudioFilter.BASSBOOST: "bass=g=10,dynaudnorm=f=200",
    AudioFilter.NIGHTCORE: "asetrate=48000*1.25,aresample=48000,atempo=1.0",
    AudioFilter.VAPORWAVE: "asetrate=48000*0.8,aresample=48000,atempo=1.0",
    AudioFilter.EIGHT_D: "apulsator=hz=0.08",
    AudioFilter.KARAOKE: "stereotools=mlev=0.03",
}


@dataclass(frozen=True, slots=True)
class Progress:
    """Elapsed/total pair read from the playback clock.

    ``total`` is NaN when the track duration is unknown.
    """

    elapsed: float
    total: float

    @property
    def has_total(self) -> bool:
        return self.total == self.total and self.total > 0
