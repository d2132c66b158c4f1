"""
Music Bounded Context

Domain logic for tracks, per-room queue state and playback timing.
"""

from discodj.domain.music.entities import (
    PanelRef,
    Requester,
    RoomSettings,
    RoomSnapshot,
    SavedPlaylist,
    Track,
)
from discodj.domain.music.room import RoomRegistry, RoomState
from discodj.domain.music.timing import PlaybackClock
from discodj.domain.music.value_objects import (
    AudioFilter,
    LoopMode,
    PlayerStatus,
    Progress,
    QueuePlacement,
    TrackSource,
)

__all__ = [
    # Entities
    "Track",
    "RoomSettings",
    "RoomSnapshot",
    "PanelRef",
    "Requester",
    "SavedPlaylist",
    # State
    "RoomState",
    "RoomRegistry",
    "PlaybackClock",
    # Value Objects
    "AudioFilter",
    "LoopMode",
    "PlayerStatus",
    "Progress",
    "QueuePlacement",
    "TrackSource",
]
