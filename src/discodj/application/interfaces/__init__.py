"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discodj.application.interfaces.audio_source import AudioSourceFactory, PlayableResource
from discodj.application.interfaces.display import DisplaySurface
from discodj.application.interfaces.presence import PresencePublisher
from discodj.application.interfaces.stores import PlaylistStore, RoomStore
from discodj.application.interfaces.track_resolver import TrackResolver
from discodj.application.interfaces.voice import (
    SinkEvent,
    StatusListener,
    VoiceConnection,
    VoiceGateway,
)

__all__ = [
    "AudioSourceFactory",
    "DisplaySurface",
    "PlayableResource",
    "PlaylistStore",
    "PresencePublisher",
    "RoomStore",
    "SinkEvent",
    "StatusListener",
    "TrackResolver",
    "VoiceConnection",
    "VoiceGateway",
]
