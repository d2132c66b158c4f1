"""Port interfaces for voice connections and their status events."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ...domain.music.value_objects import PlayerStatus
    from .audio_source import PlayableResource


@dataclass(frozen=True, slots=True)
class SinkEvent:
    """A status transition reported by a connection's audio sink."""

    status: PlayerStatus
    resource: PlayableResource | None
    error: Exception | None = None


StatusListener = Callable[[SinkEvent], Awaitable[None]]


class VoiceConnection(ABC):
    """A live voice session in one room."""

    @property
    @abstractmethod
    def channel_id(self) -> int | None:
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def play(self, resource: PlayableResource) -> None:
        """Start *resource*, replacing whatever is playing."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def pause(self) -> bool:
        ...

    @abstractmethod
    def resume(self) -> bool:
        ...

    @abstractmethod
    def subscribe(self, listener: StatusListener) -> None:
        """Register the single status listener for this connection."""
        ...

    @abstractmethod
    def unsubscribe(self) -> None:
        ...

    @property
    @abstractmethod
    def has_listener(self) -> bool:
        ...

    @abstractmethod
    def human_listener_count(self) -> int:
        """Members in the channel who are not bots."""
        ...

    @abstractmethod
    async def destroy(self) -> None:
        """Disconnect and release the session."""
        ...


class VoiceGateway(ABC):
    """Interface for joining and looking up voice connections."""

    @abstractmethod
    async def join(self, room_id: int, context: Any) -> VoiceConnection | None:
        """Join the voice channel described by *context*.

        Returns None when *context* has no voice presence or joining fails.
        """
        ...

    @abstractmethod
    def get_existing(self, room_id: int) -> VoiceConnection | None:
        ...
