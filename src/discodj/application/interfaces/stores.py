"""Port interfaces for persisting room snapshots and saved playlists."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import RoomSnapshot, SavedPlaylist, Track


class RoomStore(ABC):
    """Interface for per-room snapshot persistence."""

    @abstractmethod
    async def save(self, room_id: int, snapshot: RoomSnapshot) -> None:
        ...

    @abstractmethod
    async def load(self, room_id: int) -> RoomSnapshot:
        """Load a snapshot, defaulting field by field. Never raises."""
        ...


class PlaylistStore(ABC):
    """Interface for named playlists saved per room."""

    @abstractmethod
    async def list(self, room_id: int) -> list[SavedPlaylist]:
        ...

    @abstractmethod
    async def save(self, room_id: int, name: str, tracks: list[Track]) -> SavedPlaylist:
        ...

    @abstractmethod
    async def load(self, room_id: int, name: str) -> SavedPlaylist | None:
        ...

    @abstractmethod
    async def delete(self, room_id: int, name: str) -> bool:
        ...
