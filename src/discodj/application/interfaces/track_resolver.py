"""Port interface for turning user queries into tracks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import Requester, Track


class TrackResolver(ABC):
    """Interface for resolving URLs and search queries to tracks.

    Implementations must be safe to retry: calling any method twice with
    the same input has no side effects beyond caching.
    """

    @abstractmethod
    async def resolve(self, query: str, requester: Requester) -> list[Track]:
        """Resolve a URL or search query; playlists expand to many tracks."""
        ...

    @abstractmethod
    async def resolve_one(self, url: str) -> Track | None:
        """Resolve a single URL to a track, or None when nothing matches."""
        ...

    @abstractmethod
    async def resolve_placeholder(self, track: Track) -> Track | None:
        """Find a playable track for a placeholder's lazy query."""
        ...

    @abstractmethod
    async def find_related(self, seed: Track) -> Track | None:
        """Pick one track related to *seed* for autoplay."""
        ...

    @abstractmethod
    async def search(self, query: str, limit: int = 5) -> list[Track]:
        """Search for tracks matching a free-text query."""
        ...
