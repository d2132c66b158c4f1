"""Port interface for the text surface the panel is drawn on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import PanelRef
    from ..services.panel_models import PanelPayload


class DisplaySurface(ABC):
    """Interface for sending and editing panel messages."""

    @abstractmethod
    async def channel_exists(self, channel_id: int) -> bool:
        """Whether *channel_id* is a reachable text channel."""
        ...

    @abstractmethod
    async def send(self, channel_id: int, payload: PanelPayload) -> PanelRef:
        ...

    @abstractmethod
    async def edit(self, ref: PanelRef, payload: PanelPayload) -> bool:
        """Edit the referenced message; False when it no longer exists."""
        ...

    @abstractmethod
    async def fetch_message(self, ref: PanelRef) -> PanelRef | None:
        ...

    @abstractmethod
    async def notify(self, channel_id: int, text: str) -> None:
        """Post a plain status line to a channel."""
        ...
