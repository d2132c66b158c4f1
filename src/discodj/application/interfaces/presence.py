"""Port interface for the bot's global activity indicator."""

from __future__ import annotations

from abc import ABC, abstractmethod


class PresencePublisher(ABC):
    @abstractmethod
    async def set_playing(self, title: str) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...
