"""DTOs describing a rendered now-playing panel."""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict, Field

from ...domain.music.value_objects import PlayerStatus
from ...domain.shared.types import NonNegativeFloat, NonNegativeInt, PositiveInt


class PanelField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    inline: bool = False


class UpNextEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: PositiveInt
    title: str
    url: str | None = None
    duration_sec: NonNegativeFloat | None = None
    eta_sec: NonNegativeFloat


class PanelControls(BaseModel):
    """Which buttons the panel offers and how they are labelled."""

    model_config = ConfigDict(frozen=True)

    is_paused: bool = False
    can_go_back: bool = False
    has_track: bool = False
    show_pages: bool = False
    page_prev_enabled: bool = False
    page_next_enabled: bool = False


class ContentKey(BaseModel):
    """The inputs that decide whether a panel edit is worth sending."""

    model_config = ConfigDict(frozen=True)

    track_identity: str | None
    elapsed_floor: int
    total_floor: int | None
    status: PlayerStatus
    queue_length: NonNegativeInt
    page: NonNegativeInt = 0
    settings_digest: str = ""

    def digest(self) -> str:
        return hashlib.sha1(self.model_dump_json().encode(), usedforsecurity=False).hexdigest()


class PanelPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    status: PlayerStatus
    description: str | None = None
    url: str | None = None
    thumbnail: str | None = None
    progress: str | None = None
    fields: list[PanelField] = Field(default_factory=list)
    up_next: list[UpNextEntry] = Field(default_factory=list)
    up_next_text: str = ""
    footer: str | None = None
    page: NonNegativeInt = 0
    page_count: PositiveInt = 1
    controls: PanelControls = Field(default_factory=PanelControls)
    content_key: ContentKey
