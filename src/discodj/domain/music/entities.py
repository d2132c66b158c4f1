"""Core domain entities for the music bounded context."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from discodj.domain.music.value_objects import LoopMode, TrackSource
from discodj.domain.shared.datetime_utils import utcnow
from discodj.domain.shared.exceptions import InvalidOperationError
from discodj.domain.shared.messages import ErrorMessages
from discodj.domain.shared.types import (
    DEFAULT_VOLUME,
    ChannelIdField,
    DurationSeconds,
    HttpUrlStr,
    MessageIdField,
    NonEmptyStr,
    PlaylistNameStr,
    TrackTitleStr,
    UserIdField,
    UtcDatetimeField,
    VolumePercent,
)
from discodj.domain.shared.validators import clamp_volume

logger = logging.getLogger(__name__)


class Requester(BaseModel):
    """Who asked for a track."""

    model_config = ConfigDict(frozen=True)

    id: UserIdField | None = None
    tag: NonEmptyStr | None = None


class Track(BaseModel):
    """A playable item queued in a room.

    A track with no ``url`` and a ``lazy_query`` is a placeholder: it is
    filled in place, exactly once, right before it is played.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    url: HttpUrlStr | None = None
    title: TrackTitleStr
    thumbnail: HttpUrlStr | None = None
    duration_sec: DurationSeconds | None = None
    requested_by_id: UserIdField | None = None
    requested_by_tag: NonEmptyStr | None = None
    source: TrackSource = TrackSource.YOUTUBE
    lazy_query: NonEmptyStr | None = None

    @model_validator(mode="after")
    def _require_url_or_query(self) -> Self:
        if self.url is None and not self.lazy_query:
            raise ValueError(ErrorMessages.PLACEHOLDER_NEEDS_QUERY)
        return self

    @property
    def is_placeholder(self) -> bool:
        return self.url is None and bool(self.lazy_query)

    @property
    def has_duration(self) -> bool:
        return self.duration_sec is not None and self.duration_sec > 0

    def fill_from(self, resolved: Track) -> None:
        """Populate this placeholder in place from a resolved track."""
        if not self.is_placeholder:
            raise InvalidOperationError(
                "resolve",
                "resolved" if self.url else "invalid",
                ErrorMessages.TRACK_ALREADY_RESOLVED if self.url else ErrorMessages.TRACK_NOT_PLACEHOLDER,
            )
        self.url = resolved.url
        self.title = resolved.title
        self.thumbnail = resolved.thumbnail or self.thumbnail
        self.duration_sec = resolved.duration_sec if resolved.duration_sec is not None else self.duration_sec
        self.lazy_query = None

    def with_requester(self, requester: Requester) -> Track:
        """Return a copy of this track attributed to *requester*."""
        return self.model_copy(
            update={"requested_by_id": requester.id, "requested_by_tag": requester.tag}
        )

    def copy_for_queue(self) -> Track:
        """Return a fresh instance so the same item can be queued again."""
        return self.model_copy()


class RoomSettings(BaseModel):
    """Persisted per-room playback preferences."""

    model_config = ConfigDict(validate_assignment=True)

    volume: VolumePercent = DEFAULT_VOLUME
    loop_mode: LoopMode = LoopMode.OFF
    autoplay: bool = True
    dj_only: bool = False


class PanelRef(BaseModel):
    """Location of the room's live panel message."""

    model_config = ConfigDict(frozen=True)

    channel_id: ChannelIdField
    message_id: MessageIdField


class RoomSnapshot(BaseModel):
    """The persisted subset of a room's state."""

    queue: list[Track] = Field(default_factory=list)
    history: list[Track] = Field(default_factory=list)
    volume: VolumePercent = DEFAULT_VOLUME
    loop_mode: LoopMode = LoopMode.OFF
    autoplay: bool = True
    dj_only: bool = False

    @property
    def settings(self) -> RoomSettings:
        return RoomSettings(
            volume=self.volume,
            loop_mode=self.loop_mode,
            autoplay=self.autoplay,
            dj_only=self.dj_only,
        )

    @classmethod
    def from_raw(
        cls,
        raw: Any,
        *,
        default_volume: int = DEFAULT_VOLUME,
        on_invalid: Callable[[str], None] | None = None,
    ) -> RoomSnapshot:
        """Coerce arbitrary decoded JSON into a valid snapshot.

        Each field falls back to its default independently, with a missing or
        malformed volume becoming *default_volume*; malformed tracks inside
        ``queue``/``history`` are dropped. Never raises.
        """
        defaults = cls(volume=default_volume)
        if not isinstance(raw, dict):
            if on_invalid is not None:
                on_invalid("<root>")
            return defaults

        def invalid(name: str) -> None:
            if on_invalid is not None:
                on_invalid(name)

        def tracks(name: str) -> list[Track]:
            value = raw.get(name)
            if value is None:
                return []
            if not isinstance(value, list):
                invalid(name)
                return []
            parsed: list[Track] = []
            for item in value:
                try:
                    parsed.append(Track.model_validate(item))
                except ValidationError:
                    invalid(name)
            return parsed

        volume = raw.get("volume", default_volume)
        coerced_volume = clamp_volume(volume, default_volume)
        if coerced_volume != volume:
            invalid("volume")

        try:
            loop_mode = LoopMode(raw.get("loop_mode", LoopMode.OFF))
        except ValueError:
            invalid("loop_mode")
            loop_mode = defaults.loop_mode

        autoplay = raw.get("autoplay", defaults.autoplay)
        if not isinstance(autoplay, bool):
            invalid("autoplay")
            autoplay = defaults.autoplay

        dj_only = raw.get("dj_only", defaults.dj_only)
        if not isinstance(dj_only, bool):
            invalid("dj_only")
            dj_only = defaults.dj_only

        return cls(
            queue=tracks("queue"),
            history=tracks("history"),
            volume=coerced_volume,
            loop_mode=loop_mode,
            autoplay=autoplay,
            dj_only=dj_only,
        )


class SavedPlaylist(BaseModel):
    """A named list of tracks saved by a room."""

    name: PlaylistNameStr
    tracks: list[Track] = Field(default_factory=list)
    saved_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def count(self) -> int:
        return len(self.tracks)

    @classmethod
    def create(cls, name: str, tracks: list[Track], *, saved_at: datetime | None = None) -> SavedPlaylist:
        return cls(
            name=name,
            tracks=[t.copy_for_queue() for t in tracks],
            saved_at=saved_at or utcnow(),
        )
