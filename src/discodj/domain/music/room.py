"""Per-room playback state and the registry that owns it."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from discodj.domain.music.entities import PanelRef, RoomSettings, RoomSnapshot, Track
from discodj.domain.music.timing import PlaybackClock, monotonic_ms
from discodj.domain.music.value_objects import AudioFilter, PlayerStatus, QueuePlacement
from discodj.domain.shared.exceptions import InvalidQueueIndexError

logger = logging.getLogger(__name__)

MAX_HISTORY_IN_MEMORY = 200


@dataclass(eq=False)
class RoomState:
    """Everything the bot knows about one guild's playback.

    Invariant: a Track instance is in at most one of ``now_playing``,
    ``queue`` and ``history``.
    """

    room_id: int
    clock: PlaybackClock = field(default_factory=PlaybackClock)
    queue: list[Track] = field(default_factory=list)
    history: list[Track] = field(default_factory=list)
    now_playing: Track | None = None
    playback_handle: Any = None
    connection: Any = None
    panel_ref: PanelRef | None = None
    panel_channel_id: int | None = None
    settings: RoomSettings = field(default_factory=RoomSettings)
    status: PlayerStatus = PlayerStatus.IDLE
    active_filter: AudioFilter | None = None
    edit_version: int = 0
    queue_page: int = 0
    last_panel_hash: str | None = None

    # ── Queue operations ────────────────────────────────────────────

    def enqueue(self, tracks: list[Track], placement: QueuePlacement = QueuePlacement.END) -> int:
        """Insert *tracks* and return the index of the first one."""
        if placement.at_front:
            self.queue[0:0] = tracks
            return 0
        position = len(self.queue)
        self.queue.extend(tracks)
        return position

    def pop_next(self) -> Track | None:
        if not self.queue:
            return None
        return self.queue.pop(0)

    def push_front(self, *tracks: Track) -> None:
        self.queue[0:0] = list(tracks)

    def remove_at(self, index: int) -> Track:
        self._check_index(index)
        return self.queue.pop(index)

    def move(self, from_index: int, to_index: int) -> Track:
        self._check_index(from_index)
        self._check_index(to_index)
        track = self.queue.pop(from_index)
        self.queue.insert(to_index, track)
        return track

    def promote(self, index: int) -> Track:
        """Move the track at *index* to the front of the queue."""
        return self.move(index, 0)

    def clear_queue(self) -> int:
        count = len(self.queue)
        self.queue.clear()
        self.queue_page = 0
        return count

    def shuffle(self, rng: random.Random | None = None) -> None:
        (rng or random).shuffle(self.queue)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.queue):
            raise InvalidQueueIndexError(index, len(self.queue))

    # ── History ─────────────────────────────────────────────────────

    def push_history(self, track: Track) -> None:
        self.history.append(track)
        if len(self.history) > MAX_HISTORY_IN_MEMORY:
            del self.history[: len(self.history) - MAX_HISTORY_IN_MEMORY]

    def pop_history(self) -> Track | None:
        if not self.history:
            return None
        return self.history.pop()

    # ── Panel bookkeeping ───────────────────────────────────────────

    def bump_version(self) -> int:
        self.edit_version += 1
        return self.edit_version

    def page_count(self, page_size: int) -> int:
        return max(1, math.ceil(len(self.queue) / page_size))

    def clamp_page(self, page_size: int) -> int:
        self.queue_page = max(0, min(self.queue_page, self.page_count(page_size) - 1))
        return self.queue_page

    # ── Persistence ─────────────────────────────────────────────────

    def to_snapshot(self, history_limit: int = 20) -> RoomSnapshot:
        return RoomSnapshot(
            queue=list(self.queue),
            history=self.history[-history_limit:] if history_limit > 0 else [],
            volume=self.settings.volume,
            loop_mode=self.settings.loop_mode,
            autoplay=self.settings.autoplay,
            dj_only=self.settings.dj_only,
        )

    def apply_snapshot(self, snapshot: RoomSnapshot) -> None:
        self.queue = list(snapshot.queue)
        self.history = list(snapshot.history)
        self.settings = snapshot.settings

    @property
    def is_paused(self) -> bool:
        return self.status.is_paused


class RoomRegistry:
    """Owns every live ``RoomState``, created lazily on first reference."""

    def __init__(self, now_ms: Callable[[], float] = monotonic_ms) -> None:
        self._now_ms = now_ms
        self._rooms: dict[int, RoomState] = {}

    def get_or_create(self, room_id: int) -> RoomState:
        room = self._rooms.get(room_id)
        if room is None:
            room = RoomState(room_id=room_id, clock=PlaybackClock(self._now_ms))
            self._rooms[room_id] = room
            logger.debug("Created room state for guild %s", room_id)
        return room

    def get(self, room_id: int) -> RoomState | None:
        return self._rooms.get(room_id)

    def remove(self, room_id: int) -> RoomState | None:
        return self._rooms.pop(room_id, None)

    def all(self) -> list[RoomState]:
        return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __iter__(self) -> Iterator[RoomState]:
        return iter(list(self._rooms.values()))

    def __len__(self) -> int:
        return len(self._rooms)
