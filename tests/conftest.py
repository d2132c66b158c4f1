from __future__ import annotations

import asyncio
import itertools
from typing import Any

import pytest
import pytest_asyncio

from discodj.application.interfaces.audio_source import AudioSourceFactory, PlayableResource
from discodj.application.interfaces.display import DisplaySurface
from discodj.application.interfaces.presence import PresencePublisher
from discodj.application.interfaces.stores import PlaylistStore, RoomStore
from discodj.application.interfaces.track_resolver import TrackResolver
from discodj.application.interfaces.voice import SinkEvent, VoiceConnection, VoiceGateway
from discodj.application.services.panel_sync import PanelSync
from discodj.application.services.playback_controller import PlaybackController
from discodj.application.services.serial_executor import SerialExecutor
from discodj.config.settings import PlaybackSettings
from discodj.domain.music.entities import PanelRef, Requester, RoomSnapshot, SavedPlaylist, Track
from discodj.domain.music.room import RoomRegistry
from discodj.domain.music.value_objects import PlayerStatus
from discodj.domain.shared.exceptions import TrackResolutionError

ROOM_ID = 111111111111111111
CHANNEL_ID = 222222222222222222
USER_ID = 333333333333333333


def make_track(title: str = "Song", *, duration: float | None = 180.0, **kwargs: Any) -> Track:
    slug = title.lower().replace(" ", "-")
    kwargs.setdefault("url", f"https://www.youtube.com/watch?v={slug}")
    return Track(title=title, duration_sec=duration, **kwargs)


def make_placeholder(title: str = "Song - Artist") -> Track:
    return Track(title=title, lazy_query=title, url=None)


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 1000.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ============================================================================
# Voice
# ============================================================================


class FakeResource(PlayableResource):
    def __init__(self, track: Track, seek_offset_sec: float = 0.0) -> None:
        self.track = track
        self.seek_offset_sec = seek_offset_sec
        self.volume_percent: int | None = None
        self.reported_ms: float | None = None

    @property
    def played_ms(self) -> float | None:
        return self.reported_ms

    def set_volume(self, volume_percent: int) -> None:
        self.volume_percent = volume_percent


class FakeVoiceConnection(VoiceConnection):
    """Voice connection whose sink reports IDLE whenever playback is stopped."""

    def __init__(self, channel_id: int = 444444444444444444, humans: int = 1) -> None:
        self._channel_id = channel_id
        self.connected = True
        self.humans = humans
        self.current: PlayableResource | None = None
        self.played: list[PlayableResource] = []
        self.listener = None
        self.subscribe_count = 0
        self.paused = False
        self.destroyed = False
        self._pending: list[asyncio.Task[None]] = []

    @property
    def channel_id(self) -> int | None:
        return self._channel_id if self.connected else None

    def is_connected(self) -> bool:
        return self.connected

    def play(self, resource: PlayableResource) -> None:
        self.current = resource
        self.paused = False
        self.played.append(resource)

    def stop(self) -> None:
        resource = self.current
        self.current = None
        if resource is not None:
            self._emit_later(SinkEvent(PlayerStatus.IDLE, resource))

    def pause(self) -> bool:
        self.paused = True
        return True

    def resume(self) -> bool:
        self.paused = False
        return True

    def subscribe(self, listener) -> None:
        self.listener = listener
        self.subscribe_count += 1

    def unsubscribe(self) -> None:
        self.listener = None

    @property
    def has_listener(self) -> bool:
        return self.listener is not None

    def human_listener_count(self) -> int:
        return self.humans

    async def destroy(self) -> None:
        self.connected = False
        self.destroyed = True

    def _emit_later(self, event: SinkEvent) -> None:
        if self.listener is not None:
            self._pending.append(asyncio.get_running_loop().create_task(self.listener(event)))

    async def finish(self) -> None:
        """Simulate the current resource running out on its own."""
        resource = self.current
        self.current = None
        if resource is not None and self.listener is not None:
            await self.listener(SinkEvent(PlayerStatus.IDLE, resource))


class FakeVoiceGateway(VoiceGateway):
    def __init__(self, connection: FakeVoiceConnection | None = None) -> None:
        self.connection = connection or FakeVoiceConnection()
        self.join_calls = 0

    async def join(self, room_id: int, context: Any) -> VoiceConnection | None:
        self.join_calls += 1
        if context is None:
            return None
        self.connection.connected = True
        return self.connection

    def get_existing(self, room_id: int) -> VoiceConnection | None:
        return self.connection if self.connection.connected else None


# ============================================================================
# Resolution and audio
# ============================================================================


class FakeResolver(TrackResolver):
    def __init__(self) -> None:
        self.results: list[Track] = []
        self.related: Track | None = None
        self.placeholder_calls = 0
        self.related_calls = 0

    async def resolve(self, query: str, requester: Requester) -> list[Track]:
        return [t.with_requester(requester) for t in self.results]

    async def resolve_one(self, url: str) -> Track | None:
        return self.results[0] if self.results else None

    async def resolve_placeholder(self, track: Track) -> Track | None:
        self.placeholder_calls += 1
        return make_track(f"{track.lazy_query} (official)", duration=200.0)

    async def find_related(self, seed: Track) -> Track | None:
        self.related_calls += 1
        return self.related

    async def search(self, query: str, limit: int = 5) -> list[Track]:
        return self.results[:limit]


class FakeSourceFactory(AudioSourceFactory):
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_titles: set[str] = set()
        self.fail_all = False

    async def make_resource(
        self,
        track: Track,
        *,
        seek_offset_sec: float = 0.0,
        audio_filter=None,
        volume_percent: int = 100,
    ) -> FakeResource:
        self.calls.append(
            {
                "title": track.title,
                "seek": seek_offset_sec,
                "filter": audio_filter,
                "volume": volume_percent,
            }
        )
        if self.fail_all or track.title in self.fail_titles:
            raise TrackResolutionError(track.title, "unplayable")
        return FakeResource(track, seek_offset_sec)


# ============================================================================
# Display, presence and stores
# ============================================================================


class FakeDisplay(DisplaySurface):
    def __init__(self) -> None:
        self._ids = itertools.count(900000000000000001)
        self.sent: list[tuple[int, Any]] = []
        self.edited: list[tuple[PanelRef, Any]] = []
        self.notices: list[tuple[int, str]] = []
        self.messages: set[PanelRef] = set()
        self.edit_ok = True
        self.edit_raises: Exception | None = None
        self.edit_gate: asyncio.Event | None = None

    async def channel_exists(self, channel_id: int) -> bool:
        return True

    async def send(self, channel_id: int, payload) -> PanelRef:
        ref = PanelRef(channel_id=channel_id, message_id=next(self._ids))
        self.sent.append((channel_id, payload))
        self.messages.add(ref)
        return ref

    async def edit(self, ref: PanelRef, payload) -> bool:
        if self.edit_gate is not None:
            await self.edit_gate.wait()
        if self.edit_raises is not None:
            raise self.edit_raises
        if not self.edit_ok or ref not in self.messages:
            return False
        self.edited.append((ref, payload))
        return True

    async def fetch_message(self, ref: PanelRef) -> PanelRef | None:
        return ref if ref in self.messages else None

    async def notify(self, channel_id: int, text: str) -> None:
        self.notices.append((channel_id, text))

    @property
    def pushes(self) -> int:
        return len(self.sent) + len(self.edited)


class FakePresence(PresencePublisher):
    def __init__(self) -> None:
        self.title: str | None = None
        self.history: list[str | None] = []

    async def set_playing(self, title: str) -> None:
        self.title = title
        self.history.append(title)

    async def clear(self) -> None:
        self.title = None
        self.history.append(None)


class InMemoryRoomStore(RoomStore):
    def __init__(self) -> None:
        self.snapshots: dict[int, RoomSnapshot] = {}
        self.saves = 0

    async def save(self, room_id: int, snapshot: RoomSnapshot) -> None:
        self.snapshots[room_id] = snapshot
        self.saves += 1

    async def load(self, room_id: int) -> RoomSnapshot:
        return self.snapshots.get(room_id, RoomSnapshot())


class InMemoryPlaylistStore(PlaylistStore):
    def __init__(self) -> None:
        self.playlists: dict[tuple[int, str], SavedPlaylist] = {}

    async def list(self, room_id: int) -> list[SavedPlaylist]:
        return [p for (rid, _), p in self.playlists.items() if rid == room_id]

    async def save(self, room_id: int, name: str, tracks: list[Track]) -> SavedPlaylist:
        playlist = SavedPlaylist.create(name, tracks)
        self.playlists[(room_id, name.casefold())] = playlist
        return playlist

    async def load(self, room_id: int, name: str) -> SavedPlaylist | None:
        return self.playlists.get((room_id, name.casefold()))

    async def delete(self, room_id: int, name: str) -> bool:
        return self.playlists.pop((room_id, name.casefold()), None) is not None


# ============================================================================
# Controller harness
# ============================================================================


async def _noop() -> None:
    return None


class ControllerHarness:
    """A PlaybackController wired to fakes, plus helpers to drive it."""

    def __init__(self, *, settings: PlaybackSettings | None = None) -> None:
        self.clock = FakeClock()
        self.registry = RoomRegistry(now_ms=self.clock)
        self.executor = SerialExecutor()
        self.connection = FakeVoiceConnection()
        self.gateway = FakeVoiceGateway(self.connection)
        self.resolver = FakeResolver()
        self.sources = FakeSourceFactory()
        self.display = FakeDisplay()
        self.panel = PanelSync(self.display)
        self.presence = FakePresence()
        self.room_store = InMemoryRoomStore()
        self.playlist_store = InMemoryPlaylistStore()
        self.controller = PlaybackController(
            registry=self.registry,
            executor=self.executor,
            voice_gateway=self.gateway,
            resolver=self.resolver,
            source_factory=self.sources,
            panel_sync=self.panel,
            presence=self.presence,
            room_store=self.room_store,
            playlist_store=self.playlist_store,
            settings=settings or PlaybackSettings(),
            refresh_interval_s=3600.0,
        )

    @property
    def room(self):
        return self.registry.get_or_create(ROOM_ID)

    async def connect(self) -> FakeVoiceConnection:
        await self.controller.ensure_connected(ROOM_ID, object())
        self.room.panel_channel_id = CHANNEL_ID
        return self.connection

    async def start(self, *tracks: Track) -> None:
        await self.connect()
        await self.controller.enqueue(ROOM_ID, list(tracks))
        await self.controller.start_if_idle(ROOM_ID)

    async def settle(self) -> None:
        """Let scheduled sink events run through the executor."""
        for _ in range(5):
            await asyncio.sleep(0)
            await self.executor.run(ROOM_ID, _noop)

    async def finish_current(self) -> None:
        await self.connection.finish()
        await self.settle()

    async def close(self) -> None:
        await self.controller.ticker.stop_all()
        await self.executor.shutdown()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def harness():
    h = ControllerHarness()
    yield h
    await h.close()
