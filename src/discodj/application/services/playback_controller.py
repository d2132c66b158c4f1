"""Playback Controller - the per-room playback state machine.

Every public coroutine here assumes the caller holds the room's
:class:`SerialExecutor` turn. Callbacks that originate elsewhere (sink status
events, progress ticks) are routed back through the executor before they
touch room state.

A sink event only counts when it refers to the room's current playback
handle. Operations that stop a resource without wanting track-end handling
(stop, seek, filter, previous, leave) clear the handle first, which turns the
sink's resulting IDLE event into a stale one. Skip and jump keep the handle so
that event drives :meth:`PlaybackController.handle_track_end`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ...domain.music.entities import SavedPlaylist, Track
from ...domain.music.value_objects import AudioFilter, LoopMode, PlayerStatus, QueuePlacement
from ...domain.shared.exceptions import (
    InvalidOperationError,
    TrackResolutionError,
    ValidationError,
)
from ...domain.shared.messages import DiscordUIMessages, ErrorMessages, LogTemplates
from ...domain.shared.validators import validate_volume
from ...utils.reply import format_duration
from .best_effort import best_effort
from .progress_ticker import ProgressTicker

if TYPE_CHECKING:
    from ...config.settings import PlaybackSettings
    from ...domain.music.room import RoomRegistry, RoomState
    from ..interfaces.audio_source import AudioSourceFactory
    from ..interfaces.presence import PresencePublisher
    from ..interfaces.stores import PlaylistStore, RoomStore
    from ..interfaces.track_resolver import TrackResolver
    from ..interfaces.voice import SinkEvent, StatusListener, VoiceConnection, VoiceGateway
    from .panel_sync import PanelSync
    from .serial_executor import SerialExecutor

logger = logging.getLogger(__name__)


class PlaybackController:
    """Drives queue advancement, timing and panel updates for every room."""

    def __init__(
        self,
        *,
        registry: RoomRegistry,
        executor: SerialExecutor,
        voice_gateway: VoiceGateway,
        resolver: TrackResolver,
        source_factory: AudioSourceFactory,
        panel_sync: PanelSync,
        presence: PresencePublisher,
        room_store: RoomStore,
        playlist_store: PlaylistStore,
        settings: PlaybackSettings,
        refresh_interval_s: float = 5.0,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._voice = voice_gateway
        self._resolver = resolver
        self._sources = source_factory
        self._panel = panel_sync
        self._presence = presence
        self._room_store = room_store
        self._playlist_store = playlist_store
        self._settings = settings
        self._ticker = ProgressTicker(self._on_tick, interval_s=refresh_interval_s)

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def ticker(self) -> ProgressTicker:
        return self._ticker

    # ── Room lookup ─────────────────────────────────────────────────

    async def get_room(self, room_id: int) -> RoomState:
        """Return the room, loading its persisted snapshot on first reference."""
        room = self._registry.get(room_id)
        if room is not None:
            return room

        snapshot = await self._room_store.load(room_id)
        room = self._registry.get_or_create(room_id)
        room.apply_snapshot(snapshot)
        return room

    # ── Connection ──────────────────────────────────────────────────

    async def ensure_connected(self, room_id: int, voice_context: Any) -> VoiceConnection | None:
        """Join (or reuse) the requester's voice channel and wire the status listener."""
        room = await self.get_room(room_id)
        connection = await self._voice.join(room_id, voice_context)
        if connection is None:
            return None

        self._wire(room, connection)
        return connection

    def _wire(self, room: RoomState, connection: VoiceConnection) -> None:
        if room.connection is connection and connection.has_listener:
            return

        previous = room.connection
        if previous is not None and previous is not connection:
            previous.unsubscribe()
            logger.info(LogTemplates.VOICE_LISTENER_REPLACED, room.room_id)

        connection.subscribe(self._make_listener(room.room_id))
        room.connection = connection
        logger.debug(LogTemplates.VOICE_LISTENER_WIRED, room.room_id)

    def _make_listener(self, room_id: int) -> StatusListener:
        async def listener(event: SinkEvent) -> None:
            self._executor.submit(
                room_id, lambda: self.on_sink_event(room_id, event), label="sink event"
            )

        return listener

    async def on_sink_event(self, room_id: int, event: SinkEvent) -> None:
        room = self._registry.get(room_id)
        if room is None:
            return

        if event.resource is None or event.resource is not room.playback_handle:
            logger.debug(LogTemplates.PLAYBACK_STALE_EVENT, event.status.value, room_id)
            return

        if event.status is PlayerStatus.IDLE:
            logger.debug(LogTemplates.TRACK_ENDED, room_id, event.error)
            await self.handle_track_end(room_id)

    # ── Queue ───────────────────────────────────────────────────────

    async def enqueue(
        self,
        room_id: int,
        tracks: list[Track],
        placement: QueuePlacement = QueuePlacement.END,
    ) -> int:
        """Add *tracks* to the queue and return the 0-based index of the first one."""
        room = await self.get_room(room_id)
        position = room.enqueue(tracks, placement)
        logger.info(LogTemplates.QUEUE_ENQUEUED, len(tracks), position, room_id)
        await self._persist(room)
        await self._refresh(room)
        return position

    async def start_if_idle(self, room_id: int, target_channel: int | None = None) -> bool:
        """Start the queue when nothing is playing. Returns True if playback was started."""
        room = await self.get_room(room_id)
        if target_channel is not None:
            room.panel_channel_id = target_channel
        if room.now_playing is not None or not room.queue:
            return False
        await self.play_next(room_id)
        return room.now_playing is not None

    async def remove(self, room_id: int, index: int) -> Track:
        room = await self.get_room(room_id)
        track = room.remove_at(index)
        room.clamp_page(self._panel.page_size)
        logger.info(LogTemplates.QUEUE_REMOVED, track.title, room_id)
        await self._persist(room)
        await self._refresh(room)
        return track

    async def move(self, room_id: int, from_index: int, to_index: int) -> Track:
        room = await self.get_room(room_id)
        track = room.move(from_index, to_index)
        logger.info(LogTemplates.QUEUE_MOVED, from_index, to_index, room_id)
        await self._persist(room)
        await self._refresh(room)
        return track

    async def clear_queue(self, room_id: int) -> int:
        room = await self.get_room(room_id)
        count = room.clear_queue()
        logger.info(LogTemplates.QUEUE_CLEARED, count, room_id)
        await self._persist(room)
        await self._refresh(room)
        return count

    async def shuffle(self, room_id: int) -> int:
        room = await self.get_room(room_id)
        room.shuffle()
        logger.info(LogTemplates.QUEUE_SHUFFLED, room_id)
        await self._persist(room)
        await self._refresh(room)
        return len(room.queue)

    async def jump(self, room_id: int, index: int) -> Track:
        """Move ``queue[index]`` to the front and end the current track.

        With loop mode ONE the current track is archived without being
        re-queued, so the target still plays next.
        """
        room = await self.get_room(room_id)
        track = room.promote(index)
        logger.info(LogTemplates.QUEUE_JUMPED, index, room_id)

        current = room.now_playing
        if current is not None and room.settings.loop_mode is LoopMode.ONE:
            room.push_history(current)
            self._halt(room)
            await self.play_next(room_id)
        elif current is not None and room.playback_handle is not None and room.connection:
            room.connection.stop()
        else:
            await self.play_next(room_id)
        return track

    # ── Playback ────────────────────────────────────────────────────

    async def play_next(
        self,
        room_id: int,
        target_channel: int | None = None,
        seek_offset_sec: float = 0.0,
        fail_count: int = 0,
    ) -> None:
        """Start the next queued track, dropping tracks that fail to start.

        After ``max_consecutive_failures`` failures in a row the room goes
        idle and the panel channel is told why.
        """
        room = await self.get_room(room_id)
        if target_channel is not None:
            room.panel_channel_id = target_channel

        track = room.pop_next()
        if track is None:
            logger.info(LogTemplates.PLAYBACK_IDLE, room_id)
            await self._go_idle(room)
            return

        connection = room.connection
        if connection is None or not connection.is_connected():
            room.push_front(track)
            await self._go_idle(room)
            return

        try:
            await self._start(room, connection, track, seek_offset_sec)
        except Exception as exc:
            room.playback_handle = None
            attempt = fail_count + 1
            logger.warning(LogTemplates.PLAYBACK_FAILED_START, track.title, room_id, attempt, exc)

            if attempt >= self._settings.max_consecutive_failures:
                logger.error(LogTemplates.PLAYBACK_GIVING_UP, room_id, attempt)
                await self._go_idle(room)
                channel_id = self._notify_channel(room)
                if channel_id is not None:
                    await best_effort(
                        "failure notice",
                        room_id,
                        self._panel.display.notify(channel_id, DiscordUIMessages.ERROR_TOO_MANY_FAILURES),
                    )
                return

            await self.play_next(room_id, fail_count=attempt)
            return

        room.now_playing = track
        room.status = PlayerStatus.PLAYING
        room.clock.on_track_start(seek_offset_sec)
        self._ticker.start(room_id)
        logger.info(LogTemplates.PLAYBACK_STARTED, track.title, room_id, seek_offset_sec)

        await best_effort("presence", room_id, self._presence.set_playing(track.title))
        await self._refresh(room, force=True)
        await self._persist(room)

    async def _start(
        self,
        room: RoomState,
        connection: VoiceConnection,
        track: Track,
        seek_offset_sec: float,
    ) -> None:
        if track.is_placeholder:
            resolved = await self._resolver.resolve_placeholder(track)
            if resolved is None:
                raise TrackResolutionError(track.lazy_query or track.title)
            track.fill_from(resolved)
            logger.info(LogTemplates.TRACK_PLACEHOLDER_RESOLVED, track.title, track.url)

        resource = await self._sources.make_resource(
            track,
            seek_offset_sec=seek_offset_sec,
            audio_filter=room.active_filter,
            volume_percent=room.settings.volume,
        )
        room.playback_handle = resource
        connection.play(resource)

    async def handle_track_end(self, room_id: int) -> None:
        """Archive the finished track, apply the loop policy, then play on."""
        room = await self.get_room(room_id)
        finished = room.now_playing

        if finished is not None:
            logger.debug(LogTemplates.TRACK_FINISHED, finished.title, room_id)
            room.push_history(finished)
            if room.settings.loop_mode is LoopMode.ONE:
                room.push_front(finished.copy_for_queue())
            elif room.settings.loop_mode is LoopMode.ALL:
                room.queue.append(finished.copy_for_queue())

        room.now_playing = None
        room.playback_handle = None
        room.clock.reset()
        self._ticker.stop(room_id)
        await self._persist(room)

        if not room.queue and room.settings.autoplay and finished is not None:
            related = await best_effort("autoplay", room_id, self._resolver.find_related(finished))
            if related is not None:
                room.queue.append(related)
                logger.info(LogTemplates.TRACK_AUTOPLAY_PICKED, related.title, room_id)
            else:
                logger.info(LogTemplates.TRACK_AUTOPLAY_NONE, finished.title)

        await self.play_next(room_id)

    async def skip(self, room_id: int) -> Track:
        room = await self.get_room(room_id)
        current = self._require_playing(room, "skip")

        if room.playback_handle is not None and room.connection is not None:
            room.connection.stop()
        else:
            await self.handle_track_end(room_id)
        return current

    async def pause(self, room_id: int) -> bool:
        room = await self.get_room(room_id)
        self._require_playing(room, "pause")
        if room.status is PlayerStatus.PAUSED:
            return False

        if room.status is PlayerStatus.PLAYING:
            if room.connection is not None:
                room.connection.pause()
            room.clock.on_pause()
            self._ticker.stop(room_id)
            await best_effort("presence", room_id, self._presence.clear())

        room.status = PlayerStatus.PAUSED
        logger.info(LogTemplates.PLAYBACK_PAUSED, room_id)
        await self._refresh(room, force=True)
        return True

    async def resume(self, room_id: int) -> bool:
        room = await self.get_room(room_id)
        current = self._require_playing(room, "resume")
        if not room.status.is_paused:
            return False

        if room.connection is not None:
            room.connection.resume()
        room.clock.on_resume()
        room.status = PlayerStatus.PLAYING
        self._ticker.start(room_id)
        logger.info(LogTemplates.PLAYBACK_RESUMED, room_id)

        await best_effort("presence", room_id, self._presence.set_playing(current.title))
        await self._refresh(room, force=True)
        return True

    async def toggle_pause(self, room_id: int) -> PlayerStatus:
        room = await self.get_room(room_id)
        if room.status.is_paused:
            await self.resume(room_id)
        else:
            await self.pause(room_id)
        return room.status

    async def seek(self, room_id: int, target_seconds: float) -> None:
        room = await self.get_room(room_id)
        track = self._require_playing(room, "seek")

        if target_seconds < 0:
            raise ValidationError(ErrorMessages.INVALID_TIMESTAMP, field="position")
        if track.has_duration and track.duration_sec is not None and target_seconds >= track.duration_sec:
            raise ValidationError(
                ErrorMessages.SEEK_BEYOND_END.format(duration=format_duration(track.duration_sec)),
                field="position",
            )

        logger.info(LogTemplates.PLAYBACK_SEEK, target_seconds, room_id)
        await self._restart_at(room, target_seconds)

    async def apply_filter(self, room_id: int, audio_filter: AudioFilter | None) -> None:
        """Record the active filter and restart the current track in place with it."""
        room = await self.get_room(room_id)
        room.active_filter = audio_filter
        logger.info(LogTemplates.PLAYBACK_FILTER, audio_filter.value if audio_filter else None, room_id)

        if room.now_playing is None:
            await self._refresh(room)
            return

        handle = room.playback_handle
        offset = room.clock.elapsed_seconds(handle.played_ms if handle is not None else None)
        await self._restart_at(room, offset)

    async def _restart_at(self, room: RoomState, offset_sec: float) -> None:
        track = room.now_playing
        self._halt(room)
        if track is not None:
            room.push_front(track)
        await self.play_next(room.room_id, seek_offset_sec=offset_sec)

    async def stop(self, room_id: int) -> None:
        room = await self.get_room(room_id)
        room.clear_queue()
        self._halt(room)
        logger.info(LogTemplates.PLAYBACK_STOPPED, room_id)
        await self._go_idle(room)

    async def previous(self, room_id: int) -> Track:
        """Replay the last finished track, keeping the current one next in line."""
        room = await self.get_room(room_id)
        if not room.history and room.now_playing is None:
            raise InvalidOperationError("previous", room.status.value, ErrorMessages.NOTHING_TO_GO_BACK_TO)

        current = room.now_playing
        self._halt(room)
        if current is not None:
            room.push_front(current)

        earlier = room.pop_history()
        if earlier is not None:
            room.push_front(earlier)

        target = room.queue[0]
        await self.play_next(room_id)
        return target

    async def leave(self, room_id: int) -> None:
        room = await self.get_room(room_id)
        await self._teardown(room)

    async def _teardown(self, room: RoomState) -> None:
        """Disconnect, keeping the current track at the front of the queue."""
        current = room.now_playing
        self._halt(room)
        if current is not None:
            room.push_front(current)

        connection = room.connection
        room.connection = None
        if connection is not None:
            connection.unsubscribe()
            await best_effort("disconnect", room.room_id, connection.destroy())
            logger.info(LogTemplates.VOICE_DISCONNECTED, room.room_id)

        await self._go_idle(room)

    # ── Settings ────────────────────────────────────────────────────

    async def set_volume(self, room_id: int, volume: int) -> int:
        room = await self.get_room(room_id)
        room.settings.volume = validate_volume(volume)
        if room.playback_handle is not None:
            room.playback_handle.set_volume(volume)
        logger.info(LogTemplates.PLAYBACK_VOLUME, volume, room_id)
        await self._persist(room)
        await self._refresh(room)
        return volume

    async def set_loop_mode(self, room_id: int, mode: LoopMode | None = None) -> LoopMode:
        """Set the loop mode, or cycle to the next one when *mode* is None."""
        room = await self.get_room(room_id)
        room.settings.loop_mode = mode if mode is not None else room.settings.loop_mode.next_mode()
        logger.info(LogTemplates.LOOP_MODE_CHANGED, room.settings.loop_mode.value, room_id)
        await self._persist(room)
        await self._refresh(room)
        return room.settings.loop_mode

    async def set_autoplay(self, room_id: int, enabled: bool | None = None) -> bool:
        room = await self.get_room(room_id)
        room.settings.autoplay = (not room.settings.autoplay) if enabled is None else enabled
        await self._persist(room)
        await self._refresh(room)
        return room.settings.autoplay

    async def set_dj_only(self, room_id: int, enabled: bool | None = None) -> bool:
        room = await self.get_room(room_id)
        room.settings.dj_only = (not room.settings.dj_only) if enabled is None else enabled
        await self._persist(room)
        return room.settings.dj_only

    # ── Membership & panel ──────────────────────────────────────────

    async def on_membership_change(self, room_id: int, human_count: int) -> None:
        """React to listeners joining or leaving the bot's voice channel."""
        room = self._registry.get(room_id)
        if room is None or room.connection is None:
            return

        if human_count == 0:
            if self._settings.leave_when_alone:
                logger.info(LogTemplates.PLAYBACK_AUTO_LEAVE, room_id)
                await self._teardown(room)
            elif room.status is PlayerStatus.PLAYING:
                room.connection.pause()
                room.clock.on_pause()
                room.status = PlayerStatus.AUTO_PAUSED
                self._ticker.stop(room_id)
                logger.info(LogTemplates.PLAYBACK_AUTO_PAUSED, room_id)
                await best_effort("presence", room_id, self._presence.clear())
                await self._refresh(room, force=True)
            return

        if room.status is PlayerStatus.AUTO_PAUSED:
            await self.resume(room_id)

    async def change_panel_page(self, room_id: int, delta: int) -> int:
        room = await self.get_room(room_id)
        room.queue_page += delta
        room.clamp_page(self._panel.page_size)
        await self._refresh(room, force=True)
        return room.queue_page

    async def publish_panel(self, room_id: int, channel_id: int) -> None:
        room = await self.get_room(room_id)
        await self._panel.publish(room, channel_id)

    async def _on_tick(self, room_id: int) -> None:
        await self._executor.run(room_id, lambda: self._tick(room_id))

    async def _tick(self, room_id: int) -> None:
        room = self._registry.get(room_id)
        if room is None or room.now_playing is None or room.status is not PlayerStatus.PLAYING:
            return
        await self._refresh(room)

    # ── Playlists ───────────────────────────────────────────────────

    async def save_playlist(self, room_id: int, name: str) -> SavedPlaylist:
        """Save the current track and the queue under *name*."""
        room = await self.get_room(room_id)
        tracks = ([room.now_playing] if room.now_playing is not None else []) + room.queue
        if not tracks:
            raise ValidationError(ErrorMessages.PLAYLIST_NOTHING_TO_SAVE, field="name")
        playlist = await self._playlist_store.save(room_id, name, tracks)
        logger.info(LogTemplates.PLAYLIST_SAVED, playlist.name, playlist.count, room_id)
        return playlist

    async def load_playlist(
        self,
        room_id: int,
        name: str,
        placement: QueuePlacement = QueuePlacement.END,
    ) -> tuple[SavedPlaylist, int]:
        """Enqueue a saved playlist; returns it with the position of its first track."""
        playlist = await self._playlist_store.load(room_id, name)
        if playlist is None:
            raise ValidationError(ErrorMessages.PLAYLIST_NOT_FOUND.format(name=name), field="name")
        position = await self.enqueue(room_id, [t.copy_for_queue() for t in playlist.tracks], placement)
        return playlist, position

    async def list_playlists(self, room_id: int) -> list[SavedPlaylist]:
        return await self._playlist_store.list(room_id)

    async def delete_playlist(self, room_id: int, name: str) -> None:
        if not await self._playlist_store.delete(room_id, name):
            raise ValidationError(ErrorMessages.PLAYLIST_NOT_FOUND.format(name=name), field="name")
        logger.info(LogTemplates.PLAYLIST_DELETED, name, room_id)

    # ── Shutdown ────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Persist every room and drop every voice connection."""
        rooms = self._registry.all()
        for room in rooms:
            self._ticker.stop(room.room_id)
            await self._persist(room)
            connection = room.connection
            room.connection = None
            room.playback_handle = None
            if connection is not None:
                connection.unsubscribe()
                await best_effort("disconnect", room.room_id, connection.destroy())

        await self._ticker.stop_all()
        await best_effort("presence", 0, self._presence.clear())
        logger.info(LogTemplates.PLAYBACK_SHUTDOWN, len(rooms))

    # ── Helpers ─────────────────────────────────────────────────────

    def _require_playing(self, room: RoomState, operation: str) -> Track:
        if room.now_playing is None:
            raise InvalidOperationError(operation, room.status.value, ErrorMessages.NOTHING_PLAYING)
        return room.now_playing

    def _halt(self, room: RoomState) -> None:
        """Stop the current resource without track-end handling."""
        room.playback_handle = None
        room.now_playing = None
        room.clock.reset()
        self._ticker.stop(room.room_id)
        if room.connection is not None:
            room.connection.stop()

    async def _go_idle(self, room: RoomState) -> None:
        room.now_playing = None
        room.playback_handle = None
        room.status = PlayerStatus.IDLE
        room.clock.reset()
        self._ticker.stop(room.room_id)
        await best_effort("presence", room.room_id, self._presence.clear())
        await self._refresh(room, force=True)
        await self._persist(room)

    def _notify_channel(self, room: RoomState) -> int | None:
        if room.panel_channel_id is not None:
            return room.panel_channel_id
        if room.panel_ref is not None:
            return room.panel_ref.channel_id
        return None

    async def _persist(self, room: RoomState) -> None:
        snapshot = room.to_snapshot(self._settings.history_limit)
        await best_effort("persist", room.room_id, self._room_store.save(room.room_id, snapshot))

    async def _refresh(self, room: RoomState, *, force: bool = False) -> None:
        await best_effort("panel refresh", room.room_id, self._panel.refresh(room, force=force))
