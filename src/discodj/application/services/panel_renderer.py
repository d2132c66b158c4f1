"""Pure rendering of a room's state into a panel payload.

Nothing here touches Discord; the infrastructure layer turns the payload into
an embed and a view.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ...domain.music.value_objects import PlayerStatus, Progress
from ...domain.shared.messages import DiscordUIMessages
from ...utils.reply import format_duration, progress_bar, truncate
from .panel_models import ContentKey, PanelControls, PanelField, PanelPayload, UpNextEntry

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.room import RoomState

_TITLES: dict[PlayerStatus, str] = {
    PlayerStatus.PLAYING: DiscordUIMessages.PANEL_TITLE_PLAYING,
    PlayerStatus.PAUSED: DiscordUIMessages.PANEL_TITLE_PAUSED,
    PlayerStatus.AUTO_PAUSED: DiscordUIMessages.PANEL_TITLE_AUTO_PAUSED,
    PlayerStatus.IDLE: DiscordUIMessages.PANEL_TITLE_PLAYING,
}


def format_requester(track: Track) -> str:
    if track.requested_by_id:
        return f"<@{track.requested_by_id}>"
    if track.requested_by_tag:
        return track.requested_by_tag
    return DiscordUIMessages.PANEL_UNKNOWN_REQUESTER


def format_track_link(track: Track, max_length: int = 90) -> str:
    title = truncate(track.title, max_length)
    if track.url:
        return f"[{title}]({track.url})"
    return title


def track_identity(track: Track | None) -> str | None:
    if track is None:
        return None
    return f"{track.url or track.lazy_query}|{track.title}"


def build_up_next(
    queue: list[Track],
    progress: Progress | None,
    *,
    page: int,
    page_size: int,
) -> list[UpNextEntry]:
    """Entries for one page of the queue with their estimated start times.

    The ETA of an entry is the time left on the current track plus the
    durations of every queued track before it; unknown durations count as 0.
    """
    remaining = 0.0
    if progress is not None and progress.has_total:
        remaining = max(0.0, progress.total - progress.elapsed)

    start = page * page_size
    end = start + page_size

    entries: list[UpNextEntry] = []
    eta = remaining
    for index, track in enumerate(queue[:end]):
        if index >= start:
            entries.append(
                UpNextEntry(
                    position=index + 1,
                    title=track.title,
                    url=track.url,
                    duration_sec=track.duration_sec,
                    eta_sec=eta,
                )
            )
        eta += track.duration_sec or 0.0
    return entries


def _up_next_text(entries: list[UpNextEntry]) -> str:
    if not entries:
        return DiscordUIMessages.PANEL_UP_NEXT_EMPTY

    lines = []
    for entry in entries:
        title = truncate(entry.title, 60)
        if entry.url:
            title = f"[{title}]({entry.url})"
        duration = f" `{format_duration(entry.duration_sec)}`" if entry.duration_sec else ""
        lines.append(
            DiscordUIMessages.PANEL_UP_NEXT_LINE.format(
                position=entry.position,
                title=title,
                duration=duration,
                eta=format_duration(entry.eta_sec),
            )
        )
    return "\n".join(lines)


def _settings_line(room: RoomState) -> str:
    return DiscordUIMessages.PANEL_SETTINGS_LINE.format(
        loop=room.settings.loop_mode.value,
        autoplay="on" if room.settings.autoplay else "off",
        volume=room.settings.volume,
        filter=room.active_filter.label if room.active_filter else DiscordUIMessages.PANEL_FILTER_NONE,
    )


def render_panel(
    room: RoomState,
    page_index: int | None = None,
    *,
    slots: int = 10,
    page_size: int = 10,
    playback_ms: float | None = None,
) -> PanelPayload:
    """Render *room* into a :class:`PanelPayload`.

    *page_index* defaults to the room's current queue page and is clamped to
    the pages that exist. *playback_ms* is the sink's own played-time reading,
    when one is available.
    """
    page_count = room.page_count(page_size)
    page = room.queue_page if page_index is None else page_index
    page = max(0, min(page, page_count - 1))

    track = room.now_playing
    progress: Progress | None = None
    fields: list[PanelField] = []
    bar: str | None = None

    if track is not None:
        progress = room.clock.progress(track.duration_sec, playback_ms)
        bar = progress_bar(progress.elapsed, progress.total, slots)
        title = _TITLES[room.status]
        description = format_track_link(track)
        fields.append(
            PanelField(name=DiscordUIMessages.PANEL_FIELD_REQUESTED_BY, value=format_requester(track), inline=True)
        )
        fields.append(
            PanelField(
                name=DiscordUIMessages.PANEL_FIELD_DURATION,
                value=format_duration(track.duration_sec),
                inline=True,
            )
        )
    else:
        title = DiscordUIMessages.PANEL_TITLE_IDLE
        description = DiscordUIMessages.PANEL_IDLE_DESCRIPTION

    settings_line = _settings_line(room)
    fields.append(PanelField(name=DiscordUIMessages.PANEL_FIELD_SETTINGS, value=settings_line))

    up_next = build_up_next(room.queue, progress, page=page, page_size=page_size)

    footer = None
    if room.queue:
        footer = DiscordUIMessages.PANEL_PAGE_FOOTER.format(
            page=page + 1, pages=page_count, count=len(room.queue)
        )

    controls = PanelControls(
        is_paused=room.status.is_paused,
        can_go_back=bool(room.history) or track is not None,
        has_track=track is not None,
        show_pages=page_count > 1,
        page_prev_enabled=page > 0,
        page_next_enabled=page < page_count - 1,
    )

    content_key = ContentKey(
        track_identity=track_identity(track),
        elapsed_floor=math.floor(progress.elapsed) if progress is not None else 0,
        total_floor=math.floor(progress.total) if progress is not None and progress.has_total else None,
        status=room.status,
        queue_length=len(room.queue),
        page=page,
        settings_digest=settings_line,
    )

    return PanelPayload(
        title=title,
        status=room.status,
        description=description,
        url=track.url if track is not None else None,
        thumbnail=track.thumbnail if track is not None else None,
        progress=bar,
        fields=fields,
        up_next=up_next,
        up_next_text=_up_next_text(up_next),
        footer=footer,
        page=page,
        page_count=page_count,
        controls=controls,
        content_key=content_key,
    )
