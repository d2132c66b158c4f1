"""TrackResolver implementation using yt-dlp, with Spotify links expanded through spotipy."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any, Final, TypeVar, cast
from urllib.parse import urlparse

from yt_dlp import YoutubeDL

from discodj.application.interfaces.track_resolver import TrackResolver
from discodj.config.settings import AudioSettings, ResolverSettings
from discodj.domain.music.entities import Requester, Track
from discodj.domain.music.value_objects import TrackSource
from discodj.domain.shared.exceptions import TrackResolutionError
from discodj.domain.shared.messages import ErrorMessages, LogTemplates
from discodj.infrastructure.audio.models import (
    LOG_URL_TRUNCATE,
    MAX_TITLE_LENGTH,
    TtlCache,
    YtDlpOpts,
    YtDlpTrackInfo,
)
from discodj.infrastructure.audio.spotify import SpotifyLookup, is_spotify_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

URL_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"https?://"),
    re.compile(r"www\."),
]

PLAYLIST_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"[?&]list="),
    re.compile(r"/playlist\?"),
    re.compile(r"/sets/"),
]

# Process-wide caches, keyed by URL.
_info_cache = TtlCache(600)
_playlist_cache = TtlCache(300)
_stream_cache = TtlCache(300)


def is_url(query: str) -> bool:
    return any(pattern.search(query) for pattern in URL_PATTERNS)


def is_playlist(url: str) -> bool:
    return any(pattern.search(url) for pattern in PLAYLIST_PATTERNS)


def source_for_url(url: str) -> TrackSource:
    host = (urlparse(url).hostname or "").lower()
    if "soundcloud.com" in host:
        return TrackSource.SOUNDCLOUD
    return TrackSource.YOUTUBE


class YtDlpResolver(TrackResolver):
    """Resolves URLs, playlists and searches; every lookup is bounded and retried."""

    def __init__(
        self,
        settings: ResolverSettings | None = None,
        audio_settings: AudioSettings | None = None,
        *,
        spotify: SpotifyLookup | None = None,
    ) -> None:
        self._settings = settings or ResolverSettings()
        self._audio = audio_settings or AudioSettings()
        self._spotify = spotify

        _info_cache.ttl_s = self._settings.info_ttl_s
        _playlist_cache.ttl_s = self._settings.playlist_ttl_s
        _stream_cache.ttl_s = self._settings.stream_url_ttl_s

        self._base_opts = YtDlpOpts(
            format=self._audio.ytdlp_format,
            socket_timeout=max(1, int(self._settings.timeout_s / 2)),
        )

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _get_flat_opts(self, **overrides: Any) -> YtDlpOpts:
        return self._get_opts(extract_flat="in_playlist", **overrides)

    # ── Bounded, retried execution ──────────────────────────────────

    async def _call(self, label: str, func: Callable[..., T], *args: Any) -> T:
        """Run blocking *func* in a thread with a timeout, retrying with backoff."""
        attempts = self._settings.retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(func, *args), timeout=self._settings.timeout_s
                )
            except TimeoutError:
                last_error = TrackResolutionError(
                    label, ErrorMessages.RESOLVER_TIMEOUT.format(timeout=self._settings.timeout_s)
                )
            except Exception as exc:
                last_error = exc

            if attempt < attempts:
                delay = self._settings.retry_base_delay_s * (2 ** (attempt - 1))
                logger.warning(LogTemplates.YTDLP_RETRY, label[:LOG_URL_TRUNCATE], attempt, attempts, delay, last_error)
                await asyncio.sleep(delay)

        if isinstance(last_error, TrackResolutionError):
            raise last_error
        raise TrackResolutionError(label, str(last_error)) from last_error

    # ── Blocking yt-dlp calls ───────────────────────────────────────

    def _extract(self, target: str, opts: YtDlpOpts) -> dict[str, Any] | None:
        with YoutubeDL(params=cast(Any, opts.model_dump(exclude_none=True))) as ydl:
            data = ydl.extract_info(target, download=False)
        return dict(data) if isinstance(data, dict) else None

    def _extract_info_sync(self, url: str) -> YtDlpTrackInfo | None:
        cached = _info_cache.get(url)
        if cached is not None:
            logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
            return cached

        data = self._extract(url, self._get_opts())
        if data is None:
            return None
        info = YtDlpTrackInfo.model_validate(data)
        _info_cache.set(url, info)

        stream = self._stream_from_info(info)
        if stream:
            _stream_cache.set(url, stream)
        return info

    def _extract_playlist_sync(self, url: str) -> list[YtDlpTrackInfo]:
        cached = _playlist_cache.get(url)
        if cached is not None:
            logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
            return cached

        data = self._extract(
            url, self._get_flat_opts(noplaylist=False, playlistend=self._settings.playlist_limit)
        )
        entries = self._entries(data)
        _playlist_cache.set(url, entries)
        return entries

    def _search_sync(self, query: str, limit: int) -> list[YtDlpTrackInfo]:
        data = self._extract(f"ytsearch{limit}:{query}", self._get_flat_opts())
        return self._entries(data)

    def _stream_url_sync(self, url: str) -> str | None:
        cached = _stream_cache.get(url)
        if cached is not None:
            return cached

        data = self._extract(url, self._get_opts())
        if data is None:
            return None
        stream = self._stream_from_info(YtDlpTrackInfo.model_validate(data))
        if stream:
            _stream_cache.set(url, stream)
        return stream

    @staticmethod
    def _entries(data: dict[str, Any] | None) -> list[YtDlpTrackInfo]:
        if not data:
            return []
        entries = data.get("entries") or []
        if not isinstance(entries, list):
            entries = list(entries)
        return [YtDlpTrackInfo.model_validate(e) for e in entries if isinstance(e, dict)]

    @staticmethod
    def _stream_from_info(info: YtDlpTrackInfo) -> str | None:
        if info.url and info.url != info.webpage_url:
            return info.url
        audio_formats = [f for f in info.formats if f.acodec != "none" and f.url]
        if audio_formats:
            return audio_formats[-1].url
        return None

    # ── Conversion ──────────────────────────────────────────────────

    @staticmethod
    def _info_to_track(info: YtDlpTrackInfo, requester: Requester | None = None) -> Track | None:
        url = info.page_url
        if not url:
            return None
        return Track(
            url=url,
            title=(info.title or url)[:MAX_TITLE_LENGTH],
            thumbnail=info.best_thumbnail,
            duration_sec=info.duration,
            requested_by_id=requester.id if requester else None,
            requested_by_tag=requester.tag if requester else None,
            source=source_for_url(url),
        )

    def _to_tracks(self, infos: list[YtDlpTrackInfo], requester: Requester | None = None) -> list[Track]:
        tracks: list[Track] = []
        for info in infos:
            track = self._info_to_track(info, requester)
            if track is not None:
                tracks.append(track)
        return tracks

    # ── TrackResolver ───────────────────────────────────────────────

    async def resolve(self, query: str, requester: Requester) -> list[Track]:
        query = query.strip()
        if not query:
            return []

        if is_spotify_url(query):
            return await self._resolve_spotify(query, requester)

        if is_url(query):
            if is_playlist(query):
                try:
                    infos = await self._call(query, self._extract_playlist_sync, query)
                except TrackResolutionError:
                    logger.warning(LogTemplates.YTDLP_FAILED_EXTRACT_PLAYLIST, query[:LOG_URL_TRUNCATE])
                    raise
                return self._to_tracks(infos[: self._settings.playlist_limit], requester)

            try:
                info = await self._call(query, self._extract_info_sync, query)
            except TrackResolutionError:
                logger.warning(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, query[:LOG_URL_TRUNCATE])
                raise
            track = self._info_to_track(info, requester) if info else None
            return [track] if track else []

        results = await self.search(query, limit=1)
        return [results[0].with_requester(requester)] if results else []

    async def _resolve_spotify(self, url: str, requester: Requester) -> list[Track]:
        if self._spotify is None:
            logger.info(LogTemplates.SPOTIFY_DISABLED)
            return []
        try:
            return await self._call(url, self._spotify.expand, url, requester)
        except TrackResolutionError as exc:
            logger.warning(LogTemplates.SPOTIFY_FAILED, url[:LOG_URL_TRUNCATE], exc)
            raise

    async def resolve_one(self, url: str) -> Track | None:
        info = await self._call(url, self._extract_info_sync, url)
        return self._info_to_track(info) if info else None

    async def resolve_placeholder(self, track: Track) -> Track | None:
        if not track.lazy_query:
            return None
        results = await self.search(track.lazy_query, limit=1)
        return results[0] if results else None

    async def find_related(self, seed: Track) -> Track | None:
        """First search hit for the seed's title that is not the seed itself."""
        for candidate in await self.search(seed.title, limit=self._settings.search_limit):
            if candidate.url and candidate.url != seed.url:
                return candidate
        return None

    async def search(self, query: str, limit: int = 5) -> list[Track]:
        try:
            infos = await self._call(query, self._search_sync, query, limit)
        except TrackResolutionError:
            logger.warning(LogTemplates.YTDLP_FAILED_SEARCH, query)
            raise
        return self._to_tracks(infos)

    async def stream_url(self, url: str) -> str:
        """Direct media URL for *url*, cached for ``stream_url_ttl_s``."""
        stream = await self._call(url, self._stream_url_sync, url)
        if not stream:
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, url[:LOG_URL_TRUNCATE])
            raise TrackResolutionError(url, ErrorMessages.NO_STREAM_URL_FOR_TRACK.format(title=url))
        return stream


def clear_caches() -> None:
    """Drop every cached lookup (useful for testing)."""
    _info_cache.clear()
    _playlist_cache.clear()
    _stream_cache.clear()
