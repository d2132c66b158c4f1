"""Spotify link expansion into placeholder tracks via spotipy.

Spotify does not serve audio, so each Spotify track becomes a placeholder
whose ``lazy_query`` is searched on YouTube right before it plays.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Final

import spotipy
from spotipy.oauth2 import SpotifyClientCredentials

from discodj.domain.music.entities import Requester, Track
from discodj.domain.music.value_objects import TrackSource
from discodj.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

SPOTIFY_URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:https?://)?open\.spotify\.com/(?:intl-[a-z]{2}/)?(track|album|playlist)/([A-Za-z0-9]+)",
    re.IGNORECASE,
)


def is_spotify_url(query: str) -> bool:
    return SPOTIFY_URL_PATTERN.match(query.strip()) is not None


class SpotifyLookup:
    """Blocking spotipy wrapper; call its methods from a worker thread."""

    def __init__(self, client_id: str, client_secret: str, *, limit: int = 100) -> None:
        self._limit = limit
        self._client = spotipy.Spotify(
            client_credentials_manager=SpotifyClientCredentials(
                client_id=client_id, client_secret=client_secret
            )
        )

    def expand(self, url: str, requester: Requester) -> list[Track]:
        match = SPOTIFY_URL_PATTERN.match(url.strip())
        if match is None:
            return []

        kind = match.group(1).lower()
        if kind == "track":
            items = [self._client.track(url)]
            album_artists: list[dict[str, Any]] = []
        elif kind == "album":
            album = self._client.album(url)
            album_artists = album.get("artists") or []
            items = self._collect(self._client.album_tracks(url, limit=50))
            for item in items:
                item.setdefault("album", album)
        else:
            album_artists = []
            items = [entry.get("track") for entry in self._collect(self._client.playlist_items(url, limit=100))]

        tracks: list[Track] = []
        for item in items:
            track = self._to_placeholder(item, requester, album_artists)
            if track is not None:
                tracks.append(track)
            if len(tracks) >= self._limit:
                break
        return tracks

    def _collect(self, page: dict[str, Any] | None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while page:
            items.extend(i for i in page.get("items") or [] if i)
            if len(items) >= self._limit or not page.get("next"):
                break
            page = self._client.next(page)
        return items

    @staticmethod
    def _to_placeholder(
        item: dict[str, Any] | None,
        requester: Requester,
        album_artists: list[dict[str, Any]],
    ) -> Track | None:
        if not item or not item.get("name"):
            return None

        artists = ", ".join(a["name"] for a in item.get("artists") or album_artists if a.get("name"))
        name = item["name"]
        images = (item.get("album") or {}).get("images") or []
        duration_ms = item.get("duration_ms")

        return Track(
            title=f"{name} - {artists}"[:500] if artists else name[:500],
            lazy_query=f"{name} {artists}".strip(),
            thumbnail=images[0].get("url") if images else None,
            duration_sec=duration_ms / 1000 if isinstance(duration_ms, int | float) and duration_ms > 0 else None,
            requested_by_id=requester.id,
            requested_by_tag=requester.tag,
            source=TrackSource.SPOTIFY,
        )


def create_spotify_lookup(client_id: str, client_secret: str, *, limit: int = 100) -> SpotifyLookup | None:
    if not client_id or not client_secret:
        logger.info(LogTemplates.SPOTIFY_DISABLED)
        return None
    return SpotifyLookup(client_id, client_secret, limit=limit)
