"""Pydantic models for yt-dlp data, lookup caches and yt-dlp options.

These are infrastructure-specific models for parsing external yt-dlp data,
caching lookup results, and configuring yt-dlp.
"""

from __future__ import annotations

import time
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from discodj.domain.shared.types import NonEmptyStr, NonNegativeFloat, PositiveInt

CACHE_MAX_SIZE: Final[int] = 500
DEFAULT_SOCKET_TIMEOUT: Final[int] = 15
LOG_URL_TRUNCATE: Final[int] = 60
MAX_TITLE_LENGTH: Final[int] = 500


# ── Pydantic models for yt-dlp data ────────────────────────────────────


class ThumbnailInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None


class AudioFormatInfo(BaseModel):
    """A single audio format entry from yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: NonEmptyStr | None = None


class YtDlpTrackInfo(BaseModel):
    """Trimmed yt-dlp extraction result.

    Extra fields from yt-dlp are silently ignored. Before-validators coerce
    garbage from external yt-dlp data gracefully.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    webpage_url: NonEmptyStr | None = None
    url: NonEmptyStr | None = None
    title: NonEmptyStr | None = None
    duration: NonNegativeFloat | None = None
    thumbnail: NonEmptyStr | None = None
    thumbnails: list[ThumbnailInfo] = Field(default_factory=list)
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator("id", "webpage_url", "url", "thumbnail", "title", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        """Convert empty / whitespace-only / non-string values to None."""
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> float | None:
        """Coerce to a positive float; return None for garbage values."""
        if v is None or isinstance(v, bool):
            return None
        try:
            val = float(v)
        except (TypeError, ValueError):
            return None
        return val if val > 0 else None

    @field_validator("thumbnails", "formats", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @property
    def page_url(self) -> str | None:
        """The canonical watch URL for this entry."""
        if self.webpage_url and self.webpage_url.startswith("http"):
            return self.webpage_url
        if self.url and self.url.startswith("http"):
            return self.url
        if self.id:
            return f"https://www.youtube.com/watch?v={self.id}"
        return None

    @property
    def best_thumbnail(self) -> str | None:
        for thumb in reversed(self.thumbnails):
            if thumb.url and thumb.url.startswith("http"):
                return thumb.url
        if self.thumbnail and self.thumbnail.startswith("http"):
            return self.thumbnail
        return None


class CacheEntry(BaseModel):
    """Cached lookup result with its expiry timestamp."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any = None
    expires_at: NonNegativeFloat


class TtlCache:
    """Process-wide URL-keyed cache whose entries expire after a fixed TTL."""

    def __init__(self, ttl_s: float, *, max_size: int = CACHE_MAX_SIZE) -> None:
        self.ttl_s = ttl_s
        self.max_size = max_size
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.time() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        now = time.time()
        self._entries[key] = CacheEntry(value=value, expires_at=now + self.ttl_s)
        if len(self._entries) > self.max_size:
            self.purge_expired(now)

    def purge_expired(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        expired = [k for k, entry in self._entries.items() if now >= entry.expires_at]
        for k in expired:
            self._entries.pop(k, None)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ── yt-dlp option models ───────────────────────────────────────────────


class YtDlpOpts(BaseModel):
    """Typed yt-dlp configuration options passed to YoutubeDL."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    no_warnings: bool = True
    noprogress: bool = True
    noplaylist: bool = True
    default_search: NonEmptyStr = "ytsearch"
    socket_timeout: PositiveInt = DEFAULT_SOCKET_TIMEOUT
    format: NonEmptyStr | None = None
    skip_download: bool = True
    extract_flat: NonEmptyStr | bool = False
    playlistend: PositiveInt | None = None
