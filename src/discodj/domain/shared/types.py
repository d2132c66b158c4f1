"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the package is defined here once,
so models can simply annotate their fields::

    from discodj.domain.shared.types import DiscordSnowflake, VolumePercent

    class MyModel(BaseModel):
        guild_id: DiscordSnowflake
        volume: VolumePercent
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

# ── Numeric constraints ─────────────────────────────────────────────

DiscordSnowflake = Annotated[int, Field(gt=0, lt=2**64)]
"""Positive integer that fits a Discord snowflake (1 … 2^64-1)."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

PositiveInt = Annotated[int, Field(gt=0)]
"""Integer > 0."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float >= 0.0."""

PositiveFloat = Annotated[float, Field(gt=0.0)]
"""Float > 0.0."""

VolumePercent = Annotated[int, Field(ge=0, le=200)]
"""Room volume in percent: 0 … 200."""

MIN_VOLUME: int = 0
MAX_VOLUME: int = 200
DEFAULT_VOLUME: int = 100


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Track title: 1-500 characters."""

HttpUrlStr = Annotated[str, Field(pattern=r"^https?://")]
"""String that starts with http:// or https://."""

PlaylistNameStr = Annotated[str, Field(min_length=1, max_length=100)]
"""Saved playlist name: 1-100 characters."""


# ── Domain-specific numeric constraints ─────────────────────────────

DurationSeconds = Annotated[float, Field(ge=0, le=7 * 86_400)]
"""Track duration in seconds: 0 … one week (long streams and mixes)."""

ProgressSlots = Annotated[int, Field(ge=1, le=40)]
"""Number of positions in the rendered progress bar."""

PageSize = Annotated[int, Field(ge=1, le=25)]
"""Entries per panel queue page."""


# ── Datetime constraints ────────────────────────────────────────────

def _ensure_utc(v: datetime) -> datetime:
    """Validate that a datetime is timezone-aware and normalise to UTC."""
    if isinstance(v, str):
        v = datetime.fromisoformat(v)
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC on input."""


# ── Pydantic-compatible ID aliases ──────────────────────────────────

UserIdField = DiscordSnowflake
"""Alias, user ID used as a plain Pydantic field."""

ChannelIdField = DiscordSnowflake
"""Alias, channel ID used as a plain Pydantic field."""

MessageIdField = DiscordSnowflake
"""Alias, message ID used as a plain Pydantic field."""
