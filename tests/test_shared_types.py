"""Unit tests for domain/shared/types.py: Pydantic Annotated type constraints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import BaseModel, ValidationError

from discodj.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    PageSize,
    PlaylistNameStr,
    ProgressSlots,
    TrackTitleStr,
    UtcDatetimeField,
    VolumePercent,
)


# ── Helper: build a one-field model for each type ────────────────────


def _model_for(annotation, field_name: str = "v"):
    """Dynamically create a Pydantic model with a single field of the given type."""
    return type("M", (BaseModel,), {"__annotations__": {field_name: annotation}})


# ── DiscordSnowflake ────────────────────────────────────────────────


class TestDiscordSnowflake:
    M = _model_for(DiscordSnowflake)

    def test_valid_snowflake(self):
        assert self.M(v=1).v == 1

    def test_large_valid_snowflake(self):
        assert self.M(v=2**64 - 1).v == 2**64 - 1

    def test_zero_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v=0)

    def test_too_large_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v=2**64)


# ── VolumePercent ───────────────────────────────────────────────────


class TestVolumePercent:
    M = _model_for(VolumePercent)

    @pytest.mark.parametrize("value", [0, 100, 200])
    def test_bounds_accepted(self, value):
        assert self.M(v=value).v == value

    @pytest.mark.parametrize("value", [-1, 201])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(ValidationError):
            self.M(v=value)


# ── Strings ─────────────────────────────────────────────────────────


class TestTrackTitleStr:
    M = _model_for(TrackTitleStr)

    def test_valid(self):
        assert self.M(v="Song").v == "Song"

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v="")

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v="x" * 501)


class TestHttpUrlStr:
    M = _model_for(HttpUrlStr)

    @pytest.mark.parametrize("url", ["http://example.com", "https://youtu.be/abc"])
    def test_http_accepted(self, url):
        assert self.M(v=url).v == url

    @pytest.mark.parametrize("url", ["ftp://example.com", "youtube.com/watch", "ytsearch1:song"])
    def test_other_schemes_rejected(self, url):
        with pytest.raises(ValidationError):
            self.M(v=url)


class TestPlaylistNameStr:
    M = _model_for(PlaylistNameStr)

    def test_valid(self):
        assert self.M(v="road trip").v == "road trip"

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v="n" * 101)


# ── Domain numerics ─────────────────────────────────────────────────


class TestDurationSeconds:
    M = _model_for(DurationSeconds)

    def test_zero_and_week_accepted(self):
        assert self.M(v=0).v == 0
        assert self.M(v=7 * 86_400).v == 7 * 86_400

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v=-0.5)

    def test_longer_than_week_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v=7 * 86_400 + 1)


class TestPanelNumerics:
    def test_progress_slots_bounds(self):
        M = _model_for(ProgressSlots)
        assert M(v=1).v == 1
        assert M(v=40).v == 40
        with pytest.raises(ValidationError):
            M(v=0)

    def test_page_size_bounds(self):
        M = _model_for(PageSize)
        assert M(v=25).v == 25
        with pytest.raises(ValidationError):
            M(v=26)


# ── UtcDatetimeField ────────────────────────────────────────────────


class TestUtcDatetimeField:
    M = _model_for(UtcDatetimeField)

    def test_utc_kept(self):
        now = datetime.now(UTC)
        assert self.M(v=now).v == now

    def test_offset_normalised_to_utc(self):
        value = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        result = self.M(v=value).v

        assert result.tzinfo == UTC
        assert result.hour == 10

    def test_iso_string_parsed(self):
        result = self.M(v="2024-01-01T12:00:00+00:00").v

        assert result == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def test_naive_rejected(self):
        with pytest.raises(ValidationError):
            self.M(v=datetime(2024, 1, 1, 12, 0))
