"""Playback clock: elapsed-time tracking that survives pause, resume and seek.

The clock keeps four numbers per room and derives elapsed time on read:

- ``started_at_ms``: monotonic timestamp the current resource started at
- ``seek_base_sec``: offset the resource was started from
- ``paused_at_ms``: when the current pause began, 0 when not paused
- ``pause_hold_ms``: total paused time accumulated since start

When the audio sink can report how much audio it actually played, that
figure is preferred over wall-clock arithmetic.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

from discodj.domain.music.value_objects import Progress


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class PlaybackClock:
    def __init__(self, now_ms: Callable[[], float] = monotonic_ms) -> None:
        self._now_ms = now_ms
        self.started_at_ms: float = 0.0
        self.seek_base_sec: float = 0.0
        self.paused_at_ms: float = 0.0
        self.pause_hold_ms: float = 0.0

    @property
    def is_paused(self) -> bool:
        return self.paused_at_ms > 0

    def on_track_start(self, seek_base_sec: float = 0.0) -> None:
        self.started_at_ms = self._now_ms()
        self.seek_base_sec = max(0.0, float(seek_base_sec))
        self.paused_at_ms = 0.0
        self.pause_hold_ms = 0.0

    def on_pause(self) -> None:
        if not self.is_paused:
            # A zero reading would be indistinguishable from "not paused".
            self.paused_at_ms = self._now_ms() or 1e-9

    def on_resume(self) -> None:
        if self.is_paused:
            self.pause_hold_ms += max(0.0, self._now_ms() - self.paused_at_ms)
            self.paused_at_ms = 0.0

    def on_seek(self, seek_base_sec: float) -> None:
        self.on_track_start(seek_base_sec)

    def reset(self) -> None:
        self.started_at_ms = 0.0
        self.seek_base_sec = 0.0
        self.paused_at_ms = 0.0
        self.pause_hold_ms = 0.0

    def elapsed_seconds(self, playback_ms: float | None = None) -> float:
        """Seconds of the current track heard so far.

        *playback_ms* is the sink's own count of audio played since the
        resource started; it is used whenever it is finite and non-negative.
        """
        if playback_ms is not None and math.isfinite(playback_ms) and playback_ms >= 0:
            return playback_ms / 1000.0 + self.seek_base_sec

        now = self._now_ms()
        current_pause = (now - self.paused_at_ms) if self.is_paused else 0.0
        effective = (now - self.started_at_ms) - (self.pause_hold_ms + current_pause)
        return max(0.0, self.seek_base_sec + effective / 1000.0)

    def progress(self, total_sec: float | None, playback_ms: float | None = None) -> Progress:
        """Elapsed/total pair with elapsed clamped to a known total."""
        elapsed = self.elapsed_seconds(playback_ms)
        if total_sec is None or not math.isfinite(total_sec) or total_sec <= 0:
            return Progress(elapsed=elapsed, total=math.nan)
        return Progress(elapsed=min(elapsed, float(total_sec)), total=float(total_sec))
