"""JSON-file implementations of the room snapshot and playlist stores.

Each room gets ``<room_id>.json`` for its snapshot and
``<room_id>.playlists.json`` for its saved playlists under the data
directory. Files are replaced atomically so a crash mid-write never leaves
a truncated document behind.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from discodj.application.interfaces.stores import PlaylistStore, RoomStore
from discodj.domain.music.entities import RoomSnapshot, SavedPlaylist, Track
from discodj.domain.shared.messages import LogTemplates
from discodj.domain.shared.types import DEFAULT_VOLUME

logger = logging.getLogger(__name__)


def _write_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


class _JsonFileStore:
    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._locks: dict[Path, asyncio.Lock] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _lock(self, path: Path) -> asyncio.Lock:
        if path not in self._locks:
            self._locks[path] = asyncio.Lock()
        return self._locks[path]

    async def _write(self, path: Path, payload: Any) -> None:
        async with self._lock(path):
            await asyncio.to_thread(_write_atomic, path, payload)

    async def _read(self, path: Path) -> Any | None:
        async with self._lock(path):
            if not path.exists():
                return None
            return await asyncio.to_thread(_read_json, path)


class JsonRoomStore(_JsonFileStore, RoomStore):
    def __init__(self, data_dir: str | Path, default_volume: int = DEFAULT_VOLUME) -> None:
        super().__init__(data_dir)
        self._default_volume = default_volume

    def path_for(self, room_id: int) -> Path:
        return self._data_dir / f"{room_id}.json"

    async def save(self, room_id: int, snapshot: RoomSnapshot) -> None:
        await self._write(self.path_for(room_id), snapshot.model_dump(mode="json"))
        logger.debug(LogTemplates.STORE_SAVED, room_id)

    async def load(self, room_id: int) -> RoomSnapshot:
        path = self.path_for(room_id)
        try:
            raw = await self._read(path)
        except (OSError, ValueError) as exc:
            logger.warning(LogTemplates.STORE_LOAD_FAILED, path, exc)
            return RoomSnapshot(volume=self._default_volume)

        if raw is None:
            return RoomSnapshot(volume=self._default_volume)

        return RoomSnapshot.from_raw(
            raw,
            default_volume=self._default_volume,
            on_invalid=lambda name: logger.warning(LogTemplates.STORE_FIELD_DEFAULTED, name, room_id),
        )


class JsonPlaylistStore(_JsonFileStore, PlaylistStore):
    """Stores ``{name: {name, tracks, saved_at, count}}`` per room."""

    def path_for(self, room_id: int) -> Path:
        return self._data_dir / f"{room_id}.playlists.json"

    async def _load_all(self, room_id: int) -> dict[str, SavedPlaylist]:
        path = self.path_for(room_id)
        try:
            raw = await self._read(path)
        except (OSError, ValueError) as exc:
            logger.warning(LogTemplates.STORE_LOAD_FAILED, path, exc)
            return {}

        if not isinstance(raw, dict):
            return {}

        playlists: dict[str, SavedPlaylist] = {}
        for key, value in raw.items():
            try:
                playlist = SavedPlaylist.model_validate(value)
            except ValidationError:
                logger.warning(LogTemplates.STORE_FIELD_DEFAULTED, key, room_id)
                continue
            playlists[playlist.name.casefold()] = playlist
        return playlists

    async def _save_all(self, room_id: int, playlists: dict[str, SavedPlaylist]) -> None:
        payload = {
            playlist.name: {**playlist.model_dump(mode="json"), "count": playlist.count}
            for playlist in playlists.values()
        }
        await self._write(self.path_for(room_id), payload)

    async def list(self, room_id: int) -> list[SavedPlaylist]:
        playlists = await self._load_all(room_id)
        return sorted(playlists.values(), key=lambda p: p.name.casefold())

    async def save(self, room_id: int, name: str, tracks: list[Track]) -> SavedPlaylist:
        playlists = await self._load_all(room_id)
        playlist = SavedPlaylist.create(name, tracks)
        playlists[playlist.name.casefold()] = playlist
        await self._save_all(room_id, playlists)
        return playlist

    async def load(self, room_id: int, name: str) -> SavedPlaylist | None:
        playlists = await self._load_all(room_id)
        return playlists.get(name.strip().casefold())

    async def delete(self, room_id: int, name: str) -> bool:
        playlists = await self._load_all(room_id)
        if playlists.pop(name.strip().casefold(), None) is None:
            return False
        await self._save_all(room_id, playlists)
        return True
