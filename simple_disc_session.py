#!/usr/bin/env python3
"""
Working-set state for building a disc pack interactively.

Holds the selected tracks, pack icon and metadata between edits, and owns
the temporary files handed out for previews. Every preview file is created
at most once per asset and deleted exactly once: when its track is removed,
when the icon is replaced, or when the session closes.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Generic, Iterable, Optional, Protocol, TypeVar

from simple_disc_builder import (
    MAX_TRACKS,
    Assignment,
    BuildInProgressError,
    BuildResult,
    PackMetadata,
    TimedTrack,
    Track,
    assign_slots,
    build_pack,
    merge_metadata,
    probe_durations,
    read_pack,
)


logger = logging.getLogger(__name__)

ICON_HANDLE_KEY = "icon"


class HandleReleasedError(RuntimeError):
    pass


class Closeable(Protocol):
    def close(self) -> None: ...


H = TypeVar("H", bound=Closeable)


class TempFileHandle:
    def __init__(self, data: bytes, suffix: str = ""):
        fd, name = tempfile.mkstemp(prefix="sdb_", suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException:
            Path(name).unlink(missing_ok=True)
            raise
        self._path: Optional[Path] = Path(name)

    @property
    def path(self) -> Path:
        if self._path is None:
            raise HandleReleasedError("Preview file was already released.")
        return self._path

    @property
    def closed(self) -> bool:
        return self._path is None

    def close(self) -> None:
        path = self._path
        if path is None:
            return
        self._path = None
        path.unlink(missing_ok=True)


class HandleRegistry(Generic[H]):
    """One live handle per key, created lazily and closed exactly once."""

    def __init__(self) -> None:
        self._handles: dict[str, H] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: str) -> bool:
        return key in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def keys(self) -> list[str]:
        return list(self._handles)

    def acquire(self, key: str, factory: Callable[[], H]) -> H:
        with self._lock:
            handle = self._handles.get(key)
            if handle is None:
                handle = factory()
                self._handles[key] = handle
            return handle

    def release(self, key: str) -> bool:
        with self._lock:
            handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.close()
        return True

    def replace(self, key: str, factory: Callable[[], H]) -> H:
        self.release(key)
        return self.acquire(key, factory)

    def release_all(self) -> int:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            try:
                handle.close()
            except OSError as e:
                logger.warning("Could not release handle %r: %s", handle, e)
        return len(handles)

    def __enter__(self) -> "HandleRegistry[H]":
        return self

    def __exit__(self, *exc) -> None:
        self.release_all()


def _track_key(name: str) -> str:
    return f"track:{name}"


class DiscPackSession:
    def __init__(
        self,
        metadata: Optional[PackMetadata] = None,
        *,
        prober: Optional[Callable[[Track], float]] = None,
        icon_fetcher: Optional[Callable[[Optional[str]], bytes]] = None,
        default_icon_url: Optional[str] = None,
        use_default_icon: bool = True,
    ) -> None:
        self.tracks: list[Track] = []
        self.metadata = metadata or PackMetadata()
        self.icon: Optional[bytes] = None
        self.prober = prober
        self.icon_fetcher = icon_fetcher
        self.default_icon_url = default_icon_url
        self.use_default_icon = use_default_icon
        self._handles: HandleRegistry[TempFileHandle] = HandleRegistry()
        self._build_lock = threading.Lock()

    # -- working set --------------------------------------------------------

    @property
    def remaining_slots(self) -> int:
        return max(0, MAX_TRACKS - len(self.tracks))

    def track_names(self) -> list[str]:
        return [t.name for t in self.tracks]

    def add_tracks(self, tracks: Iterable[Track]) -> list[Track]:
        """Add tracks not already present; return the ones that did not fit."""
        seen = set(self.track_names())
        fresh: list[Track] = []
        for t in tracks:
            if t.name in seen:
                continue
            seen.add(t.name)
            fresh.append(t)

        room = self.remaining_slots
        accepted, rejected = fresh[:room], fresh[room:]
        if rejected:
            logger.warning(
                "Only %d disc slot(s) left; skipped %d track(s): %s",
                room,
                len(rejected),
                ", ".join(t.name for t in rejected),
            )
        self.tracks.extend(accepted)
        return rejected

    def remove_track(self, name: str) -> bool:
        idx = next((i for i, t in enumerate(self.tracks) if t.name == name), None)
        if idx is None:
            return False
        self._handles.release(_track_key(name))
        del self.tracks[idx]
        return True

    def preview_path(self, name: str) -> Path:
        track = next((t for t in self.tracks if t.name == name), None)
        if track is None:
            raise KeyError(name)
        suffix = Path(track.name).suffix or ".ogg"
        handle = self._handles.acquire(_track_key(name), lambda: TempFileHandle(track.data, suffix))
        return handle.path

    def set_metadata(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        major: object = None,
        minor: object = None,
        patch: object = None,
    ) -> PackMetadata:
        self.metadata = PackMetadata.from_fields(name, description, major, minor, patch)
        return self.metadata

    # -- icon -----------------------------------------------------------------

    def set_icon(self, data: Optional[bytes]) -> None:
        self.icon = data or None
        if self.icon is None:
            self._handles.release(ICON_HANDLE_KEY)
            return
        icon = self.icon
        self._handles.replace(ICON_HANDLE_KEY, lambda: TempFileHandle(icon, ".png"))

    def icon_preview_path(self) -> Optional[Path]:
        if self.icon is None:
            return None
        icon = self.icon
        return self._handles.acquire(ICON_HANDLE_KEY, lambda: TempFileHandle(icon, ".png")).path

    # -- pack import ----------------------------------------------------------

    def load_pack(self, archive: bytes) -> list[Track]:
        imported = read_pack(archive)
        if imported.has_manifest:
            self.metadata = merge_metadata(self.metadata, imported)
        if imported.icon:
            self.set_icon(imported.icon)
        return self.add_tracks(imported.tracks)

    # -- pipeline -------------------------------------------------------------

    def refresh_assignments(self) -> list[Assignment]:
        tracks = list(self.tracks)
        if not tracks:
            return []
        durations = probe_durations(tracks, prober=self.prober)
        return assign_slots([TimedTrack(t, d) for t, d in zip(tracks, durations)])

    def build(self, metadata: Optional[PackMetadata] = None) -> BuildResult:
        if not self._build_lock.acquire(blocking=False):
            raise BuildInProgressError("A build is already running for this session.")
        try:
            meta = metadata or self.metadata
            logger.info("Building %s v%s from %d track(s)", meta.name, meta.version_string, len(self.tracks))
            return build_pack(
                list(self.tracks),
                meta,
                self.icon,
                use_default_icon=self.use_default_icon,
                default_icon_url=self.default_icon_url,
                prober=self.prober,
                icon_fetcher=self.icon_fetcher,
            )
        finally:
            self._build_lock.release()

    # -- teardown -------------------------------------------------------------

    def close(self) -> None:
        released = self._handles.release_all()
        if released:
            logger.debug("Released %d preview file(s)", released)
        self.tracks.clear()
        self.icon = None

    def __enter__(self) -> "DiscPackSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
