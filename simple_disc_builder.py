#!/usr/bin/env python3
"""
Simple Disc Pack Builder.

Turns a folder of .ogg tracks into a music-disc resource pack (.mcpack):
- every track replaces one of the 21 built-in music discs
- tracks are matched to discs by duration (longest track picks first)
- optional custom pack icon, normalized to a 1080x1080 transparent PNG

Output structure is what the game expects from a resource pack:
- sounds/music/game/records/<disc>.ogg
- pack_icon.png
- manifest.json
"""

from __future__ import annotations

import argparse
import io
import json
import logging
import math
import os
import re
import sys
import uuid
import zipfile
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Optional, Sequence

import requests
from PIL import Image, ImageOps

try:  # Primary duration backend (libsndfile reads ogg/wav/flac from memory).
    import soundfile as sf  # type: ignore
except Exception:
    sf = None

try:  # Fallback decoder for sources libsndfile rejects.
    import miniaudio  # type: ignore
except Exception:
    miniaudio = None


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    name: str
    duration: int


# Compatibility contract with the game: names and durations of the vanilla discs.
# Order breaks ties between equal durations; keep it stable.
SLOT_CATALOG: tuple[Slot, ...] = (
    Slot("5", 178),
    Slot("11", 71),
    Slot("13", 178),
    Slot("cat", 185),
    Slot("blocks", 345),
    Slot("chirp", 185),
    Slot("far", 174),
    Slot("mall", 197),
    Slot("mellohi", 96),
    Slot("stal", 150),
    Slot("strad", 188),
    Slot("ward", 251),
    Slot("wait", 237),
    Slot("otherside", 195),
    Slot("pigstep", 148),
    Slot("relic", 219),
    Slot("creator", 176),
    Slot("creator_music_box", 73),
    Slot("precipice", 299),
    Slot("tears", 175),
    Slot("lava_chicken", 135),
)
SLOT_DURATIONS = MappingProxyType({slot.name: slot.duration for slot in SLOT_CATALOG})
MAX_TRACKS = len(SLOT_CATALOG)

RECORDS_FOLDER = "sounds/music/game/records"
ICON_ENTRY = "pack_icon.png"
LEGACY_ICON_ENTRY = "texture.png"
MANIFEST_ENTRY = "manifest.json"
PACK_EXTENSION = ".mcpack"
MANIFEST_FORMAT_VERSION = 2
MIN_ENGINE_VERSION = [1, 21, 0]
COMPRESSION_LEVEL = 6
# Fixed entry timestamp keeps archives byte-identical for identical inputs.
ARCHIVE_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

ICON_SIZE = 1080
DEFAULT_ICON_URL = "https://static.wikia.nocookie.net/minecraft_gamepedia/images/e/ee/Jukebox_JE2_BE2.png"
ICON_FETCH_TIMEOUT = 15.0
# Wiki CDNs answer 403 to the stock python-requests user agent.
_HTTP_HEADERS = {"User-Agent": "Mozilla/5.0 (SimpleDiscBuilder)"}

DEFAULT_PACK_NAME = "Custom Music Discs"
DEFAULT_PACK_DESCRIPTION = "Custom music disc pack"
DEFAULT_VERSION = (1, 0, 0)
VERSION_PART_MAX = 99

AUDIO_FOLDER_NAME = "Put your music here"
OUTPUT_FOLDER_NAME = "OUTPUT"
AUDIO_EXTENSION = ".ogg"
MAX_PROBE_WORKERS = 8


class DiscPackError(Exception):
    pass


class ProbeError(DiscPackError):
    def __init__(self, track_name: str, reason: str):
        super().__init__(f"Could not read duration of {track_name}: {reason}")
        self.track_name = track_name
        self.reason = reason


class IconError(DiscPackError):
    pass


class AssemblyError(DiscPackError):
    pass


class PackImportError(DiscPackError):
    pass


class BuildInProgressError(DiscPackError):
    pass


@dataclass(frozen=True)
class Track:
    name: str
    data: bytes = field(repr=False)

    @classmethod
    def from_path(cls, path: Path) -> "Track":
        return cls(name=path.name, data=path.read_bytes())

    @property
    def display_name(self) -> str:
        return re.sub(r"\.ogg$", "", self.name, flags=re.IGNORECASE)


@dataclass(frozen=True)
class TimedTrack:
    track: Track
    duration: float


@dataclass(frozen=True)
class Assignment:
    track: Track
    slot: Slot
    track_duration: float

    @property
    def slot_duration(self) -> int:
        return self.slot.duration

    @property
    def difference(self) -> float:
        # Negative means the track runs longer than the disc it replaces.
        return self.slot.duration - self.track_duration

    @property
    def entry_name(self) -> str:
        return f"{RECORDS_FOLDER}/{self.slot.name}.ogg"


@dataclass(frozen=True)
class PackMetadata:
    name: str = DEFAULT_PACK_NAME
    description: str = DEFAULT_PACK_DESCRIPTION
    version: tuple[int, int, int] = DEFAULT_VERSION

    @classmethod
    def from_fields(
        cls,
        name: Optional[str] = None,
        description: Optional[str] = None,
        major: object = None,
        minor: object = None,
        patch: object = None,
    ) -> "PackMetadata":
        return cls(
            name=(name or "").strip() or DEFAULT_PACK_NAME,
            description=(description or "").strip() or DEFAULT_PACK_DESCRIPTION,
            version=(
                _parse_version_part(major, DEFAULT_VERSION[0]),
                _parse_version_part(minor, DEFAULT_VERSION[1]),
                _parse_version_part(patch, DEFAULT_VERSION[2]),
            ),
        )

    @property
    def version_string(self) -> str:
        return ".".join(str(part) for part in self.version)


@dataclass
class ImportedPack:
    tracks: list[Track]
    name: Optional[str] = None
    description: Optional[str] = None
    version: Optional[tuple[int, int, int]] = None
    icon: Optional[bytes] = field(default=None, repr=False)
    has_manifest: bool = False


@dataclass
class BuildResult:
    archive: bytes = field(repr=False)
    metadata: PackMetadata
    assignments: list[Assignment]
    dropped: list[Track]
    icon_included: bool

    @property
    def filename(self) -> str:
        return pack_filename(self.metadata.name)


def _parse_version_part(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        m = re.match(r"\s*([+-]?\d+)", str(value))
        if not m:
            return default
        number = int(m.group(1))
    return max(0, min(VERSION_PART_MAX, number))


def parse_version(value: str) -> tuple[int, int, int]:
    parts = [p for p in re.split(r"[.,\s]+", (value or "").strip()) if p]
    padded = (parts + [None, None, None])[:3]
    return PackMetadata.from_fields(major=padded[0], minor=padded[1], patch=padded[2]).version


def _safe_pack_stem(name: str) -> str:
    stem = (name or "").strip()
    if not stem:
        stem = DEFAULT_PACK_NAME
    stem = re.sub(r'[<>:"/\\|?*\x00-\x1F]', "", stem)
    stem = stem.strip().rstrip(".")
    return stem or DEFAULT_PACK_NAME


def pack_filename(name: str) -> str:
    return f"{_safe_pack_stem(name)}{PACK_EXTENSION}"


def format_time(seconds: float) -> str:
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def app_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def default_audio_root() -> Path:
    return app_root() / AUDIO_FOLDER_NAME


def default_output_root() -> Path:
    return app_root() / OUTPUT_FOLDER_NAME


def default_icon_url() -> str:
    return (os.environ.get("SDB_DEFAULT_ICON_URL", "") or "").strip() or DEFAULT_ICON_URL


def ensure(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def find_oggs(audio_dir: Path) -> list[Path]:
    if not audio_dir.exists():
        return []
    return sorted([p for p in audio_dir.iterdir() if p.is_file() and p.suffix.lower() == AUDIO_EXTENSION])


def load_tracks(paths: Sequence[Path]) -> list[Track]:
    tracks: list[Track] = []
    for p in paths:
        if not p.is_file():
            raise DiscPackError(f"Track not found: {p}")
        tracks.append(Track.from_path(p))
    return tracks


# ---------------------------------------------------------------------------
# Duration probing
# ---------------------------------------------------------------------------


def _probe_backend_mode() -> str:
    mode = (os.environ.get("SDB_PROBE_BACKEND", "auto") or "auto").strip().lower()
    if mode in ("soundfile", "miniaudio"):
        return mode
    return "auto"


def _probe_with_soundfile(data: bytes) -> float:
    info = sf.info(io.BytesIO(data))
    return float(info.frames) / float(info.samplerate)


def _probe_with_miniaudio(data: bytes) -> float:
    decoded = miniaudio.decode(data)
    return float(decoded.num_frames) / float(decoded.sample_rate)


def probe_duration(track: Track) -> float:
    mode = _probe_backend_mode()
    backends: list[tuple[str, Callable[[bytes], float]]] = []
    if mode in ("auto", "soundfile") and sf is not None:
        backends.append(("soundfile", _probe_with_soundfile))
    if mode in ("auto", "miniaudio") and miniaudio is not None:
        backends.append(("miniaudio", _probe_with_miniaudio))
    if not backends:
        raise ProbeError(track.name, f"no decode backend available for mode '{mode}' (install soundfile or miniaudio)")

    errors: list[str] = []
    for label, backend in backends:
        try:
            duration = backend(track.data)
        except Exception as e:
            errors.append(f"{label}: {e}")
            logger.debug("%s could not probe %s: %s", label, track.name, e)
            continue
        if not math.isfinite(duration) or duration < 0:
            errors.append(f"{label}: invalid duration {duration!r}")
            continue
        return duration
    raise ProbeError(track.name, "; ".join(errors))


def probe_durations(
    tracks: Sequence[Track],
    prober: Optional[Callable[[Track], float]] = None,
    max_workers: Optional[int] = None,
) -> list[float]:
    """Probe every track concurrently and return durations in input order.

    All-or-nothing: the first failing probe cancels whatever has not started
    yet, results that did come back are thrown away and a single ProbeError
    is raised for the failing track.
    """
    if not tracks:
        return []
    probe = prober or probe_duration
    workers = max_workers or min(MAX_PROBE_WORKERS, len(tracks))
    logger.debug("Probing %d track(s) on %d worker(s)", len(tracks), workers)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sdb-probe") as pool:
        futures = [pool.submit(probe, t) for t in tracks]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = next((i for i, f in enumerate(futures) if f in done and f.exception() is not None), None)
        if failed is not None:
            for f in pending:
                f.cancel()

    if failed is not None:
        err = futures[failed].exception()
        if isinstance(err, ProbeError):
            raise err
        raise ProbeError(tracks[failed].name, str(err)) from err
    return [float(f.result()) for f in futures]


# ---------------------------------------------------------------------------
# Disc assignment
# ---------------------------------------------------------------------------


def assign_slots(timed_tracks: Sequence[TimedTrack], catalog: Sequence[Slot] = SLOT_CATALOG) -> list[Assignment]:
    """Greedy track-to-disc matching.

    Tracks pick in order of descending duration. Each one first takes the
    shortest free disc that is at least as long as the track; when every free
    disc is shorter it takes the free disc closest in length. Ties go to
    whichever comes first in the sorted order. Tracks left over once all
    discs are taken are not assigned.
    """
    ordered_tracks = sorted(timed_tracks, key=lambda t: t.duration, reverse=True)
    ordered_slots = sorted(catalog, key=lambda s: s.duration, reverse=True)
    used: set[str] = set()
    out: list[Assignment] = []

    for timed in ordered_tracks:
        best: Optional[Slot] = None
        best_diff = math.inf
        for slot in ordered_slots:
            if slot.name in used:
                continue
            diff = slot.duration - timed.duration
            if diff >= 0 and diff < best_diff:
                best, best_diff = slot, diff
        if best is None:
            for slot in ordered_slots:
                if slot.name in used:
                    continue
                diff = abs(slot.duration - timed.duration)
                if diff < best_diff:
                    best, best_diff = slot, diff
        if best is None:
            logger.debug("No disc left for %s", timed.track.name)
            continue
        used.add(best.name)
        out.append(Assignment(track=timed.track, slot=best, track_duration=timed.duration))

    return out


# ---------------------------------------------------------------------------
# Pack icon
# ---------------------------------------------------------------------------


def _cover_square(source: Image.Image, size: int) -> Image.Image:
    src = source.convert("RGBA")
    scale = max(size / max(1, src.width), size / max(1, src.height))
    # Crop box in source pixels, so the resample never exceeds the target size.
    span = size / scale
    left = (src.width - span) / 2
    top = (src.height - span) / 2
    resized = src.resize((size, size), Image.LANCZOS, box=(left, top, left + span, top + span))
    canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    canvas.alpha_composite(resized)
    return canvas


def normalize_icon(image_bytes: bytes, size: int = ICON_SIZE) -> bytes:
    try:
        with Image.open(io.BytesIO(image_bytes)) as im:
            im.load()
            src = ImageOps.exif_transpose(im).convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise IconError(f"Could not decode icon image: {e}") from e

    try:
        out = _cover_square(src, size)
    except (MemoryError, ValueError) as e:
        raise IconError(f"Could not resize icon: {e}") from e
    buf = io.BytesIO()
    try:
        out.save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise IconError(f"Could not encode icon PNG: {e}") from e
    return buf.getvalue()


def fetch_default_icon(url: Optional[str] = None, timeout: float = ICON_FETCH_TIMEOUT) -> bytes:
    target = url or default_icon_url()
    try:
        response = requests.get(target, timeout=timeout, headers=_HTTP_HEADERS)
        response.raise_for_status()
    except requests.RequestException as e:
        raise IconError(f"Could not download default icon from {target}: {e}") from e
    return response.content


def resolve_icon(
    custom_icon: Optional[bytes] = None,
    use_default: bool = True,
    url: Optional[str] = None,
    fetcher: Optional[Callable[[Optional[str]], bytes]] = None,
) -> Optional[bytes]:
    """Normalized icon PNG for the pack, or None when there is none to use.

    Icon problems never fail a build; they are logged and the pack is
    written without pack_icon.png.
    """
    try:
        if custom_icon:
            source = custom_icon
        elif use_default:
            source = (fetcher or fetch_default_icon)(url)
        else:
            return None
        return normalize_icon(source)
    except IconError as e:
        logger.warning("Building pack without icon: %s", e)
        return None


# ---------------------------------------------------------------------------
# Pack assembly
# ---------------------------------------------------------------------------


def build_manifest(metadata: PackMetadata, header_uuid: str, module_uuid: str) -> dict:
    version = list(metadata.version)
    return {
        "format_version": MANIFEST_FORMAT_VERSION,
        "header": {
            "uuid": header_uuid,
            "name": metadata.name,
            "version": version,
            "description": metadata.description,
            "min_engine_version": list(MIN_ENGINE_VERSION),
        },
        "modules": [
            {
                "description": metadata.description,
                "version": list(version),
                "uuid": module_uuid,
                "type": "resources",
            }
        ],
    }


def _write_entry(zf: zipfile.ZipFile, arcname: str, data: bytes) -> None:
    info = zipfile.ZipInfo(arcname, date_time=ARCHIVE_TIMESTAMP)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, data, compress_type=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL)


def assemble_pack(
    assignments: Sequence[Assignment],
    metadata: PackMetadata,
    icon: Optional[bytes] = None,
    uuid_factory: Callable[[], object] = uuid.uuid4,
) -> bytes:
    try:
        manifest = build_manifest(metadata, str(uuid_factory()), str(uuid_factory()))
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as zf:
            for a in assignments:
                _write_entry(zf, a.entry_name, a.track.data)
            if icon:
                _write_entry(zf, ICON_ENTRY, icon)
            _write_entry(zf, MANIFEST_ENTRY, json.dumps(manifest, indent=2, ensure_ascii=False).encode("utf-8"))
    except Exception as e:
        raise AssemblyError(f"Could not write pack archive: {e}") from e
    archive = buf.getvalue()
    logger.info("Assembled %s: %d disc(s), icon=%s, %d bytes", pack_filename(metadata.name), len(assignments), bool(icon), len(archive))
    return archive


def build_pack(
    tracks: Sequence[Track],
    metadata: PackMetadata,
    icon: Optional[bytes] = None,
    *,
    use_default_icon: bool = True,
    default_icon_url: Optional[str] = None,
    prober: Optional[Callable[[Track], float]] = None,
    icon_fetcher: Optional[Callable[[Optional[str]], bytes]] = None,
    uuid_factory: Callable[[], object] = uuid.uuid4,
) -> BuildResult:
    if not tracks:
        raise DiscPackError("No tracks selected.")

    durations = probe_durations(tracks, prober=prober)
    assignments = assign_slots([TimedTrack(t, d) for t, d in zip(tracks, durations)])
    assigned = {id(a.track) for a in assignments}
    dropped = [t for t in tracks if id(t) not in assigned]
    if dropped:
        logger.warning(
            "Only %d discs available; left out %d track(s): %s",
            MAX_TRACKS,
            len(dropped),
            ", ".join(t.name for t in dropped),
        )

    icon_png = resolve_icon(icon, use_default=use_default_icon, url=default_icon_url, fetcher=icon_fetcher)
    archive = assemble_pack(assignments, metadata, icon_png, uuid_factory=uuid_factory)
    return BuildResult(
        archive=archive,
        metadata=metadata,
        assignments=assignments,
        dropped=dropped,
        icon_included=icon_png is not None,
    )


def write_pack(result: BuildResult, out_dir: Path) -> Path:
    target = ensure(out_dir) / result.filename
    target.write_bytes(result.archive)
    return target


# ---------------------------------------------------------------------------
# Pack import
# ---------------------------------------------------------------------------


def read_pack(archive: bytes) -> ImportedPack:
    try:
        zf = zipfile.ZipFile(io.BytesIO(archive))
    except zipfile.BadZipFile as e:
        raise PackImportError(f"Not a pack archive: {e}") from e

    with zf:
        names = set(zf.namelist())
        tracks: list[Track] = []
        for info in zf.infolist():
            if info.is_dir() or not info.filename.lower().endswith(AUDIO_EXTENSION):
                continue
            tracks.append(Track(name=info.filename.rsplit("/", 1)[-1], data=zf.read(info)))

        imported = ImportedPack(tracks=tracks)
        if MANIFEST_ENTRY in names:
            try:
                manifest = json.loads(zf.read(MANIFEST_ENTRY).decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise PackImportError(f"Unreadable {MANIFEST_ENTRY}: {e}") from e
            imported.has_manifest = True
            header = manifest.get("header") if isinstance(manifest, dict) else None
            if isinstance(header, dict):
                if header.get("name"):
                    imported.name = str(header["name"])
                if header.get("description"):
                    imported.description = str(header["description"])
                raw_version = header.get("version")
                if isinstance(raw_version, list) and len(raw_version) == 3:
                    imported.version = PackMetadata.from_fields(
                        major=raw_version[0], minor=raw_version[1], patch=raw_version[2]
                    ).version

            for icon_name in (ICON_ENTRY, LEGACY_ICON_ENTRY):
                if icon_name in names:
                    imported.icon = zf.read(icon_name)
                    break

    if not imported.tracks and not imported.has_manifest:
        raise PackImportError("Pack contains no .ogg tracks and no manifest.json.")
    logger.info("Imported %d track(s) from pack (manifest=%s, icon=%s)", len(tracks), imported.has_manifest, imported.icon is not None)
    return imported


def merge_metadata(metadata: PackMetadata, imported: ImportedPack) -> PackMetadata:
    return replace(
        metadata,
        name=imported.name or metadata.name,
        description=imported.description or metadata.description,
        version=imported.version or metadata.version,
    )


# ---------------------------------------------------------------------------
# Config / CLI
# ---------------------------------------------------------------------------


def _print_assignments(assignments: Sequence[Assignment], dropped: Sequence[Track] = ()) -> None:
    print("")
    print("Disc Assignments")
    print("----------------")
    for idx, a in enumerate(assignments, start=1):
        flag = "  (longer than disc)" if a.difference < 0 else ""
        print(
            f"{idx:>2}. {a.track.display_name}: {a.slot.name} "
            f"[song {format_time(a.track_duration)} | disc {format_time(a.slot_duration)}]{flag}"
        )
    if dropped:
        print("")
        print(f"Left out (only {MAX_TRACKS} discs): {', '.join(t.name for t in dropped)}")
    print("")


def _collect_pipeline_inputs(args: argparse.Namespace) -> tuple[list[Track], PackMetadata, Optional[bytes]]:
    tracks: list[Track] = []
    metadata = PackMetadata()
    icon: Optional[bytes] = None

    if getattr(args, "import_pack", None):
        imported = read_pack(Path(args.import_pack).read_bytes())
        tracks.extend(imported.tracks)
        metadata = merge_metadata(metadata, imported)
        icon = imported.icon

    paths: list[Path] = []
    if getattr(args, "audio_dir", None):
        paths.extend(find_oggs(Path(args.audio_dir)))
    paths.extend(Path(p) for p in (getattr(args, "tracks", None) or []))
    seen = {t.name for t in tracks}
    for t in load_tracks(paths):
        if t.name in seen:
            continue
        seen.add(t.name)
        tracks.append(t)

    if not tracks:
        raise DiscPackError(f"No {AUDIO_EXTENSION} files found in: {getattr(args, 'audio_dir', None)}")

    raw_version = getattr(args, "version", None)
    if isinstance(raw_version, (list, tuple)):
        major, minor, patch = (list(raw_version) + [None] * 3)[:3]
        version = PackMetadata.from_fields(major=major, minor=minor, patch=patch).version
    elif raw_version:
        version = parse_version(str(raw_version))
    else:
        version = metadata.version
    metadata = PackMetadata(
        name=(getattr(args, "name", None) or "").strip() or metadata.name,
        description=(getattr(args, "description", None) or "").strip() or metadata.description,
        version=version,
    )

    if getattr(args, "icon", None):
        icon = Path(args.icon).read_bytes()
    return tracks, metadata, icon


def run_build(args: argparse.Namespace) -> Path:
    tracks, metadata, icon = _collect_pipeline_inputs(args)
    result = build_pack(
        tracks,
        metadata,
        icon,
        use_default_icon=bool(getattr(args, "use_default_icon", True)),
        default_icon_url=getattr(args, "default_icon_url", None),
    )
    _print_assignments(result.assignments, result.dropped)
    out_dir = Path(getattr(args, "out_dir", None) or default_output_root()).resolve()
    return write_pack(result, out_dir)


def run_assign(args: argparse.Namespace) -> list[Assignment]:
    tracks, _metadata, _icon = _collect_pipeline_inputs(args)
    durations = probe_durations(tracks)
    assignments = assign_slots([TimedTrack(t, d) for t, d in zip(tracks, durations)])
    assigned = {id(a.track) for a in assignments}
    _print_assignments(assignments, [t for t in tracks if id(t) not in assigned])
    return assignments


def run_extract(args: argparse.Namespace) -> Path:
    source = Path(args.pack)
    if not source.is_file():
        raise DiscPackError(f"Pack not found: {source}")
    imported = read_pack(source.read_bytes())
    out_dir = ensure(Path(args.out_dir or (default_output_root() / source.stem)).resolve())
    for t in imported.tracks:
        (out_dir / t.name).write_bytes(t.data)
    if imported.icon:
        (out_dir / ICON_ENTRY).write_bytes(imported.icon)
    metadata = merge_metadata(PackMetadata(), imported)
    info = {
        "name": metadata.name,
        "description": metadata.description,
        "version": list(metadata.version),
        "tracks": [t.name for t in imported.tracks],
    }
    (out_dir / "pack.json").write_text(json.dumps(info, indent=2), encoding="utf-8")
    print(f"Extracted {len(imported.tracks)} track(s) to: {out_dir}")
    return out_dir


def build_pack_from_config(config: dict) -> Path:
    args = argparse.Namespace(**config)
    args.audio_dir = Path(args.audio_dir).resolve() if getattr(args, "audio_dir", None) else None
    args.tracks = [Path(p) for p in (getattr(args, "tracks", None) or [])]
    args.import_pack = Path(args.import_pack).resolve() if getattr(args, "import_pack", None) else None
    args.icon = Path(args.icon).resolve() if getattr(args, "icon", None) else None
    args.out_dir = Path(getattr(args, "out_dir", None) or default_output_root()).resolve()
    args.use_default_icon = bool(getattr(args, "use_default_icon", True))
    args.default_icon_url = getattr(args, "default_icon_url", None) or None
    return run_build(args)


def configure_logging(verbose: bool = False) -> None:
    level_name = (os.environ.get("SDB_LOG_LEVEL", "INFO") or "INFO").strip().upper()
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger().setLevel(level)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simple music-disc resource pack builder")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("tracks", nargs="*", type=Path, help=f"Extra {AUDIO_EXTENSION} files to include")
    common.add_argument("--audio-dir", type=Path, default=default_audio_root(), help=f"Folder containing {AUDIO_EXTENSION} files")
    common.add_argument("--import-pack", type=Path, help="Existing .mcpack to start from (tracks, manifest, icon)")
    common.add_argument("--name", help=f"Pack name (default: {DEFAULT_PACK_NAME})")
    common.add_argument("--description", help=f"Pack description (default: {DEFAULT_PACK_DESCRIPTION})")
    common.add_argument("--version", help="Pack version MAJOR.MINOR.PATCH, each 0..99 (default: 1.0.0)")

    b = sub.add_parser("build", parents=[common], help="Build a .mcpack")
    b.add_argument("--icon", type=Path, help="Pack icon image (any format Pillow reads)")
    b.add_argument("--out-dir", type=Path, default=default_output_root(), help="Output folder")
    b.add_argument("--default-icon-url", default=None, help="Where to download the default icon from")
    b.add_argument("--no-default-icon", dest="use_default_icon", action="store_false", help="Skip the default icon when no --icon is given")

    sub.add_parser("assign", parents=[common], help="Show which disc each track would replace")

    x = sub.add_parser("extract", help="Unpack an existing .mcpack into a folder")
    x.add_argument("pack", type=Path, help="Pack to extract")
    x.add_argument("--out-dir", type=Path, help="Target folder (default: OUTPUT/<pack name>)")

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "extract":
        run_extract(args)
        return 0

    if args.audio_dir is not None:
        args.audio_dir = args.audio_dir.resolve()
        if not args.audio_dir.exists() and not args.tracks and not args.import_pack:
            raise SystemExit(f"Audio folder not found: {args.audio_dir}")

    if args.command == "assign":
        run_assign(args)
        return 0

    out = run_build(args)
    print(f"Built pack at: {out}")
    return 0


def cli() -> None:
    try:
        code = main()
    except SystemExit:
        raise
    except Exception as e:
        print(f"ERROR: {e}")
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    cli()
