"""
Loading of slideshow manifests.

A manifest is a YAML file describing one slideshow:

    title: Summer at the lake
    music: ambient-piano        # optional, a catalog name or "none"
    voice_recording: intro.m4a  # optional, wins over music
    slide_duration: 5           # optional, seconds
    slides:
      - id: m1
        src: https://example.com/photos/1.jpg
        title: First swim
        date: July 2024
      - id: m2
        src: photos/2.jpg

Relative local paths (for slides and the voice recording) are resolved against
the directory containing the manifest.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import yaml
from loguru import logger

from .exceptions import ManifestError
from .models import Slide

_REMOTE_SCHEMES = ("http", "https", "file")


@dataclass
class SlideshowManifest:
    slides: List[Slide] = field(default_factory=list)
    title: Optional[str] = None
    music: Optional[str] = None
    voice_recording: Optional[Path] = None
    slide_duration: Optional[float] = None
    source_path: Optional[Path] = None


def _resolve_source(src: str, base_dir: Path) -> str:
    if urlparse(src).scheme in _REMOTE_SCHEMES:
        return src
    path = Path(src).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_slides(entries, base_dir: Path = Path(".")) -> List[Slide]:
    """
    Builds `Slide` objects from a list of dictionaries, preserving order.

    Raises:
        ManifestError: If an entry is not a mapping, lacks `src`, or repeats an id.
    """
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ManifestError("'slides' must be a list.")

    slides: List[Slide] = []
    seen_ids = set()
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ManifestError(f"Slide #{position} is not a mapping: {entry!r}")
        src = _optional_str(entry.get("src") or entry.get("url"))
        if not src:
            raise ManifestError(f"Slide #{position} has no 'src'.")
        slide_id = _optional_str(entry.get("id")) or str(position)
        if slide_id in seen_ids:
            raise ManifestError(f"Duplicate slide id '{slide_id}'.")
        seen_ids.add(slide_id)
        slides.append(
            Slide(
                id=slide_id,
                src=_resolve_source(src, base_dir),
                title=_optional_str(entry.get("title")),
                date=_optional_str(entry.get("date")),
                description=_optional_str(entry.get("description")),
            )
        )
    return slides


def load_manifest(path: Path) -> SlideshowManifest:
    """
    Reads and validates a manifest file.

    Args:
        path: Location of the YAML manifest.

    Returns:
        The parsed `SlideshowManifest`.

    Raises:
        ManifestError: If the file is missing, is not valid YAML, or has invalid entries.
    """
    path = path.resolve()
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in manifest {path}: {e}") from e

    if data is None:
        data = {}
    if isinstance(data, list):
        # A bare list is accepted as the slides of an untitled slideshow.
        data = {"slides": data}
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must be a mapping or a list of slides.")

    base_dir = path.parent
    slide_duration = data.get("slide_duration")
    if slide_duration is not None:
        try:
            slide_duration = float(slide_duration)
        except (TypeError, ValueError) as e:
            raise ManifestError(f"Invalid slide_duration {slide_duration!r} in {path}") from e
        if slide_duration <= 0:
            raise ManifestError(f"slide_duration must be positive in {path}")

    voice_recording = _optional_str(data.get("voice_recording"))
    manifest = SlideshowManifest(
        slides=parse_slides(data.get("slides"), base_dir),
        title=_optional_str(data.get("title")),
        music=_optional_str(data.get("music")),
        voice_recording=Path(_resolve_source(voice_recording, base_dir)) if voice_recording else None,
        slide_duration=slide_duration,
        source_path=path,
    )
    logger.debug(f"Loaded manifest {path.name}: {len(manifest.slides)} slide(s), title={manifest.title!r}")
    return manifest
