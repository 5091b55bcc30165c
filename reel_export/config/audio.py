"""
Configuration settings related to the background-music catalog.

Each selectable track is referenced by a static path under the public assets
directory. A missing file is not an error: the export simply proceeds without
music and the user is warned.
"""
from pathlib import Path

from .common import PUBLIC_DIR

# Relative location of the music files inside the public assets directory.
AUDIO_ASSETS_SUBDIR = Path("audio")

# The fixed catalog of selectable tracks: name -> path relative to PUBLIC_DIR.
MUSIC_TRACKS = {
    "ambient-piano": AUDIO_ASSETS_SUBDIR / "ambient-piano.mp3",
    "soft-strings": AUDIO_ASSETS_SUBDIR / "soft-strings.mp3",
    "gentle-acoustic": AUDIO_ASSETS_SUBDIR / "gentle-acoustic.mp3",
}

# The value that explicitly selects no music.
NO_MUSIC = "none"


def music_track_path(name: str, public_dir: Path = PUBLIC_DIR) -> Path:
    """Resolves a catalog track name to its file location. Raises KeyError for unknown names."""
    return public_dir / MUSIC_TRACKS[name]
