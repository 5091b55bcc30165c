"""
This module describes what the recorder captures: the canvas as a fixed-rate
video stream, plus an optional audio track.

A voice recording takes precedence over background music. Music loops for as
long as the video runs; a voice recording plays once. If the chosen audio file
is missing or unreadable, the capture falls back to video only and the user is
warned. Audio problems never abort an export.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import ffmpeg
from loguru import logger

from ..config.audio import MUSIC_TRACKS, NO_MUSIC, music_track_path
from ..config.common import PUBLIC_DIR
from ..utils.ffmpeg_engine import get_executable_path

AUDIO_KIND_MUSIC = "music"
AUDIO_KIND_VOICE = "voice"


@dataclass(frozen=True)
class AudioSource:
    path: Path
    kind: str
    loop: bool


@dataclass(frozen=True)
class CaptureStream:
    width: int
    height: int
    fps: int
    audio: Optional[AudioSource] = None

    @property
    def has_audio(self) -> bool:
        return self.audio is not None


def probe_audio(path: Path) -> dict:
    """Probes `path` with ffprobe. Raises ffmpeg.Error or OSError on failure."""
    return ffmpeg.probe(str(path), cmd=get_executable_path("ffprobe"))


class CaptureStreamBuilder:
    """
    Turns the user's audio choice into a `CaptureStream`.

    Args:
        public_dir: Root of the public assets holding the music catalog.
        prober: Callable returning ffprobe metadata for a file.
    """

    def __init__(self, public_dir: Path = PUBLIC_DIR, prober: Callable[[Path], dict] = probe_audio):
        self.public_dir = public_dir
        self.prober = prober

    def _music_path(self, music: str, warnings: List[str]) -> Optional[Path]:
        if music in MUSIC_TRACKS:
            return music_track_path(music, self.public_dir)
        candidate = Path(music).expanduser()
        if candidate.suffix:
            return candidate
        warnings.append(f"Unknown music track '{music}'. Exporting without music.")
        logger.warning(warnings[-1])
        return None

    def _select_audio(self, music: Optional[str], voice_recording: Optional[Path], warnings: List[str]) -> Optional[AudioSource]:
        if voice_recording:
            return AudioSource(path=Path(voice_recording), kind=AUDIO_KIND_VOICE, loop=False)
        if music and music != NO_MUSIC:
            path = self._music_path(music, warnings)
            if path is not None:
                return AudioSource(path=path, kind=AUDIO_KIND_MUSIC, loop=True)
        return None

    def _verify_audio(self, source: AudioSource, warnings: List[str]) -> bool:
        if not source.path.is_file():
            warnings.append(f"Audio file '{source.path}' was not found. Exporting without {source.kind}.")
            logger.warning(warnings[-1])
            return False
        try:
            probe = self.prober(source.path)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            warnings.append(f"Audio file '{source.path.name}' could not be read. Exporting without {source.kind}.")
            logger.warning(f"{warnings[-1]} ffprobe: {stderr}")
            return False
        except (OSError, ValueError) as e:
            warnings.append(f"Audio file '{source.path.name}' could not be probed. Exporting without {source.kind}.")
            logger.warning(f"{warnings[-1]} Error: {e}")
            return False

        streams = probe.get("streams", []) if isinstance(probe, dict) else []
        if not any(s.get("codec_type") == "audio" for s in streams):
            warnings.append(f"'{source.path.name}' has no audio stream. Exporting without {source.kind}.")
            logger.warning(warnings[-1])
            return False
        return True

    def build(
        self,
        width: int,
        height: int,
        fps: int,
        music: Optional[str] = None,
        voice_recording: Optional[Path] = None,
    ) -> Tuple[CaptureStream, List[str]]:
        """
        Returns:
            The capture stream and the list of user-facing warnings raised while
            attaching audio.
        """
        warnings: List[str] = []
        audio = self._select_audio(music, voice_recording, warnings)
        if audio is not None and not self._verify_audio(audio, warnings):
            audio = None
        if audio is not None:
            logger.debug(f"Capturing {width}x{height}@{fps} with {audio.kind} from {audio.path}")
        else:
            logger.debug(f"Capturing {width}x{height}@{fps} without audio")
        return CaptureStream(width=width, height=height, fps=fps, audio=audio), warnings
