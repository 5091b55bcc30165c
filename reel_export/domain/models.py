"""
Defines the data models that flow through the export pipeline.

Slides are immutable inputs supplied by the caller. An `ExportSession` holds
the transient state of a single run and is reset when the run ends, whatever
the outcome. `RecordedMedia` and `EncodedOutput` carry the encoded bytes
between the recorder, the transcoder and the exporter.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .exceptions import ExportCancelledException


@dataclass(frozen=True)
class Slide:
    """
    One photo slide of a slideshow.

    Attributes:
        id: Identifier of the slide, unique within a slideshow.
        src: The image source. Either an http(s) URL, a `file://` URL or a local path.
        title: Optional caption title.
        date: Optional free-form date string shown under the title.
        description: Optional longer caption text.
    """

    id: str
    src: str
    title: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None

    @property
    def has_caption(self) -> bool:
        return bool((self.title or "").strip() or (self.date or "").strip())


class _ClosingCard:
    """Marker for the branded card rendered after the last slide."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "CLOSING_CARD"


CLOSING_CARD = _ClosingCard()


@dataclass(frozen=True)
class RecordingFormat:
    """
    A container/codec combination the recorder can produce.

    Attributes:
        mime_type: The MIME type reported for the output, e.g. "video/webm;codecs=vp9,opus".
        container: The ffmpeg muxer name, e.g. "mp4", "webm", "matroska".
        extension: File extension without the dot.
        video_codec: The ffmpeg video encoder name.
        audio_codec: The ffmpeg audio encoder name.
    """

    mime_type: str
    container: str
    extension: str
    video_codec: str
    audio_codec: str

    @classmethod
    def from_dict(cls, data: dict) -> "RecordingFormat":
        return cls(
            mime_type=str(data["mime_type"]),
            container=str(data["container"]),
            extension=str(data["extension"]).lstrip("."),
            video_codec=str(data["video_codec"]),
            audio_codec=str(data["audio_codec"]),
        )

    @property
    def base_mime_type(self) -> str:
        """The MIME type without codec parameters."""
        return self.mime_type.split(";", 1)[0].strip()

    @property
    def is_mp4(self) -> bool:
        return self.base_mime_type == "video/mp4"


class ExportStage(Enum):
    RECORDING = "recording"
    CONVERTING = "converting"
    DONE = "done"

    @property
    def order(self) -> int:
        return _STAGE_ORDER[self]


_STAGE_ORDER = {
    ExportStage.RECORDING: 0,
    ExportStage.CONVERTING: 1,
    ExportStage.DONE: 2,
}


@dataclass(frozen=True)
class ExportProgress:
    """A single progress notification: the current stage and a 0-100 percentage."""

    stage: ExportStage
    progress: float


@dataclass
class ExportSession:
    """
    Transient state for one export run.

    Created when an export starts and reset when it completes, fails or is
    cancelled. After `reset()` a session looks exactly like a fresh one as far
    as stage and progress are concerned.
    """

    width: int
    height: int
    fps: int
    slide_duration: float
    audio_track: Optional[Path] = None
    stage: Optional[ExportStage] = None
    progress: float = 0.0

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def frames_per_slide(self) -> int:
        return max(1, round(self.slide_duration * self.fps))

    def update(self, stage: ExportStage, progress: float):
        self.stage = stage
        self.progress = progress

    def reset(self):
        self.stage = None
        self.progress = 0.0


@dataclass(frozen=True)
class RecordedMedia:
    """The recorder's native output."""

    data: bytes
    format: RecordingFormat
    frame_count: int
    fps: int

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.fps if self.fps else 0.0


@dataclass(frozen=True)
class EncodedOutput:
    """The final bytes handed to the download step."""

    data: bytes
    mime_type: str
    extension: str
    duration_seconds: float = 0.0

    @classmethod
    def from_recording(cls, recording: RecordedMedia) -> "EncodedOutput":
        return cls(
            data=recording.data,
            mime_type=recording.format.base_mime_type,
            extension=recording.format.extension,
            duration_seconds=recording.duration_seconds,
        )


@dataclass
class ExportResult:
    """
    What the caller learns about a finished export run.

    `notice` is the only text meant for the end user. On failure it is always
    the generic notice; technical detail goes to the logs.
    """

    status: str
    path: Optional[Path] = None
    mime_type: Optional[str] = None
    extension: Optional[str] = None
    duration_seconds: float = 0.0
    notice: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class CancellationToken:
    """
    A thread-safe flag threaded through the render-hold-record loop.

    Any thread may call `cancel()`. The export run checks the token between
    slides and between held frames, and unwinds with
    `ExportCancelledException` once it is set.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ExportCancelledException("Export was cancelled.")
