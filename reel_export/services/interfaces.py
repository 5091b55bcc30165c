"""
Capability interfaces between the exporter and the tools that do the work.

The exporter only talks to these base classes. The FFmpeg-backed
implementations live in `recorder.py` and `transcoder.py`; tests and other
environments can supply their own without touching the orchestration logic.
"""

from enum import Enum
from typing import Callable, Optional

from PIL import Image

from ..domain.models import CancellationToken, EncodedOutput, RecordedMedia, RecordingFormat

ProgressCallback = Callable[[float], None]


class RecorderState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class FrameSink:
    """Something that accepts composed frames."""

    def write_frame(self, frame: Image.Image, count: int = 1):
        """Appends `frame` to the output `count` times in a row."""
        raise NotImplementedError("Subclasses must implement write_frame.")


class StreamRecorder(FrameSink):
    """
    Records frames into an encoded video, one held frame per slide.

    State machine: `idle -> recording -> stopped`. Frames may only be written
    while recording, and `stop()` is only valid once.
    """

    fps: int
    state: RecorderState = RecorderState.IDLE
    recording_format: RecordingFormat
    frame_count: int = 0

    def start(self):
        raise NotImplementedError("Subclasses must implement start.")

    def stop(self) -> RecordedMedia:
        raise NotImplementedError("Subclasses must implement stop.")

    def abort(self):
        """Discards an unfinished recording. Safe to call in any state."""
        raise NotImplementedError("Subclasses must implement abort.")

    def frames_for(self, seconds: float) -> int:
        return max(1, round(seconds * self.fps))

    def hold(self, frame: Image.Image, seconds: float, token: Optional[CancellationToken] = None) -> int:
        """
        Keeps `frame` on screen for `seconds` of recorded time.

        Frames are written in one-second batches so that a cancellation is
        noticed within a second of recorded time.

        Returns:
            The number of frames written.
        """
        remaining = self.frames_for(seconds)
        written = 0
        while remaining > 0:
            if token is not None:
                token.raise_if_cancelled()
            batch = min(remaining, self.fps)
            self.write_frame(frame, batch)
            remaining -= batch
            written += batch
        return written


class Transcoder:
    """Re-encodes a native recording into the universally playable MP4 target."""

    def needs_transcode(self, recording: RecordedMedia) -> bool:
        return not recording.format.is_mp4

    def transcode(self, recording: RecordedMedia, on_progress: Optional[ProgressCallback] = None) -> EncodedOutput:
        """
        Args:
            recording: The recorder's native output.
            on_progress: Called with fractional progress in [0, 1].

        Raises:
            TranscodeError, EngineLoadError: On any failure.
        """
        raise NotImplementedError("Subclasses must implement transcode.")
