"""
This module defines the FFmpeg-backed stream recorder.

The recorder pipes raw RGB frames from the shared canvas into an FFmpeg
process that encodes them, together with the optional audio track, into a
temporary file. The output format is negotiated once from an ordered
preference list against what the loaded FFmpeg build supports. When nothing
on the list is available, a baseline format built only from FFmpeg's native
encoders is used.
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import ffmpeg
from loguru import logger
from PIL import Image

from ..config.video import (
    BASELINE_RECORDING_FORMAT,
    OUTPUT_PIXEL_FORMAT,
    RAW_PIXEL_FORMAT,
    RECORDING_FORMATS,
)
from ..domain.exceptions import InvalidRecorderStateError, RecorderStartError, RecordingFailedError
from ..domain.models import RecordedMedia, RecordingFormat
from ..utils.ffmpeg_engine import EngineManager, FFmpegEngine
from ..utils.format_utils import formatted_size
from .capture_stream import CaptureStream
from .interfaces import RecorderState, StreamRecorder


def default_format_preferences() -> List[RecordingFormat]:
    return [RecordingFormat.from_dict(entry) for entry in RECORDING_FORMATS]


def baseline_format() -> RecordingFormat:
    return RecordingFormat.from_dict(BASELINE_RECORDING_FORMAT)


def negotiate_format(
    is_supported: Callable[[RecordingFormat], bool],
    preferences: Sequence[RecordingFormat],
    baseline: RecordingFormat,
) -> RecordingFormat:
    """
    Picks the first format in `preferences` for which `is_supported` is true.

    Returns `baseline` when none is supported.
    """
    for candidate in preferences:
        if is_supported(candidate):
            logger.debug(f"Recording format selected: {candidate.mime_type}")
            return candidate
        logger.debug(f"Recording format not supported by this FFmpeg build: {candidate.mime_type}")
    logger.warning(f"No preferred recording format is supported. Falling back to {baseline.mime_type}.")
    return baseline


class FFmpegStreamRecorder(StreamRecorder):
    """
    Records a `CaptureStream` with an FFmpeg subprocess.

    Args:
        stream: The capture description (size, frame rate, optional audio).
        engine: The loaded FFmpeg engine.
        video_bitrate: Target video bitrate in bits per second.
        preferences: Ordered recording formats to negotiate.
        baseline: Format used when no preference is supported.
        manager: The `EngineManager` that `engine` was acquired from. The recorder
            keeps that reference until it is stopped or aborted, then releases it.
    """

    def __init__(
        self,
        stream: CaptureStream,
        engine: FFmpegEngine,
        video_bitrate: int,
        preferences: Optional[Sequence[RecordingFormat]] = None,
        baseline: Optional[RecordingFormat] = None,
        manager: Optional[EngineManager] = None,
    ):
        self.stream = stream
        self.engine = engine
        self.fps = stream.fps
        self.video_bitrate = video_bitrate
        self.recording_format = negotiate_format(
            engine.supports,
            preferences if preferences is not None else default_format_preferences(),
            baseline or baseline_format(),
        )
        self.state = RecorderState.IDLE
        self.frame_count = 0
        self._process: Optional[subprocess.Popen] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None
        self._output_path: Optional[Path] = None
        self._manager = manager

    def build_stream_spec(self, output_path: Path):
        """Builds the ffmpeg-python graph: rawvideo on stdin, optional audio, one output file."""
        fmt = self.recording_format
        video = ffmpeg.input(
            "pipe:",
            format="rawvideo",
            pix_fmt=RAW_PIXEL_FORMAT,
            s=f"{self.stream.width}x{self.stream.height}",
            framerate=self.fps,
        )
        streams = [video.video]
        output_kwargs = {
            "format": fmt.container,
            "vcodec": fmt.video_codec,
            "pix_fmt": OUTPUT_PIXEL_FORMAT,
            "video_bitrate": self.video_bitrate,
            "r": self.fps,
        }

        audio = self.stream.audio
        if audio is not None:
            if audio.loop:
                audio_stream = ffmpeg.input(str(audio.path), stream_loop=-1).audio
            else:
                # Pad with silence so a short voice track never cuts the video.
                audio_stream = ffmpeg.input(str(audio.path)).audio.filter("apad")
            streams.append(audio_stream)
            output_kwargs["acodec"] = fmt.audio_codec
            # The video length decides: looping or padded audio is cut at the last frame.
            output_kwargs["shortest"] = None

        return (
            ffmpeg.output(*streams, str(output_path), **output_kwargs)
            .global_args("-hide_banner", "-loglevel", "error")
            .overwrite_output()
        )

    def build_command(self, output_path: Path) -> List[str]:
        return self.build_stream_spec(output_path).compile(cmd=self.engine.ffmpeg_path)

    def start(self):
        if self.state is not RecorderState.IDLE:
            raise InvalidRecorderStateError(f"Cannot start a recorder in state '{self.state.value}'.")

        self._temp_dir = tempfile.TemporaryDirectory(prefix=".reel_record_")
        self._output_path = Path(self._temp_dir.name) / f"recording.{self.recording_format.extension}"
        spec = self.build_stream_spec(self._output_path)
        logger.debug(f"Recorder command: {' '.join(spec.compile(cmd=self.engine.ffmpeg_path))}")
        try:
            self._process = spec.run_async(cmd=self.engine.ffmpeg_path, pipe_stdin=True, pipe_stderr=True)
        except OSError as e:
            self._cleanup()
            raise RecorderStartError(f"Could not launch FFmpeg ({self.engine.ffmpeg_path}): {e}") from e

        self.state = RecorderState.RECORDING
        logger.info(
            f"Recording started: {self.stream.width}x{self.stream.height}@{self.fps}fps, "
            f"{self.recording_format.mime_type}, audio={'yes' if self.stream.has_audio else 'no'}"
        )

    def write_frame(self, frame: Image.Image, count: int = 1):
        if self.state is not RecorderState.RECORDING:
            raise InvalidRecorderStateError(f"Cannot write frames in state '{self.state.value}'.")
        if count <= 0:
            return

        if frame.size != (self.stream.width, self.stream.height):
            frame = frame.resize((self.stream.width, self.stream.height))
        if frame.mode != "RGB":
            frame = frame.convert("RGB")
        data = frame.tobytes()

        try:
            for _ in range(count):
                self._process.stdin.write(data)
        except (BrokenPipeError, OSError) as e:
            raise RecordingFailedError(f"FFmpeg stopped accepting frames: {self._read_stderr()}") from e
        self.frame_count += count

    def stop(self) -> RecordedMedia:
        if self.state is not RecorderState.RECORDING:
            raise InvalidRecorderStateError(f"Cannot stop a recorder in state '{self.state.value}'.")
        try:
            _, stderr = self._process.communicate()
            self.state = RecorderState.STOPPED
            if self._process.returncode != 0:
                message = stderr.decode("utf-8", errors="replace") if stderr else ""
                raise RecordingFailedError(f"FFmpeg exited with code {self._process.returncode}: {message.strip()}")
            if not self._output_path.is_file() or self._output_path.stat().st_size == 0:
                raise RecordingFailedError("FFmpeg finished but produced no output.")

            data = self._output_path.read_bytes()
            logger.info(
                f"Recording stopped: {self.frame_count} frames "
                f"({self.frame_count / self.fps:.1f}s), {formatted_size(len(data))}"
            )
            return RecordedMedia(data=data, format=self.recording_format, frame_count=self.frame_count, fps=self.fps)
        finally:
            self._cleanup()
            self._release_engine()

    def abort(self):
        if self._process is not None and self._process.poll() is None:
            logger.debug("Aborting in-flight recording.")
            self._process.kill()
            self._process.wait()
        if self.state is RecorderState.RECORDING:
            self.state = RecorderState.STOPPED
        self._cleanup()
        self._release_engine()

    def _read_stderr(self) -> str:
        if self._process is None or self._process.stderr is None:
            return ""
        try:
            self._process.wait(timeout=5)
            return self._process.stderr.read().decode("utf-8", errors="replace").strip()
        except (subprocess.TimeoutExpired, OSError, ValueError):
            return ""

    def _cleanup(self):
        if self._temp_dir is not None:
            self._temp_dir.cleanup()
            self._temp_dir = None

    def _release_engine(self):
        if self._manager is not None:
            self._manager.release()
            self._manager = None
