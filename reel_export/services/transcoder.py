"""
This module converts native recordings into the universally playable MP4
target.

The conversion runs on the shared FFmpeg engine obtained from the engine
manager. The recording is written into a private temporary directory, encoded
with a fixed H.264/AAC profile with the `moov` atom moved to the front, read
back and cleaned up. FFmpeg's `-progress` output is turned into fractional
progress for the caller.
"""

import tempfile
from pathlib import Path
from typing import Optional

import ffmpeg
from loguru import logger

from ..config.video import (
    MP4_EXTENSION,
    MP4_MIME_TYPE,
    OUTPUT_PIXEL_FORMAT,
    TRANSCODE_AUDIO_BITRATE,
    TRANSCODE_AUDIO_CODEC,
    TRANSCODE_CRF,
    TRANSCODE_MOVFLAGS,
    TRANSCODE_PRESET,
    TRANSCODE_VIDEO_CODEC,
)
from ..domain.exceptions import TranscodeError
from ..domain.models import EncodedOutput, RecordedMedia
from ..utils.ffmpeg_engine import EngineManager, FFmpegEngine, engine_manager
from ..utils.ffmpeg_utils import parse_progress_block, progress_out_time_seconds
from ..utils.format_utils import formatted_size
from .interfaces import ProgressCallback, Transcoder


class FFmpegTranscoder(Transcoder):
    """Re-encodes recordings to MP4 using the managed FFmpeg engine."""

    def __init__(self, manager: EngineManager = engine_manager):
        self.manager = manager

    @staticmethod
    def build_stream_spec(input_path: Path, output_path: Path):
        return (
            ffmpeg.input(str(input_path))
            .output(
                str(output_path),
                vcodec=TRANSCODE_VIDEO_CODEC,
                crf=TRANSCODE_CRF,
                preset=TRANSCODE_PRESET,
                pix_fmt=OUTPUT_PIXEL_FORMAT,
                acodec=TRANSCODE_AUDIO_CODEC,
                audio_bitrate=TRANSCODE_AUDIO_BITRATE,
                movflags=TRANSCODE_MOVFLAGS,
            )
            .global_args("-hide_banner", "-loglevel", "error", "-nostats", "-progress", "pipe:1")
            .overwrite_output()
        )

    @staticmethod
    def _probe_duration(input_path: Path, engine: FFmpegEngine) -> float:
        try:
            probe = ffmpeg.probe(str(input_path), cmd=engine.ffprobe_path)
            return float(probe.get("format", {}).get("duration", 0.0))
        except (ffmpeg.Error, OSError, ValueError) as e:
            logger.debug(f"Could not probe duration of {input_path.name}: {e}")
            return 0.0

    @staticmethod
    def _follow_progress(process, duration: float, on_progress: Optional[ProgressCallback]):
        """Reads `-progress` blocks from stdout until FFmpeg closes it."""
        block = []
        for raw_line in process.stdout:
            line = raw_line.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            block.append(line)
            if not line.startswith("progress="):
                continue
            values = parse_progress_block(block)
            block = []
            if on_progress is None:
                continue
            if values.get("progress") == "end":
                on_progress(1.0)
                continue
            elapsed = progress_out_time_seconds(values)
            if elapsed is not None and duration > 0:
                on_progress(min(1.0, elapsed / duration))

    def transcode(self, recording: RecordedMedia, on_progress: Optional[ProgressCallback] = None) -> EncodedOutput:
        logger.info(
            f"Converting {recording.format.base_mime_type} ({formatted_size(len(recording.data))}) to {MP4_MIME_TYPE}"
        )
        try:
            with self.manager.lease() as engine:
                with tempfile.TemporaryDirectory(prefix=".reel_transcode_") as temp_dir_str:
                    temp_dir = Path(temp_dir_str)
                    input_path = temp_dir / f"input.{recording.format.extension}"
                    output_path = temp_dir / f"output.{MP4_EXTENSION}"
                    input_path.write_bytes(recording.data)

                    duration = recording.duration_seconds or self._probe_duration(input_path, engine)
                    spec = self.build_stream_spec(input_path, output_path)
                    process = spec.run_async(cmd=engine.ffmpeg_path, pipe_stdout=True, pipe_stderr=True)
                    self._follow_progress(process, duration, on_progress)
                    _, stderr = process.communicate()

                    if process.returncode != 0:
                        message = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
                        raise TranscodeError(f"FFmpeg exited with code {process.returncode}: {message}")
                    if not output_path.is_file() or output_path.stat().st_size == 0:
                        raise TranscodeError("FFmpeg finished but produced no MP4 output.")
                    data = output_path.read_bytes()
        except OSError as e:
            raise TranscodeError(f"Transcoding failed: {e}") from e

        logger.info(f"Conversion finished: {formatted_size(len(data))} {MP4_MIME_TYPE}")
        return EncodedOutput(
            data=data,
            mime_type=MP4_MIME_TYPE,
            extension=MP4_EXTENSION,
            duration_seconds=recording.duration_seconds,
        )
