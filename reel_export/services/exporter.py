"""
This module runs a complete slideshow export.

`SlideshowExporter.export()` drives the stages in strict order:

1. `recording`: every slide, then the closing card, is rendered onto the
   shared canvas and held for the per-slide duration while the recorder
   captures it.
2. `converting` (only when the native recording is not MP4): the recording is
   re-encoded by the transcoder. If that fails, the native recording is
   delivered instead.
3. `done`: the final bytes are written to the download directory.

Any exception during the run is caught here and reported with a single
generic notice. The session state is reset and the recorder released whatever
the outcome, so the next export starts from a clean slate.
"""

import os
import tempfile
import threading
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..config.common import (
    DEFAULT_EXPORT_TITLE,
    DOWNLOAD_DIR,
    ERROR_LOG_DIR_NAME,
    EXPORT_CANCELLED_NOTICE,
    EXPORT_FAILED_NOTICE,
    EXPORT_STATUS_CANCELLED,
    EXPORT_STATUS_COMPLETED,
    EXPORT_STATUS_FAILED,
)
from ..config.video import (
    DEFAULT_FPS,
    DEFAULT_QUALITY,
    DEFAULT_SLIDE_DURATION,
    IMAGE_PREFETCH_WORKERS,
    MAX_SLIDE_DURATION,
    QUALITY_PRESETS,
)
from ..domain.exceptions import (
    EngineLoadError,
    ExportCancelledException,
    ExportInProgressError,
    RecorderStartError,
    RecoverableExportException,
)
from ..domain.models import (
    CLOSING_CARD,
    CancellationToken,
    EncodedOutput,
    ExportResult,
    ExportSession,
    ExportStage,
    RecordedMedia,
    Slide,
)
from ..utils.ffmpeg_engine import engine_manager
from ..utils.format_utils import export_filename, format_timedelta, formatted_size
from .capture_stream import CaptureStream, CaptureStreamBuilder
from .frame_renderer import FrameRenderer, ImageLoader
from .interfaces import StreamRecorder, Transcoder
from .logging_service import ErrorLog, ExportLog
from .progress import ProgressPublisher
from .recorder import FFmpegStreamRecorder
from .transcoder import FFmpegTranscoder

RendererFactory = Callable[[int, int, ImageLoader], FrameRenderer]
RecorderFactory = Callable[[CaptureStream, int], StreamRecorder]


def ffmpeg_recorder_factory(stream: CaptureStream, video_bitrate: int) -> StreamRecorder:
    """Creates an `FFmpegStreamRecorder` that holds the shared engine until it is stopped or aborted."""
    try:
        engine = engine_manager.acquire()
    except EngineLoadError as e:
        raise RecorderStartError(f"No FFmpeg engine available for recording: {e}") from e
    try:
        return FFmpegStreamRecorder(stream, engine, video_bitrate, manager=engine_manager)
    except Exception:
        engine_manager.release()
        raise


class SlideshowExporter:
    """
    Exports slides to a video file, one run at a time.

    Args:
        download_dir: Where finished files are saved.
        quality: Key of `QUALITY_PRESETS`.
        fps: Frame rate of the recording.
        slide_duration: Seconds each slide and the closing card are held.
        transcode: If False, the native recording is always delivered.
        publisher: Receives stage/progress notifications. One is created if omitted.
        image_loader, renderer_factory, stream_builder, recorder_factory, transcoder:
            Collaborators. The defaults use Pillow, requests and FFmpeg.
        clock: Returns the current time in seconds, used for the filename timestamp.
    """

    def __init__(
        self,
        download_dir: Path = DOWNLOAD_DIR,
        quality: str = DEFAULT_QUALITY,
        fps: int = DEFAULT_FPS,
        slide_duration: float = DEFAULT_SLIDE_DURATION,
        transcode: bool = True,
        publisher: Optional[ProgressPublisher] = None,
        image_loader: Optional[ImageLoader] = None,
        renderer_factory: RendererFactory = FrameRenderer,
        stream_builder: Optional[CaptureStreamBuilder] = None,
        recorder_factory: RecorderFactory = ffmpeg_recorder_factory,
        transcoder: Optional[Transcoder] = None,
        clock: Callable[[], float] = time.time,
    ):
        if quality not in QUALITY_PRESETS:
            raise ValueError(f"Unknown quality '{quality}'. Choose from: {', '.join(QUALITY_PRESETS)}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        if not 0 < slide_duration <= MAX_SLIDE_DURATION:
            raise ValueError(f"slide_duration must be in (0, {MAX_SLIDE_DURATION}], got {slide_duration}")

        self.download_dir = Path(download_dir)
        self.quality = quality
        self.fps = fps
        self.slide_duration = slide_duration
        self.transcode_enabled = transcode
        self.publisher = publisher or ProgressPublisher()
        self.image_loader = image_loader or ImageLoader()
        self.renderer_factory = renderer_factory
        self.stream_builder = stream_builder or CaptureStreamBuilder()
        self.recorder_factory = recorder_factory
        self.transcoder = transcoder or FFmpegTranscoder()
        self.clock = clock

        self.session: Optional[ExportSession] = None
        self._recorder: Optional[StreamRecorder] = None
        self._token: Optional[CancellationToken] = None
        self._state_lock = threading.Lock()

    @property
    def is_exporting(self) -> bool:
        return self._token is not None

    def cancel(self) -> bool:
        """Requests cancellation of the in-flight export. Returns False if none is running."""
        with self._state_lock:
            if self._token is None:
                return False
            self._token.cancel()
        logger.info("Cancellation requested.")
        return True

    def _publish(self, stage: ExportStage, progress: float):
        event = self.publisher.publish(stage, progress)
        if self.session is not None:
            self.session.update(event.stage, event.progress)

    def export(
        self,
        slides: Sequence[Slide],
        title: Optional[str] = None,
        music: Optional[str] = None,
        voice_recording: Optional[Path] = None,
        token: Optional[CancellationToken] = None,
    ) -> ExportResult:
        """
        Records `slides` plus the closing card and saves the video.

        Never raises for a failed run: the outcome is in `ExportResult.status`.

        Raises:
            ExportInProgressError: If another export is running on this exporter.
        """
        with self._state_lock:
            if self._token is not None:
                raise ExportInProgressError("An export is already running.")
            self._token = token or CancellationToken()
            token = self._token

        slides = list(slides)
        warnings: List[str] = []
        started_at = datetime.now()
        self.publisher.reset()
        logger.info(f"Export started: '{title or DEFAULT_EXPORT_TITLE}', {len(slides)} slide(s) + closing card")

        try:
            result = self._run(slides, title, music, voice_recording, token, warnings)
        except ExportCancelledException:
            logger.warning("Export cancelled.")
            result = ExportResult(status=EXPORT_STATUS_CANCELLED, notice=EXPORT_CANCELLED_NOTICE, warnings=warnings)
        except Exception as e:
            tb = traceback.format_exc()
            logger.error(f"Export failed: {type(e).__name__}: {e}\n{tb}")
            self._write_error_log(
                f"Export failed at {started_at.isoformat(timespec='seconds')}",
                f"Title: {title or DEFAULT_EXPORT_TITLE}",
                f"Error: {type(e).__name__}: {e}",
                tb,
            )
            result = ExportResult(status=EXPORT_STATUS_FAILED, notice=EXPORT_FAILED_NOTICE, warnings=warnings)
        finally:
            if self._recorder is not None:
                self._recorder.abort()
                self._recorder = None
            if self.session is not None:
                self.session.reset()
            self.publisher.reset()
            with self._state_lock:
                self._token = None

        self._write_export_log(result, title, len(slides), datetime.now() - started_at)
        return result

    def _run(
        self,
        slides: List[Slide],
        title: Optional[str],
        music: Optional[str],
        voice_recording: Optional[Path],
        token: CancellationToken,
        warnings: List[str],
    ) -> ExportResult:
        preset = QUALITY_PRESETS[self.quality]
        width, height = preset["width"], preset["height"]

        stream, audio_warnings = self.stream_builder.build(width, height, self.fps, music, voice_recording)
        warnings.extend(audio_warnings)
        self.session = ExportSession(
            width=width,
            height=height,
            fps=self.fps,
            slide_duration=self.slide_duration,
            audio_track=stream.audio.path if stream.audio else None,
        )
        self._publish(ExportStage.RECORDING, 0)

        renderer = self.renderer_factory(width, height, self.image_loader)
        renderer.create_canvas()
        self._recorder = self.recorder_factory(stream, preset["video_bitrate"])
        self._recorder.start()

        recording = self._record(renderer, self._recorder, slides, token, warnings)
        self._recorder = None
        token.raise_if_cancelled()

        output = self._convert(recording)
        self._publish(ExportStage.DONE, 100)

        path = self._save(output, title)
        logger.success(
            f"Export saved: {path} ({formatted_size(len(output.data))}, {output.mime_type}, "
            f"{output.duration_seconds:.1f}s)"
        )
        return ExportResult(
            status=EXPORT_STATUS_COMPLETED,
            path=path,
            mime_type=output.mime_type,
            extension=output.extension,
            duration_seconds=output.duration_seconds,
            warnings=warnings,
        )

    def _record(
        self,
        renderer: FrameRenderer,
        recorder: StreamRecorder,
        slides: List[Slide],
        token: CancellationToken,
        warnings: List[str],
    ) -> RecordedMedia:
        """Renders and holds every slide in order, then the closing card, and stops the recorder."""
        items = slides + [CLOSING_CARD]
        # Images are fetched ahead in parallel but consumed strictly in slide order.
        pool = ThreadPoolExecutor(max_workers=IMAGE_PREFETCH_WORKERS, thread_name_prefix="slide-image")
        try:
            pending = [pool.submit(self.image_loader.load, slide.src) for slide in slides]
            for index, item in enumerate(items):
                token.raise_if_cancelled()
                if item is CLOSING_CARD:
                    frame = renderer.render(item)
                else:
                    image = pending[index].result()
                    if image is None:
                        warnings.append(f"Slide '{item.id}' could not be loaded and was replaced by a placeholder.")
                    frame = renderer.render(item, image)
                recorder.hold(frame, self.slide_duration, token)
                self._publish(ExportStage.RECORDING, (index + 1) / len(items) * 100)
                logger.debug(f"Recorded {index + 1}/{len(items)}: {item if item is CLOSING_CARD else item.id}")
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
        return recorder.stop()

    def _convert(self, recording: RecordedMedia) -> EncodedOutput:
        native = EncodedOutput.from_recording(recording)
        if not self.transcode_enabled or not self.transcoder.needs_transcode(recording):
            return native

        self._publish(ExportStage.CONVERTING, 0)
        try:
            return self.transcoder.transcode(
                recording, on_progress=lambda fraction: self._publish(ExportStage.CONVERTING, fraction * 100)
            )
        except RecoverableExportException as e:
            logger.warning(f"Conversion to MP4 failed ({e}). Delivering the {native.mime_type} recording instead.")
            return native

    def _save(self, output: EncodedOutput, title: Optional[str]) -> Path:
        """Writes the output next to its final name first, then renames it into place."""
        self.download_dir.mkdir(parents=True, exist_ok=True)
        timestamp_ms = int(self.clock() * 1000)
        target = self.download_dir / export_filename(title, timestamp_ms, output.extension, DEFAULT_EXPORT_TITLE)

        fd, temp_name = tempfile.mkstemp(prefix=f".{target.stem}.", suffix=".part", dir=self.download_dir)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(output.data)
            os.replace(temp_name, target)
        except OSError:
            Path(temp_name).unlink(missing_ok=True)
            raise
        return target

    def _write_error_log(self, *lines: str):
        try:
            ErrorLog(self.download_dir / ERROR_LOG_DIR_NAME).write(*lines)
        except OSError as e:
            logger.warning(f"Could not write the error log under {self.download_dir}: {e}")

    def _write_export_log(self, result: ExportResult, title: Optional[str], slide_count: int, elapsed: timedelta):
        entry = {
            "title": title or DEFAULT_EXPORT_TITLE,
            "status": result.status,
            "file": result.path.name if result.path else None,
            "mime_type": result.mime_type,
            "slides": slide_count,
            "duration_seconds": round(result.duration_seconds, 3),
            "quality": self.quality,
            "fps": self.fps,
            "elapsed": format_timedelta(elapsed),
            "warnings": list(result.warnings),
            "exported_at": datetime.now().isoformat(timespec="seconds"),
        }
        try:
            ExportLog(self.download_dir).write(entry)
        except OSError as e:
            logger.warning(f"Could not write the export log in {self.download_dir}: {e}")
