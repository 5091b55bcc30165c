"""
This module runs slideshow exports from the command line.

Each manifest is loaded, validated and exported in turn on a worker thread so
the main thread stays responsive to Ctrl-C, which cancels the running export.
Progress events are logged as they arrive, and the outcome counts are
logged at the end.
"""

import argparse
import concurrent.futures
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from ..config.audio import MUSIC_TRACKS, music_track_path
from ..config.common import (
    EXPORT_STATUS_CANCELLED,
    EXPORT_STATUS_COMPLETED,
    EXPORT_STATUS_FAILED,
    PUBLIC_DIR,
)
from ..config.video import DEFAULT_SLIDE_DURATION
from ..domain.exceptions import ManifestError
from ..domain.manifest import SlideshowManifest, load_manifest
from ..domain.models import ExportProgress, ExportResult, ExportStage
from ..services.exporter import SlideshowExporter
from ..services.progress import ProgressPublisher

# How long the main thread waits on the export before checking for Ctrl-C again.
_RESULT_POLL_SECONDS = 0.5


def list_music(public_dir: Path = PUBLIC_DIR) -> List[Tuple[str, Path, bool]]:
    """Returns (name, path, exists) for every catalog track and logs it."""
    tracks = []
    for name in MUSIC_TRACKS:
        path = music_track_path(name, public_dir)
        tracks.append((name, path, path.is_file()))
        logger.info(f"{name:<18} {'available' if path.is_file() else 'missing  '}  {path}")
    return tracks


class ProgressLogger:
    """Logs stage changes, and progress every `step` percent within a stage."""

    def __init__(self, step: int = 25):
        self.step = step
        self._stage: Optional[ExportStage] = None
        self._bucket = -1

    def __call__(self, event: ExportProgress):
        bucket = int(event.progress // self.step)
        if event.stage is not self._stage:
            self._stage = event.stage
            self._bucket = bucket
            logger.info(f"Stage: {event.stage.value} ({event.progress:.0f}%)")
        elif bucket > self._bucket:
            self._bucket = bucket
            logger.info(f"  {event.stage.value}: {event.progress:.0f}%")


class SlideshowPipeline:
    """
    Exports every manifest given on the command line, one after another.

    Runs are sequential because the FFmpeg engine is shared. Each export runs
    on a worker thread so that Ctrl-C in the main thread can cancel it
    cleanly instead of tearing it down mid-write.
    """

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.publisher = ProgressPublisher()
        self.publisher.subscribe(ProgressLogger())
        self.results: List[Tuple[Path, ExportResult]] = []
        self.interrupted = False

    def _build_exporter(self, manifest: SlideshowManifest) -> SlideshowExporter:
        slide_duration = self.args.slide_duration or manifest.slide_duration or DEFAULT_SLIDE_DURATION
        return SlideshowExporter(
            download_dir=Path(self.args.output_dir),
            quality=self.args.quality,
            fps=self.args.fps,
            slide_duration=slide_duration,
            transcode=not self.args.no_transcode,
            publisher=self.publisher,
        )

    def _run_export(self, exporter: SlideshowExporter, manifest: SlideshowManifest) -> ExportResult:
        voice_recording = Path(self.args.voice_recording) if self.args.voice_recording else manifest.voice_recording
        with concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="export") as pool:
            future = pool.submit(
                exporter.export,
                manifest.slides,
                title=self.args.title or manifest.title,
                music=self.args.music or manifest.music,
                voice_recording=voice_recording,
            )
            while True:
                try:
                    return future.result(timeout=_RESULT_POLL_SECONDS)
                except concurrent.futures.TimeoutError:
                    continue
                except KeyboardInterrupt:
                    logger.warning("Keyboard interrupt received. Cancelling the current export...")
                    self.interrupted = True
                    exporter.cancel()

    def process_manifest(self, manifest_path: Path) -> Optional[ExportResult]:
        try:
            manifest = load_manifest(manifest_path)
        except ManifestError as e:
            logger.error(f"Skipping {manifest_path}: {e}")
            return None

        try:
            exporter = self._build_exporter(manifest)
        except ValueError as e:
            logger.error(f"Skipping {manifest_path}: {e}")
            return None

        logger.info(f"Exporting {manifest_path.name} ({len(manifest.slides)} slide(s))")
        result = self._run_export(exporter, manifest)
        for warning in result.warnings:
            logger.warning(f"[{manifest_path.name}] {warning}")
        if result.status == EXPORT_STATUS_COMPLETED:
            logger.success(f"[{manifest_path.name}] Saved to {result.path}")
        else:
            logger.error(f"[{manifest_path.name}] {result.notice}")
        self.results.append((manifest_path, result))
        return result

    def run(self) -> bool:
        """
        Exports all manifests.

        Returns:
            True if every manifest was exported successfully.
        """
        manifests = [Path(m) for m in self.args.manifests]
        all_ok = True
        for i, manifest_path in enumerate(manifests, start=1):
            if self.interrupted:
                logger.warning(f"Skipping {len(manifests) - i + 1} remaining manifest(s) after interrupt.")
                all_ok = False
                break
            logger.debug(f"Manifest {i}/{len(manifests)}: {manifest_path}")
            result = self.process_manifest(manifest_path)
            if result is None or result.status != EXPORT_STATUS_COMPLETED:
                all_ok = False

        self._log_summary()
        return all_ok

    def _log_summary(self):
        counts = {EXPORT_STATUS_COMPLETED: 0, EXPORT_STATUS_FAILED: 0, EXPORT_STATUS_CANCELLED: 0}
        for _, result in self.results:
            counts[result.status] = counts.get(result.status, 0) + 1
        logger.info(
            f"Exports finished: {counts[EXPORT_STATUS_COMPLETED]} completed, "
            f"{counts[EXPORT_STATUS_FAILED]} failed, {counts[EXPORT_STATUS_CANCELLED]} cancelled."
        )
