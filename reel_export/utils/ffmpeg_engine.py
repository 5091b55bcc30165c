"""
This module manages the FFmpeg engine shared by all export runs.

Loading the engine means locating the executables, checking that they run, and
reading which encoders and muxers the build offers. That work is done once and
then reused: `EngineManager` hands out the loaded engine with get-or-create
semantics and counts how many holders currently use it, so it can be dropped
explicitly once nobody does.
"""
import shutil
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, FrozenSet, Iterator, Optional

from loguru import logger

from ..config.common import MODULE_PATH
from ..domain.exceptions import EngineLoadError
from ..domain.models import RecordingFormat
from .ffmpeg_utils import parse_codec_listing, run_cmd

VERSION_CHECK_TIMEOUT = 30  # seconds


def get_executable_path(name: str, module_path: Optional[Path] = MODULE_PATH) -> str:
    """
    Determines the executable to use for `name` ("ffmpeg" or "ffprobe").

    The directory from `config.user.yaml` (`paths.ffmpeg_dir`) wins. Otherwise
    the bare name is returned and resolved through the system PATH.
    """
    exe_name = f"{name}.exe" if sys.platform == "win32" else name
    if module_path and module_path.is_dir():
        configured_path = module_path / exe_name
        if configured_path.is_file():
            logger.debug(f"Using {name} from configured path: '{configured_path}'")
            return str(configured_path)
        logger.warning(f"`ffmpeg_dir` is configured, but '{exe_name}' was not found there. Falling back to system PATH.")
    return shutil.which(name) or name


@dataclass(frozen=True)
class FFmpegEngine:
    """A loaded FFmpeg build and what it can produce."""

    ffmpeg_path: str
    ffprobe_path: str
    version: str
    encoders: FrozenSet[str] = field(default_factory=frozenset)
    muxers: FrozenSet[str] = field(default_factory=frozenset)

    def supports(self, recording_format: RecordingFormat) -> bool:
        return (
            recording_format.container in self.muxers
            and recording_format.video_codec in self.encoders
            and recording_format.audio_codec in self.encoders
        )


def load_engine(module_path: Optional[Path] = MODULE_PATH) -> FFmpegEngine:
    """
    Locates and verifies FFmpeg, then reads its capability listings.

    Raises:
        EngineLoadError: If FFmpeg cannot be executed or reports an error.
    """
    ffmpeg_cmd = get_executable_path("ffmpeg", module_path)
    ffprobe_cmd = get_executable_path("ffprobe", module_path)

    result = run_cmd([ffmpeg_cmd, "-hide_banner", "-version"], timeout=VERSION_CHECK_TIMEOUT)
    if result is None or result.returncode != 0:
        raise EngineLoadError(
            "FFmpeg could not be executed. Install it or set `paths.ffmpeg_dir` in config.user.yaml."
        )
    version_line = (result.stdout.splitlines() or ["ffmpeg (unknown version)"])[0]

    listings = {}
    for listing in ("encoders", "muxers"):
        res = run_cmd([ffmpeg_cmd, "-hide_banner", f"-{listing}"], timeout=VERSION_CHECK_TIMEOUT)
        if res is None or res.returncode != 0:
            raise EngineLoadError(f"FFmpeg failed to list its {listing}.")
        listings[listing] = frozenset(parse_codec_listing(res.stdout))

    engine = FFmpegEngine(
        ffmpeg_path=ffmpeg_cmd,
        ffprobe_path=ffprobe_cmd,
        version=version_line,
        encoders=listings["encoders"],
        muxers=listings["muxers"],
    )
    logger.info(
        f"FFmpeg engine loaded: {version_line} "
        f"({len(engine.encoders)} encoders, {len(engine.muxers)} muxers)"
    )
    return engine


class EngineManager:
    """
    Owns the process-wide FFmpeg engine.

    `acquire()` loads the engine on first use and returns the same instance to
    every later caller; each call must be paired with `release()`. The engine
    stays loaded while the reference count is zero so later runs skip the
    load; `shutdown()` drops it when no holder remains.
    """

    def __init__(self, loader: Callable[[], FFmpegEngine] = load_engine):
        self._loader = loader
        self._engine: Optional[FFmpegEngine] = None
        self._ref_count = 0
        self._lock = threading.Lock()

    @property
    def ref_count(self) -> int:
        return self._ref_count

    @property
    def is_loaded(self) -> bool:
        return self._engine is not None

    def acquire(self) -> FFmpegEngine:
        with self._lock:
            if self._engine is None:
                logger.debug("Loading FFmpeg engine on first use.")
                self._engine = self._loader()
            self._ref_count += 1
            return self._engine

    def release(self):
        with self._lock:
            if self._ref_count == 0:
                logger.warning("EngineManager.release() called without a matching acquire().")
                return
            self._ref_count -= 1

    @contextmanager
    def lease(self) -> Iterator[FFmpegEngine]:
        engine = self.acquire()
        try:
            yield engine
        finally:
            self.release()

    def shutdown(self) -> bool:
        """Drops the loaded engine if nobody holds it. Returns True if it was dropped."""
        with self._lock:
            if self._ref_count > 0:
                logger.debug(f"Engine still held by {self._ref_count} user(s); not shutting down.")
                return False
            self._engine = None
            return True


engine_manager = EngineManager()


def verify_ffmpeg(manager: EngineManager = engine_manager) -> bool:
    """
    Startup check: loads the engine once and logs whether FFmpeg is usable.

    Returns:
        True if the engine loaded, False otherwise.
    """
    try:
        with manager.lease() as engine:
            logger.info(f"FFmpeg version check successful: {engine.version}")
        return True
    except EngineLoadError as e:
        logger.error(f"FFmpeg check failed: {e}")
        return False
