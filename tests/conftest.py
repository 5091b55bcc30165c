"""Shared fakes and fixtures. Nothing here needs an ffmpeg binary or network access."""

from typing import Callable, List, Optional, Set

import pytest
from PIL import Image

from reel_export.domain.exceptions import RecordingFailedError, TranscodeError
from reel_export.domain.models import EncodedOutput, RecordedMedia, RecordingFormat
from reel_export.services.capture_stream import CaptureStream, CaptureStreamBuilder
from reel_export.services.exporter import SlideshowExporter
from reel_export.services.frame_renderer import ImageLoader
from reel_export.services.interfaces import RecorderState, StreamRecorder, Transcoder

MP4_FORMAT = RecordingFormat(
    mime_type="video/mp4;codecs=avc1,mp4a",
    container="mp4",
    extension="mp4",
    video_codec="libx264",
    audio_codec="aac",
)
WEBM_FORMAT = RecordingFormat(
    mime_type="video/webm;codecs=vp9,opus",
    container="webm",
    extension="webm",
    video_codec="libvpx-vp9",
    audio_codec="libopus",
)

FIXED_CLOCK = 1_700_000_000.5
FIXED_TIMESTAMP_MS = 1_700_000_000_500


class FakeLoader(ImageLoader):
    """Returns a small solid image for every source except those in `failing`."""

    def __init__(self, failing: Optional[Set[str]] = None, color=(200, 30, 30)):
        super().__init__()
        self.failing = failing or set()
        self.color = color
        self.requested: List[str] = []

    def load(self, src: str) -> Optional[Image.Image]:
        self.requested.append(src)
        if src in self.failing:
            return None
        return Image.new("RGB", (40, 30), self.color)


class RecordingRenderer:
    """Stands in for FrameRenderer and remembers what it was asked to draw."""

    def __init__(self, width: int, height: int, loader: ImageLoader):
        self.width = width
        self.height = height
        self.loader = loader
        self.items = []
        self.images = []
        self.canvas = None

    def create_canvas(self):
        self.canvas = Image.new("RGB", (4, 4))
        return self.canvas

    def render(self, item, image=None):
        self.items.append(item)
        self.images.append(image)
        return self.canvas


class FakeRecorder(StreamRecorder):
    """Counts frames instead of encoding them."""

    def __init__(
        self,
        stream: CaptureStream,
        video_bitrate: int,
        recording_format: RecordingFormat = MP4_FORMAT,
        on_write: Optional[Callable[["FakeRecorder"], None]] = None,
        fail_on_write: bool = False,
    ):
        self.stream = stream
        self.video_bitrate = video_bitrate
        self.fps = stream.fps
        self.recording_format = recording_format
        self.state = RecorderState.IDLE
        self.frame_count = 0
        self.holds: List[int] = []
        self.aborted = False
        self.on_write = on_write
        self.fail_on_write = fail_on_write

    def start(self):
        assert self.state is RecorderState.IDLE
        self.state = RecorderState.RECORDING

    def write_frame(self, frame, count=1):
        assert self.state is RecorderState.RECORDING
        if self.fail_on_write:
            raise RecordingFailedError("encoder went away")
        self.frame_count += count
        if self.on_write is not None:
            self.on_write(self)

    def hold(self, frame, seconds, token=None):
        written = super().hold(frame, seconds, token)
        self.holds.append(written)
        return written

    def stop(self) -> RecordedMedia:
        assert self.state is RecorderState.RECORDING
        self.state = RecorderState.STOPPED
        return RecordedMedia(
            data=b"native-" + self.recording_format.extension.encode(),
            format=self.recording_format,
            frame_count=self.frame_count,
            fps=self.fps,
        )

    def abort(self):
        self.aborted = True
        self.state = RecorderState.STOPPED


class FakeTranscoder(Transcoder):
    def __init__(self, fail: bool = False, steps=(0.25, 0.5, 1.0)):
        self.fail = fail
        self.steps = steps
        self.calls: List[RecordedMedia] = []

    def transcode(self, recording, on_progress=None):
        self.calls.append(recording)
        if self.fail:
            raise TranscodeError("engine crashed")
        for step in self.steps:
            if on_progress is not None:
                on_progress(step)
        return EncodedOutput(
            data=b"converted-mp4",
            mime_type="video/mp4",
            extension="mp4",
            duration_seconds=recording.duration_seconds,
        )


@pytest.fixture
def make_exporter(tmp_path):
    """
    Builds a `SlideshowExporter` wired to fakes.

    The created recorders and renderers are exposed as `exporter.recorders`
    and `exporter.renderers`.
    """

    def _make(
        recording_format: RecordingFormat = MP4_FORMAT,
        transcoder: Optional[Transcoder] = None,
        loader: Optional[ImageLoader] = None,
        renderer_factory=None,
        recorder_options: Optional[dict] = None,
        **kwargs,
    ) -> SlideshowExporter:
        recorders: List[FakeRecorder] = []
        renderers: List[RecordingRenderer] = []

        def recorder_factory(stream, video_bitrate):
            recorder = FakeRecorder(stream, video_bitrate, recording_format, **(recorder_options or {}))
            recorders.append(recorder)
            return recorder

        def default_renderer_factory(width, height, image_loader):
            renderer = RecordingRenderer(width, height, image_loader)
            renderers.append(renderer)
            return renderer

        options = dict(
            download_dir=tmp_path / "exports",
            quality="low",
            fps=10,
            slide_duration=1.0,
            image_loader=loader or FakeLoader(),
            renderer_factory=renderer_factory or default_renderer_factory,
            stream_builder=CaptureStreamBuilder(public_dir=tmp_path),
            recorder_factory=recorder_factory,
            transcoder=transcoder or FakeTranscoder(),
            clock=lambda: FIXED_CLOCK,
        )
        options.update(kwargs)
        exporter = SlideshowExporter(**options)
        exporter.recorders = recorders
        exporter.renderers = renderers
        return exporter

    return _make
