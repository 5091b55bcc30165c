"""Tests for the reference-counted FFmpeg engine manager and engine loading."""

import subprocess

import pytest

from conftest import MP4_FORMAT, WEBM_FORMAT
from reel_export.domain.exceptions import EngineLoadError
from reel_export.utils import ffmpeg_engine
from reel_export.utils.ffmpeg_engine import EngineManager, FFmpegEngine, load_engine, verify_ffmpeg

ENCODERS_OUTPUT = """Encoders:
 V..... = Video
 A..... = Audio
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC (codec h264)
 V....D mpeg4                MPEG-4 part 2
 A....D aac                  AAC (Advanced Audio Coding)
"""

MUXERS_OUTPUT = """File formats:
 D. = Demuxing supported
 .E = Muxing supported
 --
  E matroska        Matroska
  E mp4             MP4 (MPEG-4 Part 14)
"""


def make_engine():
    return FFmpegEngine("ffmpeg", "ffprobe", "ffmpeg version test", frozenset({"libx264", "aac"}), frozenset({"mp4"}))


class TestEngineManager:
    def test_loads_once_and_counts_references(self):
        loads = []

        def loader():
            loads.append(1)
            return make_engine()

        manager = EngineManager(loader=loader)
        first = manager.acquire()
        second = manager.acquire()

        assert first is second
        assert len(loads) == 1
        assert manager.ref_count == 2

        manager.release()
        manager.release()
        assert manager.ref_count == 0
        assert manager.is_loaded

    def test_shutdown_only_when_idle(self):
        manager = EngineManager(loader=make_engine)
        manager.acquire()
        assert manager.shutdown() is False
        assert manager.is_loaded

        manager.release()
        assert manager.shutdown() is True
        assert not manager.is_loaded

    def test_lease_releases_on_error(self):
        manager = EngineManager(loader=make_engine)
        with pytest.raises(RuntimeError):
            with manager.lease():
                assert manager.ref_count == 1
                raise RuntimeError("boom")
        assert manager.ref_count == 0

    def test_unmatched_release_is_ignored(self):
        manager = EngineManager(loader=make_engine)
        manager.release()
        assert manager.ref_count == 0

    def test_load_failure_leaves_no_reference(self):
        def loader():
            raise EngineLoadError("missing")

        manager = EngineManager(loader=loader)
        with pytest.raises(EngineLoadError):
            manager.acquire()
        assert manager.ref_count == 0
        assert not manager.is_loaded

    def test_verify_ffmpeg(self):
        def loader():
            raise EngineLoadError("missing")

        assert verify_ffmpeg(EngineManager(loader=make_engine)) is True
        assert verify_ffmpeg(EngineManager(loader=loader)) is False


class TestFFmpegEngine:
    def test_supports_requires_muxer_and_both_encoders(self):
        engine = make_engine()
        assert engine.supports(MP4_FORMAT)
        assert not engine.supports(WEBM_FORMAT)


class TestLoadEngine:
    def test_reads_capabilities(self, monkeypatch):
        outputs = {"-version": "ffmpeg version 7.0 Copyright\nbuilt with gcc", "-encoders": ENCODERS_OUTPUT, "-muxers": MUXERS_OUTPUT}

        def fake_run_cmd(cmd, timeout=None, **kwargs):
            return subprocess.CompletedProcess(cmd, 0, stdout=outputs[cmd[-1]], stderr="")

        monkeypatch.setattr(ffmpeg_engine, "run_cmd", fake_run_cmd)
        engine = load_engine(module_path=None)

        assert engine.version == "ffmpeg version 7.0 Copyright"
        assert engine.encoders == {"libx264", "mpeg4", "aac"}
        assert engine.muxers == {"matroska", "mp4"}

    def test_missing_executable(self, monkeypatch):
        monkeypatch.setattr(ffmpeg_engine, "run_cmd", lambda cmd, timeout=None, **kwargs: None)
        with pytest.raises(EngineLoadError):
            load_engine(module_path=None)

    def test_configured_directory_wins(self, tmp_path, monkeypatch):
        monkeypatch.setattr(ffmpeg_engine.sys, "platform", "linux")
        exe = tmp_path / "ffmpeg"
        exe.write_text("")
        assert ffmpeg_engine.get_executable_path("ffmpeg", tmp_path) == str(exe)
