"""Tests for CaptureStreamBuilder audio selection and fallbacks."""

import ffmpeg

from reel_export.services.capture_stream import CaptureStreamBuilder

AUDIO_PROBE = {"streams": [{"codec_type": "audio", "codec_name": "mp3"}]}


def make_catalog(tmp_path, *names):
    audio_dir = tmp_path / "audio"
    audio_dir.mkdir(exist_ok=True)
    for name in names:
        (audio_dir / f"{name}.mp3").write_bytes(b"ID3")
    return tmp_path


class TestCaptureStreamBuilder:
    def test_video_only_without_audio_choice(self, tmp_path):
        stream, warnings = CaptureStreamBuilder(public_dir=tmp_path).build(640, 360, 30)
        assert stream.audio is None
        assert not stream.has_audio
        assert (stream.width, stream.height, stream.fps) == (640, 360, 30)
        assert warnings == []

    def test_catalog_music_loops(self, tmp_path):
        public_dir = make_catalog(tmp_path, "ambient-piano")
        builder = CaptureStreamBuilder(public_dir=public_dir, prober=lambda path: AUDIO_PROBE)
        stream, warnings = builder.build(640, 360, 30, music="ambient-piano")

        assert stream.audio.path == public_dir / "audio" / "ambient-piano.mp3"
        assert stream.audio.loop is True
        assert stream.audio.kind == "music"
        assert warnings == []

    def test_voice_recording_wins_over_music(self, tmp_path):
        public_dir = make_catalog(tmp_path, "soft-strings")
        voice = tmp_path / "voice.m4a"
        voice.write_bytes(b"voice")
        builder = CaptureStreamBuilder(public_dir=public_dir, prober=lambda path: AUDIO_PROBE)

        stream, _ = builder.build(640, 360, 30, music="soft-strings", voice_recording=voice)

        assert stream.audio.path == voice
        assert stream.audio.loop is False
        assert stream.audio.kind == "voice"

    def test_none_means_no_music(self, tmp_path):
        stream, warnings = CaptureStreamBuilder(public_dir=tmp_path).build(640, 360, 30, music="none")
        assert stream.audio is None
        assert warnings == []

    def test_missing_track_falls_back_to_video_only(self, tmp_path):
        stream, warnings = CaptureStreamBuilder(public_dir=tmp_path).build(640, 360, 30, music="gentle-acoustic")
        assert stream.audio is None
        assert len(warnings) == 1
        assert "not found" in warnings[0]

    def test_unknown_track_name(self, tmp_path):
        stream, warnings = CaptureStreamBuilder(public_dir=tmp_path).build(640, 360, 30, music="heavy-metal")
        assert stream.audio is None
        assert "heavy-metal" in warnings[0]

    def test_unreadable_audio(self, tmp_path):
        public_dir = make_catalog(tmp_path, "ambient-piano")

        def failing_probe(path):
            raise ffmpeg.Error("ffprobe", b"", b"Invalid data found when processing input")

        builder = CaptureStreamBuilder(public_dir=public_dir, prober=failing_probe)
        stream, warnings = builder.build(640, 360, 30, music="ambient-piano")
        assert stream.audio is None
        assert "could not be read" in warnings[0]

    def test_file_without_audio_stream(self, tmp_path):
        public_dir = make_catalog(tmp_path, "ambient-piano")
        builder = CaptureStreamBuilder(public_dir=public_dir, prober=lambda path: {"streams": [{"codec_type": "video"}]})
        stream, warnings = builder.build(640, 360, 30, music="ambient-piano")
        assert stream.audio is None
        assert "no audio stream" in warnings[0]
