"""Tests for SlideshowPipeline, wired to the fake exporter from conftest."""

from reel_export.cli import get_args
from reel_export.config.common import EXPORT_STATUS_COMPLETED
from reel_export.domain.manifest import load_manifest
from reel_export.domain.models import ExportProgress, ExportStage
from reel_export.pipeline.slideshow_pipeline import ProgressLogger, SlideshowPipeline, list_music


def write_manifest(path, slide_count=2, title="Trip"):
    lines = [f"title: {title}", "slides:"]
    for i in range(slide_count):
        lines += [f"  - id: s{i}", f"    src: photo-{i}.jpg"]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestSlideshowPipeline:
    def _pipeline(self, monkeypatch, make_exporter, argv):
        built = []

        def build_exporter(self, manifest):
            exporter = make_exporter(publisher=self.publisher)
            built.append((manifest, exporter))
            return exporter

        monkeypatch.setattr(SlideshowPipeline, "_build_exporter", build_exporter)
        return SlideshowPipeline(get_args(argv)), built

    def test_exports_each_manifest(self, tmp_path, monkeypatch, make_exporter):
        first = write_manifest(tmp_path / "first.yaml", 1, "First")
        second = write_manifest(tmp_path / "second.yaml", 3, "Second")
        pipeline, built = self._pipeline(monkeypatch, make_exporter, [str(first), str(second)])

        assert pipeline.run() is True
        assert [r.status for _, r in pipeline.results] == [EXPORT_STATUS_COMPLETED] * 2
        assert [len(m.slides) for m, _ in built] == [1, 3]
        assert pipeline.results[1][1].path.name.startswith("Second-")

    def test_command_line_title_overrides_manifest(self, tmp_path, monkeypatch, make_exporter):
        manifest = write_manifest(tmp_path / "m.yaml")
        pipeline, _ = self._pipeline(monkeypatch, make_exporter, [str(manifest), "--title", "Override"])
        pipeline.run()
        assert pipeline.results[0][1].path.name.startswith("Override-")

    def test_bad_manifest_is_skipped(self, tmp_path, monkeypatch, make_exporter):
        good = write_manifest(tmp_path / "good.yaml")
        pipeline, _ = self._pipeline(monkeypatch, make_exporter, [str(tmp_path / "missing.yaml"), str(good)])

        assert pipeline.run() is False
        assert len(pipeline.results) == 1
        assert pipeline.results[0][1].status == EXPORT_STATUS_COMPLETED

    def test_exporter_settings_from_manifest(self, tmp_path):
        manifest_path = tmp_path / "m.yaml"
        manifest_path.write_text("slide_duration: 2\nslides: []\n", encoding="utf-8")
        pipeline = SlideshowPipeline(get_args([str(manifest_path), "--quality", "medium", "--fps", "24"]))

        exporter = pipeline._build_exporter(load_manifest(manifest_path))
        assert exporter.slide_duration == 2.0
        assert exporter.quality == "medium"
        assert exporter.fps == 24
        assert exporter.publisher is pipeline.publisher


class TestListMusic:
    def test_reports_availability(self, tmp_path):
        (tmp_path / "audio").mkdir()
        (tmp_path / "audio" / "soft-strings.mp3").write_bytes(b"ID3")
        tracks = {name: exists for name, _, exists in list_music(tmp_path)}
        assert tracks == {"ambient-piano": False, "soft-strings": True, "gentle-acoustic": False}


class TestProgressLogger:
    def test_accepts_events(self):
        listener = ProgressLogger(step=50)
        listener(ExportProgress(ExportStage.RECORDING, 0))
        listener(ExportProgress(ExportStage.RECORDING, 60))
        listener(ExportProgress(ExportStage.DONE, 100))
        assert listener._stage is ExportStage.DONE
