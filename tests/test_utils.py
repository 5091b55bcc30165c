"""Tests for formatting helpers and ffmpeg output parsers."""

from datetime import timedelta

from reel_export.utils.ffmpeg_utils import parse_codec_listing, parse_progress_block, progress_out_time_seconds
from reel_export.utils.format_utils import export_filename, format_timedelta, formatted_size, safe_title


class TestFormatUtils:
    def test_format_timedelta(self):
        assert format_timedelta(timedelta(hours=1, minutes=2, seconds=3)) == "01:02:03"
        assert format_timedelta("nope") == "00:00:00"

    def test_formatted_size(self):
        assert formatted_size(0) == "0 B"
        assert formatted_size(512) == "512 B"
        assert formatted_size(1536) == "1.50 KB"
        assert formatted_size(2 * 1024 * 1024) == "2 MB"

    def test_safe_title(self):
        assert safe_title("Summer / Lake", "slideshow") == "Summer _ Lake"
        assert safe_title("", "slideshow") == "slideshow"
        assert safe_title(None, "slideshow") == "slideshow"
        assert safe_title("...", "slideshow") == "slideshow"

    def test_export_filename(self):
        assert export_filename("Trip", 123, "mp4", "slideshow") == "Trip-123.mp4"
        assert export_filename(None, 123, ".webm", "slideshow") == "slideshow-123.webm"


class TestFFmpegParsers:
    def test_codec_listing_splits_aliases(self):
        output = "File formats:\n D. = Demuxing\n --\n  E matroska,webm   Matroska\n  E mp4   MP4\n"
        assert parse_codec_listing(output) == {"matroska", "webm", "mp4"}

    def test_codec_listing_without_table(self):
        assert parse_codec_listing("garbage") == set()

    def test_progress_block(self):
        values = parse_progress_block(["frame=5", "out_time_us=2500000", "progress=continue", "junk"])
        assert values == {"frame": "5", "out_time_us": "2500000", "progress": "continue"}

    def test_out_time(self):
        assert progress_out_time_seconds({"out_time_us": "2500000"}) == 2.5
        assert progress_out_time_seconds({"out_time_us": "N/A", "out_time_ms": "1000000"}) == 1.0
        assert progress_out_time_seconds({}) is None
