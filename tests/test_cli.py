"""Tests for command-line parsing."""

import pytest

from reel_export.cli import get_args
from reel_export.config.video import DEFAULT_FPS, DEFAULT_QUALITY


class TestGetArgs:
    def test_defaults(self):
        args = get_args(["trip.yaml"])
        assert args.manifests == ["trip.yaml"]
        assert args.fps == DEFAULT_FPS
        assert args.quality == DEFAULT_QUALITY
        assert args.slide_duration is None
        assert args.no_transcode is False
        assert args.log_level == "INFO"

    def test_overrides(self):
        args = get_args(
            ["a.yaml", "b.yaml", "--quality", "low", "--fps", "24", "--slide-duration", "3.5",
             "--music", "soft-strings", "--title", "Trip", "--no-transcode"]
        )
        assert args.manifests == ["a.yaml", "b.yaml"]
        assert args.quality == "low"
        assert args.fps == 24
        assert args.slide_duration == 3.5
        assert args.music == "soft-strings"
        assert args.title == "Trip"
        assert args.no_transcode is True

    def test_list_music_needs_no_manifest(self):
        assert get_args(["--list-music"]).list_music is True

    @pytest.mark.parametrize(
        "argv",
        [
            [],
            ["trip.yaml", "--slide-duration", "0"],
            ["trip.yaml", "--fps", "0"],
            ["trip.yaml", "--quality", "ultra"],
        ],
    )
    def test_invalid_arguments_exit(self, argv):
        with pytest.raises(SystemExit):
            get_args(argv)
