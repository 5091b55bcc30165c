"""
Command-Line Interface (CLI) setup for the Reel Exporter.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior.
"""
import argparse
from typing import List, Optional

from .config.audio import MUSIC_TRACKS, NO_MUSIC
from .config.common import DOWNLOAD_DIR
from .config.video import DEFAULT_FPS, DEFAULT_QUALITY, MAX_SLIDE_DURATION, QUALITY_PRESETS


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the Reel Exporter.

    Values given on the command line override the ones in each manifest.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(description="Export photo slideshows to video files.")
    parser.add_argument(
        "manifests", nargs="*", help="Slideshow manifest files (YAML) to export, in order."
    )
    parser.add_argument(
        "--output-dir", type=str, default=str(DOWNLOAD_DIR), help="Directory the finished videos are saved to."
    )
    parser.add_argument(
        "--music", type=str, default=None,
        help=f"Background music: one of {', '.join(MUSIC_TRACKS)}, '{NO_MUSIC}', or a path to an audio file."
    )
    parser.add_argument(
        "--voice-recording", type=str, default=None,
        help="Audio file played once over the slideshow. Takes precedence over music."
    )
    parser.add_argument(
        "--slide-duration", type=float, default=None, help="Seconds each slide is shown."
    )
    parser.add_argument(
        "--fps", type=int, default=DEFAULT_FPS, help="Frame rate of the recording."
    )
    parser.add_argument(
        "--quality", type=str, default=DEFAULT_QUALITY, choices=list(QUALITY_PRESETS),
        help="Output resolution and bitrate preset."
    )
    parser.add_argument(
        "--title", type=str, default=None, help="Slideshow title, used for the output filename."
    )
    parser.add_argument(
        "--no-transcode", action="store_true",
        help="Keep the native recording even if it is not MP4."
    )
    parser.add_argument(
        "--list-music", action="store_true", help="List the music catalog and exit."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )

    args = parser.parse_args(argv)

    if not args.manifests and not args.list_music:
        parser.error("at least one manifest is required unless --list-music is given.")
    if args.fps <= 0:
        parser.error("--fps must be a positive integer.")
    if args.slide_duration is not None and not 0 < args.slide_duration <= MAX_SLIDE_DURATION:
        parser.error(f"--slide-duration must be greater than 0 and at most {MAX_SLIDE_DURATION:g}.")

    return args
