"""
Main entry point for the Reel Exporter application.

This script initializes logging, parses command-line arguments, checks that
FFmpeg is usable and runs the export pipeline over the given manifests.
"""

import sys

from loguru import logger

from reel_export.cli import get_args
from reel_export.config.common import LOGGER_FORMAT
from reel_export.pipeline.slideshow_pipeline import SlideshowPipeline, list_music
from reel_export.utils.ffmpeg_engine import engine_manager, verify_ffmpeg


# Configure the logger for initial setup.
# The level might be overridden later by command-line arguments.
logger.remove()
log_level = "DEBUG" if __debug__ else "INFO"
logger.add(sys.stderr, level=log_level, format=LOGGER_FORMAT)


def main() -> int:
    """
    Main function to start the export process.

    Returns:
        The process exit code: 0 if every export completed, 1 otherwise.
    """
    args = get_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    if args.list_music:
        list_music()
        return 0

    # Without FFmpeg nothing can be recorded.
    if not verify_ffmpeg():
        logger.error("FFmpeg is required. Install it or set `paths.ffmpeg_dir` in config.user.yaml.")
        return 1

    pipeline = SlideshowPipeline(args)
    try:
        all_ok = pipeline.run()
    finally:
        engine_manager.shutdown()

    if all_ok:
        logger.success("Reel Exporter finished.")
        return 0
    logger.warning("Reel Exporter finished with errors.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
