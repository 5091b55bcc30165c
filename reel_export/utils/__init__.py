"""
Utilities Package for the Reel Exporter Application.

This package contains helper modules that support the export pipeline without
belonging to any single stage of it.

Modules:
    - ffmpeg_utils.py: Running external commands and parsing FFmpeg's
      capability listings and progress output.
    - ffmpeg_engine.py: Locating, verifying and sharing the FFmpeg engine
      across export runs.
    - format_utils.py: Human-readable sizes and durations, and safe download
      filenames.
"""
