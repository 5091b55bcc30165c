"""
Configuration Package for the Reel Exporter.

This package centralizes the static configuration of the application so that
export parameters can be adjusted without touching the pipeline code.

This package includes settings for:
- Common application settings like logging formats, download locations and
  user-facing notices.
- Video export parameters: quality presets, frame rate, per-slide duration,
  the recording format preference list and the MP4 transcode profile.
- The catalog of selectable background-music tracks.
- User-overridable paths loaded from `config.user.yaml`.
"""
