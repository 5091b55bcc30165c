"""
This package contains the core domain models of the Reel Exporter application.

The domain layer describes what an export is made of, independent of the
tools (Pillow, ffmpeg) that carry it out.

Modules:
    exceptions.py: The exception hierarchy, split into fatal conditions that
                   abort an export and recoverable ones that the pipeline
                   degrades around.
    models.py: Slides, recording formats, export stages and sessions, the
               encoded outputs passed between stages, and the cancellation
               token.
    manifest.py: Loading of YAML slideshow manifests into `Slide` lists.
"""
