"""
This file marks the 'reel_export' directory as a Python package.

The package turns an ordered list of photo slides into a slideshow video.
Entry points live in `main.py` at the project root; the export itself is
driven by `reel_export.services.exporter.SlideshowExporter`.
"""
