"""
This package contains the export pipeline for the Reel Exporter application.

A pipeline turns command-line input into export runs: it reads slideshow
manifests, applies command-line overrides, runs one export per manifest and
reports the outcome.
"""
