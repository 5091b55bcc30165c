"""
This module contains helper functions for formatting data into human-readable
strings and safe filenames.
"""

import re
from datetime import timedelta
from typing import Optional

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Returns "00:00:00" if the input is not a valid timedelta object.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = int(td_object.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string (e.g., B, KB, MB, GB, TB).

    For example, 1536 becomes "1.50 KB", and 2097152 becomes "2 MB".
    """
    if size_bytes < 0:
        size_bytes = 0

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    factor = 1024.0

    if size_bytes == 0:
        return "0 B"

    for unit in units:
        if size_bytes < factor:
            if unit == "B":
                return f"{size_bytes} {unit}"
            return f"{size_bytes:.2f} {unit}".replace(".00", "")
        size_bytes /= factor

    return f"{size_bytes:.2f} {units[-1]}".replace(".00", "")


def safe_title(title: Optional[str], default: str) -> str:
    """
    Makes a slideshow title usable as the first part of a filename.

    Path separators and characters that are invalid on common filesystems are
    replaced with underscores. Blank titles fall back to `default`.
    """
    if not title:
        return default
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", title).strip(" ._")
    return cleaned or default


def export_filename(title: Optional[str], timestamp_ms: int, extension: str, default_title: str) -> str:
    """Builds `<title-or-default>-<timestamp>.<ext>`."""
    return f"{safe_title(title, default_title)}-{timestamp_ms}.{extension.lstrip('.')}"
