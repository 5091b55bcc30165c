"""
This module provides utility functions for running FFmpeg and related tools.

It includes a robust wrapper for running command-line processes, plus parsers
for the capability listings (`-encoders`, `-muxers`) and the machine-readable
`-progress` output that FFmpeg emits.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Set

from loguru import logger

from ..services.logging_service import ErrorLog


def _display_cmd(cmd_list: List[str]) -> str:
    try:
        if os.name == "nt":
            return subprocess.list2cmdline(cmd_list)
        return shlex.join(cmd_list)
    except Exception as e:
        logger.warning(f"Could not format command list for display: {e}. Using simple join.")
        return " ".join(map(str, cmd_list))


def run_cmd(
    cmd_list: List[str],
    error_log_dir: Optional[Path] = None,
    show_cmd: bool = False,
    timeout: Optional[float] = None,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes an external command safely and captures its output.

    This is a wrapper around `subprocess.run` that adds logging and turns
    launch failures into a `None` result instead of an exception.

    Args:
        cmd_list: The command to execute as a list of arguments.
        error_log_dir: If given, launch failures are also appended to an
                       `ErrorLog` in this directory.
        show_cmd: If True, the command is logged at DEBUG level before execution.
        timeout: Optional timeout in seconds.

    Returns:
        A `subprocess.CompletedProcess` on completion (whatever the return code),
        or `None` if the command could not be run at all.
    """
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    display_cmd_str = _display_cmd(cmd_list)
    if show_cmd:
        logger.debug(f"Executing: {display_cmd_str}")

    failure_reason = ""
    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
            timeout=timeout,
        )
        if result.stdout:
            logger.trace(f"Command stdout (truncated): {result.stdout[:500]}")
        if result.stderr and result.returncode != 0:
            logger.debug(f"Command stderr (rc={result.returncode}): {result.stderr}")
        return result
    except FileNotFoundError:
        failure_reason = "Command not found (FileNotFoundError)."
        logger.error(
            f"Command not found: '{cmd_list[0]}'. Ensure it's in your system's PATH or configured in config.user.yaml."
        )
    except subprocess.TimeoutExpired:
        failure_reason = f"Command timed out after {timeout}s."
        logger.error(f"Command timed out: {display_cmd_str}")
    except OSError as e:
        failure_reason = f"{type(e).__name__} - {e}"
        logger.error(f"Could not execute command {display_cmd_str}: {e}")

    if error_log_dir:
        ErrorLog(error_log_dir).write(f"Command: {display_cmd_str}", f"Error: {failure_reason}")
    return None


def parse_codec_listing(output: str) -> Set[str]:
    """
    Extracts names from the table printed by `ffmpeg -encoders` or `ffmpeg -muxers`.

    Rows look like ` V....D libx264   libx264 H.264 ...` (encoders) or
    `  E mp4   MP4 (MPEG-4 Part 14)` (muxers). Everything up to the `--` separator
    line is legend and is skipped.
    """
    names: Set[str] = set()
    in_table = False
    for line in output.splitlines():
        stripped = line.strip()
        if not in_table:
            if stripped.startswith("--"):
                in_table = True
            continue
        parts = stripped.split()
        if len(parts) < 2:
            continue
        # Muxer names may be comma separated aliases, e.g. "matroska,webm".
        for name in parts[1].split(","):
            names.add(name)
    return names


def parse_progress_block(lines: List[str]) -> Dict[str, str]:
    """Turns `key=value` lines from `-progress` output into a dictionary."""
    values: Dict[str, str] = {}
    for line in lines:
        key, sep, value = line.strip().partition("=")
        if sep:
            values[key] = value
    return values


def progress_out_time_seconds(values: Dict[str, str]) -> Optional[float]:
    """
    Reads the elapsed output time from a parsed `-progress` block.

    FFmpeg reports `out_time_us` and, for historical reasons, `out_time_ms`
    which is also in microseconds.
    """
    for key in ("out_time_us", "out_time_ms"):
        raw = values.get(key)
        if raw is None or raw == "N/A":
            continue
        try:
            return max(0.0, int(raw) / 1_000_000)
        except ValueError:
            continue
    return None
