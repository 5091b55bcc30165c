"""
Common configuration settings used throughout the application.

This module contains globally shared settings: logging format, download
location, log file names and the user-facing failure notice. It also handles
loading of user-specific configuration from an external YAML file, allowing
paths and the recording format list to be customized without modifying the
source code.
"""
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Configuration ---
# This block loads user-specific settings from a 'config.user.yaml' file located
# at the project root.

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"

# The directory containing the FFmpeg and ffprobe executables. If None, the
# executables are expected to be on the system PATH.
MODULE_PATH: Path | None = None

# The public assets directory that holds the music catalog (`audio/*.mp3`).
PUBLIC_DIR: Path = PROJECT_ROOT / "public"

# Where finished exports are "downloaded" to.
DOWNLOAD_DIR: Path = Path.cwd() / "exports"

# Raw `recording.formats` entries from the user config. Parsed in config.video.
USER_RECORDING_FORMATS: list | None = None

if USER_CONFIG_PATH.is_file():
    try:
        with USER_CONFIG_PATH.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
        paths_config = user_config.get("paths") or {}
        if paths_config.get("ffmpeg_dir"):
            MODULE_PATH = Path(paths_config["ffmpeg_dir"])
        if paths_config.get("public_dir"):
            PUBLIC_DIR = Path(paths_config["public_dir"])
        if paths_config.get("download_dir"):
            DOWNLOAD_DIR = Path(paths_config["download_dir"])
        recording_config = user_config.get("recording") or {}
        if recording_config.get("formats"):
            USER_RECORDING_FORMATS = list(recording_config["formats"])
    except Exception as e:
        logger.warning(f"Could not load or parse '{USER_CONFIG_PATH}': {e}")
else:
    logger.debug(f"User config '{USER_CONFIG_PATH}' not found. Using built-in defaults.")


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# YAML file in the download directory that accumulates one entry per export.
EXPORT_LOG_FILE_NAME = "export_log.yaml"

# Plain-text log for failed external commands.
ERROR_LOG_FILE_NAME = "error.txt"

# Directory for error logs, relative to the download directory.
ERROR_LOG_DIR_NAME = "export_error"


# --- User-facing Text ---

# The only failure message the user ever sees. Internal detail stays in the logs.
EXPORT_FAILED_NOTICE = "Export failed, please try again"

EXPORT_CANCELLED_NOTICE = "Export cancelled"

# Used for the download filename when the slideshow has no title.
DEFAULT_EXPORT_TITLE = "slideshow"


# --- Export Result Status Constants ---

EXPORT_STATUS_COMPLETED = "completed"
EXPORT_STATUS_FAILED = "failed"
EXPORT_STATUS_CANCELLED = "cancelled"
