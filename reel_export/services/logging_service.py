"""
This module provides classes for persistent, file-based logs.

They complement the real-time console logging done with loguru. Errors from
external commands are appended to a human-readable text file (`ErrorLog`), and
every finished export is recorded as an entry in a machine-readable YAML list
(`ExportLog`) in the download directory.
"""

from pathlib import Path
from typing import Dict, List, Union

import yaml
from loguru import logger

from ..config.common import ERROR_LOG_FILE_NAME, EXPORT_LOG_FILE_NAME


class Log:
    """
    A base class for all file log handlers.

    Resolves the log directory from a base path and makes sure it exists.
    """

    # A decorative separator line used in text-based logs for better readability.
    linesep_marker: str = "=" * 50

    def __init__(self, log_base_path: Path):
        """
        Args:
            log_base_path: The base path for logging. If it's a directory (or has no
                           suffix), log files are created inside it. Otherwise its
                           parent is used as the log directory.
        """
        self.log_file_path: Path
        if log_base_path.is_dir() or not log_base_path.suffix:
            self.log_dir: Path = log_base_path.resolve()
        else:
            self.log_dir = log_base_path.parent.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, log_content: Union[dict, list, str]):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends human-readable error reports to a plain text file.

    Each call adds the given lines followed by a separator, producing a
    chronological record of failures.
    """

    def __init__(self, error_log_dir: Path, filename: str = ERROR_LOG_FILE_NAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"
        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Keep the message visible even if the file cannot be written.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class ExportLog(Log):
    """
    Records finished exports in a YAML file.

    The file always holds a single YAML list. Each `write()` re-reads it,
    appends the new entry with the next index, and rewrites the whole list.
    """

    def __init__(self, log_dir: Path, filename: str = EXPORT_LOG_FILE_NAME):
        super().__init__(log_dir)
        self.log_file_path = self.log_dir / filename

    def read_entries(self) -> List[Dict]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (yaml.YAMLError, OSError) as e:
            logger.error(f"Error reading export log {self.log_file_path}: {e}. Starting a new log.")
            return []
        if loaded_entries is None:
            return []
        if not isinstance(loaded_entries, list):
            logger.warning(f"Export log {self.log_file_path} contained unexpected data. Starting a new log.")
            return []
        return loaded_entries

    def write(self, new_log_entry: dict):
        if not isinstance(new_log_entry, dict):
            logger.error("ExportLog.write expects a dictionary as a log entry.")
            return

        log_entries = self.read_entries()
        current_max_index = max(
            (entry.get("index", 0) for entry in log_entries if isinstance(entry, dict)),
            default=0,
        )
        entry = {"index": current_max_index + 1, **new_log_entry}
        log_entries.append(entry)

        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    log_entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write to export log {self.log_file_path}: {e}")
