"""
Defines custom exception types for the Reel Exporter application.

The hierarchy mirrors how the export pipeline treats failures. Fatal
exceptions abort the whole export and are caught by the exporter's top-level
handler, which shows the user a single generic notice. Recoverable exceptions
are caught by the component that raised them and degrade gracefully.

All custom exceptions inherit from the base `ReelExportException`.
"""


class ReelExportException(Exception):
    """Base class for all custom exceptions in the Reel Exporter application."""

    pass


# --- Manifest / Input Exceptions ---
class ManifestError(ReelExportException):
    """
    Raised when a slideshow manifest cannot be read or is malformed.

    This covers missing files, invalid YAML, and slide entries without an
    identifier or an image source.
    """

    pass


# --- Fatal Export Exceptions ---
class FatalExportException(ReelExportException):
    """Base class for conditions that abort the whole export."""

    pass


class DrawingSurfaceError(FatalExportException):
    """
    Raised when the shared drawing canvas cannot be created.

    Without a surface there is nothing to record, so the export cannot
    continue.
    """

    pass


class RecorderStartError(FatalExportException):
    """
    Raised when the recorder cannot be started at all.

    Typically the ffmpeg executable is missing or refuses the command line.
    """

    pass


class RecordingFailedError(FatalExportException):
    """Raised when the recorder exits abnormally or produces no output."""

    pass


class InvalidRecorderStateError(FatalExportException):
    """Raised when a recorder operation is called in the wrong state."""

    pass


# --- Recoverable Exceptions ---
class RecoverableExportException(ReelExportException):
    """Base class for conditions the pipeline degrades around."""

    pass


class EngineLoadError(RecoverableExportException):
    """
    Raised when the transcoding engine cannot be loaded.

    The exporter treats this like any other transcode failure and delivers
    the native recording instead.
    """

    pass


class TranscodeError(RecoverableExportException):
    """Raised when re-encoding the recording into MP4 fails."""

    pass


# --- Control Flow Exceptions ---
class ExportCancelledException(ReelExportException):
    """
    Raised inside an export run once its cancellation token is set.

    This is not an error. It unwinds the render-hold-record loop so the
    exporter can clean up and report a cancelled run.
    """

    pass


class ExportInProgressError(ReelExportException):
    """Raised when an export is requested while another run is active."""

    pass
