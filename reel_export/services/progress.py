"""
This module publishes export progress to any number of subscribers.

The publisher guarantees the ordering that listeners may rely on: stages only
move forward (`recording -> converting -> done`), and within a stage the
percentage never goes down. Values are clamped to 0-100. A listener that
raises is logged and skipped; it never breaks the export run.
"""

import threading
from typing import Callable, List, Optional

from loguru import logger

from ..domain.models import ExportProgress, ExportStage

ProgressListener = Callable[[ExportProgress], None]


class ProgressPublisher:
    def __init__(self):
        self._listeners: List[ProgressListener] = []
        self._lock = threading.Lock()
        self._last: Optional[ExportProgress] = None

    @property
    def last(self) -> Optional[ExportProgress]:
        return self._last

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """
        Registers `listener` for all future notifications.

        Returns:
            A function that removes the listener again. Calling it twice is harmless.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, stage: ExportStage, progress: float) -> ExportProgress:
        """
        Notifies every listener of the new stage and percentage.

        A stage earlier than the current one is ignored and the current state is
        re-sent; a lower percentage within the same stage is raised to the last
        published value.

        Returns:
            The notification that was actually delivered.
        """
        progress = min(100.0, max(0.0, float(progress)))
        with self._lock:
            last = self._last
            if last is not None:
                if stage.order < last.stage.order:
                    logger.debug(f"Ignoring stage regression {last.stage.value} -> {stage.value}.")
                    stage, progress = last.stage, last.progress
                elif stage is last.stage and progress < last.progress:
                    progress = last.progress
            event = ExportProgress(stage=stage, progress=progress)
            self._last = event
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener {listener!r} failed: {e}")
        return event

    def reset(self):
        """Forgets the last published state so a new run can start from `recording`."""
        with self._lock:
            self._last = None
