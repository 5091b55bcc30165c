"""Tests for ProgressPublisher."""

from reel_export.domain.models import ExportProgress, ExportStage
from reel_export.services.progress import ProgressPublisher


class TestProgressPublisher:
    def test_listeners_receive_events(self):
        publisher = ProgressPublisher()
        first, second = [], []
        publisher.subscribe(first.append)
        publisher.subscribe(second.append)

        publisher.publish(ExportStage.RECORDING, 10)

        expected = [ExportProgress(ExportStage.RECORDING, 10.0)]
        assert first == expected
        assert second == expected

    def test_progress_is_clamped(self):
        publisher = ProgressPublisher()
        assert publisher.publish(ExportStage.RECORDING, -5).progress == 0
        assert publisher.publish(ExportStage.RECORDING, 250).progress == 100

    def test_regression_within_stage_is_raised_to_last_value(self):
        publisher = ProgressPublisher()
        publisher.publish(ExportStage.CONVERTING, 60)
        event = publisher.publish(ExportStage.CONVERTING, 40)
        assert event == ExportProgress(ExportStage.CONVERTING, 60.0)

    def test_new_stage_may_restart_at_zero(self):
        publisher = ProgressPublisher()
        publisher.publish(ExportStage.RECORDING, 100)
        assert publisher.publish(ExportStage.CONVERTING, 0).progress == 0

    def test_stage_regression_is_ignored(self):
        publisher = ProgressPublisher()
        publisher.publish(ExportStage.DONE, 100)
        event = publisher.publish(ExportStage.RECORDING, 5)
        assert event == ExportProgress(ExportStage.DONE, 100.0)

    def test_unsubscribe(self):
        publisher = ProgressPublisher()
        events = []
        unsubscribe = publisher.subscribe(events.append)
        publisher.publish(ExportStage.RECORDING, 1)
        unsubscribe()
        unsubscribe()
        publisher.publish(ExportStage.RECORDING, 2)
        assert len(events) == 1

    def test_failing_listener_does_not_stop_others(self):
        publisher = ProgressPublisher()
        events = []

        def broken(event):
            raise ValueError("boom")

        publisher.subscribe(broken)
        publisher.subscribe(events.append)
        publisher.publish(ExportStage.RECORDING, 50)
        assert len(events) == 1

    def test_reset_allows_new_run(self):
        publisher = ProgressPublisher()
        publisher.publish(ExportStage.DONE, 100)
        publisher.reset()
        assert publisher.last is None
        assert publisher.publish(ExportStage.RECORDING, 0).stage is ExportStage.RECORDING
