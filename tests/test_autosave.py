"""
Tests for the debounced draft auto-saver on its own.
"""

import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent))

from questionflow.errors import DraftSaveError
from questionflow.flow import DraftAutoSaver


class ManualTimer:
    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.cancelled = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True


class TestDraftAutoSaver:

    def test_schedule_captures_responses(self):
        save = MagicMock(return_value=None)
        saver = DraftAutoSaver(save, delay=0.5, timer_factory=ManualTimer)
        responses = {1: "a"}

        saver.schedule(responses)
        responses[2] = "b"
        assert saver.pending

        saver._timer.function()
        save.assert_called_once_with({1: "a"})
        assert not saver.pending
        assert saver.saves_completed == 1

    def test_cancel_drops_pending_save(self):
        save = MagicMock()
        saver = DraftAutoSaver(save, timer_factory=ManualTimer)
        saver.schedule({1: "a"})
        timer = saver._timer

        saver.cancel()

        assert timer.cancelled
        assert not saver.pending
        assert saver.flush() is False
        save.assert_not_called()

    def test_failure_wrapped_and_logged(self, caplog):
        saver = DraftAutoSaver(MagicMock(side_effect=ValueError("bad")), session_id="s1")

        assert saver.flush({1: "a"}) is False

        assert isinstance(saver.last_error, DraftSaveError)
        assert saver.last_error.session_id == "s1"
        assert isinstance(saver.last_error.__cause__, ValueError)
        assert saver.is_saving is False
        assert "Draft save failed for session s1" in caplog.text

    def test_save_in_flight_skips_second_save(self):
        nested = []

        def save(responses):
            nested.append(saver.flush({9: "nested"}))

        saver = DraftAutoSaver(save)
        assert saver.flush({1: "a"}) is True
        assert nested == [False]

    def test_async_callback(self):
        saved = []

        async def save(responses):
            saved.append(responses)

        saver = DraftAutoSaver(save)
        assert saver.flush({1: "a"}) is True
        assert saved == [{1: "a"}]

    def test_real_timer_fires(self):
        done = threading.Event()
        saver = DraftAutoSaver(lambda responses: done.set(), delay=0.01)
        saver.schedule({1: "a"})
        assert done.wait(2)

    def test_superseded_timer_does_not_save(self):
        save = MagicMock(return_value=None)
        saver = DraftAutoSaver(save, timer_factory=ManualTimer)
        saver.schedule({1: "a"})
        first = saver._timer
        saver.schedule({1: "b"})
        second = saver._timer

        # The first timer was already running when it got cancelled
        first.function()

        save.assert_not_called()
        assert saver.pending
        assert saver._timer is second

        second.function()
        save.assert_called_once_with({1: "b"})
        assert not saver.pending
