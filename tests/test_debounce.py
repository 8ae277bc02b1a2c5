"""
Tests for the resize debouncer.
"""
import threading
import time
from unittest.mock import MagicMock

from app.debounce import Debouncer


class TestDebouncer:
    """Tests for Debouncer."""

    def test_last_value_wins(self):
        """Test that a burst of submits delivers only the final value."""
        delivered = []
        done = threading.Event()

        def callback(value):
            delivered.append(value)
            done.set()

        debouncer = Debouncer(0.05, callback)
        for height in (100, 200, 300):
            debouncer.submit(height)

        assert done.wait(timeout=2)
        time.sleep(0.15)
        assert delivered == [300]
        assert debouncer.pending is False

    def test_flush_delivers_immediately(self):
        """Test that flush() runs the callback without waiting."""
        callback = MagicMock()
        debouncer = Debouncer(10, callback)
        debouncer.submit(250)

        assert debouncer.flush() is True

        callback.assert_called_once_with(250)
        assert debouncer.pending is False

    def test_flush_without_pending_value(self):
        """Test that flush() with nothing queued does nothing."""
        callback = MagicMock()
        debouncer = Debouncer(10, callback)

        assert debouncer.flush() is False
        callback.assert_not_called()

    def test_flush_is_not_followed_by_timer(self):
        """Test that the superseded timer does not deliver a second time."""
        callback = MagicMock()
        debouncer = Debouncer(0.05, callback)
        debouncer.submit(1)
        debouncer.flush()

        time.sleep(0.15)

        callback.assert_called_once_with(1)

    def test_cancel(self):
        """Test that a cancelled value is never delivered."""
        callback = MagicMock()
        debouncer = Debouncer(0.05, callback)
        debouncer.submit(1)

        debouncer.cancel()
        time.sleep(0.15)

        callback.assert_not_called()
        assert debouncer.pending is False

    def test_callback_error_is_contained(self):
        """Test that a failing callback does not escape flush()."""
        debouncer = Debouncer(10, MagicMock(side_effect=RuntimeError("boom")))
        debouncer.submit(1)

        assert debouncer.flush() is True
