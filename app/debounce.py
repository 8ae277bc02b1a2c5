"""
Timer-based coalescing of rapid events.
"""
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delivers only the last submitted value once events go quiet.

    Each submit starts a fresh timer and supersedes the previous one, so a
    burst of events results in a single callback with the final value.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[Any], None]):
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._has_pending = False
        self._pending: Any = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def submit(self, value: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = value
            self._has_pending = True
            timer = threading.Timer(self.delay_seconds, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> bool:
        """
        Deliver the pending value now instead of waiting for the timer.

        Returns:
            True if a value was delivered, False if nothing was pending
        """
        with self._lock:
            if not self._has_pending:
                return False
            value = self._take_pending()
        self._deliver(value)
        return True

    def cancel(self) -> None:
        """Drop the pending value without delivering it."""
        with self._lock:
            if self._has_pending:
                self._take_pending()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer submit, flush or cancel got here first
            if generation != self._generation or not self._has_pending:
                return
            value = self._take_pending()
        self._deliver(value)

    def _take_pending(self) -> Any:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1
        value = self._pending
        self._pending = None
        self._has_pending = False
        return value

    def _deliver(self, value: Any) -> None:
        try:
            self._callback(value)
        except Exception:
            logger.exception(f"Debounced callback failed for value {value!r}")
