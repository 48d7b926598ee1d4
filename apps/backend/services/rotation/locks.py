import threading
from contextlib import contextmanager
from typing import Dict, Tuple

class RotationInProgress(Exception):
    """Another run for the same target month has not finished yet."""

class MonthLockRegistry:
    """
    Single-flight guard: one rotation run per target month at a time.

    Each month also owns a cancel event. `hold` clears it on entry and yields
    it to the run; `cancel` sets it while the run is still going.
    """
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[int, int], threading.Lock] = {}
        self._cancel_events: Dict[Tuple[int, int], threading.Event] = {}

    @contextmanager
    def hold(self, year: int, month: int):
        with self._guard:
            lock = self._locks.setdefault((year, month), threading.Lock())
            cancel_event = self._cancel_events.setdefault((year, month), threading.Event())
        if not lock.acquire(blocking=False):
            raise RotationInProgress(f"OD rotation for {year}-{month:02d} is already running")
        cancel_event.clear()
        try:
            yield cancel_event
        finally:
            lock.release()

    def is_running(self, year: int, month: int) -> bool:
        with self._guard:
            lock = self._locks.get((year, month))
        return bool(lock and lock.locked())

    def cancel(self, year: int, month: int) -> bool:
        """Asks the running job for the month to stop. False if nothing is running."""
        if not self.is_running(year, month):
            return False
        with self._guard:
            self._cancel_events[(year, month)].set()
        return True
