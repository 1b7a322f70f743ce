import logging
import threading
from collections.abc import Callable

from wordmemory.domain.ports import PeriodicScheduler, ScheduledTask

logger = logging.getLogger(__name__)


class _RepeatingTimer(ScheduledTask):
    """Re-arms a daemon threading.Timer after each run until cancelled."""

    def __init__(self, interval_s: float, callback: Callable[[], None]):
        self.interval_s = interval_s
        self.callback = callback
        self._lock = threading.Lock()
        self._cancelled = False
        self._timer: threading.Timer | None = None

    def start(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._timer = threading.Timer(self.interval_s, self._run)
            self._timer.daemon = True
            self._timer.start()

    def _run(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.warning(f"Periodic backup failed: {e}")
        self.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class ThreadingPeriodicScheduler(PeriodicScheduler):
    """PeriodicScheduler backed by background threads."""

    def schedule_periodic_backup(
        self, interval_ms: int, callback: Callable[[], None]
    ) -> ScheduledTask:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        task = _RepeatingTimer(interval_ms / 1000.0, callback)
        task.start()
        return task
