"""
Periodic execution of the fetch job.
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class AlertScheduler:
    """
    Runs a job immediately and then every `interval` seconds.

    Runs never overlap: a trigger while a run is in progress is skipped.
    A failing run is logged and the schedule continues.
    """

    def __init__(self, job: Callable[[], Any], interval: float = 600):
        self.job = job
        self.interval = interval
        self.run_count = 0
        self.last_result: Any = None
        self.last_error: Optional[str] = None
        self._lock = threading.Lock()
        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def trigger(self) -> bool:
        """Run the job now unless a run is in progress. Returns False if skipped."""
        with self._lock:
            if self._running:
                logger.info("Previous run still in progress, skipping")
                return False
            self._running = True

        try:
            self.last_result = self.job()
            self.last_error = None
        except Exception as e:
            logger.exception("Scheduled run failed")
            self.last_error = str(e)
        finally:
            with self._lock:
                self._running = False
                self.run_count += 1

        return True

    def _loop(self):
        while not self._stop_event.is_set():
            self.trigger()
            self._stop_event.wait(self.interval)

    def start(self) -> bool:
        """Start the schedule in a background thread."""
        if self._thread and self._thread.is_alive():
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: Optional[float] = None):
        """Stop scheduling; an in-progress run is allowed to finish."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() is called. Returns True if stopped."""
        return self._stop_event.wait(timeout)
