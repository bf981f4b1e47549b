"""
Background expiry sweep for stored templates.

Key behaviors:
- Runs `delete_expired` every interval on a daemon thread
- Failures are logged and the next tick tries again; nothing is retried early
- `stop()` wakes the thread immediately
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, sweep: Callable[[], int], interval_seconds: float) -> None:
        self._sweep = sweep
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="template-sweeper", daemon=True)
        self._thread.start()
        logger.info("Template sweeper started (interval: %.0fs)", self._interval)

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=5.0)
        self._thread = None
        logger.info("Template sweeper stopped")

    def run_once(self) -> int:
        """Run one sweep; errors are logged and reported as zero deletions."""
        try:
            deleted = self._sweep()
        except Exception:
            logger.exception("Error deleting expired charts")
            return 0
        if deleted:
            logger.info("Deleted %d expired charts", deleted)
        return deleted

    def _loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            self.run_once()
