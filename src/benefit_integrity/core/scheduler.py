"""
Periodic background tasks for catalog maintenance.

Each ``PeriodicTask`` owns one daemon thread that calls its target every
``interval`` seconds until stopped. Targets take their store's lock only
for the mutation itself, so foreground scoring is never held up by a tick.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``target`` on a fixed interval in a daemon thread."""

    def __init__(self, name: str, interval: float, target: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.target = target
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop; a no-op when already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Started periodic task %s (every %.0fs)", self.name, self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for the thread."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Stopped periodic task %s", self.name)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.target()
            except Exception:
                # A failed tick must not kill the maintenance loop.
                logger.exception("Periodic task %s failed", self.name)
