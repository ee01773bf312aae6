"""
Session Terminator
One-shot delayed termination after a fatal classification
"""

import logging
import threading
from typing import Callable, Optional, Any

logger = logging.getLogger(__name__)

# (delay_seconds, callback) -> handle with cancel()
Scheduler = Callable[[float, Callable[[], None]], Any]


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Run callback on a daemon timer thread"""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class SessionTerminator:
    """
    Schedules termination once per session

    The display delay lets the user read the reason before the session ends.
    Only the first request is honoured; later requests are ignored.
    """

    def __init__(self, on_terminate: Callable[[str], None], display_seconds: float = 3.0,
                 scheduler: Optional[Scheduler] = None):
        self.on_terminate = on_terminate
        self.display_seconds = display_seconds
        self.scheduler = scheduler or thread_timer_scheduler

        self.reason: Optional[str] = None
        self.terminated = False
        self._handle = None
        self._lock = threading.Lock()

    @property
    def is_terminating(self) -> bool:
        return self.reason is not None

    def request(self, reason: str) -> bool:
        """
        Request termination with a human-readable reason

        Returns:
            True if this call scheduled the termination
        """
        if not reason:
            return False

        with self._lock:
            if self.reason is not None:
                logger.debug(f"Termination already scheduled, ignoring: {reason}")
                return False
            self.reason = reason

        logger.error(reason)
        self._handle = self.scheduler(self.display_seconds, self._fire)
        return True

    def _fire(self):
        with self._lock:
            if self.terminated:
                return
            self.terminated = True

        logger.info("Terminating geospatial session")
        try:
            self.on_terminate(self.reason)
        except Exception as e:
            logger.error(f"Session termination callback failed: {e}")
