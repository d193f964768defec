"""
Login/logout notification channel for the owning framework.
True = logged in, False = logged out or token invalidated.
Publishing never blocks: with no (or a slow) reader the oldest pending event is dropped.
"""
import logging
import queue
import threading

logger = logging.getLogger(__name__)


class LoginNotifier:
    def __init__(self, maxsize: int = 8):
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._queue: queue.Queue[bool] = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.dropped = 0

    def publish(self, logged_in: bool) -> None:
        with self._lock:
            while True:
                try:
                    self._queue.put_nowait(logged_in)
                    return
                except queue.Full:
                    try:
                        stale = self._queue.get_nowait()
                    except queue.Empty:
                        continue
                    self.dropped += 1
                    logger.warning("Notification queue full; dropped pending event %s", stale)

    def get(self, timeout: float | None = None) -> bool:
        """Block until the next event. Raises queue.Empty on timeout."""
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> bool:
        return self._queue.get_nowait()

    def drain(self) -> list[bool]:
        """All pending events, oldest first."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
