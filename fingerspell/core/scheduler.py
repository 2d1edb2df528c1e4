"""
Scheduling primitives shared by the pipeline.

    UiDispatcher    - queues callables to be run on the UI-owning thread
    InlineDispatcher - runs callables immediately (headless use, tests)
    TimerScheduler  - cancellable one-shot timers on daemon threads
"""

import queue
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class UiDispatcher:
    """Thread-safe hand-off of work to the UI thread.

    Producers on any thread call ``call_soon()``; the UI loop drains the
    queue with ``run_pending()``. Callables run in submission order.
    """

    def __init__(self):
        self._queue = queue.Queue()
        self._owner = None

    def call_soon(self, callback: Callable, *args):
        self._queue.put((callback, args))

    def run_pending(self, limit: int = None) -> int:
        """Run queued callables on the calling thread.

        Args:
            limit: Stop after this many callables (None = drain everything)

        Returns:
            Number of callables executed
        """
        self._owner = threading.get_ident()
        count = 0
        while limit is None or count < limit:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                callback(*args)
            except Exception as e:
                logger.error("UI callback %s failed: %s",
                             getattr(callback, "__name__", callback), e)
            count += 1
        return count

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def owner_thread(self):
        """Ident of the thread that last drained the queue."""
        return self._owner


class InlineDispatcher:
    """Dispatcher that runs callbacks synchronously on the caller's thread."""

    def __init__(self):
        self._lock = threading.RLock()

    def call_soon(self, callback: Callable, *args):
        with self._lock:
            callback(*args)

    def run_pending(self, limit: int = None) -> int:
        return 0

    @property
    def pending(self) -> int:
        return 0


class TimerHandle:
    """Handle returned by ``TimerScheduler.call_later()``."""

    __slots__ = ("_timer",)

    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self):
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer.is_alive()


class TimerScheduler:
    """Schedules one-shot callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        timer = threading.Timer(delay, callback, args=args)
        timer.daemon = True
        timer.start()
        return TimerHandle(timer)
