"""
Single-slot work queue running inference passes off the capture thread.

The queue holds at most one item and offers are non-blocking, so a
frame that arrives while the slot is taken is dropped by the caller.
"""

import queue
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class InferenceWorker:
    """Background thread consuming a capacity-1 queue."""

    def __init__(self, handler: Callable, on_done: Optional[Callable] = None,
                 name: str = "inference-worker"):
        """
        Args:
            handler: called with each offered item on the worker thread
            on_done: called after every item, whether handler succeeded or not
            name: worker thread name
        """
        self._handler = handler
        self._on_done = on_done
        self._name = name

        self._queue = queue.Queue(maxsize=1)
        self._idle = threading.Condition()
        self._outstanding = 0
        self._running = False
        self._thread = None

        self._processed = 0
        self._failures = 0
        self.last_error = None

    def start(self):
        """Start the worker thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Inference worker started")

    def offer(self, item) -> bool:
        """Hand an item to the worker without blocking.

        Returns:
            False if the slot is already occupied (item dropped)
        """
        with self._idle:
            try:
                self._queue.put_nowait(item)
            except queue.Full:
                return False
            self._outstanding += 1
        return True

    def _run(self):
        while self._running:
            try:
                item = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                self._handler(item)
                self._processed += 1
            except Exception as e:
                self._failures += 1
                self.last_error = e
                logger.exception("Inference pass failed: %s", e)
            finally:
                if self._on_done is not None:
                    self._on_done()
                self._queue.task_done()
                with self._idle:
                    self._outstanding -= 1
                    self._idle.notify_all()

    def wait_idle(self, timeout: float = None) -> bool:
        """Block until no item is queued or running."""
        with self._idle:
            return self._idle.wait_for(lambda: self._outstanding == 0, timeout)

    def stop(self, timeout: float = 2.0):
        """Stop the worker; an item still queued is discarded."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

        # Discarded items still count as finished for the slot owner
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            if self._on_done is not None:
                self._on_done()
            with self._idle:
                self._outstanding -= 1
                self._idle.notify_all()

        logger.info("Inference worker stopped (processed=%d, failures=%d)",
                    self._processed, self._failures)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def failures(self) -> int:
        return self._failures
