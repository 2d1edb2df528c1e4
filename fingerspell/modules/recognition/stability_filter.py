"""
Leading-edge debounce turning immediate labels into a stable letter.

State machine:
    - A value equal to the previously received one is ignored, so a run
      of identical labels arms the timer only once, on its first arrival.
    - A different value cancels the pending timer and arms a new one for
      the quiescence window (3 s by default).
    - When a timer fires without having been superseded, its value is
      published as the stable label unless it is the sentinel or empty.

The window restarts on every change: a label that flickers faster than
the window never stabilizes. Each armed timer carries a generation token
checked under the lock when it fires, so a superseded timer can never
publish even if its cancel() lost the race with the timer thread.
"""

import logging
import threading

from fingerspell.core.scheduler import TimerScheduler
from fingerspell.core.types import SENTINEL

logger = logging.getLogger(__name__)

DEFAULT_QUIESCENCE_S = 3.0


class StabilityFilter:
    """Debounces the immediate label stream into a stable label."""

    def __init__(self, writer, quiescence_s: float = DEFAULT_QUIESCENCE_S,
                 scheduler=None, sentinel: str = SENTINEL):
        """
        Args:
            writer: StableWriter capability used to publish stable labels
            quiescence_s: how long a value must stay unchanged
            scheduler: object with ``call_later(delay, fn, *args)`` returning a
                       cancellable handle (defaults to TimerScheduler)
            sentinel: the "no value" label, never published as stable
        """
        self._writer = writer
        self._quiescence_s = quiescence_s
        self._scheduler = scheduler or TimerScheduler()
        self._sentinel = sentinel

        self._lock = threading.RLock()
        self._last_value = sentinel
        self._pending_value = None
        self._pending_handle = None
        self._generation = 0

        self._stable_value = None
        self._stabilizations = 0

    def submit(self, value: str):
        """Feed the next immediate label."""
        with self._lock:
            if value == self._last_value:
                return
            self._last_value = value
            self._arm(value)

    def _arm(self, value: str):
        self._cancel_pending()
        self._generation += 1
        self._pending_value = value
        self._pending_handle = self._scheduler.call_later(
            self._quiescence_s, self._on_timer, self._generation, value
        )
        logger.debug("Stability timer armed for %r (gen=%d)", value, self._generation)

    def _cancel_pending(self):
        if self._pending_handle is not None:
            self._pending_handle.cancel()
            logger.debug("Stability timer cancelled for %r", self._pending_value)
        self._pending_handle = None
        self._pending_value = None

    def _on_timer(self, generation: int, value: str):
        with self._lock:
            if generation != self._generation:
                logger.debug("Ignoring stale stability timer for %r", value)
                return
            self._pending_handle = None
            self._pending_value = None

            if not value or value == self._sentinel:
                return

            self._stable_value = value
            self._stabilizations += 1
            self._writer.publish(value)

    def reset(self):
        """Cancel any pending timer and forget the last received value."""
        with self._lock:
            self._generation += 1
            self._cancel_pending()
            self._last_value = self._sentinel
            self._stable_value = None

    def shutdown(self):
        """Cancel the pending timer without publishing."""
        with self._lock:
            self._generation += 1
            self._cancel_pending()

    @property
    def pending(self):
        """Value currently waiting for its window to elapse, if any."""
        with self._lock:
            return self._pending_value

    @property
    def last_value(self) -> str:
        with self._lock:
            return self._last_value

    @property
    def stable_value(self):
        with self._lock:
            return self._stable_value

    @property
    def stabilizations(self) -> int:
        """Number of times a value was published as stable."""
        return self._stabilizations

    @property
    def quiescence_s(self) -> float:
        return self._quiescence_s
