"""
Rate limiter plus single in-flight guard for inference passes.

A frame is admitted only when no pass is running and at least
``interval_s`` has elapsed since the previous admitted pass started.
Rejected frames are dropped, not queued: the newest frame is always
more relevant than a backlog of stale ones.
"""

import time
import logging
import threading

from fingerspell.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 1.0


class InferenceThrottler:
    """Admits at most one pass at a time and one pass per interval."""

    def __init__(self, interval_s: float = DEFAULT_INTERVAL_S, clock=time.monotonic):
        if interval_s < 0:
            raise ConfigError("inference interval must be >= 0, got %r" % interval_s)
        self._interval_s = interval_s
        self._clock = clock

        # Capacity-1 slot: held for the whole duration of a pass
        self._slot = threading.Lock()
        self._state_lock = threading.Lock()
        self._last_run_at = None

        self._admitted = 0
        self._dropped_busy = 0
        self._dropped_rate = 0

    def try_acquire(self, now: float = None) -> bool:
        """Try to start a pass.

        Returns:
            True if the caller now owns the slot and must call release()
        """
        if not self._slot.acquire(blocking=False):
            with self._state_lock:
                self._dropped_busy += 1
            return False

        now = self._clock() if now is None else now
        with self._state_lock:
            if self._last_run_at is not None and now - self._last_run_at < self._interval_s:
                self._dropped_rate += 1
                self._slot.release()
                return False
            self._last_run_at = now
            self._admitted += 1
        return True

    def release(self):
        """Mark the running pass as finished (success or failure)."""
        self._slot.release()

    @property
    def busy(self) -> bool:
        return self._slot.locked()

    @property
    def last_run_at(self):
        with self._state_lock:
            return self._last_run_at

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def stats(self) -> dict:
        with self._state_lock:
            return {
                "admitted": self._admitted,
                "dropped_busy": self._dropped_busy,
                "dropped_rate": self._dropped_rate,
            }
