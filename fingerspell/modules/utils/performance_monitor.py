"""
Inference pass timing with per-stage latency tracking.
Thread-safe: passes run on the worker thread, reports are read from the UI.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)

STAGES = ("detection", "encoding", "classification", "pass")


class PerformanceMonitor:
    """Tracks pass rate, per-stage latency and throttled frame drops."""

    def __init__(self, window_size=100):
        self._window_size = window_size
        self._lock = threading.Lock()

        self._pass_intervals = deque(maxlen=window_size)
        self._last_pass_time = None
        self._stage_times = {name: deque(maxlen=window_size) for name in STAGES}

        self._passes = 0
        self._frames_seen = 0
        self._dropped_frames = 0
        self._start_time = time.time()

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager timing one pipeline stage."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                if stage_name not in self._stage_times:
                    self._stage_times[stage_name] = deque(maxlen=self._window_size)
                self._stage_times[stage_name].append(elapsed_ms)

    def record_pass(self):
        """Call once per completed inference pass."""
        now = time.perf_counter()
        with self._lock:
            if self._last_pass_time is not None:
                self._pass_intervals.append(now - self._last_pass_time)
            self._last_pass_time = now
            self._passes += 1

    def record_frame(self, admitted: bool):
        """Count an arriving camera frame, and whether the throttler let it through."""
        with self._lock:
            self._frames_seen += 1
            if not admitted:
                self._dropped_frames += 1

    @property
    def passes_per_second(self) -> float:
        """Rolling average inference rate."""
        with self._lock:
            if not self._pass_intervals:
                return 0.0
            avg = sum(self._pass_intervals) / len(self._pass_intervals)
            return 1.0 / avg if avg > 0 else 0.0

    @property
    def pass_latency_ms(self) -> float:
        """Average end-to-end pass latency in ms."""
        return self.get_stage_latency("pass")

    def get_stage_latency(self, stage_name: str) -> float:
        with self._lock:
            times = self._stage_times.get(stage_name)
            if not times:
                return 0.0
            return sum(times) / len(times)

    def get_report(self) -> dict:
        """Snapshot of all counters and average latencies."""
        with self._lock:
            latencies = {
                name: (sum(t) / len(t) if t else 0.0)
                for name, t in self._stage_times.items()
            }
            frames = self._frames_seen
            dropped = self._dropped_frames
            passes = self._passes
        return {
            "passes": passes,
            "passes_per_second": round(self.passes_per_second, 2),
            "frames_seen": frames,
            "dropped_frames": dropped,
            "drop_rate": round(dropped / max(frames, 1) * 100, 2),
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "latencies_ms": {k: round(v, 2) for k, v in latencies.items()},
        }

    def print_report(self):
        """Log a formatted performance report."""
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("INFERENCE REPORT")
        logger.info("=" * 60)
        logger.info("Passes:         %d (%.2f/s)", report["passes"], report["passes_per_second"])
        logger.info("Frames seen:    %d", report["frames_seen"])
        logger.info("Throttled:      %d (%.2f%%)", report["dropped_frames"], report["drop_rate"])
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("Stage Latencies (avg ms):")
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-18s %7.2f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self._pass_intervals.clear()
            self._last_pass_time = None
            for times in self._stage_times.values():
                times.clear()
            self._passes = 0
            self._frames_seen = 0
            self._dropped_frames = 0
            self._start_time = time.time()
