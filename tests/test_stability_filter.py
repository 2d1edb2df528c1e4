"""
Tests for StabilityFilter
==========================
"""

import time
import pytest

from fingerspell.core.scheduler import TimerScheduler
from fingerspell.core.types import SENTINEL
from fingerspell.modules.recognition.stability_filter import StabilityFilter

from conftest import RecordingWriter


@pytest.fixture
def writer():
    return RecordingWriter()


@pytest.fixture
def stability(writer, scheduler):
    return StabilityFilter(writer, quiescence_s=3.0, scheduler=scheduler)


class TestStabilization:
    """A value held for the whole window becomes stable."""

    def test_value_held_publishes_once(self, stability, writer, scheduler):
        stability.submit("A")
        scheduler.advance(2.99)
        assert writer.published == []

        scheduler.advance(0.01)
        assert writer.published == ["A"]
        assert stability.stable_value == "A"
        assert stability.stabilizations == 1

        # Holding the value longer does not publish again
        for _ in range(5):
            stability.submit("A")
            scheduler.advance(1.0)
        assert writer.published == ["A"]

    def test_published_at_or_after_window(self, stability, writer, scheduler):
        scheduler.advance(0.5)
        stability.submit("C")
        scheduler.advance(10.0)

        assert writer.published == ["C"]
        assert scheduler.timers[0].due == pytest.approx(3.5)

    def test_repeats_do_not_rearm(self, stability, writer, scheduler):
        stability.submit("A")
        scheduler.advance(1.0)
        stability.submit("A")
        scheduler.advance(1.0)
        stability.submit("A")

        assert len(scheduler.timers) == 1

        # Measured from the first A, not the last
        scheduler.advance(1.0)
        assert writer.published == ["A"]

    def test_sentinel_never_published(self, stability, writer, scheduler):
        stability.submit("A")
        stability.submit(SENTINEL)
        scheduler.advance(5.0)

        assert writer.published == []
        assert stability.stable_value is None

    def test_empty_never_published(self, stability, writer, scheduler):
        stability.submit("")
        scheduler.advance(5.0)
        assert writer.published == []

    def test_initial_sentinel_is_duplicate(self, stability, scheduler):
        stability.submit(SENTINEL)
        assert scheduler.timers == []

    def test_successive_letters(self, stability, writer, scheduler):
        stability.submit("H")
        scheduler.advance(3.5)
        stability.submit("I")
        scheduler.advance(3.5)

        assert writer.published == ["H", "I"]
        assert stability.stabilizations == 2


class TestDebounce:
    """Changes restart the window and supersede pending timers."""

    def test_change_every_two_seconds_never_publishes(self, stability, writer, scheduler):
        for i in range(5):
            stability.submit("A" if i % 2 == 0 else "B")
            scheduler.advance(2.0)

        assert writer.published == []

    def test_flicker_below_window_never_publishes(self, stability, writer, scheduler):
        for i in range(10):
            stability.submit("A" if i % 2 == 0 else "B")
            scheduler.advance(2.9)

        assert writer.published == []

    def test_change_cancels_pending_timer(self, stability, scheduler):
        stability.submit("A")
        first = scheduler.timers[0]
        stability.submit("B")

        assert first.cancelled
        assert len(scheduler.armed) == 1
        assert stability.pending == "B"

    def test_last_run_wins(self, stability, writer, scheduler):
        stability.submit("A")
        scheduler.advance(1.0)
        stability.submit("B")
        scheduler.advance(3.0)

        assert writer.published == ["B"]

    def test_stale_timer_cannot_publish(self, stability, writer, scheduler):
        """A timer whose cancel lost the race still must not publish."""
        stability.submit("A")
        stale = scheduler.timers[0]
        stability.submit("B")

        stale.fire_anyway()

        assert writer.published == []
        assert stability.pending == "B"

    def test_return_to_previous_value_rearms(self, stability, writer, scheduler):
        stability.submit("A")
        scheduler.advance(1.0)
        stability.submit(SENTINEL)
        scheduler.advance(1.0)
        stability.submit("A")
        scheduler.advance(2.5)
        assert writer.published == []

        scheduler.advance(0.5)
        assert writer.published == ["A"]


class TestLifecycle:
    """reset() and shutdown()."""

    def test_reset_cancels_and_forgets(self, stability, writer, scheduler):
        stability.submit("A")
        stability.reset()
        scheduler.advance(5.0)

        assert writer.published == []
        assert stability.last_value == SENTINEL
        assert stability.pending is None

    def test_same_value_after_reset_rearms(self, stability, writer, scheduler):
        stability.submit("A")
        scheduler.advance(3.0)
        stability.reset()

        stability.submit("A")
        scheduler.advance(3.0)
        assert writer.published == ["A", "A"]

    def test_shutdown_cancels_without_publishing(self, stability, writer, scheduler):
        stability.submit("A")
        stability.shutdown()
        scheduler.advance(5.0)

        assert writer.published == []

    def test_quiescence_property(self, writer, scheduler):
        assert StabilityFilter(writer, 1.5, scheduler).quiescence_s == 1.5


class TestWithRealTimers:
    """Same behavior on threading timers."""

    def test_real_timer_publishes(self, writer):
        stability = StabilityFilter(writer, quiescence_s=0.05, scheduler=TimerScheduler())
        stability.submit("L")
        time.sleep(0.3)

        assert writer.published == ["L"]

    def test_real_timer_superseded(self, writer):
        stability = StabilityFilter(writer, quiescence_s=0.1, scheduler=TimerScheduler())
        stability.submit("L")
        stability.submit("M")
        time.sleep(0.4)

        assert writer.published == ["M"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
