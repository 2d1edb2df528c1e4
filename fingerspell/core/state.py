"""
Pipeline state and the context object that owns it.

The presentation layer only reads the state. Writes go through narrow
writer capabilities handed out by ``PipelineContext``:

    ImmediateWriter - immediate label, hand keypoints, index fingertip
                      (owned by the pipeline)
    StableWriter    - stable label only (owned by the stability filter)

Every write is posted to the UI dispatcher, so the state is only ever
mutated on the UI thread and in the order the writes were issued.
"""

import time
import logging
import threading
from typing import List, Optional, Tuple

from fingerspell.core.events import EventBus, Events
from fingerspell.core.scheduler import InlineDispatcher
from fingerspell.core.types import SENTINEL

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class PipelineState:
    """Published pipeline outputs, observed by the dashboard."""

    def __init__(self, event_bus: EventBus = None):
        self._lock = threading.Lock()
        self._bus = event_bus or EventBus()

        self._immediate_label: str = SENTINEL
        self._stable_label: str = SENTINEL
        self._hand_keypoints: List[Point] = []
        self._index_finger_tip: Optional[Point] = None
        self._last_inference_at: float = 0.0
        self._confidence_level: Optional[str] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def immediate_label(self) -> str:
        with self._lock:
            return self._immediate_label

    @property
    def stable_label(self) -> str:
        with self._lock:
            return self._stable_label

    @property
    def hand_keypoints(self) -> List[Point]:
        with self._lock:
            return list(self._hand_keypoints)

    @property
    def index_finger_tip(self) -> Optional[Point]:
        with self._lock:
            return self._index_finger_tip

    @property
    def last_inference_at(self) -> float:
        with self._lock:
            return self._last_inference_at

    @property
    def confidence_level(self) -> Optional[str]:
        """Gate level of the last classified pass, None without a classification."""
        with self._lock:
            return self._confidence_level

    def snapshot(self) -> dict:
        """Consistent copy of all fields in the dict format used by Dashboard.render()."""
        with self._lock:
            return {
                "immediate_label": self._immediate_label,
                "stable_label": self._stable_label,
                "hand_keypoints": list(self._hand_keypoints),
                "index_finger_tip": self._index_finger_tip,
                "last_inference_at": self._last_inference_at,
                "confidence_level": self._confidence_level,
            }

    # ------------------------------------------------------------------
    # Write side (UI thread only, via the writers below)
    # ------------------------------------------------------------------

    def _apply_immediate(self, label: str, timestamp: float, level: Optional[str]):
        with self._lock:
            changed = label != self._immediate_label
            self._immediate_label = label
            self._confidence_level = level
            self._last_inference_at = timestamp
        self._bus.emit(Events.IMMEDIATE_LABEL, label=label, changed=changed)

    def _apply_keypoints(self, keypoints: List[Point], index_tip: Optional[Point]):
        with self._lock:
            self._hand_keypoints = list(keypoints)
            self._index_finger_tip = index_tip
        self._bus.emit(Events.KEYPOINTS_UPDATED,
                       keypoints=keypoints, index_finger_tip=index_tip)

    def _apply_stable(self, label: str):
        # Every stabilization is an event, even when the letter repeats ("OO")
        with self._lock:
            changed = label != self._stable_label
            self._stable_label = label
        logger.info("Stable letter: %s", label)
        self._bus.emit(Events.STABLE_LABEL, label=label, changed=changed)

    def _apply_reset(self):
        with self._lock:
            self._immediate_label = SENTINEL
            self._stable_label = SENTINEL
            self._confidence_level = None
        self._bus.emit(Events.PREDICTIONS_RESET)


class ImmediateWriter:
    """Write capability for the per-pass outputs."""

    def __init__(self, state: PipelineState, dispatcher):
        self._state = state
        self._dispatcher = dispatcher

    def publish_label(self, label: str, timestamp: float = None, level: str = None):
        ts = timestamp if timestamp is not None else time.time()
        self._dispatcher.call_soon(self._state._apply_immediate, label, ts, level)

    def publish_keypoints(self, keypoints: List[Point], index_tip: Optional[Point] = None):
        self._dispatcher.call_soon(self._state._apply_keypoints, list(keypoints), index_tip)

    def clear_hand(self):
        self.publish_keypoints([], None)


class StableWriter:
    """Write capability for the stable label."""

    def __init__(self, state: PipelineState, dispatcher):
        self._state = state
        self._dispatcher = dispatcher

    def publish(self, label: str):
        self._dispatcher.call_soon(self._state._apply_stable, label)


class PipelineContext:
    """Explicit context shared by the pipeline components.

    Holds the state, the event bus and the dispatcher; hands out one
    writer per role so no component can write fields it does not own.
    """

    def __init__(self, dispatcher=None, event_bus: EventBus = None):
        self.event_bus = event_bus or EventBus()
        self.dispatcher = dispatcher or InlineDispatcher()
        self.state = PipelineState(self.event_bus)
        self._immediate_writer = ImmediateWriter(self.state, self.dispatcher)
        self._stable_writer = StableWriter(self.state, self.dispatcher)

    def immediate_writer(self) -> ImmediateWriter:
        return self._immediate_writer

    def stable_writer(self) -> StableWriter:
        return self._stable_writer

    def request_reset(self):
        """Restore both labels to the sentinel (UI 'Clear')."""
        self.dispatcher.call_soon(self.state._apply_reset)
