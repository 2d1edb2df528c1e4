"""
Lightweight event bus for presentation updates.

The pipeline state publishes every applied change here so the overlay,
the prediction logger and any other observer stay decoupled from the
pipeline internals.

Usage:
    bus = EventBus()
    bus.subscribe(Events.STABLE_LABEL, my_handler)
    bus.emit(Events.STABLE_LABEL, label="A")
"""

import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    Dispatch is synchronous on the emitting thread, highest priority first.
    One bus is created per pipeline context and passed explicitly.
    """

    def __init__(self):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        Listener exceptions are logged and never reach the emitter.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        for _, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)


# =============================================================================
# Standard Event Names
# =============================================================================

class Events:
    """Event names emitted by the pipeline state."""

    IMMEDIATE_LABEL = "immediate_label"
    STABLE_LABEL = "stable_label"
    KEYPOINTS_UPDATED = "keypoints_updated"
    PREDICTIONS_RESET = "predictions_reset"
    CLASSIFIER_ERROR = "classifier_error"
