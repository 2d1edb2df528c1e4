"""
Shared test fixtures: fake detector/classifier, manual timers, fake clock.
"""

import pytest
import numpy as np

from fingerspell.core.errors import ClassifierError
from fingerspell.core.state import PipelineContext
from fingerspell.core.types import ClassificationResult, HandJoint, RawPoint
from fingerspell.core.pipeline import Pipeline
from fingerspell.modules.control.throttler import InferenceThrottler
from fingerspell.modules.detection.landmark_normalizer import LandmarkNormalizer
from fingerspell.modules.recognition.confidence_gate import ClassificationGate
from fingerspell.modules.recognition.feature_encoder import FEATURE_SHAPE, FeatureEncoder
from fingerspell.modules.recognition.stability_filter import StabilityFilter


def make_observation(joints=None, confidence=1.0) -> dict:
    """
    Create a raw detector observation.

    Args:
        joints: joints to include (default: all 21)
        confidence: per-joint confidence

    Returns:
        dict HandJoint -> RawPoint with distinct, in-range coordinates
    """
    joints = list(HandJoint) if joints is None else joints
    return {
        joint: RawPoint(0.2 + 0.02 * int(joint), 0.3 + 0.01 * int(joint), confidence)
        for joint in joints
    }


def blank_frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


class ManualTimer:
    """Handle returned by ManualScheduler.call_later()."""

    def __init__(self, due, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return not (self.cancelled or self.fired)

    def fire_anyway(self):
        """Run the callback even if cancelled (a cancel that lost the race)."""
        self.fired = True
        self.callback(*self.args)


class ManualScheduler:
    """Deterministic stand-in for TimerScheduler driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = ManualTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if t.active and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            timer.callback(*timer.args)
        self.now = target

    @property
    def armed(self):
        return [t for t in self.timers if t.active]


class FakeClock:
    """Callable clock for InferenceThrottler."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeDetector:
    """Returns a preset observation, or raises a preset error."""

    def __init__(self, observation=None):
        self.observation = observation
        self.error = None
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.observation


class FakeClassifier:
    """Returns ``ClassificationResult(label, {label: confidence})``."""

    def __init__(self, label="A", confidence=0.95, input_shape=FEATURE_SHAPE):
        self.label = label
        self.confidence = confidence
        self.input_shape = tuple(input_shape)
        self.fail = False
        self.calls = 0
        self.last_features = None

    def predict(self, features):
        self.calls += 1
        self.last_features = features
        if self.fail:
            raise ClassifierError("model unavailable")
        return ClassificationResult(self.label, {self.label: self.confidence})


class RecordingWriter:
    """StableWriter stand-in that remembers every published label."""

    def __init__(self):
        self.published = []

    def publish(self, label):
        self.published.append(label)


class PipelineHarness:
    """A Pipeline built from fakes, with handles on every collaborator."""

    def __init__(self, config=None, observation="default"):
        self.detector = FakeDetector(make_observation() if observation == "default" else observation)
        self.classifier = FakeClassifier()
        self.scheduler = ManualScheduler()
        self.clock = FakeClock()
        self.context = PipelineContext()
        self.throttler = InferenceThrottler(interval_s=1.0, clock=self.clock)
        self.stability_filter = StabilityFilter(
            self.context.stable_writer(), quiescence_s=3.0, scheduler=self.scheduler
        )
        self.pipeline = Pipeline(
            detector=self.detector,
            normalizer=LandmarkNormalizer(),
            encoder=FeatureEncoder(),
            classifier=self.classifier,
            gate=ClassificationGate(0.9),
            stability_filter=self.stability_filter,
            throttler=self.throttler,
            context=self.context,
            config=config,
        )

    @property
    def state(self):
        return self.context.state

    def step(self, seconds=1.0):
        """Advance wall time and timers, then process one frame."""
        self.clock.advance(seconds)
        self.scheduler.advance(seconds)
        return self.pipeline.process_frame(blank_frame())


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def harness():
    return PipelineHarness()
