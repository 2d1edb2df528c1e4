"""
Inference pipeline orchestrator.

One pass per admitted frame:
    HandDetector -> LandmarkNormalizer -> FeatureEncoder
    -> LetterClassifier -> ClassificationGate -> StabilityFilter

Frames enter through InferenceThrottler, which keeps at most one pass in
flight and at most one pass per interval. Outputs are published through
the context's writer capabilities, never written directly.

Failure handling per pass:
    - no hand / detector error / too few joints: keypoints cleared,
      immediate label set to the sentinel, stability timer untouched
      (unless the missing-hand policy is "restart")
    - classifier error: logged, pass aborted, immediate label untouched
    - contract and arity errors: propagate
"""

import time
import logging

from fingerspell.core.errors import ClassifierError, DetectorError
from fingerspell.core.events import Events
from fingerspell.core.types import NUM_JOINTS, SENTINEL, PassResult, PassStatus
from fingerspell.modules.control.inference_worker import InferenceWorker
from fingerspell.modules.utils.logger import log_timing
from fingerspell.modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


class Pipeline:
    """Composable fingerspelling inference pipeline."""

    def __init__(
        self,
        detector,
        normalizer,
        encoder,
        classifier,
        gate,
        stability_filter,
        throttler,
        context,
        performance_monitor=None,
        config=None,
    ):
        self._detector = detector
        self._normalizer = normalizer
        self._encoder = encoder
        self._classifier = classifier
        self._gate = gate
        self._filter = stability_filter
        self._throttler = throttler
        self._context = context
        self._writer = context.immediate_writer()
        self._perf = performance_monitor or PerformanceMonitor()

        config = config or {}
        self._min_present_joints = config.get("min_present_joints", NUM_JOINTS)
        self._missing_hand_policy = config.get("missing_hand_policy", "hold")

        # Fatal on mismatch: a wrong layout would misclassify every frame
        self._encoder.check_contract(self._classifier.input_shape)

        self._worker = None

        # Stats
        self._passes = 0
        self._no_hand_passes = 0
        self._classifier_errors = 0

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process_frame(self, frame, now: float = None):
        """Throttle, then run a pass synchronously on the calling thread.

        Returns:
            PassResult, or None if the frame was dropped
        """
        admitted = self._throttler.try_acquire(now)
        self._perf.record_frame(admitted)
        if not admitted:
            return None
        try:
            return self.run_pass(frame)
        finally:
            self._throttler.release()

    def submit_frame(self, frame, timestamp: float = None) -> bool:
        """Throttle, then hand the frame to the background worker.

        Called from the camera capture thread; never blocks.

        Returns:
            True if a pass was scheduled for this frame
        """
        if self._worker is None or not self._worker.is_running:
            raise RuntimeError("Pipeline worker not started")

        admitted = self._throttler.try_acquire(timestamp)
        self._perf.record_frame(admitted)
        if not admitted:
            return False
        if not self._worker.offer(frame):
            # Slot is held by the throttler, so this only happens on misuse
            self._throttler.release()
            return False
        return True

    def start(self):
        """Start the background worker used by submit_frame()."""
        if self._worker is None:
            self._worker = InferenceWorker(
                handler=self.run_pass,
                on_done=self._throttler.release,
            )
        self._worker.start()

    def stop(self):
        """Stop the worker and cancel any pending stability timer."""
        if self._worker is not None:
            self._worker.stop()
        self._filter.shutdown()

    def wait_idle(self, timeout: float = None) -> bool:
        """Block until the worker has finished its current pass."""
        if self._worker is None:
            return True
        return self._worker.wait_idle(timeout)

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def run_pass(self, frame) -> PassResult:
        """Execute one full pass on an already-admitted frame."""
        result = PassResult(PassStatus.NO_HAND, timestamp=time.time())
        started = time.perf_counter()
        with self._perf.measure("pass"):
            self._run_stages(frame, result)

        result.latency_ms = (time.perf_counter() - started) * 1000
        self._passes += 1
        self._perf.record_pass()
        return result

    def _run_stages(self, frame, result: PassResult):
        # --- 1. Landmark detection ---
        with self._perf.measure("detection"):
            try:
                raw = self._detector.detect(frame)
            except DetectorError as e:
                logger.debug("Detector failed: %s", e)
                raw = None

        present = self._normalizer.present_count(raw)
        if raw is None or present < self._min_present_joints:
            self._publish_no_hand(result, present)
            return

        # --- 2. Normalization ---
        pose = self._normalizer.normalize(raw)
        if len(pose) != NUM_JOINTS:
            self._publish_no_hand(result, len(pose))
            return

        result.pose = pose
        result.index_finger_tip = self._normalizer.index_finger_tip(pose)
        self._writer.publish_keypoints(
            self._normalizer.keypoints(pose), result.index_finger_tip
        )

        # --- 3. Encoding ---
        with self._perf.measure("encoding"):
            features = self._encoder.encode(pose)

        # --- 4. Classification ---
        with self._perf.measure("classification"):
            try:
                classification = self._classifier.predict(features)
            except ClassifierError as e:
                self._classifier_errors += 1
                logger.warning("Classifier error, keeping previous label: %s", e)
                self._context.event_bus.emit(Events.CLASSIFIER_ERROR, error=str(e))
                result.status = PassStatus.CLASSIFIER_ERROR
                return

        # --- 5. Gate + stabilization ---
        label = self._gate.decide(classification)
        result.status = PassStatus.CLASSIFIED
        result.result = classification
        result.immediate_label = label

        logger.debug("Predicted %s (%.2f) -> %s",
                     classification.label, classification.confidence, label)
        self._writer.publish_label(label, result.timestamp,
                                   level=self._gate.confidence_level(classification.confidence))
        self._filter.submit(label)

    def _publish_no_hand(self, result: PassResult, present: int):
        self._no_hand_passes += 1
        if present:
            logger.debug("Not enough keypoints for classification (%d)", present)
        result.immediate_label = SENTINEL
        self._writer.clear_hand()
        self._writer.publish_label(SENTINEL, result.timestamp)
        if self._missing_hand_policy == "restart":
            self._filter.submit(SENTINEL)

    # ------------------------------------------------------------------
    # Presentation operations
    # ------------------------------------------------------------------

    @log_timing
    def reset(self):
        """Clear immediate and stable labels back to the sentinel."""
        self._filter.reset()
        self._context.request_reset()
        logger.info("Predictions reset")

    @property
    def state(self):
        return self._context.state

    @property
    def stats(self) -> dict:
        stats = {
            "passes": self._passes,
            "no_hand_passes": self._no_hand_passes,
            "classifier_errors": self._classifier_errors,
            "stabilizations": self._filter.stabilizations,
        }
        stats.update(self._throttler.stats)
        stats.update(self._gate.stats)
        return stats
