"""
Confidence gate between the classifier and the published label.

A wrong letter silently corrupts the spelled output while a missed one
only shows as a flickering placeholder, so the gate is strict: a result
is published only when its confidence is greater than the threshold.
"""

import logging

from fingerspell.core.types import SENTINEL, ClassificationResult

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.9


class ClassificationGate:
    """Decides between the predicted label and the sentinel."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, sentinel: str = SENTINEL):
        self._threshold = threshold
        self._sentinel = sentinel
        self._accepted = 0
        self._rejected = 0

    def decide(self, result: ClassificationResult) -> str:
        """Return the label to publish for a classification.

        Args:
            result: classifier output

        Returns:
            ``result.label`` if ``result.confidence > threshold``,
            otherwise the sentinel
        """
        if result.confidence > self._threshold:
            self._accepted += 1
            return result.label

        self._rejected += 1
        logger.debug("Rejected %s: confidence %.3f <= %.3f",
                     result.label, result.confidence, self._threshold)
        return self._sentinel

    def confidence_level(self, confidence: float) -> str:
        """Classify a confidence for visualization.

        Returns:
            'high' (above the threshold), 'medium' (>= 0.65) or 'low'
        """
        if confidence > self._threshold:
            return "high"
        elif confidence >= 0.65:
            return "medium"
        return "low"

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def stats(self) -> dict:
        total = self._accepted + self._rejected
        return {
            "accepted": self._accepted,
            "rejected": self._rejected,
            "accept_rate": round(self._accepted / max(total, 1), 3),
        }
