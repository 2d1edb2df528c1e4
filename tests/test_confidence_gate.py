"""
Tests for ClassificationGate
=============================
"""

import pytest

from fingerspell.core.types import SENTINEL, ClassificationResult
from fingerspell.modules.recognition.confidence_gate import ClassificationGate


def result(label, confidence):
    return ClassificationResult(label, {label: confidence, "Z": 1.0 - confidence})


class TestClassificationResult:
    """Confidence is always the probability of the label."""

    def test_confidence_from_probabilities(self):
        r = ClassificationResult("A", {"A": 0.7, "B": 0.3})
        assert r.confidence == pytest.approx(0.7)

    def test_label_missing_from_distribution(self):
        assert ClassificationResult("Q", {"A": 1.0}).confidence == 0.0


class TestClassificationGate:
    """Strict threshold."""

    def test_above_threshold_publishes_label(self):
        gate = ClassificationGate(0.9)
        assert gate.decide(result("A", 0.95)) == "A"

    def test_exactly_threshold_rejected(self):
        gate = ClassificationGate(0.9)
        assert gate.decide(result("A", 0.9)) == SENTINEL

    def test_just_above_threshold_accepted(self):
        gate = ClassificationGate(0.9)
        assert gate.decide(result("A", 0.9 + 1e-6)) == "A"

    def test_low_confidence_rejected(self):
        gate = ClassificationGate(0.9)
        assert gate.decide(result("B", 0.5)) == SENTINEL

    def test_custom_sentinel(self):
        gate = ClassificationGate(0.9, sentinel="?")
        assert gate.decide(result("B", 0.1)) == "?"

    def test_stats(self):
        gate = ClassificationGate(0.9)
        gate.decide(result("A", 0.95))
        gate.decide(result("A", 0.5))
        gate.decide(result("A", 0.2))

        assert gate.stats == {"accepted": 1, "rejected": 2, "accept_rate": 0.333}

    @pytest.mark.parametrize("confidence,level", [
        (0.95, "high"),
        (0.9, "medium"),
        (0.65, "medium"),
        (0.64, "low"),
    ])
    def test_confidence_level(self, confidence, level):
        assert ClassificationGate(0.9).confidence_level(confidence) == level


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
