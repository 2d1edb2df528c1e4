"""
Shared domain types for the fingerspelling pipeline.

Centralizes the joint enumeration, landmark containers and classification
result used across modules so every stage agrees on the same layout.
"""

from enum import IntEnum
from typing import Dict, List, NamedTuple, Optional, Tuple

# Label published when there is no classification yet or it was rejected.
SENTINEL = "..."


# =============================================================================
# Joints
# =============================================================================

class HandJoint(IntEnum):
    """The 21 hand joints in canonical order.

    The order must match the one the classifier was trained with.
    """
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    LITTLE_MCP = 17
    LITTLE_PIP = 18
    LITTLE_DIP = 19
    LITTLE_TIP = 20


NUM_JOINTS = len(HandJoint)

# Bones drawn by the overlay, one chain per finger starting at the wrist
HAND_SKELETON: List[Tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 4),          # thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # index
    (0, 9), (9, 10), (10, 11), (11, 12),     # middle
    (0, 13), (13, 14), (14, 15), (15, 16),   # ring
    (0, 17), (17, 18), (18, 19), (19, 20),   # little
]


# =============================================================================
# Points
# =============================================================================

class RawPoint(NamedTuple):
    """A detector observation in un-mirrored image space (origin bottom-left)."""
    x: float
    y: float
    confidence: float


class Landmark(NamedTuple):
    """One joint in normalized, mirrored image coordinates."""
    x: float
    y: float
    confidence: float

    @property
    def point(self) -> Tuple[float, float]:
        return (self.x, self.y)


MISSING_LANDMARK = Landmark(0.0, 0.0, 0.0)

# A full skeleton: always NUM_JOINTS landmarks in HandJoint order
HandPose = Tuple[Landmark, ...]

# Detector output: joints that were not recognized are simply absent
RawObservation = Dict[HandJoint, RawPoint]


# =============================================================================
# Classification
# =============================================================================

class ClassificationResult:
    """Container for one classifier prediction.

    ``confidence`` is always the probability of ``label``.
    """

    __slots__ = ("label", "probabilities", "confidence")

    def __init__(self, label: str, probabilities: Dict[str, float]):
        self.label = label
        self.probabilities = dict(probabilities)
        self.confidence = float(self.probabilities.get(label, 0.0))

    def __repr__(self):
        return f"ClassificationResult({self.label!r}, conf={self.confidence:.2f})"


class PassStatus:
    """Outcome of a single pipeline pass."""
    CLASSIFIED = "classified"
    NO_HAND = "no_hand"
    CLASSIFIER_ERROR = "classifier_error"


class PassResult:
    """Result of a single pipeline pass, mostly for callers and tests."""

    __slots__ = (
        "status", "pose", "result", "immediate_label",
        "index_finger_tip", "latency_ms", "timestamp",
    )

    def __init__(self, status: str, timestamp: float = 0.0):
        self.status = status
        self.pose: Optional[HandPose] = None
        self.result: Optional[ClassificationResult] = None
        self.immediate_label: Optional[str] = None
        self.index_finger_tip: Optional[Tuple[float, float]] = None
        self.latency_ms = 0.0
        self.timestamp = timestamp

    def __repr__(self):
        return f"PassResult({self.status}, label={self.immediate_label!r})"

    @property
    def hand_detected(self) -> bool:
        return self.pose is not None
