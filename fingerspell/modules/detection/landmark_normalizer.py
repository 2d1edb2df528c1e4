"""
Raw detector output -> fixed-arity, mirrored 21-point hand pose.

The detector reports joints in un-mirrored image space with the origin at
the bottom-left corner and may omit joints it could not locate. The
training data was recorded from a front camera, so both axes are flipped
to match its coordinate convention. Missing joints become (0, 0, 0).
"""

import logging
from typing import List, Optional, Tuple

from fingerspell.core.types import (
    HandJoint, HandPose, Landmark, MISSING_LANDMARK, RawObservation,
)

logger = logging.getLogger(__name__)

# Index fingertip is only published above this confidence
DEFAULT_INDEX_TIP_MIN_CONFIDENCE = 0.2


class LandmarkNormalizer:
    """Maps raw detector observations onto the canonical HandPose layout."""

    def __init__(self, index_tip_min_confidence: float = DEFAULT_INDEX_TIP_MIN_CONFIDENCE):
        self._index_tip_min_confidence = index_tip_min_confidence

    def normalize(self, raw: RawObservation) -> HandPose:
        """Build a HandPose from a raw observation.

        Args:
            raw: mapping HandJoint -> RawPoint; absent joints are allowed

        Returns:
            tuple of exactly 21 Landmarks in HandJoint order
        """
        landmarks = []
        for joint in HandJoint:
            point = raw.get(joint)
            if point is None:
                landmarks.append(MISSING_LANDMARK)
            else:
                landmarks.append(Landmark(
                    x=1.0 - float(point.x),
                    y=1.0 - float(point.y),
                    confidence=float(point.confidence),
                ))
        return tuple(landmarks)

    @staticmethod
    def present_count(raw: Optional[RawObservation]) -> int:
        """Number of canonical joints the detector actually located."""
        if not raw:
            return 0
        return sum(1 for joint in HandJoint if raw.get(joint) is not None)

    @staticmethod
    def keypoints(pose: HandPose) -> List[Tuple[float, float]]:
        """Pose positions for the overlay, zero-filled joints included."""
        return [lm.point for lm in pose]

    def index_finger_tip(self, pose: HandPose) -> Optional[Tuple[float, float]]:
        """Index fingertip location, or None when it is not confident enough."""
        tip = pose[HandJoint.INDEX_TIP]
        if tip.confidence > self._index_tip_min_confidence:
            return tip.point
        return None

    @property
    def index_tip_min_confidence(self) -> float:
        return self._index_tip_min_confidence
