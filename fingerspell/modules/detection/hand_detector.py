"""
MediaPipe Hands wrapper producing raw joint observations.

Output convention (what LandmarkNormalizer expects):
    - one hand at most
    - coordinates normalized to [0, 1], un-mirrored, origin at the
      bottom-left corner (MediaPipe's y axis is flipped accordingly)
    - joints projected outside the frame are reported as absent
    - per-joint confidence is the hand detection score
"""

import logging
from typing import Optional

import cv2
import numpy as np
import mediapipe as mp

from fingerspell.core.errors import DetectorError
from fingerspell.core.types import HandJoint, RawObservation, RawPoint

logger = logging.getLogger(__name__)


class HandDetector:
    """MediaPipe Hands wrapper returning ``{HandJoint: RawPoint}`` mappings."""

    def __init__(self, config: dict):
        self._model_complexity = config.get("model_complexity", 0)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)
        self._static_image_mode = config.get("static_image_mode", False)

        if not hasattr(mp, "solutions"):
            raise DetectorError(
                "Installed mediapipe build does not provide mp.solutions.hands"
            )
        self._mp_hands = mp.solutions.hands
        self._hands = None
        self._initialized = False

    def initialize(self):
        """Initialize MediaPipe Hands solution."""
        self._hands = self._mp_hands.Hands(
            static_image_mode=self._static_image_mode,
            model_complexity=self._model_complexity,
            max_num_hands=1,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        self._initialized = True
        logger.info(
            "MediaPipe Hands initialized (complexity=%d, detect_conf=%.2f, "
            "track_conf=%.2f)",
            self._model_complexity, self._min_detect_conf, self._min_track_conf,
        )

    def detect(self, frame_bgr: np.ndarray) -> Optional[RawObservation]:
        """Locate the hand joints in a BGR frame.

        Returns:
            mapping HandJoint -> RawPoint, or None when no hand was found

        Raises:
            DetectorError: MediaPipe failed on this frame
        """
        if not self._initialized:
            self.initialize()

        try:
            rgb_frame = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            rgb_frame.flags.writeable = False
            results = self._hands.process(rgb_frame)
        except Exception as e:
            raise DetectorError("hand detection failed: %s" % e) from e

        if not results or not results.multi_hand_landmarks:
            return None

        score = 1.0
        if results.multi_handedness and results.multi_handedness[0].classification:
            score = float(results.multi_handedness[0].classification[0].score)

        return self.to_observation(results.multi_hand_landmarks[0].landmark, score)

    @staticmethod
    def to_observation(landmarks, score: float) -> RawObservation:
        """Convert MediaPipe normalized landmarks to a raw observation."""
        confidence = max(0.0, min(1.0, score))
        observation = {}
        for joint, lm in zip(HandJoint, landmarks):
            x = float(lm.x)
            y = 1.0 - float(lm.y)
            if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
                continue
            observation[joint] = RawPoint(x, y, confidence)
        return observation

    def close(self):
        """Release MediaPipe resources."""
        if self._hands:
            self._hands.close()
            self._hands = None
            self._initialized = False
            logger.info("MediaPipe Hands closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
