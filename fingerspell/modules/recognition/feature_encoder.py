"""
Feature encoding: 21-point hand pose -> classifier input tensor.

Tensor layout (float32, shape [1, 3, 21]):
    The pose is flattened joint by joint as
        x0, y0, c0, x1, y1, c1, ..., x20, y20, c20     (63 values)
    and the buffer is reshaped in C order to [1, 3, 21].

This layout is a contract with the trained classifier's input signature
and is reproduced exactly; it is not the same as stacking x, y and
confidence as separate channels.
"""

import logging
import numpy as np

from fingerspell.core.errors import FeatureContractError, PoseArityError
from fingerspell.core.types import NUM_JOINTS

logger = logging.getLogger(__name__)

CHANNELS = 3
FEATURE_SHAPE = (1, CHANNELS, NUM_JOINTS)
FEATURE_LENGTH = CHANNELS * NUM_JOINTS


class FeatureEncoder:
    """Converts a HandPose into the fixed-shape classifier input."""

    def __init__(self):
        self._shape = FEATURE_SHAPE

    @property
    def shape(self):
        return self._shape

    def encode(self, pose) -> np.ndarray:
        """Convert a 21-landmark pose into a [1, 3, 21] float32 tensor.

        Args:
            pose: sequence of exactly 21 (x, y, confidence) landmarks

        Returns:
            np.ndarray of shape (1, 3, 21), dtype float32

        Raises:
            PoseArityError: the pose does not hold exactly 21 landmarks
        """
        if len(pose) != NUM_JOINTS:
            raise PoseArityError(
                "Expected %d landmarks, got %d" % (NUM_JOINTS, len(pose))
            )

        buffer = np.empty(FEATURE_LENGTH, dtype=np.float32)
        for i, (x, y, confidence) in enumerate(pose):
            buffer[3 * i] = x
            buffer[3 * i + 1] = y
            buffer[3 * i + 2] = confidence
        return buffer.reshape(self._shape)

    def check_contract(self, input_shape):
        """Verify a classifier accepts exactly this encoder's output.

        Raises:
            FeatureContractError: shapes differ
        """
        expected = tuple(int(d) for d in input_shape)
        if expected != self._shape:
            raise FeatureContractError(
                "Classifier expects input %s but encoder produces %s"
                % (expected, self._shape)
            )
        logger.debug("Feature contract verified: %s", self._shape)
