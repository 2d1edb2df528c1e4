"""
LetterClassifier - PyTorch wrapper around the trained letter model.

The model is loaded as TorchScript so no architecture code is needed
here. At load time a zero tensor of the declared input shape is pushed
through the model to verify the input/output contract:

    input  : float32 [1, 3, 21] (see FeatureEncoder)
    output : one score per label, in label order

A missing or unreadable model file is logged and leaves the classifier
unloaded; predict() then raises ClassifierError on every call. A model
that loads but violates the contract raises FeatureContractError, which
aborts start-up.
"""

import os
import logging
import numpy as np
import torch

from fingerspell.core.errors import ClassifierError, FeatureContractError
from fingerspell.core.types import ClassificationResult
from fingerspell.modules.recognition.feature_encoder import FEATURE_SHAPE

logger = logging.getLogger(__name__)

# Class index -> letter (must match training label order)
DEFAULT_LABELS = [chr(c) for c in range(ord("A"), ord("Z") + 1)]


def load_labels(path: str) -> list:
    """Read one label per line, skipping blank lines."""
    with open(path, "r") as f:
        return [line.strip() for line in f if line.strip()]


class LetterClassifier:
    """Maps a feature tensor to a letter and its probability distribution.

    Usage::

        classifier = LetterClassifier(config.classifier)
        result = classifier.predict(encoder.encode(pose))
    """

    def __init__(self, config: dict, model=None):
        """
        Args:
            config: ``classifier`` section from config.yaml
            model: already-loaded torch module; skips loading from disk
        """
        self._model_path = config.get("model_path", "models/weights/asl_letters.pt")
        labels_path = config.get("labels_path")
        if labels_path:
            self._labels = load_labels(labels_path)
        else:
            self._labels = list(config.get("labels") or DEFAULT_LABELS)
        self._input_shape = tuple(config.get("input_shape", FEATURE_SHAPE))
        self._apply_softmax = config.get("apply_softmax", True)
        self._device = config.get("device", "cpu")

        self._model = None
        self._load_error = None

        # Stats
        self._calls = 0
        self._errors = 0

        if model is not None:
            self._install(model)
        else:
            self._load()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self):
        """Load the TorchScript model, logging instead of raising on I/O errors."""
        if not os.path.isfile(self._model_path):
            self._load_error = "model file not found: %s" % self._model_path
            logger.error("Unable to load letter model: %s", self._load_error)
            return

        try:
            model = torch.jit.load(self._model_path, map_location=self._device)
        except Exception as e:
            self._load_error = str(e)
            logger.error("Unable to load letter model %s: %s", self._model_path, e)
            return

        self._install(model)
        logger.info("Letter model loaded from %s (%d labels, device=%s)",
                    self._model_path, len(self._labels), self._device)

    def _install(self, model):
        model.eval()
        self._verify_contract(model)
        self._model = model
        self._load_error = None

    def _verify_contract(self, model):
        """Run a zero tensor through the model and check the output size.

        Raises:
            FeatureContractError: input shape rejected or wrong output size
        """
        dummy = torch.zeros(self._input_shape, dtype=torch.float32, device=self._device)
        try:
            with torch.no_grad():
                output = model(dummy)
        except Exception as e:
            raise FeatureContractError(
                "Model rejected input of shape %s: %s" % (self._input_shape, e)
            ) from e

        num_scores = int(output.reshape(-1).shape[0])
        if num_scores != len(self._labels):
            raise FeatureContractError(
                "Model produces %d scores but %d labels are configured"
                % (num_scores, len(self._labels))
            )

    def reload_model(self):
        """Re-read the model file (e.g. after retraining) without restarting."""
        logger.info("Reloading letter model...")
        self._model = None
        self._load()
        return self.is_loaded

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, features: np.ndarray) -> ClassificationResult:
        """Classify one feature tensor.

        Args:
            features: float32 array of shape ``input_shape``

        Returns:
            ClassificationResult with the most probable label

        Raises:
            ClassifierError: model unavailable or inference failed
            FeatureContractError: tensor shape differs from ``input_shape``
        """
        if self._model is None:
            raise ClassifierError("letter model not loaded (%s)" % self._load_error)

        if tuple(features.shape) != self._input_shape:
            raise FeatureContractError(
                "Expected features of shape %s, got %s"
                % (self._input_shape, tuple(features.shape))
            )

        self._calls += 1
        try:
            tensor = torch.from_numpy(np.ascontiguousarray(features, dtype=np.float32))
            with torch.no_grad():
                scores = self._model(tensor.to(self._device)).reshape(-1)
                if self._apply_softmax:
                    scores = torch.softmax(scores, dim=0)
            probs = scores.cpu().numpy()
        except Exception as e:
            self._errors += 1
            raise ClassifierError("letter model inference failed: %s" % e) from e

        class_idx = int(np.argmax(probs))
        probabilities = {label: float(p) for label, p in zip(self._labels, probs)}
        return ClassificationResult(self._labels[class_idx], probabilities)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def input_shape(self) -> tuple:
        return self._input_shape

    @property
    def labels(self) -> list:
        return list(self._labels)

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def stats(self) -> dict:
        return {
            "loaded": self.is_loaded,
            "calls": self._calls,
            "errors": self._errors,
        }
