"""
Exception taxonomy for the fingerspelling pipeline.

Per-frame failures (detector, classifier) are recovered inside the
pipeline; contract and arity errors are fatal and always propagate.
"""


class FingerspellError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(FingerspellError):
    """A configuration value is missing or out of range."""


class DetectorError(FingerspellError):
    """The landmark detector failed on a frame."""


class ClassifierError(FingerspellError):
    """The classifier could not be loaded or failed to predict."""


class FeatureContractError(FingerspellError):
    """Encoder output and classifier input disagree on shape or layout."""


class PoseArityError(FingerspellError):
    """A hand pose does not hold exactly one landmark per joint."""
