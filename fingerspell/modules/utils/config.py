"""
Centralized configuration manager.
Loads a YAML file over built-in defaults and provides dotted access.
"""

import os
import copy
import yaml
import logging

from fingerspell.core.errors import ConfigError

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "backend": "auto",
        "buffer_size": 1,
        "warmup_frames": 5,
    },
    "detector": {
        "model_complexity": 0,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "classifier": {
        "model_path": "models/weights/asl_letters.pt",
        "labels": None,
        "labels_path": None,
        "input_shape": [1, 3, 21],
        "apply_softmax": True,
        "device": "cpu",
    },
    "pipeline": {
        "inference_interval_s": 1.0,
        "confidence_threshold": 0.9,
        "stability_window_s": 3.0,
        "index_tip_min_confidence": 0.2,
        "min_present_joints": 21,
        "missing_hand_policy": "hold",
    },
    "visualization": {
        "enabled": True,
        "window_name": "ASL Fingerspelling",
        "mirror_preview": True,
        "show_skeleton": True,
        "show_immediate": True,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: fields checked for type on load
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
    },
    "classifier": {
        "model_path": str,
        "apply_softmax": bool,
    },
    "pipeline": {
        "inference_interval_s": float,
        "confidence_threshold": float,
        "stability_window_s": float,
        "index_tip_min_confidence": float,
        "min_present_joints": int,
        "missing_hand_policy": str,
    },
}

MISSING_HAND_POLICIES = ("hold", "restart")

_PIPELINE_NUMBERS = (
    "inference_interval_s",
    "confidence_threshold",
    "stability_window_s",
    "index_tip_min_confidence",
)


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration: built-in defaults overlaid with an optional YAML file."""

    def __init__(self, data: dict = None):
        self._data = _deep_merge(copy.deepcopy(DEFAULTS), data or {})

    def load(self, config_path=None):
        """Load configuration from a YAML file.

        A missing file is not an error: the defaults are kept.

        Raises:
            ConfigError: the file is not valid YAML or a value is out of range
        """
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                user_data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            user_data = {}
        except yaml.YAMLError as e:
            raise ConfigError("Invalid YAML in %s: %s" % (config_path, e)) from e

        if not isinstance(user_data, dict):
            raise ConfigError("Top level of %s must be a mapping" % config_path)

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), user_data)
        self.validate()
        return self

    def validate(self):
        """Warn on type mismatches; raise on values the pipeline cannot run with."""
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                raise ConfigError("Section '%s' should be a mapping" % section_name)
            for field_name, expected_type in fields.items():
                value = section.get(field_name)
                if value is None:
                    continue
                # Allow int where float is expected
                if expected_type is float and isinstance(value, (int, float)):
                    continue
                if not isinstance(value, expected_type):
                    logger.warning(
                        "Config validation: %s.%s: expected %s, got %s (%r)",
                        section_name, field_name, expected_type.__name__,
                        type(value).__name__, value,
                    )

        # The pipeline cannot fall back from a bad timing or threshold value
        pipeline = self.pipeline
        for field_name in _PIPELINE_NUMBERS:
            value = pipeline.get(field_name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError("pipeline.%s must be a number, got %r" % (field_name, value))
        joints = pipeline.get("min_present_joints")
        if isinstance(joints, bool) or not isinstance(joints, int) or not 1 <= joints <= 21:
            raise ConfigError("pipeline.min_present_joints must be an integer in [1, 21]")
        if pipeline["inference_interval_s"] < 0:
            raise ConfigError("pipeline.inference_interval_s must be >= 0")
        if pipeline["stability_window_s"] <= 0:
            raise ConfigError("pipeline.stability_window_s must be > 0")
        if not 0.0 <= pipeline["confidence_threshold"] <= 1.0:
            raise ConfigError("pipeline.confidence_threshold must be within [0, 1]")
        if pipeline["missing_hand_policy"] not in MISSING_HAND_POLICIES:
            raise ConfigError(
                "pipeline.missing_hand_policy must be one of %s" % (MISSING_HAND_POLICIES,)
            )

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'pipeline.confidence_threshold'."""
        value = self._data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value):
        """Set a nested value (used for command-line overrides)."""
        keys = key_path.split(".")
        section = self._data
        for key in keys[:-1]:
            section = section.setdefault(key, {})
        section[keys[-1]] = value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {})

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def detector(self) -> dict:
        return self._data.get("detector", {})

    @property
    def classifier(self) -> dict:
        return self._data.get("classifier", {})

    @property
    def pipeline(self) -> dict:
        return self._data.get("pipeline", {})

    @property
    def visualization(self) -> dict:
        return self._data.get("visualization", {})

    @property
    def logging(self) -> dict:
        return self._data.get("logging", {})

    @property
    def base_dir(self) -> str:
        return _BASE_DIR
