"""
Tests for Config and command-line overrides
============================================
"""

import pytest

from fingerspell.core.errors import ConfigError
from fingerspell.modules.utils.config import DEFAULTS, Config


@pytest.fixture
def write_yaml(tmp_path):
    def _write(text):
        path = tmp_path / "config.yaml"
        path.write_text(text)
        return str(path)
    return _write


class TestConfig:
    """YAML over defaults."""

    def test_defaults(self):
        config = Config()

        assert config.pipeline["inference_interval_s"] == 1.0
        assert config.pipeline["confidence_threshold"] == 0.9
        assert config.pipeline["stability_window_s"] == 3.0
        assert config.pipeline["missing_hand_policy"] == "hold"
        assert config.classifier["input_shape"] == [1, 3, 21]

    def test_defaults_not_shared(self):
        config = Config()
        config.set("pipeline.confidence_threshold", 0.5)

        assert DEFAULTS["pipeline"]["confidence_threshold"] == 0.9
        assert Config().pipeline["confidence_threshold"] == 0.9

    def test_load_merges_over_defaults(self, write_yaml):
        path = write_yaml("pipeline:\n  confidence_threshold: 0.8\n")
        config = Config().load(path)

        assert config.get("pipeline.confidence_threshold") == 0.8
        assert config.get("pipeline.stability_window_s") == 3.0

    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "nope.yaml"))
        assert config.get("camera.device_id") == 0

    def test_empty_file(self, write_yaml):
        config = Config().load(write_yaml(""))
        assert config.get("camera.width") == 640

    def test_invalid_yaml(self, write_yaml):
        with pytest.raises(ConfigError):
            Config().load(write_yaml("pipeline: [unclosed\n"))

    def test_top_level_must_be_mapping(self, write_yaml):
        with pytest.raises(ConfigError):
            Config().load(write_yaml("- a\n- b\n"))

    @pytest.mark.parametrize("yaml_text", [
        "pipeline:\n  inference_interval_s: -1\n",
        "pipeline:\n  stability_window_s: 0\n",
        "pipeline:\n  confidence_threshold: 1.5\n",
        "pipeline:\n  missing_hand_policy: forget\n",
        "pipeline:\n  min_present_joints: 0\n",
        "pipeline:\n  min_present_joints: 22\n",
    ])
    def test_out_of_range_values_rejected(self, write_yaml, yaml_text):
        with pytest.raises(ConfigError):
            Config().load(write_yaml(yaml_text))

    @pytest.mark.parametrize("yaml_text", [
        "pipeline:\n  confidence_threshold: high\n",
        "pipeline:\n  inference_interval_s: \"1\"\n",
        "pipeline:\n  stability_window_s: true\n",
        "pipeline:\n  index_tip_min_confidence: null\n",
        "pipeline:\n  min_present_joints: 20.5\n",
    ])
    def test_non_numeric_pipeline_values_rejected(self, write_yaml, yaml_text):
        with pytest.raises(ConfigError):
            Config().load(write_yaml(yaml_text))

    def test_type_mismatch_only_warns(self, write_yaml, caplog):
        config = Config().load(write_yaml("camera:\n  width: wide\n"))

        assert config.get("camera.width") == "wide"
        assert "expected int" in caplog.text

    def test_get_default_for_unknown_key(self):
        assert Config().get("nope.nothing", "fallback") == "fallback"

    def test_get_section(self):
        assert Config().get_section("logging")["level"] == "INFO"

    def test_repository_config_loads(self):
        config = Config().load()
        assert config.pipeline["stability_window_s"] == 3.0


class TestCommandLine:
    """parse_args / apply_overrides."""

    @pytest.fixture
    def main_module(self):
        pytest.importorskip("cv2")
        pytest.importorskip("mediapipe")
        pytest.importorskip("torch")
        from fingerspell import main
        return main

    def test_overrides_applied(self, main_module):
        args = main_module.parse_args(["--threshold", "0.75", "--interval", "0.5",
                                       "--camera", "2"])
        config = main_module.apply_overrides(Config(), args)

        assert config.get("pipeline.confidence_threshold") == 0.75
        assert config.get("pipeline.inference_interval_s") == 0.5
        assert config.get("camera.device_id") == 2

    def test_unset_options_keep_config(self, main_module):
        config = main_module.apply_overrides(Config(), main_module.parse_args([]))
        assert config.get("pipeline.confidence_threshold") == 0.9

    def test_invalid_override_rejected(self, main_module):
        args = main_module.parse_args(["--threshold", "2"])
        with pytest.raises(ConfigError):
            main_module.apply_overrides(Config(), args)

    def test_build_pipeline_from_config(self, main_module):
        from fingerspell.core.state import PipelineContext
        from conftest import (
            FakeClassifier, FakeClock, FakeDetector, ManualScheduler,
            blank_frame, make_observation,
        )

        config = Config({"pipeline": {"stability_window_s": 2.0}})
        context = PipelineContext()
        scheduler = ManualScheduler()
        pipeline = main_module.build_pipeline(
            config, context, FakeDetector(make_observation()), FakeClassifier(),
            scheduler=scheduler, clock=FakeClock(),
        )

        pipeline.process_frame(blank_frame())
        assert context.state.immediate_label == "A"
        scheduler.advance(2.0)
        assert context.state.stable_label == "A"

    def test_main_returns_2_on_bad_config(self, main_module, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("pipeline:\n  stability_window_s: -3\n")

        assert main_module.main(["--config", str(path)]) == 2

    def test_main_returns_2_on_non_numeric_threshold(self, main_module, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("pipeline:\n  confidence_threshold: high\n")

        assert main_module.main(["--config", str(path)]) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
