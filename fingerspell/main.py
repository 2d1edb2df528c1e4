#!/usr/bin/env python3
"""
ASL Fingerspelling - live camera letter recognition.
Application entry point: wires the pipeline and runs the UI loop.

Threads:
    camera-capture    reads frames, offers them to the pipeline
    inference-worker  runs at most one pass at a time
    timer threads     stability windows
    main (UI)         drains state updates, renders the overlay

Usage:
    fingerspell                          # default config/config.yaml
    fingerspell --model letters.pt       # use a specific TorchScript model
    fingerspell --threshold 0.8 --interval 0.5
    fingerspell --headless               # log letters, no preview window
"""

import time
import signal
import argparse
import logging

import cv2

from fingerspell import __version__
from fingerspell.core.errors import FingerspellError
from fingerspell.core.pipeline import Pipeline
from fingerspell.core.scheduler import UiDispatcher
from fingerspell.core.state import PipelineContext
from fingerspell.modules.capture.camera_manager import CameraManager
from fingerspell.modules.control.throttler import InferenceThrottler
from fingerspell.modules.detection.hand_detector import HandDetector
from fingerspell.modules.detection.landmark_normalizer import LandmarkNormalizer
from fingerspell.modules.recognition.confidence_gate import ClassificationGate
from fingerspell.modules.recognition.feature_encoder import FeatureEncoder
from fingerspell.modules.recognition.letter_classifier import LetterClassifier
from fingerspell.modules.recognition.stability_filter import StabilityFilter
from fingerspell.modules.utils.config import Config
from fingerspell.modules.utils.logger import PredictionLogger, setup_logging
from fingerspell.modules.utils.performance_monitor import PerformanceMonitor
from fingerspell.modules.visualization.dashboard import Dashboard

logger = logging.getLogger(__name__)


def build_pipeline(config: Config, context: PipelineContext, detector, classifier,
                   performance_monitor=None, scheduler=None, clock=None) -> Pipeline:
    """Assemble a Pipeline from configuration and the two external capabilities."""
    pipeline_cfg = config.pipeline
    throttler_kwargs = {"interval_s": pipeline_cfg["inference_interval_s"]}
    if clock is not None:
        throttler_kwargs["clock"] = clock

    return Pipeline(
        detector=detector,
        normalizer=LandmarkNormalizer(pipeline_cfg["index_tip_min_confidence"]),
        encoder=FeatureEncoder(),
        classifier=classifier,
        gate=ClassificationGate(pipeline_cfg["confidence_threshold"]),
        stability_filter=StabilityFilter(
            context.stable_writer(),
            quiescence_s=pipeline_cfg["stability_window_s"],
            scheduler=scheduler,
        ),
        throttler=InferenceThrottler(**throttler_kwargs),
        context=context,
        performance_monitor=performance_monitor,
        config=pipeline_cfg,
    )


class FingerspellApp:
    """Owns the camera, the pipeline and the preview window."""

    def __init__(self, config: Config, headless: bool = False):
        self._config = config
        self._headless = headless or not config.get("visualization.enabled", True)
        self._running = False

        self._dispatcher = UiDispatcher()
        self._context = PipelineContext(dispatcher=self._dispatcher)
        self._perf = PerformanceMonitor()
        self._predictions = PredictionLogger(self._context.event_bus)

        self._camera = CameraManager(config.camera)
        self._detector = HandDetector(config.detector)
        self._classifier = LetterClassifier(config.classifier)
        if not self._classifier.is_loaded:
            logger.warning("No letter model loaded; hand tracking only")

        self._pipeline = build_pipeline(
            config, self._context, self._detector, self._classifier, self._perf,
        )
        self._dashboard = Dashboard(config.visualization)

        logger.info("FingerspellApp initialized (headless=%s)", self._headless)

    def start(self) -> bool:
        """Open the camera and run the UI loop until quit."""
        if not self._camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            return False

        self._detector.initialize()
        self._pipeline.start()
        self._camera.set_frame_callback(self._pipeline.submit_frame)
        self._camera.start_async()

        self._running = True
        try:
            if self._headless:
                self._run_headless()
            else:
                self._run_ui_loop()
        finally:
            self._shutdown()
        return True

    def _run_ui_loop(self):
        window_name = self._config.get("visualization.window_name", "ASL Fingerspelling")

        while self._running:
            self._dispatcher.run_pending()

            _, frame = self._camera.read()
            if frame is not None:
                stats = {
                    "passes_per_second": self._perf.passes_per_second,
                    "pass_latency_ms": self._perf.pass_latency_ms,
                }
                canvas = self._dashboard.render(frame, self._context.state.snapshot(), stats)
                cv2.imshow(window_name, canvas)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                self._running = False
            elif key == ord("c"):
                self._pipeline.reset()
            elif key == ord("p"):
                self._perf.print_report()
                logger.info("Pipeline stats: %s", self._pipeline.stats)

    def _run_headless(self):
        while self._running:
            self._dispatcher.run_pending()
            time.sleep(0.02)

    def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        self._camera.stop()
        self._pipeline.stop()
        self._dispatcher.run_pending()
        self._detector.close()
        if not self._headless:
            cv2.destroyAllWindows()

        self._perf.print_report()
        logger.info("Spelled: %s", self._predictions.spelled or "(nothing)")
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="ASL fingerspelling recognition from a live camera"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--model", type=str, default=None, help="TorchScript letter model")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Confidence a letter must exceed to be shown")
    parser.add_argument("--interval", type=float, default=None,
                        help="Minimum seconds between inference passes")
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, ...")
    parser.add_argument("--headless", action="store_true", help="No preview window")
    return parser.parse_args(argv)


def apply_overrides(config: Config, args):
    """Copy command-line overrides into the configuration."""
    overrides = {
        "camera.device_id": args.camera,
        "classifier.model_path": args.model,
        "pipeline.confidence_threshold": args.threshold,
        "pipeline.inference_interval_s": args.interval,
        "logging.level": args.log_level,
    }
    for key, value in overrides.items():
        if value is not None:
            config.set(key, value)
    config.validate()
    return config


def main(argv=None):
    args = parse_args(argv)

    try:
        config = apply_overrides(Config().load(config_path=args.config), args)
    except FingerspellError as e:
        print("Invalid configuration: %s" % e)
        return 2

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  ASL FINGERSPELLING  v%s", __version__)
    logger.info("=" * 60)

    try:
        app = FingerspellApp(config, headless=args.headless)
    except FingerspellError as e:
        logger.error("Start-up failed: %s", e)
        return 1

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1


if __name__ == "__main__":
    raise SystemExit(main())
