"""
Threaded camera capture acting as the pipeline's frame source.

The capture thread keeps the latest frame for the preview and hands every
frame to an optional callback (the pipeline's submit_frame), which decides
on its own whether to use or drop it.
"""

import time
import threading
import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraManager:
    """Camera capture with threaded frame acquisition."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._buffer_size = config.get("buffer_size", 1)
        self._warmup_frames = config.get("warmup_frames", 5)

        self._cap = None
        self._frame = None
        self._frame_id = 0
        self._lock = threading.Lock()
        self._running = False
        self._thread = None
        self._on_frame = None
        self._callback_errors = 0

    def open(self) -> bool:
        """Open the camera device."""
        backend_map = {
            "v4l2": cv2.CAP_V4L2,
            "avfoundation": cv2.CAP_AVFOUNDATION,
            "auto": cv2.CAP_ANY,
        }
        backend = backend_map.get(self._backend, cv2.CAP_ANY)

        self._cap = cv2.VideoCapture(self._device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s", self._device_id, self._backend)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._buffer_size)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Camera opened: %dx%d (requested %dx%d @ %d)",
                    actual_w, actual_h, self._width, self._height, self._fps)

        # Let auto-exposure settle
        for _ in range(self._warmup_frames):
            self._cap.read()

        return True

    def set_frame_callback(self, callback):
        """Register ``callback(frame, timestamp)``, run on the capture thread."""
        self._on_frame = callback

    def start_async(self):
        """Start threaded frame capture."""
        if self._running or self._cap is None:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, name="camera-capture", daemon=True)
        self._thread.start()
        logger.info("Async capture started")

    def _capture_loop(self):
        """Background capture thread - holds the latest frame, feeds the callback."""
        while self._running:
            ret, frame = self._cap.read()
            if not ret or frame is None:
                time.sleep(0.001)
                continue

            timestamp = time.monotonic()
            with self._lock:
                self._frame = frame
                self._frame_id += 1

            if self._on_frame is not None:
                try:
                    self._on_frame(frame, timestamp)
                except Exception as e:
                    self._callback_errors += 1
                    logger.error("Frame callback failed: %s", e)

    def read(self):
        """Get the latest frame (non-blocking).

        Returns:
            tuple: (frame_id, numpy array) or (None, None) if no frame yet
        """
        with self._lock:
            if self._frame is not None:
                return self._frame_id, self._frame.copy()
            return None, None

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self):
        """Stop async capture and release the camera."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._cap:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
