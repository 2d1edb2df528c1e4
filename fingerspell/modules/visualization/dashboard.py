"""
Preview overlay: hand skeleton, index fingertip, immediate and stable letters.

Reads a PipelineState snapshot only; never writes pipeline state.
"""

import logging
import cv2
import numpy as np

from fingerspell.core.types import HAND_SKELETON, SENTINEL

logger = logging.getLogger(__name__)


class Dashboard:
    """Renders the fingerspelling overlay on a BGR preview frame."""

    def __init__(self, config: dict):
        self._mirror = config.get("mirror_preview", True)
        self._show_skeleton = config.get("show_skeleton", True)
        self._show_immediate = config.get("show_immediate", True)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [255, 255, 255]))
        self._color_bone = tuple(colors.get("bone", [0, 165, 255]))
        self._color_joint = tuple(colors.get("joint", [255, 255, 255]))
        self._color_tip = tuple(colors.get("index_tip", [0, 0, 255]))
        self._color_stable = tuple(colors.get("stable", [255, 128, 0]))
        self._color_pending = tuple(colors.get("pending", [160, 160, 160]))
        self._level_colors = {
            "high": tuple(colors.get("high", [0, 255, 0])),
            "medium": tuple(colors.get("medium", [0, 255, 255])),
            "low": tuple(colors.get("low", [0, 0, 255])),
        }

    def render(self, frame: np.ndarray, state: dict, stats: dict = None) -> np.ndarray:
        """Render the overlay.

        Args:
            frame: raw BGR camera frame (un-mirrored)
            state: PipelineState.snapshot()
            stats: optional performance figures (passes_per_second, latency)

        Returns:
            New frame with the overlay drawn on it
        """
        # Keypoints are mirrored, so draw them on a mirrored preview
        canvas = cv2.flip(frame, 1) if self._mirror else frame.copy()
        h, w = canvas.shape[:2]

        keypoints = state.get("hand_keypoints") or []
        if self._show_skeleton and keypoints:
            self._draw_skeleton(canvas, keypoints, w, h)

        tip = state.get("index_finger_tip")
        if tip is not None:
            cv2.circle(canvas, self._to_pixel(tip, w, h), 10, self._color_tip, 2)

        if self._show_immediate:
            self._draw_immediate(canvas, state.get("immediate_label", SENTINEL),
                                 state.get("confidence_level"))

        self._draw_stable(canvas, w, h, state.get("stable_label", SENTINEL))

        if stats:
            self._draw_stats(canvas, w, stats)

        self._draw_help(canvas, h)
        return canvas

    def _to_pixel(self, point, w, h):
        x, y = point
        if not self._mirror:
            x = 1.0 - x
        return (int(x * w), int(y * h))

    def _draw_skeleton(self, frame, keypoints, w, h):
        """Draw bones then joints; zero-filled joints are skipped."""
        pixels = [self._to_pixel(p, w, h) for p in keypoints]
        present = [p != (0.0, 0.0) for p in keypoints]

        for start, end in HAND_SKELETON:
            if start < len(pixels) and end < len(pixels) and present[start] and present[end]:
                cv2.line(frame, pixels[start], pixels[end], self._color_bone, 2)

        for pixel, ok in zip(pixels, present):
            if ok:
                cv2.circle(frame, pixel, 3, self._color_joint, -1)

    def _draw_immediate(self, frame, label, level=None):
        """Draw 'Now: X' in the gate level color, grey when nothing was classified."""
        color = self._level_colors.get(level, self._color_pending)
        cv2.putText(frame, f"Now: {label}", (15, 35),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)

    def _draw_stable(self, frame, w, h, label):
        """Large stable letter centered near the bottom."""
        text = f"Detected Letter: {label}"
        size = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 1.2, 3)[0]
        x = (w - size[0]) // 2
        y = h - 50

        overlay = frame.copy()
        cv2.rectangle(overlay, (x - 15, y - size[1] - 15), (x + size[0] + 15, y + 15),
                      (20, 20, 20), -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)
        cv2.putText(frame, text, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 1.2, self._color_stable, 3)

    def _draw_stats(self, frame, w, stats):
        rate = stats.get("passes_per_second", 0.0)
        latency = stats.get("pass_latency_ms", 0.0)
        cv2.putText(frame, f"{rate:.1f} inf/s  {latency:.0f}ms", (w - 210, 35),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, self._color_text, 1)

    def _draw_help(self, frame, h):
        cv2.putText(frame, "c=clear  p=report  q=quit", (15, h - 15),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.45, (180, 180, 180), 1)
