"""
Poise -- Camera Input Module
=============================
Owns all camera interaction. No other module touches
cv2.VideoCapture directly.

Features:
  - Requested capture resolution (1280x720 by default)
  - Frame validation (shape, dtype, channel count, minimum size)
  - Drop-rate accounting (frames read vs. frames rejected)
  - Context-manager cleanup
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import cv2
import numpy as np


_log = logging.getLogger("PoiseCamera")


class PoiseCamera:
    """Validated frame capture over cv2.VideoCapture.

    `source` may be a device index or a path/URL to a video file, which
    lets the launcher replay recorded sessions through the same loop.
    """

    # ── Validation constants ──────────────────────────────────
    MIN_HEIGHT: int = 120
    MIN_WIDTH: int = 160
    EXPECTED_CHANNELS: int = 3
    EXPECTED_DTYPE = np.uint8

    def __init__(
        self,
        source: int | str = 0,
        width: Optional[int] = 1280,
        height: Optional[int] = 720,
        backend: int = cv2.CAP_ANY,
    ) -> None:
        """Open the capture device and request a resolution.

        Args:
            source: Camera index or video path.
            width / height: Requested frame size. The driver may pick a
                            different one; the actual size is reported
                            in get_health_status().
            backend: OpenCV capture backend (CAP_ANY lets OpenCV pick).

        Raises:
            RuntimeError: if the device or file cannot be opened.
        """
        self._source = source
        self._backend = backend
        self._cap: cv2.VideoCapture = cv2.VideoCapture(source, backend)

        if not self._cap.isOpened():
            self._cap.release()
            raise RuntimeError(f"Cannot open video source {source!r}")

        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        if width:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height:
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        self._resolution: tuple[int, int] = (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

        self._frames_total: int = 0
        self._frames_dropped: int = 0

        _log.info(
            "PoiseCamera opened: source=%r resolution=%s (requested %sx%s)",
            source,
            self._resolution,
            width,
            height,
        )

    # ── Public API ────────────────────────────────────────────

    def read_validated_frame(self) -> tuple[bool, Optional[np.ndarray], float]:
        """Read one frame and validate it.

        Returns:
            (success, frame_or_None, monotonic_timestamp)
            On failure: (False, None, 0.0) and the drop counter grows.
        """
        self._frames_total += 1
        timestamp = time.monotonic()

        ret, frame = self._cap.read()
        if not self._validate_frame(ret, frame):
            self._frames_dropped += 1
            return False, None, 0.0

        return True, frame, timestamp

    def get_health_status(self) -> dict:
        return {
            "connected": self._cap.isOpened(),
            "frames_total": self._frames_total,
            "frames_dropped": self._frames_dropped,
            "drop_rate_pct": (
                (self._frames_dropped / self._frames_total * 100.0)
                if self._frames_total > 0
                else 0.0
            ),
            "resolution": self._resolution,
        }

    def is_opened(self) -> bool:
        return self._cap.isOpened()

    def release(self) -> None:
        """Release the device and log final statistics."""
        health = self.get_health_status()
        _log.info(
            "PoiseCamera releasing: total=%d dropped=%d (%.1f%%)",
            health["frames_total"],
            health["frames_dropped"],
            health["drop_rate_pct"],
        )
        self._cap.release()

    def __enter__(self) -> "PoiseCamera":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    # ── Private helpers ───────────────────────────────────────

    def _validate_frame(self, ret: bool, frame: Optional[np.ndarray]) -> bool:
        if not ret or frame is None:
            _log.debug("Validation FAIL: no frame (ret=%s)", ret)
            return False

        if frame.ndim != 3 or frame.shape[2] != self.EXPECTED_CHANNELS:
            _log.debug("Validation FAIL: shape=%s (expected HxWx3)", frame.shape)
            return False

        if frame.dtype != self.EXPECTED_DTYPE:
            _log.debug("Validation FAIL: dtype=%s (expected uint8)", frame.dtype)
            return False

        h, w = frame.shape[:2]
        if h < self.MIN_HEIGHT or w < self.MIN_WIDTH:
            _log.debug(
                "Validation FAIL: resolution %dx%d below minimum %dx%d",
                w, h, self.MIN_WIDTH, self.MIN_HEIGHT,
            )
            return False

        return True

