"""
Poise -- Face Landmark Pipeline
================================
Owns all face detection. No other module runs MediaPipe directly.

Runs the MediaPipe Tasks FaceLandmarker in VIDEO mode and turns each
result into a FaceObservation (478 normalized landmarks + the 4x4
facial transformation matrix) or None when no face is present.

Landmarker options:
  - num_faces=1 (the first face is the subject)
  - output_face_blendshapes=False
  - output_facial_transformation_matrixes=True (head pose input)
  - delegate CPU or GPU

Timestamps fed to detect_for_video() must be strictly increasing;
detect() enforces that whether or not the caller supplies one.
"""

from __future__ import annotations

import logging
import os
from typing import Iterator, Optional

import cv2
import numpy as np

from poise_types import FaceObservation, Landmark

_log = logging.getLogger("PoiseFacePipeline")

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

# ~30 FPS step used when the caller gives no timestamp
_DEFAULT_STEP_MS = 33


def _to_mp_image(rgb_frame: np.ndarray):
    """Wrap an RGB uint8 array as a mediapipe.Image."""
    import mediapipe as mp
    return mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)


def _resolve_model_path(model_path: str) -> str:
    if os.path.isabs(model_path) or os.path.exists(model_path):
        return model_path
    return os.path.join(_SCRIPT_DIR, model_path)


class PoiseFacePipeline:
    """Single-face landmark detection for a Poise session."""

    def __init__(
        self,
        model_path: str = "face_landmarker.task",
        delegate: str = "CPU",
        min_detection_confidence: float = 0.5,
        min_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        """Create the FaceLandmarker.

        Args:
            model_path: FaceLandmarker .task bundle. Relative paths are
                        tried against the working directory, then the
                        project root.
            delegate: 'CPU' or 'GPU'.
            min_*_confidence: Passed through to FaceLandmarkerOptions.

        Raises:
            FileNotFoundError: model bundle missing.
            ValueError: unknown delegate.
        """
        self._landmarker = None
        self._frame_timestamp_ms: int = 0

        delegate = delegate.upper()
        if delegate not in ("CPU", "GPU"):
            raise ValueError(f"Unknown delegate: {delegate!r}. Supported: 'CPU', 'GPU'")

        full_path = _resolve_model_path(model_path)
        if not os.path.exists(full_path):
            raise FileNotFoundError(f"MediaPipe model not found: {full_path}")

        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        base_options = python.BaseOptions(
            model_asset_path=full_path,
            delegate=getattr(python.BaseOptions.Delegate, delegate),
        )
        options = vision.FaceLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=min_detection_confidence,
            min_face_presence_confidence=min_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=True,
        )
        self._landmarker = vision.FaceLandmarker.create_from_options(options)

        _log.info(
            "PoiseFacePipeline initialized: model=%s (%.1f MB) delegate=%s",
            os.path.basename(full_path),
            os.path.getsize(full_path) / 1024 / 1024,
            delegate,
        )

    @classmethod
    def from_config(cls, section: Optional[dict]) -> "PoiseFacePipeline":
        """Build from the `detector` section of config.yaml."""
        section = section or {}
        return cls(
            model_path=section.get("model_path", "face_landmarker.task"),
            delegate=section.get("delegate", "CPU"),
            min_detection_confidence=float(section.get("min_detection_confidence", 0.5)),
            min_presence_confidence=float(section.get("min_presence_confidence", 0.5)),
            min_tracking_confidence=float(section.get("min_tracking_confidence", 0.5)),
        )

    # ── Public API ────────────────────────────────────────────

    def detect(
        self,
        frame: np.ndarray,
        timestamp_ms: Optional[int] = None,
    ) -> Optional[FaceObservation]:
        """Run the landmarker on one BGR frame.

        Returns:
            FaceObservation for the first face, or None if no face was
            found (or the landmarker rejected the frame).
        """
        if self._landmarker is None:
            raise RuntimeError("PoiseFacePipeline has been released")

        mp_image = _to_mp_image(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        ts = self._next_timestamp(timestamp_ms)

        try:
            result = self._landmarker.detect_for_video(mp_image, ts)
        except Exception as e:
            _log.warning("MediaPipe detection failed at t=%dms: %s", ts, e)
            return None

        if not result or not result.face_landmarks:
            return None

        landmarks = tuple(
            Landmark(x=float(lm.x), y=float(lm.y), z=float(lm.z))
            for lm in result.face_landmarks[0]
        )

        matrices = getattr(result, "facial_transformation_matrixes", None)
        matrix = np.asarray(matrices[0], dtype=np.float64) if matrices else None

        return FaceObservation(landmarks=landmarks, transform_matrix=matrix)

    def release(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
        _log.info("PoiseFacePipeline released")

    def __enter__(self) -> "PoiseFacePipeline":
        return self

    def __exit__(self, *args) -> None:
        self.release()

    # ── Private helpers ───────────────────────────────────────

    def _next_timestamp(self, timestamp_ms: Optional[int]) -> int:
        if timestamp_ms is None:
            ts = self._frame_timestamp_ms + _DEFAULT_STEP_MS
        else:
            ts = max(int(timestamp_ms), self._frame_timestamp_ms + 1)
        self._frame_timestamp_ms = ts
        return ts


def iter_observations(camera, pipeline: PoiseFacePipeline) -> Iterator[Optional[FaceObservation]]:
    """Yield one observation per captured frame until the source ends.

    Frames that fail camera validation are skipped, not counted. A
    video file source ends the stream after a run of failed reads.
    """
    yield from (obs for _, obs in iter_frames(camera, pipeline))


def iter_frames(
    camera,
    pipeline: PoiseFacePipeline,
    max_consecutive_failures: int = 30,
) -> Iterator[tuple[np.ndarray, Optional[FaceObservation]]]:
    """Like iter_observations(), but also yields the BGR frame for display."""
    failures = 0
    while camera.is_opened():
        ok, frame, ts = camera.read_validated_frame()
        if not ok:
            failures += 1
            if failures >= max_consecutive_failures:
                _log.warning("Video source stopped delivering frames (%d failed reads)", failures)
                return
            continue
        failures = 0
        yield frame, pipeline.detect(frame, int(ts * 1000))
