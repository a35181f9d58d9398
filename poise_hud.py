import time
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from poise_config import DEFAULT_CALIBRATION_WINDOW
from poise_types import CalibrationPhase, FrameResult

_log = logging.getLogger("PoiseHUD")


class PoiseHUD:
    """Score overlay for the live preview.

    Draws the mirrored camera frame, a score panel with the three running
    percentages, a calibration progress line, and a red banner when the
    detector found no face.
    """

    COLORS = {
        "panel":       (0, 0, 0),
        "text":        (255, 255, 255),
        "good":        (0, 200, 0),      # Green
        "poor":        (0, 165, 255),    # Orange
        "no_face":     (0, 0, 255),      # Red
        "calibrating": (0, 255, 255),    # Yellow
        "muted":       (200, 200, 200),
    }

    FONT = cv2.FONT_HERSHEY_SIMPLEX

    def __init__(self, mirror: bool = True, calibration_window: int = DEFAULT_CALIBRATION_WINDOW):
        self.mirror = mirror
        self.calibration_window = calibration_window
        _log.info("PoiseHUD initialized (mirror=%s)", mirror)

    def render(self, frame: np.ndarray, result: Optional[FrameResult]) -> Tuple[np.ndarray, float]:
        """Draw overlay onto a copy of the frame.

        Args:
            frame: BGR image.
            result: Output of ScoringSession.process(), or None before
                    the first frame has been scored.

        Returns:
            (annotated_frame, hud_render_time_seconds)
        """
        t_hud_start = time.monotonic()

        if frame is None:
            return None, 0.0

        viz = cv2.flip(frame, 1) if self.mirror else frame.copy()

        if result is not None:
            self._draw_score_panel(viz, result)
            if result.classification.phase is CalibrationPhase.CALIBRATING:
                self._draw_calibration(viz, result.frame_number)
            elif result.classification.features is not None:
                self._draw_features(viz, result)
            if not result.classification.face_detected:
                self._draw_no_face(viz)

        t_hud = time.monotonic() - t_hud_start
        return viz, t_hud

    def _draw_score_panel(self, frame: np.ndarray, result: FrameResult):
        text = result.scores.formatted()
        cls = result.classification
        rows = [
            (f"Eye Contact:  {text['eye_contact']}", cls.eye_contact),
            (f"Head Posture: {text['head_posture']}", cls.head_posture_stable),
            (f"Overall:      {text['overall']}", None),
        ]

        # Semi-transparent background
        overlay = frame.copy()
        cv2.rectangle(overlay, (10, 10), (330, 30 + 30 * len(rows)), self.COLORS["panel"], -1)
        alpha = 0.6
        cv2.addWeighted(overlay, alpha, frame, 1 - alpha, 0, frame)

        for i, (label, ok) in enumerate(rows):
            if ok is None:
                color = self.COLORS["text"]
            else:
                color = self.COLORS["good"] if ok else self.COLORS["poor"]
            cv2.putText(frame, label, (20, 40 + 30 * i), self.FONT, 0.7, color, 2)

    def _draw_calibration(self, frame: np.ndarray, frame_number: int):
        h = frame.shape[0]
        done = min(frame_number, self.calibration_window)
        cv2.putText(frame, f"Calibrating... {done}/{self.calibration_window}",
            (20, h - 20), self.FONT, 0.7, self.COLORS["calibrating"], 2)

    def _draw_features(self, frame: np.ndarray, result: FrameResult):
        feats = result.classification.features
        h, w = frame.shape[:2]
        line = (f"EAR:{feats.openness_ratio:.2f} | "
                f"L:{feats.left_zone.horizontal.value}/{feats.left_zone.vertical.value} "
                f"R:{feats.right_zone.horizontal.value}/{feats.right_zone.vertical.value}")
        if feats.angles is not None:
            a = feats.angles
            line += f" | P:{a.pitch:.0f} Y:{a.yaw:.0f} R:{a.roll:.0f}"

        text_w = cv2.getTextSize(line, self.FONT, 0.5, 1)[0][0]
        cv2.putText(frame, line, (max(w - text_w - 10, 10), h - 12),
            self.FONT, 0.5, self.COLORS["muted"], 1)

    def _draw_no_face(self, frame: np.ndarray):
        h, w = frame.shape[:2]
        text = "No Face Detected"
        scale, thickness = 1.2, 3
        (fw, fh), _ = cv2.getTextSize(text, self.FONT, scale, thickness)
        cv2.putText(frame, text, ((w - fw) // 2, (h + fh) // 2),
            self.FONT, scale, self.COLORS["no_face"], thickness)
