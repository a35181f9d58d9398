"""
Poise -- Session Scorer
========================
Frame counters and the running percentage scores.

    effective = max(total_frames - calibration_window, 1)
    eye       = eye_contact_frames  / effective * 100   (0 while calibrating)
    head      = head_posture_frames / effective * 100   (0 while calibrating)
    overall   = (eye + head) / 2

overall is averaged from the unclamped parts; each of the three values
is then clamped to [0, 100].

Invariant: eye_contact_frames, head_posture_frames
           <= max(total_frames - calibration_window, 0)
"""

from __future__ import annotations

from poise_config import DEFAULT_CALIBRATION_WINDOW
from poise_types import FrameClassification, ScoreSnapshot, SessionCounters


def _clamp_percent(value: float) -> float:
    return max(0.0, min(value, 100.0))


class SessionScorer:

    def __init__(self, calibration_window: int = DEFAULT_CALIBRATION_WINDOW) -> None:
        if calibration_window < 0:
            raise ValueError(f"calibration_window must be >= 0, got {calibration_window}")
        self.calibration_window = calibration_window
        self.counters = SessionCounters()

    @property
    def past_calibration(self) -> bool:
        return self.counters.total_frames > self.calibration_window

    def record_frame(self, classification: FrameClassification) -> SessionCounters:
        """Count one frame. Numerators move only past the calibration window."""
        self.counters.total_frames += 1
        if self.past_calibration:
            if classification.eye_contact:
                self.counters.eye_contact_frames += 1
            if classification.head_posture_stable:
                self.counters.head_posture_frames += 1
        return self.counters

    def current_scores(self) -> ScoreSnapshot:
        if not self.past_calibration:
            return ScoreSnapshot()

        effective = max(self.counters.total_frames - self.calibration_window, 1)
        eye = self.counters.eye_contact_frames / effective * 100
        head = self.counters.head_posture_frames / effective * 100
        overall = (eye + head) / 2

        return ScoreSnapshot(
            eye_contact_percent=_clamp_percent(eye),
            head_posture_percent=_clamp_percent(head),
            overall_percent=_clamp_percent(overall),
        )

    def reset(self) -> None:
        self.counters = SessionCounters()

    def finalize(self) -> ScoreSnapshot:
        """Final snapshot; counters are left untouched."""
        return self.current_scores()
