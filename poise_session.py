"""
Poise -- Scoring Session
=========================
Owns one FrameClassifier and one SessionScorer for one capture
session. All per-session state lives here; nothing is module-global.

Lifecycle:
    session.start()                  -> counters zeroed, phase CALIBRATING
    session.process(observation)     -> FrameResult (once per frame)
    session.stop()                   -> final ScoreSnapshot

run() drives the same lifecycle over any iterable of observations.
It is a single-threaded cooperative loop: the running flag is checked
at the top of each iteration, so stop() from inside on_frame (or a
key handler) ends the loop before the next frame is pulled.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from poise_classifier import FrameClassifier
from poise_config import ScoringConfig
from poise_head_pose import RotationMatrixConvention
from poise_logger import PoiseLogger
from poise_scorer import SessionScorer
from poise_topology import FaceTopology
from poise_types import FaceObservation, FrameResult, ScoreSnapshot, SessionCounters

_log = logging.getLogger("PoiseSession")


class SessionNotRunningError(RuntimeError):
    """process() called on a session that is not started."""


class ScoringSession:
    """Start/stop scoring over a stream of face observations."""

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        topology: Optional[FaceTopology] = None,
        convention: RotationMatrixConvention = RotationMatrixConvention.ROW_MAJOR,
        audit_logger: Optional[PoiseLogger] = None,
        log_frames: bool = False,
    ) -> None:
        self.config = config or ScoringConfig()
        self.classifier = FrameClassifier(self.config, topology, convention)
        self.scorer = SessionScorer(self.config.calibration_window)
        self.audit_logger = audit_logger
        self.log_frames = log_frames

        self._running = False
        self._final: Optional[ScoreSnapshot] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def counters(self) -> SessionCounters:
        return self.scorer.counters

    @property
    def phase(self):
        return self.classifier.phase

    def start(self) -> None:
        """Zero counters, enter CALIBRATING, begin accepting frames."""
        self.scorer.reset()
        self.classifier.reset()
        self._final = None
        self._running = True

        _log.info(
            "Session started (calibration=%d frames, head<%.1f deg, openness>%.2f)",
            self.config.calibration_window,
            self.config.max_head_angle,
            self.config.eye_open_threshold,
        )
        self._audit({"config": self.config}, event="session_started")

    def process(self, observation: Optional[FaceObservation]) -> FrameResult:
        """Classify and score one frame.

        Args:
            observation: Detector output for this frame, None when no
                         face was found (the frame still counts).

        Raises:
            SessionNotRunningError: session not started, or stopped.
        """
        if not self._running:
            raise SessionNotRunningError("Call start() before process()")

        frame_number = self.scorer.counters.total_frames + 1
        classification = self.classifier.classify(observation, frame_number)
        self.scorer.record_frame(classification)

        result = FrameResult(
            frame_number=frame_number,
            classification=classification,
            scores=self.scorer.current_scores(),
            counters=SessionCounters(**self.scorer.counters.to_dict()),
        )

        if self.log_frames:
            self._audit_frame(result)
        return result

    def stop(self) -> ScoreSnapshot:
        """End the session and return the final scores.

        A second call returns the same snapshot without logging again.
        """
        if self._final is not None and not self._running:
            return self._final

        self._running = False
        self._final = self.scorer.finalize()

        _log.info(
            "Session stopped after %d frames: %s",
            self.scorer.counters.total_frames,
            self._final.formatted(),
        )
        self._audit(
            {"scores": self._final, "counters": self.scorer.counters},
            event="session_stopped",
        )
        return self._final

    def run(
        self,
        observations: Iterable[Optional[FaceObservation]],
        on_frame: Optional[Callable[[FrameResult], None]] = None,
        max_frames: Optional[int] = None,
    ) -> ScoreSnapshot:
        """Process observations until exhausted, stopped, or max_frames.

        Starts the session if it is not already running and always
        returns the final snapshot via stop().
        """
        if not self._running:
            self.start()

        processed = 0
        iterator = iter(observations)
        try:
            while self._running:
                if max_frames is not None and processed >= max_frames:
                    break
                try:
                    observation = next(iterator)
                except StopIteration:
                    break

                result = self.process(observation)
                processed += 1
                if on_frame is not None:
                    on_frame(result)
        finally:
            final = self.stop()
        return final

    # ── Audit helpers ─────────────────────────────────────────

    def _audit(self, data: dict, event: str) -> None:
        if self.audit_logger is not None:
            self.audit_logger.log(data, level="AUDIT", event=event)

    def _audit_frame(self, result: FrameResult) -> None:
        if self.audit_logger is None:
            return
        cls = result.classification
        self.audit_logger.log_frame({
            "frame": result.frame_number,
            "phase": cls.phase,
            "face_detected": cls.face_detected,
            "eye_contact": cls.eye_contact,
            "head_posture_stable": cls.head_posture_stable,
            "features": cls.features,
            "scores": result.scores,
        })
