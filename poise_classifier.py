"""
Poise -- Frame Classifier
==========================
Turns one FaceObservation into the two per-frame verdicts.

PHASE MACHINE:
    CALIBRATING --(frame_number > calibration_window)--> SCORING
  One-way until reset(). While CALIBRATING both verdicts are forced
  False and no features are computed; the landmark set is still checked
  against the topology on every frame with a face.

VERDICTS (SCORING only):
    eye_contact         = eyes open AND both irises centered
    head_posture_stable = |pitch|, |yaw|, |roll| < max_head_angle
  No face -> both False; the frame is still counted by the scorer.
"""

from __future__ import annotations

import logging
from typing import Optional

from poise_config import ScoringConfig
from poise_eye_state import EyeStateAnalyzer
from poise_head_pose import HeadPoseAnalyzer, RotationMatrixConvention
from poise_topology import MEDIAPIPE_FACE_MESH_478, FaceTopology
from poise_types import (
    CalibrationPhase,
    FaceObservation,
    FrameClassification,
    FrameFeatures,
)

log = logging.getLogger("PoiseClassifier")


class FrameClassifier:
    """Per-frame classification with an explicit calibration phase."""

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        topology: Optional[FaceTopology] = None,
        convention: RotationMatrixConvention = RotationMatrixConvention.ROW_MAJOR,
    ) -> None:
        self.config = config or ScoringConfig()
        self.topology = topology or MEDIAPIPE_FACE_MESH_478
        self.eye_state = EyeStateAnalyzer(
            topology=self.topology,
            open_threshold=self.config.eye_open_threshold,
            epsilon=self.config.ratio_epsilon,
        )
        self.head_pose = HeadPoseAnalyzer(
            max_angle_degrees=self.config.max_head_angle,
            convention=convention,
        )
        self.phase = CalibrationPhase.CALIBRATING

    def reset(self) -> None:
        self.phase = CalibrationPhase.CALIBRATING

    def _advance(self, frame_number: int) -> None:
        if (self.phase is CalibrationPhase.CALIBRATING
                and frame_number > self.config.calibration_window):
            self.phase = CalibrationPhase.SCORING
            log.info(f"Calibration complete after {self.config.calibration_window} frames")

    def classify(
        self,
        observation: Optional[FaceObservation],
        frame_number: int,
    ) -> FrameClassification:
        """Classify one frame.

        Args:
            observation: Detector output, or None when no face was found.
            frame_number: 1-based frame index within the session.

        Raises:
            LandmarkTopologyError: landmark set too small for the topology.
            ValueError: malformed transformation matrix.
        """
        self._advance(frame_number)
        face_detected = observation is not None
        if face_detected:
            self.topology.validate(observation.landmarks)

        if self.phase is CalibrationPhase.CALIBRATING or not face_detected:
            return FrameClassification(
                face_detected=face_detected,
                phase=self.phase,
            )

        eyes = self.eye_state.analyze_landmarks(observation.landmarks)
        angles, stable = self.head_pose.analyze(observation.transform_matrix)

        return FrameClassification(
            eye_contact=eyes.eye_contact,
            head_posture_stable=stable,
            face_detected=True,
            phase=self.phase,
            features=FrameFeatures(
                openness_ratio=eyes.average_ratio,
                left_zone=eyes.left_zone,
                right_zone=eyes.right_zone,
                angles=angles,
            ),
        )
