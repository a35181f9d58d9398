"""
Poise -- Frame Classifier Tests
================================
Calibration phase machine and per-frame verdicts.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from poise_classifier import FrameClassifier
from poise_config import ScoringConfig
from poise_topology import LandmarkTopologyError
from poise_types import CalibrationPhase, FaceObservation, Landmark


def _make_face(lid_gap: float = 0.06) -> list[Landmark]:
    """478 landmarks: both eyes open (ratio ~0.3), irises centered."""
    lms = [Landmark(0.5, 0.5) for _ in range(478)]
    half = lid_gap / 2
    for outer, inner, upper, lower, iris, x0 in (
        (33, 133, 159, 145, 468, 0.30),
        (263, 362, 386, 374, 473, 0.60),
    ):
        lms[outer] = Landmark(x0, 0.40)
        lms[inner] = Landmark(x0 + 0.10, 0.40)
        lms[upper] = Landmark(x0 + 0.05, 0.40 - half)
        lms[lower] = Landmark(x0 + 0.05, 0.40 + half)
        lms[iris] = Landmark(x0 + 0.05, 0.40)
    return lms


def _good_observation() -> FaceObservation:
    return FaceObservation(landmarks=_make_face(), transform_matrix=np.eye(4))


# ─── Test 1: Calibration forces false ─────────────────────────

def test_calibrating_frames_are_forced_false():
    clf = FrameClassifier(ScoringConfig(calibration_window=30))
    for n in range(1, 31):
        result = clf.classify(_good_observation(), n)
        assert result.phase is CalibrationPhase.CALIBRATING
        assert result.eye_contact is False
        assert result.head_posture_stable is False
        assert result.face_detected is True
        assert result.features is None


# ─── Test 2: Transition at window + 1 ─────────────────────────

def test_scoring_starts_after_window():
    clf = FrameClassifier(ScoringConfig(calibration_window=30))
    clf.classify(_good_observation(), 30)
    assert clf.phase is CalibrationPhase.CALIBRATING

    result = clf.classify(_good_observation(), 31)
    assert clf.phase is CalibrationPhase.SCORING
    assert result.eye_contact is True
    assert result.head_posture_stable is True
    assert result.features.openness_ratio == pytest.approx(0.3, rel=1e-4)
    assert result.features.angles.roll == pytest.approx(0.0)


def test_transition_is_one_way_until_reset():
    clf = FrameClassifier(ScoringConfig(calibration_window=2))
    clf.classify(None, 3)
    assert clf.phase is CalibrationPhase.SCORING

    clf.classify(None, 1)
    assert clf.phase is CalibrationPhase.SCORING

    clf.reset()
    assert clf.phase is CalibrationPhase.CALIBRATING


def test_zero_window_scores_first_frame():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    assert clf.classify(_good_observation(), 1).eye_contact is True


# ─── Test 3: No face ──────────────────────────────────────────

def test_no_face_is_false_not_error():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    result = clf.classify(None, 1)
    assert result.face_detected is False
    assert result.eye_contact is False
    assert result.head_posture_stable is False
    assert result.phase is CalibrationPhase.SCORING


# ─── Test 4: Missing matrix ───────────────────────────────────

def test_missing_matrix_is_unstable_but_eye_contact_still_counts():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    result = clf.classify(FaceObservation(landmarks=_make_face()), 1)
    assert result.eye_contact is True
    assert result.head_posture_stable is False
    assert result.features.angles is None


# ─── Test 5: Closed eyes ──────────────────────────────────────

def test_closed_eyes_no_eye_contact():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    obs = FaceObservation(landmarks=_make_face(lid_gap=0.01), transform_matrix=np.eye(4))
    result = clf.classify(obs, 1)
    assert result.eye_contact is False
    assert result.head_posture_stable is True


# ─── Test 6: Precondition violations ──────────────────────────

def test_short_landmark_set_fails_fast():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    with pytest.raises(LandmarkTopologyError):
        clf.classify(FaceObservation(landmarks=_make_face()[:400], transform_matrix=np.eye(4)), 1)


def test_short_landmark_set_fails_during_calibration():
    """A mesh without iris points is rejected on frame 1, not frame 31."""
    clf = FrameClassifier(ScoringConfig(calibration_window=30))
    with pytest.raises(LandmarkTopologyError):
        clf.classify(FaceObservation(landmarks=_make_face()[:468], transform_matrix=np.eye(4)), 1)
    assert clf.phase is CalibrationPhase.CALIBRATING


def test_malformed_matrix_fails_fast():
    clf = FrameClassifier(ScoringConfig(calibration_window=0))
    with pytest.raises(ValueError):
        clf.classify(FaceObservation(landmarks=_make_face(), transform_matrix=np.eye(3)), 1)
