"""
Poise -- Head-Pose Analyzer Tests
==================================
Euler decomposition on synthetic rotations, matrix conventions, and
the stability threshold.
"""

from __future__ import annotations

import math
import sys
from pathlib import Path

import numpy as np
import pytest

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from poise_head_pose import (
    HeadPoseAnalyzer,
    RotationMatrixConvention,
    euler_angles_from_matrix,
    is_stable_posture,
)
from poise_types import RotationAngles


def _rot_x(deg: float) -> np.ndarray:
    t = math.radians(deg)
    m = np.eye(4)
    m[1, 1], m[1, 2] = math.cos(t), -math.sin(t)
    m[2, 1], m[2, 2] = math.sin(t), math.cos(t)
    return m


def _rot_y(deg: float) -> np.ndarray:
    t = math.radians(deg)
    m = np.eye(4)
    m[0, 0], m[0, 2] = math.cos(t), math.sin(t)
    m[2, 0], m[2, 2] = -math.sin(t), math.cos(t)
    return m


def _rot_z(deg: float) -> np.ndarray:
    t = math.radians(deg)
    m = np.eye(4)
    m[0, 0], m[0, 1] = math.cos(t), -math.sin(t)
    m[1, 0], m[1, 1] = math.sin(t), math.cos(t)
    return m


# ─── Test 1: Identity ─────────────────────────────────────────

def test_identity_is_zero_angles_and_stable():
    angles = euler_angles_from_matrix(np.eye(4))
    assert angles.pitch == pytest.approx(0.0)
    assert abs(angles.yaw) == pytest.approx(0.0)
    assert angles.roll == pytest.approx(0.0)
    assert is_stable_posture(angles) is True


def test_identity_as_flat_list():
    angles = euler_angles_from_matrix(np.eye(4).flatten().tolist())
    assert abs(angles.pitch) + abs(angles.yaw) + abs(angles.roll) == pytest.approx(0.0)


# ─── Test 2: Single-axis rotations ────────────────────────────

def test_pitch_yaw_roll_recovered():
    assert euler_angles_from_matrix(_rot_x(20)).pitch == pytest.approx(20.0)
    assert euler_angles_from_matrix(_rot_y(-15)).yaw == pytest.approx(-15.0)
    assert euler_angles_from_matrix(_rot_z(10)).roll == pytest.approx(10.0)


def test_translation_does_not_affect_angles():
    m = _rot_y(12)
    m[0, 3], m[1, 3], m[2, 3] = 1.5, -2.0, -40.0
    angles = euler_angles_from_matrix(m)
    assert angles.yaw == pytest.approx(12.0)
    assert angles.pitch == pytest.approx(0.0, abs=1e-9)


# ─── Test 3: Column-major buffers ─────────────────────────────

def test_column_major_buffer_matches_row_major():
    m = _rot_x(30) @ _rot_z(5)
    row = euler_angles_from_matrix(m, RotationMatrixConvention.ROW_MAJOR)
    col = euler_angles_from_matrix(
        m.flatten(order="F").tolist(), RotationMatrixConvention.COLUMN_MAJOR
    )
    assert col.pitch == pytest.approx(row.pitch)
    assert col.yaw == pytest.approx(row.yaw)
    assert col.roll == pytest.approx(row.roll)


def test_convention_from_config():
    assert RotationMatrixConvention.from_config(None) is RotationMatrixConvention.ROW_MAJOR
    assert (RotationMatrixConvention.from_config({"matrix_convention": "COLUMN_MAJOR"})
            is RotationMatrixConvention.COLUMN_MAJOR)


# ─── Test 4: Malformed matrix ─────────────────────────────────

@pytest.mark.parametrize("bad", [np.eye(3), [0.0] * 15, [0.0] * 17])
def test_wrong_size_matrix_raises(bad):
    with pytest.raises(ValueError):
        euler_angles_from_matrix(bad)


# ─── Test 5: Stability threshold ──────────────────────────────

def test_stability_threshold_is_strict():
    assert is_stable_posture(RotationAngles(24.9, -24.9, 0.0)) is True
    assert is_stable_posture(RotationAngles(25.0, 0.0, 0.0)) is False
    assert is_stable_posture(RotationAngles(0.0, -30.0, 0.0)) is False
    assert is_stable_posture(RotationAngles(0.0, 0.0, 26.0)) is False


def test_missing_pose_is_unstable_not_error():
    assert is_stable_posture(None) is False
    angles, stable = HeadPoseAnalyzer().analyze(None)
    assert angles is None
    assert stable is False


def test_analyzer_turned_head_is_unstable():
    analyzer = HeadPoseAnalyzer(max_angle_degrees=25.0)
    angles, stable = analyzer.analyze(_rot_y(40))
    assert angles.yaw == pytest.approx(40.0)
    assert stable is False
