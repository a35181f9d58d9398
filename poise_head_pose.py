"""
Poise -- Head-Pose Analyzer
============================
Euler decomposition of the facial transformation matrix and the
posture-stability test.

MATRIX LAYOUT:
  MediaPipe's Python FaceLandmarker returns each facial transformation
  matrix as a (4, 4) NumPy array. Flattened in C order that is the
  ROW_MAJOR 16-vector m, where m[4*r + c] = M[r][c]. Raw column-major
  float buffers (e.g. copied out of a GL-style API) are tagged
  COLUMN_MAJOR and transposed into row-major before extraction.

EULER ANGLES (degrees, from the rotation block):
    pitch = atan2(m[9], m[10])
    yaw   = atan2(-m[8], sqrt(m[9]^2 + m[10]^2))
    roll  = atan2(m[4], m[0])

STABILITY:
  |pitch|, |yaw| and |roll| all strictly below max_angle_degrees.
  No hysteresis; a single frame at the threshold is unstable.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Optional

import numpy as np

from poise_config import DEFAULT_MAX_HEAD_ANGLE
from poise_types import RotationAngles

log = logging.getLogger("PoiseHeadPose")


class RotationMatrixConvention(str, Enum):
    ROW_MAJOR = "row_major"
    COLUMN_MAJOR = "column_major"

    @classmethod
    def from_config(cls, section: Optional[dict]) -> "RotationMatrixConvention":
        """Read `head_pose.matrix_convention`; defaults to ROW_MAJOR."""
        value = (section or {}).get("matrix_convention", cls.ROW_MAJOR.value)
        return cls(str(value).lower())


def _row_major_vector(matrix: Any, convention: RotationMatrixConvention) -> np.ndarray:
    values = np.asarray(matrix, dtype=np.float64)
    if values.size != 16:
        raise ValueError(
            f"Transformation matrix must hold 16 values, got shape {values.shape}"
        )
    flat = values.reshape(-1)
    if convention is RotationMatrixConvention.COLUMN_MAJOR:
        flat = flat.reshape((4, 4), order="F").reshape(-1)
    return flat


def euler_angles_from_matrix(
    matrix: Any,
    convention: RotationMatrixConvention = RotationMatrixConvention.ROW_MAJOR,
) -> RotationAngles:
    """Decompose a 4x4 transform into pitch / yaw / roll in degrees.

    Args:
        matrix: (4, 4) array, or any 16-value sequence.
        convention: Memory layout of `matrix`.

    Raises:
        ValueError: if `matrix` does not hold exactly 16 values.
    """
    m = _row_major_vector(matrix, convention)

    pitch = math.atan2(m[9], m[10])
    yaw = math.atan2(-m[8], math.sqrt(m[9] ** 2 + m[10] ** 2))
    roll = math.atan2(m[4], m[0])

    return RotationAngles(
        pitch=math.degrees(pitch),
        yaw=math.degrees(yaw),
        roll=math.degrees(roll),
    )


def is_stable_posture(
    angles: Optional[RotationAngles],
    max_angle_degrees: float = DEFAULT_MAX_HEAD_ANGLE,
) -> bool:
    """True when every rotation magnitude is strictly under the limit.

    A missing pose (None) is unstable, never an error.
    """
    if angles is None:
        return False
    return (
        abs(angles.pitch) < max_angle_degrees
        and abs(angles.yaw) < max_angle_degrees
        and abs(angles.roll) < max_angle_degrees
    )


class HeadPoseAnalyzer:
    """Matrix -> angles -> stability, with a fixed convention and limit."""

    def __init__(
        self,
        max_angle_degrees: float = DEFAULT_MAX_HEAD_ANGLE,
        convention: RotationMatrixConvention = RotationMatrixConvention.ROW_MAJOR,
    ) -> None:
        self.max_angle_degrees = max_angle_degrees
        self.convention = convention

    def angles(self, matrix: Any) -> Optional[RotationAngles]:
        if matrix is None:
            return None
        return euler_angles_from_matrix(matrix, self.convention)

    def is_stable(self, angles: Optional[RotationAngles]) -> bool:
        return is_stable_posture(angles, self.max_angle_degrees)

    def analyze(self, matrix: Any) -> tuple[Optional[RotationAngles], bool]:
        angles = self.angles(matrix)
        if angles is None:
            log.debug("No transformation matrix for this frame; posture unstable")
        return angles, self.is_stable(angles)
