"""
Poise -- Eye-State Analyzer
============================
Eye openness and iris-position gaze zones.

OPENNESS RATIO (4-point variant of EAR):
    ratio = |upper_lid - lower_lid| / (2 * |outer_corner - inner_corner| + eps)
  Higher ratio = more open eye. eps (1e-6) keeps a degenerate eye
  (corners on top of each other) finite.

GAZE ZONE:
  The eye's bounding box is split into a 3x3 grid. The iris coordinate
  is compared against the grid lines min + extent/3 and min + 2*extent/3
  with strict inequalities, so an iris exactly on a grid line is CENTER.

  iris <  min + 1/3 extent  -> LEFT / UP
  iris >  min + 2/3 extent  -> RIGHT / DOWN
  otherwise                -> CENTER

Eye contact additionally requires BOTH eyes CENTER on BOTH axes; there
is no tolerance for asymmetric gaze.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from poise_config import DEFAULT_EYE_OPEN_THRESHOLD, DEFAULT_RATIO_EPSILON
from poise_geometry import bounding_box, distance, point_xy
from poise_topology import MEDIAPIPE_FACE_MESH_478, FaceTopology, ResolvedEye, ResolvedFace
from poise_types import EyeBounds, GazeZone, Horizontal, Vertical


def eye_openness_ratio(
    landmarks: Sequence[Any],
    eye_indices: Sequence[int],
    epsilon: float = DEFAULT_RATIO_EPSILON,
) -> float:
    """Openness ratio from 4 landmarks.

    Args:
        landmarks: LandmarkSet (points with .x/.y or indexable rows).
        eye_indices: [outer_corner, inner_corner, upper_lid, lower_lid].
        epsilon: Denominator guard.

    Returns:
        vertical / (2 * horizontal + epsilon)
    """
    outer, inner, upper, lower = (landmarks[i] for i in eye_indices)
    return _ratio(outer, inner, upper, lower, epsilon)


def is_eye_open(avg_ratio: float, threshold: float = DEFAULT_EYE_OPEN_THRESHOLD) -> bool:
    """True iff the averaged left/right ratio exceeds `threshold`."""
    return avg_ratio > threshold


def gaze_zone(iris: Any, bounds: EyeBounds) -> GazeZone:
    """Classify the iris into one cell of the 3x3 grid over `bounds`."""
    iris_x, iris_y = point_xy(iris)

    x_third = (bounds.max_x - bounds.min_x) / 3
    y_third = (bounds.max_y - bounds.min_y) / 3

    # Grid lines in absolute coordinates so an iris on a line compares equal
    horizontal = Horizontal.CENTER
    if iris_x < bounds.min_x + x_third:
        horizontal = Horizontal.LEFT
    elif iris_x > bounds.min_x + 2 * x_third:
        horizontal = Horizontal.RIGHT

    vertical = Vertical.CENTER
    if iris_y < bounds.min_y + y_third:
        vertical = Vertical.UP
    elif iris_y > bounds.min_y + 2 * y_third:
        vertical = Vertical.DOWN

    return GazeZone(horizontal=horizontal, vertical=vertical)


def is_direct_gaze(left_zone: GazeZone, right_zone: GazeZone) -> bool:
    """Both eyes centered on both axes."""
    return left_zone.is_center and right_zone.is_center


def _ratio(outer: Any, inner: Any, upper: Any, lower: Any, epsilon: float) -> float:
    horizontal = distance(outer, inner)
    vertical = distance(upper, lower)
    return vertical / (2 * horizontal + epsilon)


# ===================================================================
# Analyzer over a resolved face
# ===================================================================

@dataclass(frozen=True)
class EyeState:
    """Result of one EyeStateAnalyzer pass."""
    left_ratio: float
    right_ratio: float
    left_zone: GazeZone
    right_zone: GazeZone
    eyes_open: bool
    direct_gaze: bool

    @property
    def average_ratio(self) -> float:
        return (self.left_ratio + self.right_ratio) / 2

    @property
    def eye_contact(self) -> bool:
        return self.eyes_open and self.direct_gaze


class EyeStateAnalyzer:
    """Applies the openness and gaze rules to a ResolvedFace."""

    def __init__(
        self,
        topology: Optional[FaceTopology] = None,
        open_threshold: float = DEFAULT_EYE_OPEN_THRESHOLD,
        epsilon: float = DEFAULT_RATIO_EPSILON,
    ) -> None:
        self.topology = topology or MEDIAPIPE_FACE_MESH_478
        self.open_threshold = open_threshold
        self.epsilon = epsilon

    def openness(self, eye: ResolvedEye) -> float:
        return _ratio(eye.outer_corner, eye.inner_corner, eye.upper_lid, eye.lower_lid, self.epsilon)

    def zone(self, eye: ResolvedEye) -> GazeZone:
        return gaze_zone(eye.iris, bounding_box(eye.contour))

    def analyze(self, face: ResolvedFace) -> EyeState:
        left_ratio = self.openness(face.left_eye)
        right_ratio = self.openness(face.right_eye)
        left_zone = self.zone(face.left_eye)
        right_zone = self.zone(face.right_eye)

        return EyeState(
            left_ratio=left_ratio,
            right_ratio=right_ratio,
            left_zone=left_zone,
            right_zone=right_zone,
            eyes_open=is_eye_open((left_ratio + right_ratio) / 2, self.open_threshold),
            direct_gaze=is_direct_gaze(left_zone, right_zone),
        )

    def analyze_landmarks(self, landmarks: Sequence[Any]) -> EyeState:
        """Resolve `landmarks` against the topology, then analyze."""
        return self.analyze(self.topology.resolve(landmarks))
