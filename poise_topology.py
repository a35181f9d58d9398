"""
Poise -- Landmark Topology
===========================
Named-landmark lookup over a face-mesh index layout.

The eye and iris indices are a contract with whichever landmark model
produces the frames. They live here (and in config.yaml) only; the
analyzers work with named points such as `left_eye.upper_lid` and
never see an index literal.

Default layout: MediaPipe FaceLandmarker 478-point mesh with refined
irises (468-477).

  Eye group order: [outer_corner, inner_corner, upper_lid, lower_lid]
  Left eye  : 33, 133, 159, 145
  Right eye : 362, 263, 386, 374
  Left iris : 468-471 (468 = iris center)
  Right iris: 473-476 (473 = iris center)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence


class LandmarkTopologyError(ValueError):
    """Landmark set does not match the configured topology."""


@dataclass(frozen=True)
class EyeIndices:
    """Four mesh indices describing one eye."""
    outer_corner: int
    inner_corner: int
    upper_lid: int
    lower_lid: int

    @classmethod
    def from_sequence(cls, indices: Sequence[int]) -> "EyeIndices":
        if len(indices) != 4:
            raise LandmarkTopologyError(
                f"Eye group needs exactly 4 indices "
                f"[outer, inner, upper, lower], got {len(indices)}"
            )
        outer, inner, upper, lower = (int(i) for i in indices)
        return cls(outer, inner, upper, lower)

    def as_list(self) -> list[int]:
        return [self.outer_corner, self.inner_corner, self.upper_lid, self.lower_lid]


@dataclass(frozen=True)
class ResolvedEye:
    """The four eye landmarks plus the iris point for one eye."""
    outer_corner: Any
    inner_corner: Any
    upper_lid: Any
    lower_lid: Any
    iris: Any

    @property
    def contour(self) -> tuple:
        return (self.outer_corner, self.inner_corner, self.upper_lid, self.lower_lid)


@dataclass(frozen=True)
class ResolvedFace:
    left_eye: ResolvedEye
    right_eye: ResolvedEye


@dataclass(frozen=True)
class FaceTopology:
    """Index layout for one landmark model.

    Attributes:
        left_eye / right_eye: EyeIndices for each eye.
        left_iris / right_iris: Iris index groups. The first index of
                                each group is the iris center and is the
                                point used for gaze classification.
        name: Human-readable layout name (logged at startup).
    """
    left_eye: EyeIndices
    right_eye: EyeIndices
    left_iris: tuple[int, ...]
    right_iris: tuple[int, ...]
    name: str = "mediapipe_478"

    def __post_init__(self) -> None:
        if not self.left_iris or not self.right_iris:
            raise LandmarkTopologyError("Iris groups need at least one index")

    @property
    def min_landmarks(self) -> int:
        """Smallest landmark count that covers every referenced index."""
        referenced = (
            self.left_eye.as_list()
            + self.right_eye.as_list()
            + list(self.left_iris)
            + list(self.right_iris)
        )
        return max(referenced) + 1

    @classmethod
    def from_config(cls, section: Optional[dict]) -> "FaceTopology":
        """Build from the `landmarks` section of config.yaml."""
        if not section:
            return MEDIAPIPE_FACE_MESH_478
        return cls(
            left_eye=EyeIndices.from_sequence(section["left_eye"]),
            right_eye=EyeIndices.from_sequence(section["right_eye"]),
            left_iris=tuple(int(i) for i in section["left_iris"]),
            right_iris=tuple(int(i) for i in section["right_iris"]),
            name=str(section.get("name", "configured")),
        )

    def validate(self, landmarks: Sequence[Any]) -> None:
        """Fail fast if `landmarks` cannot satisfy this topology."""
        count = len(landmarks)
        if count < self.min_landmarks:
            raise LandmarkTopologyError(
                f"Landmark set has {count} points; topology {self.name!r} "
                f"needs at least {self.min_landmarks}"
            )

    def resolve(self, landmarks: Sequence[Any]) -> ResolvedFace:
        """Look up every named point once for this frame."""
        self.validate(landmarks)
        return ResolvedFace(
            left_eye=self._resolve_eye(landmarks, self.left_eye, self.left_iris[0]),
            right_eye=self._resolve_eye(landmarks, self.right_eye, self.right_iris[0]),
        )

    @staticmethod
    def _resolve_eye(landmarks: Sequence[Any], eye: EyeIndices, iris: int) -> ResolvedEye:
        return ResolvedEye(
            outer_corner=landmarks[eye.outer_corner],
            inner_corner=landmarks[eye.inner_corner],
            upper_lid=landmarks[eye.upper_lid],
            lower_lid=landmarks[eye.lower_lid],
            iris=landmarks[iris],
        )


MEDIAPIPE_FACE_MESH_478 = FaceTopology(
    left_eye=EyeIndices(33, 133, 159, 145),
    right_eye=EyeIndices(362, 263, 386, 374),
    left_iris=(468, 469, 470, 471),
    right_iris=(473, 474, 475, 476),
    name="mediapipe_478",
)
