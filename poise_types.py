from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Optional, Sequence


class Horizontal(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Vertical(str, Enum):
    UP = "up"
    CENTER = "center"
    DOWN = "down"


class CalibrationPhase(str, Enum):
    """Session phase. CALIBRATING -> SCORING is one-way until reset."""
    CALIBRATING = "calibrating"
    SCORING = "scoring"


@dataclass(frozen=True)
class Landmark:
    """Normalized image-relative point; z is carried but unused."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class EyeBounds:
    """Axis-aligned box around one eye's landmarks."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class GazeZone:
    """Iris cell in the 3x3 grid over one eye."""
    horizontal: Horizontal = Horizontal.CENTER
    vertical: Vertical = Vertical.CENTER

    @property
    def is_center(self) -> bool:
        return self.horizontal is Horizontal.CENTER and self.vertical is Vertical.CENTER


@dataclass(frozen=True)
class RotationAngles:
    """Head rotation in degrees."""
    pitch: float
    yaw: float
    roll: float


@dataclass
class FaceObservation:
    """One detector result for one face in one frame.

    Attributes:
        landmarks: LandmarkSet, either a sequence of points with .x/.y
                   or an (N, 2|3) array of normalized coordinates.
        transform_matrix: 4x4 facial transformation matrix (or its 16
                          values). None when the detector produced none.
    """
    landmarks: Sequence[Any]
    transform_matrix: Optional[Any] = None


@dataclass(frozen=True)
class FrameFeatures:
    """Per-frame measurements behind a classification (diagnostics)."""
    openness_ratio: float
    left_zone: GazeZone
    right_zone: GazeZone
    angles: Optional[RotationAngles] = None


@dataclass(frozen=True)
class FrameClassification:
    """Boolean verdicts for the current frame.

    Both verdicts are False while the session is calibrating and
    whenever no face was detected.
    """
    eye_contact: bool = False
    head_posture_stable: bool = False
    face_detected: bool = False
    phase: CalibrationPhase = CalibrationPhase.CALIBRATING
    features: Optional[FrameFeatures] = None


@dataclass
class SessionCounters:
    """Running frame counters for one capture session."""
    total_frames: int = 0
    eye_contact_frames: int = 0
    head_posture_frames: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ScoreSnapshot:
    """Percentages derived from SessionCounters, each in [0, 100]."""
    eye_contact_percent: float = 0.0
    head_posture_percent: float = 0.0
    overall_percent: float = 0.0

    def formatted(self) -> dict:
        """Display strings with one decimal place, e.g. '87.5%'."""
        return {
            "eye_contact": f"{self.eye_contact_percent:.1f}%",
            "head_posture": f"{self.head_posture_percent:.1f}%",
            "overall": f"{self.overall_percent:.1f}%",
        }


@dataclass
class FrameResult:
    """What the session hands to the display sink after each frame."""
    frame_number: int
    classification: FrameClassification
    scores: ScoreSnapshot
    counters: SessionCounters = field(default_factory=SessionCounters)
