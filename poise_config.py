"""
Poise -- Configuration & Logging Setup
=======================================
Loads config.yaml and turns the `scoring` section into a typed,
immutable ScoringConfig. Every tunable threshold used by the
classifier and scorer flows through here; nothing downstream reads
literals.

Also provides setup_logger() so the launcher and the modules share
one console format.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import yaml


_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_config_path = os.path.join(_SCRIPT_DIR, "config.yaml")


# ===================================================================
# Defaults (mirrors config.yaml)
# ===================================================================

DEFAULT_CALIBRATION_WINDOW = 30
DEFAULT_MAX_HEAD_ANGLE = 25.0
DEFAULT_EYE_OPEN_THRESHOLD = 0.23
DEFAULT_RATIO_EPSILON = 1e-6


def load_config(path: Optional[str] = None) -> dict:
    """Load configuration from config.yaml.

    Args:
        path: Optional explicit file. Defaults to the config.yaml that
              sits next to this module.

    Returns:
        Parsed mapping. An empty file yields an empty dict, as does a
        missing default file (every section has built-in defaults).

    Raises:
        FileNotFoundError: an explicit `path` does not exist.
    """
    if path is None and not os.path.exists(_config_path):
        logging.getLogger("PoiseConfig").debug(
            "No config.yaml next to %s; using built-in defaults", _SCRIPT_DIR)
        return {}
    target = path or _config_path
    with open(target, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Create a configured console logger for Poise modules."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(name)-12s %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


# ===================================================================
# Scoring configuration
# ===================================================================

@dataclass(frozen=True)
class ScoringConfig:
    """Tunable constants for classification and scoring.

    Attributes:
        calibration_window: Frames at session start that are counted
                            but never scored (model warm-up, exposure
                            and autofocus settling).
        max_head_angle: Degrees. Posture is stable only while |pitch|,
                        |yaw| and |roll| are all strictly below this.
        eye_open_threshold: Average openness ratio must exceed this for
                            the eyes to count as open.
        ratio_epsilon: Added to the openness denominator.
    """
    calibration_window: int = DEFAULT_CALIBRATION_WINDOW
    max_head_angle: float = DEFAULT_MAX_HEAD_ANGLE
    eye_open_threshold: float = DEFAULT_EYE_OPEN_THRESHOLD
    ratio_epsilon: float = DEFAULT_RATIO_EPSILON

    def __post_init__(self) -> None:
        if self.calibration_window < 0:
            raise ValueError(
                f"calibration_window must be >= 0, got {self.calibration_window}"
            )
        if self.max_head_angle <= 0:
            raise ValueError(
                f"max_head_angle must be positive, got {self.max_head_angle}"
            )
        if self.eye_open_threshold <= 0:
            raise ValueError(
                f"eye_open_threshold must be positive, got {self.eye_open_threshold}"
            )
        if self.ratio_epsilon <= 0:
            raise ValueError(
                f"ratio_epsilon must be positive, got {self.ratio_epsilon}"
            )

    @classmethod
    def from_dict(cls, section: Optional[dict]) -> "ScoringConfig":
        """Build from the `scoring` section of config.yaml."""
        section = section or {}
        return cls(
            calibration_window=int(section.get(
                "calibration_window", DEFAULT_CALIBRATION_WINDOW)),
            max_head_angle=float(section.get(
                "max_head_angle", DEFAULT_MAX_HEAD_ANGLE)),
            eye_open_threshold=float(section.get(
                "eye_open_threshold", DEFAULT_EYE_OPEN_THRESHOLD)),
            ratio_epsilon=float(section.get(
                "ratio_epsilon", DEFAULT_RATIO_EPSILON)),
        )

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "ScoringConfig":
        return cls.from_dict(load_config(path).get("scoring"))
