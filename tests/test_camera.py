"""
Poise -- Camera Module Tests
=============================
Synthetic NumPy frames behind a mocked cv2.VideoCapture; no real
camera needed.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from poise_camera import PoiseCamera


# ─── Fixtures ─────────────────────────────────────────────────

def _make_valid_frame(height: int = 480, width: int = 640) -> np.ndarray:
    rng = np.random.RandomState(42)
    return rng.randint(60, 200, size=(height, width, 3), dtype=np.uint8)


def _make_mock_camera(frame: np.ndarray | None, ret: bool = True, opened: bool = True):
    """Create a mock cv2.VideoCapture that returns the given frame."""
    mock_cap = MagicMock()
    mock_cap.read.return_value = (ret, frame)
    mock_cap.isOpened.return_value = opened
    mock_cap.get.return_value = 640.0
    mock_cap.set.return_value = True
    return mock_cap


# ─── Test 1: Valid frame passes ───────────────────────────────

def test_valid_frame_passes():
    frame = _make_valid_frame()
    mock_cap = _make_mock_camera(frame)

    with patch("poise_camera.cv2.VideoCapture", return_value=mock_cap):
        cam = PoiseCamera(0)
        ok, result_frame, ts = cam.read_validated_frame()

    assert ok is True
    assert ts > 0
    assert np.array_equal(result_frame, frame)
    cam.release()
    mock_cap.release.assert_called_once()


# ─── Test 2: Requested resolution ─────────────────────────────

def test_requested_resolution_is_set():
    mock_cap = _make_mock_camera(_make_valid_frame())

    with patch("poise_camera.cv2.VideoCapture", return_value=mock_cap):
        cam = PoiseCamera(0, width=1280, height=720)

    mock_cap.set.assert_any_call(cv2.CAP_PROP_FRAME_WIDTH, 1280)
    mock_cap.set.assert_any_call(cv2.CAP_PROP_FRAME_HEIGHT, 720)
    cam.release()


# ─── Test 3: Device that will not open ────────────────────────

def test_unopened_device_raises():
    mock_cap = _make_mock_camera(None, opened=False)

    with patch("poise_camera.cv2.VideoCapture", return_value=mock_cap):
        with pytest.raises(RuntimeError):
            PoiseCamera(3)
    mock_cap.release.assert_called_once()


# ─── Test 4: Invalid frames are dropped ───────────────────────

@pytest.mark.parametrize("frame,ret", [
    (None, True),
    (_make_valid_frame(), False),
    (np.full((480, 640, 4), 128, dtype=np.uint8), True),
    (np.full((480, 640), 128, dtype=np.uint8), True),
    (np.full((480, 640, 3), 0.5, dtype=np.float32), True),
    (np.full((100, 100, 3), 128, dtype=np.uint8), True),
])
def test_invalid_frames_rejected(frame, ret):
    mock_cap = _make_mock_camera(frame, ret=ret)

    with patch("poise_camera.cv2.VideoCapture", return_value=mock_cap):
        cam = PoiseCamera(0)
        ok, result_frame, ts = cam.read_validated_frame()

    assert ok is False
    assert result_frame is None
    assert ts == 0.0
    assert cam.get_health_status()["frames_dropped"] == 1
    cam.release()


# ─── Test 5: Health status ────────────────────────────────────

def test_health_status_reports_drops():
    valid = _make_valid_frame()
    mock_cap = _make_mock_camera(valid)
    mock_cap.read.side_effect = [(True, valid), (False, None), (True, valid), (True, valid)]

    with patch("poise_camera.cv2.VideoCapture", return_value=mock_cap):
        with PoiseCamera(0) as cam:
            for _ in range(4):
                cam.read_validated_frame()
            health = cam.get_health_status()

    assert set(health) == {
        "connected", "frames_total", "frames_dropped", "drop_rate_pct", "resolution",
    }
    assert health["connected"] is True
    assert health["frames_total"] == 4
    assert health["frames_dropped"] == 1
    assert health["drop_rate_pct"] == pytest.approx(25.0)
    mock_cap.release.assert_called_once()
