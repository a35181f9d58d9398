"""
Poise -- Launcher
==================
Opens the camera and the face landmarker, runs one scoring session with
a live preview, and prints the final scores on exit.

Usage:
  python start_poise.py --source 0
  python start_poise.py --source interview.mp4 --headless
  poise --max-frames 600 --log-dir logs

Press 'Q' or 'ESC' in the preview window to stop the session.
"""

import argparse
import logging
import sys

import cv2

from poise_camera import PoiseCamera
from poise_config import ScoringConfig, load_config, setup_logger
from poise_face_pipeline import PoiseFacePipeline, iter_frames
from poise_head_pose import RotationMatrixConvention
from poise_hud import PoiseHUD
from poise_logger import PoiseLogger
from poise_session import ScoringSession
from poise_topology import FaceTopology


WINDOW_NAME = "Poise | Eye Contact & Posture"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Poise real-time eye contact and head posture scoring")
    parser.add_argument("--source", type=str, default=None, help="Camera ID (0, 1, etc.) or video file path")
    parser.add_argument("--width", type=int, default=None, help="Capture width (default from config, 1280)")
    parser.add_argument("--height", type=int, default=None, help="Capture height (default from config, 720)")
    parser.add_argument("--model", type=str, default=None, help="Path to FaceLandmarker .task model")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--headless", action="store_true", help="Run without a preview window")
    parser.add_argument("--max-frames", type=int, default=None, help="Stop after this many scored frames")
    parser.add_argument("--log-dir", type=str, default=None, help="Directory for the JSONL session log")
    return parser


def _parse_source(source):
    source = str(source)
    return int(source) if source.isdigit() else source


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)

    log_cfg = config.get("logging", {}) or {}
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log = setup_logger("Poise", level)
    for name in ("PoiseSession", "PoiseClassifier", "PoiseHeadPose", "PoiseCamera",
                 "PoiseFacePipeline", "PoiseHUD", "PoiseLogger", "PoiseConfig"):
        setup_logger(name, level)

    cam_cfg = config.get("camera", {}) or {}
    det_cfg = dict(config.get("detector", {}) or {})
    if args.model:
        det_cfg["model_path"] = args.model

    source = _parse_source(args.source if args.source is not None else cam_cfg.get("camera_id", 0))
    width = args.width or cam_cfg.get("width", 1280)
    height = args.height or cam_cfg.get("height", 720)

    scoring = ScoringConfig.from_dict(config.get("scoring"))
    topology = FaceTopology.from_config(config.get("landmarks"))
    convention = RotationMatrixConvention.from_config(config.get("head_pose"))

    print("=" * 60)
    print("  Poise -- Starting...")
    print(f"  Source:     {source}")
    print(f"  Resolution: {width}x{height}")
    print(f"  Model:      {det_cfg.get('model_path', 'face_landmarker.task')}")
    print(f"  Mode:       {'Headless' if args.headless else 'Preview'}")
    print("=" * 60)

    audit = PoiseLogger(args.log_dir or log_cfg.get("log_dir", "logs"))
    session = ScoringSession(
        scoring,
        topology=topology,
        convention=convention,
        audit_logger=audit,
        log_frames=bool(log_cfg.get("log_frames", False)),
    )
    hud = PoiseHUD(
        mirror=bool((config.get("hud", {}) or {}).get("mirror", True)),
        calibration_window=scoring.calibration_window,
    )

    camera = None
    pipeline = None
    final = None
    current = {"frame": None}

    def observations(frames):
        for frame, observation in frames:
            current["frame"] = frame
            yield observation

    def on_frame(result):
        if args.headless:
            return
        annotated, _ = hud.render(current["frame"], result)
        cv2.imshow(WINDOW_NAME, annotated)
        key = cv2.waitKey(1) & 0xFF
        if key in (ord('q'), ord('Q'), 27):
            print("\n[POISE] Exit key pressed -- stopping session...")
            session.stop()

    try:
        camera = PoiseCamera(source, width=width, height=height)
        pipeline = PoiseFacePipeline.from_config(det_cfg)

        if not args.headless:
            cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_AUTOSIZE)
        print("[POISE] Session active. Press 'Q' or 'ESC' to stop.")

        final = session.run(
            observations(iter_frames(camera, pipeline)),
            on_frame=on_frame,
            max_frames=args.max_frames,
        )

    except KeyboardInterrupt:
        print("\n[POISE] Interrupted by user.")
        if session.counters.total_frames:
            final = session.stop()
    except (RuntimeError, FileNotFoundError) as e:
        log.error("Session aborted: %s", e)
        audit.error("Session aborted", exception=e)
        return 1
    finally:
        if pipeline is not None:
            pipeline.release()
        if camera is not None:
            camera.release()
        if not args.headless:
            cv2.destroyAllWindows()
        audit.close()

    if final is not None:
        scores = final.formatted()
        print("=" * 60)
        print(f"  Eye Contact:  {scores['eye_contact']}")
        print(f"  Head Posture: {scores['head_posture']}")
        print(f"  Overall:      {scores['overall']}")
        print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
