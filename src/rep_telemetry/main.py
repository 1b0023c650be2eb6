import argparse
import json
import logging
import os
import sys
import time
from typing import Iterator, List, Optional

from .exercise_analysis.config_utils import load_exercise_profile
from .exercise_analysis.exercise_profile import ExerciseKind, ExerciseProfile, ProfileConfigError
from .exercise_analysis.exercise_session import FrameTelemetry
from .pose_detection.landmarks import LandmarkFrame
from .pose_detection.synthetic_detector import DEFAULT_ANGLES, SyntheticPoseDetector, angle_cycle
from .tracker import ExerciseTracker

DEMO_PERIOD_SECONDS = 2.5


def _print_telemetry(telemetry: Optional[FrameTelemetry]) -> None:
    if telemetry is not None:
        print(json.dumps(telemetry.to_dict(), ensure_ascii=False))


def _demo_detector(profile: ExerciseProfile) -> SyntheticPoseDetector:
    """Synthetic skeleton sweeping the primary angle through a full rep."""
    if profile.flexes_by_decreasing_angle:
        start = min(profile.exit_threshold + 20.0, 178.0)
        turn = max(profile.bottom_angle - 10.0, 5.0)
    else:
        start = max(profile.exit_threshold - 20.0, 5.0)
        turn = min(profile.bottom_angle + 10.0, 178.0)
    names = [profile.primary_angle]
    mirrored = profile.primary_angle.replace("left_", "right_")
    if mirrored != profile.primary_angle and mirrored in profile.tracked_angles and mirrored in DEFAULT_ANGLES:
        names.append(mirrored)
    return SyntheticPoseDetector(schedule=angle_cycle(names, DEMO_PERIOD_SECONDS, start, turn))


def run_demo(tracker: ExerciseTracker, profile: ExerciseProfile, frames: int) -> None:
    tracker.detector = _demo_detector(profile)
    for _ in range(frames):
        _print_telemetry(tracker.process_image(None))


def _read_recording(path: str) -> Iterator[LandmarkFrame]:
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield LandmarkFrame.from_dict(json.loads(line))
            except ValueError as e:
                raise ValueError(f"{path}:{line_number}: {e}") from None


def run_replay(tracker: ExerciseTracker, path: str, frames: Optional[int]) -> None:
    for idx, frame in enumerate(_read_recording(path)):
        if frames is not None and idx >= frames:
            break
        _print_telemetry(tracker.on_frame(frame))


def run_capture(tracker: ExerciseTracker, source, frames: Optional[int], video: bool) -> None:
    """Camera or video file through MediaPipe. Press 'q' to stop."""
    import cv2

    from .pose_detection.mediapipe_detector import MediaPipePoseDetector

    detector = MediaPipePoseDetector()
    tracker.detector = detector
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        detector.close()
        raise RuntimeError(f"Failed to open {'video' if video else 'camera'}: {source}")
    count = 0
    try:
        while cap.isOpened():
            ret, image = cap.read()
            if not ret:
                break
            timestamp = cap.get(cv2.CAP_PROP_POS_MSEC) / 1000.0 if video else time.time()
            _print_telemetry(tracker.process_image(image, timestamp))
            count += 1
            if frames is not None and count >= frames:
                break
            cv2.imshow("Rep Telemetry", image)
            if cv2.waitKey(1) & 0xFF == ord('q'):
                break
    except KeyboardInterrupt:
        print("\n[INFO] KeyboardInterrupt received. Exiting gracefully...", file=sys.stderr)
    finally:
        cap.release()
        cv2.destroyAllWindows()
        detector.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exercise rep counting and form telemetry from pose landmarks")
    parser.add_argument(
        "--exercise",
        type=str,
        default=ExerciseKind.KNEE_FLEXION.value,
        choices=[kind.value for kind in ExerciseKind],
        help="Exercise to track"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to an exercise profile JSON file (default: bundled profiles)"
    )
    parser.add_argument(
        "--mode",
        type=str,
        default="demo",
        choices=["demo", "replay", "camera", "video"],
        help="demo: synthetic skeleton, replay: JSON-lines landmark recording, camera/video: MediaPipe"
    )
    parser.add_argument('--input', type=str, help='Recording (replay) or video file (video)')
    parser.add_argument('--camera', type=int, default=0, help='Camera device ID')
    parser.add_argument('--frames', type=int, default=None, help='Stop after this many frames (demo default: 300)')
    parser.add_argument('--verbose', action='store_true', help='Log phase transitions and dropped frames')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the rep-telemetry command."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger("rep_telemetry").setLevel(logging.DEBUG)

    if args.mode in ("replay", "video"):
        if not args.input:
            print(f"Error: --input is required when mode is '{args.mode}'.", file=sys.stderr)
            return 1
        if not os.path.isfile(args.input):
            print(f"Input file not found: {args.input}", file=sys.stderr)
            return 1

    try:
        profile = load_exercise_profile(args.exercise, args.config)
    except (OSError, ProfileConfigError) as e:
        print(f"Error loading exercise profile: {e}", file=sys.stderr)
        return 1

    tracker = ExerciseTracker()
    tracker.start_session(profile)
    try:
        if args.mode == "demo":
            run_demo(tracker, profile, args.frames if args.frames is not None else 300)
        elif args.mode == "replay":
            run_replay(tracker, args.input, args.frames)
        elif args.mode == "video":
            run_capture(tracker, args.input, args.frames, video=True)
        else:
            run_capture(tracker, args.camera, args.frames, video=False)
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        summary = tracker.end_session()
        if summary is not None:
            print(json.dumps(summary, indent=2), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
