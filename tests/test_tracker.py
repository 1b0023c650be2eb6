import threading

import pytest

from rep_telemetry.exercise_analysis.exercise_profile import ProfileConfigError
from rep_telemetry.pose_detection.base_detector import BasePoseDetector
from rep_telemetry.pose_detection.landmarks import Joint
from rep_telemetry.pose_detection.synthetic_detector import SyntheticPoseDetector
from rep_telemetry.tracker import ExerciseTracker

from .conftest import FRAME_INTERVAL, knee_sweep


class NoPoseDetector(BasePoseDetector):
    def detect(self, image, timestamp=None):
        return False, None


def test_frames_without_session_are_ignored(knee_frame):
    tracker = ExerciseTracker()
    assert tracker.on_frame(knee_frame(170.0, 0.0)) is None
    assert not tracker.is_active


def test_control_surface_is_idempotent(knee_profile):
    tracker = ExerciseTracker()
    session = tracker.start_session(knee_profile)
    assert tracker.start_session(knee_profile) is session
    assert tracker.start_session("knee_flexion") is session

    tracker.reset_session()
    tracker.reset_session()
    summary = tracker.end_session()
    assert summary["exercise"] == "knee_flexion"
    assert summary["dropped_frames"] == 0
    assert tracker.end_session() is None
    tracker.reset_session()
    assert not tracker.is_active


def test_switching_exercise_starts_a_new_session(knee_profile):
    tracker = ExerciseTracker()
    first = tracker.start_session(knee_profile)
    second = tracker.start_session("squat")
    assert second is not first
    assert tracker.session.profile.kind.value == "squat"


def test_bad_profile_does_not_start_a_session():
    tracker = ExerciseTracker()
    with pytest.raises(ProfileConfigError):
        tracker.start_session("burpee")
    assert not tracker.is_active


def test_counts_reps_and_keeps_recent_telemetry(knee_profile, knee_frame):
    tracker = ExerciseTracker(history_size=10)
    tracker.start_session(knee_profile)
    received = []
    tracker.add_listener(received.append)
    for i, angle in enumerate(knee_sweep()):
        tracker.on_frame(knee_frame(angle, i * FRAME_INTERVAL))
    assert tracker.session.rep_count == 1
    assert len(received) == len(knee_sweep())
    assert len(tracker.recent_telemetry) == 10

    tracker.reset_session()
    assert tracker.session.rep_count == 0
    assert tracker.recent_telemetry == []


def test_frame_arriving_while_busy_is_dropped(knee_profile, knee_frame):
    tracker = ExerciseTracker()
    tracker.start_session(knee_profile)
    entered = threading.Event()
    release = threading.Event()

    def slow_listener(telemetry):
        entered.set()
        release.wait(timeout=5)

    tracker.add_listener(slow_listener)
    results = []
    worker = threading.Thread(target=lambda: results.append(tracker.on_frame(knee_frame(170.0, 0.0))))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert tracker.is_busy
        assert tracker.on_frame(knee_frame(165.0, 0.05)) is None
    finally:
        release.set()
        worker.join(timeout=5)

    assert results[0] is not None
    assert tracker.dropped_frames == 1
    assert tracker.session.frames_processed == 1
    assert not tracker.is_busy


def test_every_concurrent_drop_is_counted(knee_profile, knee_frame):
    tracker = ExerciseTracker()
    tracker.start_session(knee_profile)
    entered = threading.Event()
    release = threading.Event()
    tracker.add_listener(lambda telemetry: (entered.set(), release.wait(timeout=5)))
    worker = threading.Thread(target=tracker.on_frame, args=(knee_frame(170.0, 0.0),))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        droppers = [threading.Thread(target=lambda: [tracker.on_frame(knee_frame(170.0, 0.05)) for _ in range(50)])
                    for _ in range(4)]
        for thread in droppers:
            thread.start()
        for thread in droppers:
            thread.join(timeout=5)
    finally:
        release.set()
        worker.join(timeout=5)

    assert tracker.dropped_frames == 200
    assert tracker.session.frames_processed == 1


def test_process_image_runs_detector(knee_profile):
    tracker = ExerciseTracker(detector=SyntheticPoseDetector())
    tracker.start_session(knee_profile)
    telemetry = tracker.process_image(None)
    assert telemetry.frame_valid
    assert telemetry.timestamp == 0.0


def test_image_without_pose_counts_as_invalid(knee_profile):
    tracker = ExerciseTracker(detector=NoPoseDetector())
    tracker.start_session(knee_profile)
    telemetry = tracker.process_image(None, timestamp=4.0)
    assert not telemetry.frame_valid
    assert set(telemetry.missing_joints) == {Joint.LEFT_SHOULDER, Joint.LEFT_HIP, Joint.LEFT_KNEE, Joint.LEFT_ANKLE}


def test_process_image_requires_detector(knee_profile):
    tracker = ExerciseTracker()
    tracker.start_session(knee_profile)
    with pytest.raises(RuntimeError):
        tracker.process_image(None)
