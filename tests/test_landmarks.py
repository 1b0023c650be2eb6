import numpy as np
import pytest

from rep_telemetry.pose_detection.landmarks import (
    JOINT_COUNT,
    Joint,
    Landmark,
    LandmarkFrame,
    joints_from_names,
)


def test_joint_topology_is_fixed():
    assert JOINT_COUNT == 17
    assert Joint.NOSE == 0
    assert Joint.LEFT_SHOULDER == 5
    assert Joint.RIGHT_ANKLE == 16
    assert Joint.LEFT_KNEE.label == "left knee"


def test_joint_from_name():
    assert Joint.from_name("left_knee") is Joint.LEFT_KNEE
    assert joints_from_names(["nose", "right_hip"]) == (Joint.NOSE, Joint.RIGHT_HIP)
    with pytest.raises(ValueError):
        Joint.from_name("left_tail")


def test_visibility_is_strictly_above_threshold():
    landmark = Landmark(Joint.NOSE, 0.5, 0.5, 0.3)
    assert not landmark.is_visible(0.3)
    assert landmark.is_visible(0.29)


def test_from_array_requires_seventeen_rows():
    with pytest.raises(ValueError):
        LandmarkFrame.from_array(np.zeros((16, 3)), 0.0)
    with pytest.raises(ValueError):
        LandmarkFrame.from_array(np.zeros((17, 2)), 0.0)


def test_from_array_flips_bottom_origin_producers():
    rows = np.full((17, 3), 0.5)
    rows[Joint.LEFT_KNEE] = (0.4, 0.2, 0.9)
    frame = LandmarkFrame.from_array(rows, 1.5, y_up=True)
    assert frame[Joint.LEFT_KNEE].y == pytest.approx(0.8)
    assert frame[Joint.LEFT_KNEE].x == pytest.approx(0.4)
    assert frame.timestamp == 1.5


def test_frame_rejects_out_of_order_landmarks():
    landmarks = [Landmark(joint, 0.0, 0.0, 1.0) for joint in Joint]
    landmarks[0], landmarks[1] = landmarks[1], landmarks[0]
    with pytest.raises(ValueError):
        LandmarkFrame(landmarks=tuple(landmarks), timestamp=0.0)


def test_recording_format(detector):
    frame = detector.render({"left_knee": 120.0}, 2.0)
    restored = LandmarkFrame.from_dict(frame.to_dict())
    assert restored == frame
    with pytest.raises(ValueError):
        LandmarkFrame.from_dict({"landmarks": []})


def test_replace_landmark_and_empty_frame(detector):
    frame = detector.render(timestamp=0.0)
    dimmed = frame.replace_landmark(Joint.LEFT_KNEE, confidence=0.1)
    assert dimmed[Joint.LEFT_KNEE].confidence == 0.1
    assert frame[Joint.LEFT_KNEE].confidence == 0.9
    assert not dimmed[Joint.LEFT_KNEE].is_visible(0.5)

    empty = LandmarkFrame.empty(3.0)
    assert not any(landmark.is_visible(0.0) for landmark in empty)
    assert empty.timestamp == 3.0
