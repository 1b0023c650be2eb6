import pytest

from rep_telemetry.exercise_analysis.visibility_gate import VisibilityGate
from rep_telemetry.pose_detection.landmarks import Joint

NECK_JOINTS = (Joint.LEFT_EAR, Joint.LEFT_SHOULDER, Joint.LEFT_HIP)


def test_all_required_joints_visible(knee_profile, knee_frame):
    gate = VisibilityGate.for_profile(knee_profile)
    result = gate.check(knee_frame(170.0, 0.0))
    assert result.passed
    assert result.missing_joints == ()
    assert result.visible_count == result.required_count == 4


def test_occlusion_tolerance(knee_profile, knee_frame):
    gate = VisibilityGate.for_profile(knee_profile)
    one_hidden = gate.check(knee_frame(170.0, 0.0, confidence_overrides={Joint.LEFT_ANKLE: 0.1}))
    assert one_hidden.passed
    assert one_hidden.missing_joints == (Joint.LEFT_ANKLE,)

    two_hidden = gate.check(knee_frame(170.0, 0.0, confidence_overrides={
        Joint.LEFT_KNEE: 0.1, Joint.LEFT_ANKLE: 0.1,
    }))
    assert not two_hidden.passed
    assert set(two_hidden.missing_joints) == {Joint.LEFT_KNEE, Joint.LEFT_ANKLE}
    assert two_hidden.visible_count == 2


def test_two_of_three_is_enough_for_neck(detector):
    gate = VisibilityGate(NECK_JOINTS, min_visible=2)
    assert gate.check(detector.render(timestamp=0.0, confidence_overrides={Joint.LEFT_EAR: 0.0})).passed
    assert not gate.check(detector.render(timestamp=0.0, confidence_overrides={
        Joint.LEFT_EAR: 0.0, Joint.LEFT_HIP: 0.2,
    })).passed


def test_confidence_at_threshold_counts_as_missing(detector):
    gate = VisibilityGate(NECK_JOINTS, min_visible=3, confidence_threshold=0.3)
    result = gate.check(detector.render(timestamp=0.0, confidence_overrides={Joint.LEFT_HIP: 0.3}))
    assert not result.passed
    assert result.missing_joints == (Joint.LEFT_HIP,)


@pytest.mark.parametrize("min_visible", [0, 4])
def test_min_visible_must_fit_required_joints(min_visible):
    with pytest.raises(ValueError):
        VisibilityGate(NECK_JOINTS, min_visible=min_visible)
