import math

import pytest

from rep_telemetry.exercise_analysis.angle_calculator import AngleCalculator
from rep_telemetry.exercise_analysis.exercise_profile import JointTriple
from rep_telemetry.exercise_analysis.pose_utils import calculate_angle
from rep_telemetry.pose_detection.landmarks import Joint

LEFT_KNEE = JointTriple(Joint.LEFT_HIP, Joint.LEFT_KNEE, Joint.LEFT_ANKLE)


class TestCalculateAngle:
    def test_interior_angle(self):
        assert calculate_angle((0, 1), (0, 0), (1, 0)) == pytest.approx(90.0)
        assert calculate_angle((-1, 0), (0, 0), (1, 0)) == pytest.approx(180.0)

    def test_zero_length_segment_is_nan(self):
        assert math.isnan(calculate_angle((0, 0), (0, 0), (1, 0)))

    def test_full_range_uses_rotation_direction(self):
        assert calculate_angle((1, 0), (0, 0), (0, 1), full_range=True) == pytest.approx(90.0)
        assert calculate_angle((1, 0), (0, 0), (0, -1), full_range=True) == pytest.approx(270.0)


class TestAngleCalculator:
    def test_first_sample_passes_through(self):
        calc = AngleCalculator()
        sample = calc.update("knee", 150.0, 0.0)
        assert sample.raw == 150.0
        assert sample.smoothed == 150.0
        assert sample.velocity == 0.0

    def test_constant_input_converges_exactly(self):
        calc = AngleCalculator()
        for i in range(10):
            sample = calc.update("knee", 135.0, i * 0.05)
        assert sample.smoothed == 135.0
        assert sample.velocity == 0.0

    def test_recency_weighted_mean(self):
        calc = AngleCalculator()
        calc.update("knee", 100.0, 0.0)
        sample = calc.update("knee", 110.0, 0.1)
        assert sample.smoothed == pytest.approx((100.0 * 1 + 110.0 * 2) / 3)
        assert sample.velocity == pytest.approx(((320.0 / 3) - 100.0) / 0.1)

    def test_outlier_replaced_by_window_median(self):
        calc = AngleCalculator()
        for i in range(4):
            calc.update("knee", 170.0, i * 0.05)
        spike = calc.update("knee", 260.0, 0.2)
        assert spike.raw == 260.0
        assert spike.smoothed == 170.0
        assert calc.window("knee") == [170.0] * 5

    def test_non_positive_time_delta_holds_velocity(self):
        calc = AngleCalculator()
        calc.update("knee", 100.0, 0.0)
        moving = calc.update("knee", 110.0, 0.1)
        duplicate = calc.update("knee", 120.0, 0.1)
        backwards = calc.update("knee", 125.0, 0.05)
        assert duplicate.velocity == moving.velocity
        assert backwards.velocity == moving.velocity

    def test_histories_are_isolated_per_key(self):
        calc = AngleCalculator()
        calc.update("left_knee", 100.0, 0.0)
        first = calc.update("right_knee", 160.0, 0.0)
        assert first.smoothed == 160.0
        assert calc.window("left_knee") == [100.0]

    def test_window_size_minimum(self):
        with pytest.raises(ValueError):
            AngleCalculator(window_size=3)

    def test_reset(self):
        calc = AngleCalculator()
        calc.update("a", 100.0, 0.0)
        calc.update("b", 100.0, 0.0)
        calc.reset("a")
        assert calc.window("a") == []
        assert calc.window("b") == [100.0]
        calc.reset()
        assert calc.window("b") == []
        assert calc.update("b", 120.0, 1.0).velocity == 0.0


class TestComputeFromFrames:
    def test_compute_measures_rendered_angle(self, knee_frame):
        calc = AngleCalculator()
        sample = calc.compute("left_knee", LEFT_KNEE, knee_frame(150.0, 0.0))
        assert sample.raw == pytest.approx(150.0, abs=1e-6)

    def test_low_confidence_is_unavailable_and_keeps_history(self, knee_frame):
        calc = AngleCalculator(min_confidence=0.5)
        calc.compute("left_knee", LEFT_KNEE, knee_frame(150.0, 0.0))
        calc.compute("left_knee", LEFT_KNEE, knee_frame(140.0, 0.05))
        before = calc.window("left_knee")

        occluded = knee_frame(130.0, 0.1, confidence_overrides={Joint.LEFT_ANKLE: 0.1})
        assert calc.compute("left_knee", LEFT_KNEE, occluded) is None
        assert calc.window("left_knee") == before

    def test_confidence_at_threshold_is_unavailable(self, knee_frame):
        calc = AngleCalculator(min_confidence=0.5)
        frame = knee_frame(150.0, 0.0, confidence_overrides={Joint.LEFT_KNEE: 0.5})
        assert calc.measure(LEFT_KNEE, frame) is None

    def test_degenerate_geometry_is_unavailable(self, knee_frame):
        calc = AngleCalculator()
        frame = knee_frame(150.0, 0.0)
        hip = frame[Joint.LEFT_HIP]
        collapsed = frame.replace_landmark(Joint.LEFT_KNEE, x=hip.x, y=hip.y)
        assert calc.compute("left_knee", LEFT_KNEE, collapsed) is None
        assert calc.window("left_knee") == []

    def test_full_range_measure_detects_hyperextension(self, detector):
        calc = AngleCalculator()
        normal = detector.render({"left_knee": 170.0}, 0.0)
        bent_back = detector.render({"left_knee": 170.0}, 0.0, hyperextended=("left_knee",))
        assert calc.measure(LEFT_KNEE, normal, full_range=True) == pytest.approx(170.0, abs=1e-6)
        assert calc.measure(LEFT_KNEE, bent_back, full_range=True) == pytest.approx(190.0, abs=1e-6)
        assert calc.measure(LEFT_KNEE, bent_back) == pytest.approx(170.0, abs=1e-6)
