from typing import Dict, Iterable, List, Optional

import pytest

from rep_telemetry.exercise_analysis.angle_calculator import AngleSample
from rep_telemetry.exercise_analysis.config_utils import load_config, load_exercise_profile
from rep_telemetry.pose_detection.landmarks import Joint, LandmarkFrame
from rep_telemetry.pose_detection.synthetic_detector import SyntheticPoseDetector

FRAME_INTERVAL = 0.05


def knee_sweep() -> List[float]:
    """One slow knee flexion rep: 170 -> 100, held, -> 170 in 5 degree steps."""
    down = [170.0 - 5.0 * i for i in range(1, 15)]
    up = [100.0 + 5.0 * i for i in range(1, 15)]
    return [170.0] * 5 + down + [100.0] * 6 + up + [170.0] * 5


def samples(points: Iterable, offset: float = 0.0) -> List[AngleSample]:
    """AngleSamples from (timestamp, angle, velocity) tuples, angle used as both raw and smoothed."""
    return [AngleSample(raw=angle, smoothed=angle, velocity=velocity, timestamp=t + offset)
            for t, angle, velocity in points]


@pytest.fixture
def knee_profile():
    return load_exercise_profile("knee_flexion")


@pytest.fixture
def raw_profiles():
    return load_config()


@pytest.fixture
def detector():
    return SyntheticPoseDetector()


@pytest.fixture
def knee_frame(detector):
    def make(angle: float, timestamp: float, confidence_overrides: Optional[Dict[Joint, float]] = None,
             **kwargs) -> LandmarkFrame:
        return detector.render({"left_knee": angle, "right_knee": angle}, timestamp,
                               confidence_overrides=confidence_overrides, **kwargs)
    return make
