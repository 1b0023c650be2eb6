from dataclasses import dataclass
from typing import Sequence, Tuple

from ..pose_detection.landmarks import Joint, LandmarkFrame
from .exercise_profile import ExerciseProfile
from .pose_utils import invisible_joints


@dataclass(frozen=True)
class GateResult:
    passed: bool
    missing_joints: Tuple[Joint, ...]
    visible_count: int
    required_count: int


class VisibilityGate:
    """
    Decides whether a frame shows enough of the body to analyse.

    Occlusion tolerant: a frame passes when at least ``min_visible`` of the
    required joints are above the confidence threshold, not all of them.
    """

    def __init__(self, required_joints: Sequence[Joint], min_visible: int, confidence_threshold: float = 0.3):
        if not required_joints:
            raise ValueError("required_joints must not be empty")
        if not 1 <= min_visible <= len(required_joints):
            raise ValueError(f"min_visible must be between 1 and {len(required_joints)}, got {min_visible}")
        self.required_joints = tuple(required_joints)
        self.min_visible = min_visible
        self.confidence_threshold = confidence_threshold

    @classmethod
    def for_profile(cls, profile: ExerciseProfile) -> "VisibilityGate":
        return cls(profile.required_joints, profile.min_visible_joints, profile.visibility_threshold)

    def check(self, frame: LandmarkFrame) -> GateResult:
        missing = tuple(invisible_joints(frame, self.required_joints, self.confidence_threshold))
        visible = len(self.required_joints) - len(missing)
        return GateResult(
            passed=visible >= self.min_visible,
            missing_joints=missing,
            visible_count=visible,
            required_count=len(self.required_joints),
        )
