from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

from ..pose_detection.landmarks import Joint
from .pose_utils import bend_side, interior_angle


class ProfileConfigError(ValueError):
    """Raised when an exercise profile is missing fields or holds invalid values."""

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or [message]
        super().__init__(message)


class ExerciseKind(Enum):
    """Closed set of exercises the tracker can be configured for."""
    BICEP_CURL = "bicep_curl"
    SQUAT = "squat"
    PAUSED_SQUAT = "paused_squat"
    KNEE_FLEXION = "knee_flexion"
    SHOULDER_FLEXION = "shoulder_flexion"
    LATERAL_ARM_RAISE = "lateral_arm_raise"
    NECK_FLEXION = "neck_flexion"


class MovementPhase(Enum):
    IDLE = "idle"
    EXTENDED = "extended"
    FLEXING = "flexing"
    FLEXED = "flexed"
    HOLDING = "holding"
    EXTENDING = "extending"


# Phases without their own targets are scored against these.
PHASE_TARGET_FALLBACK = {
    MovementPhase.IDLE: MovementPhase.EXTENDED,
    MovementPhase.HOLDING: MovementPhase.FLEXED,
}


class JointTriple(NamedTuple):
    """Three joints forming an angle measured at ``vertex``."""
    proximal: Joint
    vertex: Joint
    distal: Joint


@dataclass(frozen=True)
class TargetRange:
    min_angle: float
    max_angle: float


@dataclass(frozen=True)
class PhaseTarget:
    """Target angle ranges for one movement phase, widened by ``tolerance`` on both sides."""
    angles: Dict[str, TargetRange]
    tolerance: float = 15.0


@dataclass(frozen=True)
class SafetyBound:
    """
    Limit on how far a joint may straighten past 180 degrees.

    Which side counts as "past straight" depends on the side the joint
    normally bends toward, which changes with the direction the person
    faces and with mirrored images. The caller supplies it.
    """
    angle: str
    message: str
    max_hyperextension: float = 0.0  # Degrees past straight

    def is_violated(self, full_range_angle: float, normal_side: int) -> bool:
        side = bend_side(full_range_angle)
        if side == 0 or side == normal_side:
            return False
        return 180.0 - interior_angle(full_range_angle) > self.max_hyperextension


@dataclass(frozen=True)
class ExerciseProfile:
    """Immutable per-exercise configuration driving the generic tracking pipeline."""
    kind: ExerciseKind
    name: str
    tracked_angles: Dict[str, JointTriple]
    primary_angle: str
    enter_threshold: float  # Crossing this enters flexion
    exit_threshold: float  # Crossing this back ends flexion (candidate rep)
    bottom_angle: float  # Depth (or peak) the movement must reach while flexed
    required_joints: Tuple[Joint, ...]
    min_visible_joints: int
    description: str = ""
    min_dwell_seconds: float = 0.15
    min_rep_interval_seconds: float = 1.2
    min_exit_velocity: float = 20.0  # deg/s toward extension
    flexing_margin: float = 5.0  # Movement past the exit threshold before an attempt starts
    hold_required: bool = False
    hold_seconds: float = 0.5
    visibility_threshold: float = 0.3
    angle_confidence_threshold: float = 0.5
    smoothing_window: int = 5
    outlier_threshold: float = 30.0
    max_invalid_frames: int = 10
    phase_targets: Dict[MovementPhase, PhaseTarget] = field(default_factory=dict)
    safety_bounds: Tuple[SafetyBound, ...] = ()

    @property
    def flexes_by_decreasing_angle(self) -> bool:
        """True when the angle gets smaller moving into flexion (curl, squat)."""
        return self.enter_threshold < self.exit_threshold

    @property
    def primary_triple(self) -> JointTriple:
        return self.tracked_angles[self.primary_angle]

    def targets_for(self, phase: MovementPhase) -> Optional[PhaseTarget]:
        if phase in self.phase_targets:
            return self.phase_targets[phase]
        fallback = PHASE_TARGET_FALLBACK.get(phase)
        if fallback is not None:
            return self.phase_targets.get(fallback)
        return None

    def validate(self) -> None:
        """
        Check the profile for configuration errors.

        Raises:
            ProfileConfigError: listing every problem found
        """
        problems = []
        if not self.tracked_angles:
            problems.append("tracked_angles is empty")
        for angle_name, triple in self.tracked_angles.items():
            if len(set(triple)) != 3:
                problems.append(f"tracked angle {angle_name!r} must use three distinct joints")
        if self.primary_angle not in self.tracked_angles:
            problems.append(f"primary_angle {self.primary_angle!r} is not a tracked angle")
        if self.enter_threshold == self.exit_threshold:
            problems.append("enter_threshold and exit_threshold must differ")
        for label, value in (("enter_threshold", self.enter_threshold),
                             ("exit_threshold", self.exit_threshold),
                             ("bottom_angle", self.bottom_angle)):
            if not 0.0 <= value <= 180.0:
                problems.append(f"{label} must be within [0, 180], got {value}")
        if not self.required_joints:
            problems.append("required_joints is empty")
        elif not 1 <= self.min_visible_joints <= len(self.required_joints):
            problems.append(
                f"min_visible_joints must be between 1 and {len(self.required_joints)}, got {self.min_visible_joints}"
            )
        if self.min_dwell_seconds < 0 or self.min_rep_interval_seconds < 0 or self.hold_seconds < 0:
            problems.append("durations must not be negative")
        if self.min_exit_velocity < 0:
            problems.append("min_exit_velocity must not be negative")
        if self.flexing_margin < 0:
            problems.append("flexing_margin must not be negative")
        if self.smoothing_window < 5:
            problems.append(f"smoothing_window must be at least 5, got {self.smoothing_window}")
        if self.outlier_threshold <= 0:
            problems.append("outlier_threshold must be positive")
        if self.max_invalid_frames < 1:
            problems.append("max_invalid_frames must be at least 1")
        for threshold_name in ("visibility_threshold", "angle_confidence_threshold"):
            value = getattr(self, threshold_name)
            if not 0.0 <= value < 1.0:
                problems.append(f"{threshold_name} must be within [0, 1), got {value}")
        for phase, target in self.phase_targets.items():
            for angle_name, target_range in target.angles.items():
                if angle_name not in self.tracked_angles:
                    problems.append(f"{phase.value} target references unknown angle {angle_name!r}")
                if target_range.min_angle > target_range.max_angle:
                    problems.append(f"{phase.value} target for {angle_name!r} has min above max")
            if target.tolerance < 0:
                problems.append(f"{phase.value} tolerance must not be negative")
        for bound in self.safety_bounds:
            if bound.angle not in self.tracked_angles:
                problems.append(f"safety bound references unknown angle {bound.angle!r}")
            if not 0.0 <= bound.max_hyperextension < 180.0:
                problems.append(f"safety bound for {bound.angle!r} must allow between 0 and 180 degrees")

        if problems:
            raise ProfileConfigError(
                f"Invalid profile {self.kind.value!r}: " + "; ".join(problems), problems
            )
