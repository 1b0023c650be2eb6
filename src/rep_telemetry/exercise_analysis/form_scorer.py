"""
form_scorer.py - Per-phase form scoring, safety bounds and movement quality.
"""
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..feedback.messages import (
    MAX_JOINT_SEVERITY,
    SEVERITY_MOVEMENT_QUALITY,
    SEVERITY_POOR_FORM,
    FeedbackGenerator,
    FeedbackItem,
)
from .exercise_profile import PhaseTarget, SafetyBound
from .pose_utils import bend_side, interior_angle

PERFECT_SCORE = 100.0
MAX_JOINT_PENALTY = 30.0
DEVIATION_PENALTY_FACTOR = 2.0
MIN_QUALITY_SAMPLES = 5
JERKY_MOVEMENT_FLOOR = 60.0
BEND_SIDE_MIN_FLEXION = 20.0  # Degrees short of straight before the bend side is trusted


@dataclass
class FormResult:
    score: float
    deviations: Dict[str, float] = field(default_factory=dict)  # Degrees outside the tolerance band
    messages: List[FeedbackItem] = field(default_factory=list)
    sustained_poor_form: bool = False


class FormScorer:
    """Scores joint angles against the current phase's target band."""

    def __init__(self, history_size: int = 30, poor_form_floor: float = 60.0,
                 min_history: int = 10, feedback_deviation: float = 10.0):
        """
        Args:
            history_size: Scores kept in the rolling window
            poor_form_floor: Window average below this triggers sustained-poor-form feedback
            min_history: Scores required before the window average is trusted
            feedback_deviation: Degrees outside the band before a joint gets its own message
        """
        self.history_size = history_size
        self.poor_form_floor = poor_form_floor
        self.min_history = min_history
        self.feedback_deviation = feedback_deviation
        self._history: Deque[float] = deque(maxlen=history_size)
        self._bend_sides: Dict[str, int] = {}

    def score(self, angles: Mapping[str, Optional[float]], target: Optional[PhaseTarget]) -> FormResult:
        """
        Score the current angles.

        Each joint loses min(deviation * 2, 30) points, where deviation is how
        far the angle sits outside [min - tolerance, max + tolerance]. Joints
        without a current angle are skipped.

        Args:
            angles: Current smoothed angles by name
            target: Target band for the current phase, or None if the phase has none

        Returns:
            FormResult with the clamped score and candidate feedback
        """
        if target is None:
            return FormResult(score=PERFECT_SCORE)

        total = PERFECT_SCORE
        deviations: Dict[str, float] = {}
        messages: List[FeedbackItem] = []
        for name, target_range in target.angles.items():
            angle = angles.get(name)
            if angle is None:
                continue
            low = target_range.min_angle - target.tolerance
            high = target_range.max_angle + target.tolerance
            deviation = 0.0
            if angle < low:
                deviation = low - angle
            elif angle > high:
                deviation = angle - high
            deviations[name] = deviation
            total -= min(deviation * DEVIATION_PENALTY_FACTOR, MAX_JOINT_PENALTY)
            if deviation > self.feedback_deviation:
                messages.append(FeedbackItem(
                    min(deviation, MAX_JOINT_SEVERITY),
                    FeedbackGenerator.joint_correction(name, increase=angle < low),
                ))

        score = max(0.0, total)
        self._history.append(score)
        sustained = len(self._history) >= self.min_history and self.average_score() < self.poor_form_floor
        if sustained:
            messages.insert(0, FeedbackItem(SEVERITY_POOR_FORM, FeedbackGenerator.sustained_poor_form()))
        return FormResult(score=score, deviations=deviations, messages=messages, sustained_poor_form=sustained)

    def learn_bend_sides(self, full_range_angles: Mapping[str, Optional[float]]) -> None:
        """
        Record the side each angle bends toward while the joint is clearly flexed.

        Angles within BEND_SIDE_MIN_FLEXION of straight are ignored.
        """
        for name, value in full_range_angles.items():
            if value is None or interior_angle(value) > 180.0 - BEND_SIDE_MIN_FLEXION:
                continue
            self._bend_sides[name] = bend_side(value)

    def check_safety(self, full_range_angles: Mapping[str, Optional[float]],
                     bounds: Sequence[SafetyBound]) -> List[str]:
        """
        Hyperextension warnings, independent of the form score.

        A joint is only checked once learn_bend_sides has seen it flexed.

        Args:
            full_range_angles: Full-range (0-360) raw angles by name
            bounds: Safety bounds from the exercise profile

        Returns:
            Distinct warning messages for every violated bound
        """
        warnings: List[str] = []
        for bound in bounds:
            value = full_range_angles.get(bound.angle)
            normal_side = self._bend_sides.get(bound.angle)
            if value is None or normal_side is None:
                continue
            if bound.is_violated(value, normal_side) and bound.message not in warnings:
                warnings.append(bound.message)
        return warnings

    @property
    def bend_sides(self) -> Dict[str, int]:
        return dict(self._bend_sides)

    def clear_bend_sides(self) -> None:
        self._bend_sides.clear()

    @staticmethod
    def movement_quality(angles: Sequence[float]) -> Tuple[float, Optional[FeedbackItem]]:
        """
        Smoothness of recent movement, 0-100.

        Uses the spread of frame-to-frame steps: a steady sweep scores 100,
        back-and-forth jitter scores low.
        """
        if len(angles) < MIN_QUALITY_SAMPLES:
            return 50.0, None
        steps = np.diff(np.asarray(angles, dtype=float))
        quality = float(max(0.0, PERFECT_SCORE - 2.0 * np.std(steps)))
        if quality < JERKY_MOVEMENT_FLOOR:
            return quality, FeedbackItem(SEVERITY_MOVEMENT_QUALITY, FeedbackGenerator.jerky_movement())
        return quality, None

    def average_score(self) -> Optional[float]:
        if not self._history:
            return None
        return float(np.mean(self._history))

    @property
    def history(self) -> List[float]:
        return list(self._history)

    def reset(self) -> None:
        self._history.clear()
        self._bend_sides.clear()
