"""
phase_state_machine.py - Movement phases and rep counting with hysteresis.

A rep is counted only when the movement crosses the exit threshold coming
out of flexion and every gating predicate holds: enough dwell time in
flexion, the bottom (or peak) angle was reached, the extension was fast
enough, and enough time passed since the last counted rep. Exercises that
require a pause must also complete the hold.

Flexion direction comes from the profile thresholds, so the same machine
drives decreasing-angle movements (curls, squats) and increasing-angle
ones (shoulder raises).
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Tuple

from .angle_calculator import AngleSample
from .exercise_profile import ExerciseProfile, MovementPhase

logger = logging.getLogger(__name__)

PHASE_HISTORY_SIZE = 10


class RejectionReason(Enum):
    DWELL_TOO_SHORT = "dwell_too_short"
    BOTTOM_NOT_REACHED = "bottom_not_reached"
    VELOCITY_TOO_LOW = "velocity_too_low"
    INTERVAL_TOO_SHORT = "interval_too_short"
    HOLD_NOT_COMPLETED = "hold_not_completed"


@dataclass(frozen=True)
class PhaseTransition:
    from_phase: MovementPhase
    to_phase: MovementPhase
    timestamp: float
    angle: float


@dataclass(frozen=True)
class RejectedRep:
    """A candidate rep that failed one or more gating predicates."""
    reasons: Tuple[RejectionReason, ...]
    timestamp: float
    extreme_angle: Optional[float]
    dwell_seconds: float
    velocity: float


@dataclass(frozen=True)
class PhaseUpdate:
    phase: MovementPhase
    previous_phase: MovementPhase
    rep_completed: bool = False
    rejected_rep: Optional[RejectedRep] = None


@dataclass
class SessionState:
    """Mutable tracking state owned by one PhaseStateMachine."""
    phase: MovementPhase = MovementPhase.IDLE
    rep_count: int = 0
    extreme_angle: Optional[float] = None  # Deepest angle since flexion began
    flexion_enter_timestamp: Optional[float] = None
    phase_enter_timestamp: Optional[float] = None
    last_rep_timestamp: Optional[float] = None
    hold_completed: bool = False
    phase_history: Deque[PhaseTransition] = field(default_factory=lambda: deque(maxlen=PHASE_HISTORY_SIZE))
    consecutive_invalid_frames: int = 0


class PhaseStateMachine:
    """Drives MovementPhase transitions from smoothed primary-angle samples."""

    def __init__(self, profile: ExerciseProfile):
        self.profile = profile
        self.decreasing = profile.flexes_by_decreasing_angle
        self.state = SessionState()

    # --- Direction-aware comparisons ---
    def _past_enter(self, angle: float) -> bool:
        if self.decreasing:
            return angle < self.profile.enter_threshold
        return angle > self.profile.enter_threshold

    def _past_exit(self, angle: float) -> bool:
        if self.decreasing:
            return angle > self.profile.exit_threshold
        return angle < self.profile.exit_threshold

    def _started_flexing(self, angle: float) -> bool:
        if self.decreasing:
            return angle < self.profile.exit_threshold - self.profile.flexing_margin
        return angle > self.profile.exit_threshold + self.profile.flexing_margin

    def _deeper(self, a: float, b: float) -> float:
        return min(a, b) if self.decreasing else max(a, b)

    def _reached_bottom(self, extreme: Optional[float]) -> bool:
        if extreme is None:
            return False
        if self.decreasing:
            return extreme <= self.profile.bottom_angle
        return extreme >= self.profile.bottom_angle

    def _extension_velocity(self, velocity: float) -> float:
        """Velocity toward extension, positive when moving out of flexion."""
        return velocity if self.decreasing else -velocity

    # --- Transitions ---
    @property
    def phase(self) -> MovementPhase:
        return self.state.phase

    @property
    def rep_count(self) -> int:
        return self.state.rep_count

    def _transition(self, phase: MovementPhase, timestamp: float, angle: float) -> None:
        state = self.state
        if phase is state.phase:
            return
        state.phase_history.append(PhaseTransition(state.phase, phase, timestamp, angle))
        logger.debug(f"[PHASE] {state.phase.value} -> {phase.value} at {angle:.1f}°")
        state.phase = phase
        state.phase_enter_timestamp = timestamp

    def _enter_flexion(self, timestamp: float, angle: float) -> None:
        self.state.flexion_enter_timestamp = timestamp
        self.state.extreme_angle = angle
        self.state.hold_completed = False
        self._transition(MovementPhase.FLEXED, timestamp, angle)

    def _clear_rep_trackers(self) -> None:
        self.state.extreme_angle = None
        self.state.flexion_enter_timestamp = None
        self.state.hold_completed = False

    def update(self, sample: AngleSample) -> PhaseUpdate:
        """
        Advance the machine by one valid sample of the primary angle.

        Args:
            sample: Smoothed primary angle, its velocity and timestamp

        Returns:
            PhaseUpdate with the new phase and any completed or rejected rep
        """
        state = self.state
        angle, now = sample.smoothed, sample.timestamp
        previous = state.phase
        state.consecutive_invalid_frames = 0
        rep_completed = False
        rejected: Optional[RejectedRep] = None

        if previous is MovementPhase.IDLE:
            if self._past_enter(angle):
                self._enter_flexion(now, angle)
            else:
                self._transition(MovementPhase.EXTENDED, now, angle)

        elif previous is MovementPhase.EXTENDED:
            if self._past_enter(angle):
                self._enter_flexion(now, angle)
            elif self._started_flexing(angle):
                state.extreme_angle = angle
                self._transition(MovementPhase.FLEXING, now, angle)

        elif previous is MovementPhase.FLEXING:
            state.extreme_angle = angle if state.extreme_angle is None else self._deeper(state.extreme_angle, angle)
            if self._past_enter(angle):
                self._enter_flexion(now, angle)
            elif self._past_exit(angle):
                # Turned back before ever reaching flexion
                rejected = RejectedRep(
                    reasons=(RejectionReason.BOTTOM_NOT_REACHED,),
                    timestamp=now,
                    extreme_angle=state.extreme_angle,
                    dwell_seconds=0.0,
                    velocity=sample.velocity,
                )
                self._clear_rep_trackers()
                self._transition(MovementPhase.EXTENDED, now, angle)

        else:
            state.extreme_angle = angle if state.extreme_angle is None else self._deeper(state.extreme_angle, angle)
            if self._past_exit(angle):
                rep_completed, rejected = self._evaluate_candidate(sample)
                self._clear_rep_trackers()
                self._transition(MovementPhase.EXTENDED, now, angle)
            elif previous is MovementPhase.FLEXED:
                if self._past_enter(angle):
                    if (self.profile.hold_required and not state.hold_completed
                            and now - state.flexion_enter_timestamp >= self.profile.hold_seconds):
                        state.hold_completed = True
                        self._transition(MovementPhase.HOLDING, now, angle)
                elif not self.profile.hold_required or state.hold_completed:
                    self._transition(MovementPhase.EXTENDING, now, angle)
            elif previous is MovementPhase.HOLDING:
                if not self._past_enter(angle):
                    self._transition(MovementPhase.EXTENDING, now, angle)
            elif self._past_enter(angle):
                # Went back down from extending
                self._transition(MovementPhase.FLEXED, now, angle)

        if rejected is not None:
            logger.info(
                f"Rep rejected: {', '.join(reason.value for reason in rejected.reasons)} "
                f"(extreme={rejected.extreme_angle}, dwell={rejected.dwell_seconds:.2f}s, "
                f"velocity={rejected.velocity:.1f}°/s)"
            )
        return PhaseUpdate(phase=state.phase, previous_phase=previous,
                           rep_completed=rep_completed, rejected_rep=rejected)

    def _evaluate_candidate(self, sample: AngleSample) -> Tuple[bool, Optional[RejectedRep]]:
        state = self.state
        profile = self.profile
        now = sample.timestamp
        dwell = now - state.flexion_enter_timestamp if state.flexion_enter_timestamp is not None else 0.0
        extension_velocity = self._extension_velocity(sample.velocity)

        reasons: List[RejectionReason] = []
        if profile.hold_required and not state.hold_completed:
            reasons.append(RejectionReason.HOLD_NOT_COMPLETED)
        if dwell < profile.min_dwell_seconds:
            reasons.append(RejectionReason.DWELL_TOO_SHORT)
        if not self._reached_bottom(state.extreme_angle):
            reasons.append(RejectionReason.BOTTOM_NOT_REACHED)
        if extension_velocity < profile.min_exit_velocity:
            reasons.append(RejectionReason.VELOCITY_TOO_LOW)
        if (state.last_rep_timestamp is not None
                and now - state.last_rep_timestamp < profile.min_rep_interval_seconds):
            reasons.append(RejectionReason.INTERVAL_TOO_SHORT)

        if reasons:
            return False, RejectedRep(
                reasons=tuple(reasons),
                timestamp=now,
                extreme_angle=state.extreme_angle,
                dwell_seconds=dwell,
                velocity=extension_velocity,
            )

        state.rep_count += 1
        state.last_rep_timestamp = now
        logger.info(
            f"Rep #{state.rep_count} counted (extreme={state.extreme_angle:.1f}°, dwell={dwell:.2f}s, "
            f"velocity={extension_velocity:.1f}°/s)"
        )
        return True, None

    def record_invalid_frame(self) -> int:
        """Count one frame without usable data and return the running total."""
        self.state.consecutive_invalid_frames += 1
        return self.state.consecutive_invalid_frames

    def force_idle(self, timestamp: float) -> None:
        """
        Recover from lost tracking: return to idle and drop the rep in progress.

        The rep count and last rep time are kept so the interval gate still
        applies once tracking resumes.
        """
        self._clear_rep_trackers()
        if self.state.phase is not MovementPhase.IDLE:
            self.state.phase_history.append(
                PhaseTransition(self.state.phase, MovementPhase.IDLE, timestamp, float("nan"))
            )
            self.state.phase = MovementPhase.IDLE
            self.state.phase_enter_timestamp = timestamp

    def reset(self) -> None:
        self.state = SessionState()
