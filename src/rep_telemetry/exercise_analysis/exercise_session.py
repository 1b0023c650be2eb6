"""
exercise_session.py - One tracked exercise session, fed one landmark frame at a time.

The session owns every piece of mutable tracking state: the angle filter
histories, the phase state machine, the form score window and the feedback
cool-downs. Nothing here is shared between sessions, and nothing is safe
to call concurrently; the tracker serialises access.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..feedback.feedback_throttle import FeedbackThrottle
from ..feedback.messages import (
    SEVERITY_DATA_QUALITY,
    SEVERITY_REJECTED_REP,
    SEVERITY_REP_COMPLETE,
    SEVERITY_SAFETY,
    SEVERITY_TRACKING,
    FeedbackGenerator,
    FeedbackItem,
)
from ..pose_detection.landmarks import Joint, LandmarkFrame
from .angle_calculator import AngleCalculator, AngleSample
from .exercise_profile import ExerciseProfile, MovementPhase
from .form_scorer import FormScorer
from .phase_state_machine import PhaseStateMachine, RejectedRep
from .visibility_gate import GateResult, VisibilityGate

# --- Logger Setup ---
logger = logging.getLogger("rep_telemetry")
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


@dataclass
class FrameTelemetry:
    """Everything the UI layer receives for one processed frame."""
    timestamp: float
    phase: MovementPhase
    rep_count: int
    raw_angle: Optional[float] = None
    smoothed_angle: Optional[float] = None
    velocity: Optional[float] = None
    rep_just_completed: bool = False
    form_score: Optional[float] = None
    feedback_messages: List[str] = field(default_factory=list)
    safety_warnings: List[str] = field(default_factory=list)
    missing_joints: Tuple[Joint, ...] = ()
    frame_valid: bool = True
    tracking_lost: bool = False
    rejected_rep: Optional[RejectedRep] = None
    movement_quality: Optional[float] = None
    angles: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "rawAngle": self.raw_angle,
            "smoothedAngle": self.smoothed_angle,
            "velocity": self.velocity,
            "phase": self.phase.value,
            "repCount": self.rep_count,
            "repJustCompleted": self.rep_just_completed,
            "formScore": self.form_score,
            "feedbackMessages": list(self.feedback_messages),
            "safetyWarnings": list(self.safety_warnings),
            "missingJoints": [joint.name.lower() for joint in self.missing_joints],
            "frameValid": self.frame_valid,
            "trackingLost": self.tracking_lost,
            "rejectedRep": None if self.rejected_rep is None else [
                reason.value for reason in self.rejected_rep.reasons
            ],
            "movementQuality": self.movement_quality,
        }


class ExerciseSession:
    """
    Turns landmark frames into exercise telemetry for a single profile.

    Per frame: visibility gate, angles, phase update, form and safety
    scoring, then throttled feedback. Frames without usable data skip the
    phase and form updates; too many of them in a row force the session
    back to idle.
    """

    def __init__(self, profile: ExerciseProfile):
        """
        Args:
            profile: Exercise configuration, validated here

        Raises:
            ProfileConfigError: if the profile is invalid
        """
        profile.validate()
        self.profile = profile
        self._build()
        logger.info(f"Session started: {profile.name} (enter={profile.enter_threshold}°, "
                    f"exit={profile.exit_threshold}°, bottom={profile.bottom_angle}°)")

    def _build(self) -> None:
        profile = self.profile
        self.angle_calculator = AngleCalculator(
            window_size=profile.smoothing_window,
            outlier_threshold=profile.outlier_threshold,
            min_confidence=profile.angle_confidence_threshold,
        )
        self.visibility_gate = VisibilityGate.for_profile(profile)
        self.state_machine = PhaseStateMachine(profile)
        self.form_scorer = FormScorer()
        self.feedback_throttle = FeedbackThrottle()
        self.safety_throttle = FeedbackThrottle(max_messages=None)
        self.frames_processed = 0
        self.invalid_frames = 0
        self.tracking_lost_events = 0
        self.rejected_reps: Counter = Counter()
        self._tracking_lost = False

    @property
    def phase(self) -> MovementPhase:
        return self.state_machine.phase

    @property
    def rep_count(self) -> int:
        return self.state_machine.rep_count

    def process_frame(self, frame: LandmarkFrame) -> FrameTelemetry:
        """
        Process one landmark frame.

        Data-quality problems, rejected reps and lost tracking are reported
        in the returned telemetry; none of them raise.
        """
        self.frames_processed += 1
        profile = self.profile
        gate = self.visibility_gate.check(frame)
        primary: Optional[AngleSample] = None
        if gate.passed:
            primary = self.angle_calculator.compute(profile.primary_angle, profile.primary_triple, frame)
        if primary is None:
            return self._invalid_frame(frame, gate)

        self._tracking_lost = False
        samples = {profile.primary_angle: primary}
        for name, triple in profile.tracked_angles.items():
            if name == profile.primary_angle:
                continue
            sample = self.angle_calculator.compute(name, triple, frame)
            if sample is not None:
                samples[name] = sample
        angles = {name: sample.smoothed for name, sample in samples.items()}

        update = self.state_machine.update(primary)
        form = self.form_scorer.score(angles, profile.targets_for(update.phase))

        raw_full_range = {
            bound.angle: self.angle_calculator.measure(profile.tracked_angles[bound.angle], frame, full_range=True)
            for bound in profile.safety_bounds
        }
        if update.phase in (MovementPhase.FLEXED, MovementPhase.HOLDING):
            self.form_scorer.learn_bend_sides(raw_full_range)
        warnings = self.safety_throttle.filter(
            [FeedbackItem(SEVERITY_SAFETY, warning)
             for warning in self.form_scorer.check_safety(raw_full_range, profile.safety_bounds)],
            frame.timestamp,
        )
        for warning in warnings:
            logger.warning(f"[SAFETY] {warning}")
        quality, quality_item = self.form_scorer.movement_quality(
            self.angle_calculator.window(profile.primary_angle)
        )

        candidates: List[FeedbackItem] = list(form.messages)
        if quality_item is not None:
            candidates.append(quality_item)
        if update.rep_completed:
            candidates.append(FeedbackItem(SEVERITY_REP_COMPLETE, FeedbackGenerator.rep_complete(self.rep_count)))
        if update.rejected_rep is not None:
            self.rejected_reps.update(reason.value for reason in update.rejected_rep.reasons)
            candidates.append(FeedbackItem(
                SEVERITY_REJECTED_REP, FeedbackGenerator.rep_rejected(update.rejected_rep.reasons[0].value)
            ))

        return FrameTelemetry(
            timestamp=frame.timestamp,
            phase=update.phase,
            rep_count=self.rep_count,
            raw_angle=primary.raw,
            smoothed_angle=primary.smoothed,
            velocity=primary.velocity,
            rep_just_completed=update.rep_completed,
            form_score=form.score,
            feedback_messages=self.feedback_throttle.filter(candidates, frame.timestamp),
            safety_warnings=warnings,
            missing_joints=gate.missing_joints,
            rejected_rep=update.rejected_rep,
            movement_quality=quality,
            angles=angles,
        )

    def _invalid_frame(self, frame: LandmarkFrame, gate: GateResult) -> FrameTelemetry:
        self.invalid_frames += 1
        profile = self.profile
        if gate.passed:
            candidates = [FeedbackItem(SEVERITY_DATA_QUALITY, FeedbackGenerator.angle_unavailable(profile.primary_angle))]
        else:
            candidates = [FeedbackItem(SEVERITY_DATA_QUALITY, FeedbackGenerator.cannot_see(gate.missing_joints))]

        tracking_lost = False
        invalid_run = self.state_machine.record_invalid_frame()
        if invalid_run > profile.max_invalid_frames and not self._tracking_lost:
            logger.warning(f"Lost tracking after {invalid_run} unusable frames, returning to idle")
            self.state_machine.force_idle(frame.timestamp)
            self.angle_calculator.reset()
            self.form_scorer.clear_bend_sides()
            self._tracking_lost = True
            self.tracking_lost_events += 1
            tracking_lost = True
            candidates.append(FeedbackItem(SEVERITY_TRACKING, FeedbackGenerator.tracking_lost()))

        return FrameTelemetry(
            timestamp=frame.timestamp,
            phase=self.phase,
            rep_count=self.rep_count,
            feedback_messages=self.feedback_throttle.filter(candidates, frame.timestamp),
            missing_joints=gate.missing_joints,
            frame_valid=False,
            tracking_lost=tracking_lost,
        )

    def reset(self) -> None:
        """Full re-initialisation for the same profile."""
        self._build()
        logger.info(f"Session reset: {self.profile.name}")

    def summary(self) -> Dict[str, Any]:
        average = self.form_scorer.average_score()
        return {
            "exercise": self.profile.kind.value,
            "rep_count": self.rep_count,
            "phase": self.phase.value,
            "frames_processed": self.frames_processed,
            "invalid_frames": self.invalid_frames,
            "tracking_lost_events": self.tracking_lost_events,
            "rejected_reps": dict(self.rejected_reps),
            "average_form_score": None if average is None else round(average, 1),
            "phase_history": [
                {"from": t.from_phase.value, "to": t.to_phase.value, "timestamp": t.timestamp}
                for t in self.state_machine.state.phase_history
            ],
        }
