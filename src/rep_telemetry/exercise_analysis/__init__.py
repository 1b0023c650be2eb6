"""
Exercise analysis package: angles, visibility, phases, form and the session pipeline.
"""

from .angle_calculator import AngleCalculator, AngleSample
from .config_utils import load_exercise_profile, load_exercise_profiles, profile_from_dict
from .exercise_profile import (
    ExerciseKind,
    ExerciseProfile,
    JointTriple,
    MovementPhase,
    PhaseTarget,
    ProfileConfigError,
    SafetyBound,
    TargetRange,
)
from .exercise_session import ExerciseSession, FrameTelemetry
from .form_scorer import FormResult, FormScorer
from .phase_state_machine import PhaseStateMachine, PhaseUpdate, RejectedRep, RejectionReason, SessionState
from .visibility_gate import GateResult, VisibilityGate

__all__ = [
    'AngleCalculator',
    'AngleSample',
    'ExerciseKind',
    'ExerciseProfile',
    'ExerciseSession',
    'FormResult',
    'FormScorer',
    'FrameTelemetry',
    'GateResult',
    'JointTriple',
    'MovementPhase',
    'PhaseStateMachine',
    'PhaseTarget',
    'PhaseUpdate',
    'ProfileConfigError',
    'RejectedRep',
    'RejectionReason',
    'SafetyBound',
    'SessionState',
    'TargetRange',
    'VisibilityGate',
    'load_exercise_profile',
    'load_exercise_profiles',
    'profile_from_dict'
]
