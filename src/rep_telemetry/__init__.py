"""
Exercise tracking telemetry from 2-D pose landmarks: joint angles, movement
phases, validated rep counts and form scores.
"""

from .exercise_analysis import (
    ExerciseKind,
    ExerciseProfile,
    ExerciseSession,
    FrameTelemetry,
    MovementPhase,
    ProfileConfigError,
    load_exercise_profile,
    load_exercise_profiles,
)
from .pose_detection import Joint, Landmark, LandmarkFrame
from .tracker import ExerciseTracker

__version__ = "0.1.0"

__all__ = [
    'ExerciseKind',
    'ExerciseProfile',
    'ExerciseSession',
    'ExerciseTracker',
    'FrameTelemetry',
    'Joint',
    'Landmark',
    'LandmarkFrame',
    'MovementPhase',
    'ProfileConfigError',
    'load_exercise_profile',
    'load_exercise_profiles'
]
