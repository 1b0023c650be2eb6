"""
Pose detection boundary: the landmark data model and detector adapters.

The MediaPipe adapter is not imported here so that the core package works
without the optional camera dependencies.
"""

from .base_detector import BasePoseDetector
from .landmarks import Joint, Landmark, LandmarkFrame, JOINT_COUNT
from .synthetic_detector import SyntheticPoseDetector

__all__ = [
    'BasePoseDetector',
    'Joint',
    'Landmark',
    'LandmarkFrame',
    'JOINT_COUNT',
    'SyntheticPoseDetector'
]
