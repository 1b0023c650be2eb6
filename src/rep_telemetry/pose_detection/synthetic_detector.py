"""
synthetic_detector.py - Deterministic skeleton generator for demos and tests.

Joint angles are rendered exactly: the interior angle computed from the
produced landmarks equals the requested angle. Left-side limbs are rotated
counter-clockwise in image coordinates and right-side limbs clockwise, so a
full-range (0-360) angle reads as the interior angle on the left side and
as 360 minus it on the right side. ``hyperextended`` flips that rotation.
"""
import math
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import numpy as np

from .base_detector import BasePoseDetector
from .landmarks import Joint, Landmark, LandmarkFrame

AngleSchedule = Callable[[float], Dict[str, float]]

DEFAULT_ANGLES = {
    "left_shoulder": 15.0,
    "right_shoulder": 15.0,
    "left_elbow": 170.0,
    "right_elbow": 170.0,
    "left_hip": 175.0,
    "right_hip": 175.0,
    "left_knee": 175.0,
    "right_knee": 175.0,
    "neck": 170.0,
}

# Fixed anchor points of a standing, camera-facing skeleton.
_ANCHORS = {
    Joint.NOSE: (0.50, 0.15),
    Joint.LEFT_EYE: (0.48, 0.13),
    Joint.RIGHT_EYE: (0.52, 0.13),
    Joint.LEFT_SHOULDER: (0.42, 0.30),
    Joint.RIGHT_SHOULDER: (0.58, 0.30),
    Joint.LEFT_HIP: (0.45, 0.55),
    Joint.RIGHT_HIP: (0.55, 0.55),
}

_UPPER_ARM = 0.15
_FOREARM = 0.13
_THIGH = 0.20
_SHIN = 0.20
_NECK = 0.12


def _place(vertex: np.ndarray, proximal: np.ndarray, angle_deg: float, length: float, sign: float) -> np.ndarray:
    """Point at ``length`` from vertex, ``angle_deg`` away from the vertex->proximal direction."""
    direction = proximal - vertex
    unit = direction / np.linalg.norm(direction)
    theta = math.radians(sign * angle_deg)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    rotated = np.array([unit[0] * cos_t - unit[1] * sin_t, unit[0] * sin_t + unit[1] * cos_t])
    return vertex + length * rotated


def angle_cycle(names: Iterable[str], period: float, start: float, turn: float) -> AngleSchedule:
    """The named angles moving sinusoidally from ``start`` to ``turn`` and back once per period."""
    names = tuple(names)
    mid = (start + turn) / 2.0
    amplitude = (start - turn) / 2.0

    def schedule(t: float) -> Dict[str, float]:
        angle = mid + amplitude * math.cos(2.0 * math.pi * t / period)
        return {name: angle for name in names}

    return schedule


def knee_cycle(period: float = 2.5, top: float = 170.0, bottom: float = 95.0) -> AngleSchedule:
    """Both knees flexing between ``top`` and ``bottom`` degrees."""
    return angle_cycle(("left_knee", "right_knee"), period, top, bottom)


class SyntheticPoseDetector(BasePoseDetector):
    """Renders landmark frames from joint angles instead of camera pixels."""

    def __init__(self, schedule: Optional[AngleSchedule] = None, fps: float = 30.0,
                 start_time: float = 0.0, confidence: float = 0.9):
        self.schedule = schedule or knee_cycle()
        self.fps = fps
        self.start_time = start_time
        self.confidence = confidence
        self.frame_index = 0

    def detect(self, image: Any = None, timestamp: Optional[float] = None) -> Tuple[bool, Optional[LandmarkFrame]]:
        elapsed = self.frame_index / self.fps
        self.frame_index += 1
        stamp = self.start_time + elapsed if timestamp is None else timestamp
        return True, self.render(self.schedule(elapsed), stamp)

    def render(self, angles: Optional[Dict[str, float]] = None, timestamp: float = 0.0,
               hyperextended: Iterable[str] = (),
               confidence_overrides: Optional[Dict[Joint, float]] = None) -> LandmarkFrame:
        """
        Build a landmark frame for the given joint angles.

        Args:
            angles: Interior angles in degrees keyed by name (see DEFAULT_ANGLES)
            timestamp: Frame time in seconds
            hyperextended: Angle names whose limb bends the opposite way
            confidence_overrides: Per-joint confidence replacing the default

        Returns:
            LandmarkFrame with all 17 joints
        """
        values = dict(DEFAULT_ANGLES)
        values.update(angles or {})
        flipped = set(hyperextended)

        def sign(name: str, side: float) -> float:
            return -side if name in flipped else side

        points = {joint: np.array(xy, dtype=float) for joint, xy in _ANCHORS.items()}
        for side, prefix, shoulder, elbow, wrist, hip, knee, ankle in (
            (1.0, "left", Joint.LEFT_SHOULDER, Joint.LEFT_ELBOW, Joint.LEFT_WRIST,
             Joint.LEFT_HIP, Joint.LEFT_KNEE, Joint.LEFT_ANKLE),
            (-1.0, "right", Joint.RIGHT_SHOULDER, Joint.RIGHT_ELBOW, Joint.RIGHT_WRIST,
             Joint.RIGHT_HIP, Joint.RIGHT_KNEE, Joint.RIGHT_ANKLE),
        ):
            points[elbow] = _place(points[shoulder], points[hip], values[f"{prefix}_shoulder"],
                                   _UPPER_ARM, sign(f"{prefix}_shoulder", side))
            points[wrist] = _place(points[elbow], points[shoulder], values[f"{prefix}_elbow"],
                                   _FOREARM, sign(f"{prefix}_elbow", side))
            points[knee] = _place(points[hip], points[shoulder], values[f"{prefix}_hip"],
                                  _THIGH, sign(f"{prefix}_hip", side))
            points[ankle] = _place(points[knee], points[hip], values[f"{prefix}_knee"],
                                   _SHIN, sign(f"{prefix}_knee", side))

        points[Joint.LEFT_EAR] = _place(points[Joint.LEFT_SHOULDER], points[Joint.LEFT_HIP],
                                        values["neck"], _NECK, sign("neck", 1.0))
        points[Joint.RIGHT_EAR] = _place(points[Joint.RIGHT_SHOULDER], points[Joint.RIGHT_HIP],
                                         values["neck"], _NECK, sign("neck", -1.0))

        overrides = confidence_overrides or {}
        landmarks = tuple(
            Landmark(
                joint=joint,
                x=float(points[joint][0]),
                y=float(points[joint][1]),
                confidence=overrides.get(joint, self.confidence),
            )
            for joint in Joint
        )
        return LandmarkFrame(landmarks=landmarks, timestamp=timestamp)
