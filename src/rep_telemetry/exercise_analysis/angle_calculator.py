"""
angle_calculator.py - Joint angles with outlier rejection, smoothing and velocity.

Each tracked angle keeps its own history. A new raw value is compared with
the median of the recent raw window; values further than the outlier
threshold from it are replaced by the median. Accepted values are averaged
with linear recency weights (newest weighs most), and velocity is the change
in the smoothed value over elapsed time.
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

import numpy as np

from ..pose_detection.landmarks import LandmarkFrame
from .exercise_profile import JointTriple
from .pose_utils import calculate_angle, joints_visible

MIN_WINDOW_SIZE = 5


@dataclass(frozen=True)
class AngleSample:
    raw: float
    smoothed: float
    velocity: float  # deg/s, positive when the angle grows
    timestamp: float


class AngleCalculator:
    """Per-angle smoothing filter fed from landmark frames."""

    def __init__(self, window_size: int = 5, outlier_threshold: float = 30.0, min_confidence: float = 0.5):
        """
        Args:
            window_size: Samples kept per angle (at least 5)
            outlier_threshold: Max distance in degrees from the window median
            min_confidence: Landmarks at or below this confidence make the angle unavailable
        """
        if window_size < MIN_WINDOW_SIZE:
            raise ValueError(f"window_size must be at least {MIN_WINDOW_SIZE}, got {window_size}")
        self.window_size = window_size
        self.outlier_threshold = outlier_threshold
        self.min_confidence = min_confidence
        self._raw_history: Dict[str, Deque[float]] = {}
        self._filtered_history: Dict[str, Deque[float]] = {}
        self._last_sample: Dict[str, AngleSample] = {}

    def measure(self, triple: JointTriple, frame: LandmarkFrame, full_range: bool = False) -> Optional[float]:
        """
        Raw angle at the triple's vertex without touching any history.

        Returns:
            Angle in degrees, or None if a landmark is not confident enough,
            a segment has zero length, or the result is not a positive number
        """
        if not joints_visible(frame, triple, self.min_confidence):
            return None
        angle = calculate_angle(frame[triple.proximal].point, frame[triple.vertex].point,
                                frame[triple.distal].point, full_range=full_range)
        if not np.isfinite(angle) or angle <= 0.0:
            return None
        return angle

    def compute(self, key: str, triple: JointTriple, frame: LandmarkFrame) -> Optional[AngleSample]:
        """Measure the angle in ``frame`` and feed it through the filter for ``key``."""
        raw = self.measure(triple, frame)
        if raw is None:
            return None
        return self.update(key, raw, frame.timestamp)

    def update(self, key: str, raw_angle: float, timestamp: float) -> AngleSample:
        raw_window = self._raw_history.setdefault(key, deque(maxlen=self.window_size))
        filtered_window = self._filtered_history.setdefault(key, deque(maxlen=self.window_size))
        previous = self._last_sample.get(key)

        raw_window.append(raw_angle)
        accepted = raw_angle
        median = float(np.median(raw_window))
        if abs(raw_angle - median) > self.outlier_threshold:
            accepted = median
        filtered_window.append(accepted)

        if previous is None:
            sample = AngleSample(raw=raw_angle, smoothed=accepted, velocity=0.0, timestamp=timestamp)
        else:
            weights = np.arange(1, len(filtered_window) + 1, dtype=float)
            smoothed = float(np.average(np.array(filtered_window, dtype=float), weights=weights))
            dt = timestamp - previous.timestamp
            velocity = (smoothed - previous.smoothed) / dt if dt > 0 else previous.velocity
            sample = AngleSample(raw=raw_angle, smoothed=smoothed, velocity=velocity, timestamp=timestamp)

        self._last_sample[key] = sample
        return sample

    def window(self, key: str) -> List[float]:
        """Accepted (post outlier rejection) values for ``key``, oldest first."""
        return list(self._filtered_history.get(key, ()))

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._raw_history.clear()
            self._filtered_history.clear()
            self._last_sample.clear()
            return
        self._raw_history.pop(key, None)
        self._filtered_history.pop(key, None)
        self._last_sample.pop(key, None)
