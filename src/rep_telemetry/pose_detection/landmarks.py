"""
landmarks.py - Joint topology and per-frame landmark containers.

Coordinate convention: image-top origin. x grows to the right, y grows
downward, both normalised to [0, 1]. Producers that report a bottom-origin
y must be converted with ``y_up=True`` when the frame is built; nothing
downstream flips the axis again.
"""
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Iterable, Sequence, Tuple

import numpy as np


class Joint(IntEnum):
    """COCO-17 joint topology. Values are the landmark array indices."""
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'left knee'."""
        return self.name.lower().replace("_", " ")

    @classmethod
    def from_name(cls, name: str) -> "Joint":
        """Resolve a snake_case joint name such as 'left_knee'."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown joint name: {name!r}") from None


JOINT_COUNT = len(Joint)
DEFAULT_VISIBILITY_THRESHOLD = 0.5


@dataclass(frozen=True)
class Landmark:
    """A joint's 2-D position and confidence for one frame."""
    joint: Joint
    x: float
    y: float
    confidence: float

    def is_visible(self, threshold: float = DEFAULT_VISIBILITY_THRESHOLD) -> bool:
        return self.confidence > threshold

    @property
    def point(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)


@dataclass(frozen=True)
class LandmarkFrame:
    """Fixed-size landmark array for one video frame, indexed by Joint."""
    landmarks: Tuple[Landmark, ...]
    timestamp: float

    def __post_init__(self):
        if len(self.landmarks) != JOINT_COUNT:
            raise ValueError(f"Expected {JOINT_COUNT} landmarks, got {len(self.landmarks)}")
        for idx, landmark in enumerate(self.landmarks):
            if landmark.joint != Joint(idx):
                raise ValueError(f"Landmark {idx} is {landmark.joint.name}, expected {Joint(idx).name}")

    def __getitem__(self, joint: Joint) -> Landmark:
        return self.landmarks[int(joint)]

    def __iter__(self):
        return iter(self.landmarks)

    def replace_landmark(self, joint: Joint, **changes: Any) -> "LandmarkFrame":
        """Return a copy of the frame with one landmark's fields changed."""
        landmarks = list(self.landmarks)
        landmarks[int(joint)] = replace(landmarks[int(joint)], **changes)
        return LandmarkFrame(landmarks=tuple(landmarks), timestamp=self.timestamp)

    @classmethod
    def from_array(cls, array: Sequence[Sequence[float]], timestamp: float, y_up: bool = False) -> "LandmarkFrame":
        """
        Build a frame from a (17, 3) array of ``x, y, confidence`` rows.

        Args:
            array: Landmark rows ordered by Joint index
            timestamp: Capture time in seconds
            y_up: True if the producer uses a bottom-origin y axis

        Returns:
            LandmarkFrame in the image-top-origin convention
        """
        data = np.asarray(array, dtype=float)
        if data.shape != (JOINT_COUNT, 3):
            raise ValueError(f"Landmark array must have shape ({JOINT_COUNT}, 3), got {data.shape}")
        if y_up:
            data = data.copy()
            data[:, 1] = 1.0 - data[:, 1]
        landmarks = tuple(
            Landmark(joint=Joint(idx), x=float(row[0]), y=float(row[1]), confidence=float(row[2]))
            for idx, row in enumerate(data)
        )
        return cls(landmarks=landmarks, timestamp=float(timestamp))

    @classmethod
    def empty(cls, timestamp: float) -> "LandmarkFrame":
        """A frame in which no joint was detected (all confidences zero)."""
        return cls.from_array(np.zeros((JOINT_COUNT, 3)), timestamp)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LandmarkFrame":
        """Parse one record of the JSON-lines recording format."""
        try:
            rows = payload["landmarks"]
            timestamp = payload["timestamp"]
        except KeyError as e:
            raise ValueError(f"Landmark record missing field: {e.args[0]}") from None
        return cls.from_array(rows, timestamp, y_up=bool(payload.get("y_up", False)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "landmarks": [[lm.x, lm.y, lm.confidence] for lm in self.landmarks],
        }


def joints_from_names(names: Iterable[str]) -> Tuple[Joint, ...]:
    return tuple(Joint.from_name(name) for name in names)
