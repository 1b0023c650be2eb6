import time
from typing import Any, Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from .base_detector import BasePoseDetector
from .landmarks import JOINT_COUNT, Joint, LandmarkFrame

# MediaPipe Pose index for each COCO-17 joint.
MEDIAPIPE_INDEX = {
    Joint.NOSE: 0,
    Joint.LEFT_EYE: 2,
    Joint.RIGHT_EYE: 5,
    Joint.LEFT_EAR: 7,
    Joint.RIGHT_EAR: 8,
    Joint.LEFT_SHOULDER: 11,
    Joint.RIGHT_SHOULDER: 12,
    Joint.LEFT_ELBOW: 13,
    Joint.RIGHT_ELBOW: 14,
    Joint.LEFT_WRIST: 15,
    Joint.RIGHT_WRIST: 16,
    Joint.LEFT_HIP: 23,
    Joint.RIGHT_HIP: 24,
    Joint.LEFT_KNEE: 25,
    Joint.RIGHT_KNEE: 26,
    Joint.LEFT_ANKLE: 27,
    Joint.RIGHT_ANKLE: 28,
}


class MediaPipePoseDetector(BasePoseDetector):
    """MediaPipe Pose adapter producing 17-joint landmark frames."""

    def __init__(self, min_detection_confidence: float = 0.5, min_tracking_confidence: float = 0.5, model_complexity: int = 1):
        """
        Initialize the MediaPipe pose detector.

        Args:
            min_detection_confidence: Minimum confidence for pose detection
            min_tracking_confidence: Minimum confidence for pose tracking
            model_complexity: Complexity of the pose landmark model (0, 1, or 2)
        """
        self.mp_pose = mp.solutions.pose
        self.pose = self.mp_pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )

    def detect(self, image: Any, timestamp: Optional[float] = None) -> Tuple[bool, Optional[LandmarkFrame]]:
        """
        Detect pose landmarks using MediaPipe.

        MediaPipe already reports image-top-origin coordinates, so no flip is applied.
        Landmarks are never filtered here; low visibility is passed on as low confidence.
        """
        frame_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        results = self.pose.process(frame_rgb)

        if not results.pose_landmarks:
            return False, None

        source = results.pose_landmarks.landmark
        rows = np.zeros((JOINT_COUNT, 3), dtype=float)
        for joint, mp_idx in MEDIAPIPE_INDEX.items():
            landmark = source[mp_idx]
            rows[int(joint)] = (landmark.x, landmark.y, landmark.visibility)

        stamp = time.time() if timestamp is None else timestamp
        return True, LandmarkFrame.from_array(rows, stamp)

    def close(self) -> None:
        self.pose.close()
