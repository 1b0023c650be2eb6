import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Dict, List, Optional, Union

from .exercise_analysis.config_utils import load_exercise_profile
from .exercise_analysis.exercise_profile import ExerciseKind, ExerciseProfile
from .exercise_analysis.exercise_session import ExerciseSession, FrameTelemetry
from .pose_detection.base_detector import BasePoseDetector
from .pose_detection.landmarks import LandmarkFrame

logger = logging.getLogger(__name__)

TelemetryListener = Callable[[FrameTelemetry], None]


class ExerciseTracker:
    """
    Control surface and frame entry point for one tracked person.

    Frames are processed one at a time. A frame that arrives while another
    is still being processed is dropped, never queued, so the producer is
    never blocked. Session control calls wait for the frame in flight.
    """

    def __init__(self, detector: Optional[BasePoseDetector] = None, history_size: int = 30,
                 config_path: Optional[str] = None):
        """
        Args:
            detector: Pose detector used by process_image
            history_size: Number of recent telemetry records kept
            config_path: Profile config used when a session is started by kind
        """
        self.detector = detector
        self.config_path = config_path
        self.session: Optional[ExerciseSession] = None
        self.telemetry_history = deque(maxlen=history_size)
        self.dropped_frames = 0
        self._busy = threading.Lock()
        self._drop_lock = threading.Lock()
        self._listeners: List[TelemetryListener] = []

    @property
    def is_active(self) -> bool:
        return self.session is not None

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    def add_listener(self, listener: TelemetryListener) -> None:
        self._listeners.append(listener)

    def start_session(self, profile: Union[ExerciseProfile, ExerciseKind, str]) -> ExerciseSession:
        """
        Start tracking an exercise. Starting the session that is already
        active keeps it as is.

        Args:
            profile: A profile, or an exercise kind to load from the config

        Returns:
            The active session

        Raises:
            ProfileConfigError: if the profile is invalid; no session is started
        """
        if not isinstance(profile, ExerciseProfile):
            profile = load_exercise_profile(profile, self.config_path)
        with self._busy:
            if self.session is not None and self.session.profile == profile:
                return self.session
            session = ExerciseSession(profile)
            self.session = session
            self.telemetry_history.clear()
            self.dropped_frames = 0
            return session

    def end_session(self) -> Optional[Dict[str, Any]]:
        """Stop tracking and return the session summary, or None if nothing was active."""
        with self._busy:
            if self.session is None:
                return None
            summary = self.session.summary()
            summary["dropped_frames"] = self.dropped_frames
            self.session = None
            logger.info(f"Session ended: {summary['exercise']} with {summary['rep_count']} reps")
            return summary

    def reset_session(self) -> None:
        with self._busy:
            if self.session is None:
                return
            self.session.reset()
            self.telemetry_history.clear()
            self.dropped_frames = 0

    def on_frame(self, frame: LandmarkFrame) -> Optional[FrameTelemetry]:
        """
        Process a landmark frame unless another frame is in flight.

        Returns:
            Telemetry for the frame, or None if it was dropped or no session is active
        """
        if not self._busy.acquire(blocking=False):
            with self._drop_lock:
                self.dropped_frames += 1
            logger.debug(f"Dropped frame at {frame.timestamp:.3f}s: previous frame still processing")
            return None
        try:
            if self.session is None:
                return None
            telemetry = self.session.process_frame(frame)
            self.telemetry_history.append(telemetry)
            for listener in self._listeners:
                listener(telemetry)
            return telemetry
        finally:
            self._busy.release()

    def process_image(self, image: Any, timestamp: Optional[float] = None) -> Optional[FrameTelemetry]:
        """
        Run the detector on an image and feed the result to on_frame.

        An image without a detected pose is fed as an empty frame so that it
        counts toward lost tracking.
        """
        if self.detector is None:
            raise RuntimeError("No pose detector attached")
        success, frame = self.detector.detect(image, timestamp)
        if not success or frame is None:
            frame = LandmarkFrame.empty(time.time() if timestamp is None else timestamp)
        return self.on_frame(frame)

    @property
    def recent_telemetry(self) -> List[FrameTelemetry]:
        return list(self.telemetry_history)
