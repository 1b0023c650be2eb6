from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from .landmarks import Joint, LandmarkFrame


class BasePoseDetector(ABC):
    """Base class for pose detection implementations."""

    @abstractmethod
    def detect(self, image: Any, timestamp: Optional[float] = None) -> Tuple[bool, Optional[LandmarkFrame]]:
        """
        Detect pose landmarks in the given image.

        Args:
            image: Input image (detector specific, usually a BGR numpy array)
            timestamp: Capture time in seconds, if known

        Returns:
            Tuple containing:
            - Boolean indicating if detection was successful
            - LandmarkFrame in the image-top-origin convention (if successful) or None
        """
        pass

    def get_joint_names(self) -> List[str]:
        """
        Get the list of joint names that this detector provides.

        Returns:
            List of joint names in index order
        """
        return [joint.name.lower() for joint in Joint]
