"""
pose_utils.py - Shared geometry helpers for landmark frames.
"""
from typing import List, Sequence

import numpy as np

from ..pose_detection.landmarks import Joint, LandmarkFrame


# --- Math & Geometry Utilities ---
def calculate_angle(a: Sequence[float], b: Sequence[float], c: Sequence[float], full_range: bool = False) -> float:
    """
    Calculate the angle between three 2-D points.
    Supports both 0-180 degree range (default) and 0-360 degree range.

    Point ordering convention:
    - a: First point (e.g., shoulder for elbow angle)
    - b: Middle point (e.g., elbow for elbow angle)
    - c: Last point (e.g., wrist for elbow angle)
    - The angle is calculated at point 'b' between vectors 'ba' and 'bc'

    Args:
        a: First point coordinates [x, y]
        b: Middle point coordinates [x, y] - angle is calculated here
        c: Last point coordinates [x, y]
        full_range: If True, returns angle in 0-360 range, measured from 'ba'
            to 'bc' with the sign of their cross product in image coordinates
    Returns:
        Angle in degrees, or NaN if calculation is not possible
    """
    ba = np.array(a[:2], dtype=float) - np.array(b[:2], dtype=float)
    bc = np.array(c[:2], dtype=float) - np.array(b[:2], dtype=float)
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if not (norm_ba > 1e-9 and norm_bc > 1e-9):
        return float("nan")
    cosine_angle = np.dot(ba, bc) / (norm_ba * norm_bc)
    cosine_angle = np.clip(cosine_angle, -1.0, 1.0)
    angle = float(np.degrees(np.arccos(cosine_angle)))
    if full_range:
        direction_indicator = ba[0] * bc[1] - ba[1] * bc[0]
        if direction_indicator < 0:
            angle = 360.0 - angle
    return angle


def bend_side(full_range_angle: float) -> int:
    """
    Side a joint bends toward, from a full-range (0-360) angle.

    Returns:
        1 below 180, -1 above it, 0 when the limb is straight
    """
    if full_range_angle < 180.0:
        return 1
    if full_range_angle > 180.0:
        return -1
    return 0


def interior_angle(full_range_angle: float) -> float:
    """Fold a full-range angle back into 0-180."""
    return full_range_angle if full_range_angle <= 180.0 else 360.0 - full_range_angle


def joints_visible(frame: LandmarkFrame, joints: Sequence[Joint], min_confidence: float) -> bool:
    """Check if all given joints are visible above threshold."""
    return all(frame[joint].is_visible(min_confidence) for joint in joints)


def invisible_joints(frame: LandmarkFrame, joints: Sequence[Joint], min_confidence: float) -> List[Joint]:
    return [joint for joint in joints if not frame[joint].is_visible(min_confidence)]
