from typing import NamedTuple, Sequence

from ..pose_detection.landmarks import Joint

# Higher severity is surfaced first.
SEVERITY_SAFETY = 400.0
SEVERITY_TRACKING = 300.0
SEVERITY_DATA_QUALITY = 200.0
SEVERITY_POOR_FORM = 100.0
SEVERITY_REJECTED_REP = 95.0
SEVERITY_REP_COMPLETE = 90.0
SEVERITY_MOVEMENT_QUALITY = 5.0
MAX_JOINT_SEVERITY = 89.0


class FeedbackItem(NamedTuple):
    severity: float
    text: str


# --- Feedback Templates ---
class FeedbackGenerator:
    @staticmethod
    def cannot_see(missing: Sequence[Joint]) -> str:
        if not missing:
            return "Can't see required joints - step into view"
        names = ", ".join(joint.label for joint in missing)
        return f"Can't see required joints: {names}"

    @staticmethod
    def angle_unavailable(angle_name: str) -> str:
        return f"Can't measure {angle_name.replace('_', ' ')} - adjust your position or the camera"

    @staticmethod
    def tracking_lost() -> str:
        return "Lost tracking - return to the starting position"

    @staticmethod
    def rep_complete(rep_count: int) -> str:
        return f"Rep {rep_count} complete!"

    @staticmethod
    def rep_rejected(reason_value: str) -> str:
        return {
            "dwell_too_short": "Rep not counted: pause briefly at the bottom",
            "bottom_not_reached": "Rep not counted: move through the full range",
            "velocity_too_low": "Rep not counted: return with a controlled push",
            "interval_too_short": "Rep not counted: slow down between reps",
            "hold_not_completed": "Rep not counted: hold the bottom position longer",
        }.get(reason_value, "Rep not counted")

    @staticmethod
    def joint_correction(angle_name: str, increase: bool) -> str:
        action = "Increase" if increase else "Decrease"
        return f"{angle_name.replace('_', ' ').capitalize()}: {action} angle"

    @staticmethod
    def sustained_poor_form() -> str:
        return "Focus on form - slow down if needed"

    @staticmethod
    def jerky_movement() -> str:
        return "Movement is jerky - focus on smooth, controlled motion"
