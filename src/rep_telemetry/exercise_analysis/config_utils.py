import json
import os
from typing import Any, Dict, Optional, Union

from ..pose_detection.landmarks import joints_from_names
from .exercise_profile import (
    ExerciseKind,
    ExerciseProfile,
    JointTriple,
    MovementPhase,
    PhaseTarget,
    ProfileConfigError,
    SafetyBound,
    TargetRange,
)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "exercise_profiles.json")

# Optional keys copied straight onto ExerciseProfile.
_SCALAR_FIELDS = {
    "gating": ("min_dwell_seconds", "min_rep_interval_seconds", "min_exit_velocity", "flexing_margin"),
    "smoothing": ("smoothing_window", "outlier_threshold", "angle_confidence_threshold"),
    "recovery": ("max_invalid_frames",),
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load the raw exercise profile config from a JSON file."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    with open(config_path, "r") as f:
        return json.load(f)


def load_exercise_profiles(config_path: Optional[str] = None) -> Dict[ExerciseKind, ExerciseProfile]:
    """Load and validate every profile in the config file."""
    config = load_config(config_path)
    profiles = {}
    for key, data in config.items():
        kind = _resolve_kind(key)
        profiles[kind] = profile_from_dict(kind, data)
    return profiles


def load_exercise_profile(kind: Union[ExerciseKind, str], config_path: Optional[str] = None) -> ExerciseProfile:
    kind = _resolve_kind(kind)
    config = load_config(config_path)
    if kind.value not in config:
        raise ProfileConfigError(f"No profile configured for {kind.value!r}")
    return profile_from_dict(kind, config[kind.value])


def profile_from_dict(kind: Union[ExerciseKind, str], data: Dict[str, Any]) -> ExerciseProfile:
    """
    Build an ExerciseProfile from its JSON form.

    Joint names, phases and kinds are resolved to enums here so nothing
    downstream dispatches on strings.

    Raises:
        ProfileConfigError: on missing fields, unknown names or invalid values
    """
    kind = _resolve_kind(kind)
    try:
        tracked_angles = {
            name: JointTriple(*joints_from_names(joints))
            for name, joints in data["tracked_angles"].items()
        }
        thresholds = data["thresholds"]
        visibility = data["visibility"]
        kwargs: Dict[str, Any] = dict(
            kind=kind,
            name=data.get("name", kind.value.replace("_", " ").title()),
            description=data.get("description", ""),
            tracked_angles=tracked_angles,
            primary_angle=data["primary_angle"],
            enter_threshold=float(thresholds["enter"]),
            exit_threshold=float(thresholds["exit"]),
            bottom_angle=float(thresholds["bottom"]),
            required_joints=joints_from_names(visibility["required_joints"]),
            min_visible_joints=int(visibility["min_visible"]),
        )
        if "confidence_threshold" in visibility:
            kwargs["visibility_threshold"] = float(visibility["confidence_threshold"])
        for section, names in _SCALAR_FIELDS.items():
            for name in names:
                if name in data.get(section, {}):
                    kwargs[name] = data[section][name]
        hold = data.get("hold", {})
        kwargs["hold_required"] = bool(hold.get("required", False))
        if "seconds" in hold:
            kwargs["hold_seconds"] = float(hold["seconds"])
        kwargs["phase_targets"] = {
            MovementPhase(phase_name): _phase_target_from_dict(target)
            for phase_name, target in data.get("phase_targets", {}).items()
        }
        kwargs["safety_bounds"] = tuple(_safety_bound_from_dict(bound) for bound in data.get("safety_bounds", []))
    except KeyError as e:
        raise ProfileConfigError(f"Profile {kind.value!r} is missing required field {e.args[0]!r}") from None
    except (TypeError, ValueError) as e:
        raise ProfileConfigError(f"Profile {kind.value!r} is malformed: {e}") from None

    profile = ExerciseProfile(**kwargs)
    profile.validate()
    return profile


def _resolve_kind(kind: Union[ExerciseKind, str]) -> ExerciseKind:
    if isinstance(kind, ExerciseKind):
        return kind
    try:
        return ExerciseKind(kind)
    except ValueError:
        raise ProfileConfigError(f"Unknown exercise kind: {kind!r}") from None


def _phase_target_from_dict(data: Dict[str, Any]) -> PhaseTarget:
    angles = {
        name: TargetRange(float(bounds[0]), float(bounds[1]))
        for name, bounds in data["angles"].items()
    }
    return PhaseTarget(angles=angles, tolerance=float(data.get("tolerance", 15.0)))


def _safety_bound_from_dict(data: Dict[str, Any]) -> SafetyBound:
    return SafetyBound(
        angle=data["angle"],
        message=data["message"],
        max_hyperextension=float(data.get("max_hyperextension", 0.0)),
    )

