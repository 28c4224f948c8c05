"""
YAML/dict serialization for set-engine data models.

Handles conversion between dataclasses and plain dicts (snake_case keys),
and loading set configurations from YAML files.  Malformed input raises
ValidationError.
"""

import dataclasses
from pathlib import Path
from typing import Any

import yaml

from ..core.errors import ValidationError
from ..core.models import (
    DropSetConfiguration,
    DropSetExecutionState,
    ExecutionState,
    MavConfiguration,
    MavExecutionState,
    MyoRepsConfiguration,
    MyoRepsExecutionState,
    ParameterRange,
    PyramidalConfiguration,
    PyramidalExecutionState,
    RestPauseConfiguration,
    RestPauseExecutionState,
    SetConfiguration,
    SetProgressionData,
)

# set_type → (configuration class, range-valued fields that must be present)
CONFIGURATION_TYPES: dict[str, tuple[type, tuple[str, ...]]] = {
    "drop": (DropSetConfiguration, ("start_counts", "drops")),
    "myo_reps": (MyoRepsConfiguration, ("activation_counts", "mini_sets", "mini_set_counts")),
    "mav": (MavConfiguration, ("sets", "counts")),
    "rest_pause": (RestPauseConfiguration, ("counts", "pauses")),
    "pyramidal": (PyramidalConfiguration, ("start_counts", "end_counts")),
}

_OPTIONAL_RANGES = ("sets", "rpe", "step")

# Plain string fields; everything else is a ParameterRange
_STRING_FIELDS = ("mode",)

_STATE_EXTRA_FIELDS: dict[type, tuple[str, ...]] = {
    DropSetExecutionState: ("drops_completed",),
    MyoRepsExecutionState: ("is_activation_phase", "mini_sets_completed", "activation_reps"),
    MavExecutionState: ("sets_completed", "total_volume_achieved", "performance_decline", "first_set_counts"),
    RestPauseExecutionState: ("pauses_completed", "total_reps_achieved", "target_total_reps"),
    PyramidalExecutionState: ("pyramid_sequence", "current_direction", "direction_switch_point"),
}


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is a non-negative number.

    Raises:
        ValidationError: If value is negative or not numeric
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


# =============================================================================
# RANGES AND CONFIGURATIONS
# =============================================================================


def parameter_range_to_dict(value: ParameterRange) -> dict[str, Any]:
    d: dict[str, Any] = {"min": value.min}
    if value.max is not None:
        d["max"] = value.max
    if value.direction != "asc":
        d["direction"] = value.direction
    return d


def dict_to_parameter_range(data: Any, name: str) -> ParameterRange:
    """
    Convert a range mapping to ParameterRange.

    A bare number is shorthand for ``{min: number}``.

    Raises:
        ValidationError: If the mapping is malformed or the bounds are invalid
    """
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        data = {"min": data}
    if not isinstance(data, dict):
        raise ValidationError(f"{name} must be a number or a mapping with 'min', got {data!r}")
    if "min" not in data:
        raise ValidationError(f"{name} is missing 'min'")

    unknown = set(data) - {"min", "max", "direction"}
    if unknown:
        raise ValidationError(f"{name}: unknown keys {sorted(unknown)}")

    minimum = validate_non_negative(data["min"], f"{name}.min")
    maximum = data.get("max")
    if maximum is not None:
        validate_non_negative(maximum, f"{name}.max")

    try:
        return ParameterRange(
            min=float(minimum),
            max=float(maximum) if maximum is not None else None,
            direction=data.get("direction", "asc"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {e}") from e


def configuration_to_dict(configuration: SetConfiguration) -> dict[str, Any]:
    """
    Convert a set configuration to a dict tagged with ``type``.

    Optional ranges are omitted when unset.
    """
    d: dict[str, Any] = {"type": configuration.set_type}
    for field in dataclasses.fields(configuration):
        value = getattr(configuration, field.name)
        if value is None:
            continue
        if field.name in _STRING_FIELDS:
            d[field.name] = value
        else:
            d[field.name] = parameter_range_to_dict(value)
    return d


def dict_to_configuration(data: dict[str, Any]) -> SetConfiguration:
    """
    Convert a ``type``-tagged dict to the matching configuration.

    Raises:
        ValidationError: On unknown type, missing or unknown keys, or invalid ranges
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Configuration must be a mapping, got {type(data).__name__}")

    set_type = data.get("type")
    if set_type not in CONFIGURATION_TYPES:
        valid = ", ".join(CONFIGURATION_TYPES)
        raise ValidationError(f"Invalid configuration type: {set_type!r}. Must be one of: {valid}")

    config_cls, required = CONFIGURATION_TYPES[set_type]
    allowed = {f.name for f in dataclasses.fields(config_cls)}
    unknown = set(data) - allowed - {"type"}
    if unknown:
        raise ValidationError(f"{set_type} configuration: unknown keys {sorted(unknown)}")

    missing = [name for name in required if data.get(name) is None]
    if missing:
        raise ValidationError(f"{set_type} configuration is missing {', '.join(missing)}")

    kwargs: dict[str, Any] = {}
    for name in allowed:
        raw = data.get(name)
        if raw is None:
            if name not in _OPTIONAL_RANGES + _STRING_FIELDS:
                raise ValidationError(f"{set_type} configuration is missing {name}")
            continue
        if name in _STRING_FIELDS:
            if not isinstance(raw, str):
                raise ValidationError(f"{name} must be a string, got {raw!r}")
            kwargs[name] = raw
        else:
            kwargs[name] = dict_to_parameter_range(raw, name)

    try:
        return config_cls(**kwargs)
    except ValueError as e:
        raise ValidationError(f"Invalid {set_type} configuration: {e}") from e


def load_configuration_file(path: Path) -> SetConfiguration:
    """
    Load a set configuration from a YAML file.

    Raises:
        ValidationError: If the file cannot be read or parsed, or is invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ValidationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}") from e

    return dict_to_configuration(data)


# =============================================================================
# SET DATA AND EXECUTION STATE
# =============================================================================


def set_progression_to_dict(data: SetProgressionData) -> dict[str, Any]:
    """Compact dict for a completed set: optional fields only when present."""
    d: dict[str, Any] = {"counts": data.counts}
    if data.weight is not None:
        d["weight"] = data.weight
    if data.rpe is not None:
        d["rpe"] = data.rpe
    if not data.completed:
        d["completed"] = False
    if data.notes:
        d["notes"] = data.notes
    return d


def dict_to_set_progression(data: dict[str, Any]) -> SetProgressionData:
    """
    Convert dict to SetProgressionData.

    Only the shape is checked here; value bounds are enforced by the
    strategies.

    Raises:
        ValidationError: If counts is missing or a field has the wrong type
    """
    if "counts" not in data:
        raise ValidationError("Set data is missing counts")
    validate_non_negative(data["counts"], "counts")
    if data.get("weight") is not None:
        validate_non_negative(data["weight"], "weight")
    if data.get("rpe") is not None:
        validate_non_negative(data["rpe"], "rpe")

    return SetProgressionData(
        counts=int(data["counts"]),
        weight=float(data["weight"]) if data.get("weight") is not None else None,
        rpe=float(data["rpe"]) if data.get("rpe") is not None else None,
        completed=bool(data.get("completed", True)),
        notes=data.get("notes"),
    )


def execution_state_to_dict(state: ExecutionState) -> dict[str, Any]:
    """
    Convert an execution state to a dict for display or logging.

    Includes the protocol-specific counters of the concrete state type.
    """
    d: dict[str, Any] = {
        "set_type": state.set_type,
        "configuration": configuration_to_dict(state.configuration),
        "current_phase": state.current_phase,
        "total_phases": state.total_phases,
        "is_completed": state.is_completed,
        "current_set_data": dataclasses.asdict(state.current_set_data),
        "next_set_data": (
            dataclasses.asdict(state.next_set_data) if state.next_set_data is not None else None
        ),
        "rest_period_seconds": state.rest_period_seconds,
    }
    for name in _STATE_EXTRA_FIELDS.get(type(state), ()):
        value = getattr(state, name)
        d[name] = list(value) if isinstance(value, tuple) else value

    if isinstance(state, MavExecutionState) and state.last_set_performance is not None:
        d["last_set_performance"] = dataclasses.asdict(state.last_set_performance)
    return d
