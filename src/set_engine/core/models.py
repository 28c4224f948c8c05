"""
Data models for set-engine.

Configurations describe what the user planned (immutable, validated on
construction). Execution states are immutable snapshots produced by the
strategies; every phase transition yields a new object built with
``dataclasses.replace``. Set progression data is raw user input and is
validated by the strategies, not here.
"""

from dataclasses import dataclass
from typing import ClassVar, Literal, Union

from .config import RPE_MAX, RPE_MIN

Direction = Literal["asc", "desc"]
SetType = Literal["drop", "myo_reps", "mav", "rest_pause", "pyramidal"]
PyramidMode = Literal["ascending", "descending", "both"]
PyramidDirection = Literal["ascending", "descending"]


@dataclass(frozen=True)
class ParameterRange:
    """
    Numeric range for one planned quantity.

    ``max=None`` means open-ended. ``direction`` records whether the value is
    expected to climb or fall across the protocol and is informational.
    """

    min: float
    max: float | None = None
    direction: Direction = "asc"

    def __post_init__(self) -> None:
        """Validate range bounds."""
        if self.min < 0:
            raise ValueError("range min must be non-negative")
        if self.max is not None and self.max < self.min:
            raise ValueError(f"range max ({self.max}) must be >= min ({self.min})")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Invalid direction: {self.direction}")

    @property
    def is_open(self) -> bool:
        return self.max is None

    def __str__(self) -> str:
        lo = _fmt_number(self.min)
        if self.max is None:
            return f"{lo}+"
        if self.max == self.min:
            return lo
        return f"{lo}-{_fmt_number(self.max)}"


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _check_rpe_range(rpe: ParameterRange | None) -> None:
    if rpe is None:
        return
    upper = rpe.max if rpe.max is not None else rpe.min
    if rpe.min < RPE_MIN or upper > RPE_MAX:
        raise ValueError(f"rpe range must lie within [{RPE_MIN:g}, {RPE_MAX:g}]")


def _check_positive_min(value: ParameterRange, name: str) -> None:
    if value.min <= 0:
        raise ValueError(f"{name}.min must be positive")


# =============================================================================
# CONFIGURATIONS
# =============================================================================


@dataclass(frozen=True)
class DropSetConfiguration:
    """A set to near failure followed by ``drops.min`` load reductions."""

    set_type: ClassVar[SetType] = "drop"

    start_counts: ParameterRange
    drops: ParameterRange
    sets: ParameterRange = ParameterRange(1)
    rpe: ParameterRange | None = None

    def __post_init__(self) -> None:
        _check_positive_min(self.start_counts, "start_counts")
        _check_rpe_range(self.rpe)


@dataclass(frozen=True)
class MyoRepsConfiguration:
    """An activation set followed by at least ``mini_sets.min`` mini-sets."""

    set_type: ClassVar[SetType] = "myo_reps"

    activation_counts: ParameterRange
    mini_sets: ParameterRange
    mini_set_counts: ParameterRange
    sets: ParameterRange = ParameterRange(1)
    rpe: ParameterRange | None = None

    def __post_init__(self) -> None:
        _check_positive_min(self.activation_counts, "activation_counts")
        _check_positive_min(self.mini_set_counts, "mini_set_counts")
        _check_rpe_range(self.rpe)


@dataclass(frozen=True)
class MavConfiguration:
    """Consecutive sets at a fixed load until performance declines."""

    set_type: ClassVar[SetType] = "mav"

    sets: ParameterRange
    counts: ParameterRange
    rpe: ParameterRange | None = None

    def __post_init__(self) -> None:
        _check_positive_min(self.counts, "counts")
        if self.sets.max is not None and self.sets.max < 1:
            raise ValueError("sets.max must be at least 1")
        _check_rpe_range(self.rpe)


@dataclass(frozen=True)
class RestPauseConfiguration:
    """A main set followed by ``pauses.min`` short pause segments."""

    set_type: ClassVar[SetType] = "rest_pause"

    counts: ParameterRange
    pauses: ParameterRange
    sets: ParameterRange = ParameterRange(1)
    rpe: ParameterRange | None = None

    def __post_init__(self) -> None:
        _check_positive_min(self.counts, "counts")
        _check_rpe_range(self.rpe)


@dataclass(frozen=True)
class PyramidalConfiguration:
    """
    Consecutive sets walking a rep range in ``step.min`` increments.

    ``ascending`` climbs in load (reps fall from the higher bound to the lower),
    ``descending`` is the reverse, and ``both`` goes down to the lower bound and
    back up again.
    """

    set_type: ClassVar[SetType] = "pyramidal"

    start_counts: ParameterRange
    end_counts: ParameterRange
    step: ParameterRange = ParameterRange(2)
    mode: PyramidMode = "ascending"
    sets: ParameterRange = ParameterRange(1)
    rpe: ParameterRange | None = None

    def __post_init__(self) -> None:
        _check_positive_min(self.start_counts, "start_counts")
        _check_positive_min(self.end_counts, "end_counts")
        _check_positive_min(self.step, "step")
        if self.mode not in ("ascending", "descending", "both"):
            raise ValueError(f"Invalid pyramid mode: {self.mode}")
        _check_rpe_range(self.rpe)


SetConfiguration = Union[
    DropSetConfiguration,
    MyoRepsConfiguration,
    MavConfiguration,
    RestPauseConfiguration,
    PyramidalConfiguration,
]


# =============================================================================
# EXECUTION STATE
# =============================================================================


@dataclass(frozen=True)
class CurrentSetData:
    """Target for the set the user is about to perform."""

    weight: float
    counts: int
    rpe: float | None = None


@dataclass(frozen=True)
class NextSetData:
    """Preview of the set after the current one."""

    weight: float
    expected_counts: int
    suggested_rpe: float | None = None


@dataclass(frozen=True)
class SetProgressionData:
    """What the user reports when a set finishes."""

    counts: int
    weight: float | None = None
    rpe: float | None = None
    completed: bool = True
    notes: str | None = None


@dataclass(frozen=True)
class LastSetPerformance:
    counts: int
    rpe: float | None = None


@dataclass(frozen=True, kw_only=True)
class ExecutionState:
    """
    Fields shared by every protocol's execution state.

    ``rest_period_seconds`` is the rest that should precede
    ``current_set_data``; ``None`` or 0 means proceed immediately.
    """

    set_type: ClassVar[SetType]

    configuration: SetConfiguration
    current_phase: int
    total_phases: int
    is_completed: bool
    current_set_data: CurrentSetData
    next_set_data: NextSetData | None = None
    rest_period_seconds: int | None = None

    @property
    def needs_rest(self) -> bool:
        return (self.rest_period_seconds or 0) > 0

    @property
    def remaining_phases(self) -> int:
        return max(self.total_phases - self.current_phase + 1, 0)


@dataclass(frozen=True, kw_only=True)
class DropSetExecutionState(ExecutionState):
    set_type: ClassVar[SetType] = "drop"

    configuration: DropSetConfiguration
    drops_completed: int = 0


@dataclass(frozen=True, kw_only=True)
class MyoRepsExecutionState(ExecutionState):
    set_type: ClassVar[SetType] = "myo_reps"

    configuration: MyoRepsConfiguration
    is_activation_phase: bool = True
    mini_sets_completed: int = 0
    activation_reps: int | None = None  # Set once the activation set is done


@dataclass(frozen=True, kw_only=True)
class MavExecutionState(ExecutionState):
    set_type: ClassVar[SetType] = "mav"

    configuration: MavConfiguration
    sets_completed: int = 0
    total_volume_achieved: float = 0.0
    performance_decline: bool = False
    last_set_performance: LastSetPerformance | None = None
    first_set_counts: int | None = None  # Reference for decline detection


@dataclass(frozen=True, kw_only=True)
class RestPauseExecutionState(ExecutionState):
    set_type: ClassVar[SetType] = "rest_pause"

    configuration: RestPauseConfiguration
    pauses_completed: int = 0
    total_reps_achieved: int = 0
    target_total_reps: int = 0


@dataclass(frozen=True, kw_only=True)
class PyramidalExecutionState(ExecutionState):
    set_type: ClassVar[SetType] = "pyramidal"

    configuration: PyramidalConfiguration
    pyramid_sequence: tuple[int, ...] = ()
    current_direction: PyramidDirection = "ascending"
    direction_switch_point: int | None = None  # 0-based index of the lowest-rep set in "both" mode
