"""
States, events and context of the advanced set controller.

Resting substates are flattened into dotted names (``resting.timer_ready``)
so the whole machine is one tagged enum; ``SetState.is_resting`` recovers
the hierarchy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from ..core.errors import Result
from ..core.models import ExecutionState, SetConfiguration, SetProgressionData


class SetState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    PROCESSING_PHASE = "processing_phase"
    TIMER_READY = "resting.timer_ready"
    TIMER_RUNNING = "resting.timer_running"
    TIMER_PAUSED = "resting.timer_paused"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_resting(self) -> bool:
        return self.value.startswith("resting.")

    @property
    def is_pending(self) -> bool:
        """True while a strategy call is outstanding."""
        return self in (SetState.INITIALIZING, SetState.PROCESSING_PHASE)


# =============================================================================
# EVENTS
# =============================================================================


@dataclass(frozen=True)
class Initialize:
    type: ClassVar[str] = "INITIALIZE"

    configuration: SetConfiguration
    last_weight: float | None = None


@dataclass(frozen=True)
class CompleteSet:
    type: ClassVar[str] = "COMPLETE_SET"

    set_data: SetProgressionData


@dataclass(frozen=True)
class StartRestTimer:
    type: ClassVar[str] = "START_REST_TIMER"


@dataclass(frozen=True)
class PauseTimer:
    type: ClassVar[str] = "PAUSE_TIMER"


@dataclass(frozen=True)
class ResumeTimer:
    type: ClassVar[str] = "RESUME_TIMER"


@dataclass(frozen=True)
class SkipRest:
    type: ClassVar[str] = "SKIP_REST"


@dataclass(frozen=True)
class TimerComplete:
    type: ClassVar[str] = "TIMER_COMPLETE"


@dataclass(frozen=True)
class ResetSet:
    type: ClassVar[str] = "RESET_SET"


@dataclass(frozen=True)
class AbortSet:
    type: ClassVar[str] = "ABORT_SET"


# Settlement messages, sent by the controller to itself when a strategy call
# finishes.  ``generation`` identifies the call that produced them.


@dataclass(frozen=True)
class InitializationSettled:
    type: ClassVar[str] = "INITIALIZATION_SETTLED"

    generation: int
    result: Result[Any]


@dataclass(frozen=True)
class PhaseSettled:
    type: ClassVar[str] = "PHASE_SETTLED"

    generation: int
    result: Result[Any]
    set_data: SetProgressionData


Event = Union[
    Initialize,
    CompleteSet,
    StartRestTimer,
    PauseTimer,
    ResumeTimer,
    SkipRest,
    TimerComplete,
    ResetSet,
    AbortSet,
    InitializationSettled,
    PhaseSettled,
]

EVENT_TYPES: tuple[str, ...] = (
    Initialize.type,
    CompleteSet.type,
    StartRestTimer.type,
    PauseTimer.type,
    ResumeTimer.type,
    SkipRest.type,
    TimerComplete.type,
    ResetSet.type,
    AbortSet.type,
    InitializationSettled.type,
    PhaseSettled.type,
)


# =============================================================================
# CONTEXT
# =============================================================================


@dataclass(frozen=True)
class TimerState:
    total_seconds: int = 0
    remaining_seconds: int = 0
    is_running: bool = False


@dataclass(frozen=True)
class ControllerContext:
    """
    Everything the controller knows about the active execution.

    Replaced wholesale on reset/abort.  ``completed_sets`` is append-only
    for the lifetime of one execution.
    """

    execution_state: ExecutionState | None = None
    error: str | None = None
    completed_sets: tuple[SetProgressionData, ...] = ()
    timer: TimerState = TimerState()
    configuration: SetConfiguration | None = None
    last_weight: float | None = None


@dataclass(frozen=True)
class ControllerSnapshot:
    """What listeners receive after every transition and timer tick."""

    state: SetState
    context: ControllerContext

    def matches(self, state: str) -> bool:
        return self.state.value == state or self.state.value.startswith(state + ".")
