"""
Controller for one advanced-set execution.
"""

from .machine import TRANSITIONS, AdvancedSetController
from .rest_timer import RestTimer
from .states import (
    AbortSet,
    CompleteSet,
    ControllerContext,
    ControllerSnapshot,
    Initialize,
    PauseTimer,
    ResetSet,
    ResumeTimer,
    SetState,
    SkipRest,
    StartRestTimer,
    TimerComplete,
    TimerState,
)

__all__ = [
    "AdvancedSetController",
    "TRANSITIONS",
    "RestTimer",
    "SetState",
    "ControllerContext",
    "ControllerSnapshot",
    "TimerState",
    "Initialize",
    "CompleteSet",
    "StartRestTimer",
    "PauseTimer",
    "ResumeTimer",
    "SkipRest",
    "TimerComplete",
    "ResetSet",
    "AbortSet",
]
