"""
Base type for execution strategies.

ExecutionStrategy fixes the four-operation contract every protocol
implements and owns the failure boundary: subclasses write plain synchronous
hooks that return values, raise ValidationError for hard failures and log
warnings for soft ones.  The public async operations turn all of that into
Result objects, so nothing ever raises across the strategy/controller seam.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Generic, TypeVar

import structlog

from ..config import RPE_MAX, RPE_MIN
from ..errors import InfrastructureError, Result, ValidationError
from ..log import EngineLogger
from ..models import (
    ExecutionState,
    SetConfiguration,
    SetProgressionData,
    SetType,
)

C = TypeVar("C")
S = TypeVar("S", bound=ExecutionState)
R = TypeVar("R")


# =============================================================================
# SHARED HELPERS
# =============================================================================


def check_basic_bounds(data: SetProgressionData) -> None:
    """
    Reject structurally invalid set data.

    Raises:
        ValidationError: counts <= 0, negative weight, or RPE outside [1, 10]
    """
    if data.counts is None or data.counts <= 0:
        raise ValidationError("Counts must be greater than 0")
    if data.weight is not None and data.weight < 0:
        raise ValidationError("Weight cannot be negative")
    if data.rpe is not None and not RPE_MIN <= data.rpe <= RPE_MAX:
        raise ValidationError(f"RPE must be between {RPE_MIN:g} and {RPE_MAX:g}")


def round_to_increment(value: float, increment: float) -> float:
    """Round to the nearest plate increment (half-up)."""
    return math.floor(value / increment + 0.5) * increment


def floor_to_increment(value: float, increment: float) -> float:
    """Round down to a plate increment; never exceeds ``value``."""
    # Small epsilon keeps exact multiples like 80.0 from flooring to 79.5
    return math.floor(value / increment + 1e-9) * increment


def escalate_rpe(base: float | None, steps: int) -> float | None:
    """RPE raised by ``steps``, capped at 10; None when no RPE is planned."""
    if base is None:
        return None
    return min(base + steps, RPE_MAX)


def actual_weight(data: SetProgressionData, state: ExecutionState) -> float:
    """Weight actually lifted, falling back to the planned weight."""
    if data.weight is not None:
        return data.weight
    return state.current_set_data.weight


# =============================================================================
# CONTRACT
# =============================================================================


class ExecutionStrategy(ABC, Generic[C, S]):
    """
    One resistance-training protocol.

    Subclasses set ``set_type``/``display_name``/``params_cls`` and implement
    the four ``_hooks``.  Instances hold only immutable params and a logger,
    so a single strategy may serve any number of executions.
    """

    set_type: ClassVar[SetType]
    display_name: ClassVar[str]
    params_cls: ClassVar[type]

    def __init__(self, params: Any = None, logger: EngineLogger | None = None) -> None:
        self.params = params if params is not None else self.params_cls()
        self.logger: EngineLogger = logger or structlog.get_logger(type(self).__module__)

    # ------------------------------------------------------------------
    # Public async contract
    # ------------------------------------------------------------------

    async def initialize_execution(
        self,
        configuration: SetConfiguration,
        last_known_weight: float | None = None,
    ) -> Result[S]:
        """Build the phase-1 execution state for ``configuration``."""
        if configuration.set_type != self.set_type:
            return Result.failure(
                ValidationError(
                    f"{self.display_name} strategy cannot run a "
                    f"'{configuration.set_type}' configuration"
                )
            )
        if last_known_weight is not None and last_known_weight < 0:
            return Result.failure(ValidationError("Last known weight cannot be negative"))

        return self._guard(
            "initialize execution",
            lambda: self._initialize(configuration, last_known_weight or 0.0),  # type: ignore[arg-type]
            set_type=self.set_type,
            last_weight=last_known_weight,
        )

    async def progress_to_next_phase(
        self,
        state: S,
        completed_set_data: SetProgressionData,
    ) -> Result[S]:
        """Return the state that follows ``state`` once ``completed_set_data`` is done."""
        if state.set_type != self.set_type:
            return Result.failure(
                ValidationError(f"{self.display_name} strategy cannot advance a '{state.set_type}' state")
            )
        if state.is_completed:
            return Result.failure(ValidationError(f"{self.display_name} is already completed"))

        return self._guard(
            "progress to next phase",
            lambda: self._progress(state, completed_set_data),
            current_phase=state.current_phase,
        )

    async def validate_phase_completion(
        self,
        state: S,
        proposed_set_data: SetProgressionData,
    ) -> Result[bool]:
        """Hard-fail on invalid input; anomalies are only logged."""

        def _run() -> bool:
            check_basic_bounds(proposed_set_data)
            self._validate(state, proposed_set_data)
            return True

        result = self._guard("validate phase completion", _run, current_phase=state.current_phase)
        if result.is_failure:
            self.logger.error(
                "Phase completion validation failed",
                set_type=self.set_type,
                current_phase=state.current_phase,
                error=str(result.error),
            )
        return result

    async def get_suggested_rest_period(self, state: S) -> Result[int]:
        """Seconds of rest before ``state.current_set_data``; 0 when completed."""
        if state.is_completed:
            return Result.success(0)
        return self._guard(
            "get suggested rest period",
            lambda: self._suggested_rest(state),
            current_phase=state.current_phase,
        )

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _initialize(self, configuration: C, weight: float) -> S: ...

    @abstractmethod
    def _progress(self, state: S, data: SetProgressionData) -> S: ...

    @abstractmethod
    def _validate(self, state: S, data: SetProgressionData) -> None: ...

    @abstractmethod
    def _suggested_rest(self, state: S) -> int: ...

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _guard(self, operation: str, fn: Callable[[], R], **fields: Any) -> Result[R]:
        try:
            return Result.success(fn())
        except ValidationError as exc:
            return Result.failure(exc)
        except Exception as exc:
            self.logger.exception(
                f"Failed to {operation}", set_type=self.set_type, **fields
            )
            error = InfrastructureError(
                f"Failed to {operation} for {self.display_name.lower()}: {exc}"
            )
            error.__cause__ = exc
            return Result.failure(error)
