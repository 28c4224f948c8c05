"""
Drop set execution.

One working set to near failure followed by ``drops.min`` drops.  Each drop
is prescribed from the weight the user actually lifted in the phase before
it, so a lifter who had to go lighter than planned is not sent back up.

    W_next = max(floor_0.5(W_lifted × drop_fraction), minimum_weight)
    reps_n = max(start_counts.min − floor(n × 0.5), 1)
    rpe_n  = min(rpe.min + n, 10)
"""

import math
from dataclasses import replace

from ..config import DropSetParams
from ..models import (
    CurrentSetData,
    DropSetConfiguration,
    DropSetExecutionState,
    NextSetData,
    SetProgressionData,
)
from .base import ExecutionStrategy, actual_weight, escalate_rpe, floor_to_increment


class DropSetStrategy(ExecutionStrategy[DropSetConfiguration, DropSetExecutionState]):
    """Progressive load reduction with short, fixed rests between drops."""

    set_type = "drop"
    display_name = "Drop set"
    params_cls = DropSetParams

    params: DropSetParams

    def _initialize(self, configuration: DropSetConfiguration, weight: float) -> DropSetExecutionState:
        self.logger.info(
            "Initializing drop set execution",
            start_counts=str(configuration.start_counts),
            drops=str(configuration.drops),
            last_weight=weight,
        )

        total_phases = 1 + int(configuration.drops.min)
        state = DropSetExecutionState(
            configuration=configuration,
            current_phase=1,
            total_phases=total_phases,
            is_completed=False,
            current_set_data=CurrentSetData(
                weight=weight,
                counts=int(configuration.start_counts.min),
                rpe=configuration.rpe.min if configuration.rpe else None,
            ),
            next_set_data=self.next_drop(configuration, weight, 1) if total_phases > 1 else None,
            rest_period_seconds=None,  # nothing precedes the working set
            drops_completed=0,
        )

        self.logger.info(
            "Drop set execution initialized",
            total_phases=total_phases,
            starting_weight=weight,
            starting_counts=state.current_set_data.counts,
        )
        return state

    def _progress(self, state: DropSetExecutionState, data: SetProgressionData) -> DropSetExecutionState:
        lifted = actual_weight(data, state)

        if state.current_phase >= state.total_phases:
            self.logger.info(
                "Drop set completed",
                drops_completed=state.drops_completed,
                final_weight=lifted,
            )
            return replace(
                state,
                current_phase=state.current_phase + 1,
                is_completed=True,
                next_set_data=None,
                rest_period_seconds=None,
            )

        configuration = state.configuration
        next_phase = state.current_phase + 1
        drops_completed = state.drops_completed + 1
        upcoming = self.next_drop(configuration, lifted, drops_completed)

        next_state = replace(
            state,
            current_phase=next_phase,
            current_set_data=CurrentSetData(
                weight=upcoming.weight,
                counts=upcoming.expected_counts,
                rpe=upcoming.suggested_rpe,
            ),
            next_set_data=(
                self.next_drop(configuration, upcoming.weight, drops_completed + 1)
                if next_phase < state.total_phases
                else None
            ),
            rest_period_seconds=self.params.rest_between_drops_seconds,
            drops_completed=drops_completed,
        )

        self.logger.info(
            "Drop set progressed to next phase",
            new_phase=next_phase,
            lifted_weight=lifted,
            new_weight=upcoming.weight,
            expected_counts=upcoming.expected_counts,
        )
        return next_state

    def _validate(self, state: DropSetExecutionState, data: SetProgressionData) -> None:
        # Fatigue is expected in drop sets, so only implausibly high counts are flagged
        expected = state.current_set_data.counts
        if data.counts > expected * 2:
            self.logger.warning(
                "Unusually high rep count for drop set phase",
                expected=expected,
                actual=data.counts,
                phase=state.current_phase,
            )

    def _suggested_rest(self, state: DropSetExecutionState) -> int:
        if state.current_phase <= 1:
            return 0
        return self.params.rest_between_drops_seconds

    # ------------------------------------------------------------------

    def drop_weight(self, lifted_weight: float) -> float:
        """
        Target weight for the next drop.

        Rounded down to the plate increment so the drop is never heavier
        than ``drop_fraction`` of the lifted weight, then floored at
        ``minimum_weight``.
        """
        p = self.params
        target = floor_to_increment(lifted_weight * p.drop_fraction, p.weight_increment)
        return max(target, p.minimum_weight)

    def next_drop(
        self,
        configuration: DropSetConfiguration,
        lifted_weight: float,
        drop_number: int,
    ) -> NextSetData:
        """Prescription for drop ``drop_number`` (1-based) after ``lifted_weight``."""
        reduction = math.floor(drop_number * self.params.reps_reduction_per_drop)
        expected_counts = max(int(configuration.start_counts.min) - reduction, 1)
        return NextSetData(
            weight=self.drop_weight(lifted_weight),
            expected_counts=expected_counts,
            suggested_rpe=escalate_rpe(
                configuration.rpe.min if configuration.rpe else None, drop_number
            ),
        )
