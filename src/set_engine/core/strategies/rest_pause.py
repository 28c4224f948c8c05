"""
Rest-pause execution.

A main set at the configured count followed by ``pauses.min`` short pause
segments at the same load, each expected to yield a shrinking fraction of
the main set:

    target_n = max(ceil(counts.min × m_n), 1),  m = 1.0, 0.5, 0.3, 0.2, 0.15, 0.1…

The execution stops early when a segment falls below its viable minimum
(3 reps for the main set, 1 for a pause) or RPE reaches 10.
"""

import math
from dataclasses import replace

from ..config import RPE_MAX, RestPauseParams
from ..models import (
    CurrentSetData,
    NextSetData,
    RestPauseConfiguration,
    RestPauseExecutionState,
    SetProgressionData,
)
from .base import ExecutionStrategy, actual_weight, escalate_rpe, round_to_increment


class RestPauseStrategy(ExecutionStrategy[RestPauseConfiguration, RestPauseExecutionState]):
    set_type = "rest_pause"
    display_name = "Rest-pause set"
    params_cls = RestPauseParams

    params: RestPauseParams

    def _initialize(self, configuration: RestPauseConfiguration, weight: float) -> RestPauseExecutionState:
        total_phases = 1 + int(configuration.pauses.min)
        target_total_reps = int(configuration.counts.min) * total_phases

        self.logger.info(
            "Initializing rest-pause execution",
            counts=str(configuration.counts),
            pauses=str(configuration.pauses),
            last_weight=weight,
            target_total_reps=target_total_reps,
        )

        return RestPauseExecutionState(
            configuration=configuration,
            current_phase=1,
            total_phases=total_phases,
            is_completed=False,
            current_set_data=CurrentSetData(
                weight=weight,
                counts=int(configuration.counts.min),
                rpe=configuration.rpe.min if configuration.rpe else None,
            ),
            next_set_data=self.next_segment(configuration, weight, 1) if total_phases > 1 else None,
            rest_period_seconds=None,
            pauses_completed=0,
            total_reps_achieved=0,
            target_total_reps=target_total_reps,
        )

    def _progress(self, state: RestPauseExecutionState, data: SetProgressionData) -> RestPauseExecutionState:
        weight = round_to_increment(actual_weight(data, state), self.params.weight_increment)
        total_reps = state.total_reps_achieved + int(data.counts)
        next_phase = state.current_phase + 1
        pauses_completed = state.pauses_completed + (0 if state.current_phase == 1 else 1)

        reason = None
        if next_phase > state.total_phases:
            reason = "max_phases_reached"
        elif not self.is_viable(state, data):
            reason = "performance_criteria"

        if reason is not None:
            self.logger.info(
                "Rest-pause set completed",
                total_reps_achieved=total_reps,
                target_total_reps=state.target_total_reps,
                reason=reason,
            )
            return replace(
                state,
                current_phase=next_phase,
                is_completed=True,
                next_set_data=None,
                rest_period_seconds=None,
                pauses_completed=pauses_completed,
                total_reps_achieved=total_reps,
            )

        segment_number = state.current_phase  # segment about to start, 1-based
        upcoming = self.next_segment(state.configuration, weight, segment_number)

        next_state = replace(
            state,
            current_phase=next_phase,
            current_set_data=CurrentSetData(
                weight=upcoming.weight,
                counts=upcoming.expected_counts,
                rpe=upcoming.suggested_rpe,
            ),
            next_set_data=(
                self.next_segment(state.configuration, weight, segment_number + 1)
                if next_phase < state.total_phases
                else None
            ),
            rest_period_seconds=self.params.pause_seconds,
            pauses_completed=pauses_completed,
            total_reps_achieved=total_reps,
        )
        self.logger.info(
            "Progressed to next rest-pause segment",
            new_phase=next_phase,
            expected_counts=upcoming.expected_counts,
            total_reps_achieved=total_reps,
        )
        return next_state

    def _validate(self, state: RestPauseExecutionState, data: SetProgressionData) -> None:
        expected = state.current_set_data.counts
        if state.current_phase == 1:
            if data.counts < expected * self.params.low_main_set_fraction:
                self.logger.warning(
                    "Main set rep count seems low for rest-pause training",
                    expected=expected,
                    actual=data.counts,
                )
        elif data.counts > expected * self.params.high_segment_fraction:
            self.logger.warning(
                "Pause segment rep count seems unusually high",
                expected=expected,
                actual=data.counts,
                pause_segment=state.current_phase - 1,
            )

    def _suggested_rest(self, state: RestPauseExecutionState) -> int:
        if state.current_phase == 1:
            return 0
        return self.params.pause_seconds

    # ------------------------------------------------------------------

    def is_viable(self, state: RestPauseExecutionState, data: SetProgressionData) -> bool:
        """False when fatigue makes another pause segment pointless."""
        minimum = (
            self.params.main_set_min_reps if state.current_phase == 1 else self.params.segment_min_reps
        )
        if data.counts < minimum:
            return False
        if data.rpe is not None and data.rpe >= RPE_MAX:
            return False
        return True

    def segment_target(self, configuration: RestPauseConfiguration, segment_number: int) -> int:
        """Expected reps for segment ``segment_number`` (0 = main set)."""
        multipliers = self.params.fatigue_multipliers
        if segment_number < len(multipliers):
            multiplier = multipliers[segment_number]
        else:
            multiplier = self.params.tail_multiplier
        return max(math.ceil(configuration.counts.min * multiplier), 1)

    def next_segment(
        self,
        configuration: RestPauseConfiguration,
        weight: float,
        segment_number: int,
    ) -> NextSetData:
        return NextSetData(
            weight=round_to_increment(weight, self.params.weight_increment),
            expected_counts=self.segment_target(configuration, segment_number),
            suggested_rpe=escalate_rpe(
                configuration.rpe.min if configuration.rpe else None, segment_number
            ),
        )
