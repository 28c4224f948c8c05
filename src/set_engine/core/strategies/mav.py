"""
MAV (Maximum Adaptive Volume) execution.

Consecutive near-maximal sets at a fixed load, continued until performance
drops off.  The execution completes on whichever comes first:

    (a) reps < decline_threshold × reps of the first completed set
        (performance_decline = True)
    (b) sets_completed reaches sets.max, or the safety ceiling when open
    (c) reported RPE reaches 10

Rest between sets grows with accumulated sets and with the last RPE:

    rest = 90 + 15 × floor(sets_completed / 3) + {30 if RPE ≥ 9, 15 if RPE ≥ 8}
    rest ∈ [90, 180]
"""

import math
from dataclasses import replace

from ..config import RPE_MAX, MavParams
from ..models import (
    CurrentSetData,
    LastSetPerformance,
    MavConfiguration,
    MavExecutionState,
    NextSetData,
    SetProgressionData,
)
from .base import ExecutionStrategy, actual_weight, round_to_increment


class MavStrategy(ExecutionStrategy[MavConfiguration, MavExecutionState]):
    """Volume accumulation with decline-based termination."""

    set_type = "mav"
    display_name = "MAV set"
    params_cls = MavParams

    params: MavParams

    def _initialize(self, configuration: MavConfiguration, weight: float) -> MavExecutionState:
        self.logger.info(
            "Initializing MAV execution",
            sets=str(configuration.sets),
            counts=str(configuration.counts),
            last_weight=weight,
        )

        total_phases = self.phase_ceiling(configuration)
        state = MavExecutionState(
            configuration=configuration,
            current_phase=1,
            total_phases=total_phases,
            is_completed=False,
            current_set_data=CurrentSetData(
                weight=weight,
                counts=int(configuration.counts.min),
                rpe=configuration.rpe.min if configuration.rpe else None,
            ),
            next_set_data=self.next_mav_set(configuration, weight, 2, []) if total_phases > 1 else None,
            rest_period_seconds=None,  # no rest before the first set
        )

        self.logger.info(
            "MAV execution initialized",
            max_sets=total_phases,
            starting_weight=weight,
            target_counts=state.current_set_data.counts,
        )
        return state

    def _progress(self, state: MavExecutionState, data: SetProgressionData) -> MavExecutionState:
        configuration = state.configuration
        lifted = actual_weight(data, state)
        sets_completed = state.sets_completed + 1
        total_volume = state.total_volume_achieved + lifted * data.counts
        first_set_counts = (
            state.first_set_counts if state.first_set_counts is not None else int(data.counts)
        )
        last_performance = LastSetPerformance(counts=int(data.counts), rpe=data.rpe)

        declined = self.is_declining(first_set_counts, data.counts, sets_completed)
        reason = self.stop_reason(state, data, sets_completed, declined)

        if reason is not None:
            self.logger.info(
                "MAV set completed",
                sets_completed=sets_completed,
                total_volume=total_volume,
                reason=reason,
            )
            return replace(
                state,
                current_phase=state.current_phase + 1,
                is_completed=True,
                next_set_data=None,
                rest_period_seconds=None,
                sets_completed=sets_completed,
                total_volume_achieved=total_volume,
                performance_decline=declined,
                last_set_performance=last_performance,
                first_set_counts=first_set_counts,
            )

        recent = [int(data.counts)]
        if state.last_set_performance is not None:
            recent.insert(0, state.last_set_performance.counts)

        upcoming = self.next_mav_set(configuration, lifted, sets_completed + 1, recent)
        next_phase = state.current_phase + 1
        next_state = replace(
            state,
            current_phase=next_phase,
            current_set_data=CurrentSetData(
                weight=upcoming.weight,
                counts=upcoming.expected_counts,
                rpe=upcoming.suggested_rpe,
            ),
            next_set_data=(
                self.next_mav_set(
                    configuration, upcoming.weight, sets_completed + 2, [recent[-1], upcoming.expected_counts]
                )
                if next_phase < state.total_phases
                else None
            ),
            rest_period_seconds=self.mav_rest(sets_completed, data.rpe),
            sets_completed=sets_completed,
            total_volume_achieved=total_volume,
            performance_decline=False,
            last_set_performance=last_performance,
            first_set_counts=first_set_counts,
        )

        self.logger.info(
            "Progressed to next MAV set",
            new_phase=next_phase,
            sets_completed=sets_completed,
            expected_counts=upcoming.expected_counts,
            rest_period=next_state.rest_period_seconds,
            total_volume=total_volume,
        )
        return next_state

    def _validate(self, state: MavExecutionState, data: SetProgressionData) -> None:
        expected = state.current_set_data.counts
        set_number = state.sets_completed + 1

        if data.counts < expected * self.params.min_reps_fraction:
            self.logger.warning(
                "MAV set performance significantly below target",
                expected=expected,
                actual=data.counts,
                set_number=set_number,
            )

        if data.rpe is not None and data.rpe >= self.params.high_rpe:
            self.logger.warning(
                "MAV set approaching maximum RPE, execution may be nearing completion",
                rpe=data.rpe,
                set_number=set_number,
            )

    def _suggested_rest(self, state: MavExecutionState) -> int:
        if state.sets_completed == 0:
            return 0
        last_rpe = state.last_set_performance.rpe if state.last_set_performance else None
        return self.mav_rest(state.sets_completed, last_rpe)

    # ------------------------------------------------------------------

    def phase_ceiling(self, configuration: MavConfiguration) -> int:
        """sets.max when configured, otherwise the safety ceiling."""
        if configuration.sets.max is not None:
            return int(configuration.sets.max)
        return self.params.safety_set_limit

    def is_declining(self, first_set_counts: int, counts: float, sets_completed: int) -> bool:
        """True when a later set falls below the decline threshold of the first set."""
        if sets_completed < 2:
            return False
        return counts < first_set_counts * self.params.decline_threshold

    def stop_reason(
        self,
        state: MavExecutionState,
        data: SetProgressionData,
        sets_completed: int,
        declined: bool,
    ) -> str | None:
        """Why the execution stops after this set, or None to continue."""
        if declined:
            return "performance_decline"
        if sets_completed >= state.total_phases:
            if state.configuration.sets.max is None:
                return "safety_limit_reached"
            return "max_sets_reached"
        if data.rpe is not None and data.rpe >= RPE_MAX:
            return "max_rpe_reached"
        return None

    def next_mav_set(
        self,
        configuration: MavConfiguration,
        weight: float,
        set_number: int,
        recent_counts: list[int],
    ) -> NextSetData:
        """
        Prescription for set ``set_number`` (1-based).

        Expectations fall by 10% from the average of the last two sets, but
        never below half of the configured minimum.
        """
        p = self.params
        target_min = configuration.counts.min
        expected = int(target_min)
        if recent_counts:
            window = recent_counts[-2:]
            average = sum(window) / len(window)
            expected = max(
                math.floor(average * p.expected_decline),
                math.floor(target_min * p.min_reps_fraction),
                1,
            )

        suggested_rpe = None
        if configuration.rpe is not None:
            suggested_rpe = min(configuration.rpe.min + set_number // 3, RPE_MAX)

        return NextSetData(
            weight=round_to_increment(weight, p.weight_increment),
            expected_counts=expected,
            suggested_rpe=suggested_rpe,
        )

    def mav_rest(self, sets_completed: int, last_rpe: float | None) -> int:
        p = self.params
        rest = p.base_rest_seconds + (sets_completed // p.rest_step_sets) * p.rest_step_seconds
        if last_rpe is not None:
            if last_rpe >= p.high_rpe:
                rest += 30
            elif last_rpe >= p.moderate_rpe:
                rest += 15
        return max(p.base_rest_seconds, min(rest, p.max_rest_seconds))
