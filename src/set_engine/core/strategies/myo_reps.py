"""
Myo-reps execution.

A high-effort activation set is followed by short mini-sets at the same
load.  Mini-set targets are derived from what the activation set actually
achieved:

    target = min(max(ceil(activation_reps × 0.25), 3), mini_set_counts.max or 5)

Rest before mini-set n (0-based) decays from 20 s by 2 s per completed
mini-set, floored at 10 s.  Suggested RPE climbs by one per completed
mini-set, capped at 10.
"""

import math
from dataclasses import replace

from ..config import MyoRepsParams
from ..errors import ValidationError
from ..models import (
    CurrentSetData,
    MyoRepsConfiguration,
    MyoRepsExecutionState,
    NextSetData,
    SetProgressionData,
)
from .base import ExecutionStrategy, actual_weight, escalate_rpe, round_to_increment


class MyoRepsStrategy(ExecutionStrategy[MyoRepsConfiguration, MyoRepsExecutionState]):
    """Activation set plus mini-sets with decaying rest."""

    set_type = "myo_reps"
    display_name = "Myo-reps set"
    params_cls = MyoRepsParams

    params: MyoRepsParams

    def _initialize(self, configuration: MyoRepsConfiguration, weight: float) -> MyoRepsExecutionState:
        self.logger.info(
            "Initializing myo-reps execution",
            activation_counts=str(configuration.activation_counts),
            mini_sets=str(configuration.mini_sets),
            mini_set_counts=str(configuration.mini_set_counts),
            last_weight=weight,
        )

        total_phases = 1 + int(configuration.mini_sets.min)
        state = MyoRepsExecutionState(
            configuration=configuration,
            current_phase=1,
            total_phases=total_phases,
            is_completed=False,
            current_set_data=CurrentSetData(
                weight=weight,
                counts=int(configuration.activation_counts.min),
                rpe=configuration.rpe.min if configuration.rpe else None,
            ),
            next_set_data=(
                self.next_mini_set(configuration, weight, 0, None) if total_phases > 1 else None
            ),
            rest_period_seconds=None,  # no rest before activation
            is_activation_phase=True,
            mini_sets_completed=0,
            activation_reps=None,
        )

        self.logger.info(
            "Myo-reps execution initialized",
            total_phases=total_phases,
            starting_weight=weight,
            planned_mini_sets=total_phases - 1,
        )
        return state

    def _progress(self, state: MyoRepsExecutionState, data: SetProgressionData) -> MyoRepsExecutionState:
        configuration = state.configuration
        next_phase = state.current_phase + 1

        if state.is_activation_phase:
            activation_reps = int(data.counts)
            weight = round_to_increment(actual_weight(data, state), self.params.weight_increment)

            if next_phase > state.total_phases:
                self.logger.info("Myo-reps set completed", activation_reps=activation_reps, mini_sets_completed=0)
                return replace(
                    state,
                    current_phase=next_phase,
                    is_completed=True,
                    is_activation_phase=False,
                    activation_reps=activation_reps,
                    next_set_data=None,
                    rest_period_seconds=None,
                )

            target = self.next_mini_set(configuration, weight, 0, activation_reps)
            next_state = replace(
                state,
                current_phase=next_phase,
                current_set_data=CurrentSetData(
                    weight=target.weight,
                    counts=target.expected_counts,
                    rpe=target.suggested_rpe,
                ),
                next_set_data=(
                    self.next_mini_set(configuration, weight, 1, activation_reps)
                    if next_phase < state.total_phases
                    else None
                ),
                rest_period_seconds=self.mini_set_rest(0),
                is_activation_phase=False,
                mini_sets_completed=0,
                activation_reps=activation_reps,
            )
            self.logger.info(
                "Transitioned from activation to mini-sets",
                activation_reps=activation_reps,
                mini_set_counts=target.expected_counts,
                rest_period=next_state.rest_period_seconds,
            )
            return next_state

        # Mini-set: load is held at the activation weight whatever was reported
        weight = state.current_set_data.weight
        mini_sets_completed = state.mini_sets_completed + 1

        if next_phase > state.total_phases:
            self.logger.info(
                "Myo-reps set completed",
                activation_reps=state.activation_reps,
                mini_sets_completed=mini_sets_completed,
            )
            return replace(
                state,
                current_phase=next_phase,
                is_completed=True,
                mini_sets_completed=mini_sets_completed,
                next_set_data=None,
                rest_period_seconds=None,
            )

        target = self.next_mini_set(configuration, weight, mini_sets_completed, state.activation_reps)
        next_state = replace(
            state,
            current_phase=next_phase,
            current_set_data=CurrentSetData(
                weight=target.weight,
                counts=target.expected_counts,
                rpe=target.suggested_rpe,
            ),
            next_set_data=(
                self.next_mini_set(configuration, weight, mini_sets_completed + 1, state.activation_reps)
                if next_phase < state.total_phases
                else None
            ),
            rest_period_seconds=self.mini_set_rest(mini_sets_completed),
            mini_sets_completed=mini_sets_completed,
        )
        self.logger.info(
            "Progressed to next mini-set",
            mini_sets_completed=mini_sets_completed,
            expected_counts=target.expected_counts,
            rest_period=next_state.rest_period_seconds,
        )
        return next_state

    def _validate(self, state: MyoRepsExecutionState, data: SetProgressionData) -> None:
        if state.is_activation_phase:
            activation = state.configuration.activation_counts
            if data.counts < activation.min:
                raise ValidationError(
                    f"Activation set requires at least {activation.min:g} reps, got {data.counts}"
                )
            if activation.max is not None and data.counts > activation.max:
                self.logger.warning(
                    "Activation set exceeds maximum expected reps",
                    expected=activation.max,
                    actual=data.counts,
                )
            if data.rpe is not None and data.rpe < self.params.activation_rpe_warning:
                self.logger.warning(
                    "Activation set RPE seems low for effective myo-reps",
                    rpe=data.rpe,
                )
            return

        expected = state.current_set_data.counts
        if data.counts > expected * 2:
            self.logger.warning(
                "Mini-set rep count seems unusually high",
                expected=expected,
                actual=data.counts,
                mini_set_number=state.mini_sets_completed + 1,
            )

    def _suggested_rest(self, state: MyoRepsExecutionState) -> int:
        if state.is_activation_phase:
            return 0
        return self.mini_set_rest(state.mini_sets_completed)

    # ------------------------------------------------------------------

    def mini_set_target(self, configuration: MyoRepsConfiguration, activation_reps: int | None) -> int:
        """Rep target for a mini-set; the configured minimum until activation is known."""
        if activation_reps is None:
            return int(configuration.mini_set_counts.min)
        p = self.params
        computed = max(math.ceil(activation_reps * p.mini_set_fraction), p.mini_set_floor)
        cap = configuration.mini_set_counts.max
        cap = int(cap) if cap is not None else p.mini_set_cap
        return min(computed, cap)

    def next_mini_set(
        self,
        configuration: MyoRepsConfiguration,
        weight: float,
        mini_set_number: int,
        activation_reps: int | None,
    ) -> NextSetData:
        """Prescription for mini-set ``mini_set_number`` (0-based)."""
        return NextSetData(
            weight=round_to_increment(weight, self.params.weight_increment),
            expected_counts=self.mini_set_target(configuration, activation_reps),
            suggested_rpe=escalate_rpe(
                configuration.rpe.min if configuration.rpe else None, mini_set_number
            ),
        )

    def mini_set_rest(self, mini_sets_completed: int) -> int:
        p = self.params
        return max(p.base_rest_seconds - p.rest_decay_seconds * mini_sets_completed, p.min_rest_seconds)
