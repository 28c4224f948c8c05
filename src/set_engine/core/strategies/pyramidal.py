"""
Pyramidal execution.

Consecutive sets over a rep sequence built from the configured bounds in
``step.min`` increments:

    ascending   12 → 10 → 8 → 6        (load climbs as reps fall)
    descending   6 → 8 → 10 → 12
    both        10 → 8 → 6 → 8 → 10

The load for a set of ``r`` reps is

    base + span × (r_max - r) / (r_max - r_min)

where ``base`` is the load of the highest-rep set and ``span`` is
``weight_step`` × base (percentage) or ``weight_step`` kg (absolute).  After
every set ``base`` is recovered from the weight actually lifted, so the rest
of the pyramid follows the user's real loads.
"""

import math
from dataclasses import replace

from ..config import RPE_MAX, PyramidalParams
from ..errors import ValidationError
from ..models import (
    CurrentSetData,
    NextSetData,
    PyramidalConfiguration,
    PyramidalExecutionState,
    PyramidDirection,
    SetProgressionData,
)
from .base import ExecutionStrategy, actual_weight, round_to_increment


def pyramid_sequence(configuration: PyramidalConfiguration) -> tuple[int, ...]:
    """Rep target of every set, in execution order."""
    step = max(int(configuration.step.min), 1)
    start = int(configuration.start_counts.min)
    end = int(configuration.end_counts.min)
    high, low = max(start, end), min(start, end)

    falling = list(range(high, low - 1, -step))
    if configuration.mode == "ascending":
        return tuple(falling)
    if configuration.mode == "descending":
        return tuple(range(low, high + 1, step))
    # Down to the lowest set, then back up without repeating it
    return tuple(falling + falling[-2::-1])


def direction_switch_point(
    configuration: PyramidalConfiguration, sequence: tuple[int, ...]
) -> int | None:
    """Index of the lowest-rep set in "both" mode, after which the pyramid climbs back."""
    if configuration.mode != "both":
        return None
    return sequence.index(min(sequence))


def direction_for(
    configuration: PyramidalConfiguration, switch_point: int | None, index: int
) -> PyramidDirection:
    """Direction of the set at 0-based ``index``."""
    if configuration.mode == "descending":
        return "descending"
    if switch_point is not None and index > switch_point:
        return "descending"
    return "ascending"


class PyramidalStrategy(ExecutionStrategy[PyramidalConfiguration, PyramidalExecutionState]):
    set_type = "pyramidal"
    display_name = "Pyramidal set"
    params_cls = PyramidalParams

    params: PyramidalParams

    def _initialize(self, configuration: PyramidalConfiguration, weight: float) -> PyramidalExecutionState:
        self.logger.info(
            "Initializing pyramidal execution",
            mode=configuration.mode,
            start_counts=str(configuration.start_counts),
            end_counts=str(configuration.end_counts),
            step=str(configuration.step),
            last_weight=weight,
        )

        sequence = pyramid_sequence(configuration)
        if not sequence:
            raise ValidationError("Invalid pyramid configuration: no sets generated")

        switch_point = direction_switch_point(configuration, sequence)
        first = self.next_pyramid_set(configuration, weight, sequence, 0)
        state = PyramidalExecutionState(
            configuration=configuration,
            current_phase=1,
            total_phases=len(sequence),
            is_completed=False,
            current_set_data=CurrentSetData(
                weight=first.weight,
                counts=first.expected_counts,
                rpe=first.suggested_rpe,
            ),
            next_set_data=(
                self.next_pyramid_set(configuration, weight, sequence, 1) if len(sequence) > 1 else None
            ),
            rest_period_seconds=None,
            pyramid_sequence=sequence,
            current_direction=direction_for(configuration, switch_point, 0),
            direction_switch_point=switch_point,
        )

        self.logger.info(
            "Pyramidal execution initialized",
            total_phases=state.total_phases,
            pyramid_sequence=" -> ".join(str(reps) for reps in sequence),
            starting_weight=state.current_set_data.weight,
            current_direction=state.current_direction,
            direction_switch_point=switch_point,
        )
        return state

    def _progress(self, state: PyramidalExecutionState, data: SetProgressionData) -> PyramidalExecutionState:
        configuration = state.configuration
        sequence = state.pyramid_sequence
        completed_index = state.current_phase - 1

        if state.current_phase >= state.total_phases:
            self.logger.info(
                "Pyramidal set completed",
                total_phases=state.total_phases,
                final_counts=data.counts,
            )
            return replace(
                state,
                current_phase=state.current_phase + 1,
                is_completed=True,
                next_set_data=None,
                rest_period_seconds=None,
            )

        base = self.base_weight(actual_weight(data, state), sequence, completed_index)
        index = completed_index + 1
        direction = direction_for(configuration, state.direction_switch_point, index)
        upcoming = self.next_pyramid_set(configuration, base, sequence, index)

        next_state = replace(
            state,
            current_phase=index + 1,
            current_set_data=CurrentSetData(
                weight=upcoming.weight,
                counts=upcoming.expected_counts,
                rpe=upcoming.suggested_rpe,
            ),
            next_set_data=(
                self.next_pyramid_set(configuration, base, sequence, index + 1)
                if index + 1 < len(sequence)
                else None
            ),
            rest_period_seconds=self.rest_for(upcoming.expected_counts, direction),
            current_direction=direction,
        )
        self.logger.info(
            "Progressed to next pyramidal set",
            new_phase=next_state.current_phase,
            direction=direction,
            expected_counts=upcoming.expected_counts,
            new_weight=upcoming.weight,
            rest_period=next_state.rest_period_seconds,
        )
        return next_state

    def _validate(self, state: PyramidalExecutionState, data: SetProgressionData) -> None:
        p = self.params
        expected = state.current_set_data.counts
        if abs(data.counts - expected) > expected * p.reps_deviation_fraction:
            self.logger.warning(
                "Pyramid set rep count deviates significantly from target",
                expected=expected,
                actual=data.counts,
                phase=state.current_phase,
                direction=state.current_direction,
            )

        expected_weight = state.current_set_data.weight
        if data.weight is not None and expected_weight > 0:
            deviation = abs(data.weight - expected_weight) / expected_weight
            if deviation > p.weight_deviation_fraction:
                self.logger.warning(
                    "Pyramid set weight deviates significantly from expected",
                    expected=expected_weight,
                    actual=data.weight,
                    phase=state.current_phase,
                )

    def _suggested_rest(self, state: PyramidalExecutionState) -> int:
        if state.current_phase == 1:
            return 0
        return self.rest_for(state.current_set_data.counts, state.current_direction)

    # ------------------------------------------------------------------

    def _rep_ratio(self, sequence: tuple[int, ...], index: int) -> float:
        """0 for the highest-rep set, 1 for the lowest."""
        high, low = max(sequence), min(sequence)
        if high == low:
            return 0.0
        return (high - sequence[index]) / (high - low)

    def weight_for(self, base: float, sequence: tuple[int, ...], index: int) -> float:
        p = self.params
        ratio = self._rep_ratio(sequence, index)
        if p.weight_step_type == "percentage":
            weight = base * (1 + p.weight_step * ratio)
        else:
            weight = base + p.weight_step * ratio
        return round_to_increment(weight, p.weight_increment)

    def base_weight(self, lifted: float, sequence: tuple[int, ...], index: int) -> float:
        """Highest-rep load implied by ``lifted`` on the set at ``index``."""
        p = self.params
        ratio = self._rep_ratio(sequence, index)
        if p.weight_step_type == "percentage":
            return lifted / (1 + p.weight_step * ratio)
        return max(lifted - p.weight_step * ratio, 0.0)

    def suggested_rpe(
        self, configuration: PyramidalConfiguration, sequence: tuple[int, ...], index: int
    ) -> float | None:
        """RPE climbs by up to two points across the pyramid."""
        if configuration.rpe is None:
            return None
        progress = index / (len(sequence) - 1) if len(sequence) > 1 else 0.0
        return min(configuration.rpe.min + math.floor(progress * 2), RPE_MAX)

    def next_pyramid_set(
        self,
        configuration: PyramidalConfiguration,
        base: float,
        sequence: tuple[int, ...],
        index: int,
    ) -> NextSetData:
        return NextSetData(
            weight=self.weight_for(base, sequence, index),
            expected_counts=sequence[index],
            suggested_rpe=self.suggested_rpe(configuration, sequence, index),
        )

    def rest_for(self, reps: int, direction: PyramidDirection) -> int:
        """Heavier, low-rep sets get longer rest; the climb back up gets a little extra."""
        p = self.params
        if reps <= p.low_reps:
            seconds = p.heavy_rest_seconds
        elif reps <= p.moderate_reps:
            seconds = p.moderate_rest_seconds
        else:
            seconds = p.light_rest_seconds
        if direction == "descending":
            seconds += p.descending_extra_rest_seconds
        return seconds
