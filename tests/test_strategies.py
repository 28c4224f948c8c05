"""
Formula-focused unit tests for the execution strategies.

Each test drives a strategy through its public async operations and checks
the prescription against values hand-computed from the formulas in the
strategy module docstrings.
"""

import asyncio

import pytest
from structlog.testing import capture_logs

from set_engine.core.config import (
    DROP_MINIMUM_WEIGHT,
    DROP_REST_SECONDS,
    MAV_MAX_REST_SECONDS,
    MAV_SAFETY_SET_LIMIT,
    REST_PAUSE_SECONDS,
    DropSetParams,
    MyoRepsParams,
    PyramidalParams,
)
from set_engine.core.errors import InfrastructureError, ValidationError
from set_engine.core.models import (
    DropSetConfiguration,
    MavConfiguration,
    MyoRepsConfiguration,
    ParameterRange,
    PyramidalConfiguration,
    RestPauseConfiguration,
    SetProgressionData,
)
from set_engine.core.strategies import (
    DropSetStrategy,
    MavStrategy,
    MyoRepsStrategy,
    PyramidalStrategy,
    RestPauseStrategy,
    create_strategy,
)
from set_engine.core.strategies.base import floor_to_increment, round_to_increment

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _ok(awaitable):
    """Run a strategy operation and unwrap its successful result."""
    result = asyncio.run(awaitable)
    assert result.is_success, result.error
    return result.value


def _fail(awaitable):
    result = asyncio.run(awaitable)
    assert result.is_failure
    return result.error


def _done(counts: int, weight: float | None = None, rpe: float | None = None) -> SetProgressionData:
    return SetProgressionData(counts=counts, weight=weight, rpe=rpe)


def _drop_config(**kw) -> DropSetConfiguration:
    kw.setdefault("start_counts", ParameterRange(8))
    kw.setdefault("drops", ParameterRange(2))
    kw.setdefault("sets", ParameterRange(1))
    return DropSetConfiguration(**kw)


def _myo_config(**kw) -> MyoRepsConfiguration:
    kw.setdefault("activation_counts", ParameterRange(15))
    kw.setdefault("mini_sets", ParameterRange(3))
    kw.setdefault("mini_set_counts", ParameterRange(3))
    return MyoRepsConfiguration(**kw)


def _mav_config(**kw) -> MavConfiguration:
    kw.setdefault("sets", ParameterRange(3, 5))
    kw.setdefault("counts", ParameterRange(10))
    return MavConfiguration(**kw)


def _rest_pause_config(**kw) -> RestPauseConfiguration:
    kw.setdefault("counts", ParameterRange(8))
    kw.setdefault("pauses", ParameterRange(2))
    return RestPauseConfiguration(**kw)


def _pyramid_config(**kw) -> PyramidalConfiguration:
    kw.setdefault("start_counts", ParameterRange(12))
    kw.setdefault("end_counts", ParameterRange(6))
    return PyramidalConfiguration(**kw)


# ===========================================================================
# base.py: rounding helpers
# ===========================================================================

class TestRounding:
    def test_round_half_up_to_increment(self):
        assert round_to_increment(80.25, 0.5) == pytest.approx(80.5)
        assert round_to_increment(80.2, 0.5) == pytest.approx(80.0)

    def test_floor_keeps_exact_multiples(self):
        # 100 × 0.8 = 80.000000001 in float arithmetic must stay 80.0
        assert floor_to_increment(100 * 0.8, 0.5) == pytest.approx(80.0)

    def test_floor_never_exceeds_value(self):
        assert floor_to_increment(80.8, 0.5) == pytest.approx(80.5)


# ===========================================================================
# Shared contract
# ===========================================================================

class TestStrategyContract:
    """Every strategy starts at phase 1 and reports failures as results."""

    @pytest.mark.parametrize(
        "strategy_cls, configuration",
        [
            (DropSetStrategy, _drop_config()),
            (MyoRepsStrategy, _myo_config()),
            (MavStrategy, _mav_config()),
            (RestPauseStrategy, _rest_pause_config()),
            (PyramidalStrategy, _pyramid_config()),
        ],
    )
    def test_initial_state_is_phase_one_and_open(self, strategy_cls, configuration, logger):
        state = _ok(strategy_cls(logger=logger).initialize_execution(configuration, 50.0))
        assert state.current_phase == 1
        assert state.is_completed is False
        assert state.rest_period_seconds is None
        assert state.current_set_data.weight == 50.0

    def test_missing_weight_defaults_to_zero(self, logger):
        state = _ok(DropSetStrategy(logger=logger).initialize_execution(_drop_config()))
        assert state.current_set_data.weight == 0.0

    def test_negative_last_weight_fails(self, logger):
        error = _fail(DropSetStrategy(logger=logger).initialize_execution(_drop_config(), -5.0))
        assert isinstance(error, ValidationError)

    def test_mismatched_configuration_fails(self, logger):
        error = _fail(MavStrategy(logger=logger).initialize_execution(_drop_config(), 50.0))
        assert isinstance(error, ValidationError)
        assert "'drop'" in str(error)

    @pytest.mark.parametrize(
        "data, message",
        [
            (_done(0, 50.0), "Counts must be greater than 0"),
            (_done(-1, 50.0), "Counts must be greater than 0"),
            (_done(8, -1.0), "Weight cannot be negative"),
            (_done(8, 50.0, rpe=11), "RPE must be between 1 and 10"),
            (_done(8, 50.0, rpe=0.5), "RPE must be between 1 and 10"),
        ],
    )
    def test_basic_bounds_are_hard_failures(self, data, message, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 50.0))
        error = _fail(strategy.validate_phase_completion(state, data))
        assert isinstance(error, ValidationError)
        assert str(error) == message
        assert "Phase completion validation failed" in logger.events("error")

    def test_progress_after_completion_fails(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(drops=ParameterRange(0)), 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.is_completed

        error = _fail(strategy.progress_to_next_phase(state, _done(8)))
        assert str(error) == "Drop set is already completed"

    def test_unexpected_exception_becomes_infrastructure_error(self, logger):
        class Broken(DropSetStrategy):
            def _progress(self, state, data):
                raise RuntimeError("disk on fire")

        strategy = Broken(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 50.0))
        error = _fail(strategy.progress_to_next_phase(state, _done(8)))

        assert isinstance(error, InfrastructureError)
        assert isinstance(error.__cause__, RuntimeError)
        assert "disk on fire" in error.message
        assert "Failed to progress to next phase" in logger.events("exception")

    def test_completed_state_needs_no_rest(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(10, rpe=10)))
        assert _ok(strategy.get_suggested_rest_period(state)) == 0


# ===========================================================================
# drop_set.py
# ===========================================================================

class TestDropSet:
    """W_next = max(floor_0.5(W_lifted × 0.8), 5); reps_n = max(start − floor(n/2), 1)"""

    def test_initial_state(self, logger):
        state = _ok(DropSetStrategy(logger=logger).initialize_execution(_drop_config(), 100.0))
        assert state.total_phases == 3
        assert state.current_set_data.weight == 100.0
        assert state.current_set_data.counts == 8
        assert state.drops_completed == 0
        assert state.next_set_data.weight == pytest.approx(80.0)

    def test_full_progression(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))

        state = _ok(strategy.progress_to_next_phase(state, _done(8, 100.0, rpe=8)))
        assert state.current_phase == 2
        assert state.drops_completed == 1
        assert state.current_set_data.weight < 100.0
        assert state.current_set_data.weight == pytest.approx(80.0)
        assert state.current_set_data.counts == 8  # 8 − floor(1 × 0.5)
        assert state.rest_period_seconds == DROP_REST_SECONDS
        assert state.next_set_data.expected_counts == 7  # 8 − floor(2 × 0.5)

        state = _ok(strategy.progress_to_next_phase(state, _done(7, 80.0, rpe=9)))
        assert state.current_phase == 3
        assert state.drops_completed == 2
        assert state.current_set_data.weight == pytest.approx(64.0)
        assert state.next_set_data is None
        assert state.is_completed is False

        state = _ok(strategy.progress_to_next_phase(state, _done(6, 64.0, rpe=10)))
        assert state.is_completed is True
        assert state.current_phase == 4
        assert state.rest_period_seconds is None
        assert state.drops_completed == 2

    def test_drop_based_on_actual_not_planned_weight(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        # Planned 100, actually lifted 90 → 72
        state = _ok(strategy.progress_to_next_phase(state, _done(8, 90.0)))
        assert state.current_set_data.weight == pytest.approx(72.0)

    def test_missing_weight_uses_planned(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.current_set_data.weight == pytest.approx(80.0)

    @pytest.mark.parametrize("lifted", [200.0, 101.0, 63.3, 12.0, 6.0, 5.0, 0.0])
    def test_drop_weight_bounds(self, lifted):
        strategy = DropSetStrategy()
        weight = strategy.drop_weight(lifted)
        assert weight >= DROP_MINIMUM_WEIGHT
        if lifted * 0.8 >= DROP_MINIMUM_WEIGHT:
            assert weight <= lifted * 0.8
        assert (weight / 0.5) == pytest.approx(round(weight / 0.5))

    def test_minimum_weight_floor(self):
        # 6 × 0.8 = 4.8 → floored to the 5 kg minimum
        assert DropSetStrategy().drop_weight(6.0) == DROP_MINIMUM_WEIGHT

    def test_rpe_escalates_per_drop(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(rpe=ParameterRange(8, 10)), 100.0))
        assert state.current_set_data.rpe == 8
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.current_set_data.rpe == 9
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.current_set_data.rpe == 10

    def test_suggested_rest_precedes_drops_only(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        assert _ok(strategy.get_suggested_rest_period(state)) == 0
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert _ok(strategy.get_suggested_rest_period(state)) == DROP_REST_SECONDS

    def test_high_counts_warn_without_failing(self, logger):
        strategy = DropSetStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        assert _ok(strategy.validate_phase_completion(state, _done(17, 100.0))) is True
        assert "Unusually high rep count for drop set phase" in logger.events("warning")

    def test_custom_params(self, logger):
        params = DropSetParams(drop_fraction=0.5, rest_between_drops_seconds=0)
        strategy = DropSetStrategy(params=params, logger=logger)
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.current_set_data.weight == pytest.approx(50.0)
        assert state.needs_rest is False


# ===========================================================================
# myo_reps.py
# ===========================================================================

class TestMyoReps:
    """target = min(max(ceil(activation × 0.25), 3), cap); rest = max(20 − 2n, 10)"""

    def test_initial_state(self, logger):
        state = _ok(MyoRepsStrategy(logger=logger).initialize_execution(_myo_config(), 50.0))
        assert state.total_phases == 4
        assert state.is_activation_phase is True
        assert state.activation_reps is None
        assert state.current_set_data.counts == 15
        assert state.rest_period_seconds is None

    def test_first_mini_set_from_low_activation(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(10, 50.0)))

        # max(ceil(0.25 × 10), 3) = max(3, 3) = 3
        assert state.current_set_data.counts == 3
        assert state.activation_reps == 10
        assert state.is_activation_phase is False
        assert state.current_phase == 2
        assert state.rest_period_seconds == 20

    @pytest.mark.parametrize(
        "activation, cap, expected",
        [
            (20, None, 5),   # ceil(5) = 5
            (30, None, 5),   # ceil(7.5) = 8 → default cap 5
            (30, 4, 4),      # configured max wins
            (16, 6, 4),      # ceil(4) = 4, under the cap
        ],
    )
    def test_mini_set_target(self, activation, cap, expected, logger):
        config = _myo_config(
            activation_counts=ParameterRange(12),
            mini_set_counts=ParameterRange(3, cap),
        )
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(config, 40.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(activation, 40.0)))
        assert state.current_set_data.counts == expected

    def test_weight_held_across_mini_sets(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(16, 50.0)))
        state = _ok(strategy.progress_to_next_phase(state, _done(4, 45.0)))
        assert state.current_set_data.weight == 50.0

    def test_rest_decays_and_rpe_escalates(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        config = _myo_config(mini_sets=ParameterRange(8), rpe=ParameterRange(8))
        state = _ok(strategy.initialize_execution(config, 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(16, 50.0)))
        assert state.rest_period_seconds == 20
        assert state.current_set_data.rpe == 8

        rests = []
        rpes = []
        for _ in range(6):
            state = _ok(strategy.progress_to_next_phase(state, _done(4)))
            rests.append(state.rest_period_seconds)
            rpes.append(state.current_set_data.rpe)

        assert rests == [18, 16, 14, 12, 10, 10]
        assert rpes == [9, 10, 10, 10, 10, 10]

    def test_completion_after_all_mini_sets(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(16)))
        for _ in range(3):
            state = _ok(strategy.progress_to_next_phase(state, _done(4)))

        assert state.is_completed is True
        assert state.mini_sets_completed == 3
        assert state.current_phase == 5
        assert state.rest_period_seconds is None

    def test_no_rest_before_activation(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        assert _ok(strategy.get_suggested_rest_period(state)) == 0

    def test_activation_below_minimum_is_hard_failure(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        error = _fail(strategy.validate_phase_completion(state, _done(10, 50.0)))
        assert isinstance(error, ValidationError)
        assert str(error) == "Activation set requires at least 15 reps, got 10"

    def test_low_activation_rpe_warns(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        assert _ok(strategy.validate_phase_completion(state, _done(15, 50.0, rpe=6)))
        assert "Activation set RPE seems low for effective myo-reps" in logger.events("warning")

    def test_high_mini_set_counts_warn(self, logger):
        strategy = MyoRepsStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_myo_config(), 50.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(15)))
        assert _ok(strategy.validate_phase_completion(state, _done(9)))
        assert "Mini-set rep count seems unusually high" in logger.events("warning")

    def test_custom_params(self, logger):
        params = MyoRepsParams(base_rest_seconds=30, rest_decay_seconds=5, min_rest_seconds=15)
        strategy = MyoRepsStrategy(params=params, logger=logger)
        assert [strategy.mini_set_rest(n) for n in range(5)] == [30, 25, 20, 15, 15]


# ===========================================================================
# mav.py
# ===========================================================================

class TestMav:
    """Stop on reps < 0.8 × first set, RPE 10, or the set ceiling."""

    def test_initial_state(self, logger):
        state = _ok(MavStrategy(logger=logger).initialize_execution(_mav_config(), 100.0))
        assert state.total_phases == 5
        assert state.sets_completed == 0
        assert state.total_volume_achieved == 0.0

    def test_open_range_uses_safety_ceiling(self, logger):
        config = _mav_config(sets=ParameterRange(3))
        state = _ok(MavStrategy(logger=logger).initialize_execution(config, 100.0))
        assert state.total_phases == MAV_SAFETY_SET_LIMIT

    def test_performance_decline_completes(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(), 100.0))

        state = _ok(strategy.progress_to_next_phase(state, _done(10, 100.0)))
        state = _ok(strategy.progress_to_next_phase(state, _done(9, 100.0)))
        assert state.is_completed is False
        assert state.performance_decline is False

        # 7 < 0.8 × 10
        state = _ok(strategy.progress_to_next_phase(state, _done(7, 100.0)))
        assert state.is_completed is True
        assert state.performance_decline is True
        assert state.sets_completed == 3
        assert state.total_volume_achieved == pytest.approx(2600.0)
        assert state.current_phase == 4
        assert state.rest_period_seconds is None

    def test_decline_measured_against_first_set(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(sets=ParameterRange(3, 10)), 100.0))
        # Each set is within 80% of the previous one, but 7 < 0.8 × 10 of the first
        for counts in (10, 9, 8):
            state = _ok(strategy.progress_to_next_phase(state, _done(counts)))
            assert state.is_completed is False
        state = _ok(strategy.progress_to_next_phase(state, _done(7)))
        assert state.performance_decline is True

    def test_rpe_ten_completes(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(10, rpe=10)))
        assert state.is_completed is True
        assert state.performance_decline is False
        assert state.sets_completed == 1

    def test_ceiling_completes_with_stable_performance(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(sets=ParameterRange(1, 2)), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(10)))
        assert state.is_completed is False
        state = _ok(strategy.progress_to_next_phase(state, _done(10)))
        assert state.is_completed is True
        assert state.performance_decline is False
        assert state.current_phase == 3

    def test_volume_is_running_sum(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(sets=ParameterRange(1, 4)), 60.0))
        volumes = []
        for counts, weight in ((10, 60.0), (10, 62.5), (9, 60.0)):
            state = _ok(strategy.progress_to_next_phase(state, _done(counts, weight)))
            volumes.append(state.total_volume_achieved)
        assert volumes == pytest.approx([600.0, 1225.0, 1765.0])
        assert volumes == sorted(volumes)

    def test_next_set_expects_ten_percent_decline(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(sets=ParameterRange(3, 10)), 100.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(10)))
        # floor(10 × 0.9) = 9
        assert state.current_set_data.counts == 9
        state = _ok(strategy.progress_to_next_phase(state, _done(9)))
        # floor(9.5 × 0.9) = 8
        assert state.current_set_data.counts == 8

    def test_expected_counts_floor_at_half_target(self, logger):
        strategy = MavStrategy(logger=logger)
        upcoming = strategy.next_mav_set(_mav_config(), 100.0, 5, [2, 2])
        # floor(2 × 0.9) = 1 < floor(10 × 0.5) = 5
        assert upcoming.expected_counts == 5

    @pytest.mark.parametrize(
        "sets_completed, rpe, expected",
        [
            (1, None, 90),
            (1, 7, 90),
            (1, 8, 105),
            (3, 9, 135),     # 90 + 15 + 30
            (6, 8, 135),     # 90 + 30 + 15
            (12, 9, 180),    # 90 + 60 + 30
            (15, 9, MAV_MAX_REST_SECONDS),
        ],
    )
    def test_rest_escalation(self, sets_completed, rpe, expected):
        assert MavStrategy().mav_rest(sets_completed, rpe) == expected

    def test_no_rest_before_first_set(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(), 100.0))
        assert _ok(strategy.get_suggested_rest_period(state)) == 0

    def test_low_counts_and_high_rpe_warn(self, logger):
        strategy = MavStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_mav_config(), 100.0))
        assert _ok(strategy.validate_phase_completion(state, _done(4, rpe=9)))
        warnings = logger.events("warning")
        assert "MAV set performance significantly below target" in warnings
        assert "MAV set approaching maximum RPE, execution may be nearing completion" in warnings


# ===========================================================================
# rest_pause.py
# ===========================================================================

class TestRestPause:
    """target_n = max(ceil(counts × m_n), 1), m = 1.0, 0.5, 0.3, 0.2, 0.15, 0.1…"""

    def test_initial_state(self, logger):
        state = _ok(RestPauseStrategy(logger=logger).initialize_execution(_rest_pause_config(), 80.0))
        assert state.total_phases == 3
        assert state.target_total_reps == 24
        assert state.next_set_data.expected_counts == 4

    def test_full_progression(self, logger):
        strategy = RestPauseStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_rest_pause_config(), 80.0))

        state = _ok(strategy.progress_to_next_phase(state, _done(8, 80.0)))
        assert state.current_phase == 2
        assert state.current_set_data.counts == 4
        assert state.rest_period_seconds == REST_PAUSE_SECONDS
        assert state.pauses_completed == 0
        assert state.next_set_data.expected_counts == 3  # ceil(8 × 0.3)

        state = _ok(strategy.progress_to_next_phase(state, _done(4)))
        assert state.pauses_completed == 1
        assert state.next_set_data is None

        state = _ok(strategy.progress_to_next_phase(state, _done(3)))
        assert state.is_completed is True
        assert state.pauses_completed == 2
        assert state.total_reps_achieved == 15
        assert state.current_phase == 4

    def test_segment_targets_use_tail_multiplier(self):
        strategy = RestPauseStrategy()
        config = _rest_pause_config(counts=ParameterRange(20), pauses=ParameterRange(8))
        targets = [strategy.segment_target(config, n) for n in range(8)]
        assert targets == [20, 10, 6, 4, 3, 2, 2, 2]

    def test_weak_main_set_stops_early(self, logger):
        strategy = RestPauseStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_rest_pause_config(), 80.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(2)))
        assert state.is_completed is True
        assert state.current_phase == 2
        assert state.pauses_completed == 0

    def test_rpe_ten_stops_early(self, logger):
        strategy = RestPauseStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_rest_pause_config(), 80.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(8, rpe=10)))
        assert state.is_completed is True

    def test_low_main_set_warns(self, logger):
        strategy = RestPauseStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_rest_pause_config(), 80.0))
        assert _ok(strategy.validate_phase_completion(state, _done(5)))
        assert "Main set rep count seems low for rest-pause training" in logger.events("warning")


# ===========================================================================
# pyramidal.py
# ===========================================================================

class TestPyramidal:
    """W(r) = base × (1 + 0.1 × (r_max − r) / (r_max − r_min)); rest by reps, +15s on the way back up"""

    @pytest.mark.parametrize(
        "start, end, mode, expected",
        [
            (12, 6, "ascending", (12, 10, 8, 6)),
            (6, 12, "ascending", (12, 10, 8, 6)),
            (12, 6, "descending", (6, 8, 10, 12)),
            (10, 6, "both", (10, 8, 6, 8, 10)),
            (12, 7, "ascending", (12, 10, 8)),
            (8, 8, "both", (8,)),
        ],
    )
    def test_sequence(self, start, end, mode, expected, logger):
        config = _pyramid_config(
            start_counts=ParameterRange(start), end_counts=ParameterRange(end), mode=mode
        )
        state = _ok(PyramidalStrategy(logger=logger).initialize_execution(config, 60.0))
        assert state.pyramid_sequence == expected
        assert state.total_phases == len(expected)
        assert state.current_set_data.counts == expected[0]

    def test_initial_state(self, logger):
        state = _ok(PyramidalStrategy(logger=logger).initialize_execution(_pyramid_config(), 60.0))
        assert state.current_set_data.weight == 60.0
        assert state.current_direction == "ascending"
        assert state.direction_switch_point is None
        assert state.rest_period_seconds is None
        assert state.next_set_data.weight == pytest.approx(62.0)
        assert state.next_set_data.expected_counts == 10

    def test_full_ascending_progression(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(), 60.0))

        state = _ok(strategy.progress_to_next_phase(state, _done(12, 60.0)))
        assert state.current_phase == 2
        assert state.current_set_data.weight == pytest.approx(62.0)
        assert state.current_set_data.counts == 10
        assert state.rest_period_seconds == 60

        state = _ok(strategy.progress_to_next_phase(state, _done(10, 62.0)))
        assert state.current_set_data.weight == pytest.approx(64.0)
        assert state.rest_period_seconds == 90

        state = _ok(strategy.progress_to_next_phase(state, _done(8, 64.0)))
        assert state.current_phase == 4
        assert state.current_set_data.weight == pytest.approx(66.0)
        assert state.current_set_data.counts == 6
        assert state.next_set_data is None
        assert state.is_completed is False

        state = _ok(strategy.progress_to_next_phase(state, _done(6, 66.0)))
        assert state.is_completed is True
        assert state.current_phase == 5
        assert state.rest_period_seconds is None

    def test_load_follows_actual_weight(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(), 60.0))
        state = _ok(strategy.progress_to_next_phase(state, _done(12)))
        # Planned 62, actually lifted 66 → base 63.87 → 68.13 → 68.0
        state = _ok(strategy.progress_to_next_phase(state, _done(10, 66.0)))
        assert state.current_set_data.weight == pytest.approx(68.0)

    def test_descending_starts_heavy_with_extra_rest(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(mode="descending"), 60.0))
        assert state.current_set_data.counts == 6
        assert state.current_set_data.weight == pytest.approx(66.0)
        assert state.current_direction == "descending"

        state = _ok(strategy.progress_to_next_phase(state, _done(6, 66.0)))
        assert state.current_set_data.counts == 8
        assert state.current_set_data.weight == pytest.approx(64.0)
        assert state.rest_period_seconds == 90 + 15

    def test_both_mode_switches_direction_after_lowest_set(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        config = _pyramid_config(start_counts=ParameterRange(10), mode="both")
        state = _ok(strategy.initialize_execution(config, 60.0))
        assert state.direction_switch_point == 2

        directions, rests = [state.current_direction], []
        while not state.is_completed:
            state = _ok(strategy.progress_to_next_phase(state, _done(state.current_set_data.counts)))
            if not state.is_completed:
                directions.append(state.current_direction)
                rests.append(state.rest_period_seconds)

        assert directions == ["ascending", "ascending", "ascending", "descending", "descending"]
        assert rests == [90, 90, 105, 75]

    def test_single_set_pyramid(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        config = _pyramid_config(start_counts=ParameterRange(8), end_counts=ParameterRange(8))
        state = _ok(strategy.initialize_execution(config, 60.0))
        assert state.next_set_data is None
        assert state.current_set_data.weight == 60.0
        state = _ok(strategy.progress_to_next_phase(state, _done(8)))
        assert state.is_completed is True

    def test_rpe_climbs_two_points_across_pyramid(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(rpe=ParameterRange(7)), 60.0))
        rpes = [state.current_set_data.rpe]
        for _ in range(3):
            state = _ok(strategy.progress_to_next_phase(state, _done(state.current_set_data.counts)))
            rpes.append(state.current_set_data.rpe)
        assert rpes == [7, 7, 8, 9]

    def test_absolute_weight_step(self, logger):
        params = PyramidalParams(weight_step=5.0, weight_step_type="absolute")
        strategy = PyramidalStrategy(params=params, logger=logger)
        config = _pyramid_config(end_counts=ParameterRange(8))
        state = _ok(strategy.initialize_execution(config, 60.0))
        assert state.next_set_data.weight == pytest.approx(62.5)
        state = _ok(strategy.progress_to_next_phase(state, _done(12, 60.0)))
        state = _ok(strategy.progress_to_next_phase(state, _done(10, 62.5)))
        assert state.current_set_data.weight == pytest.approx(65.0)

    def test_suggested_rest(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(), 60.0))
        assert _ok(strategy.get_suggested_rest_period(state)) == 0
        state = _ok(strategy.progress_to_next_phase(state, _done(12)))
        assert _ok(strategy.get_suggested_rest_period(state)) == 60

    def test_deviations_warn_without_failing(self, logger):
        strategy = PyramidalStrategy(logger=logger)
        state = _ok(strategy.initialize_execution(_pyramid_config(), 60.0))
        assert _ok(strategy.validate_phase_completion(state, _done(5, 80.0))) is True
        warnings = logger.events("warning")
        assert "Pyramid set rep count deviates significantly from target" in warnings
        assert "Pyramid set weight deviates significantly from expected" in warnings

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValueError, match="Invalid pyramid mode"):
            _pyramid_config(mode="sideways")

    def test_invalid_step_type_rejected(self):
        with pytest.raises(ValueError, match="weight_step_type"):
            PyramidalParams(weight_step_type="ratio")


# ===========================================================================
# registry.py
# ===========================================================================

class TestRegistry:
    def test_creates_each_protocol(self):
        assert isinstance(create_strategy("drop"), DropSetStrategy)
        assert isinstance(create_strategy("myo_reps"), MyoRepsStrategy)
        assert isinstance(create_strategy("mav"), MavStrategy)
        assert isinstance(create_strategy("rest_pause"), RestPauseStrategy)
        assert isinstance(create_strategy("pyramidal"), PyramidalStrategy)

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError, match="Unknown set type 'giant'"):
            create_strategy("giant")

    def test_explicit_params_win(self):
        params = DropSetParams(drop_fraction=0.7)
        assert create_strategy("drop", params=params).params is params

    def test_tunables_file_overrides(self, tmp_path):
        path = tmp_path / "tunables.yaml"
        path.write_text("mav:\n  decline_threshold: 0.9\n", encoding="utf-8")
        strategy = create_strategy("mav", tunables_path=path)
        assert strategy.params.decline_threshold == pytest.approx(0.9)


def test_default_logger_is_structlog():
    strategy = DropSetStrategy()
    with capture_logs() as logs:
        state = _ok(strategy.initialize_execution(_drop_config(), 100.0))
        _ok(strategy.validate_phase_completion(state, _done(20, 100.0)))

    events = {(entry["log_level"], entry["event"]) for entry in logs}
    assert ("info", "Drop set execution initialized") in events
    assert ("warning", "Unusually high rep count for drop set phase") in events
