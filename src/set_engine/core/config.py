"""
Configuration constants for the advanced set execution engine.

All adjustable heuristics are centralized here for easy tuning. The values
are reference defaults; user overrides are merged from YAML by
engine/config_loader.py and surfaced through the per-protocol params
dataclasses at the bottom of this module.
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# SHARED BOUNDS
# =============================================================================

RPE_MIN: Final[float] = 1.0  # Lowest valid rate of perceived exertion
RPE_MAX: Final[float] = 10.0  # True failure
WEIGHT_INCREMENT: Final[float] = 0.5  # Smallest practical plate step

# =============================================================================
# DROP SETS
# =============================================================================

DROP_FRACTION: Final[float] = 0.80  # Next drop = 80% of the weight actually lifted
DROP_MINIMUM_WEIGHT: Final[float] = 5.0  # Absolute floor for any drop
DROP_REST_SECONDS: Final[int] = 15  # Rest between drops while drops remain
DROP_REPS_REDUCTION_PER_DROP: Final[float] = 0.5  # Expected reps lost per drop

# =============================================================================
# MYO-REPS
# =============================================================================

MYO_MINI_SET_FRACTION: Final[float] = 0.25  # Mini-set target as fraction of activation reps
MYO_MINI_SET_FLOOR: Final[int] = 3  # Minimum mini-set target
MYO_MINI_SET_CAP: Final[int] = 5  # Cap used when mini_set_counts has no max
MYO_BASE_REST_SECONDS: Final[int] = 20
MYO_REST_DECAY_SECONDS: Final[int] = 2  # Removed per completed mini-set
MYO_MIN_REST_SECONDS: Final[int] = 10
MYO_ACTIVATION_RPE_WARNING: Final[float] = 7.0  # Below this the activation set is too easy

# =============================================================================
# MAV (MAXIMUM ADAPTIVE VOLUME)
# =============================================================================

MAV_SAFETY_SET_LIMIT: Final[int] = 20  # Ceiling when the set range is open-ended
MAV_DECLINE_THRESHOLD: Final[float] = 0.80  # Stop below 80% of the first set's reps
MAV_MIN_REPS_FRACTION: Final[float] = 0.5  # Warn below 50% of the target
MAV_EXPECTED_DECLINE: Final[float] = 0.9  # Next target = 90% of recent average
MAV_BASE_REST_SECONDS: Final[int] = 90
MAV_MAX_REST_SECONDS: Final[int] = 180
MAV_REST_STEP_SECONDS: Final[int] = 15  # Added every MAV_REST_STEP_SETS sets
MAV_REST_STEP_SETS: Final[int] = 3
MAV_HIGH_RPE: Final[float] = 9.0  # +30 s rest, and advisory warning
MAV_MODERATE_RPE: Final[float] = 8.0  # +15 s rest

# =============================================================================
# REST-PAUSE
# =============================================================================

REST_PAUSE_SECONDS: Final[int] = 12
REST_PAUSE_FATIGUE_MULTIPLIERS: Final[tuple[float, ...]] = (1.0, 0.5, 0.3, 0.2, 0.15)
REST_PAUSE_TAIL_MULTIPLIER: Final[float] = 0.1  # Beyond the table above
REST_PAUSE_MAIN_SET_MIN_REPS: Final[int] = 3
REST_PAUSE_SEGMENT_MIN_REPS: Final[int] = 1
REST_PAUSE_LOW_MAIN_SET_FRACTION: Final[float] = 0.7
REST_PAUSE_HIGH_SEGMENT_FRACTION: Final[float] = 1.5

# =============================================================================
# PYRAMIDAL
# =============================================================================

PYRAMID_WEIGHT_STEP: Final[float] = 0.10  # Heaviest set is 10% over the lightest
PYRAMID_WEIGHT_STEP_TYPE: Final[str] = "percentage"  # or "absolute" (kg)
PYRAMID_LOW_REPS: Final[int] = 5  # At or below: heavy set
PYRAMID_MODERATE_REPS: Final[int] = 8
PYRAMID_HEAVY_REST_SECONDS: Final[int] = 120
PYRAMID_MODERATE_REST_SECONDS: Final[int] = 90
PYRAMID_LIGHT_REST_SECONDS: Final[int] = 60
PYRAMID_DESCENDING_EXTRA_REST_SECONDS: Final[int] = 15
PYRAMID_REPS_DEVIATION_FRACTION: Final[float] = 0.5  # Warn beyond ±50% of the target
PYRAMID_WEIGHT_DEVIATION_FRACTION: Final[float] = 0.2

# =============================================================================
# CONTROLLER
# =============================================================================

TIMER_TICK_SECONDS: Final[float] = 1.0


# =============================================================================
# PER-PROTOCOL PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class DropSetParams:
    """Tunables for drop-set execution."""

    drop_fraction: float = DROP_FRACTION
    minimum_weight: float = DROP_MINIMUM_WEIGHT
    weight_increment: float = WEIGHT_INCREMENT
    rest_between_drops_seconds: int = DROP_REST_SECONDS
    reps_reduction_per_drop: float = DROP_REPS_REDUCTION_PER_DROP

    def __post_init__(self) -> None:
        if not 0 < self.drop_fraction < 1:
            raise ValueError("drop_fraction must be between 0 and 1")
        if self.minimum_weight < 0:
            raise ValueError("minimum_weight must be non-negative")
        if self.weight_increment <= 0:
            raise ValueError("weight_increment must be positive")
        if self.rest_between_drops_seconds < 0:
            raise ValueError("rest_between_drops_seconds must be non-negative")


@dataclass(frozen=True)
class MyoRepsParams:
    """Tunables for myo-reps execution."""

    mini_set_fraction: float = MYO_MINI_SET_FRACTION
    mini_set_floor: int = MYO_MINI_SET_FLOOR
    mini_set_cap: int = MYO_MINI_SET_CAP
    base_rest_seconds: int = MYO_BASE_REST_SECONDS
    rest_decay_seconds: int = MYO_REST_DECAY_SECONDS
    min_rest_seconds: int = MYO_MIN_REST_SECONDS
    activation_rpe_warning: float = MYO_ACTIVATION_RPE_WARNING
    weight_increment: float = WEIGHT_INCREMENT

    def __post_init__(self) -> None:
        if self.mini_set_fraction <= 0:
            raise ValueError("mini_set_fraction must be positive")
        if self.mini_set_floor < 1:
            raise ValueError("mini_set_floor must be at least 1")
        if self.mini_set_cap < 1:
            raise ValueError("mini_set_cap must be at least 1")
        if self.min_rest_seconds < 0 or self.base_rest_seconds < self.min_rest_seconds:
            raise ValueError("base_rest_seconds must be >= min_rest_seconds >= 0")


@dataclass(frozen=True)
class MavParams:
    """Tunables for MAV execution."""

    safety_set_limit: int = MAV_SAFETY_SET_LIMIT
    decline_threshold: float = MAV_DECLINE_THRESHOLD
    min_reps_fraction: float = MAV_MIN_REPS_FRACTION
    expected_decline: float = MAV_EXPECTED_DECLINE
    base_rest_seconds: int = MAV_BASE_REST_SECONDS
    max_rest_seconds: int = MAV_MAX_REST_SECONDS
    rest_step_seconds: int = MAV_REST_STEP_SECONDS
    rest_step_sets: int = MAV_REST_STEP_SETS
    high_rpe: float = MAV_HIGH_RPE
    moderate_rpe: float = MAV_MODERATE_RPE
    weight_increment: float = WEIGHT_INCREMENT

    def __post_init__(self) -> None:
        if self.safety_set_limit < 1:
            raise ValueError("safety_set_limit must be at least 1")
        if not 0 < self.decline_threshold <= 1:
            raise ValueError("decline_threshold must be in (0, 1]")
        if self.rest_step_sets < 1:
            raise ValueError("rest_step_sets must be at least 1")
        if self.max_rest_seconds < self.base_rest_seconds:
            raise ValueError("max_rest_seconds must be >= base_rest_seconds")


@dataclass(frozen=True)
class RestPauseParams:
    """Tunables for rest-pause execution."""

    pause_seconds: int = REST_PAUSE_SECONDS
    fatigue_multipliers: tuple[float, ...] = REST_PAUSE_FATIGUE_MULTIPLIERS
    tail_multiplier: float = REST_PAUSE_TAIL_MULTIPLIER
    main_set_min_reps: int = REST_PAUSE_MAIN_SET_MIN_REPS
    segment_min_reps: int = REST_PAUSE_SEGMENT_MIN_REPS
    low_main_set_fraction: float = REST_PAUSE_LOW_MAIN_SET_FRACTION
    high_segment_fraction: float = REST_PAUSE_HIGH_SEGMENT_FRACTION
    weight_increment: float = WEIGHT_INCREMENT

    def __post_init__(self) -> None:
        if self.pause_seconds < 0:
            raise ValueError("pause_seconds must be non-negative")
        if not self.fatigue_multipliers:
            raise ValueError("fatigue_multipliers must not be empty")


@dataclass(frozen=True)
class PyramidalParams:
    """Tunables for pyramidal execution."""

    weight_step: float = PYRAMID_WEIGHT_STEP
    weight_step_type: str = PYRAMID_WEIGHT_STEP_TYPE
    low_reps: int = PYRAMID_LOW_REPS
    moderate_reps: int = PYRAMID_MODERATE_REPS
    heavy_rest_seconds: int = PYRAMID_HEAVY_REST_SECONDS
    moderate_rest_seconds: int = PYRAMID_MODERATE_REST_SECONDS
    light_rest_seconds: int = PYRAMID_LIGHT_REST_SECONDS
    descending_extra_rest_seconds: int = PYRAMID_DESCENDING_EXTRA_REST_SECONDS
    reps_deviation_fraction: float = PYRAMID_REPS_DEVIATION_FRACTION
    weight_deviation_fraction: float = PYRAMID_WEIGHT_DEVIATION_FRACTION
    weight_increment: float = WEIGHT_INCREMENT

    def __post_init__(self) -> None:
        if self.weight_step_type not in ("percentage", "absolute"):
            raise ValueError(f"Invalid weight_step_type: {self.weight_step_type}")
        if self.weight_step < 0:
            raise ValueError("weight_step must be non-negative")
        if self.low_reps > self.moderate_reps:
            raise ValueError("low_reps must be <= moderate_reps")
        if min(
            self.heavy_rest_seconds,
            self.moderate_rest_seconds,
            self.light_rest_seconds,
            self.descending_extra_rest_seconds,
        ) < 0:
            raise ValueError("rest seconds must be non-negative")
        if self.weight_increment <= 0:
            raise ValueError("weight_increment must be positive")
