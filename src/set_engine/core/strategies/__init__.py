"""
Execution strategies for set-engine.

Each strategy implements one advanced-set protocol against the shared
ExecutionStrategy contract.
"""

from .base import ExecutionStrategy
from .drop_set import DropSetStrategy
from .mav import MavStrategy
from .myo_reps import MyoRepsStrategy
from .pyramidal import PyramidalStrategy
from .registry import STRATEGY_REGISTRY, create_strategy
from .rest_pause import RestPauseStrategy

__all__ = [
    "ExecutionStrategy",
    "DropSetStrategy",
    "MyoRepsStrategy",
    "MavStrategy",
    "RestPauseStrategy",
    "PyramidalStrategy",
    "STRATEGY_REGISTRY",
    "create_strategy",
]
