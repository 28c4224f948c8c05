"""
Strategy registry.

All supported protocols are registered here.  Use create_strategy() to build
an ExecutionStrategy for a set type string; tunables are read from the
bundled tunables.yaml merged with ``~/.set-engine/tunables.yaml``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..engine.config_loader import load_strategy_params
from ..log import EngineLogger
from .base import ExecutionStrategy
from .drop_set import DropSetStrategy
from .mav import MavStrategy
from .myo_reps import MyoRepsStrategy
from .pyramidal import PyramidalStrategy
from .rest_pause import RestPauseStrategy

STRATEGY_REGISTRY: dict[str, type[ExecutionStrategy]] = {
    cls.set_type: cls
    for cls in (DropSetStrategy, MyoRepsStrategy, MavStrategy, RestPauseStrategy, PyramidalStrategy)
}


def create_strategy(
    set_type: str,
    params: Any = None,
    logger: EngineLogger | None = None,
    tunables_path: Path | None = None,
) -> ExecutionStrategy:
    """
    Return a strategy instance for the given set type.

    Args:
        set_type: One of "drop", "myo_reps", "mav", "rest_pause", "pyramidal"
        params: Explicit params dataclass; skips YAML loading when given
        logger: Logger injected into the strategy
        tunables_path: Extra YAML file merged over the bundled and user tunables

    Raises:
        ValueError: If set_type is not in the registry, or the tunables are invalid
    """
    if set_type not in STRATEGY_REGISTRY:
        valid = ", ".join(STRATEGY_REGISTRY)
        raise ValueError(f"Unknown set type '{set_type}'. Valid types: {valid}")
    if params is None:
        params = load_strategy_params(tunables_path)[set_type]
    return STRATEGY_REGISTRY[set_type](params=params, logger=logger)
