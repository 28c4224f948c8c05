"""Shared Typer app object, shared option types, and default configurations."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.log import configure_logging
from ..core.models import (
    DropSetConfiguration,
    MavConfiguration,
    MyoRepsConfiguration,
    ParameterRange,
    PyramidalConfiguration,
    RestPauseConfiguration,
    SetConfiguration,
)

# Used by `run` when no --config file is given
DEFAULT_CONFIGURATIONS: dict[str, SetConfiguration] = {
    "drop": DropSetConfiguration(
        start_counts=ParameterRange(8, 12),
        drops=ParameterRange(2),
        rpe=ParameterRange(8, 10),
    ),
    "myo_reps": MyoRepsConfiguration(
        activation_counts=ParameterRange(12, 15),
        mini_sets=ParameterRange(3),
        mini_set_counts=ParameterRange(3, 5),
        rpe=ParameterRange(8, 9),
    ),
    "mav": MavConfiguration(
        sets=ParameterRange(3, 6),
        counts=ParameterRange(8, 10),
        rpe=ParameterRange(8),
    ),
    "rest_pause": RestPauseConfiguration(
        counts=ParameterRange(8),
        pauses=ParameterRange(2),
        rpe=ParameterRange(9),
    ),
    "pyramidal": PyramidalConfiguration(
        start_counts=ParameterRange(12),
        end_counts=ParameterRange(6),
        step=ParameterRange(2),
        mode="ascending",
        rpe=ParameterRange(7),
    ),
}

# Shared --tunables option type used across commands
TunablesOption = Annotated[
    Optional[Path],
    typer.Option(
        "--tunables",
        "-t",
        help="Extra tunables YAML merged over the bundled and ~/.set-engine defaults",
    ),
]

app = typer.Typer(
    name="set-engine",
    help="Run drop sets, myo-reps, MAV, rest-pause and pyramidal sets one phase at a time.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    log_level: Annotated[
        str,
        typer.Option("--log-level", "-l", help="Log level: DEBUG, INFO, WARNING, ERROR"),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines on stderr"),
    ] = False,
) -> None:
    """
    Advanced set execution engine.
    """
    try:
        configure_logging(log_level, json=json_logs)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e
