"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of configurations, execution states,
completed sets and tunables.
"""

import dataclasses
from typing import Any

from rich.console import Console
from rich.table import Table

from ..controller.states import TimerState
from ..core.models import (
    DropSetExecutionState,
    ExecutionState,
    MavExecutionState,
    MyoRepsExecutionState,
    PyramidalExecutionState,
    RestPauseExecutionState,
    SetConfiguration,
    SetProgressionData,
)

console = Console()


def _fmt_weight(weight: float | None) -> str:
    if weight is None:
        return "-"
    return f"{weight:g} kg"


def _fmt_rpe(rpe: float | None) -> str:
    return f"{rpe:g}" if rpe is not None else "-"


def format_configuration_table(configuration: SetConfiguration) -> Table:
    """
    Create a Rich table listing the planned ranges of a configuration.

    Args:
        configuration: Configuration to display

    Returns:
        Rich Table object
    """
    table = Table(title=f"Configuration ({configuration.set_type})")
    table.add_column("Parameter", style="cyan")
    table.add_column("Range", justify="right", style="bold")
    table.add_column("Direction", style="dim")

    for field in dataclasses.fields(configuration):
        value = getattr(configuration, field.name)
        if value is None:
            continue
        if isinstance(value, str):
            table.add_row(field.name, value, "")
        else:
            table.add_row(field.name, str(value), value.direction)

    return table


def format_state_table(state: ExecutionState) -> Table:
    """
    Create a Rich table summarizing an execution state.

    Args:
        state: Execution state to display

    Returns:
        Rich Table object
    """
    table = Table(title="Execution State", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")

    phase = "done" if state.is_completed else f"{state.current_phase} / {state.total_phases}"
    table.add_row("Phase", phase)
    if not state.is_completed:
        table.add_row("Remaining", str(state.remaining_phases))
    table.add_row("Target weight", _fmt_weight(state.current_set_data.weight))
    table.add_row("Target reps", str(state.current_set_data.counts))
    table.add_row("Target RPE", _fmt_rpe(state.current_set_data.rpe))
    if state.next_set_data is not None:
        nxt = state.next_set_data
        table.add_row(
            "Next",
            f"{nxt.expected_counts} reps @ {_fmt_weight(nxt.weight)}"
            + (f", RPE {nxt.suggested_rpe:g}" if nxt.suggested_rpe is not None else ""),
        )
    table.add_row("Rest before", f"{state.rest_period_seconds}s" if state.needs_rest else "-")

    if isinstance(state, MyoRepsExecutionState):
        table.add_row("Activation reps", str(state.activation_reps) if state.activation_reps else "-")
        table.add_row("Mini-sets done", str(state.mini_sets_completed))
    elif isinstance(state, MavExecutionState):
        table.add_row("Sets done", str(state.sets_completed))
        table.add_row("Volume", f"{state.total_volume_achieved:g}")
        table.add_row("Performance decline", "yes" if state.performance_decline else "no")
    elif isinstance(state, RestPauseExecutionState):
        table.add_row("Total reps", f"{state.total_reps_achieved} / {state.target_total_reps}")
    elif isinstance(state, DropSetExecutionState):
        table.add_row("Drops done", str(state.drops_completed))
    elif isinstance(state, PyramidalExecutionState):
        table.add_row("Pyramid", " → ".join(str(reps) for reps in state.pyramid_sequence))
        table.add_row("Direction", state.current_direction)

    return table


def print_state(state: ExecutionState) -> None:
    console.print(format_state_table(state))


def print_current_target(state: ExecutionState) -> None:
    """Print the one-line prescription for the set about to start."""
    target = state.current_set_data
    line = (
        f"[bold]Phase {state.current_phase}/{state.total_phases}[/bold]: "
        f"[cyan]{target.counts} reps[/cyan] @ [cyan]{_fmt_weight(target.weight)}[/cyan]"
    )
    if target.rpe is not None:
        line += f"  (RPE {target.rpe:g})"
    console.print(line)


def format_completed_sets_table(sets: tuple[SetProgressionData, ...] | list[SetProgressionData]) -> Table:
    """
    Create a Rich table of the sets completed so far.

    Args:
        sets: Completed sets in the order they were performed

    Returns:
        Rich Table object
    """
    table = Table(title="Completed Sets")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("Reps", justify="right", style="bold")
    table.add_column("Weight", justify="right")
    table.add_column("RPE", justify="right")
    table.add_column("Notes", style="dim")

    for i, s in enumerate(sets, 1):
        table.add_row(str(i), str(s.counts), _fmt_weight(s.weight), _fmt_rpe(s.rpe), s.notes or "")

    return table


def print_completed_sets(sets: tuple[SetProgressionData, ...] | list[SetProgressionData]) -> None:
    """
    Print the completed-set log to console.

    Args:
        sets: Completed sets to display
    """
    if not sets:
        console.print("[yellow]No sets completed.[/yellow]")
        return

    console.print(format_completed_sets_table(sets))
    total_reps = sum(s.counts for s in sets)
    console.print(f"Total reps: [bold]{total_reps}[/bold]")


def format_tunables_table(params: dict[str, Any]) -> Table:
    """
    Create a Rich table of effective tunables, one row per key.

    Args:
        params: Mapping of set type to params dataclass

    Returns:
        Rich Table object
    """
    table = Table(title="Effective Tunables")
    table.add_column("Protocol", style="magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right", style="bold")

    for set_type, section in params.items():
        for i, field in enumerate(dataclasses.fields(section)):
            value = getattr(section, field.name)
            if isinstance(value, tuple):
                value = ", ".join(f"{v:g}" for v in value)
            table.add_row(set_type if i == 0 else "", field.name, str(value))

    return table


def print_timer(timer: TimerState) -> None:
    """Overwrite the current line with the rest countdown."""
    console.print(f"  Rest: {timer.remaining_seconds:>3}s / {timer.total_seconds}s", end="\r")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
