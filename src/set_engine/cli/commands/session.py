"""Session command: run, and its interactive prompts."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...controller import AdvancedSetController, SetState
from ...core.errors import ValidationError
from ...core.models import ExecutionState, SetConfiguration, SetProgressionData
from ...core.strategies import STRATEGY_REGISTRY, ExecutionStrategy, create_strategy
from ...io.serializers import load_configuration_file
from .. import views
from ..app import DEFAULT_CONFIGURATIONS, TunablesOption, app


def _prompt_number(label: str, default: float | None, cast: type, allow_blank: bool = False):
    """
    Prompt until the user enters a valid number.

    Blank input returns ``default``; with ``allow_blank`` and no default it
    returns None.
    """
    hint = f" [{default:g}]" if default is not None else (" (optional)" if allow_blank else "")
    while True:
        raw = views.console.input(f"  {label}{hint}: ").strip()
        if not raw:
            if default is not None or allow_blank:
                return default
            views.print_error(f"{label} is required")
            continue
        try:
            return cast(raw)
        except ValueError:
            views.print_error(f"Invalid {label.lower()}: {raw}")


def _prompt_set(state: ExecutionState) -> SetProgressionData:
    """Ask for the reps, weight and RPE of the set just performed."""
    target = state.current_set_data
    while True:
        counts = _prompt_number("Reps", target.counts, int)
        if counts > 0:
            break
        views.print_error("Reps must be greater than 0")
    weight = _prompt_number("Weight", target.weight, float)
    rpe = _prompt_number("RPE", target.rpe, float, allow_blank=True)
    return SetProgressionData(counts=counts, weight=weight, rpe=rpe)


async def _prompt_valid_set(strategy: ExecutionStrategy, state: ExecutionState) -> SetProgressionData:
    """Prompt until the strategy accepts the entry."""
    while True:
        data = _prompt_set(state)
        validation = await strategy.validate_phase_completion(state, data)
        if validation.is_success:
            return data
        views.print_error(str(validation.error))
        views.print_info("Enter that set again")


async def _rest(controller: AdvancedSetController, auto_skip_rest: bool) -> None:
    seconds = controller.context.timer.total_seconds
    if auto_skip_rest:
        views.print_info(f"Skipping {seconds}s rest")
        controller.skip_rest()
        return

    choice = views.console.input(f"Rest {seconds}s. Enter to start the timer, 's' to skip: ").strip().lower()
    if choice == "s":
        controller.skip_rest()
        return

    unsubscribe = controller.subscribe(
        lambda snapshot: views.print_timer(snapshot.context.timer) if snapshot.context.timer.is_running else None
    )
    controller.start_rest_timer()
    try:
        await controller.wait_until(lambda snapshot: not snapshot.matches("resting"))
    finally:
        unsubscribe()
    views.console.print()
    views.print_success("Rest complete")


async def run_session(
    strategy: ExecutionStrategy,
    configuration: SetConfiguration,
    last_weight: float | None,
    auto_skip_rest: bool = False,
) -> AdvancedSetController:
    """
    Drive one execution interactively until it completes or fails.

    Returns:
        The controller in its final state
    """
    controller = AdvancedSetController(strategy)
    controller.initialize(configuration, last_weight)
    await controller.settle()

    try:
        while controller.state not in (SetState.COMPLETED, SetState.ERROR):
            if controller.state is SetState.READY:
                state = controller.context.execution_state
                views.console.print()
                views.print_current_target(state)
                controller.complete_set(await _prompt_valid_set(strategy, state))
                await controller.settle()
            elif controller.matches("resting"):
                await _rest(controller, auto_skip_rest)
            elif controller.state.is_pending:
                await controller.settle()
            else:
                break
    finally:
        controller.close()

    return controller


@app.command()
def run(
    protocol: Annotated[
        str,
        typer.Argument(help="Set type: drop, myo_reps, mav, rest_pause, pyramidal"),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML set configuration (default: built-in example)"),
    ] = None,
    last_weight: Annotated[
        Optional[float],
        typer.Option("--last-weight", "-w", help="Last known working weight in kg"),
    ] = None,
    auto_skip_rest: Annotated[
        bool,
        typer.Option("--auto-skip-rest", help="Skip every rest period without prompting"),
    ] = False,
    tunables_path: TunablesOption = None,
) -> None:
    """
    Run an advanced set interactively, one phase at a time.

    After each set, enter the reps, weight and RPE you achieved (Enter keeps
    the prescribed value).  The next prescription adapts to what you did.
    """
    if protocol not in STRATEGY_REGISTRY:
        views.print_error(f"Unknown protocol '{protocol}'. Valid: {', '.join(STRATEGY_REGISTRY)}")
        raise typer.Exit(1)

    try:
        configuration = (
            load_configuration_file(config_path)
            if config_path is not None
            else DEFAULT_CONFIGURATIONS[protocol]
        )
        strategy = create_strategy(protocol, tunables_path=tunables_path)
    except (ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if configuration.set_type != protocol:
        views.print_error(
            f"Configuration is for '{configuration.set_type}', not '{protocol}'"
        )
        raise typer.Exit(1)

    views.console.print(views.format_configuration_table(configuration))
    controller = asyncio.run(run_session(strategy, configuration, last_weight, auto_skip_rest))

    context = controller.context
    views.console.print()
    if controller.state is SetState.ERROR:
        views.print_completed_sets(context.completed_sets)
        views.print_error(context.error or "Execution failed")
        raise typer.Exit(1)

    views.print_completed_sets(context.completed_sets)
    if context.execution_state is not None:
        views.print_state(context.execution_state)
    views.print_success(f"{strategy.display_name} completed")
