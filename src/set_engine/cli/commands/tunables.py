"""Configuration commands: defaults, check-config."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.engine.config_loader import load_strategy_params
from ...core.errors import ValidationError
from ...core.strategies import create_strategy
from ...io.serializers import load_configuration_file
from .. import views
from ..app import TunablesOption, app


@app.command()
def defaults(tunables_path: TunablesOption = None) -> None:
    """
    Show the effective tunables after YAML overrides are merged.
    """
    try:
        params = load_strategy_params(tunables_path)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.console.print(views.format_tunables_table(params))


@app.command("check-config")
def check_config(
    config_path: Annotated[
        Path,
        typer.Argument(help="YAML set configuration to validate"),
    ],
    last_weight: Annotated[
        Optional[float],
        typer.Option("--last-weight", "-w", help="Last known working weight in kg"),
    ] = None,
    tunables_path: TunablesOption = None,
) -> None:
    """
    Validate a set configuration and show its initial execution state.
    """
    try:
        configuration = load_configuration_file(config_path)
        strategy = create_strategy(configuration.set_type, tunables_path=tunables_path)
    except (ValidationError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.console.print(views.format_configuration_table(configuration))

    result = asyncio.run(strategy.initialize_execution(configuration, last_weight))
    if result.is_failure:
        views.print_error(str(result.error))
        raise typer.Exit(1)

    views.print_state(result.value)
    views.print_success("Configuration is valid")
