"""Status command for CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from ccexperiment.cli.formatting import _experiment_table
from ccexperiment.cli.main import (
    ENDPOINT_CONTAINER_OPTION,
    ENDPOINT_PORT_OPTION,
    PASSWORD_OPTION,
    REQUEST_TIMEOUT_OPTION,
    URL_OPTION,
    USERNAME_OPTION,
    app,
    fail,
    load_experiment,
    settings_from_options,
)
from ccexperiment.core.exceptions import CCExperimentError


@app.command()
def status(
    experiment_id: str = typer.Argument(..., help="Id of the experiment."),
    url: str = URL_OPTION,
    username: str = USERNAME_OPTION,
    password: str = PASSWORD_OPTION,
    request_timeout: float = REQUEST_TIMEOUT_OPTION,
    endpoint_container: str | None = ENDPOINT_CONTAINER_OPTION,
    endpoint_port: int | None = ENDPOINT_PORT_OPTION,
) -> None:
    """Show the current status of an experiment."""
    settings = settings_from_options(url, username, password, request_timeout)
    try:
        experiment = load_experiment(
            experiment_id, settings, endpoint_container, endpoint_port
        )
        experiment.poll_status()
    except CCExperimentError as e:
        fail(e)

    console = Console(force_terminal=True)
    console.print(_experiment_table(experiment))
    if experiment.debug_info is not None:
        typer.echo(f"debugInfo: {experiment.debug_info}")
