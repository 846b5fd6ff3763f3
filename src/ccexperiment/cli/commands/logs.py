"""Logs command for CLI."""

from __future__ import annotations

from enum import Enum

import typer

from ccexperiment.cli.main import (
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


class Stream(str, Enum):
    stdout = "stdout"
    stderr = "stderr"


@app.command()
def logs(
    experiment_id: str = typer.Argument(..., help="Id of the experiment."),
    stream: Stream = typer.Option(Stream.stdout, "--stream", "-s", help="Stream to print."),
    url: str = URL_OPTION,
    username: str = USERNAME_OPTION,
    password: str = PASSWORD_OPTION,
    request_timeout: float = REQUEST_TIMEOUT_OPTION,
) -> None:
    """Print the stdout or stderr of an experiment."""
    settings = settings_from_options(url, username, password, request_timeout)
    try:
        experiment = load_experiment(experiment_id, settings)
        text = experiment.read_stream(stream.value)
    except CCExperimentError as e:
        fail(e)
    typer.echo(text, nl=not text.endswith("\n"))
