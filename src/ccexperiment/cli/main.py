"""CLI commands for ccexperiment."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from ccexperiment.config import (
    DEFAULT_SSH_IMAGE,
    AgencySettings,
    TransferSettings,
    parse_port_range,
)
from ccexperiment.core.exceptions import CCExperimentError, TransportError


if TYPE_CHECKING:
    from ccexperiment.core.ports import AgencyPort, SchedulerPort
    from ccexperiment.core.process_runner import ExternalProcessRunner
    from ccexperiment.core.services import Experiment
    from ccexperiment.core.transfer import TransferEndpoint


logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ccx",
    help="Submit and supervise Curious Containers experiments.",
    no_args_is_help=True,
)

URL_OPTION = typer.Option(
    ..., "--agency-url", envvar="CC_AGENCY_URL", help="Base URL of the cc-agency."
)
USERNAME_OPTION = typer.Option(
    "", "--agency-user", envvar="CC_AGENCY_USERNAME", help="Agency user name."
)
PASSWORD_OPTION = typer.Option(
    "",
    "--agency-password",
    envvar="CC_AGENCY_PASSWORD",
    help="Agency password.",
    show_default=False,
)
REQUEST_TIMEOUT_OPTION = typer.Option(
    30.0,
    "--request-timeout",
    envvar="CC_AGENCY_TIMEOUT",
    min=0.1,
    help="Seconds before a single agency request is abandoned.",
)
ENDPOINT_CONTAINER_OPTION = typer.Option(
    None,
    "--endpoint-container",
    help="Id of the transfer endpoint container to remove once the experiment ends.",
)
ENDPOINT_PORT_OPTION = typer.Option(
    None, "--endpoint-port", help="Port leased by that transfer endpoint container."
)


@app.callback()
def configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging on stderr."
    ),
) -> None:
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def create_agency(settings: AgencySettings) -> AgencyPort:
    """Build the agency transport used by CLI commands."""
    from ccexperiment.adapters.agency import RequestsAgencyClient

    return RequestsAgencyClient(settings.access, timeout=settings.request_timeout)


def create_runner() -> ExternalProcessRunner:
    """Build the container command runner used by CLI commands."""
    from ccexperiment.adapters.process import SubprocessExecutor
    from ccexperiment.core.process_runner import ExternalProcessRunner

    return ExternalProcessRunner(SubprocessExecutor())


def create_scheduler() -> SchedulerPort:
    from ccexperiment.adapters.scheduler import ThreadingTimerScheduler

    return ThreadingTimerScheduler()


def fail(error: CCExperimentError) -> NoReturn:
    """Report a library error with its recovery hint and exit with status 1."""
    typer.echo(f"Error: {error}", err=True)
    if error.recovery_hint:
        typer.echo(f"Hint: {error.recovery_hint}", err=True)
    raise typer.Exit(1)


def settings_from_options(
    url: str, username: str, password: str, request_timeout: float
) -> AgencySettings:
    try:
        return AgencySettings(url, username, password, request_timeout)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def attach_endpoint(
    container_id: str | None, port: int | None
) -> TransferEndpoint | None:
    """Rebuild a transfer endpoint from CLI options, if both were given."""
    from ccexperiment.core.port_pool import PortPool
    from ccexperiment.core.transfer import TransferEndpoint

    if container_id is None and port is None:
        return None
    if container_id is None or port is None:
        typer.echo(
            "Error: --endpoint-container and --endpoint-port must be used together.",
            err=True,
        )
        raise typer.Exit(1)
    return TransferEndpoint.attach(container_id, port, PortPool(), create_runner())


def load_experiment(
    experiment_id: str,
    settings: AgencySettings,
    endpoint_container: str | None = None,
    endpoint_port: int | None = None,
) -> Experiment:
    """Rebuild a submitted experiment from CLI options."""
    from ccexperiment.core.services import Experiment

    endpoint = attach_endpoint(endpoint_container, endpoint_port)
    return Experiment.existing(
        settings.access, experiment_id, create_agency(settings), endpoint=endpoint
    )


def watch_experiment(experiment: Experiment, interval: float) -> None:
    """Poll until the experiment reaches a terminal status, printing changes."""
    last = None
    while not experiment.is_terminal:
        try:
            status = experiment.poll_status()
        except TransportError as e:
            logger.warning("Status poll failed, retrying: %s", e)
        else:
            if status is not last:
                typer.echo(f"{experiment.experiment_id}: {status.value}")
                last = status
        if not experiment.is_terminal:
            time.sleep(interval)


@app.command()
def submit(
    shared_dir: Path = typer.Option(
        ...,
        "--shared-dir",
        help="Host directory shared with the experiment through the SSH endpoint.",
    ),
    script: str = typer.Option(
        ..., "--script", help="Script file relative to the shared directory."
    ),
    dataset: str = typer.Option(
        ..., "--dataset", help="Dataset file relative to the shared directory."
    ),
    output: str = typer.Option(
        ".", "--output", help="Output directory relative to the shared directory."
    ),
    host: str = typer.Option(
        ..., "--host", help="Host name or IP under which the agency reaches this machine."
    ),
    command: str = typer.Option("python3", "--command", help="Base command to run."),
    image: str = typer.Option(..., "--image", help="Container image of the experiment."),
    ram: int = typer.Option(256, "--ram", help="Memory in MB."),
    timeout: int = typer.Option(
        0,
        "--timeout",
        help="Minutes before the experiment is cancelled (0 disables; needs --watch).",
    ),
    gpus: int = typer.Option(0, "--gpus", help="Number of GPUs to request."),
    gpu_vram: int = typer.Option(256, "--gpu-vram", help="Minimum VRAM per GPU in MB."),
    port_range: str = typer.Option(
        "10410-10439", "--port-range", help="Ports available to SSH endpoints (FIRST-LAST)."
    ),
    ssh_image: str = typer.Option(
        DEFAULT_SSH_IMAGE, "--ssh-image", help="Image of the SSH endpoint container."
    ),
    watch: bool = typer.Option(
        True, "--watch/--no-watch", help="Poll until the experiment finishes."
    ),
    interval: float = typer.Option(10.0, "--interval", help="Seconds between polls."),
    url: str = URL_OPTION,
    username: str = USERNAME_OPTION,
    password: str = PASSWORD_OPTION,
    request_timeout: float = REQUEST_TIMEOUT_OPTION,
) -> None:
    """Submit an experiment with a script, a dataset and an output directory."""
    from ccexperiment.core.factories import with_default_io
    from ccexperiment.core.port_pool import PortPool
    from ccexperiment.core.services import Experiment

    # the timeout runs on a timer thread that dies with this process
    if timeout > 0 and not watch:
        typer.echo("Error: --timeout requires --watch.", err=True)
        raise typer.Exit(1)

    settings = settings_from_options(url, username, password, request_timeout)
    access = settings.access
    try:
        pool = PortPool(*parse_port_range(port_range))
        experiment = Experiment(
            access,
            command,
            image,
            ram,
            create_agency(settings),
            timeout=timeout,
            scheduler=create_scheduler(),
        )
        if gpus > 0:
            experiment.add_gpu(gpu_vram, gpus)
        endpoint = with_default_io(
            experiment,
            pool,
            create_runner(),
            shared_directory=str(shared_dir.resolve()),
            script_file=script,
            dataset_file=dataset,
            output_dir=output,
            host=host,
            settings=TransferSettings(image=ssh_image),
        )
        experiment_id = experiment.submit()
    except CCExperimentError as e:
        fail(e)

    typer.echo(f"Submitted experiment {experiment_id}")
    if not watch:
        typer.echo(
            f"Transfer endpoint {endpoint.container_id} is serving port {endpoint.port}."
        )
        typer.echo(
            "Remove it when done with: ccx status "
            f"{experiment_id} --endpoint-container {endpoint.container_id} "
            f"--endpoint-port {endpoint.port}"
        )
        return

    try:
        watch_experiment(experiment, interval)
        typer.echo("stdout:\n" + experiment.stdout())
        typer.echo("stderr:\n" + experiment.stderr())
    except KeyboardInterrupt:
        typer.echo(f"Interrupted, cancelling experiment {experiment_id}", err=True)
        try:
            experiment.cancel()
        except CCExperimentError as e:
            fail(e)
        raise typer.Exit(130) from None
    except CCExperimentError as e:
        fail(e)
    if experiment.debug_info is not None:
        typer.echo(f"debugInfo: {experiment.debug_info}")


@app.command()
def cancel(
    experiment_id: str = typer.Argument(..., help="Id of the experiment to cancel."),
    url: str = URL_OPTION,
    username: str = USERNAME_OPTION,
    password: str = PASSWORD_OPTION,
    request_timeout: float = REQUEST_TIMEOUT_OPTION,
    endpoint_container: str | None = ENDPOINT_CONTAINER_OPTION,
    endpoint_port: int | None = ENDPOINT_PORT_OPTION,
) -> None:
    """Cancel a running experiment."""
    settings = settings_from_options(url, username, password, request_timeout)
    try:
        experiment = load_experiment(
            experiment_id, settings, endpoint_container, endpoint_port
        )
        cancelled = experiment.cancel()
    except CCExperimentError as e:
        fail(e)

    if not cancelled:
        typer.echo(f"Experiment {experiment_id} was not cancelled.", err=True)
        raise typer.Exit(1)
    typer.echo(f"Cancelled experiment {experiment_id}")


def main() -> None:
    """Entry point for the CLI."""
    app()
