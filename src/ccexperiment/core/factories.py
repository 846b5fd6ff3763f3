"""Ready-made wiring for the common script + dataset + output directory layout."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ccexperiment.core.exceptions import PreconditionViolatedError
from ccexperiment.core.models import Input, Output
from ccexperiment.core.transfer import TransferEndpoint


if TYPE_CHECKING:
    from ccexperiment.config import TransferSettings
    from ccexperiment.core.port_pool import PortPool
    from ccexperiment.core.process_runner import ExternalProcessRunner
    from ccexperiment.core.services import Experiment


def with_default_io(
    experiment: Experiment,
    pool: PortPool,
    runner: ExternalProcessRunner,
    *,
    shared_directory: str,
    script_file: str,
    dataset_file: str,
    output_dir: str,
    host: str,
    settings: TransferSettings | None = None,
) -> TransferEndpoint:
    """Attach a transfer endpoint and the default inputs and outputs to ``experiment``.

    A port is leased from ``pool`` for a new endpoint sharing
    ``shared_directory``. The experiment gets two File inputs, ``script``
    (position 0) and ``data`` (position 1), and a Directory output
    ``output_directory`` collecting ``outputs/``, all reached over SSH at
    ``host`` on the leased port with the endpoint's credentials.

    Args:
        experiment: Experiment to wire; must not be submitted yet.
        pool: Port pool for the endpoint.
        runner: Runner for container commands.
        shared_directory: Host directory holding the script, dataset and output.
        script_file: Script path relative to ``shared_directory``.
        dataset_file: Dataset path relative to ``shared_directory``.
        output_dir: Output directory relative to ``shared_directory``.
        host: Host name or IP under which the agency reaches this machine.
        settings: Transfer endpoint settings.

    Returns:
        The endpoint, with a leased port but not started yet.

    Raises:
        ResourceExhaustedError: If no port could be leased.
    """
    endpoint = TransferEndpoint(shared_directory, pool, runner, settings)
    endpoint.acquire_port()
    try:
        experiment.attach_endpoint(endpoint)
    except PreconditionViolatedError:
        endpoint.release_port()
        raise

    experiment.add_input(
        Input("script", "File", 0, endpoint.connector(host, script_file))
    )
    experiment.add_input(Input("data", "File", 1, endpoint.connector(host, dataset_file)))
    experiment.add_output(
        Output(
            "output_directory",
            "Directory",
            "outputs/",
            endpoint.connector(host, output_dir, is_directory=True),
        )
    )
    return endpoint
