"""ccexperiment - Submit and supervise Curious Containers experiments.

This library builds RED job descriptions, submits them to a cc-agency,
polls them to completion and manages ephemeral SSH server containers that
move files between this machine and the experiment.

Example:
    >>> from ccexperiment import AgencyAccess, Experiment, PortPool, with_default_io
    >>> from ccexperiment.adapters.process import SubprocessExecutor
    >>> from ccexperiment.core.process_runner import ExternalProcessRunner
    >>> pool = PortPool(10410, 10439)
    >>> access = AgencyAccess("http://127.0.0.1:8090/", "user", "secret")
    >>> experiment = Experiment.create(access, "python3", "image:tag", ram=256)
    >>> runner = ExternalProcessRunner(SubprocessExecutor())
    >>> endpoint = with_default_io(
    ...     experiment, pool, runner,
    ...     shared_directory="/home/me/shared", script_file="input/run.py",
    ...     dataset_file="input/data.csv", output_dir=".", host="10.0.0.5",
    ... )
    >>> experiment_id = experiment.submit()
"""

from ccexperiment.adapters.agency import RequestsAgencyClient
from ccexperiment.adapters.process import SubprocessExecutor
from ccexperiment.adapters.scheduler import ThreadingTimerScheduler
from ccexperiment.config import (
    AgencySettings,
    TransferSettings,
    agency_settings_from_env,
    parse_port_range,
)
from ccexperiment.core.exceptions import (
    AgencyError,
    BatchNotFoundError,
    CCExperimentError,
    CommandFailedError,
    ConfigurationError,
    JobDescriptionError,
    PreconditionViolatedError,
    ProcessExecutionError,
    ResourceExhaustedError,
    StartFailedError,
    StopFailedError,
    SubmissionFailedError,
    TransferEndpointError,
    TransportError,
)
from ccexperiment.core.factories import with_default_io
from ccexperiment.core.models import (
    AgencyAccess,
    ConnectorAuth,
    ExperimentStatus,
    FTPConnector,
    GpuRequirement,
    HTTPConnector,
    Input,
    Output,
    SSHConnector,
)
from ccexperiment.core.port_pool import PortPool
from ccexperiment.core.ports import AgencyPort, CommandExecutorPort, SchedulerPort
from ccexperiment.core.process_runner import ExternalProcessRunner
from ccexperiment.core.services import Experiment
from ccexperiment.core.transfer import TransferEndpoint


__version__ = "0.1.0"

__all__ = [
    "AgencyAccess",
    "AgencyError",
    "AgencyPort",
    "AgencySettings",
    "BatchNotFoundError",
    "CCExperimentError",
    "CommandExecutorPort",
    "CommandFailedError",
    "ConfigurationError",
    "ConnectorAuth",
    "Experiment",
    "ExperimentStatus",
    "ExternalProcessRunner",
    "FTPConnector",
    "GpuRequirement",
    "HTTPConnector",
    "Input",
    "JobDescriptionError",
    "Output",
    "PortPool",
    "PreconditionViolatedError",
    "ProcessExecutionError",
    "RequestsAgencyClient",
    "ResourceExhaustedError",
    "SSHConnector",
    "SchedulerPort",
    "StartFailedError",
    "StopFailedError",
    "SubmissionFailedError",
    "SubprocessExecutor",
    "ThreadingTimerScheduler",
    "TransferEndpoint",
    "TransferEndpointError",
    "TransportError",
    "__version__",
    "agency_settings_from_env",
    "parse_port_range",
    "with_default_io",
]
