"""Domain exceptions for ccexperiment.

All library errors inherit from CCExperimentError, allowing users to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations

from collections.abc import Sequence


class CCExperimentError(Exception):
    """Base class for all ccexperiment exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class ConfigurationError(CCExperimentError):
    """Raised for configuration problems (missing or invalid settings)."""

    pass


class JobDescriptionError(ConfigurationError):
    """Raised when a job description cannot be built from the declared I/O."""

    pass


class ResourceExhaustedError(CCExperimentError):
    """Raised when no port became available before the deadline.

    Attributes:
        max_wait: Seconds the caller was willing to wait.
        attempts: Number of times the pool was checked.
    """

    def __init__(self, max_wait: float, attempts: int) -> None:
        self.max_wait = max_wait
        self.attempts = attempts
        super().__init__(
            f"No port available after waiting {max_wait:g}s ({attempts} attempts)"
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest widening the port range or waiting for experiments to finish."""
        return "Widen the port range or wait for running experiments to finish"


class PreconditionViolatedError(CCExperimentError):
    """Raised when an operation is attempted out of order."""

    pass


_SECRET_MARKERS = ("PASSWORD", "SECRET", "TOKEN", "USER_NAME")


def format_command(command: Sequence[str]) -> str:
    """Join a command for display, masking credential-carrying arguments."""
    shown = []
    for arg in command:
        key, sep, _value = arg.partition("=")
        if sep and any(marker in key.upper() for marker in _SECRET_MARKERS):
            shown.append(f"{key}=***")
        else:
            shown.append(arg)
    return " ".join(shown)


class ProcessExecutionError(CCExperimentError):
    """Raised when a single invocation of an external command fails.

    Attributes:
        command: The command that was run.
        returncode: Exit status, or None if the process never ran.
        stderr: Captured standard error (may be empty).
    """

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None = None,
        stderr: str = "",
        cause: Exception | None = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        self.cause = cause
        detail = stderr.strip() or (str(cause) if cause else "")
        message = f"Command '{format_command(command)}' failed"
        if returncode is not None:
            message += f" with exit status {returncode}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class CommandFailedError(CCExperimentError):
    """Raised when an external command failed on every attempt.

    Attributes:
        command: The command that was run.
        attempts: Total number of invocations.
        last_error: The error from the final attempt.
    """

    def __init__(
        self,
        command: Sequence[str],
        attempts: int,
        last_error: ProcessExecutionError,
    ) -> None:
        self.command = list(command)
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Command '{format_command(command)}' failed after {attempts} "
            f"attempt(s): {last_error}"
        )

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the container engine."""
        return "Check that the docker daemon is running and reachable"


class TransferEndpointError(CCExperimentError):
    """Base class for SSH transfer endpoint failures.

    Attributes:
        port: The leased port, if any.
        container_id: The container identifier, if known.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        port: int | None = None,
        container_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.port = port
        self.container_id = container_id
        self.cause = cause
        super().__init__(message)


class StartFailedError(TransferEndpointError):
    """Raised when the transfer endpoint container could not be started."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking for a stale container holding the name or port."""
        return (
            f"Check 'docker ps -a' for a leftover container using port {self.port}"
        )


class StopFailedError(TransferEndpointError):
    """Raised when the transfer endpoint container could not be stopped or removed.

    The leased port is not returned to the pool in this case.
    """

    @property
    def recovery_hint(self) -> str:
        """Suggest removing the container by hand."""
        return (
            f"Remove container {self.container_id} manually; "
            f"port {self.port} stays leased until then"
        )


class AgencyError(CCExperimentError):
    """Base class for errors talking to the remote execution agency."""

    pass


class TransportError(AgencyError):
    """Raised when a request to the agency fails or returns unparsable data.

    Attributes:
        url: The request URL.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        url: str,
        cause: Exception | None = None,
    ) -> None:
        self.url = url
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking connectivity and credentials."""
        return f"Check that the agency at {self.url} is reachable and credentials are valid"


class SubmissionFailedError(AgencyError):
    """Raised when the agency did not accept the job description.

    Attributes:
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class BatchNotFoundError(AgencyError):
    """Raised when no batch on the agency belongs to the experiment.

    Attributes:
        experiment_id: The experiment that was looked up.
    """

    def __init__(self, experiment_id: str | None) -> None:
        self.experiment_id = experiment_id
        super().__init__(f"No batch found for experiment '{experiment_id}'")

    @property
    def recovery_hint(self) -> str:
        """Suggest retrying, since the agency registers batches asynchronously."""
        return "The agency may not have scheduled the experiment yet; retry shortly"
