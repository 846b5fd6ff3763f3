"""Core domain models for ccexperiment.

These models are pure Python dataclasses with no I/O dependencies.
They describe experiment parameters, data-transfer connectors and the
status information reported by the agency.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Self

from ccexperiment.core.exceptions import JobDescriptionError


class ExperimentStatus(str, Enum):
    """Lifecycle status of an experiment as seen by the client."""

    UNKNOWN = "unknown"
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_agency(cls, state: str | None) -> ExperimentStatus:
        """Map a raw agency batch state onto a client status.

        Args:
            state: The ``state`` field of a batch (e.g. "processing").

        Returns:
            The matching status. Unrecognised non-empty states count as running.
        """
        if not state:
            return cls.UNKNOWN
        state = state.lower()
        if state in ("registered", "scheduled", cls.SUBMITTED.value):
            return cls.SUBMITTED
        try:
            return cls(state)
        except ValueError:
            return cls.RUNNING

    @property
    def is_terminal(self) -> bool:
        """True for succeeded, failed and cancelled."""
        return self in (
            ExperimentStatus.SUCCEEDED,
            ExperimentStatus.FAILED,
            ExperimentStatus.CANCELLED,
        )


@dataclass(frozen=True, slots=True)
class AgencyAccess:
    """Location and basic-auth credentials of a cc-agency.

    Attributes:
        url: Base URL of the agency (e.g. "http://127.0.0.1:8080/").
        username: Basic-auth user name.
        password: Basic-auth password.
    """

    url: str
    username: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Agency url cannot be empty")

    def describe(self) -> dict[str, Any]:
        """Return the access block of the job description."""
        return {
            "url": self.url,
            "auth": {"username": self.username, "password": self.password},
        }


@dataclass(frozen=True, slots=True)
class ConnectorAuth:
    """Credentials a connector uses to reach its data.

    Use the ``with_password`` or ``with_private_key`` constructors.
    """

    username: str
    password: str | None = field(default=None, repr=False)
    private_key: str | None = field(default=None, repr=False)
    passphrase: str | None = field(default=None, repr=False)

    @classmethod
    def with_password(cls, username: str, password: str) -> Self:
        return cls(username=username, password=password)

    @classmethod
    def with_private_key(
        cls, username: str, private_key: str, passphrase: str | None = None
    ) -> Self:
        return cls(username=username, private_key=private_key, passphrase=passphrase)

    def describe(self) -> dict[str, str]:
        auth = {"username": self.username}
        if self.password is not None:
            auth["password"] = self.password
        elif self.private_key is not None:
            auth["privateKey"] = self.private_key
            if self.passphrase:
                auth["passphrase"] = self.passphrase
        return auth


@dataclass(frozen=True, slots=True)
class SSHConnector:
    """Connector that copies a file or directory over SSH.

    Attributes:
        host: Host name or IP of the SSH server.
        path: File or directory path on that host.
        port: SSH port.
        is_directory: Whether ``path`` names a directory.
        is_mountable: Whether the agency should mount instead of copy.
        auth: Credentials; required.
    """

    host: str
    path: str
    port: int = 22
    is_directory: bool = False
    is_mountable: bool = False
    auth: ConnectorAuth | None = None

    def with_auth(self, auth: ConnectorAuth) -> Self:
        """Return a copy of this connector using ``auth``."""
        return replace(self, auth=auth)

    def describe(self) -> dict[str, Any]:
        """Return the connector block of the job description.

        Raises:
            JobDescriptionError: If no auth was set.
        """
        if self.auth is None:
            raise JobDescriptionError(
                f"SSH connector for {self.host}:{self.path} has no auth set"
            )
        access: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "auth": self.auth.describe(),
        }
        if self.is_directory:
            access["dirPath"] = self.path
        else:
            access["filePath"] = self.path
        red: dict[str, Any] = {"command": "red-connector-ssh", "access": access}
        if self.is_mountable:
            red["mount"] = True
        return red


@dataclass(frozen=True, slots=True)
class HTTPConnector:
    """Connector that fetches from or sends to an HTTP endpoint."""

    url: str
    method: str = "GET"
    disable_ssl_verification: bool = False
    auth: ConnectorAuth | None = None

    def with_auth(self, auth: ConnectorAuth) -> Self:
        return replace(self, auth=auth)

    def describe(self) -> dict[str, Any]:
        access: dict[str, Any] = {
            "url": self.url,
            "method": self.method,
            "disableSSLVerification": self.disable_ssl_verification,
        }
        if self.auth is not None:
            access["auth"] = self.auth.describe()
        return {"command": "red-connector-http", "access": access}


@dataclass(frozen=True, slots=True)
class FTPConnector:
    """Connector that fetches from or sends to an FTP URL."""

    url: str

    def describe(self) -> dict[str, Any]:
        return {"command": "red-connector-ftp", "access": {"url": self.url}}


Connector = SSHConnector | HTTPConnector | FTPConnector


@dataclass(frozen=True, slots=True)
class Input:
    """A named command-line input of the experiment.

    Attributes:
        name: Parameter name, unique within the experiment.
        type: CWL type ("File", "Directory", "string", ...).
        position: Position of the argument on the command line.
        connector: Where the data comes from; unused for "string" inputs.
        value: Literal value for "string" inputs.
    """

    name: str
    type: str
    position: int
    connector: Connector | None = None
    value: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Input name cannot be empty")

    def with_value(self, value: str) -> Self:
        """Return a copy carrying a literal string value."""
        return replace(self, value=value)

    def with_connector(self, connector: Connector) -> Self:
        return replace(self, connector=connector)

    def describe_cli(self) -> dict[str, Any]:
        return {"type": self.type, "inputBinding": {"position": self.position}}

    def describe(self) -> Any:
        if self.type == "string":
            return self.value
        if self.connector is None:
            raise JobDescriptionError(f"Input '{self.name}' has no connector")
        return {"class": self.type, "connector": self.connector.describe()}


@dataclass(frozen=True, slots=True)
class Output:
    """A named output collected after the experiment ran.

    Attributes:
        name: Parameter name, unique within the experiment.
        type: CWL type ("File", "Directory", "stdout", "stderr").
        glob: Optional glob selecting the produced files.
        connector: Where the data is sent.
    """

    name: str
    type: str
    glob: str | None = None
    connector: Connector | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Output name cannot be empty")

    def with_connector(self, connector: Connector) -> Self:
        return replace(self, connector=connector)

    def describe_cli(self) -> dict[str, Any]:
        cli: dict[str, Any] = {"type": self.type}
        if self.glob:
            cli["outputBinding"] = {"glob": self.glob}
        return cli

    def describe(self) -> dict[str, Any]:
        if self.connector is None:
            raise JobDescriptionError(f"Output '{self.name}' has no connector")
        return {"class": self.type, "connector": self.connector.describe()}


@dataclass(frozen=True, slots=True)
class GpuRequirement:
    """One requested GPU with a minimum amount of VRAM in MB."""

    vram_min: int

    def describe(self) -> dict[str, int]:
        return {"vramMin": self.vram_min}


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One state transition recorded by the agency for a batch."""

    state: str
    debug_info: Any = None


@dataclass(frozen=True, slots=True)
class BatchSnapshot:
    """Current state and history of a batch as returned by the agency."""

    state: str | None
    history: tuple[HistoryEntry, ...] = ()

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> Self:
        """Build a snapshot from a decoded ``GET batches/<id>`` response."""
        history = tuple(
            HistoryEntry(state=entry.get("state", ""), debug_info=entry.get("debugInfo"))
            for entry in response.get("history") or []
            if isinstance(entry, dict)
        )
        return cls(state=response.get("state"), history=history)

    @property
    def status(self) -> ExperimentStatus:
        return ExperimentStatus.from_agency(self.state)

    def last_failure(self) -> HistoryEntry | None:
        """Return the most recent history entry in the failed state."""
        for entry in reversed(self.history):
            if entry.state == ExperimentStatus.FAILED.value:
                return entry
        return None
