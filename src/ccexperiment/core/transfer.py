"""Ephemeral SSH server containers used to move files to and from experiments."""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING

from ccexperiment.config import TransferSettings
from ccexperiment.core.exceptions import (
    CommandFailedError,
    PreconditionViolatedError,
    StartFailedError,
    StopFailedError,
)
from ccexperiment.core.models import ConnectorAuth, SSHConnector


if TYPE_CHECKING:
    from collections.abc import Callable

    from ccexperiment.core.port_pool import PortPool
    from ccexperiment.core.process_runner import ExternalProcessRunner


logger = logging.getLogger(__name__)

CREDENTIAL_BYTES = 8


def generate_credential() -> str:
    """Return 16 random hex characters from a CSPRNG."""
    return secrets.token_hex(CREDENTIAL_BYTES)


class TransferEndpoint:
    """An SSH server container sharing one host directory on a leased port.

    Lifecycle: ``acquire_port()`` leases a port from the pool, ``start()``
    runs the container, ``stop()`` stops and removes it and returns the port.
    If stopping fails the port stays leased, because the container may still
    be bound to it.
    """

    def __init__(
        self,
        shared_directory: str,
        pool: PortPool,
        runner: ExternalProcessRunner,
        settings: TransferSettings | None = None,
        *,
        credential_factory: Callable[[], str] = generate_credential,
    ) -> None:
        """Initialize an endpoint and generate its credentials.

        Args:
            shared_directory: Host directory exposed through the SSH server.
            pool: Pool the endpoint leases its external port from.
            runner: Runner for the container engine commands.
            settings: Image, ports and retry settings. Defaults to TransferSettings().
            credential_factory: Source of the random user name and password.
        """
        self.shared_directory = shared_directory
        self.settings = settings or TransferSettings()
        self.username = credential_factory()
        self.password = credential_factory()
        self.port: int | None = None
        self.container_id: str | None = None
        self._pool = pool
        self._runner = runner

    @classmethod
    def attach(
        cls,
        container_id: str,
        port: int,
        pool: PortPool,
        runner: ExternalProcessRunner,
        settings: TransferSettings | None = None,
    ) -> TransferEndpoint:
        """Rebuild an endpoint for a container that is already running.

        The port is claimed on ``pool`` so that ``stop()`` can hand it back.

        Raises:
            PreconditionViolatedError: If the port is already leased on ``pool``.
        """
        pool.claim(port)
        endpoint = cls("", pool, runner, settings)
        endpoint.container_id = container_id
        endpoint.port = port
        return endpoint

    def __repr__(self) -> str:
        return (
            f"TransferEndpoint(port={self.port!r}, container_id={self.container_id!r})"
        )

    @property
    def container_name(self) -> str | None:
        if self.port is None:
            return None
        return f"{self.settings.container_prefix}{self.port}"

    @property
    def is_running(self) -> bool:
        return self.container_id is not None

    @property
    def auth(self) -> ConnectorAuth:
        """Password credentials for connectors pointing at this endpoint."""
        return ConnectorAuth.with_password(self.username, self.password)

    def mounted_path(self, relative: str) -> str:
        """Translate a path relative to the shared directory into the container path."""
        return f"{self.settings.mount_path}/{relative}"

    def connector(
        self, host: str, relative: str, *, is_directory: bool = False
    ) -> SSHConnector:
        """Build an SSH connector reaching ``relative`` through this endpoint.

        Raises:
            PreconditionViolatedError: If no port is leased yet.
        """
        if self.port is None:
            raise PreconditionViolatedError(
                "Acquire a port before creating connectors for the endpoint"
            )
        return SSHConnector(
            host=host,
            path=self.mounted_path(relative),
            port=self.port,
            is_directory=is_directory,
            auth=self.auth,
        )

    def acquire_port(self) -> int:
        """Lease an external port from the pool.

        Returns the port already held if one is leased.

        Raises:
            ResourceExhaustedError: If the pool stays empty past the max wait.
        """
        if self.port is None:
            self.port = self._pool.acquire(
                poll_interval=self.settings.port_poll_interval,
                max_wait=self.settings.port_max_wait,
            )
        return self.port

    def release_port(self) -> None:
        """Give the leased port back without ever having started a container.

        Raises:
            PreconditionViolatedError: If a container is running on the port.
        """
        if self.container_id is not None:
            raise PreconditionViolatedError(
                f"Container {self.container_id} is running; use stop() instead"
            )
        if self.port is not None:
            self._pool.release(self.port)
            self.port = None

    def start_command(self) -> list[str]:
        """Build the ``docker run`` command for this endpoint."""
        if self.port is None:
            raise PreconditionViolatedError("Reserve a port before starting the server")
        s = self.settings
        return [
            "docker",
            "run",
            "-p",
            f"{self.port}:{s.internal_port}",
            "-v",
            f"{self.shared_directory}:{s.mount_path}",
            "-e",
            "PUID=1000",
            "-e",
            "PGID=1000",
            "-e",
            "PASSWORD_ACCESS=true",
            "-e",
            f"USER_NAME={self.username}",
            "-e",
            f"USER_PASSWORD={self.password}",
            "-d",
            "--name",
            f"{s.container_prefix}{self.port}",
            s.image,
        ]

    def start(self) -> str:
        """Start the SSH server container.

        Returns:
            The container identifier reported by the engine.

        Raises:
            PreconditionViolatedError: If no port is leased.
            StartFailedError: If the container could not be started.
        """
        command = self.start_command()
        try:
            stdout = self._runner.run(
                command,
                max_retries=self.settings.max_start_retries,
                retry_delay=self.settings.start_retry_delay,
            )
        except CommandFailedError as e:
            raise StartFailedError(
                f"Failed to start server: {e}", port=self.port, cause=e
            ) from e

        container_id = stdout.strip()
        if not container_id:
            raise StartFailedError(
                "Failed to start server: no container id returned", port=self.port
            )
        self.container_id = container_id
        logger.info(
            "Started transfer endpoint %s on port %d", container_id[:12], self.port
        )
        return container_id

    def stop(self) -> None:
        """Stop and remove the container, then return the port to the pool.

        Raises:
            PreconditionViolatedError: If the endpoint was never started.
            StopFailedError: If stopping or removing failed; the port stays leased.
        """
        if self.container_id is None:
            raise PreconditionViolatedError("Transfer endpoint is not running")
        container_id = self.container_id
        try:
            for action in ("stop", "rm"):
                self._runner.run(
                    ["docker", action, container_id],
                    max_retries=self.settings.max_stop_retries,
                    retry_delay=self.settings.stop_retry_delay,
                )
        except CommandFailedError as e:
            logger.error(
                "Could not remove transfer endpoint %s; port %s stays leased",
                container_id[:12],
                self.port,
            )
            raise StopFailedError(
                f"Failed to remove server: {e}",
                port=self.port,
                container_id=container_id,
                cause=e,
            ) from e

        self.container_id = None
        logger.info("Stopped transfer endpoint %s", container_id[:12])
        if self.port is not None:
            self._pool.release(self.port)
            self.port = None
