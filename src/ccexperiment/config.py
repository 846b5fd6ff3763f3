"""Configuration for ccexperiment.

This module holds the tunable settings of transfer endpoints and the agency
connection, plus helpers to read them from strings and the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from ccexperiment.core.exceptions import ConfigurationError
from ccexperiment.core.models import AgencyAccess


AGENCY_URL_ENV = "CC_AGENCY_URL"
AGENCY_USERNAME_ENV = "CC_AGENCY_USERNAME"
AGENCY_PASSWORD_ENV = "CC_AGENCY_PASSWORD"
AGENCY_TIMEOUT_ENV = "CC_AGENCY_TIMEOUT"

DEFAULT_SSH_IMAGE = "lscr.io/linuxserver/openssh-server:9.3_p2-r0-ls132"


@dataclass(frozen=True, slots=True)
class TransferSettings:
    """Settings of an SSH transfer endpoint container.

    Attributes:
        image: Container image running the SSH server.
        internal_port: Port the SSH server listens on inside the container.
        container_prefix: Prefix of the container name; the leased port is appended.
        mount_path: Where the shared directory is mounted inside the container.
        max_start_retries: Extra attempts for ``docker run``.
        start_retry_delay: Seconds between start attempts.
        max_stop_retries: Extra attempts for ``docker stop`` and ``docker rm``.
        stop_retry_delay: Seconds between stop attempts.
        port_poll_interval: Seconds between checks of an empty port pool.
        port_max_wait: Seconds to wait for a port before giving up.
    """

    image: str = DEFAULT_SSH_IMAGE
    internal_port: int = 2222
    container_prefix: str = "sshserver_"
    mount_path: str = "/shared"
    max_start_retries: int = 3
    start_retry_delay: float = 10.0
    max_stop_retries: int = 3
    stop_retry_delay: float = 10.0
    port_poll_interval: float = 30.0
    port_max_wait: float = 3600.0


@dataclass(frozen=True, slots=True)
class AgencySettings:
    """Connection settings of the cc-agency.

    Attributes:
        url: Base URL of the agency.
        username: Basic-auth user name.
        password: Basic-auth password.
        request_timeout: Seconds before a single HTTP request is abandoned.
    """

    url: str
    username: str
    password: str = field(repr=False)
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Agency url cannot be empty")
        if self.request_timeout <= 0:
            raise ValueError("Agency request timeout must be positive")

    @property
    def access(self) -> AgencyAccess:
        """Agency location and credentials, as carried by job descriptions."""
        return AgencyAccess(self.url, self.username, self.password)


def parse_port_range(value: str) -> tuple[int, int]:
    """Parse a ``first-last`` port range.

    Example:
        >>> parse_port_range("10410-10439")
        (10410, 10439)

    Raises:
        ConfigurationError: If the value is not two integers joined by '-'.
    """
    first_text, sep, last_text = value.strip().partition("-")
    try:
        if not sep:
            raise ValueError(value)
        first, last = int(first_text), int(last_text)
    except ValueError:
        raise ConfigurationError(
            f"Invalid port range '{value}', expected FIRST-LAST"
        ) from None
    if not (0 < first <= 65535 and 0 < last <= 65535):
        raise ConfigurationError(f"Port range '{value}' is outside 1-65535")
    return first, last


def agency_settings_from_env(
    environ: Mapping[str, str] | None = None,
) -> AgencySettings:
    """Build AgencySettings from the CC_AGENCY_* environment variables.

    CC_AGENCY_URL is required; CC_AGENCY_USERNAME, CC_AGENCY_PASSWORD and
    CC_AGENCY_TIMEOUT (seconds per request) are optional.

    Raises:
        ConfigurationError: If CC_AGENCY_URL is not set or the timeout is
            not a positive number.
    """
    env = os.environ if environ is None else environ
    url = env.get(AGENCY_URL_ENV, "")
    if not url:
        raise ConfigurationError(f"{AGENCY_URL_ENV} is not set")
    timeout_text = env.get(AGENCY_TIMEOUT_ENV, "30")
    try:
        request_timeout = float(timeout_text)
    except ValueError:
        raise ConfigurationError(
            f"{AGENCY_TIMEOUT_ENV} must be a number of seconds, got '{timeout_text}'"
        ) from None
    if request_timeout <= 0:
        raise ConfigurationError(f"{AGENCY_TIMEOUT_ENV} must be positive")
    return AgencySettings(
        url=url,
        username=env.get(AGENCY_USERNAME_ENV, ""),
        password=env.get(AGENCY_PASSWORD_ENV, ""),
        request_timeout=request_timeout,
    )
