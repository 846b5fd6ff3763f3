"""Command executor adapter backed by subprocess."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from ccexperiment.core.exceptions import ProcessExecutionError, format_command


if TYPE_CHECKING:
    from collections.abc import Sequence


logger = logging.getLogger(__name__)


class SubprocessExecutor:
    """Runs a command once with subprocess.run and captures its output.

    Implements CommandExecutorPort. Commands are passed as argument lists,
    never through a shell.
    """

    def __init__(self, timeout: float | None = 120.0) -> None:
        """Initialize the executor.

        Args:
            timeout: Seconds before a running command is killed. None waits forever.
        """
        self._timeout = timeout

    def execute(self, command: Sequence[str]) -> str:
        """Run ``command`` and return its standard output.

        Raises:
            ProcessExecutionError: If the command is missing, times out or
                exits with a non-zero status.
        """
        logger.debug("Running %s", format_command(command))
        try:
            result = subprocess.run(
                list(command),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProcessExecutionError(command, cause=e) from e

        if result.returncode != 0:
            raise ProcessExecutionError(command, result.returncode, result.stderr)
        return result.stdout
