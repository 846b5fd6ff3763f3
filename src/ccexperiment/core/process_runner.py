"""Retry wrapper around external command execution."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from ccexperiment.core.exceptions import (
    CommandFailedError,
    ProcessExecutionError,
    format_command,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ccexperiment.core.ports import CommandExecutorPort, SleepFn


logger = logging.getLogger(__name__)


class ExternalProcessRunner:
    """Runs external commands through a CommandExecutorPort with fixed-delay retries."""

    def __init__(
        self, executor: CommandExecutorPort, *, sleep: SleepFn = time.sleep
    ) -> None:
        self._executor = executor
        self._sleep = sleep

    def run(self, command: Sequence[str], max_retries: int, retry_delay: float) -> str:
        """Run ``command``, retrying up to ``max_retries`` more times on failure.

        Args:
            command: Program and arguments.
            max_retries: Additional attempts after the first one.
            retry_delay: Seconds to wait between attempts.

        Returns:
            Standard output of the first successful attempt.

        Raises:
            CommandFailedError: If every attempt failed.
        """
        attempts = max(max_retries, 0) + 1
        last_error: ProcessExecutionError | None = None
        for attempt in range(1, attempts + 1):
            try:
                return self._executor.execute(command)
            except ProcessExecutionError as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        "Attempt %d/%d of '%s' failed, retrying in %gs: %s",
                        attempt,
                        attempts,
                        format_command(command),
                        retry_delay,
                        e,
                    )
                    self._sleep(retry_delay)

        assert last_error is not None
        raise CommandFailedError(command, attempts, last_error) from last_error
