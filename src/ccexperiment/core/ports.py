"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable


SleepFn = Callable[[float], None]
ClockFn = Callable[[], float]


@runtime_checkable
class AgencyPort(Protocol):
    """Request/response transport to a cc-agency.

    Every method raises TransportError on network, HTTP or decoding failures.
    """

    def submit(self, job_description: dict[str, Any]) -> dict[str, Any]:
        """Post a job description; the response should carry ``experimentId``."""
        ...

    def list_batches(self, experiment_id: str) -> list[dict[str, Any]]:
        """List batches, filtered by experiment where the agency supports it.

        Each entry carries at least ``_id`` and ``experimentId``.
        """
        ...

    def get_batch(self, batch_id: str) -> dict[str, Any]:
        """Return ``{state, history: [{state, debugInfo}]}`` for a batch."""
        ...

    def delete_batch(self, batch_id: str) -> dict[str, Any]:
        """Cancel a batch and return its resulting ``{state}``."""
        ...

    def get_batch_stream(self, batch_id: str, stream: str) -> str:
        """Return the text of a batch stream ("stdout" or "stderr").

        Returns an empty string when the stream is not available yet.
        """
        ...


@runtime_checkable
class CommandExecutorPort(Protocol):
    """Runs one external command once."""

    def execute(self, command: Sequence[str]) -> str:
        """Run ``command`` and return its standard output.

        Raises:
            ProcessExecutionError: If the command could not run or exited non-zero.
        """
        ...


@runtime_checkable
class ScheduledTask(Protocol):
    """Handle of a callback scheduled on a SchedulerPort."""

    def cancel(self) -> None:
        """Prevent the callback from running if it has not started yet."""
        ...


@runtime_checkable
class SchedulerPort(Protocol):
    """One-shot deferred execution.

    The core uses this protocol instead of creating timer threads itself,
    keeping concurrency at the edges.
    """

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` once after ``delay`` seconds.

        Args:
            delay: Seconds to wait before running the callback.
            callback: Function to run; it takes no arguments.

        Returns:
            A handle that can cancel the pending callback.
        """
        ...
