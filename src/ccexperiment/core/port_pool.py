"""Shared pool of network ports leased to transfer endpoints."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import TYPE_CHECKING

from ccexperiment.core.exceptions import (
    PreconditionViolatedError,
    ResourceExhaustedError,
)


if TYPE_CHECKING:
    from ccexperiment.core.ports import ClockFn, SleepFn


logger = logging.getLogger(__name__)


class PortPool:
    """FIFO pool of ports with exclusive leases.

    A port is either available or leased, never both. All mutation happens
    under one lock, so concurrent acquisitions never hand out the same port.
    Acquisition polls instead of waiting on a condition so that the pool has
    no synchronization dependency on its callers.

    Example:
        >>> pool = PortPool(10410, 10439)
        >>> port = pool.acquire(poll_interval=30, max_wait=3600)
        >>> pool.release(port)
    """

    def __init__(
        self,
        first: int | None = None,
        last: int | None = None,
        *,
        sleep: SleepFn = time.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        """Initialize the pool, optionally with a port range.

        Args:
            first: First port of the range (inclusive).
            last: Last port of the range (inclusive).
            sleep: Function used to wait between polls.
            clock: Monotonic clock used to measure the wait.
        """
        self._lock = threading.Lock()
        self._available: deque[int] = deque()
        self._leased: set[int] = set()
        self._sleep = sleep
        self._clock = clock
        if first is not None and last is not None:
            self.configure_range(first, last)

    def configure_range(self, first: int, last: int) -> None:
        """Replace the available ports with ``first..last`` in ascending order.

        Ports that are currently leased keep their lease and are left out of
        the new available set; they re-enter the pool when released. A range
        with ``first > last`` is ignored.
        """
        if first > last:
            logger.debug("Ignoring empty port range %d-%d", first, last)
            return
        with self._lock:
            self._available = deque(
                port for port in range(first, last + 1) if port not in self._leased
            )
            logger.info(
                "Port pool configured with %d port(s) in %d-%d",
                len(self._available),
                first,
                last,
            )

    def _try_acquire(self) -> int | None:
        with self._lock:
            if not self._available:
                return None
            port = self._available.popleft()
            self._leased.add(port)
            return port

    def acquire(self, poll_interval: float, max_wait: float) -> int:
        """Lease the oldest available port, waiting if the pool is empty.

        Args:
            poll_interval: Seconds between checks while the pool is empty.
            max_wait: Total seconds to keep checking before giving up.

        Returns:
            The leased port.

        Raises:
            ResourceExhaustedError: If no port became available in time.
        """
        start = self._clock()
        attempts = 0
        while True:
            attempts += 1
            port = self._try_acquire()
            if port is not None:
                logger.info("Leased port %d", port)
                return port
            if self._clock() - start >= max_wait:
                raise ResourceExhaustedError(max_wait, attempts)
            logger.debug("No port available, retrying in %gs", poll_interval)
            self._sleep(poll_interval)

    def claim(self, port: int) -> None:
        """Mark a specific port as leased, e.g. one held by a running container.

        Raises:
            PreconditionViolatedError: If the port is already leased.
        """
        with self._lock:
            if port in self._leased:
                raise PreconditionViolatedError(f"Port {port} is already leased")
            try:
                self._available.remove(port)
            except ValueError:
                pass
            self._leased.add(port)
        logger.info("Claimed port %d", port)

    def release(self, port: int) -> None:
        """Return a leased port to the tail of the pool.

        Raises:
            PreconditionViolatedError: If the port is not currently leased.
        """
        with self._lock:
            if port not in self._leased:
                raise PreconditionViolatedError(
                    f"Port {port} is not leased and cannot be released"
                )
            self._leased.discard(port)
            self._available.append(port)
        logger.info("Released port %d", port)

    def is_leased(self, port: int) -> bool:
        with self._lock:
            return port in self._leased

    @property
    def available(self) -> list[int]:
        """Snapshot of the available ports in lease order."""
        with self._lock:
            return list(self._available)

    def __len__(self) -> int:
        with self._lock:
            return len(self._available)
