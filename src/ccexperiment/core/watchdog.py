"""One-shot timeout that cancels an experiment unless disarmed first."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable

    from ccexperiment.core.ports import ScheduledTask, SchedulerPort


logger = logging.getLogger(__name__)


class TimeoutWatchdog:
    """Runs a callback once after a delay unless disarmed before it fires.

    Firing and disarming are decided under one lock: whichever happens first
    wins, and the loser is a no-op. Each arm gets a fresh generation so that
    a timer from an earlier arm can never fire a later one.
    """

    def __init__(self, scheduler: SchedulerPort, callback: Callable[[], None]) -> None:
        self._scheduler = scheduler
        self._callback = callback
        self._lock = threading.Lock()
        self._task: ScheduledTask | None = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._task is not None

    def arm(self, delay: float) -> None:
        """Schedule the callback ``delay`` seconds from now, replacing any pending one."""
        with self._lock:
            if self._task is not None:
                self._task.cancel()
            self._generation += 1
            generation = self._generation
            self._task = self._scheduler.schedule(delay, lambda: self._fire(generation))
        logger.debug("Watchdog armed for %gs", delay)

    def disarm(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a pending callback was cancelled, False if none was pending.
        """
        with self._lock:
            task, self._task = self._task, None
            if task is None:
                return False
            self._generation += 1
        task.cancel()
        logger.debug("Watchdog disarmed")
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._task is None or generation != self._generation:
                return
            self._task = None
        logger.info("Watchdog fired")
        self._callback()
