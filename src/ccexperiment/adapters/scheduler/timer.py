"""Scheduler adapter implementing SchedulerPort with threading.Timer."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


class ThreadingTimerScheduler:
    """Runs each scheduled callback on its own daemon timer thread.

    Daemon threads do not keep the interpreter alive, so a pending timeout
    never blocks process exit.
    """

    def __init__(self, name_prefix: str = "ccexperiment-timer") -> None:
        self._name_prefix = name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        """Start a timer running ``callback`` after ``delay`` seconds.

        Returns:
            The started timer; its ``cancel()`` stops a pending callback.
        """
        with self._lock:
            self._counter += 1
            name = f"{self._name_prefix}-{self._counter}"
        timer = threading.Timer(delay, callback)
        timer.name = name
        timer.daemon = True
        timer.start()
        return timer
