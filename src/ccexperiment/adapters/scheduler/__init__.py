"""Scheduler adapters for deferred execution."""

from ccexperiment.adapters.scheduler.timer import ThreadingTimerScheduler


__all__ = ["ThreadingTimerScheduler"]
