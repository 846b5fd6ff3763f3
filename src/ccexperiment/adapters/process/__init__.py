"""Command executor adapters."""

from ccexperiment.adapters.process.subprocess_executor import SubprocessExecutor


__all__ = ["SubprocessExecutor"]
