"""The ccx command line interface."""

# submit and cancel live in main; importing these modules registers the rest
from ccexperiment.cli.commands import logs as _logs_module  # noqa: F401
from ccexperiment.cli.commands import status as _status_module  # noqa: F401
from ccexperiment.cli.main import app, main


__all__ = ["app", "main"]
