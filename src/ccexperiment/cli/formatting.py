"""Shared formatting helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from ccexperiment.core.formatting import status_to_color


if TYPE_CHECKING:
    from ccexperiment.core.models import ExperimentStatus
    from ccexperiment.core.services import Experiment


def _format_status_with_color(status: ExperimentStatus) -> Text:
    """Format a status with color coding.

    Returns:
        Rich Text colored by status_to_color, or plain when it has no color.
    """
    color = status_to_color(status)
    return Text(status.value, style=color) if color else Text(status.value)


def _experiment_table(experiment: Experiment) -> Table:
    """Build a one-row table describing an experiment."""
    table = Table()
    table.add_column("Experiment")
    table.add_column("Batch")
    table.add_column("Status")
    table.add_column("Agency state")
    table.add_row(
        experiment.experiment_id or "-",
        experiment.batch_id or "-",
        _format_status_with_color(experiment.status),
        experiment.remote_state or "-",
    )
    return table
