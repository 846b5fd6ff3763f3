"""Formatting utilities for domain logic."""

from ccexperiment.core.models import ExperimentStatus


def status_to_color(status: ExperimentStatus | str) -> str:
    """Map an experiment status to a color name.

    Args:
        status: An ExperimentStatus or its string value.

    Returns:
        Color name string:
        - "succeeded" -> "green"
        - "submitted", "running" -> "yellow"
        - "failed" -> "red"
        - "cancelled" -> "magenta"
        - anything else -> empty string
    """
    value = status.value if isinstance(status, ExperimentStatus) else status
    color_map = {
        "succeeded": "green",
        "submitted": "yellow",
        "running": "yellow",
        "failed": "red",
        "cancelled": "magenta",
    }
    return color_map.get(value, "")
