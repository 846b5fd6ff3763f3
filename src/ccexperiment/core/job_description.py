"""Builds the RED job description posted to the agency."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ccexperiment.core.exceptions import JobDescriptionError


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ccexperiment.core.models import AgencyAccess, GpuRequirement, Input, Output


RED_VERSION = "9"


def describe_cli(
    base_command: str, inputs: Sequence[Input], outputs: Sequence[Output]
) -> dict[str, Any]:
    """Return the CWL command-line tool section."""
    return {
        "cwlVersion": "v1.0",
        "class": "CommandLineTool",
        "baseCommand": base_command,
        "inputs": {i.name: i.describe_cli() for i in inputs},
        "outputs": {o.name: o.describe_cli() for o in outputs},
        "stdout": "stdout.txt",
        "stderr": "stderr.txt",
    }


def describe_container(
    image: str, ram: int, gpus: Sequence[GpuRequirement] = ()
) -> dict[str, Any]:
    """Return the docker container section, with GPUs only when requested."""
    settings: dict[str, Any] = {"image": {"url": image}, "ram": ram}
    if gpus:
        settings["gpus"] = {
            "vendor": "nvidia",
            "devices": [gpu.describe() for gpu in gpus],
        }
    return {"engine": "docker", "settings": settings}


def _check_unique(kind: str, names: list[str]) -> None:
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise JobDescriptionError(f"Duplicate {kind} name(s): {', '.join(duplicates)}")


def build_job_description(
    *,
    base_command: str,
    image: str,
    ram: int,
    access: AgencyAccess,
    inputs: Sequence[Input],
    outputs: Sequence[Output],
    gpus: Sequence[GpuRequirement] = (),
) -> dict[str, Any]:
    """Assemble a complete RED document.

    Raises:
        JobDescriptionError: If no inputs are declared, names repeat, or a
            connector is incomplete.
    """
    if not inputs:
        raise JobDescriptionError("No inputs defined! Add at least one input.")
    _check_unique("input", [i.name for i in inputs])
    _check_unique("output", [o.name for o in outputs])

    return {
        "redVersion": RED_VERSION,
        "cli": describe_cli(base_command, inputs, outputs),
        "inputs": {i.name: i.describe() for i in inputs},
        "outputs": {o.name: o.describe() for o in outputs},
        "container": describe_container(image, ram, gpus),
        "execution": {
            "engine": "ccagency",
            "settings": {"access": access.describe()},
        },
    }
