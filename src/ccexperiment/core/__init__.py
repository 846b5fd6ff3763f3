"""Core domain module for ccexperiment.

This module contains the domain models, port definitions and the resource
lifecycle services. Concrete I/O lives in ccexperiment.adapters.
"""

from ccexperiment.core.models import (
    AgencyAccess,
    ExperimentStatus,
    FTPConnector,
    HTTPConnector,
    Input,
    Output,
    SSHConnector,
)
from ccexperiment.core.port_pool import PortPool
from ccexperiment.core.ports import AgencyPort, CommandExecutorPort, SchedulerPort


__all__ = [
    "AgencyAccess",
    "AgencyPort",
    "CommandExecutorPort",
    "ExperimentStatus",
    "FTPConnector",
    "HTTPConnector",
    "Input",
    "Output",
    "PortPool",
    "SSHConnector",
    "SchedulerPort",
]
