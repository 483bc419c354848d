"""
External tool clients

kubectl, az and aws wrappers plus scoped temporary cluster resources.
"""

from .runner import (
    CommandError,
    CommandFailedError,
    CommandResult,
    CommandTimeoutError,
    ToolNotFoundError,
    run_command,
    which,
)
from .kubectl import Kubectl
from .cloud import AksNodePool, AwsCli, AzureCli, EksNodegroup
from .resources import ProbeLifecycle, ProbeState, temporary_pod

__all__ = [
    "CommandError",
    "CommandFailedError",
    "CommandResult",
    "CommandTimeoutError",
    "ToolNotFoundError",
    "run_command",
    "which",
    "Kubectl",
    "AksNodePool",
    "AwsCli",
    "AzureCli",
    "EksNodegroup",
    "ProbeLifecycle",
    "ProbeState",
    "temporary_pod",
]
