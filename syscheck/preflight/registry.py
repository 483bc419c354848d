"""
Check Registry

Declares the fixed, ordered sequence of checks and resolves each
descriptor's target to something runnable.
"""

import importlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

CHECKS_PACKAGE = "syscheck.preflight.checks"


class CheckId(str, Enum):
    """One identifier per check domain."""
    FIREWALL = "firewall"
    INSTANCES = "instances"
    NETWORKING = "networking"
    ONPREM_NETWORK = "onprem_network"
    NODE_LABELS = "node_labels"
    VERSIONS = "versions"
    CONSTRAINTS = "constraints"
    NETWORK_POLICIES = "network_policies"
    DB_CONNECTIVITY = "db_connectivity"


@dataclass(frozen=True)
class CheckDescriptor:
    """
    Identifies one check in the sequence.

    ``target`` is either ``module:function`` for a built-in check or a
    path to an executable that speaks the status line protocol.
    """
    id: str
    label: str
    icon: str
    target: Union[str, Path]

    @property
    def is_external(self) -> bool:
        return isinstance(self.target, Path)

    def resolve(self) -> Optional[Callable]:
        """
        Resolve a built-in target to its run function.

        Returns:
            The callable, or None if the module or attribute is missing
            or not callable
        """
        if self.is_external:
            return None

        module_name, _, attr = str(self.target).partition(":")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.debug("Cannot import %s: %s", module_name, e)
            return None

        func = getattr(module, attr or "run", None)
        return func if callable(func) else None

    def is_runnable_file(self) -> bool:
        path = Path(self.target)
        return path.is_file() and os.access(path, os.X_OK)


def _builtin(check_id: CheckId, label: str, icon: str) -> CheckDescriptor:
    return CheckDescriptor(
        id=check_id.value,
        label=label,
        icon=icon,
        target=f"{CHECKS_PACKAGE}.{check_id.value}:run",
    )


CHECKS: Dict[CheckId, CheckDescriptor] = {
    CheckId.FIREWALL: _builtin(CheckId.FIREWALL, "FIREWALL", "🛡️"),
    CheckId.INSTANCES: _builtin(CheckId.INSTANCES, "MACHINE TYPES", "🖥️"),
    CheckId.NETWORKING: _builtin(CheckId.NETWORKING, "NETWORKING", "🌐"),
    CheckId.ONPREM_NETWORK: _builtin(CheckId.ONPREM_NETWORK, "ON-PREM CONNECTIVITY", "🔗"),
    CheckId.NODE_LABELS: _builtin(CheckId.NODE_LABELS, "NODE LABELS", "🏷️"),
    CheckId.VERSIONS: _builtin(CheckId.VERSIONS, "TOOL VERSIONS", "⚙️"),
    CheckId.CONSTRAINTS: _builtin(CheckId.CONSTRAINTS, "ADMISSION CONSTRAINTS", "🧩"),
    CheckId.NETWORK_POLICIES: _builtin(CheckId.NETWORK_POLICIES, "NETWORK POLICIES", "🛡️"),
    CheckId.DB_CONNECTIVITY: _builtin(CheckId.DB_CONNECTIVITY, "CLOUD DB CONNECTIVITY", "📦"),
}


def default_checks(only: Optional[List[str]] = None) -> List[CheckDescriptor]:
    """
    The built-in checks in declared order.

    Args:
        only: Optional subset of check ids; declared order is kept
    """
    if not only:
        return list(CHECKS.values())
    wanted = {CheckId(c) for c in only}
    return [d for cid, d in CHECKS.items() if cid in wanted]


def discover_external_checks(directory: Union[str, Path]) -> List[CheckDescriptor]:
    """
    External checks: every ``check_*`` file in a directory, sorted by name.

    Files are listed whether or not they are executable; the orchestrator
    reports non-executable ones as skipped.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []

    descriptors = []
    for path in sorted(directory.glob("check_*")):
        if path.is_dir():
            continue
        stem = path.stem[len("check_"):]
        descriptors.append(CheckDescriptor(
            id=f"external:{stem}",
            label=stem.replace("_", " ").upper(),
            icon="🔧",
            target=path.resolve(),
        ))
    return descriptors
