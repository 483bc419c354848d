"""
Cloud provider CLI clients (az, aws).

Both CLIs are asked for JSON and the documented response fields are
parsed into pydantic models.
"""

import json
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .runner import CommandError, run_command

logger = logging.getLogger(__name__)


class AksNodePool(BaseModel):
    """Subset of ``az aks nodepool show`` output."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    vm_size: str = Field("", alias="vmSize")
    count: Optional[int] = None
    node_taints: Optional[List[str]] = Field(None, alias="nodeTaints")

    def has_taint(self, taint: str) -> bool:
        return taint in (self.node_taints or [])


class EksNodegroup(BaseModel):
    """Subset of the ``nodegroup`` object from ``aws eks describe-nodegroup``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    nodegroup_name: str = Field("", alias="nodegroupName")
    instance_types: Optional[List[str]] = Field(None, alias="instanceTypes")

    @property
    def instance_type(self) -> Optional[str]:
        return self.instance_types[0] if self.instance_types else None


def _decode(command: List[str], stdout: str) -> dict:
    try:
        return json.loads(stdout)
    except ValueError as e:
        raise CommandError(command, f"Invalid JSON from {command[0]}: {e}")


class AzureCli:
    """Azure CLI client for AKS node pools."""

    def __init__(self, timeout: float = 60):
        self.timeout = timeout

    def show_nodepool(self, resource_group: str, cluster_name: str, pool: str) -> Optional[AksNodePool]:
        """
        Fetch one node pool.

        Returns:
            The pool, or None when az reports it missing
        """
        command = [
            "az", "aks", "nodepool", "show",
            "--resource-group", resource_group,
            "--cluster-name", cluster_name,
            "--name", pool,
            "-o", "json",
        ]
        result = run_command(command, timeout=self.timeout)
        if not result.ok or not result.stdout.strip():
            return None
        return AksNodePool.model_validate(_decode(command, result.stdout))


class AwsCli:
    """AWS CLI client for EKS node groups."""

    def __init__(self, timeout: float = 60):
        self.timeout = timeout

    def describe_nodegroup(self, cluster_name: str, nodegroup: str) -> Optional[EksNodegroup]:
        """
        Fetch one node group.

        Returns:
            The node group, or None when aws reports it missing
        """
        command = [
            "aws", "eks", "describe-nodegroup",
            "--cluster-name", cluster_name,
            "--nodegroup-name", nodegroup,
            "--output", "json",
        ]
        result = run_command(command, timeout=self.timeout)
        if not result.ok or not result.stdout.strip():
            return None
        data = _decode(command, result.stdout)
        return EksNodegroup.model_validate(data.get("nodegroup", {}))
