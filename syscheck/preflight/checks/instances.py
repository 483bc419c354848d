"""
Machine Type Validation

Compares the instance type of each platform node pool against a
per-pool allow-list.
"""

import re
from typing import Dict, List, Optional

from ...config import EnvironmentKind, RunContext
from ...config.defaults import (
    ALLOWED_AKS_INSTANCES,
    ALLOWED_EKS_INSTANCES,
    INSTANCE_POOLS,
    K3S_HARDWARE_REFERENCE,
)
from ...tools import AwsCli, AzureCli
from ..models import StatusWriter


def normalize_vm_size(vm_size: str) -> str:
    """
    Canonical casing for an Azure VM size.

    ``standard_d4s_v3`` -> ``Standard_D4s_V3``. Idempotent.
    """
    normalized = re.sub(r"^standard", "Standard", vm_size)
    return re.sub(r"_([a-z])", lambda m: "_" + m.group(1).upper(), normalized)


def _print_hardware_reference(out: StatusWriter) -> None:
    rule = "=" * 62
    out.echo(rule)
    out.echo("IMPORTANT: Minimum Hardware Requirements for K3s Nodes".center(62))
    out.echo("-" * 62)
    for node, spec in K3S_HARDWARE_REFERENCE:
        out.echo(f"   {node:<9}: {spec}")
    out.echo("-" * 62)
    out.echo(" NOTE: Disk, RAM, and CPU specs CANNOT be reliably checked for")
    out.echo(" on-prem nodes. Please verify manually before installing!")
    out.echo(rule)


def _report(out: StatusWriter, noun: str, pool: str, instance: Optional[str], allowed: List[str]) -> bool:
    if instance and instance in allowed:
        out.pass_(f"{noun} '{pool}': Instance type {instance} is allowed.")
        return True
    out.fail(f"{noun} '{pool}': Instance type {instance or '<unknown>'} is NOT in allowed list: {' '.join(allowed)}")
    return False


def check_aks(context: RunContext, out: StatusWriter, allowed: Dict[str, List[str]] = ALLOWED_AKS_INSTANCES) -> bool:
    az = AzureCli()
    ok = True
    for pool in INSTANCE_POOLS:
        info = az.show_nodepool(context.resource_group or "", context.cluster_name or "", pool)
        if info is None:
            out.skip(f"Nodepool '{pool}' not found, skipping instance type check.")
            continue
        ok &= _report(out, "Nodepool", pool, normalize_vm_size(info.vm_size), allowed[pool])
    return ok


def check_eks(context: RunContext, out: StatusWriter, allowed: Dict[str, List[str]] = ALLOWED_EKS_INSTANCES) -> bool:
    aws = AwsCli()
    ok = True
    for pool in INSTANCE_POOLS:
        group = aws.describe_nodegroup(context.cluster_name or "", pool)
        if group is None:
            out.skip(f"Nodegroup '{pool}' not found, skipping instance type check.")
            continue
        ok &= _report(out, "Nodegroup", pool, group.instance_type, allowed[pool])
    return ok


def run(context: RunContext, out: StatusWriter) -> None:
    """Validate node pool machine types."""
    if context.environment == EnvironmentKind.K3S:
        _print_hardware_reference(out)
        out.warn("K3s node hardware requirements are not auto-validated. Please check the above specs manually.")
        return

    if context.environment == EnvironmentKind.AKS:
        ok = check_aks(context, out)
    else:
        ok = check_eks(context, out)

    if ok:
        out.pass_("All nodes/nodepools meet minimum machine requirements.")
    else:
        out.fail("Some nodes/nodepools do not meet minimum machine requirements.")
