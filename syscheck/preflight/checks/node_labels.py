"""
Node Pool, Name and Taint Validation
"""

import re
from typing import List

from ...config import EnvironmentKind, RunContext
from ...config.defaults import AKS_TAINTED_POOLS, K3S_REQUIRED_NODES, TAINT_EFFECT, TAINT_KEY
from ...tools import AzureCli, Kubectl
from ...tools.kube_models import Node
from ..models import StatusWriter

WORKER_NAME = re.compile(r"^worker\d+")


def nodes_in_pool(kubectl: Kubectl, pool: str) -> List[Node]:
    """Nodes of a pool, by ``agentpool`` label, then ``pool`` label, then name."""
    for selector in (f"agentpool={pool}", f"pool={pool}"):
        nodes = kubectl.list_nodes(selector)
        if nodes:
            return nodes
    return [n for n in kubectl.list_nodes() if pool in n.name]


def check_aks(context: RunContext, out: StatusWriter) -> bool:
    az = AzureCli()
    kubectl = Kubectl(context.kube_context)
    ok = True

    for pool in AKS_TAINTED_POOLS:
        taint = f"{TAINT_KEY}={pool}:{TAINT_EFFECT}"
        info = az.show_nodepool(context.resource_group or "", context.cluster_name or "", pool)
        if info is None:
            out.fail(f"Nodepool '{pool}' not found in cluster.")
            ok = False
            continue

        nodes = nodes_in_pool(kubectl, pool)
        if not nodes:
            out.warn(f"No nodes found in pool '{pool}'")
            if info.has_taint(taint):
                out.pass_(f"Nodepool '{pool}' (no nodes running) is configured with taint '{taint}'")
            else:
                out.fail(f"Nodepool '{pool}' (no nodes running) does NOT have taint '{taint}'")
                ok = False
            continue

        out.pass_(f"Found {len(nodes)} node(s) in pool '{pool}'")
        if any(n.has_taint(TAINT_KEY, pool, TAINT_EFFECT) for n in nodes):
            out.pass_(f"Found taint '{taint}' on a node in pool '{pool}'")
        else:
            out.fail(f"Taint '{taint}' NOT found on any node in pool '{pool}'")
            ok = False

    return ok


def check_k3s(context: RunContext, out: StatusWriter) -> bool:
    names = [n.name for n in Kubectl(context.kube_context).list_nodes()]
    ok = True

    for required in K3S_REQUIRED_NODES:
        if required in names:
            out.pass_(f"Node named '{required}' found")
        else:
            out.fail(f"Node named '{required}' not found")
            ok = False

    workers = [name for name in names if WORKER_NAME.match(name)]
    if workers:
        out.pass_(f"Found {len(workers)} workerN node(s)")
    else:
        out.fail("No workerN nodes found")
        ok = False

    return ok


def run(context: RunContext, out: StatusWriter) -> None:
    """Check required node pools, node names and dedicated taints."""
    if context.environment == EnvironmentKind.EKS:
        out.skip("Node pool and taint checks are not implemented for EKS.")
        return

    if context.environment == EnvironmentKind.AKS:
        ok = check_aks(context, out)
    else:
        ok = check_k3s(context, out)

    if ok:
        out.pass_("All required node pools/names/taints present.")
    else:
        out.fail("Issues found in node pools/names/taints.")
