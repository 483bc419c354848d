"""
NetworkPolicy Audit

Flags namespace-wide default-deny NetworkPolicies and Calico global
policies that may block platform traffic. Findings are advisory; this
check never fails.
"""

from collections import Counter
from typing import List

from ...config import RunContext
from ...tools import CommandError, Kubectl
from ...tools.kube_models import NetworkPolicy, PolicyDirection
from ..models import StatusWriter

CALICO_GLOBAL_POLICIES = "globalnetworkpolicies.crd.projectcalico.org"
CALICO_GLOBAL_SETS = "globalnetworksets.crd.projectcalico.org"


def default_deny(policies: List[NetworkPolicy], direction: PolicyDirection) -> List[str]:
    """Qualified names of the policies that deny all traffic of a direction."""
    return [p.qualified_name for p in policies if p.is_default_deny(direction)]


def _bullets(out: StatusWriter, items: List[str]) -> None:
    for item in items:
        out.echo(f"  • {item}")


def _calico_names(kubectl: Kubectl, resource: str, out: StatusWriter) -> List[str]:
    """Names of a Calico global resource; unreadable lists become a WARN."""
    try:
        items = kubectl.list_objects(resource, all_namespaces=False)
    except CommandError as e:
        out.warn(f"Could not list {resource}: {e}")
        return []
    return [item.get("metadata", {}).get("name", "") for item in items]


def run(context: RunContext, out: StatusWriter) -> None:
    """Audit NetworkPolicies for default-deny patterns."""
    kubectl = Kubectl(context.kube_context)

    if not kubectl.has_api_resource("networkpolicies"):
        out.skip("NetworkPolicy API not available on this cluster.")
        return

    try:
        policies = kubectl.list_network_policies()
        crds = kubectl.list_crd_names()
    except CommandError as e:
        out.warn(f"Could not read NetworkPolicies: {e}")
        return
    warned = False

    counts = Counter(p.metadata.namespace for p in policies)
    if counts:
        out.info("NetworkPolicies present (namespace → count):")
        for namespace in sorted(counts):
            out.echo(f"  • {namespace}: {counts[namespace]}")
    else:
        out.info("No NetworkPolicies found in any namespace.")

    for direction in PolicyDirection:
        denied = default_deny(policies, direction)
        if denied:
            out.warn(f"Default-deny {direction.value} policies detected (apply to all pods in namespace):")
            _bullets(out, denied)
            warned = True

    if CALICO_GLOBAL_POLICIES in crds:
        names = _calico_names(kubectl, CALICO_GLOBAL_POLICIES, out)
        if names:
            out.warn("Calico GlobalNetworkPolicies present (cluster-wide); verify they allow required traffic:")
            _bullets(out, names)
            warned = True
    if CALICO_GLOBAL_SETS in crds:
        names = _calico_names(kubectl, CALICO_GLOBAL_SETS, out)
        if names:
            out.info("Calico GlobalNetworkSets present:")
            _bullets(out, names)

    if warned:
        out.warn("Review the NetworkPolicies above; ensure namespaces used for DryvIQ have explicit allow rules.")
    else:
        out.pass_("No namespace-wide default-deny NetworkPolicies detected.")
