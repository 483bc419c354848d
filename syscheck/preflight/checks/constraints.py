"""
Admission Constraint Audit

Reports Pod Security Admission levels and policy-engine constraints
(Gatekeeper, Kyverno), then asks the API server to admit a handful of
typical platform pods with a server-side dry-run. Nothing is persisted.
"""

import logging

from ...config import RunContext
from ...tools import CommandError, Kubectl
from ...tools.manifests import admission_probes
from ..models import StatusWriter

logger = logging.getLogger(__name__)

GATEKEEPER_GROUP = "constraints.gatekeeper.sh"
KYVERNO_CLUSTER_POLICIES = "clusterpolicies.kyverno.io"


def report_pod_security(kubectl: Kubectl, out: StatusWriter) -> None:
    try:
        namespaces = kubectl.list_namespaces()
    except CommandError as e:
        logger.debug("Listing namespaces failed: %s", e)
        namespaces = []
    if not namespaces:
        out.warn("Could not read namespace labels for Pod Security (no output).")
        return

    for ns in namespaces:
        level = ns.psa_enforce
        if not level:
            continue
        version = f" (version {ns.psa_enforce_version})" if ns.psa_enforce_version else ""
        message = f"Namespace '{ns.name}' enforces Pod Security: level={level}{version}"
        if level == "restricted":
            out.warn(message)
        else:
            out.info(message)


def report_gatekeeper(kubectl: Kubectl, out: StatusWriter) -> None:
    kinds = kubectl.api_resources(GATEKEEPER_GROUP)
    if not kinds:
        out.info("Gatekeeper constraints API not detected.")
        return

    out.info(f"Gatekeeper constraints API detected: {' '.join(kinds)}")
    for kind in kinds:
        short = kind.split(".", 1)[0]
        try:
            items = kubectl.list_objects(kind, all_namespaces=False)
        except CommandError as e:
            out.warn(f"Could not list Gatekeeper {short} constraints: {e}")
            continue
        for item in items:
            name = item.get("metadata", {}).get("name", "")
            out.warn(f"Gatekeeper constraint present: {short} {name}")


def report_kyverno(kubectl: Kubectl, out: StatusWriter) -> None:
    if KYVERNO_CLUSTER_POLICIES not in kubectl.api_resources():
        out.info("Kyverno not detected.")
        return

    try:
        policies = kubectl.list_objects(KYVERNO_CLUSTER_POLICIES, all_namespaces=False)
    except CommandError as e:
        out.warn(f"Could not list Kyverno ClusterPolicies: {e}")
        return
    if not policies:
        out.info("Kyverno API detected, but no ClusterPolicies found.")
    for policy in policies:
        out.warn(f"Kyverno ClusterPolicy present: {policy.get('metadata', {}).get('name', '')}")


def run(context: RunContext, out: StatusWriter) -> None:
    """Audit admission policies and dry-run typical pods."""
    kubectl = Kubectl(context.kube_context)
    namespace = context.target_namespace

    report_pod_security(kubectl, out)
    report_gatekeeper(kubectl, out)
    report_kyverno(kubectl, out)

    if not kubectl.namespace_exists(namespace):
        out.warn(
            f"Target namespace '{namespace}' does not exist "
            "(dry-run tests validate cluster-level policies only)."
        )

    for name, manifest in admission_probes(namespace).items():
        result = kubectl.apply(manifest, dry_run=True)
        if result.ok:
            out.pass_(f"Dry-run '{name}' accepted by admission.")
        else:
            logger.debug("Dry-run %s rejected: %s", name, result.output)
            out.fail(f"Dry-run '{name}' rejected: {result.output}")

    out.info(
        "This check reports likely admission/PSA policy rejections via dry-run. "
        f"Adjust TARGET_NAMESPACE if needed (current: '{namespace}')."
    )
