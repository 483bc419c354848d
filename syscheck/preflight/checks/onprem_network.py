"""
On-prem Intra-cluster Connectivity

Deploys an HTTP echo server on one K3s node and a client on another, then
probes pod-to-pod, pod-to-service and pod-to-node paths. All probe
resources live in a throwaway namespace that is always deleted.
"""

import logging
from typing import List, Optional, Tuple

from ...config import EnvironmentKind, RunContext
from ...config.defaults import DEFAULT_AGNHOST_IMAGE, ONPREM_NAMESPACE, ONPREM_PROBE_PORT, TAINT_EFFECT, TAINT_KEY
from ...tools import Kubectl, ProbeLifecycle, ProbeState
from ...tools.kube_models import Node
from ...tools.manifests import net_client_pod, net_server_pod, net_service, tolerations_for
from ...tools.resources import dump_pod_diagnostics
from ..models import StatusWriter

logger = logging.getLogger(__name__)

SECONDARY_NODE_NAME = "worker1"
WORKER_TOLERATION = {"key": TAINT_KEY, "operator": "Equal", "value": "worker", "effect": TAINT_EFFECT}


def select_nodes(kubectl: Kubectl) -> Tuple[Optional[Node], Optional[Node]]:
    """
    Pick the server (primary) and client (secondary) nodes.

    Returns:
        (primary, secondary); secondary is None when there is no worker1
    """
    control_plane = kubectl.list_nodes("node-role.kubernetes.io/control-plane")
    primary = control_plane[0] if control_plane else None
    if primary is None:
        nodes = kubectl.list_nodes()
        primary = nodes[0] if nodes else None

    workers = kubectl.list_nodes(f"kubernetes.io/hostname={SECONDARY_NODE_NAME}")
    exact = [n for n in workers if n.name == SECONDARY_NODE_NAME]
    secondary = (exact or workers or [None])[0]
    return primary, secondary


def _http_probe(kubectl: Kubectl, client: str, target: Optional[str], context: RunContext) -> bool:
    if not target:
        return False
    script = (
        f"timeout {context.http_timeout} wget -qO- --timeout=5 "
        f"http://{target}:{ONPREM_PROBE_PORT}/echo?msg=ok >/dev/null 2>&1"
    )
    return kubectl.exec(ONPREM_NAMESPACE, client, script, timeout=context.http_timeout + 15).ok


def _run_probes(
    kubectl: Kubectl,
    context: RunContext,
    out: StatusWriter,
    primary: Node,
    single_node: bool,
) -> None:
    server = kubectl.get_pod(ONPREM_NAMESPACE, "net-server")
    service = kubectl.get_service(ONPREM_NAMESPACE, "net-svc")
    server_ip = server.status.pod_ip if server else None
    service_ip = service.spec.cluster_ip if service else None
    node_ip = primary.internal_ip
    port = ONPREM_PROBE_PORT

    if _http_probe(kubectl, "net-client", server_ip, context):
        path = "single-node path" if single_node else "overlay cross-node"
        out.pass_(f"Pod → Pod HTTP to {server_ip}:{port} OK ({path}).")
    else:
        path = "single-node path" if single_node else "overlay/vxlan/bgp"
        out.fail(f"Pod → Pod HTTP to {server_ip}:{port} FAILED ({path}).")

    if _http_probe(kubectl, "net-client", service_ip, context):
        out.pass_(f"Pod → Service HTTP to {service_ip}:{port} OK (cluster service routing).")
    else:
        out.fail(f"Pod → Service HTTP to {service_ip}:{port} FAILED (kube-proxy/CNI path).")

    if _http_probe(kubectl, "net-client", node_ip, context):
        path = "single-node/hostNetwork" if single_node else "node path/firewall"
        out.pass_(f"Pod → Node HTTP to {node_ip}:{port} OK ({path}).")
    else:
        out.fail(f"Pod → Node HTTP to {node_ip}:{port} FAILED (node path/firewall).")


def run(context: RunContext, out: StatusWriter) -> None:
    """Validate intra-cluster HTTP paths on a K3s cluster."""
    if context.environment != EnvironmentKind.K3S:
        out.skip("On-prem intra-cluster connectivity check runs only for K3s.")
        return

    kubectl = Kubectl(context.kube_context)
    primary, secondary = select_nodes(kubectl)
    logger.debug("Probe nodes: primary=%s secondary=%s", primary and primary.name, secondary and secondary.name)

    if primary is None:
        out.fail("Could not determine a control-plane node for testing.")
        return

    single_node = secondary is None
    if single_node:
        secondary = primary
        out.warn(
            f"No '{SECONDARY_NODE_NAME}' (nodeType=worker) found. "
            "Using PRIMARY node; cross-node overlay path not validated."
        )

    server_image = context.server_image or DEFAULT_AGNHOST_IMAGE
    client_image = context.client_image or DEFAULT_AGNHOST_IMAGE
    client_tolerations: List[dict] = [dict(WORKER_TOLERATION)] + tolerations_for(secondary.spec.taints)

    with ProbeLifecycle(kubectl, ONPREM_NAMESPACE) as probe:
        kubectl.apply(
            [
                net_server_pod(server_image, primary.name, ONPREM_PROBE_PORT, tolerations_for(primary.spec.taints)),
                net_client_pod(
                    client_image,
                    secondary.name,
                    client_tolerations,
                    node_selector=None if single_node else {"nodeType": "worker"},
                ),
                net_service(ONPREM_PROBE_PORT),
            ],
            namespace=ONPREM_NAMESPACE,
        ).check()
        probe.advance(ProbeState.PODS_SUBMITTED)

        ready = True
        for pod in ("net-server", "net-client"):
            if not kubectl.wait_ready(ONPREM_NAMESPACE, pod, context.readiness_timeout):
                out.fail(f"{pod} did not become Ready within {context.readiness_timeout}s.")
                dump_pod_diagnostics(kubectl, ONPREM_NAMESPACE, pod, out.echo)
                ready = False
        probe.advance(ProbeState.READY_OR_TIMEOUT)

        if ready:
            _run_probes(kubectl, context, out, primary, single_node)
            probe.advance(ProbeState.PROBES_RUN)

    out.info(f"On-prem connectivity probes cleaned up. PRIMARY={primary.name} SECONDARY={secondary.name}")
