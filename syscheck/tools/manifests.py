"""
Manifest builders for probe workloads and admission dry-runs.
"""

from typing import Any, Dict, List, Optional

from .kube_models import Taint

Manifest = Dict[str, Any]

NO_ESCALATION = {"allowPrivilegeEscalation": False}


def _pod(
    name: str,
    containers: List[Dict[str, Any]],
    namespace: Optional[str] = None,
    labels: Optional[Dict[str, str]] = None,
    **spec: Any,
) -> Manifest:
    metadata: Dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    if labels:
        metadata["labels"] = labels
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": metadata,
        "spec": {**spec, "containers": containers, "restartPolicy": "Never"},
    }


def tolerations_for(taints: List[Taint]) -> List[Dict[str, str]]:
    """Tolerate every taint on a node, whatever its value."""
    return [{"key": t.key, "operator": "Exists", "effect": t.effect} for t in taints]


# ============================================================
# Probe workloads
# ============================================================

def sleeper_pod(name: str, image: str, seconds: int = 3600) -> Manifest:
    """A long-running pod used as an exec target."""
    return _pod(name, [{
        "name": "client",
        "image": image,
        "imagePullPolicy": "IfNotPresent",
        "command": ["sh", "-c", f"sleep {seconds}"],
        "securityContext": dict(NO_ESCALATION),
    }])


def net_server_pod(image: str, node_name: str, port: int, tolerations: List[Dict[str, str]]) -> Manifest:
    """agnhost HTTP echo server on the host network of one node."""
    spec: Dict[str, Any] = {"nodeName": node_name, "hostNetwork": True}
    if tolerations:
        spec["tolerations"] = tolerations
    return _pod(
        "net-server",
        [{
            "name": "server",
            "image": image,
            "imagePullPolicy": "IfNotPresent",
            "command": ["sh", "-c", f"/agnhost netexec --http-port={port}"],
            "securityContext": dict(NO_ESCALATION),
        }],
        labels={"app": "net-server"},
        **spec,
    )


def net_client_pod(
    image: str,
    node_name: str,
    tolerations: List[Dict[str, str]],
    node_selector: Optional[Dict[str, str]] = None,
) -> Manifest:
    """Client pod pinned to a node, used as the exec origin of HTTP probes."""
    spec: Dict[str, Any] = {"nodeName": node_name, "tolerations": tolerations}
    if node_selector:
        spec["nodeSelector"] = node_selector
    return _pod(
        "net-client",
        [{
            "name": "client",
            "image": image,
            "imagePullPolicy": "IfNotPresent",
            "command": ["sh", "-c", "sleep 3600"],
            "securityContext": dict(NO_ESCALATION),
        }],
        **spec,
    )


def net_service(port: int) -> Manifest:
    """ClusterIP service in front of net-server."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "net-svc"},
        "spec": {
            "selector": {"app": "net-server"},
            "ports": [{"name": "app", "port": port, "targetPort": port}],
        },
    }


# ============================================================
# Admission dry-run probes
# ============================================================

def _busybox(**extra: Any) -> Dict[str, Any]:
    container = {"name": "c", "image": "busybox", "command": ["sh", "-c", "sleep 1"]}
    container.update(extra)
    return container


def admission_probes(namespace: str) -> Dict[str, Manifest]:
    """
    Synthetic pods commonly blocked by restrictive admission policies.

    Only ever submitted with server-side dry-run.
    """
    return {
        "privileged-pod": _pod(
            "preflight-privileged-probe",
            [_busybox(securityContext={"privileged": True})],
            namespace=namespace,
        ),
        "hostpath-pod": _pod(
            "preflight-hostpath-probe",
            [_busybox(volumeMounts=[{"name": "hp", "mountPath": "/host"}])],
            namespace=namespace,
            volumes=[{"name": "hp", "hostPath": {"path": "/var/log", "type": "Directory"}}],
        ),
        "rootuser-pod": _pod(
            "preflight-rootuser-probe",
            [_busybox()],
            namespace=namespace,
            securityContext={"runAsNonRoot": False},
        ),
        "hostnetwork-pod": _pod(
            "preflight-hostnet-probe",
            [_busybox()],
            namespace=namespace,
            hostNetwork=True,
        ),
    }
