"""
Cloud Database Connectivity

Verifies in-cluster TCP reachability of managed database endpoints
from a short-lived probe pod. TCP only; no authentication is attempted.
"""

import logging

from ...config import DbEndpoint, RunContext
from ...config.defaults import DB_NAMESPACE, DB_PROBE_POD, DEFAULT_DB_CLIENT_IMAGE
from ...tools import Kubectl, ProbeLifecycle, ProbeState, temporary_pod
from ...tools.manifests import sleeper_pod
from ..models import StatusWriter

logger = logging.getLogger(__name__)

UNREACHABLE_HINTS = [
    "Verify NSG/Security Group / firewall rules allow egress from nodes to {endpoint}.",
    "If Azure Flexible Server is PRIVATE, ensure VNet integration + privatelink DNS are configured.",
    "If PUBLIC, ensure server firewall allows your node public egress IP range.",
]


class ProbeShell:
    """Runs shell snippets in the probe pod."""

    def __init__(self, kubectl: Kubectl, pod: str, timeout: int):
        self.kubectl = kubectl
        self.pod = pod
        self.timeout = timeout

    def ok(self, script: str) -> bool:
        return self.kubectl.exec(DB_NAMESPACE, self.pod, f"{script} >/dev/null 2>&1", timeout=self.timeout + 15).ok

    def show(self, script: str) -> str:
        return self.kubectl.exec(DB_NAMESPACE, self.pod, script, timeout=self.timeout + 15).output


def resolves(shell: ProbeShell, host: str) -> bool:
    return shell.ok(f"nslookup {host}") or shell.ok(f"ping -c1 -W1 {host}")


def tcp_connects(shell: ProbeShell, endpoint: DbEndpoint, has_nc: bool, timeout: int) -> bool:
    """TCP connect with nc, or /dev/tcp then wget when nc is unavailable."""
    host, port = endpoint.host, endpoint.port
    if has_nc:
        return shell.ok(f"timeout {timeout} nc -vz -w {timeout} {host} {port}")
    return (
        shell.ok(f"timeout {timeout} sh -c ': > /dev/tcp/{host}/{port}'")
        or shell.ok(f"timeout {timeout} wget -qO- --spider tcp://{host}:{port}")
    )


def _probe_endpoints(shell: ProbeShell, context: RunContext, out: StatusWriter) -> bool:
    timeout = context.db_timeout_secs
    ok = True

    if shell.ok("true"):
        out.info("Probe pod DNS config:")
        out.echo(shell.show("echo '--- /etc/resolv.conf ---'; cat /etc/resolv.conf 2>/dev/null || true"))

    has_nc = shell.ok("command -v nc")
    logger.debug("nc available in probe pod: %s", has_nc)

    for endpoint in context.db_endpoints:
        if not resolves(shell, endpoint.host):
            out.fail(f"DNS/host resolution failed for {endpoint.host} from inside the cluster.")
            out.echo(shell.show(f"echo 'nslookup {endpoint.host}:'; nslookup {endpoint.host} 2>&1 || true"))
            ok = False
            continue

        if tcp_connects(shell, endpoint, has_nc, timeout):
            out.pass_(f"Reachable: {endpoint} (in-cluster)")
            continue

        out.fail(f"Cannot connect to {endpoint} from inside the cluster (timeout={timeout}s).")
        out.echo("  Hints:")
        for hint in UNREACHABLE_HINTS:
            out.echo(f"   • {hint.format(endpoint=endpoint)}")
        ok = False

    return ok


def run(context: RunContext, out: StatusWriter) -> None:
    """Check TCP reachability of the configured DB endpoints from inside the cluster."""
    if not context.environment.is_cloud:
        out.skip("Cloud DB connectivity check runs only for AKS/EKS.")
        return

    if not context.db_endpoints:
        out.skip("No DB endpoints provided; skipping DB connectivity check.")
        return

    kubectl = Kubectl(context.kube_context)
    manifest = sleeper_pod(DB_PROBE_POD, context.client_image or DEFAULT_DB_CLIENT_IMAGE)

    with ProbeLifecycle(kubectl, DB_NAMESPACE) as probe:
        with temporary_pod(kubectl, DB_NAMESPACE, manifest) as pod:
            probe.advance(ProbeState.PODS_SUBMITTED)
            ready = kubectl.wait_ready(DB_NAMESPACE, pod, context.readiness_timeout)
            probe.advance(ProbeState.READY_OR_TIMEOUT)

            if not ready:
                out.fail(f"{pod} pod did not become Ready within {context.readiness_timeout}s.")
                out.echo(kubectl.describe_pod(DB_NAMESPACE, pod))
                out.info("If nodes are tainted, schedule a temporary untainted pool or add tolerations.")
                return

            ok = _probe_endpoints(ProbeShell(kubectl, pod, context.db_timeout_secs), context, out)
            probe.advance(ProbeState.PROBES_RUN)

    if ok:
        out.pass_("All provided DB endpoints are reachable from inside the cluster.")
    else:
        out.fail("One or more DB endpoints were not reachable.")
