"""
External Endpoint Reachability

Probes the HTTPS endpoints the platform pulls images, charts and
installers from. On managed clusters the probe runs from inside the
cluster; on K3s it runs from this host.
"""

import logging
import ssl
import urllib.error
import urllib.request
from typing import Callable

from ...config import RunContext
from ...config.defaults import NET_CHECK_IMAGE, NET_CHECK_POD, NET_CHECK_READY_TIMEOUT, REQUIRED_ENDPOINTS
from ...tools import CommandError, Kubectl, temporary_pod
from ...tools.manifests import sleeper_pod
from ..models import StatusWriter

logger = logging.getLogger(__name__)


def head_request(url: str, timeout: float) -> bool:
    """
    Issue an HTTPS HEAD request from this host.

    Any HTTP response counts as reachable; only connection-level errors
    (DNS, TLS, refused, timeout) do not.
    """
    request = urllib.request.Request(url, method="HEAD")
    try:
        with urllib.request.urlopen(request, timeout=timeout, context=ssl.create_default_context()):
            return True
    except urllib.error.HTTPError:
        return True
    except (urllib.error.URLError, OSError) as e:
        logger.debug("HEAD %s failed: %s", url, e)
        return False


def _probe_all(out: StatusWriter, probe: Callable[[str], bool], suffix: str = "") -> bool:
    ok = True
    for endpoint in REQUIRED_ENDPOINTS:
        url = f"https://{endpoint}"
        if probe(url):
            out.pass_(f"Able to connect to {url}{suffix}")
        else:
            out.fail(f"Cannot connect to {url}{suffix}")
            ok = False
    return ok


def _in_cluster(context: RunContext, out: StatusWriter) -> bool:
    kubectl = Kubectl(context.kube_context)
    namespace = context.target_namespace
    manifest = sleeper_pod(NET_CHECK_POD, NET_CHECK_IMAGE, seconds=120)

    with temporary_pod(kubectl, namespace, manifest) as pod:
        if not kubectl.wait_ready(namespace, pod, NET_CHECK_READY_TIMEOUT):
            out.fail(f"Diagnostic pod {pod} did not start correctly in namespace {namespace}.")
            return False

        def probe(url: str) -> bool:
            try:
                result = kubectl.exec_argv(
                    namespace, pod,
                    ["curl", "-sS", "--max-time", str(context.endpoint_timeout), "-o", "/dev/null", "--head", url],
                    timeout=context.endpoint_timeout + 15,
                )
            except CommandError as e:
                logger.debug("Probe of %s failed: %s", url, e)
                return False
            return result.ok

        return _probe_all(out, probe, suffix=" (in-cluster)")


def run(context: RunContext, out: StatusWriter) -> None:
    """Check reachability of the required external endpoints."""
    if context.environment.is_cloud:
        ok = _in_cluster(context, out)
    else:
        ok = _probe_all(out, lambda url: head_request(url, context.endpoint_timeout))

    if ok:
        out.pass_("All external endpoints reachable.")
    else:
        out.fail("One or more external endpoints were not reachable.")
