"""
Temporary cluster resources with guaranteed release.

Probe checks create namespaces and pods on the target cluster. Everything
created here is deleted on every exit path: normal return, early return,
an exception, or an interrupt (KeyboardInterrupt / SystemExit from SIGTERM).
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator

from .kubectl import Kubectl, Manifest
from .runner import CommandError, CommandResult

logger = logging.getLogger(__name__)

# Seconds to wait for a namespace left Terminating by an earlier run
NAMESPACE_DELETION_TIMEOUT = 120


class ProbeState(str, Enum):
    """Lifecycle of a provisioning probe."""
    INIT = "init"
    NAMESPACE_CREATED = "namespace_created"
    PODS_SUBMITTED = "pods_submitted"
    READY_OR_TIMEOUT = "ready_or_timeout"
    PROBES_RUN = "probes_run"
    CLEANUP = "cleanup"
    DONE = "done"


def _release(action: Callable[[], CommandResult], what: str) -> None:
    """Best-effort delete; a failed delete is logged, never raised."""
    try:
        result = action()
    except CommandError as e:
        logger.warning("Cleanup of %s failed: %s", what, e)
        return
    if not result.ok:
        logger.warning("Cleanup of %s failed: %s", what, result.output)
    else:
        logger.debug("Released %s", what)


class ProbeLifecycle:
    """
    Owns one temporary namespace and tracks the probe state machine.

    INIT -> NAMESPACE_CREATED -> PODS_SUBMITTED -> READY_OR_TIMEOUT
    -> PROBES_RUN -> CLEANUP -> DONE

    Leaving the ``with`` block always passes through CLEANUP, whichever
    state the probe had reached.

    Usage:
        with ProbeLifecycle(kubectl, "my-probe-ns") as probe:
            kubectl.apply(manifest, namespace=probe.namespace)
            probe.advance(ProbeState.PODS_SUBMITTED)
            ...
    """

    def __init__(self, kubectl: Kubectl, namespace: str, deletion_timeout: int = NAMESPACE_DELETION_TIMEOUT):
        self.kubectl = kubectl
        self.namespace = namespace
        self.deletion_timeout = deletion_timeout
        self.state = ProbeState.INIT

    def advance(self, state: ProbeState) -> None:
        logger.debug("Probe %s: %s -> %s", self.namespace, self.state.value, state.value)
        self.state = state

    def __enter__(self) -> "ProbeLifecycle":
        try:
            self._await_previous_deletion()
            result = self.kubectl.create_namespace(self.namespace)
            # "object is being deleted" also carries AlreadyExists
            if not result.ok and ("AlreadyExists" not in result.output or "being deleted" in result.output):
                result.check()
        except BaseException:
            self._cleanup()
            raise
        self.advance(ProbeState.NAMESPACE_CREATED)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._cleanup()
        return False

    def _await_previous_deletion(self) -> None:
        namespace = self.kubectl.get_namespace(self.namespace)
        if namespace is None or not namespace.is_terminating:
            return
        logger.info("Namespace %s is still terminating; waiting up to %ss", self.namespace, self.deletion_timeout)
        if not self.kubectl.wait_namespace_deleted(self.namespace, self.deletion_timeout):
            logger.warning("Namespace %s did not finish terminating", self.namespace)

    def _cleanup(self) -> None:
        self.advance(ProbeState.CLEANUP)
        _release(lambda: self.kubectl.delete_namespace(self.namespace), f"namespace {self.namespace}")
        self.advance(ProbeState.DONE)


@contextmanager
def temporary_pod(kubectl: Kubectl, namespace: str, manifest: Manifest) -> Iterator[str]:
    """
    Create a pod from a manifest and delete it on exit.

    Yields:
        The pod name
    """
    name = manifest["metadata"]["name"]
    try:
        kubectl.apply(manifest, namespace=namespace).check()
        yield name
    finally:
        _release(lambda: kubectl.delete_pod(namespace, name), f"pod {namespace}/{name}")


def dump_pod_diagnostics(
    kubectl: Kubectl,
    namespace: str,
    pod: str,
    echo: Callable[[str], None],
    events: bool = True,
) -> None:
    """Print describe output (and recent events) for a pod that failed to start."""
    echo(f"------ DESCRIBE {pod} ------")
    echo(kubectl.describe_pod(namespace, pod))
    if events:
        echo("------ RECENT EVENTS ------")
        echo(kubectl.recent_events(namespace))
