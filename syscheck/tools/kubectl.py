"""
Typed kubectl client.

Wraps the kubectl binary, requesting JSON output wherever kubectl offers
it and parsing it into the models in kube_models.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from .kube_models import Namespace, NetworkPolicy, Node, Pod, Service
from .runner import DEFAULT_TIMEOUT, CommandError, CommandResult, CommandTimeoutError, run_command

logger = logging.getLogger(__name__)

Manifest = Dict[str, Any]


class Kubectl:
    """
    Thin client over the kubectl CLI.

    All commands are pinned to one kube context when one is given, so a
    run never drifts if the user's current context changes underneath it.
    """

    def __init__(self, context: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the client.

        Args:
            context: kube context name, or None for the current context
            timeout: Default per-command timeout in seconds
        """
        self.context = context
        self.timeout = timeout

    def run(
        self,
        *args: str,
        timeout: Optional[float] = None,
        input: Optional[str] = None,
    ) -> CommandResult:
        """Run a kubectl subcommand."""
        command = ["kubectl"]
        if self.context:
            command += ["--context", self.context]
        command += list(args)
        return run_command(command, timeout=timeout or self.timeout, input=input)

    def get_json(self, *args: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Run a kubectl subcommand with ``-o json`` and decode the result."""
        result = self.run(*args, "-o", "json", timeout=timeout).check()
        try:
            return json.loads(result.stdout or "{}")
        except ValueError as e:
            raise CommandError(result.command, f"Invalid JSON from kubectl: {e}")

    def _items(self, *args: str) -> List[Dict[str, Any]]:
        return self.get_json(*args).get("items", [])

    # ------------------------------------------------------------------
    # Contexts and client
    # ------------------------------------------------------------------

    def current_context(self) -> Optional[str]:
        result = self.run("config", "current-context")
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def list_contexts(self) -> List[str]:
        result = self.run("config", "get-contexts", "-o", "name")
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def use_context(self, name: str) -> None:
        self.run("config", "use-context", name).check()

    def client_version(self) -> Optional[str]:
        """Client gitVersion without the leading ``v``, e.g. ``1.29.3``."""
        data = self.get_json("version", "--client")
        version = data.get("clientVersion", {}).get("gitVersion", "")
        return version.lstrip("v") or None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def api_resources(self, api_group: Optional[str] = None) -> List[str]:
        """Resource names as ``plural[.group]``."""
        args = ["api-resources", "-o", "name"]
        if api_group:
            args.append(f"--api-group={api_group}")
        result = self.run(*args)
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def has_api_resource(self, plural: str) -> bool:
        """Whether a resource is served, matched on its plural name."""
        return any(r.split(".", 1)[0] == plural for r in self.api_resources())

    def list_crd_names(self) -> List[str]:
        return [item.get("metadata", {}).get("name", "") for item in self._items("get", "crd")]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_nodes(self, selector: Optional[str] = None) -> List[Node]:
        args = ["get", "nodes"]
        if selector:
            args += ["-l", selector]
        return [Node.model_validate(item) for item in self._items(*args)]

    def list_namespaces(self) -> List[Namespace]:
        return [Namespace.model_validate(item) for item in self._items("get", "namespaces")]

    def namespace_exists(self, name: str) -> bool:
        return self.run("get", "namespace", name).ok

    def get_namespace(self, name: str) -> Optional[Namespace]:
        result = self.run("get", "namespace", name, "-o", "json")
        if not result.ok:
            return None
        return Namespace.model_validate(json.loads(result.stdout or "{}"))

    def list_network_policies(self) -> List[NetworkPolicy]:
        items = self._items("get", "networkpolicies", "--all-namespaces")
        return [NetworkPolicy.model_validate(item) for item in items]

    def list_objects(self, resource: str, all_namespaces: bool = True) -> List[Dict[str, Any]]:
        """Raw items of an arbitrary (often custom) resource."""
        args = ["get", resource]
        if all_namespaces:
            args.append("--all-namespaces")
        return self._items(*args)

    def get_pod(self, namespace: str, name: str) -> Optional[Pod]:
        result = self.run("-n", namespace, "get", "pod", name, "-o", "json")
        if not result.ok:
            return None
        return Pod.model_validate(json.loads(result.stdout))

    def get_service(self, namespace: str, name: str) -> Optional[Service]:
        result = self.run("-n", namespace, "get", "service", name, "-o", "json")
        if not result.ok:
            return None
        return Service.model_validate(json.loads(result.stdout))

    def describe_pod(self, namespace: str, name: str) -> str:
        return self.run("-n", namespace, "describe", f"pod/{name}").output

    def recent_events(self, namespace: str, limit: int = 50) -> str:
        result = self.run("-n", namespace, "get", "events", "--sort-by=.lastTimestamp")
        lines = result.output.splitlines()
        return "\n".join(lines[-limit:])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def apply(
        self,
        manifests: Union[Manifest, Iterable[Manifest]],
        namespace: Optional[str] = None,
        dry_run: bool = False,
    ) -> CommandResult:
        """
        Apply one or more manifests through stdin.

        With ``dry_run`` the API server validates and admits the objects
        without persisting them.
        """
        if isinstance(manifests, dict):
            manifests = [manifests]
        document = yaml.safe_dump_all(list(manifests), sort_keys=False)

        args = []
        if namespace:
            args += ["-n", namespace]
        args += ["apply", "-f", "-"]
        if dry_run:
            args.append("--dry-run=server")
        return self.run(*args, input=document)

    def create_namespace(self, name: str) -> CommandResult:
        return self.run("create", "namespace", name)

    def delete_namespace(self, name: str, timeout: float = 10) -> CommandResult:
        return self.run(
            "delete", "namespace", name, "--ignore-not-found", "--wait=false",
            timeout=timeout,
        )

    def wait_namespace_deleted(self, name: str, timeout: int) -> bool:
        """
        Block until the namespace is gone, bounded by ``timeout`` seconds.

        Returns:
            False on timeout or any kubectl failure
        """
        try:
            result = self.run(
                "wait", "--for=delete", f"namespace/{name}", f"--timeout={timeout}s",
                timeout=timeout + 15,
            )
        except CommandTimeoutError:
            return False
        return result.ok

    def delete_pod(self, namespace: str, name: str, timeout: float = 10) -> CommandResult:
        return self.run(
            "-n", namespace, "delete", "pod", name, "--ignore-not-found", "--wait=false",
            timeout=timeout,
        )

    def wait_ready(self, namespace: str, pod: str, timeout: int) -> bool:
        """
        Block until the pod is Ready, bounded by ``timeout`` seconds.

        Returns:
            False on timeout or any kubectl failure
        """
        try:
            result = self.run(
                "-n", namespace, "wait", "--for=condition=Ready", f"--timeout={timeout}s", f"pod/{pod}",
                timeout=timeout + 15,
            )
        except CommandTimeoutError:
            return False
        return result.ok

    def exec(self, namespace: str, pod: str, script: str, timeout: Optional[float] = None) -> CommandResult:
        """Run a shell snippet inside a pod."""
        return self.run("-n", namespace, "exec", pod, "--", "sh", "-c", script, timeout=timeout)

    def exec_argv(self, namespace: str, pod: str, argv: List[str], timeout: Optional[float] = None) -> CommandResult:
        """Run a command inside a pod without a shell."""
        return self.run("-n", namespace, "exec", pod, "--", *argv, timeout=timeout)
