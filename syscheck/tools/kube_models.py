"""
Typed views of the Kubernetes objects the checks read.

Only the fields the checks use are modelled; everything else in the
``kubectl -o json`` payload is ignored.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

PSA_ENFORCE_LABEL = "pod-security.kubernetes.io/enforce"
PSA_ENFORCE_VERSION_LABEL = "pod-security.kubernetes.io/enforce-version"
CONTROL_PLANE_LABEL = "node-role.kubernetes.io/control-plane"


class KubeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ObjectMeta(KubeModel):
    name: str = ""
    namespace: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)


# ============================================================
# Nodes
# ============================================================

class Taint(KubeModel):
    key: str
    value: Optional[str] = None
    effect: str = ""

    def __str__(self) -> str:
        value = f"={self.value}" if self.value else ""
        return f"{self.key}{value}:{self.effect}"


class NodeAddress(KubeModel):
    type: str
    address: str


class NodeSpec(KubeModel):
    taints: List[Taint] = Field(default_factory=list)


class NodeStatus(KubeModel):
    addresses: List[NodeAddress] = Field(default_factory=list)


class Node(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: NodeSpec = Field(default_factory=NodeSpec)
    status: NodeStatus = Field(default_factory=NodeStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_control_plane(self) -> bool:
        return CONTROL_PLANE_LABEL in self.metadata.labels

    @property
    def internal_ip(self) -> Optional[str]:
        for addr in self.status.addresses:
            if addr.type == "InternalIP":
                return addr.address
        return None

    def has_taint(self, key: str, value: Optional[str], effect: str) -> bool:
        return any(
            t.key == key and t.value == value and t.effect == effect
            for t in self.spec.taints
        )


# ============================================================
# Namespaces, pods, services
# ============================================================

class NamespaceStatus(KubeModel):
    phase: Optional[str] = None


class Namespace(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: NamespaceStatus = Field(default_factory=NamespaceStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def psa_enforce(self) -> Optional[str]:
        return self.metadata.labels.get(PSA_ENFORCE_LABEL)

    @property
    def psa_enforce_version(self) -> Optional[str]:
        return self.metadata.labels.get(PSA_ENFORCE_VERSION_LABEL)

    @property
    def is_terminating(self) -> bool:
        return self.status.phase == "Terminating"


class PodStatus(KubeModel):
    phase: Optional[str] = None
    pod_ip: Optional[str] = Field(None, alias="podIP")


class Pod(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: PodStatus = Field(default_factory=PodStatus)

    @property
    def name(self) -> str:
        return self.metadata.name


class ServiceSpec(KubeModel):
    cluster_ip: Optional[str] = Field(None, alias="clusterIP")


class Service(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ServiceSpec = Field(default_factory=ServiceSpec)


# ============================================================
# Network policies
# ============================================================

class PolicyDirection(str, Enum):
    """Traffic direction of a NetworkPolicy rule set."""
    INGRESS = "Ingress"
    EGRESS = "Egress"


class LabelSelector(KubeModel):
    match_labels: Dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: List[Dict[str, Any]] = Field(default_factory=list, alias="matchExpressions")

    @property
    def is_empty(self) -> bool:
        """An empty selector selects every pod in the namespace."""
        return not self.match_labels and not self.match_expressions


class NetworkPolicySpec(KubeModel):
    pod_selector: LabelSelector = Field(default_factory=LabelSelector, alias="podSelector")
    policy_types: List[str] = Field(default_factory=list, alias="policyTypes")
    ingress: Optional[List[Dict[str, Any]]] = None
    egress: Optional[List[Dict[str, Any]]] = None


class NetworkPolicy(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: NetworkPolicySpec = Field(default_factory=NetworkPolicySpec)

    @property
    def qualified_name(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    def rules(self, direction: PolicyDirection) -> List[Dict[str, Any]]:
        if direction == PolicyDirection.INGRESS:
            return self.spec.ingress or []
        return self.spec.egress or []

    def is_default_deny(self, direction: PolicyDirection) -> bool:
        """
        Whether this policy blocks all traffic of a direction namespace-wide.

        All three must hold: empty pod selector, the direction declared in
        policyTypes, and no rules for that direction.
        """
        return (
            self.spec.pod_selector.is_empty
            and direction.value in self.spec.policy_types
            and not self.rules(direction)
        )
