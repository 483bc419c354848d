"""
Static allow-lists, thresholds and reference data used by the checks.
"""

from typing import Dict, List, Tuple

# ============================================================
# Machine types
# ============================================================

# Pools whose instance types are validated, in report order.
INSTANCE_POOLS: List[str] = ["dryviq", "migration", "discover", "proxy", "clickhouse"]

_AKS_4_CORE = [
    "Standard_D4s_V3", "Standard_D4s_V4", "Standard_D4s_V5",
    "Standard_D4as_V5",
    "Standard_D4ads_V5", "Standard_D4ads_V6",
    "Standard_D4ls_V5", "Standard_D4als_V6",
    "Standard_F4s_V2",
]

_AKS_8_CORE = [
    "Standard_D8s_V3", "Standard_D8s_V4", "Standard_D8s_V5",
    "Standard_D8as_V5",
    "Standard_D8ads_V5", "Standard_D8ads_V6",
    "Standard_D8ls_V5", "Standard_D8als_V6",
    "Standard_F8s_V2",
]

ALLOWED_AKS_INSTANCES: Dict[str, List[str]] = {
    # 4c/8GB (low-mem) or 4c/16GB, amd64
    "dryviq": list(_AKS_4_CORE),
    "migration": list(_AKS_4_CORE),
    # 8c/16GB (low-mem) or 8c/32GB, amd64
    "discover": list(_AKS_8_CORE),
    # 2c/4GB, amd64
    "proxy": [
        "Standard_D2als_V6", "Standard_D2ls_V5",
        "Standard_F2s_V2",
        "Standard_D2s_V3",
        "Standard_B2s_V2", "Standard_B2ls_V2",
    ],
    # 4c/16GB, 4c/32GB or 8c/32GB on amd64 or arm64 (Ampere *ps_V5)
    "clickhouse": [
        "Standard_D4s_V3", "Standard_D4s_V4", "Standard_D4s_V5",
        "Standard_D8s_V3", "Standard_D8s_V4", "Standard_D8s_V5",
        "Standard_E4s_V5", "Standard_E4ps_V5",
        "Standard_D4ps_V5", "Standard_D8ps_V5",
        "Standard_E8s_V5", "Standard_E8ps_V5",
    ],
}

ALLOWED_EKS_INSTANCES: Dict[str, List[str]] = {
    "dryviq": ["m5.xlarge", "m5a.xlarge"],
    "migration": ["m5.xlarge", "m5a.xlarge"],
    "discover": ["m5.2xlarge"],
    "proxy": ["t3.micro", "t3.small"],
    "clickhouse": ["r5.2xlarge", "r5.4xlarge"],
}

K3S_HARDWARE_REFERENCE: List[Tuple[str, str]] = [
    ("master", "8 cores, 16GB RAM, 512GB+ disk"),
    ("pg", "8 cores, 32GB RAM, 1TB+ disk"),
    ("ch", "8 cores, 32GB RAM, 1TB+ disk"),
    ("logging", "4 cores, 16GB RAM, 512GB+ disk"),
    ("workerN", "8 cores, 32GB RAM, 128GB+ disk"),
]

# ============================================================
# Node pools and names
# ============================================================

AKS_TAINTED_POOLS: List[str] = ["migration", "discover", "dryviqpool", "clickhouse", "proxy"]
K3S_REQUIRED_NODES: List[str] = ["dryviq", "clickhouse", "postgres", "logging", "worker1"]
TAINT_KEY = "dedicated"
TAINT_EFFECT = "NoExecute"

# ============================================================
# Networking
# ============================================================

REQUIRED_ENDPOINTS: List[str] = [
    # StackGres/Postgres
    "stackgres.io",
    # Core platform
    "skysync.azurecr.io",
    "api.portalarchitects.com",
    "skysyncblob.blob.core.windows.net",
    # K3s and dependencies
    "get.k3s.io",
    "rpm.rancher.io",
    "update.k3s.io",
    # Tools
    "webinstall.dev/k9s",
]

NET_CHECK_POD = "net-check"
NET_CHECK_IMAGE = "curlimages/curl:8.15.0"
NET_CHECK_READY_TIMEOUT = 30

# ============================================================
# Firewall (K3s)
# ============================================================

REQUIRED_TCP_PORTS: List[int] = [6443, 10250, 443, 80, 179]
REQUIRED_UDP_PORTS: List[int] = [4789]  # Calico VXLAN
OPTIONAL_TCP_PORTS: List[int] = [2379, 2380]  # embedded etcd, HA only

FIREWALL_REFERENCE: List[Tuple[str, str, str, str]] = [
    ("Agent nodes", "Server nodes", "TCP 6443", "K3s API server (required)"),
    ("All nodes", "All nodes", "TCP 10250", "Kubelet metrics/logging (required)"),
    ("All nodes", "All nodes", "UDP 4789", "Calico VXLAN (required)"),
    ("All nodes", "All nodes", "TCP 179", "Calico BGP (required)"),
    ("Server nodes", "Server nodes", "TCP 2379-2380", "Embedded etcd cluster (HA only)"),
    ("Clients/ext", "Proxy ingress", "TCP 80/443", "Ingress to services (required)"),
    ("All nodes", "All nodes", "TCP 30000-32767", "NodePort services (optional)"),
]

FIREWALL_NOTES: List[str] = [
    "TCP 2379-2380 only required for multi-server (HA) clusters",
    "NodePort services (30000-32767) are optional, but if used, must be open",
    "Only one of VXLAN (UDP 4789) or BGP (TCP 179) is needed, as set in your CNI config",
]

# ============================================================
# Tool versions
# ============================================================

KUBECTL_MIN_VERSION = "1.29"
HELM_MIN_VERSION = "3.0"

# ============================================================
# Probe resources
# ============================================================

ONPREM_NAMESPACE = "dryviq-preflight-net"
ONPREM_PROBE_PORT = 9100
DEFAULT_AGNHOST_IMAGE = "registry.k8s.io/e2e-test-images/agnhost:2.45"

DB_NAMESPACE = "dryviq-preflight-db"
DB_PROBE_POD = "db-probe"
DEFAULT_DB_CLIENT_IMAGE = "busybox:1.36"

DB_ENDPOINTS_FILE = "config/db_endpoints.txt"
