"""
Pydantic models for the run context.

The run context is built once, before any check runs, and is shared
read-only by every check in the run.
"""

import ipaddress
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DB_PORT = 5432

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*s?\s*$")

# Hostname characters only; anything else must parse as an IP address
_HOSTNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]([A-Za-z0-9_.-]*[A-Za-z0-9])?$")


class EnvironmentKind(str, Enum):
    """Target platform of the deployment."""
    AKS = "aks"
    EKS = "eks"
    K3S = "k3s"

    @property
    def is_cloud(self) -> bool:
        return self in (EnvironmentKind.AKS, EnvironmentKind.EKS)


class DbEndpoint(BaseModel):
    """A database endpoint probed from inside the cluster."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="Hostname or IP address")
    port: int = Field(default=DEFAULT_DB_PORT, ge=1, le=65535, description="TCP port")

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if _HOSTNAME_PATTERN.match(v):
            return v
        try:
            ipaddress.ip_address(v.strip("[]"))
        except ValueError:
            raise ValueError(f"Invalid DB host {v!r} (expected a hostname or IP address)")
        return v

    @classmethod
    def parse(cls, token: str) -> "DbEndpoint":
        """Parse a single ``host[:port]`` token."""
        token = token.strip()
        if ":" not in token:
            return cls(host=token)

        host, _, port = token.rpartition(":")
        if not port.isdigit():
            raise ValueError(f"Invalid port in DB endpoint: {token}")
        return cls(host=host, port=int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_db_endpoints(raw: Optional[str]) -> List[DbEndpoint]:
    """
    Split a comma/space separated endpoint list.

    Tokens without an explicit port get the default Postgres port.
    """
    if not raw:
        return []
    tokens = raw.replace(",", " ").split()
    return [DbEndpoint.parse(t) for t in tokens if t]


def parse_duration(value: Any) -> int:
    """Parse a duration given as ``180`` or ``180s`` into seconds."""
    if isinstance(value, int):
        return value
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r} (expected seconds, e.g. 180 or 180s)")
    return int(match.group(1))


class RunContext(BaseModel):
    """Configuration shared by all checks in one run."""

    model_config = ConfigDict(frozen=True)

    environment: EnvironmentKind = Field(..., description="Target platform")
    resource_group: Optional[str] = Field(None, description="AKS resource group")
    cluster_name: Optional[str] = Field(None, description="AKS/EKS cluster name")
    kube_context: Optional[str] = Field(None, description="kubectl context to target")
    db_endpoints: Tuple[DbEndpoint, ...] = Field(default_factory=tuple, description="Database endpoints")

    readiness_timeout: int = Field(default=180, gt=0, description="Pod readiness bound (seconds)")
    http_timeout: int = Field(default=120, gt=0, description="In-cluster HTTP probe bound (seconds)")
    endpoint_timeout: int = Field(default=7, gt=0, description="External endpoint probe bound (seconds)")
    db_timeout_secs: int = Field(default=15, gt=0, description="Per-endpoint DB connect bound (seconds)")
    server_image: Optional[str] = Field(None, description="Probe server image override")
    client_image: Optional[str] = Field(None, description="Probe client image override")
    target_namespace: str = Field(default="default", min_length=1, description="Namespace for dry-run probes")

    @field_validator("db_endpoints", mode="before")
    @classmethod
    def coerce_db_endpoints(cls, v: Any) -> Any:
        """Accept a raw string, a list of strings, or a list of endpoints."""
        if v is None:
            return ()
        if isinstance(v, str):
            return tuple(parse_db_endpoints(v))
        if isinstance(v, (list, tuple)):
            endpoints = []
            for item in v:
                if isinstance(item, str):
                    endpoints.extend(parse_db_endpoints(item))
                else:
                    endpoints.append(item)
            return tuple(endpoints)
        return v

    @field_validator("readiness_timeout", "http_timeout", "endpoint_timeout", "db_timeout_secs", mode="before")
    @classmethod
    def coerce_duration(cls, v: Any) -> Any:
        if v is None or isinstance(v, int):
            return v
        return parse_duration(v)

    @field_validator("resource_group", "cluster_name", "kube_context", "server_image", "client_image", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_env(self) -> Dict[str, str]:
        """Render the context as the environment variables external checks read."""
        env = {
            "ENVIRONMENT": self.environment.value,
            "PREFLIGHT_READINESS_TIMEOUT": f"{self.readiness_timeout}s",
            "PREFLIGHT_HTTP_TIMEOUT": str(self.http_timeout),
            "PREFLIGHT_ENDPOINT_TIMEOUT": str(self.endpoint_timeout),
            "PREFLIGHT_DB_TIMEOUT_SECS": str(self.db_timeout_secs),
            "TARGET_NAMESPACE": self.target_namespace,
        }
        if self.resource_group:
            env["RESOURCE_GROUP"] = self.resource_group
        if self.cluster_name:
            env["CLUSTER_NAME"] = self.cluster_name
        if self.db_endpoints:
            env["DB_ENDPOINTS"] = " ".join(str(e) for e in self.db_endpoints)
        if self.server_image:
            env["PREFLIGHT_SERVER_IMAGE"] = self.server_image
        if self.client_image:
            env["PREFLIGHT_CLIENT_IMAGE"] = self.client_image
        return env
