"""
Run context loader.

Builds a RunContext from a YAML file, process environment variables and
explicit overrides, in increasing order of precedence.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from .defaults import DB_ENDPOINTS_FILE
from .models import RunContext

logger = logging.getLogger(__name__)

# Environment variable -> RunContext field
ENV_FIELDS: Dict[str, str] = {
    "ENVIRONMENT": "environment",
    "RESOURCE_GROUP": "resource_group",
    "CLUSTER_NAME": "cluster_name",
    "KUBE_CONTEXT": "kube_context",
    "DB_ENDPOINTS": "db_endpoints",
    "PREFLIGHT_READINESS_TIMEOUT": "readiness_timeout",
    "PREFLIGHT_HTTP_TIMEOUT": "http_timeout",
    "PREFLIGHT_ENDPOINT_TIMEOUT": "endpoint_timeout",
    "PREFLIGHT_DB_TIMEOUT_SECS": "db_timeout_secs",
    "PREFLIGHT_SERVER_IMAGE": "server_image",
    "PREFLIGHT_CLIENT_IMAGE": "client_image",
    "TARGET_NAMESPACE": "target_namespace",
}


class ConfigError(Exception):
    """Configuration loading or validation error."""
    pass


class ConfigLoader:
    """
    Collects run context values from several sources.

    Usage:
        context = ConfigLoader("syscheck.yaml").with_environ().build(environment="aks")
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the loader.

        Args:
            config_path: Optional YAML file with run context fields
        """
        self.config_path = Path(config_path) if config_path else None
        self._values: Dict[str, Any] = {}

        if self.config_path is not None:
            self._values.update(self._read_yaml(self.config_path))

    def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse a YAML file."""
        try:
            with open(file_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {file_path}: {e}")
        except IOError as e:
            raise ConfigError(f"Cannot read {file_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top level of {file_path}")
        return data

    def with_environ(self, environ: Optional[Mapping[str, str]] = None) -> "ConfigLoader":
        """
        Layer process environment variables over the file values.

        Returns:
            Self for method chaining
        """
        environ = os.environ if environ is None else environ
        for var, field_name in ENV_FIELDS.items():
            value = environ.get(var)
            if value:
                self._values[field_name] = value
        return self

    def with_endpoints_file(self, path: Union[str, Path] = DB_ENDPOINTS_FILE) -> "ConfigLoader":
        """Use the endpoints file when no DB endpoints were given elsewhere."""
        if self._values.get("db_endpoints"):
            return self

        path = Path(path)
        if path.is_file():
            logger.debug("Reading DB endpoints from %s", path)
            self._values["db_endpoints"] = " ".join(path.read_text().split())
        return self

    def get(self, field_name: str) -> Any:
        """Get a value collected so far."""
        return self._values.get(field_name)

    def build(self, **overrides: Any) -> RunContext:
        """
        Build the immutable run context.

        Args:
            **overrides: Field values that win over every other source;
                ``None`` values are ignored

        Raises:
            ConfigError: If the collected values do not form a valid context
        """
        values = dict(self._values)
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return RunContext(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid run configuration: {e}")
