"""Run context configuration for the preflight checks."""

from .models import (
    DbEndpoint,
    EnvironmentKind,
    RunContext,
    parse_db_endpoints,
)
from .loader import ConfigError, ConfigLoader

__all__ = [
    "DbEndpoint",
    "EnvironmentKind",
    "RunContext",
    "parse_db_endpoints",
    "ConfigError",
    "ConfigLoader",
]
