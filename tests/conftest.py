"""
Shared pytest fixtures for SysCheck tests.

This module provides:
- commands: CommandMocker with subprocess.run patched, answering every
  external command (kubectl, az, aws, helm, firewall tools)
- installed_tools: which patching to control which tools look installed
- make_context: RunContext factory
"""

from typing import Any, Optional
from unittest.mock import patch

import pytest

from helpers import CommandMocker
from syscheck.config import RunContext
from syscheck.preflight.models import StatusWriter


# =============================================================================
# Command mocking
# =============================================================================

@pytest.fixture
def commands():
    """CommandMocker with subprocess.run patched."""
    mocker = CommandMocker()
    with patch("subprocess.run", side_effect=mocker.mock_run):
        yield mocker


@pytest.fixture
def installed_tools():
    """
    Control which tools ``which`` reports as installed.

    Usage:
        installed_tools("kubectl", "helm")
    """
    available = set()

    def fake_which(tool: str) -> Optional[str]:
        return f"/usr/bin/{tool}" if tool in available else None

    def install(*tools: str) -> None:
        available.update(tools)

    with patch("shutil.which", side_effect=fake_which):
        yield install


# =============================================================================
# Run context helpers
# =============================================================================

@pytest.fixture
def make_context():
    """Factory for RunContext with test-friendly defaults."""
    def _make(environment: str = "aks", **kwargs: Any) -> RunContext:
        if environment == "aks":
            kwargs.setdefault("resource_group", "rg-test")
        if environment in ("aks", "eks"):
            kwargs.setdefault("cluster_name", "cluster-test")
        return RunContext(environment=environment, **kwargs)
    return _make


@pytest.fixture
def writer() -> StatusWriter:
    return StatusWriter()


