"""
Tool Version Validation

Validates that kubectl and helm are installed and recent enough.
"""

import re
from typing import Optional, Tuple

from ...config import RunContext
from ...config.defaults import HELM_MIN_VERSION, KUBECTL_MIN_VERSION
from ...tools import CommandError, Kubectl, run_command, which
from ..models import StatusWriter

SEMVER_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)")


def version_tuple(version: str, parts: Optional[int] = None) -> Tuple[int, ...]:
    """
    Numeric components of a version string.

    ``1.29.3-gke.100`` -> ``(1, 29, 3)``; with ``parts=2`` -> ``(1, 29)``.
    """
    numbers = []
    for piece in version.lstrip("v").split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        numbers.append(int(match.group()))
        # "3-gke" or "0-rc": a suffix ends the numeric part
        if match.end() != len(piece):
            break
    if parts is not None:
        numbers = (numbers + [0] * parts)[:parts]
    return tuple(numbers)


def compare_versions(a: str, b: str, parts: Optional[int] = None) -> int:
    """
    Compare two versions numerically, component by component.

    Returns:
        -1, 0 or 1 as ``a`` is lower than, equal to, or higher than ``b``
    """
    ta, tb = version_tuple(a, parts), version_tuple(b, parts)
    width = max(len(ta), len(tb))
    ta += (0,) * (width - len(ta))
    tb += (0,) * (width - len(tb))
    return (ta > tb) - (ta < tb)


def meets_minimum(version: str, minimum: str, parts: Optional[int] = None) -> bool:
    return compare_versions(version, minimum, parts) >= 0


def _kubectl_version(kube_context: Optional[str]) -> Optional[str]:
    try:
        return Kubectl(kube_context).client_version()
    except CommandError:
        return None


def _helm_version() -> Optional[str]:
    result = run_command(["helm", "version", "--short"], timeout=30)
    match = SEMVER_PATTERN.search(result.stdout)
    return match.group(0) if match else None


def run(context: RunContext, out: StatusWriter) -> None:
    """Check that kubectl and helm meet their minimum versions."""
    ok = True

    if which("kubectl") is None:
        out.fail("kubectl not installed")
        ok = False
    else:
        version = _kubectl_version(context.kube_context)
        if not version:
            out.fail("Unable to determine kubectl version")
            ok = False
        elif not meets_minimum(version, KUBECTL_MIN_VERSION, parts=2):
            out.fail(f"kubectl version {version} < {KUBECTL_MIN_VERSION}")
            ok = False
        else:
            out.pass_(f"kubectl version {version}")

    if which("helm") is None:
        out.fail("helm not installed")
        ok = False
    else:
        version = _helm_version()
        if not version:
            out.fail("Unable to determine helm version")
            ok = False
        elif not meets_minimum(version, HELM_MIN_VERSION):
            out.fail(f"helm version {version} < {HELM_MIN_VERSION}")
            ok = False
        else:
            out.pass_(f"helm version {version}")

    if ok:
        out.pass_("All required tool versions present.")
    else:
        out.fail("One or more required tools missing or too old.")
