"""
Firewall Port Validation

Checks the host firewall (ufw or firewalld) for the ports K3s and
Calico need. Only meaningful for on-prem installs.
"""

import re
from typing import Callable, List, Optional, Tuple

from ...config import EnvironmentKind, RunContext
from ...config.defaults import (
    FIREWALL_NOTES,
    FIREWALL_REFERENCE,
    OPTIONAL_TCP_PORTS,
    REQUIRED_TCP_PORTS,
    REQUIRED_UDP_PORTS,
)
from ...tools import CommandError, run_command, which
from ..models import StatusWriter


def _print_reference(out: StatusWriter) -> None:
    rule = "=" * 77
    out.echo(rule)
    out.echo("K3s Firewall Port & Traffic Reference".center(77))
    out.echo(rule)
    out.echo(f"  {'Source':<14} {'Destination':<15} {'Protocol/Port':<16} Description")
    out.echo("-" * 77)
    for source, dest, port, description in FIREWALL_REFERENCE:
        out.echo(f"  {source:<14} {dest:<15} {port:<16} {description}")
    out.echo("-" * 77)
    out.echo("  Notes:")
    for note in FIREWALL_NOTES:
        out.echo(f"    - {note}")
    out.echo(rule)


def ufw_allows(status_output: str, port: int, proto: str) -> bool:
    """Whether ``ufw status`` lists a rule for port/proto."""
    return re.search(rf"(^|\s){port}/{proto}\b", status_output, re.MULTILINE) is not None


def firewalld_allows(list_ports_output: str, port: int, proto: str) -> bool:
    """Whether ``firewall-cmd --list-ports`` contains port/proto."""
    return f"{port}/{proto}" in list_ports_output.split()


def _audit(
    out: StatusWriter,
    service: str,
    allows: Callable[[int, str], bool],
) -> bool:
    """Report required and optional ports against one firewall; True if all required are open."""
    ok = True
    required: List[Tuple[int, str]] = [(p, "tcp") for p in REQUIRED_TCP_PORTS] + [(p, "udp") for p in REQUIRED_UDP_PORTS]

    for port, proto in required:
        if allows(port, proto):
            out.pass_(f"Port {port}/{proto} allowed by {service}")
        else:
            out.fail(f"Port {port}/{proto} NOT open in {service}")
            ok = False

    for port in OPTIONAL_TCP_PORTS:
        if allows(port, "tcp"):
            out.warn(f"Port {port}/tcp allowed by {service} (optional: needed only for HA with embedded etcd)")
        else:
            out.warn(f"Port {port}/tcp NOT open in {service} (only needed for HA with embedded etcd)")

    return ok


def _ufw_status() -> Optional[str]:
    """ufw status output when ufw is active, else None."""
    if which("ufw") is None:
        return None
    result = run_command(["sudo", "ufw", "status"], timeout=30)
    if result.ok and "Status: active" in result.stdout:
        return result.stdout
    return None


def _firewalld_ports() -> Optional[str]:
    """firewalld open ports when firewalld is running, else None."""
    if which("firewall-cmd") is None:
        return None
    state = run_command(["sudo", "firewall-cmd", "--state"], timeout=30)
    if not (state.ok and "running" in state.stdout):
        return None
    return run_command(["sudo", "firewall-cmd", "--list-ports"], timeout=30).check().stdout


def run(context: RunContext, out: StatusWriter) -> None:
    """Check required K3s firewall ports on this host."""
    if context.environment != EnvironmentKind.K3S:
        out.skip("Firewall checks are only required on on-prem (K3s) installs.")
        return

    _print_reference(out)

    ok = True
    detected = False

    try:
        ufw = _ufw_status()
    except CommandError as e:
        out.warn(f"Could not query ufw: {e}")
        ufw = None
    if ufw is not None:
        detected = True
        out.echo("Detected ufw is active.")
        ok &= _audit(out, "ufw", lambda port, proto: ufw_allows(ufw, port, proto))

    try:
        ports = _firewalld_ports()
    except CommandError as e:
        out.warn(f"Could not query firewalld: {e}")
        ports = None
    if ports is not None:
        detected = True
        out.echo("Detected firewalld is running.")
        ok &= _audit(out, "firewalld", lambda port, proto: firewalld_allows(ports, port, proto))

    if not detected:
        out.warn("No active firewall service detected (ufw or firewalld). Please check your network security manually.")

    if ok:
        out.pass_("All required firewall ports are open.")
    else:
        out.fail("One or more required ports are missing from firewall.")
